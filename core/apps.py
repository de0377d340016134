from __future__ import annotations

from django.apps import AppConfig
from django.conf import settings
from django.core.checks import register, Warning


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "GroupSpark Core"


# ---------------------------------------------------------------------------
# System checks: surface config issues early with `manage.py check`
# ---------------------------------------------------------------------------
@register()
def payments_system_checks(app_configs, **kwargs):
    messages = []

    mode = str(getattr(settings, "PAYMENT_PROVIDER_MODE", "MOCK")).upper()
    if mode == "LIVE":
        missing = [k for k, v in {
            "STRIPE_SECRET_KEY": getattr(settings, "STRIPE_SECRET_KEY", ""),
            "STRIPE_WEBHOOK_SECRET": getattr(settings, "STRIPE_WEBHOOK_SECRET", ""),
        }.items() if not v]
        if missing:
            messages.append(
                Warning(
                    "Stripe LIVE mode is enabled but some credentials are missing.",
                    id="core.W001",
                    hint=f"Missing settings: {', '.join(missing)}",
                )
            )

    attempts = int(getattr(settings, "CREDIT_CODE_MAX_ATTEMPTS", 10))
    if attempts < 1:
        messages.append(
            Warning(
                "CREDIT_CODE_MAX_ATTEMPTS must be at least 1.",
                id="core.W002",
                hint="Code generation needs at least one insert attempt.",
            )
        )

    return messages
