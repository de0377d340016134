import logging

from django.conf import settings
from django.core.mail import send_mail

from .models import EmailLog

logger = logging.getLogger(__name__)


def send_receipt_email(to_email: str, subject: str, body: str) -> EmailLog:
    log = EmailLog.objects.create(to=to_email, subject=subject, body=body, status="queued")
    try:
        # Only actually send when PROVIDER_MODE=LIVE
        if str(getattr(settings, "PROVIDER_MODE", "MOCK")).upper() == "LIVE":
            send_mail(subject, body, None, [to_email], fail_silently=False)
        log.status = "sent"
    except Exception as e:
        logger.exception("EmailLog %s: send failed", log.id)
        log.status = "failed"
        log.error = str(e)
    finally:
        log.save(update_fields=["status", "error"])
    return log


def _confirmation_text(transaction, codes) -> str:
    lines = [
        "Hi,",
        "",
        "Thanks for your purchase.",
        "",
        f"Product: {transaction.product.name}",
        f"Amount: {transaction.amount} {transaction.currency.upper()}",
        f"Credits: {sum(c.credits for c in codes)}",
        "",
        "Your credit codes:",
    ]
    lines += [f"  {c.code}  ({c.credits} credits, expires {c.expires_at:%Y-%m-%d})" for c in codes]
    lines += ["", "Each code can be redeemed once.", "", "The GroupSpark team"]
    return "\n".join(lines)


def send_purchase_confirmation(transaction, codes):
    """Fire-and-forget: failures are logged, never raised to the caller."""
    if not codes or not bool(getattr(settings, "RECEIPT_EMAILS_ENABLED", True)):
        return None
    try:
        return send_receipt_email(
            to_email=transaction.customer_email,
            subject="GroupSpark Credit Purchase Confirmation",
            body=_confirmation_text(transaction, codes),
        )
    except Exception:
        logger.exception("Could not queue confirmation for transaction %s", transaction.id)
        return None
