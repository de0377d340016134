from __future__ import annotations

from typing import Any, Dict, Optional

from .models import AuditEvent


def mask_email(value: Optional[str]) -> str:
    s = str(value or "")
    if "@" not in s:
        return "***"
    name, _, domain = s.partition("@")
    return (name[:2] + "***@" + domain) if name else "***@" + domain


def record(
    action: str,
    resource_type: str,
    resource_id: Any = "",
    payload: Optional[Dict] = None,
    actor: str = "system",
) -> AuditEvent:
    return AuditEvent.objects.create(
        action=action,
        actor=str(actor or "system")[:128],
        resource_type=resource_type,
        resource_id=str(resource_id or ""),
        payload=payload or {},
    )
