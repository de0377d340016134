# core/models.py
from django.db import models


class AuditEvent(models.Model):
    """
    Append-only audit trail. Rows are written once and never changed.
    """
    action = models.CharField(max_length=64, db_index=True)
    actor = models.CharField(max_length=128, blank=True, default="system")
    resource_type = models.CharField(max_length=64)
    resource_id = models.CharField(max_length=64, blank=True, default="")
    payload = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-timestamp",)
        indexes = [
            models.Index(fields=["resource_type", "resource_id"], name="audit_resource_idx"),
            models.Index(fields=["action", "timestamp"], name="audit_action_ts_idx"),
        ]

    def __str__(self):
        return f"{self.action} {self.resource_type}:{self.resource_id or '-'} by {self.actor}"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("AuditEvent rows are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("AuditEvent rows are append-only")
