"""
ProcessedEvent model for inbound event deduplication.

Stores provider message ids so a redelivered webhook event is
recognized and never awards points twice.
"""

from datetime import timedelta

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class ProcessedEvent(models.Model):
    """
    Tracks processed inbound events (replay protection).

    The nonce is recorded in the same transaction as the ledger mutation
    the event causes, so a rolled-back event can be delivered again.
    """

    nonce = models.CharField(verbose_name=_("nonce"), max_length=255, unique=True, db_index=True)
    provider = models.CharField(verbose_name=_("proveedor"), max_length=50, db_index=True)
    processed_at = models.DateTimeField(verbose_name=_("procesado en"), auto_now_add=True)

    class Meta:
        db_table = "pointsman_processed_event"
        verbose_name = _("evento procesado")
        verbose_name_plural = _("eventos procesados")
        indexes = [
            models.Index(fields=["provider", "processed_at"], name="pm_event_provider_processed"),
        ]

    def __str__(self):
        return f"{self.provider}:{self.nonce[:20]}"

    @classmethod
    def cleanup_old_events(cls, days: int | None = None):
        """Remove events older than N days."""
        if days is None:
            from pointsman.conf import pointsman_settings
            days = pointsman_settings.EVENT_CLEANUP_DAYS
        cutoff = timezone.now() - timedelta(days=days)
        return cls.objects.filter(processed_at__lt=cutoff).delete()
