"""Notification feed and outbound message outbox."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class NotificationType(models.TextChoices):
    CHECKIN = "checkin", _("Check-in")
    NEW_CUSTOMER = "new_customer", _("Nuevo cliente")
    POINTS_ASSIGNED = "points_assigned", _("Puntos asignados")
    REWARD_ISSUED = "reward_issued", _("Gift card generada")
    REWARD_REDEEMED = "reward_redeemed", _("Gift card canjeada")


class NotificationPriority(models.TextChoices):
    LOW = "low", _("Baja")
    NORMAL = "normal", _("Normal")
    HIGH = "high", _("Alta")


class Notification(models.Model):
    """Merchant-facing activity feed entry."""

    tenant = models.ForeignKey(
        "pointsman.Tenant",
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name=_("negocio"),
    )
    customer = models.ForeignKey(
        "pointsman.Customer",
        on_delete=models.SET_NULL,
        related_name="notifications",
        null=True,
        blank=True,
        verbose_name=_("cliente"),
    )
    type = models.CharField(_("tipo"), max_length=30, choices=NotificationType.choices)
    title = models.CharField(_("título"), max_length=200)
    message = models.TextField(_("mensaje"))
    metadata = models.JSONField(_("metadatos"), default=dict, blank=True)
    priority = models.CharField(
        _("prioridad"),
        max_length=10,
        choices=NotificationPriority.choices,
        default=NotificationPriority.NORMAL,
    )
    is_read = models.BooleanField(_("leída"), default=False)

    created_at = models.DateTimeField(_("creada en"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("notificación")
        verbose_name_plural = _("notificaciones")
        ordering = ["-created_at"]

    def __str__(self):
        return f"[{self.type}] {self.title}"


class DeliveryStatus(models.TextChoices):
    PENDING = "pending", _("Pendiente")
    SENT = "sent", _("Enviado")
    FAILED = "failed", _("Fallido")


class OutboundMessage(models.Model):
    """
    Customer message waiting for (or done with) delivery.

    Delivery is at-most-once per successful attempt and retried with
    exponential backoff until ``DELIVERY_MAX_ATTEMPTS``, after which the
    message is marked failed.
    """

    phone = models.CharField(_("teléfono"), max_length=20, db_index=True)
    body = models.TextField(_("mensaje"))
    reference = models.CharField(_("referencia"), max_length=100, blank=True)

    status = models.CharField(
        _("estado"),
        max_length=10,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
    )
    attempts = models.PositiveIntegerField(_("intentos"), default=0)
    next_attempt_at = models.DateTimeField(_("próximo intento"), null=True, blank=True)
    last_error = models.TextField(_("último error"), blank=True)

    created_at = models.DateTimeField(_("creado en"), auto_now_add=True)
    sent_at = models.DateTimeField(_("enviado en"), null=True, blank=True)

    class Meta:
        verbose_name = _("mensaje saliente")
        verbose_name_plural = _("mensajes salientes")
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["status", "next_attempt_at"], name="pm_outbound_status_next"),
        ]

    def __str__(self):
        return f"{self.phone}: {self.status} ({self.attempts})"
