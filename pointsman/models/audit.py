"""AuditEntry model - append-only record of every point delta."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class AuditEntryType(models.TextChoices):
    CHECKIN = "checkin", _("Check-in")
    POS_AWARD = "pos_award", _("Asignación en caja")
    ADJUSTMENT = "adjustment", _("Ajuste")
    REWARD_ISSUE = "reward_issue", _("Gift card generada")
    REDEMPTION = "redemption", _("Gift card canjeada")
    CANCELLATION = "cancellation", _("Gift card cancelada")
    EXPIRATION = "expiration", _("Gift card expirada")


class AuditEntryQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise TypeError("AuditEntry is append-only")

    def delete(self):
        raise TypeError("AuditEntry is append-only")


class AuditEntry(models.Model):
    """
    Immutable record of a ledger mutation or reward state change.

    Created in the same transaction as the change it records, never
    updated or deleted. Reward state changes (redemption, cancellation,
    expiration) carry ``points_delta = 0`` and reference the reward code.
    """

    entry_type = models.CharField(
        _("tipo"),
        max_length=20,
        choices=AuditEntryType.choices,
    )

    customer = models.ForeignKey(
        "pointsman.Customer",
        on_delete=models.PROTECT,
        related_name="audit_entries",
        verbose_name=_("cliente"),
    )
    tenant = models.ForeignKey(
        "pointsman.Tenant",
        on_delete=models.PROTECT,
        related_name="audit_entries",
        verbose_name=_("negocio"),
    )
    branch = models.ForeignKey(
        "pointsman.Branch",
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
        verbose_name=_("sucursal"),
    )

    points_delta = models.IntegerField(
        _("puntos"),
        help_text=_("Positivo para acumulación, negativo para descuento"),
    )
    balance_after = models.IntegerField(_("saldo después"), null=True, blank=True)

    related_reward_code = models.ForeignKey(
        "pointsman.RewardCode",
        on_delete=models.PROTECT,
        related_name="audit_entries",
        null=True,
        blank=True,
        verbose_name=_("gift card"),
    )

    # Attribution
    operator_id = models.CharField(_("operador"), max_length=100, blank=True)
    approver_id = models.CharField(_("aprobador"), max_length=100, blank=True)
    note = models.CharField(_("nota"), max_length=255, blank=True)

    created_at = models.DateTimeField(_("creado en"), auto_now_add=True, db_index=True)

    objects = AuditEntryQuerySet.as_manager()

    class Meta:
        verbose_name = _("registro de auditoría")
        verbose_name_plural = _("registros de auditoría")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["customer", "tenant", "-created_at"], name="pm_audit_cust_tenant_created"),
        ]

    def __str__(self):
        sign = "+" if self.points_delta > 0 else ""
        return f"{sign}{self.points_delta}pts - {self.get_entry_type_display()}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise TypeError("AuditEntry is append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TypeError("AuditEntry is append-only")
