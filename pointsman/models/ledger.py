"""LedgerEntry model - per (customer, tenant) point balance."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LedgerEntry(models.Model):
    """
    Point balance of one customer at one tenant.

    Exactly one row per (customer, tenant). Balances only change through
    ``LedgerService.apply_delta()``, which issues a single conditional
    ``UPDATE ... SET total_points = total_points + delta`` and records the
    matching AuditEntry in the same transaction. Rows are never deleted,
    only deactivated.

    ``opening_balance`` is the balance the entry was created with; the sum
    of the entry's audit deltas always equals
    ``total_points - opening_balance``.
    """

    customer = models.ForeignKey(
        "pointsman.Customer",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        verbose_name=_("cliente"),
    )
    tenant = models.ForeignKey(
        "pointsman.Tenant",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        verbose_name=_("negocio"),
    )
    branch = models.ForeignKey(
        "pointsman.Branch",
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
        verbose_name=_("última sucursal"),
    )

    # Points
    total_points = models.IntegerField(
        _("saldo de puntos"),
        default=0,
        help_text=_("Puntos disponibles"),
    )
    lifetime_points = models.IntegerField(
        _("puntos acumulados"),
        default=0,
        help_text=_("Total de puntos ganados (nunca decrece)"),
    )
    opening_balance = models.IntegerField(
        _("saldo inicial"),
        default=0,
        editable=False,
    )

    # Visits
    visits_count = models.PositiveIntegerField(_("visitas"), default=0)
    first_visit_at = models.DateTimeField(_("primera visita"), null=True, blank=True)
    last_visit_at = models.DateTimeField(_("última visita"), null=True, blank=True)

    is_active = models.BooleanField(_("activo"), default=True)
    created_at = models.DateTimeField(_("creado en"), auto_now_add=True)
    updated_at = models.DateTimeField(_("actualizado en"), auto_now=True)

    class Meta:
        verbose_name = _("saldo de cliente")
        verbose_name_plural = _("saldos de clientes")
        ordering = ["-last_visit_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer", "tenant"],
                name="pointsman_unique_ledger_per_customer_tenant",
            ),
        ]

    def __str__(self):
        return f"{self.customer_id}@{self.tenant_id}: {self.total_points}pts"
