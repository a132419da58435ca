"""Customer model (identity behind every ledger entry).

Customers are identified by the normalized phone number of the messaging
sender. Opting out deactivates the customer; ledger entries and audit
history are kept.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Customer(models.Model):
    """
    Loyalty program participant.

    One row per phone number. ``is_active`` and ``opt_in_marketing`` are
    cleared on opt-out and restored when the customer writes again.
    """

    phone = models.CharField(
        _("teléfono"),
        max_length=20,
        unique=True,
        help_text=_("Solo dígitos, con código de país (ej: 584121234567)"),
    )
    name = models.CharField(_("nombre"), max_length=150, blank=True)

    # Status
    is_active = models.BooleanField(_("activo"), default=True, db_index=True)
    opt_in_marketing = models.BooleanField(_("acepta mensajes"), default=True)
    opted_out_at = models.DateTimeField(_("dado de baja en"), null=True, blank=True)

    # Extension point
    metadata = models.JSONField(_("metadatos"), default=dict, blank=True)

    created_at = models.DateTimeField(_("creado en"), auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(_("actualizado en"), auto_now=True)

    class Meta:
        verbose_name = _("cliente")
        verbose_name_plural = _("clientes")
        ordering = ["name", "phone"]

    def __str__(self):
        return f"{self.name or 'Cliente'} ({self.phone})"

    def save(self, *args, **kwargs):
        if self.phone:
            from pointsman.utils import normalize_phone

            self.phone = normalize_phone(self.phone)
        super().save(*args, **kwargs)
