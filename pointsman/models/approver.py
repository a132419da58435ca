"""Approver model - staff allowed to authorize awards and redemptions by PIN."""

from django.contrib.auth.hashers import check_password, make_password
from django.db import models
from django.utils.translation import gettext_lazy as _


class Approver(models.Model):
    """
    Tenant staff member with an approval PIN.

    ``operator_id`` is the identity of the user in the host project's
    auth system; Pointsman only stores it. The PIN is hashed with Django's
    password hashers and never stored in clear.
    """

    tenant = models.ForeignKey(
        "pointsman.Tenant",
        on_delete=models.CASCADE,
        related_name="approvers",
        verbose_name=_("negocio"),
    )
    operator_id = models.CharField(_("usuario"), max_length=100)
    name = models.CharField(_("nombre"), max_length=150, blank=True)
    pin_hash = models.CharField(_("PIN (hash)"), max_length=128)
    is_active = models.BooleanField(_("activo"), default=True)

    created_at = models.DateTimeField(_("creado en"), auto_now_add=True)

    class Meta:
        verbose_name = _("aprobador")
        verbose_name_plural = _("aprobadores")
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "operator_id"],
                name="pointsman_unique_approver_per_tenant",
            ),
        ]

    def __str__(self):
        return f"{self.name or self.operator_id} @ {self.tenant_id}"

    def set_pin(self, pin: str) -> None:
        self.pin_hash = make_password(pin)

    def check_pin(self, pin: str) -> bool:
        return bool(pin) and check_password(pin, self.pin_hash)
