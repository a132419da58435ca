"""Tenant (business), Branch and Challenge models."""

from django.db import models
from django.db.models.functions import Lower
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Tenant(models.Model):
    """
    Merchant account.

    Owns its ledger entries, reward settings and reward codes. Check-in
    messages reference it by name, so names are unique case-insensitively.
    """

    name = models.CharField(_("nombre"), max_length=150)
    address = models.CharField(_("dirección"), max_length=255, blank=True)
    phone = models.CharField(_("teléfono"), max_length=20, blank=True)
    is_active = models.BooleanField(_("activo"), default=True)

    created_at = models.DateTimeField(_("creado en"), auto_now_add=True)

    class Meta:
        verbose_name = _("negocio")
        verbose_name_plural = _("negocios")
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                Lower("name"),
                name="pointsman_tenant_name_ci_unique",
            ),
        ]

    def __str__(self):
        return self.name


class Branch(models.Model):
    """Physical location of a tenant (sucursal)."""

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="branches",
        verbose_name=_("negocio"),
    )
    name = models.CharField(_("nombre"), max_length=150)
    address = models.CharField(_("dirección"), max_length=255, blank=True)
    is_active = models.BooleanField(_("activo"), default=True)

    created_at = models.DateTimeField(_("creado en"), auto_now_add=True)

    class Meta:
        verbose_name = _("sucursal")
        verbose_name_plural = _("sucursales")
        ordering = ["tenant", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "name"],
                name="pointsman_unique_branch_per_tenant",
            ),
        ]

    def __str__(self):
        return f"{self.tenant.name} - {self.name}"


class ChallengeQuerySet(models.QuerySet):
    def running(self, now=None):
        """Active challenges whose time window includes ``now``."""
        now = now or timezone.now()
        return (
            self.filter(is_active=True)
            .filter(models.Q(starts_at__isnull=True) | models.Q(starts_at__lte=now))
            .filter(models.Q(ends_at__isnull=True) | models.Q(ends_at__gt=now))
        )


class Challenge(models.Model):
    """
    Bonus activity published by a tenant (reto).

    Listed to customers by the challenges command and after a check-in.
    A challenge without branch applies to every branch of the tenant.
    """

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="challenges",
        verbose_name=_("negocio"),
    )
    branch = models.ForeignKey(
        Branch,
        on_delete=models.CASCADE,
        related_name="challenges",
        null=True,
        blank=True,
        verbose_name=_("sucursal"),
    )
    name = models.CharField(_("nombre"), max_length=150)
    description = models.TextField(_("descripción"), blank=True)
    points = models.PositiveIntegerField(_("puntos"))

    is_active = models.BooleanField(_("activo"), default=True)
    starts_at = models.DateTimeField(_("inicia en"), null=True, blank=True)
    ends_at = models.DateTimeField(_("termina en"), null=True, blank=True)

    created_at = models.DateTimeField(_("creado en"), auto_now_add=True)

    objects = ChallengeQuerySet.as_manager()

    class Meta:
        verbose_name = _("reto")
        verbose_name_plural = _("retos")
        ordering = ["tenant", "name"]

    def __str__(self):
        return f"{self.name} (+{self.points})"
