"""Reward models - per-tenant settings, reward codes (gift cards) and redemptions."""

import uuid as uuid_lib
from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class RewardSettings(models.Model):
    """
    Per-tenant reward configuration.

    Tenants without a row use the ``DEFAULT_*`` values from
    ``POINTSMAN`` settings (see ``RewardSettingsService.get``).
    """

    tenant = models.OneToOneField(
        "pointsman.Tenant",
        on_delete=models.CASCADE,
        related_name="reward_settings",
        verbose_name=_("negocio"),
    )
    points_required = models.PositiveIntegerField(
        _("puntos requeridos"),
        default=100,
        help_text=_("Puntos que se canjean por una gift card"),
    )
    card_value = models.DecimalField(
        _("valor de la gift card"),
        max_digits=10,
        decimal_places=2,
        default=Decimal("5"),
    )
    expiration_days = models.PositiveIntegerField(_("días de vigencia"), default=30)
    max_active_cards = models.PositiveIntegerField(_("máximo de gift cards activas"), default=5)
    checkin_points = models.PositiveIntegerField(
        _("puntos por check-in"),
        null=True,
        blank=True,
        help_text=_("Vacío usa el valor global"),
    )

    updated_at = models.DateTimeField(_("actualizado en"), auto_now=True)

    class Meta:
        verbose_name = _("configuración de gift cards")
        verbose_name_plural = _("configuraciones de gift cards")

    def __str__(self):
        return f"{self.tenant_id}: {self.points_required}pts → {self.card_value}"


class RewardStatus(models.TextChoices):
    ACTIVE = "active", _("Activa")
    REDEEMED = "redeemed", _("Canjeada")
    EXPIRED = "expired", _("Expirada")
    CANCELLED = "cancelled", _("Cancelada")


class RewardCodeQuerySet(models.QuerySet):
    def active(self, now=None):
        """Codes that can still be redeemed: status active and not past expiry."""
        now = now or timezone.now()
        return self.filter(status=RewardStatus.ACTIVE, expires_at__gt=now)

    def overdue(self, now=None):
        """Codes still marked active whose expiry has passed."""
        now = now or timezone.now()
        return self.filter(status=RewardStatus.ACTIVE, expires_at__lte=now)


class RewardCode(models.Model):
    """
    Redeemable reward code minted by the reward engine.

    ``code`` is globally unique and immutable. Status transitions are
    one-way: active → redeemed | expired | cancelled, all terminal.
    """

    TERMINAL_STATUSES = frozenset(
        {RewardStatus.REDEEMED, RewardStatus.EXPIRED, RewardStatus.CANCELLED}
    )

    id = models.UUIDField(primary_key=True, default=uuid_lib.uuid4, editable=False)
    code = models.CharField(_("código"), max_length=32, unique=True, editable=False)

    customer = models.ForeignKey(
        "pointsman.Customer",
        on_delete=models.PROTECT,
        related_name="reward_codes",
        verbose_name=_("cliente"),
    )
    tenant = models.ForeignKey(
        "pointsman.Tenant",
        on_delete=models.PROTECT,
        related_name="reward_codes",
        verbose_name=_("negocio"),
    )

    value = models.DecimalField(_("valor"), max_digits=10, decimal_places=2)
    points_consumed = models.PositiveIntegerField(_("puntos usados"))

    status = models.CharField(
        _("estado"),
        max_length=20,
        choices=RewardStatus.choices,
        default=RewardStatus.ACTIVE,
        db_index=True,
    )
    expires_at = models.DateTimeField(_("vence en"))
    created_at = models.DateTimeField(_("creado en"), auto_now_add=True, db_index=True)
    redeemed_at = models.DateTimeField(_("canjeada en"), null=True, blank=True)
    cancelled_at = models.DateTimeField(_("cancelada en"), null=True, blank=True)

    objects = RewardCodeQuerySet.as_manager()

    class Meta:
        verbose_name = _("gift card")
        verbose_name_plural = _("gift cards")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer", "tenant", "status"], name="pm_reward_cust_tenant_status"),
        ]

    def __str__(self):
        return f"{self.code} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def is_expired(self, now=None) -> bool:
        return (now or timezone.now()) >= self.expires_at


class Redemption(models.Model):
    """Record of a reward code being redeemed at the counter."""

    reward_code = models.OneToOneField(
        RewardCode,
        on_delete=models.PROTECT,
        related_name="redemption",
        verbose_name=_("gift card"),
    )
    customer = models.ForeignKey(
        "pointsman.Customer",
        on_delete=models.PROTECT,
        related_name="redemptions",
        verbose_name=_("cliente"),
    )
    tenant = models.ForeignKey(
        "pointsman.Tenant",
        on_delete=models.PROTECT,
        related_name="redemptions",
        verbose_name=_("negocio"),
    )
    operator_id = models.CharField(_("operador"), max_length=100)
    approver_id = models.CharField(_("aprobador"), max_length=100)
    value = models.DecimalField(_("valor"), max_digits=10, decimal_places=2)
    notes = models.CharField(_("notas"), max_length=255, blank=True)

    created_at = models.DateTimeField(_("creado en"), auto_now_add=True)

    class Meta:
        verbose_name = _("canje")
        verbose_name_plural = _("canjes")
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.reward_code_id} by {self.operator_id}/{self.approver_id}"
