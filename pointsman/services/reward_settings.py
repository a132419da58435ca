"""Reward settings - per-tenant reward policy with documented defaults."""

import logging
from dataclasses import dataclass
from decimal import Decimal

from pointsman.conf import pointsman_settings
from pointsman.exceptions import ValidationError
from pointsman.models import RewardSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewardPolicy:
    """Resolved reward settings of one tenant."""

    tenant_id: int
    points_required: int
    card_value: Decimal
    expiration_days: int
    max_active_cards: int
    checkin_points: int
    is_default: bool = False


_POSITIVE_FIELDS = ("points_required", "expiration_days", "max_active_cards")


class RewardSettingsService:
    """Read and update tenant reward settings."""

    @classmethod
    def get(cls, tenant_id: int) -> RewardPolicy:
        """
        Settings of the tenant, or the ``DEFAULT_*`` values when it has none.

        ``checkin_points`` falls back to ``CHECKIN_POINTS`` when the tenant
        does not override it.
        """
        conf = pointsman_settings
        row = RewardSettings.objects.filter(tenant_id=tenant_id).first()
        if row is None:
            return RewardPolicy(
                tenant_id=tenant_id,
                points_required=conf.DEFAULT_POINTS_REQUIRED,
                card_value=Decimal(conf.DEFAULT_CARD_VALUE),
                expiration_days=conf.DEFAULT_EXPIRATION_DAYS,
                max_active_cards=conf.DEFAULT_MAX_ACTIVE_CARDS,
                checkin_points=conf.CHECKIN_POINTS,
                is_default=True,
            )
        return RewardPolicy(
            tenant_id=tenant_id,
            points_required=row.points_required,
            card_value=row.card_value,
            expiration_days=row.expiration_days,
            max_active_cards=row.max_active_cards,
            checkin_points=(
                row.checkin_points if row.checkin_points is not None else conf.CHECKIN_POINTS
            ),
        )

    @classmethod
    def update(cls, tenant_id: int, **fields) -> RewardPolicy:
        """
        Create or update the tenant's settings.

        Raises:
            ValidationError: Unknown field, or a non-positive value
        """
        allowed = set(_POSITIVE_FIELDS) | {"card_value", "checkin_points"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError("INVALID_SETTINGS", fields=sorted(unknown))

        for name in _POSITIVE_FIELDS:
            if name in fields and (not isinstance(fields[name], int) or fields[name] <= 0):
                raise ValidationError("INVALID_SETTINGS", field=name, value=fields[name])
        if "card_value" in fields:
            fields["card_value"] = Decimal(str(fields["card_value"]))
            if fields["card_value"] <= 0:
                raise ValidationError("INVALID_SETTINGS", field="card_value")
        checkin = fields.get("checkin_points")
        if checkin is not None and (not isinstance(checkin, int) or checkin <= 0):
            raise ValidationError("INVALID_SETTINGS", field="checkin_points", value=checkin)

        RewardSettings.objects.update_or_create(tenant_id=tenant_id, defaults=fields)
        logger.info("Reward settings updated for tenant %s: %s", tenant_id, sorted(fields))
        return cls.get(tenant_id)
