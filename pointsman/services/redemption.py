"""
Redemption state machine for reward codes.

    active -> redeemed    (counter, approver required)
    active -> expired     (time-driven sweep)
    active -> cancelled   (staff)

All three targets are terminal. Each transition locks the code row,
re-checks the precondition, and writes the status change and its audit
entry in one transaction. A failed precondition raises StateError
before anything is written.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from functools import partial

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from pointsman.conf import load_backend
from pointsman.db import atomic_with_timeout
from pointsman.exceptions import AuthorizationError, NotFoundError, StateError
from pointsman.models import (
    AuditEntryType,
    LedgerEntry,
    Redemption,
    RewardCode,
    RewardStatus,
)
from pointsman.services.audit import AuditLog
from pointsman.services.notifications import NotificationDispatcher
from pointsman.services.rewards import normalize_code
from pointsman.signals import reward_cancelled, reward_redeemed

logger = logging.getLogger(__name__)


@dataclass
class RedemptionResult:
    reward_code: RewardCode
    redemption: Redemption


@dataclass(frozen=True)
class CodeValidation:
    """Read-only answer to "can this code be redeemed here now?"."""

    valid: bool
    code: str
    status: str | None = None
    value: Decimal | None = None
    expires_at: datetime | None = None
    customer_id: int | None = None
    error_code: str | None = None
    message: str | None = None


class RedemptionService:
    """Reward code transitions."""

    @classmethod
    def redeem(
        cls,
        code_id,
        operator_id: str,
        approver_id: str,
        notes: str = "",
        now: datetime | None = None,
    ) -> RedemptionResult:
        """
        Redeem a reward code at the counter.

        ``approver_id`` must come from a validated approver (see
        ``redeem_by_code``, which runs the PIN check).

        Raises:
            AuthorizationError: No approver given
            NotFoundError: Unknown code
            StateError: Code not active (REWARD_NOT_ACTIVE) or past expiry
                (REWARD_EXPIRED); nothing is written
        """
        if not approver_id:
            raise AuthorizationError("INVALID_APPROVER")

        with atomic_with_timeout():
            reward = cls._lock(code_id)
            now = now or timezone.now()
            if reward.status != RewardStatus.ACTIVE:
                raise StateError("REWARD_NOT_ACTIVE", code=reward.code, status=reward.status)
            if reward.is_expired(now):
                raise StateError(
                    "REWARD_EXPIRED", code=reward.code, expires_at=reward.expires_at.isoformat()
                )

            reward.status = RewardStatus.REDEEMED
            reward.redeemed_at = now
            reward.save(update_fields=["status", "redeemed_at"])

            redemption = Redemption.objects.create(
                reward_code=reward,
                customer_id=reward.customer_id,
                tenant_id=reward.tenant_id,
                operator_id=operator_id,
                approver_id=approver_id,
                value=reward.value,
                notes=(notes or "")[:255],
            )
            AuditLog.append(
                entry_type=AuditEntryType.REDEMPTION,
                customer_id=reward.customer_id,
                tenant_id=reward.tenant_id,
                points_delta=0,
                balance_after=cls._balance(reward),
                reward_code=reward,
                operator_id=operator_id,
                approver_id=approver_id,
                note=f"Canje de {reward.code} por ${reward.value}",
            )

            transaction.on_commit(
                partial(
                    reward_redeemed.send,
                    sender=RewardCode,
                    reward_code=reward,
                    redemption=redemption,
                ),
                robust=True,
            )
            transaction.on_commit(
                partial(NotificationDispatcher.reward_redeemed, reward, redemption),
                robust=True,
            )

        logger.info(
            "Reward %s redeemed by %s (approver %s)", reward.code, operator_id, approver_id
        )
        return RedemptionResult(reward_code=reward, redemption=redemption)

    @classmethod
    def redeem_by_code(
        cls,
        code: str,
        tenant_id: int,
        operator_id: str,
        approver_pin: str,
        notes: str = "",
    ) -> RedemptionResult:
        """
        Counter flow: approver PIN check, code lookup, redeem.

        Raises:
            AuthorizationError: PIN rejected by the approver validator
            NotFoundError: No such code at this tenant
            StateError: See ``redeem``
        """
        approver = load_backend("APPROVER_VALIDATOR").validate(tenant_id, approver_pin)
        if approver is None:
            logger.warning("Rejected approver PIN for tenant %s (operator %s)", tenant_id, operator_id)
            raise AuthorizationError("INVALID_APPROVER", tenant_id=tenant_id)

        reward = (
            RewardCode.objects.filter(code=normalize_code(code), tenant_id=tenant_id)
            .only("pk")
            .first()
        )
        if reward is None:
            raise NotFoundError("REWARD_NOT_FOUND", code=code)
        return cls.redeem(reward.pk, operator_id, approver.approver_id, notes=notes)

    @classmethod
    def validate_code(cls, code: str, tenant_id: int, now: datetime | None = None) -> CodeValidation:
        """Check a code without changing it."""
        code = normalize_code(code)
        reward = RewardCode.objects.filter(code=code, tenant_id=tenant_id).first()
        if reward is None:
            return CodeValidation(
                valid=False,
                code=code,
                error_code="REWARD_NOT_FOUND",
                message=NotFoundError("REWARD_NOT_FOUND").message,
            )

        error_code = None
        if reward.status != RewardStatus.ACTIVE:
            error_code = "REWARD_NOT_ACTIVE"
        elif reward.is_expired(now):
            error_code = "REWARD_EXPIRED"

        return CodeValidation(
            valid=error_code is None,
            code=reward.code,
            status=reward.status,
            value=reward.value,
            expires_at=reward.expires_at,
            customer_id=reward.customer_id,
            error_code=error_code,
            message=StateError(error_code).message if error_code else None,
        )

    @classmethod
    def cancel(cls, code_id, operator_id: str, reason: str = "") -> RewardCode:
        """
        Cancel an active (or overdue) code. Points are not refunded.

        Raises:
            NotFoundError: Unknown code
            StateError: Code already in a terminal state
        """
        with atomic_with_timeout():
            reward = cls._lock(code_id)
            if reward.is_terminal:
                raise StateError("REWARD_NOT_ACTIVE", code=reward.code, status=reward.status)

            reward.status = RewardStatus.CANCELLED
            reward.cancelled_at = timezone.now()
            reward.save(update_fields=["status", "cancelled_at"])

            AuditLog.append(
                entry_type=AuditEntryType.CANCELLATION,
                customer_id=reward.customer_id,
                tenant_id=reward.tenant_id,
                points_delta=0,
                balance_after=cls._balance(reward),
                reward_code=reward,
                operator_id=operator_id,
                note=reason or f"Cancelación de {reward.code}",
            )
            transaction.on_commit(
                partial(reward_cancelled.send, sender=RewardCode, reward_code=reward),
                robust=True,
            )

        logger.info("Reward %s cancelled by %s", reward.code, operator_id)
        return reward

    @classmethod
    def expire_overdue(cls, now: datetime | None = None, limit: int | None = None) -> int:
        """
        Move every active code past its expiry to ``expired``.

        Each code is expired in its own short transaction; a code that was
        redeemed or cancelled meanwhile is skipped.

        Returns:
            Number of codes expired
        """
        now = now or timezone.now()
        ids = list(RewardCode.objects.overdue(now).order_by("expires_at").values_list("pk", flat=True))
        if limit:
            ids = ids[:limit]

        expired = 0
        for code_id in ids:
            with atomic_with_timeout():
                reward = cls._lock(code_id)
                if reward.status != RewardStatus.ACTIVE or not reward.is_expired(now):
                    continue
                reward.status = RewardStatus.EXPIRED
                reward.save(update_fields=["status"])
                AuditLog.append(
                    entry_type=AuditEntryType.EXPIRATION,
                    customer_id=reward.customer_id,
                    tenant_id=reward.tenant_id,
                    points_delta=0,
                    balance_after=cls._balance(reward),
                    reward_code=reward,
                    operator_id="system",
                    note=f"Vencimiento de {reward.code}",
                )
            expired += 1

        if expired:
            logger.info("Expired %d reward code(s)", expired)
        return expired

    @classmethod
    def _lock(cls, code_id) -> RewardCode:
        try:
            return RewardCode.objects.select_for_update().get(pk=code_id)
        except (RewardCode.DoesNotExist, DjangoValidationError):
            raise NotFoundError("REWARD_NOT_FOUND", code_id=str(code_id))

    @staticmethod
    def _balance(reward: RewardCode) -> int | None:
        return (
            LedgerEntry.objects.filter(customer_id=reward.customer_id, tenant_id=reward.tenant_id)
            .values_list("total_points", flat=True)
            .first()
        )
