"""
Reward automation engine - converts point balances into reward codes.

Each card is issued in its own transaction that holds the row lock of
the (customer, tenant) ledger entry:

    lock entry -> re-validate balance and cap -> mint code
    -> deduct points_required (atomic decrement + audit) -> commit

Two concurrent evaluations for the same pair therefore serialize, and
the second one sees the balance the first left behind. A card whose
code cannot be minted is skipped without touching the cards already
issued in the same run.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import partial

from django.db import IntegrityError, transaction
from django.utils import timezone

from pointsman.conf import pointsman_settings
from pointsman.db import atomic_with_timeout
from pointsman.exceptions import CodeCollisionError, TransientError
from pointsman.models import AuditEntryType, LedgerEntry, RewardCode
from pointsman.services.ledger import LedgerService
from pointsman.services.notifications import NotificationDispatcher
from pointsman.services.reward_settings import RewardSettingsService
from pointsman.signals import reward_issued

logger = logging.getLogger(__name__)

# No I, O, 0 or 1
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 12
CODE_GROUP_SIZE = 4


def generate_code(prefix: str | None = None) -> str:
    """Random code like ``GC-7KQ2-MX9P-H4TW``."""
    if prefix is None:
        prefix = pointsman_settings.CODE_PREFIX
    raw = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    groups = [raw[i : i + CODE_GROUP_SIZE] for i in range(0, CODE_LENGTH, CODE_GROUP_SIZE)]
    if prefix:
        groups.insert(0, prefix)
    return "-".join(groups)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def mint_code(**fields) -> RewardCode:
    """
    Persist a RewardCode under a fresh unique code.

    Retries a bounded number of times when the generated code already
    exists, either seen up front or reported by the unique constraint.

    Raises:
        CodeCollisionError: After ``CODE_MAX_ATTEMPTS`` collisions
        TransientError: The insert failed for any other reason
    """
    max_attempts = pointsman_settings.CODE_MAX_ATTEMPTS
    for attempt in range(1, max_attempts + 1):
        code = generate_code()
        if RewardCode.objects.filter(code=code).exists():
            logger.warning("Reward code collision on %s (attempt %d)", code, attempt)
            continue
        try:
            with transaction.atomic():
                return RewardCode.objects.create(code=code, **fields)
        except IntegrityError as exc:
            if not RewardCode.objects.filter(code=code).exists():
                logger.warning("Reward code insert failed: %s", exc)
                raise TransientError("STORAGE_UNAVAILABLE", detail=str(exc)) from exc
            logger.warning("Reward code collision on %s at insert (attempt %d)", code, attempt)
    raise CodeCollisionError(max_attempts)


@dataclass
class IssueOutcome:
    """Result of one card slot in an evaluation."""

    issued: bool
    reward_code: RewardCode | None = None
    message: str = ""
    points_needed: int = 0
    error_code: str = ""

    @property
    def code(self) -> str | None:
        return self.reward_code.code if self.reward_code else None


@dataclass(frozen=True)
class EligibilitySummary:
    current_points: int
    points_required: int
    points_needed: int
    can_generate: bool
    possible_cards: int
    active_cards: int
    max_active_cards: int


class RewardEngine:
    """
    Threshold-triggered reward issuance.

    Call ``evaluate`` after any positive ledger mutation. It is safe to
    call repeatedly and concurrently: cards are only issued against
    points that are still on the balance at issue time.
    """

    @classmethod
    def eligibility(
        cls,
        customer_id: int,
        tenant_id: int,
        now: datetime | None = None,
    ) -> EligibilitySummary:
        """Read-only view of what ``evaluate`` would issue right now."""
        policy = RewardSettingsService.get(tenant_id)
        entry = LedgerEntry.objects.filter(customer_id=customer_id, tenant_id=tenant_id).first()
        points = entry.total_points if entry and entry.is_active else 0
        active = cls._active_count(customer_id, tenant_id, now)
        slots = max(policy.max_active_cards - active, 0)
        possible = min(max(points, 0) // policy.points_required, slots)
        return EligibilitySummary(
            current_points=points,
            points_required=policy.points_required,
            points_needed=max(policy.points_required - points, 0),
            can_generate=possible > 0,
            possible_cards=possible,
            active_cards=active,
            max_active_cards=policy.max_active_cards,
        )

    @classmethod
    def evaluate(
        cls,
        customer_id: int,
        tenant_id: int,
        operator_id: str = "system",
    ) -> list[IssueOutcome]:
        """
        Issue every card the balance currently pays for.

        Returns one IssueOutcome per attempted card, or a single not-issued
        outcome explaining why nothing was eligible.

        Raises:
            TransientError: Storage failed. Cards already issued in this
                run are committed and listed in ``exc.data["outcomes"]``;
                the remaining ones were never charged.
        """
        summary = cls._read_eligibility(customer_id, tenant_id, [])
        if not summary.can_generate:
            return [cls._not_eligible(summary)]

        outcomes: list[IssueOutcome] = []
        for _ in range(summary.possible_cards):
            try:
                outcome = cls._issue_one(customer_id, tenant_id, operator_id)
            except CodeCollisionError as exc:
                logger.error(
                    "Skipping reward card for customer %s at tenant %s: %s",
                    customer_id,
                    tenant_id,
                    exc,
                )
                outcomes.append(
                    IssueOutcome(issued=False, message=exc.message, error_code=exc.code)
                )
                continue
            except TransientError as exc:
                exc.data["outcomes"] = outcomes
                raise

            if outcome is None:
                # A concurrent evaluation consumed the balance first
                break
            outcomes.append(outcome)

        if not outcomes:
            return [cls._not_eligible(cls._read_eligibility(customer_id, tenant_id, outcomes))]
        return outcomes

    @classmethod
    def _read_eligibility(
        cls, customer_id: int, tenant_id: int, outcomes: list[IssueOutcome]
    ) -> EligibilitySummary:
        """``eligibility`` with storage failures raised as TransientError."""
        try:
            with atomic_with_timeout():
                return cls.eligibility(customer_id, tenant_id)
        except TransientError as exc:
            exc.data["outcomes"] = outcomes
            raise

    @classmethod
    def _issue_one(cls, customer_id: int, tenant_id: int, operator_id: str) -> IssueOutcome | None:
        """Issue one card under the ledger row lock, or None if no longer eligible."""
        with atomic_with_timeout():
            entry = LedgerService.lock(customer_id, tenant_id)
            policy = RewardSettingsService.get(tenant_id)
            now = timezone.now()

            if not entry.is_active or entry.total_points < policy.points_required:
                return None
            if cls._active_count(customer_id, tenant_id, now) >= policy.max_active_cards:
                return None

            reward = mint_code(
                customer_id=customer_id,
                tenant_id=tenant_id,
                value=policy.card_value,
                points_consumed=policy.points_required,
                expires_at=now + timedelta(days=policy.expiration_days),
            )
            LedgerService.apply_delta(
                customer_id,
                tenant_id,
                -policy.points_required,
                entry_type=AuditEntryType.REWARD_ISSUE,
                operator_id=operator_id,
                reward_code=reward,
                note=f"Gift card {reward.code}",
            )

            transaction.on_commit(partial(cls._announce_signal, reward), robust=True)
            transaction.on_commit(partial(NotificationDispatcher.reward_issued, reward), robust=True)

        logger.info(
            "Issued reward %s (%s) to customer %s at tenant %s",
            reward.code,
            reward.value,
            customer_id,
            tenant_id,
        )
        return IssueOutcome(
            issued=True,
            reward_code=reward,
            message=f"Gift card {reward.code} generated successfully",
        )

    @classmethod
    def _announce_signal(cls, reward: RewardCode) -> None:
        reward_issued.send(sender=RewardCode, reward_code=reward)

    @classmethod
    def _active_count(cls, customer_id: int, tenant_id: int, now: datetime | None = None) -> int:
        return RewardCode.objects.filter(customer_id=customer_id, tenant_id=tenant_id).active(now).count()

    @staticmethod
    def _not_eligible(summary: EligibilitySummary) -> IssueOutcome:
        if summary.active_cards >= summary.max_active_cards:
            return IssueOutcome(
                issued=False,
                message=f"Maximum {summary.max_active_cards} active gift cards reached",
                error_code="ACTIVE_CARD_LIMIT",
            )
        return IssueOutcome(
            issued=False,
            message=f"Need {summary.points_needed} more points",
            points_needed=summary.points_needed,
            error_code="INSUFFICIENT_POINTS",
        )
