"""Point-of-sale awards and manual adjustments."""

import logging
from dataclasses import dataclass, field
from functools import partial

from django.db import transaction

from pointsman.conf import load_backend
from pointsman.db import atomic_with_timeout
from pointsman.exceptions import AuthorizationError, NotFoundError, TransientError, ValidationError
from pointsman.models import AuditEntryType, Branch, LedgerEntry
from pointsman.services.customer import get as get_customer
from pointsman.services.ledger import LedgerService
from pointsman.services.notifications import NotificationDispatcher
from pointsman.services.rewards import IssueOutcome, RewardEngine
from pointsman.signals import points_assigned

logger = logging.getLogger(__name__)


@dataclass
class AwardResult:
    entry: LedgerEntry
    points: int
    created: bool = False
    rewards: list[IssueOutcome] = field(default_factory=list)

    @property
    def issued_codes(self) -> list[str]:
        return [o.code for o in self.rewards if o.issued]


class PointsService:
    """
    Merchant-initiated ledger mutations.

    Both operations require a validated approver. The ledger mutation and
    its audit entry commit together; reward evaluation and notifications
    run afterwards and cannot undo it.
    """

    @classmethod
    def award(
        cls,
        customer_id: int,
        tenant_id: int,
        points: int,
        operator_id: str,
        approver_pin: str,
        note: str = "",
        branch_id: int | None = None,
    ) -> AwardResult:
        """
        Award points at the counter, then run the reward engine.

        Raises:
            ValidationError: points is not a positive integer
            AuthorizationError: PIN rejected
            NotFoundError: Unknown customer or branch
            TransientError: Storage failed during the award itself
        """
        if not isinstance(points, int) or isinstance(points, bool) or points <= 0:
            raise ValidationError("INVALID_POINTS", points=points)

        approver = cls._validate_approver(tenant_id, approver_pin, operator_id)
        get_customer(customer_id)
        cls._check_branch(tenant_id, branch_id)

        with atomic_with_timeout():
            _, created = LedgerService.get_or_create(customer_id, tenant_id, branch_id=branch_id)
            entry = LedgerService.apply_delta(
                customer_id,
                tenant_id,
                points,
                entry_type=AuditEntryType.POS_AWARD,
                operator_id=operator_id,
                approver_id=approver.approver_id,
                note=note,
                branch_id=branch_id,
            )
            transaction.on_commit(
                partial(
                    points_assigned.send,
                    sender=LedgerEntry,
                    entry=entry,
                    delta=points,
                    entry_type=AuditEntryType.POS_AWARD,
                ),
                robust=True,
            )
            transaction.on_commit(
                partial(NotificationDispatcher.points_assigned, entry, points, operator_id),
                robust=True,
            )

        result = AwardResult(entry=entry, points=points, created=created)
        result.rewards = cls._run_engine(customer_id, tenant_id, operator_id)
        if any(o.issued for o in result.rewards):
            entry.refresh_from_db()
        return result

    @classmethod
    def adjust(
        cls,
        customer_id: int,
        tenant_id: int,
        delta: int,
        operator_id: str,
        approver_pin: str,
        note: str = "",
    ) -> LedgerEntry:
        """
        Signed manual correction. Negative deltas obey the overdraft policy.

        Raises:
            ValidationError: delta is zero or not an integer
            AuthorizationError: PIN rejected
            NotFoundError: No ledger entry for the pair
            StateError: Balance would go negative
        """
        if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
            raise ValidationError("INVALID_POINTS", points=delta)

        approver = cls._validate_approver(tenant_id, approver_pin, operator_id)
        entry = LedgerService.apply_delta(
            customer_id,
            tenant_id,
            delta,
            entry_type=AuditEntryType.ADJUSTMENT,
            operator_id=operator_id,
            approver_id=approver.approver_id,
            note=note,
        )
        if delta > 0:
            cls._run_engine(customer_id, tenant_id, operator_id)
            entry.refresh_from_db()
        return entry

    @classmethod
    def _validate_approver(cls, tenant_id: int, pin: str, operator_id: str):
        approver = load_backend("APPROVER_VALIDATOR").validate(tenant_id, pin)
        if approver is None:
            logger.warning("Rejected approver PIN for tenant %s (operator %s)", tenant_id, operator_id)
            raise AuthorizationError("INVALID_APPROVER", tenant_id=tenant_id)
        return approver

    @classmethod
    def _check_branch(cls, tenant_id: int, branch_id: int | None) -> None:
        if branch_id and not Branch.objects.filter(pk=branch_id, tenant_id=tenant_id).exists():
            raise NotFoundError("BRANCH_NOT_FOUND", branch_id=branch_id, tenant_id=tenant_id)

    @classmethod
    def _run_engine(cls, customer_id: int, tenant_id: int, operator_id: str) -> list[IssueOutcome]:
        """Reward evaluation after a committed award. Storage failures are logged."""
        try:
            return RewardEngine.evaluate(customer_id, tenant_id, operator_id=operator_id)
        except TransientError as exc:
            logger.warning(
                "Reward evaluation deferred for customer %s at tenant %s: %s",
                customer_id,
                tenant_id,
                exc,
            )
            return exc.data.get("outcomes", [])
