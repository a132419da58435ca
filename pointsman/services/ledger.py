"""
Ledger service - per (customer, tenant) point balances.

Balances never go through a read-modify-write in Python. Every mutation
is a single conditional UPDATE built from F() expressions, followed by
the matching AuditLog entry inside the same transaction:

    UPDATE ledger SET total_points = total_points + :delta
     WHERE customer = :c AND tenant = :t AND is_active
       AND total_points >= -:delta          -- when overdraft is rejected

Concurrent calls for the same pair serialize on the row lock taken by
the UPDATE, so each call's delta is applied exactly once.
"""

import logging
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.db.models import DateTimeField, F, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from pointsman.conf import pointsman_settings
from pointsman.db import atomic_with_timeout
from pointsman.exceptions import NotFoundError, StateError, ValidationError
from pointsman.models import LedgerEntry
from pointsman.services.audit import AuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    """Audit total vs balance movement of one ledger entry."""

    customer_id: int
    tenant_id: int
    total_points: int
    opening_balance: int
    audit_total: int

    @property
    def difference(self) -> int:
        return (self.total_points - self.opening_balance) - self.audit_total

    @property
    def consistent(self) -> bool:
        return self.difference == 0


class LedgerService:
    """
    Ledger store.

    Uses @classmethod for extensibility (consistent with other services).
    All writes run inside ``atomic_with_timeout()``.
    """

    @classmethod
    def get(cls, customer_id: int, tenant_id: int) -> LedgerEntry:
        """Get ledger entry or raise NotFoundError."""
        try:
            return LedgerEntry.objects.select_related("tenant").get(
                customer_id=customer_id, tenant_id=tenant_id
            )
        except LedgerEntry.DoesNotExist:
            raise NotFoundError(
                "LEDGER_NOT_FOUND", customer_id=customer_id, tenant_id=tenant_id
            )

    @classmethod
    def get_or_create(
        cls,
        customer_id: int,
        tenant_id: int,
        branch_id: int | None = None,
    ) -> tuple[LedgerEntry, bool]:
        """
        Get the entry for the pair, creating it with a zero balance.

        Race-safe: the unique constraint on (customer, tenant) decides the
        winner and the loser re-reads the winner's row.

        Returns:
            Tuple of (LedgerEntry, created: bool)
        """
        existing = LedgerEntry.objects.filter(customer_id=customer_id, tenant_id=tenant_id).first()
        if existing:
            return existing, False

        try:
            with atomic_with_timeout():
                entry = LedgerEntry.objects.create(
                    customer_id=customer_id,
                    tenant_id=tenant_id,
                    branch_id=branch_id,
                    opening_balance=0,
                )
        except IntegrityError:
            return LedgerEntry.objects.get(customer_id=customer_id, tenant_id=tenant_id), False

        logger.info("Ledger entry created for customer %s at tenant %s", customer_id, tenant_id)
        return entry, True

    @classmethod
    def lock(cls, customer_id: int, tenant_id: int) -> LedgerEntry:
        """
        Lock the pair's row until the current transaction ends.

        Serializes reward evaluation for one (customer, tenant); other
        customers and tenants are never blocked.
        """
        try:
            return LedgerEntry.objects.select_for_update().get(
                customer_id=customer_id, tenant_id=tenant_id
            )
        except LedgerEntry.DoesNotExist:
            raise NotFoundError(
                "LEDGER_NOT_FOUND", customer_id=customer_id, tenant_id=tenant_id
            )

    @classmethod
    def apply_delta(
        cls,
        customer_id: int,
        tenant_id: int,
        delta: int,
        visit_increment: bool = False,
        *,
        entry_type: str,
        operator_id: str = "",
        approver_id: str = "",
        note: str = "",
        branch_id: int | None = None,
        reward_code=None,
        allow_overdraft: bool | None = None,
    ) -> LedgerEntry:
        """
        Atomically add ``delta`` to the balance and record it.

        ``lifetime_points`` only grows (positive deltas). ``visit_increment``
        bumps the visit counter and timestamps regardless of the delta sign.

        Args:
            delta: Signed points change
            visit_increment: Count this mutation as a visit
            entry_type: AuditEntryType of the audit record
            allow_overdraft: Override POINTSMAN["ALLOW_OVERDRAFT"]

        Returns:
            The entry as persisted after the update

        Raises:
            ValidationError: delta is zero and nothing else changes
            NotFoundError: No entry for the pair
            StateError: Entry inactive, or balance would go negative
            TransientError: Storage unavailable or timed out
        """
        if delta == 0 and not visit_increment:
            raise ValidationError("INVALID_POINTS", delta=delta)

        if allow_overdraft is None:
            allow_overdraft = pointsman_settings.ALLOW_OVERDRAFT

        now = timezone.now()
        updates = {
            "total_points": F("total_points") + delta,
            "updated_at": now,
        }
        if delta > 0:
            updates["lifetime_points"] = F("lifetime_points") + delta
        if visit_increment:
            updates["visits_count"] = F("visits_count") + 1
            updates["last_visit_at"] = now
            updates["first_visit_at"] = Coalesce(
                F("first_visit_at"), Value(now, output_field=DateTimeField())
            )
        if branch_id:
            updates["branch_id"] = branch_id

        with atomic_with_timeout():
            qs = LedgerEntry.objects.filter(
                customer_id=customer_id, tenant_id=tenant_id, is_active=True
            )
            if delta < 0 and not allow_overdraft:
                qs = qs.filter(total_points__gte=-delta)

            if not qs.update(**updates):
                cls._raise_rejected(customer_id, tenant_id, delta)

            entry = LedgerEntry.objects.get(customer_id=customer_id, tenant_id=tenant_id)
            AuditLog.append(
                entry_type=entry_type,
                customer_id=customer_id,
                tenant_id=tenant_id,
                points_delta=delta,
                balance_after=entry.total_points,
                branch_id=branch_id,
                reward_code=reward_code,
                operator_id=operator_id,
                approver_id=approver_id,
                note=note,
            )

        logger.info(
            "Ledger %s/%s %+d (%s) -> %d",
            customer_id,
            tenant_id,
            delta,
            entry_type,
            entry.total_points,
        )
        return entry

    @classmethod
    def _raise_rejected(cls, customer_id: int, tenant_id: int, delta: int):
        """Explain why the conditional UPDATE matched no row."""
        entry = LedgerEntry.objects.filter(customer_id=customer_id, tenant_id=tenant_id).first()
        if entry is None:
            raise NotFoundError(
                "LEDGER_NOT_FOUND", customer_id=customer_id, tenant_id=tenant_id
            )
        if not entry.is_active:
            raise StateError("LEDGER_INACTIVE", customer_id=customer_id, tenant_id=tenant_id)
        raise StateError(
            "INSUFFICIENT_POINTS",
            balance=entry.total_points,
            requested=-delta,
        )

    @classmethod
    def balances_for_customer(cls, customer_id: int, active_only: bool = True) -> list[LedgerEntry]:
        """Every tenant balance of a customer, ordered by tenant name."""
        qs = LedgerEntry.objects.filter(customer_id=customer_id).select_related("tenant")
        if active_only:
            qs = qs.filter(is_active=True, tenant__is_active=True)
        return list(qs.order_by("tenant__name"))

    @classmethod
    def reconcile(cls, customer_id: int, tenant_id: int) -> ReconciliationResult:
        """Compare the balance movement with the audit trail."""
        entry = cls.get(customer_id, tenant_id)
        result = ReconciliationResult(
            customer_id=customer_id,
            tenant_id=tenant_id,
            total_points=entry.total_points,
            opening_balance=entry.opening_balance,
            audit_total=AuditLog.total_delta(customer_id, tenant_id),
        )
        if not result.consistent:
            logger.error(
                "Ledger %s/%s out of balance by %d",
                customer_id,
                tenant_id,
                result.difference,
            )
        return result

    @classmethod
    def deactivate(cls, customer_id: int, tenant_id: int) -> LedgerEntry:
        """Deactivate the entry. Entries are never deleted."""
        with transaction.atomic():
            entry = cls.lock(customer_id, tenant_id)
            if entry.is_active:
                entry.is_active = False
                entry.save(update_fields=["is_active", "updated_at"])
                logger.info("Ledger %s/%s deactivated", customer_id, tenant_id)
        return entry
