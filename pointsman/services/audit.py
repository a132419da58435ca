"""Audit log - append-only record of point deltas and reward state changes."""

import logging

from django.db import connection, transaction
from django.db.models import Sum

from pointsman.models import AuditEntry

logger = logging.getLogger(__name__)


class AuditLog:
    """
    Append-only audit log.

    There is no update or delete API. ``append`` must run inside the
    transaction of the change it records, so a mutation and its audit
    entry commit or roll back together.
    """

    @classmethod
    def append(
        cls,
        *,
        entry_type: str,
        customer_id: int,
        tenant_id: int,
        points_delta: int,
        balance_after: int | None = None,
        branch_id: int | None = None,
        reward_code=None,
        operator_id: str = "",
        approver_id: str = "",
        note: str = "",
    ) -> AuditEntry:
        """
        Record one audit entry.

        Raises:
            TransactionManagementError: If called outside an atomic block
        """
        if not connection.in_atomic_block:
            raise transaction.TransactionManagementError(
                "AuditLog.append() must run inside the transaction it records."
            )

        entry = AuditEntry.objects.create(
            entry_type=entry_type,
            customer_id=customer_id,
            tenant_id=tenant_id,
            branch_id=branch_id,
            points_delta=points_delta,
            balance_after=balance_after,
            related_reward_code=reward_code,
            operator_id=operator_id or "",
            approver_id=approver_id or "",
            note=(note or "")[:255],
        )
        logger.debug(
            "Audit %s %+d for customer %s at tenant %s",
            entry_type,
            points_delta,
            customer_id,
            tenant_id,
        )
        return entry

    @classmethod
    def history(cls, customer_id: int, tenant_id: int, limit: int | None = 50):
        """Most recent entries first."""
        qs = AuditEntry.objects.filter(customer_id=customer_id, tenant_id=tenant_id).select_related(
            "related_reward_code"
        )
        if limit:
            qs = qs[:limit]
        return list(qs)

    @classmethod
    def total_delta(cls, customer_id: int, tenant_id: int) -> int:
        """Sum of every recorded points delta for the pair."""
        result = AuditEntry.objects.filter(customer_id=customer_id, tenant_id=tenant_id).aggregate(
            total=Sum("points_delta")
        )
        return result["total"] or 0
