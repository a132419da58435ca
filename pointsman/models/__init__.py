"""Pointsman models.

Identity:     Customer, Tenant, Branch, Challenge, Approver
Ledger:       LedgerEntry, AuditEntry
Rewards:      RewardSettings, RewardCode, Redemption
Side channel: Notification, OutboundMessage
Dedup:        ProcessedEvent
"""

from pointsman.models.customer import Customer
from pointsman.models.tenant import Branch, Challenge, Tenant
from pointsman.models.approver import Approver
from pointsman.models.ledger import LedgerEntry
from pointsman.models.reward import (
    Redemption,
    RewardCode,
    RewardSettings,
    RewardStatus,
)
from pointsman.models.audit import AuditEntry, AuditEntryType
from pointsman.models.notification import (
    DeliveryStatus,
    Notification,
    NotificationPriority,
    NotificationType,
    OutboundMessage,
)
from pointsman.models.processed_event import ProcessedEvent

__all__ = [
    # Identity
    "Customer",
    "Tenant",
    "Branch",
    "Challenge",
    "Approver",
    # Ledger
    "LedgerEntry",
    "AuditEntry",
    "AuditEntryType",
    # Rewards
    "RewardSettings",
    "RewardCode",
    "RewardStatus",
    "Redemption",
    # Side channel
    "Notification",
    "NotificationType",
    "NotificationPriority",
    "OutboundMessage",
    "DeliveryStatus",
    # Dedup
    "ProcessedEvent",
]
