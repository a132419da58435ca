"""Pointsman services.

Identity:     customer (module functions)
Ledger:       LedgerService, AuditLog, RewardSettingsService
Rewards:      RewardEngine, RedemptionService
Entry points: PointsService (counter), EventRouter (messaging)
Side channel: NotificationDispatcher
"""

from pointsman.services import customer
from pointsman.services.audit import AuditLog
from pointsman.services.ledger import LedgerService, ReconciliationResult
from pointsman.services.reward_settings import RewardPolicy, RewardSettingsService
from pointsman.services.notifications import DeliveryReport, NotificationDispatcher
from pointsman.services.rewards import EligibilitySummary, IssueOutcome, RewardEngine
from pointsman.services.redemption import CodeValidation, RedemptionResult, RedemptionService
from pointsman.services.points import AwardResult, PointsService
from pointsman.services.router import EventKind, EventRouter, RouteOutcome, RouteStatus, classify

__all__ = [
    "customer",
    "AuditLog",
    "LedgerService",
    "ReconciliationResult",
    "RewardSettingsService",
    "RewardPolicy",
    "NotificationDispatcher",
    "DeliveryReport",
    "RewardEngine",
    "IssueOutcome",
    "EligibilitySummary",
    "RedemptionService",
    "RedemptionResult",
    "CodeValidation",
    "PointsService",
    "AwardResult",
    "EventRouter",
    "EventKind",
    "RouteOutcome",
    "RouteStatus",
    "classify",
]
