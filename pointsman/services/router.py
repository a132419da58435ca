"""
Event router - turns inbound messages into ledger mutations and replies.

Classification order (first match wins):

    1. check-in        "<tenant> - <branch>" (optionally "...check-in en ...")
    2. keyword         puntos/points, retos/challenges, ayuda/help, stop/baja
    3. structured-info "<tenant> -"
    4. unrecognized    welcome for a new customer, help otherwise

Every processed event records its provider message id. For a check-in
the id is recorded in the same transaction as the ledger mutation, so a
redelivered message is reported as duplicate and never awards twice,
while a rolled-back check-in can be delivered again.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import partial

from django.db import transaction
from django.db.models import Q

from pointsman import messages
from pointsman.db import atomic_with_timeout
from pointsman.exceptions import StateError, TransientError
from pointsman.gates import GateError, Gates
from pointsman.inbound import InboundEvent
from pointsman.models import AuditEntryType, Branch, Challenge, Customer, LedgerEntry, Tenant
from pointsman.services import customer as customer_service
from pointsman.services.ledger import LedgerService
from pointsman.services.notifications import NotificationDispatcher
from pointsman.services.reward_settings import RewardSettingsService
from pointsman.services.rewards import IssueOutcome, RewardEngine
from pointsman.signals import points_assigned
from pointsman.utils import normalize_phone

logger = logging.getLogger(__name__)

CHECKIN_OPERATOR = "whatsapp"

CHECKIN_RE = re.compile(
    r"^(?:.*?check[-\s]?in\s+en\s+)?(.+?)\s*-\s*(.+?)(?:\s*\[BID:\w+\|BRID:\w+\])?$",
    re.IGNORECASE,
)
STRUCTURED_INFO_RE = re.compile(r"^(.+?)\s*-\s*$")


class EventKind(str, Enum):
    CHECK_IN = "check_in"
    BALANCE = "balance"
    CHALLENGES = "challenges"
    HELP = "help"
    OPT_OUT = "opt_out"
    STRUCTURED_INFO = "structured_info"
    UNRECOGNIZED = "unrecognized"


KEYWORDS = {
    "puntos": EventKind.BALANCE,
    "points": EventKind.BALANCE,
    "retos": EventKind.CHALLENGES,
    "challenges": EventKind.CHALLENGES,
    "ayuda": EventKind.HELP,
    "help": EventKind.HELP,
    "stop": EventKind.OPT_OUT,
    "baja": EventKind.OPT_OUT,
}


class RouteStatus(str, Enum):
    PROCESSED = "processed"
    IGNORED = "ignored"
    DUPLICATE = "duplicate"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Classification:
    kind: EventKind
    tenant_name: str = ""
    branch_name: str = ""


@dataclass
class RouteOutcome:
    """What the router did with one event, and what to answer."""

    status: RouteStatus
    kind: EventKind | None = None
    replies: list[str] = field(default_factory=list)
    customer: Customer | None = None
    entry: LedgerEntry | None = None
    rewards: list[IssueOutcome] = field(default_factory=list)
    created_customer: bool = False


def classify(text: str) -> Classification:
    """Classify message text. Check-in wins over keywords."""
    stripped = (text or "").strip()

    match = CHECKIN_RE.match(stripped)
    if match:
        return Classification(
            EventKind.CHECK_IN,
            tenant_name=match.group(1).strip(),
            branch_name=match.group(2).strip(),
        )

    keyword = KEYWORDS.get(stripped.lower())
    if keyword:
        return Classification(keyword)

    match = STRUCTURED_INFO_RE.match(stripped)
    if match:
        return Classification(EventKind.STRUCTURED_INFO, tenant_name=match.group(1).strip())

    return Classification(EventKind.UNRECOGNIZED)


class EventRouter:
    """Inbound event dispatch."""

    @classmethod
    def route(cls, event: InboundEvent) -> RouteOutcome:
        """
        Process one validated inbound event.

        Raises:
            TransientError: Storage failed; nothing was recorded and the
                event can be redelivered
        """
        if not event.should_process() or not event.raw_text.strip():
            logger.debug("Ignoring %s event from %s", event.event_type, event.sender_identity)
            return RouteOutcome(status=RouteStatus.IGNORED)

        classification = classify(event.raw_text)
        logger.info(
            "Inbound %s from %s (%s)",
            classification.kind.value,
            event.sender_identity,
            event.message_id,
        )

        if classification.kind is EventKind.CHECK_IN:
            return cls._check_in(event, classification)
        return cls._command(event, classification)

    # ======================================================================
    # Check-in
    # ======================================================================

    @classmethod
    def _check_in(cls, event: InboundEvent, classification: Classification) -> RouteOutcome:
        phone = normalize_phone(event.sender_identity)
        tenant = Tenant.objects.filter(
            name__iexact=classification.tenant_name, is_active=True
        ).first()

        if tenant is None:
            try:
                customer, created = cls._register(event, phone)
            except GateError:
                return RouteOutcome(status=RouteStatus.DUPLICATE, kind=EventKind.CHECK_IN)
            logger.info("Check-in for unknown tenant %r", classification.tenant_name)
            return RouteOutcome(
                status=RouteStatus.NOT_FOUND,
                kind=EventKind.CHECK_IN,
                replies=[messages.tenant_not_found_text(classification.tenant_name)],
                customer=customer,
                created_customer=created,
            )

        branch = Branch.objects.filter(
            tenant=tenant, name__iexact=classification.branch_name, is_active=True
        ).first()
        branch_id = branch.pk if branch else None
        branch_name = branch.name if branch else classification.branch_name
        points = RewardSettingsService.get(tenant.pk).checkin_points

        try:
            with atomic_with_timeout():
                Gates.replay_protection(event.nonce, event.provider)
                customer, created_customer = customer_service.get_or_create(phone, event.sender_name)
                customer_service.reactivate(customer)
                _, first_visit = LedgerService.get_or_create(customer.pk, tenant.pk, branch_id=branch_id)
                entry = LedgerService.apply_delta(
                    customer.pk,
                    tenant.pk,
                    points,
                    visit_increment=True,
                    entry_type=AuditEntryType.CHECKIN,
                    operator_id=CHECKIN_OPERATOR,
                    branch_id=branch_id,
                    note=f"Check-in {tenant.name} - {branch_name}",
                )
                transaction.on_commit(
                    partial(
                        points_assigned.send,
                        sender=LedgerEntry,
                        entry=entry,
                        delta=points,
                        entry_type=AuditEntryType.CHECKIN,
                    ),
                    robust=True,
                )
                transaction.on_commit(
                    partial(
                        NotificationDispatcher.check_in,
                        entry,
                        customer,
                        tenant,
                        branch_name,
                        created_customer,
                    ),
                    robust=True,
                )
        except GateError:
            logger.info("Duplicate check-in event %s", event.message_id)
            return RouteOutcome(status=RouteStatus.DUPLICATE, kind=EventKind.CHECK_IN)
        except StateError as exc:
            logger.warning("Check-in rejected for %s at %s: %s", phone, tenant.name, exc)
            return RouteOutcome(
                status=RouteStatus.FAILED,
                kind=EventKind.CHECK_IN,
                replies=[messages.checkin_failed_text()],
            )

        outcome = RouteOutcome(
            status=RouteStatus.PROCESSED,
            kind=EventKind.CHECK_IN,
            customer=customer,
            entry=entry,
            created_customer=created_customer,
        )
        outcome.replies.append(
            messages.checkin_text(
                tenant.name,
                branch_name,
                points,
                entry.total_points,
                entry.visits_count,
                first_visit,
            )
        )

        outcome.rewards = cls._evaluate_rewards(customer.pk, tenant.pk)
        if any(o.issued for o in outcome.rewards):
            entry.refresh_from_db()

        if branch is not None:
            teaser = cls._challenge_teaser(tenant, branch)
            if teaser:
                outcome.replies.append(teaser)
        return outcome

    @classmethod
    def _evaluate_rewards(cls, customer_id: int, tenant_id: int) -> list[IssueOutcome]:
        try:
            return RewardEngine.evaluate(customer_id, tenant_id, operator_id=CHECKIN_OPERATOR)
        except TransientError as exc:
            logger.warning(
                "Reward evaluation deferred for customer %s at tenant %s: %s",
                customer_id,
                tenant_id,
                exc,
            )
            return exc.data.get("outcomes", [])

    @classmethod
    def _challenge_teaser(cls, tenant: Tenant, branch: Branch) -> str:
        try:
            challenges = list(
                Challenge.objects.running()
                .filter(tenant=tenant)
                .filter(Q(branch=branch) | Q(branch__isnull=True))
            )
        except Exception:
            logger.exception("Failed to load challenges for branch %s", branch.pk)
            return ""
        if not challenges:
            return ""
        return messages.challenges_teaser_text(tenant.name, challenges)

    # ======================================================================
    # Commands
    # ======================================================================

    @classmethod
    def _register(cls, event: InboundEvent, phone: str) -> tuple[Customer, bool]:
        """
        Record the event nonce and resolve its sender in one transaction.

        Raises:
            GateError: The event was already processed
        """
        with atomic_with_timeout():
            Gates.replay_protection(event.nonce, event.provider)
            return customer_service.get_or_create(phone, event.sender_name)

    @classmethod
    def _command(cls, event: InboundEvent, classification: Classification) -> RouteOutcome:
        phone = normalize_phone(event.sender_identity)
        kind = classification.kind
        try:
            customer, created = cls._register(event, phone)
        except GateError:
            logger.info("Duplicate event %s", event.message_id)
            return RouteOutcome(status=RouteStatus.DUPLICATE, kind=kind)

        if kind is not EventKind.OPT_OUT:
            customer_service.reactivate(customer)

        name = customer.name or customer_service.DEFAULT_NAME
        if kind is EventKind.BALANCE:
            reply = messages.balance_text(name, LedgerService.balances_for_customer(customer.pk))
        elif kind is EventKind.CHALLENGES:
            reply = cls._challenges_reply(customer, name)
        elif kind is EventKind.HELP:
            reply = messages.help_text()
        elif kind is EventKind.OPT_OUT:
            customer_service.opt_out(customer)
            reply = messages.opt_out_text()
        elif created:
            reply = messages.welcome_text(name, customer.phone)
        elif kind is EventKind.STRUCTURED_INFO:
            reply = messages.business_confirmation_text(classification.tenant_name)
        else:
            reply = messages.help_text()

        return RouteOutcome(
            status=RouteStatus.PROCESSED,
            kind=kind,
            replies=[reply],
            customer=customer,
            created_customer=created,
        )

    @classmethod
    def _challenges_reply(cls, customer: Customer, name: str) -> str:
        entries = LedgerService.balances_for_customer(customer.pk)
        if not entries:
            return messages.challenges_no_tenants_text(name)
        groups = [
            (entry.tenant, Challenge.objects.running().filter(tenant=entry.tenant))
            for entry in entries
        ]
        return messages.challenges_text(name, groups)
