"""
Notification dispatcher - merchant feed and customer message outbox.

Everything here is best-effort. Callers schedule dispatch with
``transaction.on_commit(..., robust=True)`` so nothing is announced for
work that rolled back, and every public entry point catches and logs
its own failures: a dispatch problem never reaches the ledger.

Customer messages go through the OutboundMessage outbox. ``send_message``
attempts delivery immediately; failed attempts are retried by
``deliver_pending`` (management command ``pointsman_deliver_messages``)
with exponential backoff until ``DELIVERY_MAX_ATTEMPTS``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from django.db.models import Q
from django.utils import timezone

from pointsman import messages
from pointsman.conf import load_backend, pointsman_settings
from pointsman.models import (
    DeliveryStatus,
    Notification,
    NotificationPriority,
    NotificationType,
    OutboundMessage,
)

logger = logging.getLogger(__name__)


@dataclass
class DeliveryReport:
    """Outcome of one ``deliver_pending`` run."""

    sent: int = 0
    retried: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.sent + self.retried + self.failed


class NotificationDispatcher:
    """
    Best-effort side channel.

    ``notify`` and ``send_message`` return None instead of raising.
    """

    # ======================================================================
    # Primitives
    # ======================================================================

    @classmethod
    def notify(
        cls,
        tenant_id: int,
        type: str,
        title: str,
        message: str,
        customer_id: int | None = None,
        metadata: dict | None = None,
        priority: str = NotificationPriority.NORMAL,
    ) -> Notification | None:
        """Add an entry to the tenant's activity feed."""
        try:
            return Notification.objects.create(
                tenant_id=tenant_id,
                customer_id=customer_id,
                type=type,
                title=title[:200],
                message=message,
                metadata=metadata or {},
                priority=priority,
            )
        except Exception:
            logger.exception("Failed to create %s notification for tenant %s", type, tenant_id)
            return None

    @classmethod
    def send_message(cls, phone: str, body: str, reference: str = "") -> OutboundMessage | None:
        """Queue a customer message and try to deliver it right away."""
        try:
            outbound = OutboundMessage.objects.create(
                phone=phone,
                body=body,
                reference=reference[:100],
            )
        except Exception:
            logger.exception("Failed to queue message for %s", phone)
            return None

        cls.deliver(outbound)
        return outbound

    @classmethod
    def deliver(cls, outbound: OutboundMessage, now: datetime | None = None) -> bool:
        """
        One delivery attempt.

        On failure the message is rescheduled ``DELIVERY_BACKOFF_SECONDS *
        2 ** (attempts - 1)`` later, or marked failed once the attempt
        budget is spent. Returns True when the message was sent.
        """
        now = now or timezone.now()
        outbound.attempts += 1
        try:
            sender = load_backend("MESSAGE_SENDER")
            sender.send_text(outbound.phone, outbound.body)
        except Exception as exc:
            outbound.last_error = f"{type(exc).__name__}: {exc}"[:1000]
            if outbound.attempts >= pointsman_settings.DELIVERY_MAX_ATTEMPTS:
                outbound.status = DeliveryStatus.FAILED
                outbound.next_attempt_at = None
                logger.error(
                    "Message %s to %s failed after %d attempts: %s",
                    outbound.pk,
                    outbound.phone,
                    outbound.attempts,
                    exc,
                )
            else:
                delay = pointsman_settings.DELIVERY_BACKOFF_SECONDS * 2 ** (outbound.attempts - 1)
                outbound.next_attempt_at = now + timedelta(seconds=delay)
                logger.warning(
                    "Message %s to %s failed (attempt %d), retry in %ss: %s",
                    outbound.pk,
                    outbound.phone,
                    outbound.attempts,
                    delay,
                    exc,
                )
            sent = False
        else:
            outbound.status = DeliveryStatus.SENT
            outbound.sent_at = now
            outbound.next_attempt_at = None
            outbound.last_error = ""
            sent = True

        try:
            outbound.save(
                update_fields=["attempts", "status", "next_attempt_at", "last_error", "sent_at"]
            )
        except Exception:
            logger.exception("Failed to record delivery state of message %s", outbound.pk)
        return sent

    @classmethod
    def deliver_pending(cls, now: datetime | None = None, limit: int = 100) -> DeliveryReport:
        """Retry every pending message whose backoff has elapsed."""
        now = now or timezone.now()
        report = DeliveryReport()
        due = (
            OutboundMessage.objects.filter(status=DeliveryStatus.PENDING)
            .filter(Q(next_attempt_at__isnull=True) | Q(next_attempt_at__lte=now))
            .order_by("created_at")[:limit]
        )
        for outbound in due:
            if cls.deliver(outbound, now=now):
                report.sent += 1
            elif outbound.status == DeliveryStatus.FAILED:
                report.failed += 1
                report.errors.append(f"{outbound.pk}: {outbound.last_error}")
            else:
                report.retried += 1
        if report.processed:
            logger.info(
                "Delivered %d, rescheduled %d, failed %d message(s)",
                report.sent,
                report.retried,
                report.failed,
            )
        return report

    # ======================================================================
    # Domain events
    # ======================================================================

    @classmethod
    def check_in(cls, entry, customer, tenant, branch_name: str, new_customer: bool) -> None:
        """Feed entries for a check-in (and a first-time customer)."""
        cls.notify(
            tenant.pk,
            NotificationType.CHECKIN,
            "Nuevo check-in",
            f"{customer.name} ha hecho check-in en {branch_name or tenant.name}",
            customer_id=customer.pk,
            metadata={
                "branch": branch_name,
                "total_points": entry.total_points,
                "visits_count": entry.visits_count,
            },
        )
        if new_customer:
            cls.notify(
                tenant.pk,
                NotificationType.NEW_CUSTOMER,
                "¡Nuevo cliente!",
                f"{customer.name} se ha registrado por primera vez",
                customer_id=customer.pk,
                metadata={"phone": customer.phone},
                priority=NotificationPriority.HIGH,
            )

    @classmethod
    def points_assigned(cls, entry, points: int, operator_id: str = "") -> None:
        """Feed entry plus customer message for a point-of-sale award."""
        customer = entry.customer
        tenant = entry.tenant
        cls.notify(
            tenant.pk,
            NotificationType.POINTS_ASSIGNED,
            "Puntos asignados",
            f"Se asignaron {points} puntos a {customer.name}",
            customer_id=customer.pk,
            metadata={
                "points": points,
                "total_points": entry.total_points,
                "operator_id": operator_id,
            },
        )
        if customer.is_active and customer.opt_in_marketing:
            cls.send_message(
                customer.phone,
                messages.points_assigned_text(tenant.name, points, entry.total_points),
                reference=f"points:{entry.pk}",
            )

    @classmethod
    def reward_issued(cls, reward_code) -> None:
        """Feed entry plus the code itself to the customer."""
        customer = reward_code.customer
        cls.notify(
            reward_code.tenant_id,
            NotificationType.REWARD_ISSUED,
            "🎁 ¡Gift Card Generada!",
            f"Se generó la gift card {reward_code.code} de ${reward_code.value} "
            f"para {customer.name} ({reward_code.points_consumed} puntos)",
            customer_id=customer.pk,
            metadata={
                "code": reward_code.code,
                "value": str(reward_code.value),
                "expires_at": reward_code.expires_at.isoformat(),
            },
            priority=NotificationPriority.HIGH,
        )
        if customer.is_active:
            cls.send_message(
                customer.phone,
                messages.reward_issued_text(
                    reward_code.code,
                    reward_code.value,
                    reward_code.points_consumed,
                    reward_code.expires_at,
                ),
                reference=f"reward:{reward_code.code}",
            )

    @classmethod
    def reward_redeemed(cls, reward_code, redemption) -> None:
        customer = reward_code.customer
        cls.notify(
            reward_code.tenant_id,
            NotificationType.REWARD_REDEEMED,
            "Gift card canjeada",
            f"{customer.name} canjeó la gift card {reward_code.code} por ${reward_code.value}",
            customer_id=customer.pk,
            metadata={
                "code": reward_code.code,
                "operator_id": redemption.operator_id,
                "approver_id": redemption.approver_id,
            },
        )
        if customer.is_active:
            cls.send_message(
                customer.phone,
                messages.reward_redeemed_text(reward_code.code, reward_code.value),
                reference=f"redeem:{reward_code.code}",
            )
