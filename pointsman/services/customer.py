"""Customer service - identity resolution for inbound senders.

Customers are keyed by normalized phone. Creation is race-safe: two
concurrent first messages from the same phone resolve to one row.
"""

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from pointsman.exceptions import NotFoundError
from pointsman.models import Customer
from pointsman.signals import customer_created
from pointsman.utils import normalize_phone

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Usuario"


def get(customer_id: int) -> Customer:
    """Get customer by id or raise NotFoundError."""
    try:
        return Customer.objects.get(pk=customer_id)
    except Customer.DoesNotExist:
        raise NotFoundError("CUSTOMER_NOT_FOUND", customer_id=customer_id)


def get_by_phone(phone: str) -> Customer | None:
    """Get customer by phone (any status)."""
    phone_normalized = normalize_phone(phone)
    if not phone_normalized:
        return None
    try:
        return Customer.objects.get(phone=phone_normalized)
    except Customer.DoesNotExist:
        return None


def get_or_create(phone: str, name: str = "") -> tuple[Customer, bool]:
    """
    Resolve the customer behind a sender, creating it on first contact.

    Returns:
        Tuple of (Customer, created: bool)
    """
    phone_normalized = normalize_phone(phone)
    existing = get_by_phone(phone_normalized)
    if existing:
        if name and not existing.name:
            existing.name = name
            existing.save(update_fields=["name", "updated_at"])
        return existing, False

    try:
        with transaction.atomic():
            cust = Customer.objects.create(phone=phone_normalized, name=name or DEFAULT_NAME)
    except IntegrityError:
        # Lost the race against a concurrent first message
        return Customer.objects.get(phone=phone_normalized), False

    transaction.on_commit(
        lambda: customer_created.send(sender=Customer, customer=cust),
        robust=True,
    )
    logger.info("Customer %s created for phone %s", cust.pk, phone_normalized)
    return cust, True


def opt_out(cust: Customer) -> Customer:
    """Deactivate the customer and stop marketing messages. Ledger rows are kept."""
    cust.is_active = False
    cust.opt_in_marketing = False
    cust.opted_out_at = timezone.now()
    cust.save(update_fields=["is_active", "opt_in_marketing", "opted_out_at", "updated_at"])
    logger.info("Customer %s opted out", cust.pk)
    return cust


def reactivate(cust: Customer) -> Customer:
    """Undo an opt-out. Called when an opted-out customer writes again."""
    if cust.is_active:
        return cust
    cust.is_active = True
    cust.opt_in_marketing = True
    cust.opted_out_at = None
    cust.save(update_fields=["is_active", "opt_in_marketing", "opted_out_at", "updated_at"])
    logger.info("Customer %s reactivated", cust.pk)
    return cust
