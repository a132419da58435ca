"""Pytest fixtures for Pointsman tests."""

from decimal import Decimal

import pytest

from pointsman.models import (
    Approver,
    Branch,
    Challenge,
    Customer,
    LedgerEntry,
    RewardSettings,
    Tenant,
)

APPROVER_PIN = "4321"


@pytest.fixture
def tenant(db):
    """Create the Acme Bakery tenant."""
    return Tenant.objects.create(name="Acme Bakery", address="Av. Principal 10")


@pytest.fixture
def other_tenant(db):
    return Tenant.objects.create(name="Café Central", address="Calle 5")


@pytest.fixture
def branch(db, tenant):
    return Branch.objects.create(tenant=tenant, name="Downtown", address="Centro")


@pytest.fixture
def reward_settings(db, tenant):
    """Explicit settings equal to the documented defaults."""
    return RewardSettings.objects.create(
        tenant=tenant,
        points_required=100,
        card_value=Decimal("5.00"),
        expiration_days=30,
        max_active_cards=5,
    )


@pytest.fixture
def customer(db):
    return Customer.objects.create(phone="584121234567", name="Ana")


@pytest.fixture
def entry(db, customer, tenant):
    """Zero-balance ledger entry for customer at tenant."""
    return LedgerEntry.objects.create(customer=customer, tenant=tenant)


@pytest.fixture
def approver(db, tenant):
    approver = Approver(tenant=tenant, operator_id="maria", name="María")
    approver.set_pin(APPROVER_PIN)
    approver.save()
    return approver


@pytest.fixture
def approver_pin(approver):
    return APPROVER_PIN


@pytest.fixture
def challenge(db, tenant, branch):
    return Challenge.objects.create(
        tenant=tenant,
        branch=branch,
        name="Trae un amigo",
        description="Visítanos con un amigo",
        points=20,
    )


@pytest.fixture
def fund(customer, tenant):
    """Credit points through the ledger so the audit trail stays consistent."""
    from pointsman.models import AuditEntryType
    from pointsman.services.ledger import LedgerService

    def _fund(points, cust=None, tnt=None):
        cust = cust or customer
        tnt = tnt or tenant
        LedgerService.get_or_create(cust.pk, tnt.pk)
        return LedgerService.apply_delta(
            cust.pk,
            tnt.pk,
            points,
            entry_type=AuditEntryType.ADJUSTMENT,
            operator_id="test",
        )

    return _fund


@pytest.fixture
def sent_messages(settings):
    """Route MESSAGE_SENDER to a recorder and return the list of (phone, text)."""
    from pointsman.tests import recorder

    recorder.SENT.clear()
    recorder.FAIL.clear()
    settings.POINTSMAN = {
        **settings.POINTSMAN,
        "MESSAGE_SENDER": "pointsman.tests.recorder.RecordingSender",
    }
    return recorder.SENT


@pytest.fixture
def failing_sender(sent_messages):
    """Make the recording sender raise until cleared."""
    from pointsman.tests import recorder

    recorder.FAIL.append(True)
    yield recorder.FAIL
    recorder.FAIL.clear()
