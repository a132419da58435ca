"""
Django Pointsman - Loyalty points ledger and reward automation.

Usage:
    from pointsman import PointsService, RedemptionService, EventRouter
    from pointsman.gates import Gates, GateError, GateResult

    result = PointsService.award(customer_id, tenant_id, 25, "cashier-1", pin)
    result.issued_codes  # ["GC-7KQ2-MX9P-H4TW"] once the threshold is crossed

    RedemptionService.redeem_by_code("GC-7KQ2-MX9P-H4TW", tenant_id, "cashier-1", pin)

    # Gates validation
    Gates.webhook_credential(request.headers.get("apikey", ""), api_key)
    Gates.replay_protection("whatsapp:3EB0C767D26A")
"""

_EXPORTS = {
    "PointsService": "pointsman.services.points",
    "RewardEngine": "pointsman.services.rewards",
    "RedemptionService": "pointsman.services.redemption",
    "LedgerService": "pointsman.services.ledger",
    "EventRouter": "pointsman.services.router",
    "Gates": "pointsman.gates",
    "GateError": "pointsman.gates",
    "GateResult": "pointsman.gates",
}


def __getattr__(name):
    module = _EXPORTS.get(name)
    if module is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    from importlib import import_module

    return getattr(import_module(module), name)


__all__ = list(_EXPORTS)
__version__ = "0.1.0"
