"""Pointsman exceptions."""


class PointsmanError(Exception):
    """
    Structured exception for ledger and reward operations.

    Every error carries a machine-readable ``code``, a human message and
    free-form ``data``. Subclasses partition the codes by failure kind so
    callers can catch what they can handle.

    Usage:
        try:
            RedemptionService.redeem(code_id, operator_id, approver_id)
        except StateError as e:
            if e.code == "REWARD_EXPIRED":
                handle_expired()
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, /, **data):
        self.code = code
        self.message = message or self._lookup_message(code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    @classmethod
    def _lookup_message(cls, code: str) -> str:
        for klass in cls.__mro__:
            messages = klass.__dict__.get("_default_messages", {})
            if code in messages:
                return messages[code]
        return code

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}


class ValidationError(PointsmanError):
    """Malformed input (check-in text, command, envelope, amounts)."""

    _default_messages = {
        "INVALID_POINTS": "Points must be a positive integer",
        "INVALID_ENVELOPE": "Inbound event envelope is malformed",
        "INVALID_CHECKIN": "Check-in text is malformed",
        "INVALID_SETTINGS": "Reward settings are invalid",
    }


class NotFoundError(PointsmanError):
    """Lookup miss for tenant, branch, customer, ledger entry or reward code."""

    _default_messages = {
        "TENANT_NOT_FOUND": "Tenant not found",
        "BRANCH_NOT_FOUND": "Branch not found",
        "CUSTOMER_NOT_FOUND": "Customer not found",
        "LEDGER_NOT_FOUND": "Customer has no ledger entry for this tenant",
        "REWARD_NOT_FOUND": "Reward code not found",
    }


class AuthorizationError(PointsmanError):
    """Invalid approver PIN or webhook credential."""

    _default_messages = {
        "INVALID_APPROVER": "Approver PIN is invalid",
        "INVALID_CREDENTIAL": "Webhook credential is invalid",
    }


class StateError(PointsmanError):
    """Operation not allowed in the current state."""

    _default_messages = {
        "REWARD_NOT_ACTIVE": "Reward code is not active",
        "REWARD_EXPIRED": "Reward code has expired",
        "ACTIVE_CARD_LIMIT": "Maximum active reward codes reached",
        "INSUFFICIENT_POINTS": "Insufficient points",
        "LEDGER_INACTIVE": "Ledger entry is inactive",
    }


class TransientError(PointsmanError):
    """Storage unavailable or timed out. Safe to retry."""

    _default_messages = {
        "STORAGE_UNAVAILABLE": "Storage is unavailable or timed out",
        "CODE_COLLISION": "Could not generate a unique reward code",
    }


class CodeCollisionError(TransientError):
    """Reward code generation exhausted its retry budget."""

    def __init__(self, attempts: int):
        super().__init__("CODE_COLLISION", attempts=attempts)
