"""
Transaction helpers.

Every ledger, reward and redemption write runs inside
``atomic_with_timeout()``: a ``transaction.atomic()`` block whose lock and
statement waits are bounded, and whose storage failures surface as
``TransientError`` instead of hanging or leaking driver exceptions.
"""

import logging
from contextlib import contextmanager

from django.db import DEFAULT_DB_ALIAS, OperationalError, connections, transaction

from pointsman.conf import pointsman_settings
from pointsman.exceptions import TransientError

logger = logging.getLogger(__name__)


def _apply_timeout(using: str) -> None:
    """Bound lock and statement waits for the current transaction (PostgreSQL only)."""
    connection = connections[using]
    if connection.vendor != "postgresql":
        return
    timeout = f"{int(pointsman_settings.STORAGE_TIMEOUT_MS)}ms"
    with connection.cursor() as cursor:
        cursor.execute("SELECT set_config('lock_timeout', %s, true)", [timeout])
        cursor.execute("SELECT set_config('statement_timeout', %s, true)", [timeout])


@contextmanager
def atomic_with_timeout(using: str = DEFAULT_DB_ALIAS):
    """
    ``transaction.atomic()`` with bounded waits.

    Nested use creates savepoints, like ``transaction.atomic()``. Domain
    errors raised inside the block propagate unchanged; ``OperationalError``
    (lock timeout, connection loss, sqlite "database is locked") becomes
    ``TransientError("STORAGE_UNAVAILABLE")``.
    """
    try:
        with transaction.atomic(using=using):
            _apply_timeout(using)
            yield
    except OperationalError as exc:
        logger.warning("Storage operation failed: %s", exc)
        raise TransientError("STORAGE_UNAVAILABLE", detail=str(exc)) from exc
