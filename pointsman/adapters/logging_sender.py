"""Default MessageSender: writes messages to the log instead of a gateway."""

from __future__ import annotations

import logging

logger = logging.getLogger("pointsman.outbound")


class LoggingMessageSender:
    """Adapter: logs outbound messages. For development and tests."""

    def send_text(self, phone: str, message: str) -> None:
        logger.info("Outbound message to %s: %s", phone, message)
