"""Small shared helpers."""

import re

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(value: str) -> str:
    """
    Reduce a phone number or messaging JID to its digits.

    ``"584121234567@s.whatsapp.net"`` and ``"+58 412-123-4567"`` both
    become ``"584121234567"``.
    """
    if not value:
        return ""
    return _NON_DIGITS.sub("", value.split("@", 1)[0])
