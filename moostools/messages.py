"""Messages exchanged with a MOOS database, and string helpers used to parse them."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class DataType(Enum):
    """The kind of payload a message carries."""

    DOUBLE = "D"
    STRING = "S"
    BINARY_STRING = "B"
    NOT_SET = "?"


@dataclass
class Message:
    """A single notification: a named value with its timing and provenance."""

    key: str
    data_type: DataType = DataType.NOT_SET
    value: float = 0.0
    text: str | bytes = ""
    time: float = -1.0
    source: str = ""
    community: str = ""
    frequency: float = 0.0

    def as_string(self) -> str:
        """Render the payload as text, the way a database viewer shows it."""
        if self.time == -1:
            return "NotSet"
        if self.data_type is DataType.DOUBLE:
            return f"{self.value:.5f}"
        if self.data_type is DataType.BINARY_STRING:
            return f"binary string of {len(self.text)} bytes"
        if self.data_type is DataType.STRING:
            text = self.text
            return text.decode(errors="replace") if isinstance(text, bytes) else text
        return ""


def chomp(text: str, separator: str) -> tuple[str, str]:
    """Split ``text`` at the first ``separator``.

    Returns the part before the separator and the part after it. When the
    separator does not occur, the whole text is the head and the rest is empty.
    """
    head, found, rest = text.partition(separator)
    if not found:
        return text, ""
    return head, rest


def is_numeric(text: str) -> bool:
    """Tell whether ``text``, ignoring surrounding white space, is a decimal number."""
    stripped = text.strip()
    if not stripped:
        return False
    return _NUMBER.fullmatch(stripped) is not None