"""A local, thread-safe image of the variables and processes of a MOOS database."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable

from moostools.messages import DataType, Message, chomp


class VarType(Enum):
    """The kind of value a database variable holds, with its one-letter code."""

    STR = "$"
    DBL = "D"
    BIN = "B"
    UNKNOWN = "?"


_TYPE_OF = {
    DataType.STRING: VarType.STR,
    DataType.DOUBLE: VarType.DBL,
    DataType.BINARY_STRING: VarType.BIN,
}


@dataclass
class DBVariable:
    """One row of the database image."""

    name: str = ""
    time: float = -1.0
    text: str = ""
    var_type: VarType = VarType.UNKNOWN
    community: str = ""
    frequency: str = ""
    source: str = ""
    changed: bool = False

    @classmethod
    def from_message(cls, message: Message) -> DBVariable:
        """Build a variable from a database message."""
        return cls(
            name=message.key,
            time=message.time,
            text=message.as_string(),
            var_type=_TYPE_OF.get(message.data_type, VarType.UNKNOWN),
            community=message.community,
            frequency=f"{message.frequency:.1f}",
            source=message.source,
            changed=False,
        )

    def time_text(self) -> str:
        """The time stamp with millisecond resolution."""
        return f"{self.time:.3f}"

    def value(self) -> str:
        """The value as text, empty when its type is unknown."""
        return "" if self.var_type is VarType.UNKNOWN else self.text

    def type_code(self) -> str:
        """One-letter code of the variable's type."""
        return self.var_type.value


@dataclass
class ProcessInfo:
    """What a connected process subscribes to and publishes."""

    name: str = ""
    published: list[str] = field(default_factory=list)
    subscribed: list[str] = field(default_factory=list)


def _split_names(text: str) -> list[str]:
    # Newest first, matching the order in which the summary is accumulated.
    return [name for name in reversed(text.split(",")) if name]


class DBImage:
    """Keeps the latest value of every database variable, in arrival order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: list[DBVariable] = []
        self._index: dict[str, int] = {}
        self._mask: set[str] = set()
        self._show_pending = False
        self._processes: dict[str, ProcessInfo] = {}
        self.client_count = 0

    def update(self, messages: Iterable[Message]) -> None:
        """Merge a batch of variable messages into the image."""
        with self._lock:
            for message in messages:
                if message.source in self._mask:
                    continue
                if message.data_type is DataType.NOT_SET and not self._show_pending:
                    continue
                position = self._index.get(message.key)
                variable = DBVariable.from_message(message)
                if position is None:
                    self._index[message.key] = len(self._data)
                    self._data.append(variable)
                else:
                    variable.changed = message.time != self._data[position].time
                    self._data[position] = variable

    def get(self, index: int) -> DBVariable:
        """Return a copy of the variable at ``index``; raise IndexError if absent."""
        with self._lock:
            if not 0 <= index < len(self._data):
                raise IndexError(f"no variable at row {index}")
            return replace(self._data[index])

    def has_changed(self, index: int) -> bool:
        """Whether the variable at ``index`` changed on its latest update."""
        if not 0 <= index < len(self._data):
            return False
        return self._data[index].changed

    def set_proc_info(self, messages: Iterable[Message]) -> None:
        """Replace the process table from a process summary."""
        messages = list(messages)
        with self._lock:
            self.client_count = len(messages)
            self._processes.clear()
            for message in messages:
                text = message.text
                if isinstance(text, bytes):
                    text = text.decode(errors="replace")
                who, rest = chomp(text, ":")
                info = self._processes.setdefault(who, ProcessInfo(name=who))
                subscribed, published = chomp(rest, "PUBLISHED=")
                _, subscribed = chomp(subscribed, "SUBSCRIBED=")
                info.subscribed[:0] = _split_names(subscribed)
                info.published[:0] = _split_names(published)

    def proc_info(self, name: str) -> ProcessInfo:
        """Return a copy of what ``name`` subscribes to and publishes."""
        with self._lock:
            info = self._processes.get(name)
            if info is None:
                raise KeyError(name)
            return ProcessInfo(info.name, list(info.published), list(info.subscribed))

    def processes(self) -> list[str]:
        """Names of all known processes, sorted."""
        with self._lock:
            return sorted(self._processes)

    def set_mask(self, mask: Iterable[str]) -> None:
        """Ignore future updates from the given sources."""
        self._mask = set(mask)

    def show_pending(self, flag: bool) -> None:
        """Choose whether variables that were never written are shown."""
        self._show_pending = bool(flag)

    def clear(self) -> None:
        """Forget every variable."""
        with self._lock:
            self._data.clear()
            self._index.clear()

    def __len__(self) -> int:
        return len(self._data)