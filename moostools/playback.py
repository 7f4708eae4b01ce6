"""Replay of a text log file as a timed stream of database messages."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from os import PathLike
from typing import Callable

from moostools.messages import DataType, Message, chomp, is_numeric

_log = logging.getLogger(__name__)

# Seconds a client may fall behind before playback waits for it.
MAX_CHOKE_TIME = 2.0
DEFAULT_TICK = 0.01
_EPSILON = 1e-6

_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _atof(text: str) -> float:
    match = _LEADING_FLOAT.match(text)
    return float(match.group(1)) if match else 0.0


@dataclass
class PlaybackEntry:
    """One logged notification: when, what variable, from whom, and its value."""

    time: float
    what: str
    who: str
    value: float = 0.0
    text: str = ""
    numeric: bool = False

    @property
    def sort_key(self) -> tuple[float, str]:
        """Entries play in time order, ties broken by their text value."""
        return self.time, self.text

    def to_message(self, when: float) -> Message:
        """The message this entry replays as, stamped with ``when``."""
        return Message(
            key=self.what,
            data_type=DataType.DOUBLE if self.numeric else DataType.STRING,
            value=self.value,
            text=self.text,
            time=when,
            source=self.who,
        )


def _parse_entry(line: str, log_start: float) -> PlaybackEntry:
    time_text, rest = chomp(line, " ")
    rest = rest.strip()
    what, rest = chomp(rest, " ")
    rest = rest.strip()
    who, rest = chomp(rest, " ")
    data = rest.strip()
    entry_time = _atof(time_text) + log_start
    if is_numeric(data):
        return PlaybackEntry(entry_time, what, who, value=float(data), numeric=True)
    return PlaybackEntry(entry_time, what, who, text=data, numeric=False)


@dataclass
class LogPlayback:
    """Plays the entries of a whole log file, loaded into memory, tick by tick.

    ``clock`` gives the wall time used to stamp messages and to measure how
    far a client that reports its progress has fallen behind.
    """

    clock: Callable[[], float] = time.time
    entries: list[PlaybackEntry] = field(default_factory=list)
    sources: set[str] = field(default_factory=set)
    source_filter: set[str] = field(default_factory=set)
    path: str = ""
    header: str = ""
    log_start: float = 0.0
    tick_interval: float = DEFAULT_TICK
    last_message_time: float = 0.0
    current_line: int = 0
    last_client_processed: float = -1.0
    client_lag: float = 0.0
    waiting_for_client: bool = False
    eof: bool = True
    _position: int = 0

    def load(self, path: str | PathLike[str]) -> None:
        """Read and sort every entry of the log at ``path``.

        Raises OSError when the file cannot be read.
        """
        with open(path, encoding="utf-8", errors="replace") as stream:
            lines = stream.read().splitlines()

        self.path = str(path)
        self.entries = []
        self.sources = set()
        self.header = ""
        self.log_start = 0.0
        seen_header = False
        for raw in lines:
            if self.log_start == 0.0 and "LOGSTART" in raw:
                _, rest = chomp(raw, "LOGSTART")
                self.log_start = _atof(rest)
                continue
            line = raw.strip()
            if not line or line.startswith("%"):
                continue
            if not seen_header:
                self.header = line
                seen_header = True
                continue
            entry = _parse_entry(line, self.log_start)
            self.entries.append(entry)
            self.sources.add(entry.who)

        self.entries.sort(key=lambda entry: entry.sort_key)
        self._position = 0
        self.eof = False

    def __len__(self) -> int:
        return len(self.entries)

    def start_time(self) -> float:
        """Time of the earliest entry, 0 when there are none."""
        return self.entries[0].time if self.entries else 0.0

    def finish_time(self) -> float:
        """Time of the latest entry, 0 when there are none."""
        return self.entries[-1].time if self.entries else 0.0

    def time_now(self) -> float:
        """Playback time measured from the start of the log."""
        return self.last_message_time - self.log_start

    def reset(self) -> bool:
        """Rewind to the first entry; False when there is nothing to play."""
        if not self.entries:
            return False
        self._position = 0
        self.eof = False
        self.current_line = 0
        self.last_message_time = self.entries[0].time - _EPSILON
        return True

    def set_tick_interval(self, interval: float) -> None:
        """How much log time each call to :meth:`iterate` covers."""
        self.tick_interval = interval

    def filter(self, source: str, wanted: bool) -> None:
        """Play (``wanted``) or suppress messages from ``source``."""
        if wanted:
            self.source_filter.discard(source)
        else:
            self.source_filter.add(source)
            _log.info("Filtering messages from %s", source)

    def clear_filter(self) -> None:
        """Play messages from every source."""
        self.source_filter.clear()

    def iterate(self) -> list[Message]:
        """Advance one tick and return the messages due in it, newest first.

        Returns an empty list once the end of the log has been reached; the
        ``eof`` attribute tells when that happens.
        """
        if self.eof:
            return []

        start = self.last_message_time + _EPSILON
        stop = self.last_message_time + self.tick_interval
        output: list[Message] = []

        while self._position < len(self.entries):
            entry = self.entries[self._position]

            self.client_lag = self.clock() - self.last_client_processed
            if self.last_client_processed != -1 and self.client_lag > MAX_CHOKE_TIME:
                self.waiting_for_client = True
                stop = entry.time
                break
            self.waiting_for_client = False

            if entry.time > stop:
                break
            if entry.time >= start and entry.who not in self.source_filter:
                output.append(entry.to_message(self.clock()))
            self.current_line += 1
            self._position += 1

        output.reverse()
        if self._position >= len(self.entries):
            self.eof = True
            return output

        self.last_message_time = stop
        return output

    def goto_time(self, when: float) -> bool:
        """Move to the first entry later than ``when``; False if there is none."""
        for number, entry in enumerate(self.entries, start=1):
            if entry.time > when:
                self._position = number - 1
                self.current_line = number
                self.eof = False
                self.last_client_processed = -1.0
                self.waiting_for_client = False
                self.last_message_time = entry.time - _EPSILON
                return True
        return False

    def set_last_time_processed(self, when: float) -> None:
        """Record the wall time up to which a client has processed messages."""
        self.last_client_processed = when

    def status(self) -> str:
        """One line saying whether playback is waiting on a slow client."""
        state = (
            "Waiting for Client CATCHUP"
            if self.waiting_for_client
            else "Playing just fine"
        )
        return f"{state} Client Lag {self.client_lag:g}"