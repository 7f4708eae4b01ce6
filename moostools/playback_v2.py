"""Replay of an alog file, read line by line on demand, as database messages."""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, field
from os import PathLike
from typing import BinaryIO, Callable

from moostools.messages import DataType, Message, is_numeric

_log = logging.getLogger(__name__)

# Seconds a client may fall behind before playback waits for it.
MAX_CHOKE_TIME = 2.0
DEFAULT_TICK = 0.01
TIME_KEY = "PLAYBACK_DB_TIME"
TIME_SOURCE = "uPlayback"
BINARY_TAG = "<MOOS_BINARY>"
_EPSILON = 1e-6
_WHITESPACE = " \t"


def _next_token(line: str, position: int) -> tuple[str, int]:
    """The white-space delimited token starting at or after ``position``."""
    length = len(line)
    while position < length and line[position] in _WHITESPACE:
        position += 1
    start = position
    while position < length and line[position] not in _WHITESPACE:
        position += 1
    return line[start:position], position


def _leading_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def _field(data: str, name: str) -> str | None:
    """Value of ``name=value`` within a comma separated descriptor."""
    match = re.search(
        rf"(?:^|[,\s>]){re.escape(name)}\s*=\s*([^,]*)", data
    )
    return match.group(1).strip() if match else None


class AlogFile:
    """The data lines of an alog file, indexed so any line can be fetched."""

    def __init__(self, path: str | PathLike[str]) -> None:
        with open(path, "rb") as stream:
            raw = stream.read()
        self.path = str(path)
        self.size = len(raw)
        self._lines: list[str] = []
        self._times: list[float] = []
        self.source_names: set[str] = set()
        for line in raw.decode("utf-8", errors="replace").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("%"):
                continue
            time_text, position = _next_token(line, 0)
            _, position = _next_token(line, position)
            source, _ = _next_token(line, position)
            self._lines.append(line)
            self._times.append(_leading_float(time_text))
            if source:
                self.source_names.add(source)

    def entry_time(self, index: int) -> float:
        """Time stamp of data line ``index``."""
        return self._times[index]

    def line(self, index: int) -> str:
        """The text of data line ``index``."""
        return self._lines[index]

    def seek_time(self, when: float) -> int:
        """Index of the first line at or after ``when``, or -1 if there is none."""
        for index, entry_time in enumerate(self._times):
            if entry_time >= when:
                return index
        return -1

    def __len__(self) -> int:
        return len(self._lines)


@dataclass
class AlogPlayback:
    """Plays an alog file tick by tick, posting the current playback time too.

    ``clock`` gives the wall time used to stamp messages and to measure how
    far a client that reports its progress has fallen behind.
    """

    clock: Callable[[], float] = time.time
    alog: AlogFile | None = None
    path: str = ""
    tick_interval: float = DEFAULT_TICK
    last_message_time: float = 0.0
    current_line: int = 0
    last_client_processed: float = -1.0
    client_lag: float = 0.0
    waiting_for_client: bool = False
    source_filter: set[str] = field(default_factory=set)
    _binary_name: str = ""
    _binary_file: BinaryIO | None = None

    def open(self, path: str | PathLike[str]) -> None:
        """Open the alog at ``path``; raises OSError when it cannot be read."""
        self.close()
        self.current_line = 0
        self.last_client_processed = -1.0
        self.path = str(path)
        self.alog = AlogFile(path)

    def close(self) -> None:
        """Close the log and any binary data file opened for it."""
        self.alog = None
        if self._binary_file is not None:
            self._binary_file.close()
            self._binary_file = None
        self._binary_name = ""

    def __enter__(self) -> AlogPlayback:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def is_open(self) -> bool:
        """Whether a log is loaded."""
        return self.alog is not None

    def sources(self) -> set[str]:
        """Every process that wrote to the log."""
        return set(self.alog.source_names) if self.alog is not None else set()

    def __len__(self) -> int:
        return len(self.alog) if self.alog is not None else 0

    def start_time(self) -> float:
        """Time of the first line, 0 when there is none."""
        if not len(self):
            return 0.0
        return self.alog.entry_time(0)

    def finish_time(self) -> float:
        """Time of the last line, 0 when there is none."""
        if not len(self):
            return 0.0
        return self.alog.entry_time(len(self) - 1)

    def eof(self) -> bool:
        """Whether every line has been played, or there is no log."""
        if self.alog is None:
            return True
        return self.current_line >= len(self.alog)

    def reset(self) -> bool:
        """Rewind to the first line; False when there is nothing to play."""
        if not len(self):
            return False
        self.current_line = 0
        self.last_message_time = self.alog.entry_time(0) - _EPSILON
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

    def is_filtered(self, source: str) -> bool:
        """Whether messages from ``source`` are suppressed."""
        return source in self.source_filter

    def clear_filter(self) -> None:
        """Play messages from every source."""
        self.source_filter.clear()

    def message_from_line(self, line: str) -> Message:
        """Build the message a log line replays as.

        Raises ValueError for a line without data or with a malformed binary
        descriptor, and OSError when the binary data file cannot be read.
        """
        time_text, position = _next_token(line, 0)
        key, position = _next_token(line, position)
        source, position = _next_token(line, position)
        data = line[position:].lstrip(_WHITESPACE)
        if not data:
            raise ValueError(f"log line has no data: {line!r}")

        message = Message(key=key, time=self.clock(), source=source)
        if is_numeric(data):
            message.data_type = DataType.DOUBLE
            message.value = float(data)
            message.text = ""
        elif BINARY_TAG in data:
            message.data_type = DataType.BINARY_STRING
            message.text = self._read_binary(data)
        else:
            message.data_type = DataType.STRING
            message.text = data
        return message

    def _read_binary(self, data: str) -> bytes:
        offset_text = _field(data, "Offset")
        if offset_text is None:
            raise ValueError('badly formed MOOS_BINARY indicator - missing "Offset=xyz"')
        name = _field(data, "File")
        if name is None:
            raise ValueError('badly formed MOOS_BINARY indicator - missing "File=XYZ"')
        bytes_text = _field(data, "Bytes")
        if bytes_text is None:
            raise ValueError('badly formed MOOS_BINARY indicator - missing "Bytes=xyz"')
        try:
            offset = int(offset_text)
            count = int(bytes_text)
        except ValueError as error:
            raise ValueError(f"badly formed MOOS_BINARY indicator: {data!r}") from error

        if name != self._binary_name and self._binary_file is not None:
            self._binary_file.close()
            self._binary_file = None
        self._binary_name = name

        if self._binary_file is None:
            directory = os.path.dirname(self.path)
            full_path = os.path.join(directory, name)
            _log.info("opening binary file %s", full_path)
            self._binary_file = open(full_path, "rb")

        self._binary_file.seek(offset)
        return self._binary_file.read(count)

    def iterate(self) -> list[Message]:
        """Advance one tick and return the messages due in it, newest first.

        When any were due, a ``PLAYBACK_DB_TIME`` message carrying the
        playback time leads the list. Returns an empty list at the end.
        """
        if self.eof():
            return []

        stop = self.last_message_time + self.tick_interval
        output: list[Message] = []

        while not self.eof():
            next_time = self.alog.entry_time(self.current_line)

            self.client_lag = self.clock() - self.last_client_processed
            if self.last_client_processed != -1 and self.client_lag > MAX_CHOKE_TIME:
                self.waiting_for_client = True
                stop = next_time
                break
            self.waiting_for_client = False

            if next_time > stop:
                break
            try:
                message = self.message_from_line(self.alog.line(self.current_line))
            except (ValueError, OSError) as error:
                _log.warning("skipping line %d: %s", self.current_line, error)
            else:
                if not self.is_filtered(message.source):
                    output.append(message)
            self.current_line += 1

        output.reverse()
        if output:
            output.insert(
                0,
                Message(
                    key=TIME_KEY,
                    data_type=DataType.DOUBLE,
                    value=stop,
                    time=self.clock(),
                    source=TIME_SOURCE,
                ),
            )

        self.last_message_time = stop
        return output

    def goto_time(self, when: float) -> bool:
        """Move to the first line at or after ``when``; False if there is none."""
        if self.alog is None:
            return False
        index = self.alog.seek_time(when)
        if index == -1:
            return False
        self.current_line = index
        self.last_client_processed = -1.0
        self.waiting_for_client = False
        self.last_message_time = self.alog.entry_time(index) - _EPSILON
        return True

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