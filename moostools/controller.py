"""Controls the replay of an alog file onto a MOOS database."""

from __future__ import annotations

import argparse
import sys
import time
from datetime import datetime, tzinfo
from enum import Enum
from os import PathLike
from typing import Callable, Iterable, Mapping, Protocol

from moostools.messages import Message
from moostools.playback_v2 import AlogPlayback

DEFAULT_HOST = "LOCALHOST"
DEFAULT_PORT = 9000
DEFAULT_TIMER_INTERVAL = 0.01
CHOKE_KEY = "PLAYBACK_CHOKE"
# Progress is refreshed once for every this many ticks.
_PROGRESS_EVERY = 25


class Mode(Enum):
    """Whether the log is being played."""

    PLAYING = "playing"
    STOPPED = "stopped"


class _Client(Protocol):
    def is_connected(self) -> bool: ...

    def fetch(self) -> list[Message]: ...

    def post(self, message: Message) -> None: ...


class PlaybackController:
    """The state behind a playback panel: file, sources, speed and position.

    ``tick`` is to be called every ``timer_interval`` seconds while playing;
    each call plays the slice of the log that falls in one tick and posts it
    to ``client`` when that is connected.
    """

    def __init__(
        self,
        client: _Client | None = None,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timer_interval: float = DEFAULT_TIMER_INTERVAL,
        clock: Callable[[], float] = time.time,
        tz: tzinfo | None = None,
    ) -> None:
        self.client = client
        self.host = host
        self.port = port
        self.timer_interval = timer_interval
        self.tz = tz
        self.playback = AlogPlayback(clock=clock)
        self.path = ""
        self.wanted: dict[str, bool] = {}
        self.mode = Mode.STOPPED
        self.seek_time = 0.0
        self.timer_hits = 0
        self.shown_progress = 0.0

    def _connected(self) -> bool:
        return self.client is not None and self.client.is_connected()

    def open(self, path: str | PathLike[str]) -> list[str]:
        """Load the alog at ``path`` and rewind; return its sources, all wanted.

        Raises OSError when the file cannot be read.
        """
        self.playback.open(path)
        self.path = str(path)
        self.wanted = {source: True for source in sorted(self.playback.sources())}
        self.playback.reset()
        self.shown_progress = self.progress()
        return list(self.wanted)

    def _make_message_filter(self) -> None:
        self.playback.clear_filter()
        for source, wanted in self.wanted.items():
            self.playback.filter(source, wanted)

    def play(self) -> None:
        """Start playing from the current position with the chosen sources."""
        self._make_message_filter()
        self.timer_hits = 0
        self.shown_progress = self.progress()
        self.mode = Mode.PLAYING

    def stop(self) -> None:
        """Stop playing, keeping the current position."""
        self.mode = Mode.STOPPED

    def rewind(self) -> bool:
        """Stop and go back to the start of the log."""
        self.stop()
        done = self.playback.reset()
        self.shown_progress = self.progress()
        return done

    def seek(self) -> bool:
        """Stop and move to the seek time chosen with :meth:`set_progress`."""
        self.stop()
        self.playback.reset()
        done = self.playback.goto_time(self.seek_time)
        self.shown_progress = self.progress()
        return done

    def set_progress(self, percent: float) -> bool:
        """Move to ``percent`` of the way through the log and remember it as seek time."""
        start = self.playback.start_time()
        duration = self.playback.finish_time() - start
        when = start + percent / 100.0 * duration
        self.seek_time = when
        return self.playback.goto_time(when)

    def set_warp(self, warp: float) -> None:
        """Play ``warp`` times faster than real time."""
        self.playback.set_tick_interval(warp * self.timer_interval)

    def set_sources(self, wanted: Mapping[str, bool]) -> None:
        """Choose which sources are replayed; takes effect on :meth:`play`."""
        self.wanted.update({source: bool(flag) for source, flag in wanted.items()})

    def on_new_mail(self, messages: Iterable[Message]) -> None:
        """Follow a client that reports how far it has processed the replay."""
        for message in messages:
            if message.key == CHOKE_KEY:
                self.playback.set_last_time_processed(message.value)
                return

    def tick(self) -> list[Message]:
        """Play one tick of the log; return the messages that were due.

        Stops playing once the end of the log has been reached.
        """
        if self._connected():
            self.on_new_mail(self.client.fetch())

        output: list[Message] = []
        if self.playback.eof():
            self.stop()
        else:
            output = self.playback.iterate()
            if self._connected():
                for message in output:
                    self.client.post(message)

        if self.timer_hits % _PROGRESS_EVERY == 0:
            self.shown_progress = self.progress()
        self.timer_hits += 1
        return output

    def progress(self) -> float:
        """Percentage of the log's time span already played."""
        start = self.playback.start_time()
        duration = self.playback.finish_time() - start
        if duration == 0:
            return 0.0
        return 100.0 * (self.playback.last_message_time - start) / duration

    def clock_label(self) -> str:
        """The playback time of day as ``HH:MM.SS``."""
        moment = datetime.fromtimestamp(int(self.playback.last_message_time), tz=self.tz)
        return f"{moment.hour:02d}:{moment.minute:02d}.{moment.second:02d}"

    def title(self, online: bool = False) -> str:
        """Window title naming the database and whether it is reachable."""
        state = "Online" if self._connected() or online else "Offline"
        return f"uPlayback : {self.host}:{self.port} {state}"


class _PrintClient:
    """Writes posted messages to a stream instead of a database."""

    def __init__(self, stream) -> None:
        self.stream = stream

    def is_connected(self) -> bool:
        return True

    def fetch(self) -> list[Message]:
        return []

    def post(self, message: Message) -> None:
        print(f"{message.key} {message.source} {message.as_string()}", file=self.stream)


def main(argv: list[str] | None = None) -> int:
    """Replay an alog file, writing each message to standard output."""
    parser = argparse.ArgumentParser(prog="uplayback", description=main.__doc__)
    parser.add_argument("path", help="alog file to replay")
    parser.add_argument("--warp", type=float, default=1.0, help="playback speed factor")
    parser.add_argument(
        "--exclude", action="append", default=[], help="source not to replay"
    )
    parser.add_argument("--seek", type=float, default=None, help="percent to start at")
    parser.add_argument("--fast", action="store_true", help="do not wait between ticks")
    args = parser.parse_args(argv)

    controller = PlaybackController(client=_PrintClient(sys.stdout))
    try:
        controller.open(args.path)
    except OSError as error:
        print(f"Failed to initialise playback: {error}", file=sys.stderr)
        return 1
    controller.set_warp(args.warp)
    controller.set_sources({source: False for source in args.exclude})
    if args.seek is not None:
        controller.set_progress(args.seek)
        controller.seek()
    controller.play()
    while controller.mode is Mode.PLAYING:
        controller.tick()
        if not args.fast:
            time.sleep(controller.timer_interval)
    return 0