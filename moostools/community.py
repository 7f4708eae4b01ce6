"""Database communities: saved layouts and the per-community scope pane."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Protocol

from moostools.dbimage import DBImage
from moostools.messages import Message, chomp

DEFAULT_NAME = "Unnamed"
DEFAULT_HOST = "LOCALHOST"
DEFAULT_PORT = 9000
DEFAULT_LAYOUT = "Unnamed:9000@LOCALHOST"

# The process table is refreshed once for every this many variable fetches.
_PROC_SUMMARY_EVERY = 5

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


@dataclass
class CommunityConfig:
    """Where the database of one named community can be reached."""

    name: str = DEFAULT_NAME
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST


def parse_communities(text: str) -> list[CommunityConfig]:
    """Read a saved layout of ``name:port@host`` entries separated by commas.

    Entries without a host or with a port that is not positive are skipped.
    When nothing usable remains, a single default community is returned.
    """
    configs = []
    rest = text
    while rest:
        chunk, rest = chomp(rest, ",")
        name, chunk = chomp(chunk, ":")
        port_text, host = chomp(chunk, "@")
        port = _atoi(port_text)
        if host and port > 0:
            configs.append(CommunityConfig(name=name, port=port, host=host))
    if not configs:
        configs.append(CommunityConfig())
    return configs


def format_communities(configs: Iterable[CommunityConfig]) -> str:
    """Write communities in the layout format read by :func:`parse_communities`."""
    return "".join(f"{c.name}:{c.port}@{c.host}," for c in configs)


class _Client(Protocol):
    def is_connected(self) -> bool: ...

    def server_request(self, what: str) -> list[Message]: ...


class ScopePane:
    """State behind the view of one community's database.

    ``client`` answers server requests such as ``ALL`` (every variable) and
    ``PROC_SUMMARY`` (what each process subscribes to and publishes).
    """

    def __init__(
        self,
        client: _Client | None = None,
        name: str = DEFAULT_NAME,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
    ) -> None:
        self.client = client
        self.name = name
        self.host = host
        self.port = port
        self.image = DBImage()
        self.show: dict[str, bool] = {}
        self._counts = 0

    @property
    def config(self) -> CommunityConfig:
        """The community this pane looks at."""
        return CommunityConfig(name=self.name, port=self.port, host=self.host)

    def _apply_mask(self) -> None:
        self.image.clear()
        self.image.set_mask(self.mask())

    def toggle_visibility(self, process: str) -> bool:
        """Show or hide the variables written by ``process``; return whether shown.

        The database image is cleared so that it refills under the new mask.
        """
        if process in self.show:
            self.show[process] = not self.show[process]
        else:
            self.show[process] = True
        self._apply_mask()
        return self.show[process]

    def mask(self) -> set[str]:
        """Processes whose variables are hidden."""
        return {name for name, shown in self.show.items() if not shown}

    def set_show_pending(self, flag: bool) -> None:
        """Choose whether variables never yet written are listed."""
        self._apply_mask()
        self.image.show_pending(flag)

    def fetch_once(self) -> bool:
        """Fetch one round of data from the database; False when not connected.

        Every fifth round also refreshes the process summary.
        """
        if self.client is None or not self.client.is_connected():
            return False
        count = self._counts
        self._counts += 1
        if count % _PROC_SUMMARY_EVERY == 0:
            self.image.set_proc_info(self.client.server_request("PROC_SUMMARY"))
            for process in self.image.processes():
                self.show.setdefault(process, True)
        self.image.update(self.client.server_request("ALL"))
        return True

    def title(self) -> str:
        """Summary line of how many processes and variables are known."""
        return f"{len(self.image.processes())} Processes {len(self.image)} Variables"