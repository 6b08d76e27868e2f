"""Structural filters, free-text search and read-time scope options."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum

from portman.models import STATUS_ESTABLISHED, STATUS_LISTEN, Process, Protocol

PROTOCOL_SCOPES: dict[str, frozenset[Protocol]] = {
    "all": frozenset(Protocol),
    "tcp": frozenset({Protocol.TCP, Protocol.TCP6}),
    "tcp4": frozenset({Protocol.TCP}),
    "tcp6": frozenset({Protocol.TCP6}),
    "udp": frozenset({Protocol.UDP, Protocol.UDP6}),
    "udp4": frozenset({Protocol.UDP}),
    "udp6": frozenset({Protocol.UDP6}),
}


class Criterion(Enum):
    """Structural filter criteria that can be toggled from the keyboard."""

    TCP = "tcp"
    UDP = "udp"
    LISTEN = "listen"
    ESTABLISHED = "established"


@dataclass(slots=True, frozen=True)
class FilterState:
    """
    Four structural filter flags.

    Toggling a flag on clears the flags it directly contradicts: TCP and
    UDP exclude each other, as do LISTEN and ESTABLISHED. UDP sockets
    never LISTEN, hence turning UDP-only on also clears LISTEN-only.
    Turning LISTEN-only on leaves UDP-only alone; that combination simply
    matches nothing.
    """

    tcp_only: bool = False
    udp_only: bool = False
    listen_only: bool = False
    established_only: bool = False

    def toggle(self, criterion: Criterion) -> "FilterState":
        """Return the state after toggling one criterion."""
        if criterion is Criterion.TCP:
            if self.tcp_only:
                return replace(self, tcp_only=False)
            return replace(self, tcp_only=True, udp_only=False)
        if criterion is Criterion.UDP:
            if self.udp_only:
                return replace(self, udp_only=False)
            return replace(self, udp_only=True, tcp_only=False, listen_only=False)
        if criterion is Criterion.LISTEN:
            if self.listen_only:
                return replace(self, listen_only=False)
            return replace(self, listen_only=True, established_only=False)
        if self.established_only:
            return replace(self, established_only=False)
        return replace(self, established_only=True, listen_only=False)

    def cleared(self) -> "FilterState":
        """Return the state with every criterion off."""
        return FilterState()

    @property
    def is_active(self) -> bool:
        """True if any criterion is on."""
        return self.tcp_only or self.udp_only or self.listen_only or self.established_only

    def labels(self) -> list[str]:
        """Human readable names of the active criteria."""
        labels = []
        if self.tcp_only:
            labels.append("TCP")
        if self.udp_only:
            labels.append("UDP")
        if self.listen_only:
            labels.append("LISTEN")
        if self.established_only:
            labels.append("ESTABLISHED")
        return labels

    def allows(self, process: Process) -> bool:
        """True if the process satisfies every active criterion."""
        if self.tcp_only and not process.protocol.value.startswith("TCP"):
            return False
        if self.udp_only and not process.protocol.value.startswith("UDP"):
            return False
        status = process.status.upper()
        if self.listen_only and status != STATUS_LISTEN:
            return False
        if self.established_only and status != STATUS_ESTABLISHED:
            return False
        return True


def search_tokens(query: str) -> list[str]:
    """Split a search query into lower-cased whitespace separated tokens."""
    return query.lower().split()


def matches_search(process: Process, tokens: Sequence[str]) -> bool:
    """Every token must occur in at least one searchable field."""
    if not tokens:
        return True
    fields = (
        process.name.lower(),
        str(process.pid),
        process.protocol.value.lower(),
        str(process.port),
        process.status.lower(),
        process.local_addr.lower(),
    )
    return all(any(token in field for field in fields) for token in tokens)


def apply_filters(
    processes: Iterable[Process],
    filter_state: FilterState,
    query: str = "",
) -> list[Process]:
    """Structural filter first, then search. Order is preserved."""
    tokens = search_tokens(query)
    return [
        p for p in processes if filter_state.allows(p) and matches_search(p, tokens)
    ]


@dataclass(slots=True, frozen=True)
class ReadOptions:
    """Scope filters applied when reading from the monitor."""

    protocol: str = "all"
    port: int = 0  # 0 means any port
    name: str = ""  # case-insensitive substring
    listen_only: bool = False

    def __post_init__(self) -> None:
        if self.protocol not in PROTOCOL_SCOPES:
            raise ValueError(f"invalid protocol: {self.protocol}")
        if self.port < 0:
            raise ValueError(f"invalid port: {self.port}")

    @property
    def is_default(self) -> bool:
        """True if these options select every socket."""
        return self == ReadOptions()

    def allows(self, process: Process) -> bool:
        """True if the process is within the protocol, port, name and listen scope."""
        if process.protocol not in PROTOCOL_SCOPES[self.protocol]:
            return False
        if self.port and process.port != self.port:
            return False
        if self.listen_only and process.status != STATUS_LISTEN:
            return False
        if self.name and self.name.lower() not in process.name.lower():
            return False
        return True
