"""Data models for portman."""

import socket
from dataclasses import dataclass
from enum import Enum


class Protocol(str, Enum):
    """Transport protocol of a socket, split by address family."""

    TCP = "TCP"
    TCP6 = "TCP6"
    UDP = "UDP"
    UDP6 = "UDP6"

    def __str__(self) -> str:
        return self.value

    @property
    def is_tcp(self) -> bool:
        """True for TCP over either address family."""
        return self.value.startswith("TCP")

    @property
    def is_udp(self) -> bool:
        """True for UDP over either address family."""
        return self.value.startswith("UDP")


STATUS_LISTEN = "LISTEN"
STATUS_ESTABLISHED = "ESTABLISHED"
STATUS_ACTIVE = "ACTIVE"  # synthesized for connectionless sockets
STATUS_CLOSED = "CLOSED"

REMOTE_PLACEHOLDER = "*:*"

_PROTOCOLS: dict[tuple[int, int], Protocol] = {
    (socket.AF_INET, socket.SOCK_STREAM): Protocol.TCP,
    (socket.AF_INET6, socket.SOCK_STREAM): Protocol.TCP6,
    (socket.AF_INET, socket.SOCK_DGRAM): Protocol.UDP,
    (socket.AF_INET6, socket.SOCK_DGRAM): Protocol.UDP6,
}


def classify_protocol(family: int, socket_type: int) -> Protocol | None:
    """Map an address family and socket type onto a Protocol, or None if unknown."""
    return _PROTOCOLS.get((int(family), int(socket_type)))


def format_address(ip: str | None, port: int | None) -> str:
    """Format an ``ip:port`` pair, bracketing IPv6 hosts."""
    if not ip:
        return REMOTE_PLACEHOLDER
    if ":" in ip:
        return f"[{ip}]:{port or 0}"
    return f"{ip}:{port or 0}"


@dataclass(slots=True, frozen=True)
class ConnectionRecord:
    """One open socket as reported by a connection source."""

    pid: int
    family: int
    socket_type: int
    local_ip: str
    local_port: int
    remote_ip: str
    remote_port: int
    status: str  # '' or 'NONE' for connectionless sockets


@dataclass(slots=True, frozen=True)
class ProcessInfo:
    """Metadata for the process owning a socket."""

    name: str


@dataclass(slots=True, frozen=True)
class Process:
    """Immutable view of one socket attributed to its owning process."""

    pid: int
    name: str  # '' when the name is unknown
    port: int
    protocol: Protocol
    status: str  # 'LISTEN', 'ESTABLISHED', 'ACTIVE', 'CLOSED', etc.
    local_addr: str
    remote_addr: str = REMOTE_PLACEHOLDER

    @property
    def display_name(self) -> str:
        return self.name or "process"

    def cells(self) -> tuple[str, ...]:
        """Row cells in table column order."""
        return (
            str(self.pid),
            str(self.protocol),
            str(self.port),
            self.status,
            self.local_addr,
            self.remote_addr,
            self.name,
        )
