"""psutil-backed collaborators: socket enumeration, name lookup, termination."""

import logging
from typing import Protocol as Interface

import psutil

from portman.errors import (
    PermissionDenied,
    PollError,
    ProcessLookupFailed,
    ProcessNotFound,
)
from portman.models import ConnectionRecord, ProcessInfo

logger = logging.getLogger(__name__)

# Scope names understood by the connection source, mapped to psutil kinds.
SCOPES: dict[str, str] = {
    "all": "inet",
    "tcp": "tcp",
    "tcp4": "tcp4",
    "tcp6": "tcp6",
    "udp": "udp",
    "udp4": "udp4",
    "udp6": "udp6",
}


class ConnectionSource(Interface):
    def list_connections(self, scope: str = "all") -> list[ConnectionRecord]: ...


class ProcessResolver(Interface):
    def resolve(self, pid: int) -> ProcessInfo: ...


class Terminator(Interface):
    def terminate(self, pid: int) -> None: ...

    def force_kill(self, pid: int) -> None: ...

    def wait(self, pid: int, timeout: float) -> bool: ...


class PsutilConnectionSource:
    """Enumerate inet sockets with psutil.net_connections()."""

    def list_connections(self, scope: str = "all") -> list[ConnectionRecord]:
        try:
            kind = SCOPES[scope]
        except KeyError:
            raise ValueError(f"invalid scope: {scope}") from None

        try:
            connections = psutil.net_connections(kind=kind)
        except psutil.AccessDenied as exc:
            raise PollError(f"access denied listing connections: {exc}") from exc
        except OSError as exc:
            raise PollError(f"listing connections: {exc}") from exc

        records: list[ConnectionRecord] = []
        for conn in connections:
            # Sockets without an owner (or hidden from us) cannot be attributed
            if conn.pid is None:
                continue
            laddr = conn.laddr or None
            raddr = conn.raddr or None
            records.append(
                ConnectionRecord(
                    pid=conn.pid,
                    family=int(conn.family),
                    socket_type=int(conn.type),
                    local_ip=laddr.ip if laddr else "",
                    local_port=laddr.port if laddr else 0,
                    remote_ip=raddr.ip if raddr else "",
                    remote_port=raddr.port if raddr else 0,
                    status=conn.status or "",
                )
            )
        return records


class PsutilProcessResolver:
    """Look up process names with psutil.Process."""

    def resolve(self, pid: int) -> ProcessInfo:
        try:
            return ProcessInfo(name=psutil.Process(pid).name() or "")
        except (psutil.NoSuchProcess, psutil.ZombieProcess) as exc:
            raise ProcessLookupFailed(pid, "process vanished") from exc
        except psutil.AccessDenied as exc:
            raise ProcessLookupFailed(pid, "access denied") from exc


class PsutilTerminator:
    """Send SIGTERM/SIGKILL (or platform equivalents) through psutil."""

    def terminate(self, pid: int) -> None:
        self._signal(pid, graceful=True)

    def force_kill(self, pid: int) -> None:
        self._signal(pid, graceful=False)

    def wait(self, pid: int, timeout: float) -> bool:
        """Wait for the process to exit. Returns True once it is gone."""
        try:
            psutil.Process(pid).wait(timeout=timeout)
        except psutil.TimeoutExpired:
            return False
        except psutil.NoSuchProcess:
            pass
        return True

    def _signal(self, pid: int, graceful: bool) -> None:
        try:
            proc = psutil.Process(pid)
            if graceful:
                proc.terminate()
            else:
                proc.kill()
        except psutil.NoSuchProcess as exc:
            raise ProcessNotFound(pid) from exc
        except psutil.AccessDenied as exc:
            raise PermissionDenied(pid) from exc
        logger.info("sent %s to pid %d", "SIGTERM" if graceful else "SIGKILL", pid)
