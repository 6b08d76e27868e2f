"""Socket monitoring engine for portman."""

import logging
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from portman.errors import (
    KillTimeout,
    NoConnectionsFound,
    PollError,
    ProcessLookupFailed,
    ProcessNotFound,
)
from portman.filters import ReadOptions
from portman.models import (
    STATUS_ACTIVE,
    ConnectionRecord,
    Process,
    classify_protocol,
    format_address,
)
from portman.sources import (
    ConnectionSource,
    ProcessResolver,
    PsutilConnectionSource,
    PsutilProcessResolver,
    PsutilTerminator,
    Terminator,
)

logger = logging.getLogger(__name__)

# Connectionless sockets report no state; psutil uses "NONE".
_NO_STATUS = {"", "NONE"}


@dataclass(slots=True, frozen=True)
class Snapshot:
    """One consistent view of all sockets, published as a whole."""

    processes: tuple[Process, ...] = ()
    index: Mapping[int, int] = field(default_factory=lambda: MappingProxyType({}))
    version: int = 0
    taken_at: float = 0.0

    def __len__(self) -> int:
        """Number of sockets in the snapshot."""
        return len(self.processes)

    def get(self, pid: int) -> Process | None:
        """First socket owned by pid, or None."""
        position = self.index.get(pid)
        if position is None:
            return None
        return self.processes[position]


def build_snapshot(processes: list[Process], version: int) -> Snapshot:
    """Build the sequence and its pid index together."""
    index: dict[int, int] = {}
    for position, proc in enumerate(processes):
        # A process owning several sockets is addressed by its first one
        index.setdefault(proc.pid, position)
    return Snapshot(
        processes=tuple(processes),
        index=MappingProxyType(index),
        version=version,
        taken_at=time.time(),
    )


class PortMonitor:
    """
    Port monitor that attributes open sockets to their owning processes.

    Runs in a separate daemon thread and publishes an immutable Snapshot on
    every poll. Readers grab the current Snapshot reference under a lock
    that is held only for the swap, so a read never sees a half-built
    table. A poll returning no sockets keeps the previous Snapshot.
    """

    def __init__(
        self,
        source: ConnectionSource | None = None,
        resolver: ProcessResolver | None = None,
        terminator: Terminator | None = None,
        poll_interval: float = 5.0,
        kill_timeout: float = 3.0,
        reap_wait: float = 0.5,
    ) -> None:
        """
        Initialize the PortMonitor.

        Args:
            source: Socket enumeration collaborator. Defaults to psutil.
            resolver: Process name lookup collaborator. Defaults to psutil.
            terminator: Process signalling collaborator. Defaults to psutil.
            poll_interval: How often to poll (in seconds). Default 5.0s.
            kill_timeout: Upper bound for one kill() call (in seconds).
            reap_wait: How long to wait for the OS to reap a killed process.
        """
        self._source = source or PsutilConnectionSource()
        self._resolver = resolver or PsutilProcessResolver()
        self._terminator = terminator or PsutilTerminator()
        self._poll_interval = max(0.1, poll_interval)
        self._kill_timeout = kill_timeout
        self._reap_wait = reap_wait
        self._lock = threading.Lock()
        self._refresh_lock = threading.Lock()  # one writer at a time
        self._snapshot = Snapshot()
        self._last_error: Exception | None = None
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def poll_interval(self) -> float:
        """Get the current poll interval."""
        return self._poll_interval

    @poll_interval.setter
    def poll_interval(self, value: float) -> None:
        """Set the poll interval."""
        self._poll_interval = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def snapshot(self) -> Snapshot:
        """The most recently published snapshot."""
        with self._lock:
            return self._snapshot

    @property
    def last_error(self) -> Exception | None:
        """The failure of the most recent poll, or None if it succeeded."""
        with self._lock:
            return self._last_error

    def start(self) -> None:
        """Refresh once synchronously, then start the polling thread."""
        if self.is_running:
            return

        try:
            self.refresh()
        except Exception as exc:
            # Keep the empty snapshot; the poll loop retries
            logger.exception("initial refresh failed")
            with self._lock:
                self._last_error = exc
        self._stop_event.clear()
        self._wake_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="PortMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the polling thread. Safe to call more than once.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        self._wake_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def request_refresh(self) -> None:
        """Wake the polling thread ahead of its interval."""
        self._wake_event.set()

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            # Wait for poll_interval seconds, an early refresh request or stop
            self._wake_event.wait(timeout=self._poll_interval)
            self._wake_event.clear()
            if self._stop_event.is_set():
                break
            try:
                self.refresh()
            except Exception:
                # Keep the loop alive; the next tick retries
                logger.exception("unexpected error while refreshing sockets")

    def refresh(self, options: ReadOptions | None = None) -> bool:
        """
        Poll the connection source and publish a new snapshot.

        Returns True if a snapshot was published. A failed or empty poll
        keeps the previous snapshot and is recorded in last_error.
        """
        with self._refresh_lock:
            try:
                records = self._source.list_connections("all")
                if not records:
                    raise NoConnectionsFound()
            except PollError as exc:
                logger.warning("poll failed, keeping previous snapshot: %s", exc)
                with self._lock:
                    self._last_error = exc
                return False

            processes = self._collect_processes(records, options)
            # Only the reference swap happens under the read lock
            snapshot = build_snapshot(processes, self.snapshot.version + 1)
            with self._lock:
                self._snapshot = snapshot
                self._last_error = None
        logger.debug("published snapshot with %d sockets", len(processes))
        return True

    def _collect_processes(
        self,
        records: list[ConnectionRecord],
        options: ReadOptions | None,
    ) -> list[Process]:
        """Attribute each socket to its process, dropping what cannot be resolved."""
        names: dict[int, str | None] = {}
        processes: list[Process] = []

        for record in records:
            protocol = classify_protocol(record.family, record.socket_type)
            if protocol is None:
                logger.debug(
                    "dropping socket with family=%s type=%s",
                    record.family,
                    record.socket_type,
                )
                continue

            if record.pid not in names:
                try:
                    names[record.pid] = self._resolver.resolve(record.pid).name
                except ProcessLookupFailed as exc:
                    logger.debug("skipping socket: %s", exc)
                    names[record.pid] = None
            name = names[record.pid]
            if name is None:
                continue

            status = record.status
            if protocol.is_udp and status in _NO_STATUS:
                status = STATUS_ACTIVE

            proc = Process(
                pid=record.pid,
                name=name,
                port=record.local_port,
                protocol=protocol,
                status=status,
                local_addr=format_address(record.local_ip, record.local_port),
                remote_addr=format_address(record.remote_ip, record.remote_port),
            )
            if options is not None and not options.allows(proc):
                continue
            processes.append(proc)

        return processes

    def processes(self, options: ReadOptions | None = None) -> list[Process]:
        """Return a copy of the current snapshot, optionally scope-filtered."""
        snapshot = self.snapshot
        if options is None or options.is_default:
            return list(snapshot.processes)
        return [proc for proc in snapshot.processes if options.allows(proc)]

    def get(self, pid: int) -> Process | None:
        """Look up the first socket of a process in the current snapshot."""
        return self.snapshot.get(pid)

    def kill(self, pid: int) -> None:
        """
        Terminate a process, escalating to a forced kill if it lingers.

        The whole call is bounded by kill_timeout. Raises KillError (or a
        subclass) if the process cannot be signalled or is still alive.
        """
        deadline = time.monotonic() + self._kill_timeout
        graceful_wait = max(0.0, self._kill_timeout - self._reap_wait)

        self._terminator.terminate(pid)
        if not self._terminator.wait(pid, graceful_wait):
            logger.info("pid %d ignored SIGTERM, escalating", pid)
            try:
                self._terminator.force_kill(pid)
            except ProcessNotFound:
                # Exited between the wait and the escalation
                pass
            remaining = max(0.0, deadline - time.monotonic())
            if not self._terminator.wait(pid, min(self._reap_wait, remaining)):
                raise KillTimeout(pid, self._kill_timeout)

        logger.info("killed pid %d", pid)
        self.request_refresh()
