"""Shared fakes for the portman tests."""

import socket
import threading

import pytest

from portman.errors import PollError, ProcessLookupFailed, ProcessNotFound
from portman.models import ConnectionRecord, ProcessInfo, Process, Protocol
from portman.monitor import PortMonitor


def tcp(pid, port, status="LISTEN", ip="127.0.0.1", remote_ip="", remote_port=0, v6=False):
    """Build a TCP ConnectionRecord."""
    return ConnectionRecord(
        pid=pid,
        family=socket.AF_INET6 if v6 else socket.AF_INET,
        socket_type=socket.SOCK_STREAM,
        local_ip=ip,
        local_port=port,
        remote_ip=remote_ip,
        remote_port=remote_port,
        status=status,
    )


def udp(pid, port, status="NONE", ip="0.0.0.0", v6=False):
    """Build a UDP ConnectionRecord."""
    return ConnectionRecord(
        pid=pid,
        family=socket.AF_INET6 if v6 else socket.AF_INET,
        socket_type=socket.SOCK_DGRAM,
        local_ip=ip,
        local_port=port,
        remote_ip="",
        remote_port=0,
        status=status,
    )


def make_process(pid, name, port, protocol="TCP", status="LISTEN", local_addr=None):
    return Process(
        pid=pid,
        name=name,
        port=port,
        protocol=Protocol(protocol),
        status=status,
        local_addr=local_addr or f"127.0.0.1:{port}",
    )


class FakeSource:
    """Connection source returning scripted polls; the last one repeats."""

    def __init__(self, *polls):
        self.polls = list(polls) or [[]]
        self.calls = 0
        self.scopes = []
        self._lock = threading.Lock()

    def list_connections(self, scope="all"):
        with self._lock:
            self.scopes.append(scope)
            index = min(self.calls, len(self.polls) - 1)
            self.calls += 1
            poll = self.polls[index]
        if isinstance(poll, Exception):
            raise poll
        return list(poll)


class FakeResolver:
    """Resolver backed by a pid -> name dict; unknown pids have vanished."""

    def __init__(self, names):
        self.names = dict(names)
        self.lookups = []

    def resolve(self, pid):
        self.lookups.append(pid)
        if pid not in self.names:
            raise ProcessLookupFailed(pid, "process vanished")
        return ProcessInfo(name=self.names[pid])


class FakeTerminator:
    """Terminator recording signals; `stubborn` pids ignore SIGTERM."""

    def __init__(self, alive=(), stubborn=(), unkillable=()):
        self.alive = set(alive)
        self.stubborn = set(stubborn)
        self.unkillable = set(unkillable)
        self.calls = []

    def terminate(self, pid):
        self.calls.append(("terminate", pid))
        if pid not in self.alive:
            raise ProcessNotFound(pid)
        if pid not in self.stubborn and pid not in self.unkillable:
            self.alive.discard(pid)

    def force_kill(self, pid):
        self.calls.append(("force_kill", pid))
        if pid not in self.alive:
            raise ProcessNotFound(pid)
        if pid not in self.unkillable:
            self.alive.discard(pid)

    def wait(self, pid, timeout):
        self.calls.append(("wait", pid))
        return pid not in self.alive


@pytest.fixture
def poll_error():
    return PollError("permission denied")


@pytest.fixture
def sample_records():
    return [
        tcp(100, 22, "LISTEN", ip="0.0.0.0"),
        tcp(200, 51000, "ESTABLISHED", remote_ip="93.184.216.34", remote_port=443),
        udp(300, 53),
    ]


@pytest.fixture
def sample_names():
    return {100: "sshd", 200: "curl", 300: "dnsmasq"}


@pytest.fixture
def monitor(sample_records, sample_names):
    """A stopped PortMonitor over fake collaborators with one refresh done."""
    mon = PortMonitor(
        source=FakeSource(sample_records),
        resolver=FakeResolver(sample_names),
        terminator=FakeTerminator(alive=sample_names),
        poll_interval=0.1,
        kill_timeout=0.5,
        reap_wait=0.1,
    )
    mon.refresh()
    yield mon
    mon.stop()
