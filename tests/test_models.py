"""Tests for portman data models."""

import socket

from portman.models import (
    REMOTE_PLACEHOLDER,
    Process,
    Protocol,
    classify_protocol,
    format_address,
)


def test_process_creation():
    """Test Process dataclass creation."""
    proc = Process(
        pid=123,
        name="nginx",
        port=8080,
        protocol=Protocol.TCP,
        status="LISTEN",
        local_addr="127.0.0.1:8080",
        remote_addr="*:*",
    )

    assert proc.pid == 123
    assert proc.name == "nginx"
    assert proc.port == 8080
    assert proc.protocol is Protocol.TCP
    assert proc.status == "LISTEN"
    assert proc.local_addr == "127.0.0.1:8080"
    assert proc.remote_addr == "*:*"


def test_process_is_frozen():
    """Test that Process is immutable (frozen)."""
    proc = Process(1, "init", 22, Protocol.TCP, "LISTEN", "0.0.0.0:22")

    try:
        proc.pid = 999
        raise AssertionError("Should have raised FrozenInstanceError")
    except AttributeError:
        pass  # Expected behavior for frozen dataclass


def test_process_uses_slots():
    """Test that Process uses __slots__ for memory efficiency."""
    proc = Process(1, "init", 22, Protocol.TCP, "LISTEN", "0.0.0.0:22")

    # Slots-based dataclasses don't have __dict__
    assert not hasattr(proc, "__dict__")


def test_process_defaults_remote_placeholder():
    proc = Process(1, "", 53, Protocol.UDP, "ACTIVE", "0.0.0.0:53")
    assert proc.remote_addr == REMOTE_PLACEHOLDER


def test_display_name_for_unknown_name():
    assert Process(1, "", 1, Protocol.TCP, "LISTEN", "x").display_name == "process"
    assert Process(1, "sshd", 1, Protocol.TCP, "LISTEN", "x").display_name == "sshd"


def test_cells_follow_column_order():
    proc = Process(42, "sshd", 22, Protocol.TCP6, "LISTEN", "[::]:22")
    assert proc.cells() == ("42", "TCP6", "22", "LISTEN", "[::]:22", "*:*", "sshd")


class TestClassifyProtocol:
    """Tests for the family/type to Protocol mapping."""

    def test_known_combinations(self):
        assert classify_protocol(socket.AF_INET, socket.SOCK_STREAM) is Protocol.TCP
        assert classify_protocol(socket.AF_INET6, socket.SOCK_STREAM) is Protocol.TCP6
        assert classify_protocol(socket.AF_INET, socket.SOCK_DGRAM) is Protocol.UDP
        assert classify_protocol(socket.AF_INET6, socket.SOCK_DGRAM) is Protocol.UDP6

    def test_unknown_combinations(self):
        assert classify_protocol(socket.AF_INET, socket.SOCK_RAW) is None
        assert classify_protocol(socket.AF_UNIX, socket.SOCK_STREAM) is None

    def test_protocol_prefix_helpers(self):
        assert Protocol.TCP6.is_tcp and not Protocol.TCP6.is_udp
        assert Protocol.UDP.is_udp and not Protocol.UDP.is_tcp
        assert str(Protocol.UDP6) == "UDP6"


class TestFormatAddress:
    def test_ipv4(self):
        assert format_address("127.0.0.1", 8080) == "127.0.0.1:8080"

    def test_ipv6_is_bracketed(self):
        assert format_address("::1", 443) == "[::1]:443"

    def test_missing_address_is_placeholder(self):
        assert format_address("", 0) == REMOTE_PLACEHOLDER
        assert format_address(None, None) == REMOTE_PLACEHOLDER
