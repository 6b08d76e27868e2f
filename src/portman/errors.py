"""Exception hierarchy for portman."""


class PortmanError(Exception):
    """Base class for all portman errors."""


class ConfigError(PortmanError):
    """Configuration file could not be read or parsed."""


class PollError(PortmanError):
    """Enumerating the open sockets failed."""


class NoConnectionsFound(PollError):
    """The connection source returned no sockets at all."""

    def __init__(self) -> None:
        super().__init__("no connections found")


class ProcessLookupFailed(PortmanError):
    """Process metadata could not be resolved (vanished or access denied)."""

    def __init__(self, pid: int, reason: str = "") -> None:
        self.pid = pid
        self.reason = reason
        message = f"cannot resolve process {pid}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class KillError(PortmanError):
    """Terminating a process failed."""

    def __init__(self, pid: int, reason: str) -> None:
        self.pid = pid
        self.reason = reason
        super().__init__(f"failed to kill {pid}: {reason}")


class ProcessNotFound(KillError):
    def __init__(self, pid: int) -> None:
        super().__init__(pid, "no such process")


class PermissionDenied(KillError):
    def __init__(self, pid: int) -> None:
        super().__init__(pid, "permission denied")


class KillTimeout(KillError):
    def __init__(self, pid: int, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(pid, f"still running after {timeout:.1f}s")
