"""
Exception taxonomy.

Every fatal condition maps to a process exit code and, where the run may have
left an interface at a non-default MTU, to the commands that put it back.
"""

from __future__ import annotations

from typing import List, Optional


class MtuBenchError(Exception):
    """Base class for all fatal run errors."""

    exit_code = 2
    title = "MTU Bench Error"

    def __init__(self, message: str, remediation: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.remediation: List[str] = list(remediation or [])


class ConfigError(MtuBenchError):
    title = "Invalid Configuration"


class RemoteCommandError(MtuBenchError):
    """The remote-execution channel itself failed (not the remote command)."""

    title = "Remote Execution Failed"


class InterfaceNotFoundError(MtuBenchError):
    title = "Interface Not Found"

    def __init__(self, host: str, ip: str, remote: bool) -> None:
        side = "remote" if remote else "local"
        super().__init__(
            f"No {side} interface on {host} carries the address {ip}.",
            [f"Check that {ip} is configured on the {side} host (`ip -o addr show`)."],
        )
        self.exit_code = 2 if remote else 1


class BaselineMtuError(MtuBenchError):
    """The minimum MTU could not be validated, so nothing above it can be trusted."""

    exit_code = 3
    title = "Baseline MTU Invalid"

    def __init__(self, min_mtu: int, remediation: Optional[List[str]] = None) -> None:
        super().__init__(
            f"A non-fragmenting probe at the baseline MTU {min_mtu} failed.",
            remediation,
        )
        self.fallback_mtu = min_mtu


class DiscoveryError(MtuBenchError):
    exit_code = 3
    title = "MTU Discovery Did Not Converge"


class InvalidMaxMtuError(MtuBenchError):
    exit_code = 4
    title = "Maximum MTU Invalid"


class MtuApplyError(MtuBenchError):
    """An interface reported a different MTU than the one just applied."""

    side = ""

    def __init__(self, device: str, requested: int, effective: Optional[int],
                 remediation: Optional[List[str]] = None) -> None:
        got = "nothing" if effective is None else str(effective)
        super().__init__(
            f"Raising the {self.side} MTU of {device} to {requested} failed (read back {got}).",
            remediation,
        )
        self.requested = requested
        self.effective = effective


class RemoteMtuApplyError(MtuApplyError):
    exit_code = 5
    title = "Remote MTU Change Failed"
    side = "remote"


class LocalMtuApplyError(MtuApplyError):
    exit_code = 6
    title = "Local MTU Change Failed"
    side = "local"
