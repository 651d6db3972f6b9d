"""
Centralised runtime configuration and OS-detection helpers.
"""

import platform
import shutil
from dataclasses import dataclass, field
from typing import Optional

from mtubench.core.errors import ConfigError


@dataclass(frozen=True)
class PlatformInfo:
    """Immutable snapshot of the host OS and available external tools."""

    system: str = field(default_factory=lambda: platform.system())  # Windows | Linux | Darwin
    is_linux: bool = field(default=False)

    # Paths to external tools (None if not found on PATH)
    ping: Optional[str] = None
    ssh: Optional[str] = None
    ip: Optional[str] = None
    iperf: Optional[str] = None

    def __post_init__(self) -> None:  # pragma: no cover
        object.__setattr__(self, "is_linux", self.system == "Linux")

        for tool_name in REQUIRED_TOOLS:
            object.__setattr__(self, tool_name, shutil.which(tool_name))

    def missing_tools(self) -> list[str]:
        return [t for t in REQUIRED_TOOLS if getattr(self, t) is None]


REQUIRED_TOOLS = ("ping", "ssh", "ip", "iperf")

# Singleton, instantiated once at import time.
PLATFORM = PlatformInfo()

# MTU search bounds (bytes)
DEFAULT_MIN_MTU = 1500
DEFAULT_MAX_MTU_CEILING = 9000
DEFAULT_MTU_STEP = 500
ICMP_OVERHEAD_BYTES = 28  # 20 IP header + 8 ICMP header
MAX_DISCOVERY_ITERATIONS = 1000

# Retry / timing (seconds)
DEFAULT_PROBE_RETRY_LIMIT = 3
DEFAULT_PROBE_RETRY_DELAY = 1.0
DEFAULT_PROBE_TIMEOUT = 1
DEFAULT_SETTLE_DELAY = 1.0
DEFAULT_TRIAL_DURATION = 10
DEFAULT_TRIALS_PER_MTU = 3

DEFAULT_REMOTE_USER = "root"


@dataclass(frozen=True)
class BenchConfig:
    """Everything a run needs to know, fixed before the first probe is sent."""

    min_mtu: int = DEFAULT_MIN_MTU
    max_mtu_ceiling: int = DEFAULT_MAX_MTU_CEILING
    mtu_step: int = DEFAULT_MTU_STEP
    icmp_overhead_bytes: int = ICMP_OVERHEAD_BYTES
    probe_retry_limit: int = DEFAULT_PROBE_RETRY_LIMIT
    probe_retry_delay: float = DEFAULT_PROBE_RETRY_DELAY
    probe_timeout: int = DEFAULT_PROBE_TIMEOUT
    trials_per_mtu: int = DEFAULT_TRIALS_PER_MTU
    fixed_max_mtu: Optional[int] = None
    settle_delay: float = DEFAULT_SETTLE_DELAY
    trial_duration: int = DEFAULT_TRIAL_DURATION
    remote_user: str = DEFAULT_REMOTE_USER

    def __post_init__(self) -> None:
        if self.mtu_step <= 0:
            raise ConfigError(f"MTU step must be positive (got {self.mtu_step}).")
        if self.trials_per_mtu <= 0:
            raise ConfigError(f"Trials per MTU must be positive (got {self.trials_per_mtu}).")
        if self.probe_retry_limit < 0:
            raise ConfigError(f"Probe retry limit cannot be negative (got {self.probe_retry_limit}).")
        if self.min_mtu >= self.max_mtu_ceiling:
            raise ConfigError(
                f"Minimum MTU ({self.min_mtu}) must be below the ceiling ({self.max_mtu_ceiling})."
            )
        if not 0 <= self.icmp_overhead_bytes < self.min_mtu:
            raise ConfigError(
                f"ICMP overhead ({self.icmp_overhead_bytes}) must be smaller than the minimum MTU."
            )
