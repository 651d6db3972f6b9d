"""
Non-fragmenting echo probes.

Uses ``ping`` with the Don't Fragment (DF) bit set and a single packet, so a
payload that does not fit the path MTU fails instead of being fragmented.
"""

from __future__ import annotations

import logging

from mtubench.config import DEFAULT_PROBE_TIMEOUT
from mtubench.core.utils import run_command

logger = logging.getLogger(__name__)

_FAILURE_INDICATORS = (
    "frag needed",
    "message too long",
    "packet needs to be fragmented",
    "100% loss",
    "100% packet loss",
    "destination host unreachable",
)


def build_df_ping(target: str, size: int, timeout: int = DEFAULT_PROBE_TIMEOUT) -> list[str]:
    """Build a DF-bit ping for the given payload *size* (bytes)."""
    # -M do = DF, -s = payload size, -c 1 = single packet
    return ["ping", "-M", "do", "-s", str(size), "-c", "1", "-W", str(timeout), target]


def ping_succeeds(rc: int, output: str) -> bool:
    """Interpret a DF ping's exit status and combined output."""
    output = output.lower()
    for indicator in _FAILURE_INDICATORS:
        if indicator in output:
            return False
    return rc == 0


class ProbeAdapter:
    """Send single DF probes to one target host."""

    def __init__(self, target: str, timeout: int = DEFAULT_PROBE_TIMEOUT) -> None:
        self.target = target
        self.timeout = timeout

    def probe(self, payload_size: int) -> bool:
        """Return True if a DF-bit ping with *payload_size* bytes came back."""
        cmd = build_df_ping(self.target, payload_size, self.timeout)
        rc, stdout, stderr = run_command(cmd, timeout=self.timeout + 5)
        accepted = ping_succeeds(rc, stdout + stderr)
        logger.debug("probe %s payload=%d -> %s", self.target, payload_size, "ok" if accepted else "lost")
        return accepted
