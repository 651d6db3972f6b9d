"""
Throughput trials with iperf (version 2).

The remote side runs ``iperf -s``; the local side connects with ``-r``
(tradeoff: one direction, then the other = half duplex) or ``-d`` (dualtest:
both directions at once = full duplex).  Rates are requested in Kbit/s
(``-f k``) so every report line has the same units.

iperf's server mode does not reliably exit between runs and a stale server
mixes its reports into the next trial, so :meth:`ThroughputAdapter.stop_listener`
is always called after a trial and before a new listener starts.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from mtubench.config import DEFAULT_TRIAL_DURATION
from mtubench.core.remote import LocalShell, RemoteShell
from mtubench.core.results import Direction, DuplexMode, Measurement

logger = logging.getLogger(__name__)

IPERF_PORT = 5001

_MODE_FLAGS = {
    DuplexMode.HALF: "-r",
    DuplexMode.FULL: "-d",
}

# "[  3] local 10.0.0.1 port 45678 connected with 10.0.0.2 port 5001"
_CONNECT_LINE = re.compile(
    r"^\[\s*(?P<id>\d+)\]\s+local\s+\S+\s+port\s+(?P<lport>\d+)\s+"
    r"connected\s+with\s+\S+\s+port\s+(?P<rport>\d+)"
)
# "[  3]  0.0-10.0 sec  1126400 KBytes  922746 Kbits/sec"
_REPORT_LINE = re.compile(
    r"^\[\s*(?P<id>\d+)\]\s+(?P<start>[\d.]+)\s*-\s*(?P<end>[\d.]+)\s+sec\s+"
    r"(?P<kb>[\d.]+)\s+KBytes\s+(?P<kbps>[\d.]+)\s+Kbits/sec"
)

TrialMeasurement = Dict[Direction, Optional[Measurement]]


def parse_trial_output(lines: List[str], port: int = IPERF_PORT) -> TrialMeasurement:
    """Map an iperf client's output to one measurement per direction.

    A stream whose remote port is the iperf port was opened by us (tx); one
    arriving on our own iperf port came from the server (rx).  When no
    connection lines are present the first report is taken as tx and the
    second as rx.  Directions with no usable report map to ``None``.
    """
    directions: Dict[str, Direction] = {}
    reports: Dict[str, Measurement] = {}
    order: List[str] = []

    for line in lines:
        line = line.strip()
        m = _CONNECT_LINE.match(line)
        if m:
            if int(m.group("rport")) == port:
                directions[m.group("id")] = Direction.TX
            elif int(m.group("lport")) == port:
                directions[m.group("id")] = Direction.RX
            continue
        m = _REPORT_LINE.match(line)
        if m:
            stream = m.group("id")
            if stream not in reports:
                order.append(stream)
            # later lines for the same stream are the cumulative summary
            reports[stream] = Measurement(
                seconds=float(m.group("end")) - float(m.group("start")),
                transferred_kb=float(m.group("kb")),
                bandwidth_kbps=float(m.group("kbps")),
            )

    result: TrialMeasurement = {Direction.TX: None, Direction.RX: None}
    if directions:
        for stream, direction in directions.items():
            if stream in reports:
                result[direction] = reports[stream]
    else:
        for stream, direction in zip(order, (Direction.TX, Direction.RX)):
            result[direction] = reports[stream]
    return result


class ThroughputAdapter:
    """Drive one iperf server (remote) and its client (local)."""

    def __init__(
        self,
        local: LocalShell,
        remote: RemoteShell,
        duration: int = DEFAULT_TRIAL_DURATION,
        port: int = IPERF_PORT,
    ) -> None:
        self.local = local
        self.remote = remote
        self.duration = duration
        self.port = port

    def serve(self) -> int:
        """Run the remote iperf server until it is killed; returns its exit status."""
        _, rc = self.remote.run(["iperf", "-s", "-f", "k", "-p", str(self.port)], timeout=None)
        return rc

    def stop_listener(self) -> None:
        """Kill any iperf process on the remote host (no-op if none is running)."""
        self.remote.run(["pkill", "-x", "iperf"])

    def run_trial(self, mode: DuplexMode) -> TrialMeasurement:
        argv = [
            "iperf", "-c", self.remote.host,
            "-p", str(self.port),
            "-f", "k",
            "-t", str(self.duration),
            _MODE_FLAGS[mode],
        ]
        # tradeoff runs both directions back to back
        budget = self.duration * (2 if mode is DuplexMode.HALF else 1) + 30
        lines, rc = self.local.run(argv, timeout=budget)
        if rc != 0:
            logger.warning("iperf client exited with status %d (%s duplex)", rc, mode.value)
        return parse_trial_output(lines, self.port)
