"""
Throughput benchmark across a range of MTUs.

For every MTU from ``min_mtu`` up to the usable maximum the interfaces are
set (remote first), then ``trials_per_mtu`` rounds of one half-duplex and one
full-duplex iperf trial are run and averaged.  Trials never overlap: the
link under test is the shared resource.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, List

from mtubench.config import BenchConfig
from mtubench.core.errors import (
    InvalidMaxMtuError,
    LocalMtuApplyError,
    MtuBenchError,
    RemoteMtuApplyError,
)
from mtubench.core.interface import InterfaceAdapter
from mtubench.core.results import (
    KBPS_PER_MBPS,
    Direction,
    DuplexMode,
    MtuBenchmarkRecord,
    ResultTable,
    TrialResult,
)
from mtubench.core.throughput import ThroughputAdapter
from mtubench.core.utils import console

logger = logging.getLogger(__name__)

LISTENER_REAP_TIMEOUT = 10


def mtu_sequence(min_mtu: int, max_mtu: int, step: int) -> List[int]:
    """MTUs from *min_mtu* to *max_mtu* by *step*, always ending on *max_mtu*."""
    if max_mtu < min_mtu:
        return []
    seq = list(range(min_mtu, max_mtu + 1, step))
    if seq[-1] != max_mtu:
        seq.append(max_mtu)
    return seq


class BenchmarkRunner:
    """Run and aggregate the trials for every MTU in the sequence."""

    def __init__(
        self,
        config: BenchConfig,
        remote_iface: InterfaceAdapter,
        local_iface: InterfaceAdapter,
        throughput: ThroughputAdapter,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.remote_iface = remote_iface
        self.local_iface = local_iface
        self.throughput = throughput
        self._sleep = sleep

    def remediation(self) -> list[str]:
        mtu = self.config.min_mtu
        return [
            f"Restore the remote MTU: {self.remote_iface.restore_command(mtu)}",
            f"Restore the local MTU:  {self.local_iface.restore_command(mtu)}",
        ]

    def apply_mtu(self, mtu: int) -> None:
        """Set *mtu* on both ends; any mismatch is fatal at this stage."""
        effective = self.remote_iface.set_mtu(mtu)
        if effective != mtu:
            raise RemoteMtuApplyError(self.remote_iface.device, mtu, effective, self.remediation())
        effective = self.local_iface.set_mtu(mtu)
        if effective != mtu:
            raise LocalMtuApplyError(self.local_iface.device, mtu, effective, self.remediation())

    def run(self, max_usable_mtu: int) -> ResultTable:
        cfg = self.config
        if max_usable_mtu < cfg.min_mtu:
            raise InvalidMaxMtuError(
                f"Maximum usable MTU {max_usable_mtu} is below the minimum {cfg.min_mtu}.",
                self.remediation(),
            )

        table = ResultTable()
        sequence = mtu_sequence(cfg.min_mtu, max_usable_mtu, cfg.mtu_step)
        logger.debug("benchmark sequence: %s", sequence)

        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="iperf-listener") as pool:
            for position, mtu in enumerate(sequence, start=1):
                console.print(f"  [bold]MTU {mtu}[/bold] [dim]({position}/{len(sequence)})[/dim]")
                self.apply_mtu(mtu)
                record = MtuBenchmarkRecord(mtu, cfg.trials_per_mtu)
                for trial in range(1, cfg.trials_per_mtu + 1):
                    for mode in DuplexMode:
                        results = self.run_trial(pool, mode)
                        for result in results:
                            record.add(result)
                        self._print_trial(trial, mode, results)
                table.append(record.finalize())
        return table

    def run_trial(self, pool: ThreadPoolExecutor, mode: DuplexMode) -> List[TrialResult]:
        """One iperf trial: fresh remote listener, settle, connect, tear down."""
        self.throughput.stop_listener()
        listener = pool.submit(self.throughput.serve)
        try:
            self._sleep(self.config.settle_delay)
            measurement = self.throughput.run_trial(mode)
        finally:
            self._stop_listener()
            self._reap(listener)

        results = []
        for direction in Direction:
            if measurement.get(direction) is None:
                logger.warning("no %s report in %s-duplex iperf output, counting 0", direction.value, mode.value)
            results.append(TrialResult.from_measurement(mode, direction, measurement.get(direction)))
        return results

    def _stop_listener(self) -> None:
        # a failed kill must not hide the error that ended the trial
        try:
            self.throughput.stop_listener()
        except MtuBenchError as exc:
            logger.warning("remote iperf listener teardown failed: %s", exc)

    def _reap(self, listener: Future) -> None:
        try:
            listener.result(timeout=LISTENER_REAP_TIMEOUT)
        except FutureTimeout:
            logger.warning("remote iperf listener still running after stop request")
        except MtuBenchError as exc:
            logger.warning("remote iperf listener failed: %s", exc)

    def _print_trial(self, trial: int, mode: DuplexMode, results: List[TrialResult]) -> None:
        rates = {r.direction: r.bandwidth_kbps / KBPS_PER_MBPS for r in results}
        console.print(
            f"    [dim]trial {trial}/{self.config.trials_per_mtu}[/dim] "
            f"{mode.value:>4}-duplex  "
            f"tx [cyan]{rates[Direction.TX]:8.2f}[/cyan] Mbps  "
            f"rx [cyan]{rates[Direction.RX]:8.2f}[/cyan] Mbps"
        )
