"""
Largest usable MTU between the two hosts.

Bounded bisection between the baseline MTU and a ceiling.  Each candidate is
applied to both interfaces (remote first) and checked with a DF probe; a
failure is retried a few times before it steers the search down, since a
single lost echo on a busy link says nothing about the MTU.  Candidates are
rounded to 100 bytes and a repeated candidate ends the search.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from mtubench.config import BenchConfig, MAX_DISCOVERY_ITERATIONS
from mtubench.core.errors import BaselineMtuError, DiscoveryError
from mtubench.core.interface import InterfaceAdapter
from mtubench.core.probe import ProbeAdapter
from mtubench.core.results import ProbeOutcome, SearchState
from mtubench.core.utils import ceil_to_hundred, console, round_to_hundred

logger = logging.getLogger(__name__)


class MtuDiscoverer:
    """Find the highest MTU both interfaces accept and the path carries."""

    def __init__(
        self,
        config: BenchConfig,
        remote_iface: InterfaceAdapter,
        local_iface: InterfaceAdapter,
        prober: ProbeAdapter,
        sleep: Callable[[float], None] = time.sleep,
        max_iterations: int = MAX_DISCOVERY_ITERATIONS,
    ) -> None:
        self.config = config
        self.remote_iface = remote_iface
        self.local_iface = local_iface
        self.prober = prober
        self._sleep = sleep
        self.max_iterations = max_iterations
        self.state: Optional[SearchState] = None

    # ── Single attempts ───────────────────────────────────────────────────

    def _apply(self, mtu: int) -> bool:
        """Set *mtu* on remote then local; False if either reads back differently."""
        for iface in (self.remote_iface, self.local_iface):
            effective = iface.set_mtu(mtu)
            if effective != mtu:
                logger.debug("%s %s kept mtu %s instead of %d", iface.side, iface.device, effective, mtu)
                return False
        return True

    def _attempt(self, mtu: int) -> ProbeOutcome:
        if not self._apply(mtu):
            return ProbeOutcome(mtu, accepted=False)
        accepted = self.prober.probe(mtu - self.config.icmp_overhead_bytes)
        return ProbeOutcome(mtu, accepted)

    def check(self, mtu: int, state: Optional[SearchState] = None) -> ProbeOutcome:
        """Try *mtu*, retrying failures up to ``probe_retry_limit`` times.

        Every retry re-applies the MTU before probing again so the interfaces
        always match the value being judged.
        """
        outcome = self._attempt(mtu)
        retries = 0
        while not outcome.accepted and retries < self.config.probe_retry_limit:
            retries += 1
            if state is not None:
                state.consecutive_transient_failures += 1
            logger.debug("mtu %d failed, retry %d/%d", mtu, retries, self.config.probe_retry_limit)
            self._sleep(self.config.probe_retry_delay)
            outcome = self._attempt(mtu)
        return outcome

    # ── Search ────────────────────────────────────────────────────────────

    def validate_baseline(self) -> None:
        cfg = self.config
        if not self.check(cfg.min_mtu).accepted:
            raise BaselineMtuError(cfg.min_mtu, self.remediation(cfg.min_mtu))
        console.print(f"  [green]✔[/green] Baseline MTU {cfg.min_mtu} works in both directions")

    def discover(self) -> int:
        """Return the highest MTU that passed both the interface change and a probe.

        Candidates sit on a 100-byte grid; the result is either one of them or
        ``min_mtu`` itself when nothing above the baseline passed.

        Raises :class:`BaselineMtuError` if ``min_mtu`` itself fails and
        :class:`DiscoveryError` if the search does not settle.
        """
        cfg = self.config
        self.validate_baseline()

        difference = cfg.max_mtu_ceiling - cfg.min_mtu
        state = SearchState(
            low_bound=cfg.min_mtu,
            high_bound=cfg.max_mtu_ceiling,
            current_candidate=self._clamp(round_to_hundred(cfg.max_mtu_ceiling)),
            confirmed_good_mtu=cfg.min_mtu,
        )
        self.state = state

        i = 1
        while i <= self.max_iterations:
            candidate = state.current_candidate
            if candidate in state.visited_candidates:
                logger.debug("candidate %d already tried, search settled", candidate)
                break
            state.visited_candidates.add(candidate)
            state.iterations = i

            outcome = self.check(candidate, state)
            step = difference / 2 ** i

            if outcome.accepted:
                state.record_good(candidate)
                console.print(f"  [green]✔[/green] MTU {candidate:>5} ok")
                if i == 1:
                    break
                next_candidate = candidate + step
            else:
                state.record_bad(candidate)
                console.print(f"  [red]✘[/red] MTU {candidate:>5} failed")
                next_candidate = candidate - step

            state.current_candidate = self._clamp(round_to_hundred(next_candidate))
            i += 1
        else:
            raise DiscoveryError(
                f"MTU search did not settle after {self.max_iterations} iterations "
                f"(best so far {state.confirmed_good_mtu}).",
                self.remediation(cfg.min_mtu),
            )

        return state.confirmed_good_mtu

    def _clamp(self, mtu: int) -> int:
        """Keep a rounded candidate inside the search range, on the grid where possible."""
        ceiling = self.config.max_mtu_ceiling
        floor = min(ceil_to_hundred(self.config.min_mtu), ceiling)
        return max(floor, min(ceiling, mtu))

    def remediation(self, mtu: int) -> list[str]:
        return [
            f"Restore the remote MTU: {self.remote_iface.restore_command(mtu)}",
            f"Restore the local MTU:  {self.local_iface.restore_command(mtu)}",
        ]
