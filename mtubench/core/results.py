"""
Data model shared by discovery, benchmarking and the report.

Probe outcomes and single trial measurements are immutable.  A
:class:`MtuBenchmarkRecord` collects running sums while its MTU is under test
and is frozen into averages by :meth:`MtuBenchmarkRecord.finalize`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set


KBPS_PER_MBPS = 1024


class DuplexMode(Enum):
    HALF = "half"
    FULL = "full"


class Direction(Enum):
    TX = "tx"
    RX = "rx"


SERIES = [(mode, direction) for mode in DuplexMode for direction in Direction]


# ── Discovery ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProbeOutcome:
    requested_mtu: int
    accepted: bool


@dataclass
class SearchState:
    """Mutable bisection state; owned by a single MtuDiscoverer run."""

    low_bound: int
    high_bound: int
    current_candidate: int
    confirmed_good_mtu: int = 0
    consecutive_transient_failures: int = 0
    visited_candidates: Set[int] = field(default_factory=set)
    confirmed_bad: Set[int] = field(default_factory=set)
    iterations: int = 0

    def record_good(self, mtu: int) -> None:
        # never lower a confirmed value
        self.confirmed_good_mtu = max(self.confirmed_good_mtu, mtu)
        self.low_bound = max(self.low_bound, mtu)
        self.consecutive_transient_failures = 0

    def record_bad(self, mtu: int) -> None:
        self.confirmed_bad.add(mtu)
        self.high_bound = min(self.high_bound, mtu)
        self.consecutive_transient_failures = 0


# ── Throughput ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Measurement:
    """One parsed report line from the throughput tool."""

    seconds: float
    transferred_kb: float
    bandwidth_kbps: float


@dataclass(frozen=True)
class TrialResult:
    duplex_mode: DuplexMode
    direction: Direction
    seconds: float = 0.0
    transferred_kb: float = 0.0
    bandwidth_kbps: float = 0.0

    @classmethod
    def from_measurement(cls, mode: DuplexMode, direction: Direction,
                         measurement: Optional[Measurement]) -> "TrialResult":
        """Build a result; a missing measurement becomes zeros."""
        if measurement is None:
            return cls(mode, direction)
        return cls(mode, direction, measurement.seconds,
                   measurement.transferred_kb, measurement.bandwidth_kbps)


@dataclass
class _SeriesSums:
    seconds: float = 0.0
    transferred_kb: float = 0.0
    bandwidth_kbps: float = 0.0


class MtuBenchmarkRecord:
    """All trials for one MTU, reduced to per-series averages once finalized."""

    def __init__(self, mtu: int, trials_per_mtu: int) -> None:
        self.mtu = mtu
        self.trials_per_mtu = trials_per_mtu
        self._sums: Dict[tuple, _SeriesSums] = {key: _SeriesSums() for key in SERIES}
        self._finalized = False
        self.avg_bandwidth_mbps: Dict[DuplexMode, Dict[Direction, float]] = {}
        self.avg_seconds: Dict[DuplexMode, Dict[Direction, float]] = {}
        self.avg_transferred_kb: Dict[DuplexMode, Dict[Direction, float]] = {}

    @property
    def finalized(self) -> bool:
        return self._finalized

    def add(self, result: TrialResult) -> None:
        if self._finalized:
            raise RuntimeError(f"Record for MTU {self.mtu} is already finalized.")
        sums = self._sums[(result.duplex_mode, result.direction)]
        sums.seconds += result.seconds
        sums.transferred_kb += result.transferred_kb
        sums.bandwidth_kbps += result.bandwidth_kbps

    def finalize(self) -> "MtuBenchmarkRecord":
        """Turn sums into means (Kbps -> Mbps for bandwidth, 2 decimals)."""
        if self._finalized:
            return self
        n = self.trials_per_mtu
        for mode in DuplexMode:
            self.avg_bandwidth_mbps[mode] = {}
            self.avg_seconds[mode] = {}
            self.avg_transferred_kb[mode] = {}
            for direction in Direction:
                sums = self._sums[(mode, direction)]
                self.avg_bandwidth_mbps[mode][direction] = round(sums.bandwidth_kbps / n / KBPS_PER_MBPS, 2)
                self.avg_seconds[mode][direction] = round(sums.seconds / n, 2)
                self.avg_transferred_kb[mode][direction] = round(sums.transferred_kb / n, 2)
        self._finalized = True
        return self

    def bandwidth(self, mode: DuplexMode, direction: Direction) -> float:
        return self.avg_bandwidth_mbps[mode][direction]

    def best_bandwidth(self) -> float:
        return max(self.bandwidth(m, d) for m, d in SERIES)


class ResultTable:
    """Finalized records in the order their MTUs were tested."""

    def __init__(self) -> None:
        self._records: List[MtuBenchmarkRecord] = []

    def append(self, record: MtuBenchmarkRecord) -> None:
        if not record.finalized:
            raise ValueError(f"Record for MTU {record.mtu} must be finalized first.")
        self._records.append(record)

    @property
    def records(self) -> List[MtuBenchmarkRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def get(self, mtu: int) -> Optional[MtuBenchmarkRecord]:
        for record in self._records:
            if record.mtu == mtu:
                return record
        return None

    @property
    def mtus(self) -> List[int]:
        return [r.mtu for r in self._records]

    @property
    def highest_bandwidth_mbps(self) -> float:
        """Largest average across all records and series (0.0 when empty)."""
        return max((r.best_bandwidth() for r in self._records), default=0.0)

    def best_mtu(self, mode: DuplexMode, direction: Direction) -> Optional[int]:
        if not self._records:
            return None
        return max(self._records, key=lambda r: r.bandwidth(mode, direction)).mtu
