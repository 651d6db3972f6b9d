"""Fake collaborators so discovery and benchmarking run without a network."""
import pytest

from mtubench.config import BenchConfig
from mtubench.core.errors import RemoteCommandError
from mtubench.core.results import Direction, Measurement


class FakeInterface:
    """Accepts MTUs up to *accept_max*; otherwise keeps its current value."""

    def __init__(self, side, calls, accept_max=100000, device=None, initial=1500):
        self.side = side
        self.host = f"{side}-host"
        self.device = device or f"{side}0"
        self.calls = calls
        self.accept_max = accept_max
        self.mtu = initial
        self.read_back_override = None

    def set_mtu(self, mtu):
        self.calls.append(("set", self.side, mtu))
        if mtu <= self.accept_max:
            self.mtu = mtu
        if self.read_back_override is not None:
            return self.read_back_override
        return self.mtu

    def read_mtu(self):
        return self.mtu

    def restore_command(self, mtu):
        return f"ip link set dev {self.device} mtu {mtu}"


class FakeProber:
    """Passes payloads whose MTU is at or below *threshold*.

    *script* optionally maps an MTU to a list of outcomes consumed per probe.
    """

    def __init__(self, threshold, calls, overhead=28, script=None):
        self.threshold = threshold
        self.calls = calls
        self.overhead = overhead
        self.script = {k: list(v) for k, v in (script or {}).items()}

    def probe(self, payload_size):
        mtu = payload_size + self.overhead
        self.calls.append(("probe", mtu))
        if self.script.get(mtu):
            return self.script[mtu].pop(0)
        return mtu <= self.threshold


def measurement(kbps, seconds=10.0):
    return Measurement(seconds=seconds, transferred_kb=kbps * seconds / 8, bandwidth_kbps=kbps)


class FakeThroughput:
    """Returns scripted trial measurements, falling back to *default_kbps*."""

    def __init__(self, calls, default_kbps=1024.0, script=None):
        self.calls = calls
        self.default_kbps = default_kbps
        self.script = list(script or [])

    def serve(self):
        self.calls.append(("serve",))
        return 0

    def stop_listener(self):
        self.calls.append(("stop",))

    def run_trial(self, mode):
        self.calls.append(("trial", mode))
        if self.script:
            return self.script.pop(0)
        return {
            Direction.TX: measurement(self.default_kbps),
            Direction.RX: measurement(self.default_kbps),
        }


class BrokenTeardown(FakeThroughput):
    """Interrupted mid-trial with the ssh channel gone for every later kill."""

    def __init__(self, calls):
        super().__init__(calls)
        self.stops = 0

    def stop_listener(self):
        self.stops += 1
        self.calls.append(("stop",))
        if self.stops > 1:
            raise RemoteCommandError("ssh failed")

    def run_trial(self, mode):
        self.calls.append(("trial", mode))
        raise KeyboardInterrupt

@pytest.fixture
def calls():
    return []


@pytest.fixture
def config():
    return BenchConfig(
        min_mtu=1500,
        max_mtu_ceiling=9000,
        mtu_step=500,
        probe_retry_limit=3,
        probe_retry_delay=0,
        trials_per_mtu=3,
        settle_delay=0,
    )


@pytest.fixture
def remote_iface(calls):
    return FakeInterface("remote", calls)


@pytest.fixture
def local_iface(calls):
    return FakeInterface("local", calls)


@pytest.fixture
def throughput(calls):
    return FakeThroughput(calls)
