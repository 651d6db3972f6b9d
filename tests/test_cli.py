"""End-to-end runs through the CLI with fake collaborators."""
import pytest

from conftest import BrokenTeardown, FakeInterface, FakeProber, FakeThroughput
from mtubench import cli
from mtubench.cli import Adapters, run

BASE_ARGS = ["10.0.0.1", "10.0.0.2", "--yes", "--retry-delay", "0", "--settle", "0", "--trials", "1"]


class World:
    """Everything a fake run touched."""

    def __init__(self, threshold=5000, throughput_cls=FakeThroughput):
        self.calls = []
        self.remote = FakeInterface("remote", self.calls)
        self.local = FakeInterface("local", self.calls)
        self.prober = FakeProber(threshold, self.calls)
        self.throughput = throughput_cls(self.calls)
        self.built_with = None

    def build(self, config, local_ip, remote_ip):
        self.built_with = (config, local_ip, remote_ip)
        return Adapters(self.local, self.remote, self.prober, self.throughput)

    def benchmarked_mtus(self):
        mtus, current = [], None
        for call in self.calls:
            if call[0] == "set" and call[1] == "local":
                current = call[2]
            elif call[0] == "trial" and current not in mtus:
                mtus.append(current)
        return mtus


def test_discover_then_benchmark():
    world = World(threshold=5000)

    assert run(BASE_ARGS, build=world.build) == 0
    assert world.benchmarked_mtus() == [1500, 2000, 2500, 3000, 3500, 4000, 4500, 5000]


def test_original_mtu_restored_after_run():
    world = World(threshold=5000)

    run(BASE_ARGS, build=world.build)

    sets = [c for c in world.calls if c[0] == "set"]
    assert sets[-2:] == [("set", "remote", 1500), ("set", "local", 1500)]


def test_fixed_max_skips_discovery():
    world = World(threshold=100000)

    assert run(BASE_ARGS + ["--max-mtu", "2500"], build=world.build) == 0
    assert not [c for c in world.calls if c[0] == "probe"]
    assert world.benchmarked_mtus() == [1500, 2000, 2500]


def test_config_passed_to_builder():
    world = World()

    run(BASE_ARGS + ["--step", "1000", "--user", "admin"], build=world.build)

    config, local_ip, remote_ip = world.built_with
    assert (local_ip, remote_ip) == ("10.0.0.1", "10.0.0.2")
    assert config.mtu_step == 1000
    assert config.remote_user == "admin"


def test_fixed_max_below_minimum_exits_4():
    world = World()

    assert run(BASE_ARGS + ["--max-mtu", "1000"], build=world.build) == 4


def test_baseline_failure_exits_before_any_candidate():
    world = World(threshold=1000)

    assert run(BASE_ARGS, build=world.build) == 3
    assert {c[1] for c in world.calls if c[0] == "probe"} == {1500}
    assert not [c for c in world.calls if c[0] == "trial"]


def test_benchmark_drift_exits_5():
    world = World(threshold=100000)
    world.remote.read_back_override = 1500

    assert run(BASE_ARGS + ["--max-mtu", "3000", "--step", "1500"], build=world.build) == 5


def test_local_drift_exits_6():
    world = World(threshold=100000)
    world.local.read_back_override = 1500

    assert run(BASE_ARGS + ["--max-mtu", "3000", "--step", "1500"], build=world.build) == 6


def test_invalid_address_exits_2():
    world = World()

    assert run(["not-an-ip", "10.0.0.2", "--yes"], build=world.build) == 2
    assert world.built_with is None


def test_invalid_config_exits_2():
    world = World()

    assert run(BASE_ARGS + ["--step", "0"], build=world.build) == 2


def test_declined_confirmation_changes_nothing(monkeypatch):
    world = World()
    monkeypatch.setattr(cli, "confirm", lambda label: False)

    args = [a for a in BASE_ARGS if a != "--yes"]
    assert run(args, build=world.build) == 0
    assert not [c for c in world.calls if c[0] == "set"]


def test_interrupt_stops_listener():
    class Interrupted(FakeThroughput):
        def run_trial(self, mode):
            raise KeyboardInterrupt

    world = World(throughput_cls=Interrupted)

    assert run(BASE_ARGS + ["--max-mtu", "1500"], build=world.build) == 130
    assert world.calls[-1] == ("stop",) or world.calls[-2] == ("stop",)


@pytest.mark.parametrize("argv", [["--version"], ["--help"]])
def test_info_flags_exit_cleanly(argv):
    with pytest.raises(SystemExit) as excinfo:
        run(argv)

    assert excinfo.value.code == 0


def test_interrupt_with_failed_teardown_exits_130():
    world = World(throughput_cls=BrokenTeardown)

    assert run(BASE_ARGS + ["--max-mtu", "1500"], build=world.build) == 130


def test_off_grid_minimum_discovers_and_benchmarks():
    world = World(threshold=1560)

    assert run(BASE_ARGS + ["--min-mtu", "1540"], build=world.build) == 0
    assert world.benchmarked_mtus() == [1540]
