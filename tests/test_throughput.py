"""Tests for iperf output parsing and command construction."""
from mtubench.core.remote import LocalShell, RemoteShell
from mtubench.core.results import Direction, DuplexMode, Measurement
from mtubench.core.throughput import ThroughputAdapter, parse_trial_output


HALF_DUPLEX_OUTPUT = """\
------------------------------------------------------------
Server listening on TCP port 5001
TCP window size: 85.3 KByte (default)
------------------------------------------------------------
------------------------------------------------------------
Client connecting to 10.0.0.2, TCP port 5001
TCP window size:  289 KByte (default)
------------------------------------------------------------
[  3] local 10.0.0.1 port 45678 connected with 10.0.0.2 port 5001
[ ID] Interval       Transfer     Bandwidth
[  3]  0.0-10.0 sec  1126400 KBytes  922746 Kbits/sec
[  5] local 10.0.0.1 port 5001 connected with 10.0.0.2 port 38912
[  5]  0.0-10.0 sec  1100000 KBytes  901120 Kbits/sec
""".splitlines()

FULL_DUPLEX_OUTPUT = """\
[  4] local 10.0.0.1 port 5001 connected with 10.0.0.2 port 51000
[  3] local 10.0.0.1 port 45680 connected with 10.0.0.2 port 5001
[ ID] Interval       Transfer     Bandwidth
[  4]  0.0-10.1 sec  500000 KBytes  405000 Kbits/sec
[  3]  0.0-10.0 sec  600000 KBytes  491520 Kbits/sec
""".splitlines()


def test_half_duplex_directions():
    result = parse_trial_output(HALF_DUPLEX_OUTPUT)

    assert result[Direction.TX] == Measurement(seconds=10.0, transferred_kb=1126400.0, bandwidth_kbps=922746.0)
    assert result[Direction.RX].bandwidth_kbps == 901120.0


def test_full_duplex_uses_connection_lines_not_order():
    result = parse_trial_output(FULL_DUPLEX_OUTPUT)

    assert result[Direction.TX].bandwidth_kbps == 491520.0
    assert result[Direction.RX].bandwidth_kbps == 405000.0
    assert round(result[Direction.RX].seconds, 1) == 10.1


def test_missing_report_is_none():
    lines = HALF_DUPLEX_OUTPUT[:-1]

    result = parse_trial_output(lines)

    assert result[Direction.TX] is not None
    assert result[Direction.RX] is None


def test_garbage_output():
    result = parse_trial_output(["connect failed: Connection refused", ""])

    assert result == {Direction.TX: None, Direction.RX: None}


def test_interval_reports_keep_the_summary():
    lines = [
        "[  3]  0.0- 1.0 sec  10000 KBytes  81920 Kbits/sec",
        "[  3]  1.0- 2.0 sec  12000 KBytes  98304 Kbits/sec",
        "[  3]  0.0- 2.0 sec  22000 KBytes  90112 Kbits/sec",
    ]

    result = parse_trial_output(lines)

    assert result[Direction.TX].bandwidth_kbps == 90112.0
    assert result[Direction.RX] is None


def test_order_fallback_without_connection_lines():
    lines = [
        "[  3]  0.0-10.0 sec  100 KBytes  80 Kbits/sec",
        "[  4]  0.0-10.0 sec  200 KBytes  160 Kbits/sec",
    ]

    result = parse_trial_output(lines)

    assert result[Direction.TX].bandwidth_kbps == 80.0
    assert result[Direction.RX].bandwidth_kbps == 160.0


class RecordingShell:
    def __init__(self, host, is_remote, output=None, rc=0):
        self.host = host
        self.is_remote = is_remote
        self.output = output or []
        self.rc = rc
        self.commands = []

    def run(self, argv, timeout=None):
        self.commands.append((argv, timeout))
        return self.output, self.rc


def test_trial_command_flags():
    local = RecordingShell("10.0.0.1", False, output=HALF_DUPLEX_OUTPUT)
    remote = RecordingShell("10.0.0.2", True)
    adapter = ThroughputAdapter(local, remote, duration=5)

    adapter.run_trial(DuplexMode.HALF)
    adapter.run_trial(DuplexMode.FULL)

    (half, half_timeout), (full, _) = local.commands
    assert half[:3] == ["iperf", "-c", "10.0.0.2"]
    assert "-r" in half and "-d" in full
    assert half[half.index("-t") + 1] == "5"
    assert half_timeout > 10


def test_listener_commands_run_remotely():
    local = RecordingShell("10.0.0.1", False)
    remote = RecordingShell("10.0.0.2", True)
    adapter = ThroughputAdapter(local, remote)

    adapter.serve()
    adapter.stop_listener()

    (serve, serve_timeout), (stop, _) = remote.commands
    assert serve[:2] == ["iperf", "-s"]
    assert serve_timeout is None
    assert stop == ["pkill", "-x", "iperf"]
    assert local.commands == []


def test_real_shells_are_accepted():
    adapter = ThroughputAdapter(LocalShell("10.0.0.1"), RemoteShell("10.0.0.2"))

    assert adapter.remote.destination == "root@10.0.0.2"
