"""Tests for DF-bit probes."""
import pytest

from mtubench.core import probe as probe_module
from mtubench.core.probe import ProbeAdapter, build_df_ping, ping_succeeds


def test_build_df_ping():
    assert build_df_ping("10.0.0.2", 8972, timeout=1) == [
        "ping", "-M", "do", "-s", "8972", "-c", "1", "-W", "1", "10.0.0.2",
    ]


@pytest.mark.parametrize("rc, output, expected", [
    (0, "1 packets transmitted, 1 received, 0% packet loss", True),
    (1, "1 packets transmitted, 0 received, 100% packet loss", False),
    (1, "ping: local error: message too long, mtu=1500", False),
    (0, "From 10.0.0.1 icmp_seq=1 Frag needed and DF set (mtu = 1500)", False),
    (2, "", False),
])
def test_ping_succeeds(rc, output, expected):
    assert ping_succeeds(rc, output) is expected


def test_probe_sends_requested_payload(monkeypatch):
    seen = []

    def fake_run(cmd, timeout=60):
        seen.append((cmd, timeout))
        return 0, "1 received, 0% packet loss", ""

    monkeypatch.setattr(probe_module, "run_command", fake_run)

    assert ProbeAdapter("10.0.0.2", timeout=2).probe(1472) is True
    cmd, timeout = seen[0]
    assert cmd[cmd.index("-s") + 1] == "1472"
    assert timeout == 7


def test_probe_reports_loss(monkeypatch):
    monkeypatch.setattr(probe_module, "run_command",
                        lambda cmd, timeout=60: (1, "", "ping: sendmsg: Message too long"))

    assert ProbeAdapter("10.0.0.2").probe(8972) is False
