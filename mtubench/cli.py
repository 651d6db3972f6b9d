"""
CLI entry-point for MTU Bench.

``mtubench LOCAL_IP REMOTE_IP`` finds the largest MTU the two hosts can use,
then benchmarks iperf throughput at every step up to it and prints a
comparison.  Needs root locally and non-interactive root ssh to the remote.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional

from rich.logging import RichHandler

from mtubench import __app_name__, __version__
from mtubench.config import (
    PLATFORM,
    BenchConfig,
    DEFAULT_MAX_MTU_CEILING,
    DEFAULT_MIN_MTU,
    DEFAULT_MTU_STEP,
    DEFAULT_PROBE_RETRY_DELAY,
    DEFAULT_PROBE_RETRY_LIMIT,
    DEFAULT_REMOTE_USER,
    DEFAULT_SETTLE_DELAY,
    DEFAULT_TRIAL_DURATION,
    DEFAULT_TRIALS_PER_MTU,
)
from mtubench.core.benchmark import BenchmarkRunner, mtu_sequence
from mtubench.core.discovery import MtuDiscoverer
from mtubench.core.errors import ConfigError, InvalidMaxMtuError, MtuBenchError
from mtubench.core.interface import InterfaceAdapter, detect_interface
from mtubench.core.probe import ProbeAdapter
from mtubench.core.remote import LocalShell, RemoteShell
from mtubench.core.report import render_report
from mtubench.core.results import ResultTable
from mtubench.core.throughput import ThroughputAdapter
from mtubench.core.utils import (
    Status,
    TestResult,
    confirm,
    console,
    err_console,
    print_result,
    print_section,
    tool_missing_result,
    validate_address,
)

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


@dataclass
class Adapters:
    """The collaborators one run talks to."""

    local_iface: InterfaceAdapter
    remote_iface: InterfaceAdapter
    prober: ProbeAdapter
    throughput: ThroughputAdapter


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mtubench",
        description=f"{__app_name__} — discover the usable MTU between two hosts and benchmark throughput at each step.",
    )
    p.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("local_ip", help="Address of this host on the link under test")
    p.add_argument("remote_ip", help="Address of the remote host on the link under test")

    p.add_argument("--max-mtu", type=int, default=None,
                   help="Skip discovery and benchmark up to this MTU (trusted as-is)")
    p.add_argument("--min-mtu", type=int, default=DEFAULT_MIN_MTU,
                   help=f"Baseline MTU, validated first (default: {DEFAULT_MIN_MTU})")
    p.add_argument("--ceiling", type=int, default=DEFAULT_MAX_MTU_CEILING,
                   help=f"Highest MTU discovery will try (default: {DEFAULT_MAX_MTU_CEILING})")
    p.add_argument("--step", type=int, default=DEFAULT_MTU_STEP,
                   help=f"MTU increment between benchmarks (default: {DEFAULT_MTU_STEP})")
    p.add_argument("--trials", type=int, default=DEFAULT_TRIALS_PER_MTU,
                   help=f"Trials per MTU and duplex mode (default: {DEFAULT_TRIALS_PER_MTU})")
    p.add_argument("--duration", type=int, default=DEFAULT_TRIAL_DURATION,
                   help=f"Seconds per iperf trial (default: {DEFAULT_TRIAL_DURATION})")
    p.add_argument("--retries", type=int, default=DEFAULT_PROBE_RETRY_LIMIT,
                   help=f"Probe retries before an MTU counts as failed (default: {DEFAULT_PROBE_RETRY_LIMIT})")
    p.add_argument("--retry-delay", type=float, default=DEFAULT_PROBE_RETRY_DELAY,
                   help=f"Seconds between probe retries (default: {DEFAULT_PROBE_RETRY_DELAY})")
    p.add_argument("--settle", type=float, default=DEFAULT_SETTLE_DELAY,
                   help=f"Seconds to wait for the remote listener (default: {DEFAULT_SETTLE_DELAY})")
    p.add_argument("--user", default=DEFAULT_REMOTE_USER,
                   help=f"Remote ssh account (default: {DEFAULT_REMOTE_USER})")
    p.add_argument("--debug", action="store_true", help="Verbose diagnostic logging")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    return p


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=debug)],
    )


def _config_from_args(args: argparse.Namespace) -> BenchConfig:
    return BenchConfig(
        min_mtu=args.min_mtu,
        max_mtu_ceiling=args.ceiling,
        mtu_step=args.step,
        probe_retry_limit=args.retries,
        probe_retry_delay=args.retry_delay,
        trials_per_mtu=args.trials,
        fixed_max_mtu=args.max_mtu,
        settle_delay=args.settle,
        trial_duration=args.duration,
        remote_user=args.user,
    )


def build_adapters(config: BenchConfig, local_ip: str, remote_ip: str) -> Adapters:
    """Wire real shells and find the device carrying each address."""
    missing = PLATFORM.missing_tools()
    if missing or not PLATFORM.is_linux:
        what = ", ".join(missing) if missing else "Linux"
        result = tool_missing_result(what, "Preflight")
        raise ConfigError(result.summary, result.details)

    local = LocalShell(local_ip)
    remote = RemoteShell(remote_ip, user=config.remote_user)
    local_iface = InterfaceAdapter(local, detect_interface(local, local_ip))
    remote_iface = InterfaceAdapter(remote, detect_interface(remote, remote_ip))
    return Adapters(
        local_iface=local_iface,
        remote_iface=remote_iface,
        prober=ProbeAdapter(remote_ip, timeout=config.probe_timeout),
        throughput=ThroughputAdapter(local, remote, duration=config.trial_duration),
    )


def _plan(config: BenchConfig, adapters: Adapters) -> TestResult:
    if config.fixed_max_mtu is not None:
        upper = f"fixed at {config.fixed_max_mtu} (no discovery)"
    else:
        upper = f"discovered between {config.min_mtu} and {config.max_mtu_ceiling}"
    return TestResult(
        title="Benchmark Plan",
        status=Status.PARTIAL,
        target=f"{adapters.local_iface.host} ⇄ {adapters.remote_iface.host}",
        summary="Interface MTUs on both hosts will be changed during the run.",
        details=[
            f"Local device: {adapters.local_iface.device}",
            f"Remote device: {adapters.remote_iface.device}",
            f"Upper MTU: {upper}",
            f"Step: {config.mtu_step}  |  Trials per MTU: {config.trials_per_mtu}  |  Trial: {config.trial_duration}s",
        ],
    )


def execute(config: BenchConfig, adapters: Adapters, assume_yes: bool = False) -> Optional[ResultTable]:
    """Discover, benchmark and report.  Returns None if the user declined."""
    print_result(_plan(config, adapters))
    if not assume_yes and not confirm("Proceed"):
        console.print("  [yellow]Aborted — nothing was changed.[/yellow]")
        return None

    original = {
        "remote": adapters.remote_iface.read_mtu(),
        "local": adapters.local_iface.read_mtu(),
    }
    logger.debug("original MTUs: %s", original)

    if config.fixed_max_mtu is not None:
        max_mtu = config.fixed_max_mtu
    else:
        print_section("MTU Discovery")
        discoverer = MtuDiscoverer(config, adapters.remote_iface, adapters.local_iface, adapters.prober)
        max_mtu = discoverer.discover()

    if max_mtu < config.min_mtu:
        raise InvalidMaxMtuError(
            f"Maximum MTU {max_mtu} is below the minimum {config.min_mtu}.",
            ["Check the interfaces recovered to the baseline MTU, then rerun."],
        )
    sequence = mtu_sequence(config.min_mtu, max_mtu, config.mtu_step)
    print_result(TestResult(
        title="Maximum Usable MTU",
        status=Status.SUCCESS,
        target=adapters.remote_iface.host,
        summary=f"Benchmarking up to MTU {max_mtu}.",
        details=[f"MTUs to test: {', '.join(str(m) for m in sequence)}"],
    ))

    print_section("Throughput Benchmark")
    runner = BenchmarkRunner(config, adapters.remote_iface, adapters.local_iface, adapters.throughput)
    table = runner.run(max_mtu)

    print_section("Results")
    render_report(table)
    _restore(adapters, original)
    return table


def _restore(adapters: Adapters, original: dict) -> None:
    for side, iface in (("remote", adapters.remote_iface), ("local", adapters.local_iface)):
        mtu = original[side]
        if mtu is None:
            continue
        if iface.set_mtu(mtu) == mtu:
            console.print(f"  [green]✔[/green] Restored {side} {iface.device} to MTU {mtu}")
        else:
            logger.warning("could not restore %s %s to MTU %d; run: %s",
                           side, iface.device, mtu, iface.restore_command(mtu))


def _error_result(exc: MtuBenchError) -> TestResult:
    return TestResult(
        title=exc.title,
        status=Status.ERROR,
        summary=str(exc),
        details=exc.remediation,
    )


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt


def run(argv: Optional[List[str]] = None,
        build: Callable[[BenchConfig, str, str], Adapters] = build_adapters) -> int:
    """Parse *argv*, do the run and return the process exit code."""
    args = _build_parser().parse_args(argv)
    _setup_logging(args.debug)

    adapters: Optional[Adapters] = None
    try:
        for label in ("local_ip", "remote_ip"):
            ok, cleaned = validate_address(getattr(args, label))
            if not ok:
                raise ConfigError(cleaned)
            setattr(args, label, cleaned)
        config = _config_from_args(args)
        adapters = build(config, args.local_ip, args.remote_ip)
        execute(config, adapters, assume_yes=args.yes)
    except MtuBenchError as exc:
        print_result(_error_result(exc))
        return exc.exit_code
    except KeyboardInterrupt:
        console.print("\n  [yellow]⚠ Interrupted — stopping remote listener.[/yellow]")
        if adapters is not None:
            try:
                adapters.throughput.stop_listener()
            except MtuBenchError as exc:
                logger.warning("listener teardown failed: %s", exc)
            for iface in (adapters.remote_iface, adapters.local_iface):
                console.print(f"  [dim]Restore {iface.side} MTU with: {iface.restore_command(args.min_mtu)}[/dim]")
        return EXIT_INTERRUPTED
    return 0


def main() -> None:
    """Main entry-point called by the ``mtubench`` console script or ``python -m mtubench``."""
    signal.signal(signal.SIGTERM, _raise_interrupt)
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
