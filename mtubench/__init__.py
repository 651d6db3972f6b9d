"""MTU Bench — path MTU discovery and throughput benchmarking between two hosts."""

__app_name__ = "MTU Bench"
__version__ = "1.0.0"
