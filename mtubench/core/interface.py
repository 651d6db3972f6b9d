"""
Interface discovery and MTU changes via iproute2 (``ip``).

One :class:`InterfaceAdapter` drives one device on one host; whether that host
is local or remote depends only on the shell it was built with.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Union

from mtubench.core.errors import InterfaceNotFoundError
from mtubench.core.remote import LocalShell, RemoteShell

logger = logging.getLogger(__name__)

Shell = Union[LocalShell, RemoteShell]

# "2: eth0    inet 192.168.1.10/24 brd 192.168.1.255 scope global eth0\ ..."
_ADDR_LINE = re.compile(r"^\d+:\s+(?P<dev>[^\s@:]+)\S*\s+inet6?\s+(?P<addr>[^/\s]+)")
_MTU_FIELD = re.compile(r"\bmtu\s+(\d+)")


def parse_device_for_address(lines: List[str], address: str) -> Optional[str]:
    """Return the device in ``ip -o addr show`` output that carries *address*."""
    for line in lines:
        m = _ADDR_LINE.match(line.strip())
        if m and m.group("addr") == address:
            return m.group("dev")
    return None


def parse_mtu(lines: List[str]) -> Optional[int]:
    """Extract the MTU from ``ip link show`` output, or None if it is absent."""
    for line in lines:
        m = _MTU_FIELD.search(line)
        if m:
            return int(m.group(1))
    return None


def detect_interface(shell: Shell, address: str) -> str:
    """Find the device on *shell*'s host that owns *address*."""
    lines, rc = shell.run(["ip", "-o", "addr", "show"])
    device = parse_device_for_address(lines, address) if rc == 0 else None
    if device is None:
        raise InterfaceNotFoundError(shell.host, address, remote=shell.is_remote)
    logger.debug("%s: %s is on %s", shell.host, address, device)
    return device


class InterfaceAdapter:
    """Read and change the MTU of a single device."""

    def __init__(self, shell: Shell, device: str) -> None:
        self.shell = shell
        self.device = device

    @property
    def host(self) -> str:
        return self.shell.host

    @property
    def side(self) -> str:
        return "remote" if self.shell.is_remote else "local"

    def read_mtu(self) -> Optional[int]:
        lines, rc = self.shell.run(["ip", "-o", "link", "show", "dev", self.device])
        if rc != 0:
            return None
        return parse_mtu(lines)

    def set_mtu(self, mtu: int) -> Optional[int]:
        """Ask for *mtu* and return what the device actually reports afterwards.

        The kernel or driver may refuse the value; callers compare the result
        with what they requested.
        """
        _, rc = self.shell.run(self._set_argv(mtu))
        if rc != 0:
            logger.debug("%s %s refused mtu %d (rc=%d)", self.side, self.device, mtu, rc)
        return self.read_mtu()

    def restore_command(self, mtu: int) -> str:
        """The command a user can run by hand to put *mtu* back."""
        return self.shell.describe(self._set_argv(mtu))

    def _set_argv(self, mtu: int) -> List[str]:
        return ["ip", "link", "set", "dev", self.device, "mtu", str(mtu)]
