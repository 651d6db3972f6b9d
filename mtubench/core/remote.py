"""
Command execution on either end of the link.

``LocalShell`` and ``RemoteShell`` share one call shape,
``run(argv) -> (stdout_lines, exit_status)``, so the interface and throughput
adapters never care which host they are talking to.  The remote side is plain
``ssh`` in batch mode: credentials must already be set up (keys or agent),
because nothing here can answer a password prompt.
"""

from __future__ import annotations

import logging
import shlex
from typing import List, Optional, Tuple

from mtubench.core.errors import RemoteCommandError
from mtubench.core.utils import run_command

logger = logging.getLogger(__name__)

# ssh reserves 255 for its own failures (auth, unreachable host, ...)
SSH_CHANNEL_FAILURE = 255

SSH_OPTIONS = [
    "-o", "BatchMode=yes",
    "-o", "ConnectTimeout=10",
    "-o", "StrictHostKeyChecking=accept-new",
]


class LocalShell:
    """Run commands on this machine."""

    def __init__(self, host: str) -> None:
        self.host = host
        self.is_remote = False

    def run(self, argv: List[str], timeout: Optional[int] = 60) -> Tuple[List[str], int]:
        rc, stdout, stderr = run_command(argv, timeout=timeout)
        logger.debug("local %s -> rc=%s", shlex.join(argv), rc)
        if rc != 0 and stderr.strip():
            logger.debug("local stderr: %s", stderr.strip())
        return stdout.splitlines(), rc

    def describe(self, argv: List[str]) -> str:
        """Return the command line a user would type to run *argv* by hand."""
        return shlex.join(argv)


class RemoteShell:
    """Run commands on the remote host over non-interactive ssh."""

    def __init__(self, host: str, user: str = "root") -> None:
        self.host = host
        self.user = user
        self.is_remote = True

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host

    def _ssh_argv(self, argv: List[str]) -> List[str]:
        return ["ssh", *SSH_OPTIONS, self.destination, shlex.join(argv)]

    def run(self, argv: List[str], timeout: Optional[int] = None) -> Tuple[List[str], int]:
        """Execute *argv* remotely.

        No timeout is applied by default: a hung channel hangs the caller.
        Raises :class:`RemoteCommandError` when ssh itself fails.
        """
        rc, stdout, stderr = run_command(self._ssh_argv(argv), timeout=timeout)
        logger.debug("remote(%s) %s -> rc=%s", self.host, shlex.join(argv), rc)
        if rc == SSH_CHANNEL_FAILURE or rc < 0:
            raise RemoteCommandError(
                f"Could not run `{shlex.join(argv)}` on {self.destination}: {stderr.strip() or 'ssh failed'}",
                [
                    f"Verify non-interactive access works: ssh {self.destination} true",
                    "Install an SSH key for the remote account (ssh-copy-id).",
                ],
            )
        if rc != 0 and stderr.strip():
            logger.debug("remote stderr: %s", stderr.strip())
        return stdout.splitlines(), rc

    def describe(self, argv: List[str]) -> str:
        return f"ssh {self.destination} {shlex.quote(shlex.join(argv))}"
