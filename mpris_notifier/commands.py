"""User-configured commands, called after each notification."""

import os
import subprocess
from typing import List, Sequence

from .log import log

COMMAND_TIMEOUT = 30  # seconds


class Command:
    """One external program invocation"""

    def __init__(self, args: Sequence[str]):
        self.args = [os.path.expanduser(args[0])] + list(args[1:])

    def __repr__(self):
        return f"Command({self.args!r})"

    def __eq__(self, other):
        return isinstance(other, Command) and self.args == other.args

    def run(self) -> bool:
        """Run to completion. Failures are logged, never raised."""
        try:
            result = subprocess.run(
                self.args,
                capture_output=True,
                timeout=COMMAND_TIMEOUT,
            )
        except (OSError, subprocess.SubprocessError) as e:
            log(f"[Command] Warning: {self.args[0]} failed: {e}")
            return False

        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            log(f"[Command] Warning: {self.args[0]} exited with status {result.returncode}: {stderr[:200]}")
            return False
        return True


def build_commands(configuration) -> List[Command]:
    """Commands from configuration; empty argument lists are skipped"""
    return [Command(args) for args in configuration.commands if args]
