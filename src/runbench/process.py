"""Process execution for timed runs and helper commands.

The executor talks to a :class:`ProcessRunner` rather than to
``subprocess`` directly, so the scheduling and redirection logic can be
exercised with a fake runner.  :class:`OsProcessRunner` is the real one.

Timed commands are started from their argv without a shell.  Helper
commands (input sources and output sinks) are command strings run through
``/bin/sh -c``.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from typing import IO, Any, Protocol, Union

from runbench.errors import SpawnError
from runbench.model import ResourceUsage

log = logging.getLogger("runbench")

# None inherits, subprocess.DEVNULL discards, a file object redirects.
Redirect = Union[None, int, IO[Any]]


class ProcessRunner(Protocol):
    """What the executor needs from the operating system."""

    def spawn(self, argv: list[str], *, stdin: Redirect = None, stdout: Redirect = None) -> Any:
        """Start the timed command and return a handle for :meth:`wait`."""

    def wait(self, handle: Any) -> tuple[float, ResourceUsage, int]:
        """Reap the command; return ``(duration_s, rusage, exit_status)``."""

    def run_helper(
        self, command: str, *, stdin: Redirect = None, stdout: Redirect = None
    ) -> int:
        """Run a helper command string to completion and return its exit status."""


@dataclass
class SpawnedProcess:
    """A running timed command and the moment it was started."""

    proc: subprocess.Popen[bytes]
    argv: list[str]
    started: float


class OsProcessRunner:
    """Runs commands with ``subprocess`` and reaps them with ``os.wait4``.

    ``os.wait4`` reports the resource usage of exactly the child it reaps,
    so concurrent or earlier children never leak into a measurement.
    """

    def spawn(
        self,
        argv: list[str],
        *,
        stdin: Redirect = None,
        stdout: Redirect = None,
    ) -> SpawnedProcess:
        try:
            started = time.perf_counter()
            proc = subprocess.Popen(argv, stdin=stdin, stdout=stdout)
        except OSError as exc:
            raise SpawnError(argv[0], exc.strerror or str(exc)) from exc
        return SpawnedProcess(proc=proc, argv=list(argv), started=started)

    def wait(self, handle: SpawnedProcess) -> tuple[float, ResourceUsage, int]:
        _, status, ru = os.wait4(handle.proc.pid, 0)
        ended = time.perf_counter()
        exit_status = os.waitstatus_to_exitcode(status)
        # Popen did not reap the child itself; tell it the outcome.
        handle.proc.returncode = exit_status
        return ended - handle.started, ResourceUsage.from_rusage(ru), exit_status

    def run_helper(
        self,
        command: str,
        *,
        stdin: Redirect = None,
        stdout: Redirect = None,
    ) -> int:
        log.debug("Running helper: %s", command)
        try:
            proc = subprocess.Popen(command, shell=True, stdin=stdin, stdout=stdout)
        except OSError as exc:
            raise SpawnError(command, exc.strerror or str(exc)) from exc
        return proc.wait()
