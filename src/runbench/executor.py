"""Execution of a single timed run.

One call to :func:`execute` performs, in order:

1. Input preparation: the input-source helper (if any) runs to
   completion and its stdout is buffered in a temporary file.
2. The timed command runs, reading that buffer as stdin and writing
   stdout to a capture buffer (output sink configured, even when quiet),
   to ``/dev/null`` (quiet) or to the inherited stdout.
3. Output sinking: the output-sink helper (if any) reads the captured
   output and must exit successfully.

Only step 2 falls inside the measured window.  Helper failures are
fatal; the timed command's own exit status is just recorded.
"""

from __future__ import annotations

import contextlib
import logging
import subprocess
import tempfile
from typing import IO, Any

from runbench.errors import FileAccessError, HelperExitError
from runbench.model import Command, Configuration, RunRecord
from runbench.process import ProcessRunner, Redirect
from runbench.substitute import substitute

log = logging.getLogger("runbench")


def _temporary_buffer(stack: contextlib.ExitStack, purpose: str) -> IO[Any]:
    """Open an anonymous temporary file that is closed when *stack* unwinds."""
    try:
        buf = tempfile.TemporaryFile(prefix="runbench-")
    except OSError as exc:
        raise FileAccessError(f"Error creating temporary file for {purpose}: {exc}") from exc
    return stack.enter_context(buf)


def _prepare_input(
    input_cmd: str,
    runner: ProcessRunner,
    stack: contextlib.ExitStack,
) -> IO[Any]:
    """Run the input-source helper and return its output, rewound."""
    buf = _temporary_buffer(stack, "command input")
    status = runner.run_helper(input_cmd, stdout=buf)
    if status != 0:
        raise HelperExitError(input_cmd, status)
    buf.seek(0)
    return buf


def _sink_output(output_cmd: str, captured: IO[Any], runner: ProcessRunner) -> None:
    """Feed the captured output of the timed command into the sink helper."""
    captured.flush()
    captured.seek(0)
    status = runner.run_helper(output_cmd, stdin=captured)
    if status != 0:
        raise HelperExitError(output_cmd, status)


def execute(
    command: Command,
    run_index: int,
    config: Configuration,
    runner: ProcessRunner,
) -> RunRecord:
    """Run *command* once and record the result in slot *run_index*.

    Args:
        command: The command to run.  Its slot *run_index* must be empty.
        run_index: 0-based run index; helpers see ``run_index + 1``.
        config: Supplies the verbosity level.
        runner: Process capability used for every child.

    Returns:
        The RunRecord stored in the slot.

    Raises:
        SpawnError: If the timed command or a helper cannot be started.
        HelperExitError: If a helper exits non-zero.
        FileAccessError: If a temporary buffer cannot be created.
    """
    if config.verbosity > 0:
        log.info("===> Executing %s", command.display())

    run_number = run_index + 1
    input_cmd = substitute(command.input_cmd, command.placeholder, run_number)
    output_cmd = substitute(command.output_cmd, command.placeholder, run_number)

    with contextlib.ExitStack() as stack:
        stdin: Redirect = None
        if input_cmd is not None:
            stdin = _prepare_input(input_cmd, runner, stack)

        captured: IO[Any] | None = None
        if output_cmd is not None:
            captured = _temporary_buffer(stack, "command output")

        # An output sink takes precedence over quiet.
        stdout: Redirect = None
        if captured is not None:
            stdout = captured
        elif command.quiet:
            stdout = subprocess.DEVNULL

        handle = runner.spawn(command.argv, stdin=stdin, stdout=stdout)
        duration, rusage, exit_status = runner.wait(handle)

        record = RunRecord(duration_s=duration, rusage=rusage, exit_status=exit_status)
        command.fill(run_index, record)
        log.debug(
            "Run %d of %s: %.6fs, exit status %d",
            run_number,
            command.display(),
            duration,
            exit_status,
        )

        if output_cmd is not None and captured is not None:
            _sink_output(output_cmd, captured, runner)

    return record
