"""Exceptions raised by runbench.

None of these are recoverable: they propagate to the command-line
handler, which prints the message and exits with :attr:`exit_code`.
A timed command exiting non-zero is *not* an error and never raises.
"""

from __future__ import annotations


class RunbenchError(Exception):
    """Base class for all fatal runbench errors."""

    exit_code = 1


class ConfigError(RunbenchError):
    """Invalid configuration values or option combinations."""


class ParseError(RunbenchError):
    """Malformed batch file syntax."""

    def __init__(self, message: str, *, line: int, source: str = "<string>") -> None:
        self.message = message
        self.line = line
        self.source = source
        super().__init__(f"{source}: {message} at line {line}.")


class FileAccessError(RunbenchError):
    """A batch file, results file or temporary buffer could not be opened, read or written."""


class SpawnError(RunbenchError):
    """The timed command or a helper command could not be started."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Error when attempting to run {command}: {reason}")


class HelperExitError(RunbenchError):
    """An input-source or output-sink helper exited with a non-zero status."""

    def __init__(self, command: str, status: int) -> None:
        self.command = command
        self.status = status
        super().__init__(f"Exiting because '{command}' failed (exit status {status}).")
