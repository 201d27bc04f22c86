"""Configuration, commands and per-run records.

Hierarchy::

    Configuration (one program invocation)
      → commands: list[Command]
        → runs: list[RunRecord | None]   (one slot per configured run)
          → rusage: ResourceUsage

Slots start out as ``None`` and are filled exactly once by the executor.
Nothing here computes statistics; the filled slots are handed to whatever
renders the report.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field, fields
from typing import Any

FORMAT_STYLES = ("normal", "liketime", "rusage")


# ---------------------------------------------------------------------------
# Resource usage
# ---------------------------------------------------------------------------


@dataclass
class ResourceUsage:
    """Resource usage of one finished child, as reported by ``wait4``."""

    user_time_s: float = 0.0
    sys_time_s: float = 0.0
    max_rss: int = 0  # KB on Linux, bytes on macOS
    shared_mem: int = 0
    unshared_data: int = 0
    unshared_stack: int = 0
    minor_faults: int = 0
    major_faults: int = 0
    swaps: int = 0
    block_in: int = 0
    block_out: int = 0
    msgs_sent: int = 0
    msgs_received: int = 0
    signals: int = 0
    voluntary_switches: int = 0
    involuntary_switches: int = 0

    @classmethod
    def from_rusage(cls, ru: Any) -> ResourceUsage:
        """Build from a ``resource.struct_rusage``."""
        return cls(
            user_time_s=ru.ru_utime,
            sys_time_s=ru.ru_stime,
            max_rss=ru.ru_maxrss,
            shared_mem=ru.ru_ixrss,
            unshared_data=ru.ru_idrss,
            unshared_stack=ru.ru_isrss,
            minor_faults=ru.ru_minflt,
            major_faults=ru.ru_majflt,
            swaps=ru.ru_nswap,
            block_in=ru.ru_inblock,
            block_out=ru.ru_oublock,
            msgs_sent=ru.ru_msgsnd,
            msgs_received=ru.ru_msgrcv,
            signals=ru.ru_nsignals,
            voluntary_switches=ru.ru_nvcsw,
            involuntary_switches=ru.ru_nivcsw,
        )

    @property
    def cpu_time_s(self) -> float:
        """Total CPU time (user + system)."""
        return self.user_time_s + self.sys_time_s

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        data: dict[str, Any] = {f.name: getattr(self, f.name) for f in fields(self)}
        data["user_time_s"] = round(self.user_time_s, 6)
        data["sys_time_s"] = round(self.sys_time_s, 6)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceUsage:
        """Deserialize from a dict, ignoring unknown fields."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


# ---------------------------------------------------------------------------
# RunRecord
# ---------------------------------------------------------------------------


@dataclass
class RunRecord:
    """Outcome of one timed execution of a command."""

    duration_s: float
    rusage: ResourceUsage
    exit_status: int  # negative: killed by that signal number

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "duration_s": round(self.duration_s, 9),
            "exit_status": self.exit_status,
            "rusage": self.rusage.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunRecord:
        return cls(
            duration_s=data["duration_s"],
            rusage=ResourceUsage.from_dict(data.get("rusage", {})),
            exit_status=data.get("exit_status", 0),
        )


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


@dataclass
class Command:
    """A command to benchmark, plus its optional helper commands."""

    argv: list[str]
    input_cmd: str | None = None  # stdout becomes the timed command's stdin
    output_cmd: str | None = None  # receives the timed command's stdout
    placeholder: str | None = None  # replaced by the run number in helpers
    quiet: bool = False
    runs: list[RunRecord | None] = field(default_factory=list)

    @classmethod
    def create(cls, argv: list[str], num_runs: int, **kwargs: Any) -> Command:
        """Create a command with *num_runs* empty run slots."""
        return cls(argv=list(argv), runs=[None] * num_runs, **kwargs)

    def fill(self, run_index: int, record: RunRecord) -> None:
        """Store *record* in slot *run_index*.

        Raises:
            ValueError: If the slot has already been filled.
        """
        if self.runs[run_index] is not None:
            raise ValueError(
                f"Run {run_index + 1} of {self.display()} has already been recorded."
            )
        self.runs[run_index] = record

    @property
    def filled(self) -> int:
        """Number of run slots holding a record."""
        return sum(1 for r in self.runs if r is not None)

    @property
    def complete(self) -> bool:
        return all(r is not None for r in self.runs)

    def display(self) -> str:
        """The argv as a shell-quoted string, for diagnostics."""
        return shlex.join(self.argv)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class Configuration:
    """Resolved settings for one runbench invocation."""

    num_runs: int = 1
    format_style: str = "normal"  # passed through to the report renderer
    sleep_max: float = 3.0  # seconds
    verbosity: int = 0
    commands: list[Command] = field(default_factory=list)

    @property
    def total_runs(self) -> int:
        """Number of (command, run) pairs a full schedule executes."""
        return len(self.commands) * self.num_runs

    def add_command(self, argv: list[str], **kwargs: Any) -> Command:
        """Append a new command sized to this configuration's run count."""
        cmd = Command.create(argv, self.num_runs, **kwargs)
        self.commands.append(cmd)
        return cmd
