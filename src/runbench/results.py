"""Raw result export.

The filled run slots are written as a single JSON document for whatever
renders the report::

    {
      "config": {"num_runs": 3, "sleep_max": 3.0, "format": "normal", "verbosity": 0},
      "commands": [
        {
          "argv": ["gzip", "-9"],
          "input_cmd": "cat corpus.txt",
          "output_cmd": null,
          "placeholder": null,
          "quiet": true,
          "runs": [
            {"index": 1, "duration_s": 0.41, "exit_status": 0, "rusage": {...}},
            ...
          ]
        }
      ]
    }

Run ``index`` is 1-based, matching the number substituted into helper
commands.  Empty slots are written as ``null``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from runbench.errors import FileAccessError
from runbench.logging import get_logger
from runbench.model import Command, Configuration, RunRecord

log = get_logger("results")


def command_to_dict(cmd: Command) -> dict[str, Any]:
    runs: list[dict[str, Any] | None] = []
    for i, record in enumerate(cmd.runs):
        if record is None:
            runs.append(None)
        else:
            runs.append({"index": i + 1, **record.to_dict()})
    return {
        "argv": list(cmd.argv),
        "input_cmd": cmd.input_cmd,
        "output_cmd": cmd.output_cmd,
        "placeholder": cmd.placeholder,
        "quiet": cmd.quiet,
        "runs": runs,
    }


def command_from_dict(data: dict[str, Any]) -> Command:
    runs: list[RunRecord | None] = [
        None if r is None else RunRecord.from_dict(r) for r in data.get("runs", [])
    ]
    return Command(
        argv=list(data["argv"]),
        input_cmd=data.get("input_cmd"),
        output_cmd=data.get("output_cmd"),
        placeholder=data.get("placeholder"),
        quiet=data.get("quiet", False),
        runs=runs,
    )


def results_to_dict(config: Configuration) -> dict[str, Any]:
    """Serialize a configuration and all its run records."""
    return {
        "config": {
            "num_runs": config.num_runs,
            "sleep_max": config.sleep_max,
            "format": config.format_style,
            "verbosity": config.verbosity,
        },
        "commands": [command_to_dict(cmd) for cmd in config.commands],
    }


def results_from_dict(data: dict[str, Any]) -> Configuration:
    """Rebuild a Configuration from :func:`results_to_dict` output."""
    conf = data.get("config", {})
    return Configuration(
        num_runs=conf.get("num_runs", 1),
        format_style=conf.get("format", "normal"),
        sleep_max=conf.get("sleep_max", 0.0),
        verbosity=conf.get("verbosity", 0),
        commands=[command_from_dict(c) for c in data.get("commands", [])],
    )


def save_results(path: str | Path, config: Configuration) -> None:
    """Write the results of *config* as JSON to *path* (``-`` for stdout).

    Raises:
        FileAccessError: If the file cannot be written.
    """
    text = json.dumps(results_to_dict(config), indent=2) + "\n"
    if str(path) == "-":
        sys.stdout.write(text)
        sys.stdout.flush()
        return
    try:
        Path(path).write_text(text, encoding="utf-8", errors="surrogateescape")
    except OSError as exc:
        raise FileAccessError(
            f"Error when trying to write '{path}': {exc.strerror or exc}"
        ) from exc
    log.debug("Wrote results for %d command(s) to %s", len(config.commands), path)


def load_results(path: str | Path) -> Configuration:
    """Load results previously written by :func:`save_results`."""
    text = Path(path).read_text(encoding="utf-8", errors="surrogateescape")
    return results_from_dict(json.loads(text))
