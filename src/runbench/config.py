"""Configuration building, validation and YAML profiles.

Handles:
- Loading defaults from a YAML profile.
- Checking that command-line options form a valid invocation
  (direct mode or batch mode, never both).
- Building the Configuration and its commands for either mode.
- Validating the final configuration before anything is executed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from runbench.batch import parse_batch_file
from runbench.errors import ConfigError
from runbench.model import FORMAT_STYLES, Configuration

log = logging.getLogger("runbench")

PROFILE_KEYS = ("num_runs", "sleep", "format", "verbosity", "batch")
_PROFILE_TYPES: dict[str, type | tuple[type, ...]] = {
    "num_runs": int,
    "sleep": (int, float),
    "format": str,
    "verbosity": int,
    "batch": str,
}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str


def validate_config(config: Configuration) -> list[ValidationError]:
    """Validate a configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if config.num_runs <= 0:
        errors.append(
            ValidationError(
                field="num_runs",
                message=f"'num runs' must be positive (got {config.num_runs}).",
            )
        )

    if config.sleep_max < 0:
        errors.append(
            ValidationError(
                field="sleep_max",
                message=f"'sleep' cannot be negative (got {config.sleep_max}).",
            )
        )

    if config.verbosity < 0:
        errors.append(
            ValidationError(
                field="verbosity",
                message=f"Verbosity cannot be negative (got {config.verbosity}).",
            )
        )

    if config.format_style not in FORMAT_STYLES:
        errors.append(
            ValidationError(
                field="format_style",
                message=(
                    f"Unknown format style '{config.format_style}'. "
                    f"Choose one of: {', '.join(FORMAT_STYLES)}."
                ),
            )
        )

    for i, cmd in enumerate(config.commands):
        if len(cmd.runs) != config.num_runs:
            errors.append(
                ValidationError(
                    field=f"commands[{i}].runs",
                    message=(
                        f"Command {cmd.display()!r} has {len(cmd.runs)} run slots, "
                        f"expected {config.num_runs}."
                    ),
                )
            )

    return errors


def require_valid(config: Configuration) -> None:
    """Raise ConfigError if *config* has any validation errors."""
    errors = validate_config(config)
    if errors:
        if len(errors) == 1:
            raise ConfigError(errors[0].message)
        messages = [f"  {e.field}: {e.message}" for e in errors]
        raise ConfigError("Invalid configuration:\n" + "\n".join(messages))


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load default settings from a YAML profile.

    Profile format::

        num_runs: 10
        sleep: 1
        format: rusage
        verbosity: 1
        batch: compressors.txt   # relative to the profile's directory

    Every key is optional; options given on the command line win.

    Returns:
        The parsed YAML as a dict (empty for an empty file).

    Raises:
        ConfigError: If the file cannot be read or is not a mapping of
            known keys.
    """
    try:
        text = profile_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read profile '{profile_path}': {exc.strerror or exc}") from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in profile '{profile_path}': {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Profile must be a YAML mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - set(PROFILE_KEYS))
    if unknown:
        raise ConfigError(
            f"Unknown key(s) in profile '{profile_path}': {', '.join(map(str, unknown))}. "
            f"Valid keys: {', '.join(PROFILE_KEYS)}"
        )

    for key, expected in _PROFILE_TYPES.items():
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigError(
                f"Profile key '{key}' has invalid value {value!r} in '{profile_path}'."
            )

    if data.get("batch"):
        batch = Path(str(data["batch"]))
        if not batch.is_absolute():
            batch = profile_path.parent / batch
        data["batch"] = str(batch)

    return data


def _pick(cli_value: Any, profile: dict[str, Any], key: str, default: Any) -> Any:
    """CLI value if given, else profile value, else *default*."""
    if cli_value is not None:
        return cli_value
    return profile.get(key, default)


# ---------------------------------------------------------------------------
# Invocation checks
# ---------------------------------------------------------------------------


def check_invocation(
    *,
    batch_file: str | None,
    format_style: str,
    placeholder: str | None,
    input_cmd: str | None,
    output_cmd: str | None,
    quiet: bool,
    argv: list[str],
) -> None:
    """Reject option combinations that make no sense together.

    Raises:
        ConfigError: Describing the first conflict found.
    """
    if batch_file:
        if format_style == "liketime":
            raise ConfigError("Can't use batch file mode with -f liketime.")
        if input_cmd is not None or output_cmd is not None or placeholder is not None or quiet:
            raise ConfigError(
                "In batch file mode, -I/-i/-o/-q must be specified per-command "
                "in the batch file."
            )
        if argv:
            raise ConfigError("Unexpected arguments in batch file mode.")
    if quiet and output_cmd is not None:
        raise ConfigError("-q and -o are mutually exclusive.")
    if not batch_file and not argv:
        raise ConfigError("Missing command.")


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def build_configuration(
    argv: list[str],
    *,
    profile: dict[str, Any] | None = None,
    batch_file: str | None = None,
    num_runs: int | None = None,
    sleep_max: float | None = None,
    format_style: str | None = None,
    verbosity: int | None = None,
    placeholder: str | None = None,
    input_cmd: str | None = None,
    output_cmd: str | None = None,
    quiet: bool = False,
) -> Configuration:
    """Build and validate a Configuration from command-line values.

    Values left as None fall back to *profile*, then to the Configuration
    defaults.  In batch mode the commands come from *batch_file*;
    otherwise a single command is built from *argv* and the per-command
    options.

    Raises:
        ConfigError: On invalid values or conflicting options.
        ParseError: If the batch file is malformed.
        FileAccessError: If the batch file cannot be read.
    """
    prof = profile or {}
    defaults = Configuration()
    batch_file = batch_file or prof.get("batch") or None

    config = Configuration(
        num_runs=_pick(num_runs, prof, "num_runs", defaults.num_runs),
        format_style=_pick(format_style, prof, "format", defaults.format_style),
        sleep_max=_pick(sleep_max, prof, "sleep", defaults.sleep_max),
        verbosity=_pick(verbosity, prof, "verbosity", defaults.verbosity),
    )

    check_invocation(
        batch_file=batch_file,
        format_style=config.format_style,
        placeholder=placeholder,
        input_cmd=input_cmd,
        output_cmd=output_cmd,
        quiet=quiet,
        argv=argv,
    )
    # Slots are sized from num_runs, so reject bad values before parsing.
    require_valid(config)

    if batch_file:
        config.commands = parse_batch_file(batch_file, config.num_runs)
        log.debug("Batch mode: %d command(s) from %s", len(config.commands), batch_file)
    else:
        config.add_command(
            argv,
            placeholder=placeholder,
            input_cmd=input_cmd,
            output_cmd=output_cmd,
            quiet=quiet,
        )

    require_valid(config)
    return config
