"""Command-line interface for runbench.

Two modes::

    runbench [-n N] [-s S] [-I TOKEN] [-i CMD] [-o CMD] [-q] COMMAND [ARGS]...
    runbench -b FILE [-n N] [-s S]

The raw run records are written as JSON (see :mod:`runbench.results`)
for an external report renderer.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from runbench import __version__
from runbench.errors import FileAccessError, RunbenchError
from runbench.logging import setup_logging


def _configure_logging(verbosity: int, log_file: Path | None) -> logging.Logger:
    """Set up logging, reporting an unopenable log file like any other error."""
    try:
        return setup_logging(verbosity=verbosity, log_file=log_file)
    except OSError as exc:
        raise FileAccessError(
            f"Error when trying to open log file '{log_file}': {exc.strerror or exc}"
        ) from exc


@click.command(
    context_settings={
        "allow_interspersed_args": False,
        "help_option_names": ["-h", "--help"],
    }
)
@click.version_option(version=__version__)
@click.argument("argv", nargs=-1, type=click.UNPROCESSED)
@click.option(
    "-b",
    "--batch",
    "batch_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Batch file with one command per line.",
)
@click.option(
    "-f",
    "--format",
    "format_style",
    type=click.Choice(["normal", "liketime", "rusage"]),
    default=None,
    help="Report format passed to the renderer (default: normal).",
)
@click.option("-I", "placeholder", type=str, default=None, help="Run-number placeholder.")
@click.option("-i", "input_cmd", type=str, default=None, help="Command whose output is stdin.")
@click.option("-o", "output_cmd", type=str, default=None, help="Command fed the stdout.")
@click.option(
    "-n",
    "--num-runs",
    type=int,
    default=None,
    help="Runs per command (default: 1).",
)
@click.option("-q", "quiet", is_flag=True, default=False, help="Discard the command's stdout.")
@click.option(
    "-s",
    "--sleep",
    "sleep_max",
    type=float,
    default=None,
    help="Maximum random sleep between runs in seconds (default: 3).",
)
@click.option("-v", "verbose", count=True, help="Echo each command before it runs (repeatable).")
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML profile with default settings.",
)
@click.option("--seed", type=int, default=None, help="Seed for the run order and sleeps.")
@click.option(
    "--results",
    "results_path",
    type=click.Path(dir_okay=False, allow_dash=True),
    default="-",
    show_default=True,
    help=(
        "Where to write the raw run records as JSON. '-' is stdout, which the "
        "timed commands share unless -q or -o is used."
    ),
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write a DEBUG log to this file.",
)
def main(
    argv: tuple[str, ...],
    batch_file: str | None,
    format_style: str | None,
    placeholder: str | None,
    input_cmd: str | None,
    output_cmd: str | None,
    num_runs: int | None,
    quiet: bool,
    sleep_max: float | None,
    verbose: int,
    profile_path: Path | None,
    seed: int | None,
    results_path: str,
    log_file: Path | None,
) -> None:
    """Time repeated runs of COMMAND, or of every command in a batch file.

    Runs of all commands are shuffled together and separated by a random
    sleep so that caching and periodic system activity do not favour any
    one command.

    \b
    Examples:
        # Ten runs, input regenerated for each run
        runbench -n 10 -I % -i "gen-input --seed %" -q ./mytool --fast

        # Compare the commands listed in a batch file
        runbench -n 20 -s 1 -b compressors.txt --results times.json
    """
    from runbench.config import build_configuration, load_profile
    from runbench.results import save_results
    from runbench.scheduler import Scheduler, make_rng

    try:
        log = _configure_logging(verbose, log_file)
        profile = load_profile(profile_path) if profile_path else {}
        config = build_configuration(
            list(argv),
            profile=profile,
            batch_file=batch_file,
            num_runs=num_runs,
            sleep_max=sleep_max,
            format_style=format_style,
            verbosity=verbose or None,
            placeholder=placeholder,
            input_cmd=input_cmd,
            output_cmd=output_cmd,
            quiet=quiet,
        )
        if config.verbosity != verbose:
            log = _configure_logging(config.verbosity, log_file)

        total = Scheduler(config, rng=make_rng(seed)).run()
        log.debug("Completed %d run(s)", total)
        save_results(results_path, config)
    except RunbenchError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(exc.exit_code) from exc
    except KeyboardInterrupt:
        click.echo("\nInterrupted.", err=True)
        raise SystemExit(130)  # noqa: B904


if __name__ == "__main__":
    main()
