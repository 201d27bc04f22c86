"""Randomized scheduling of runs.

Every (command, run) pair is executed exactly once.  The pairs are
shuffled up front so that repeated runs of one command are not clustered
together, and a random pause is inserted between consecutive runs so
measurements do not line up with periodic system activity.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable

from runbench.executor import execute
from runbench.model import Command, Configuration, RunRecord
from runbench.process import OsProcessRunner, ProcessRunner

log = logging.getLogger("runbench")

Executor = Callable[[Command, int, Configuration, ProcessRunner], RunRecord]


def make_rng(seed: int | None = None) -> random.Random:
    """Return a generator seeded with *seed*, or from the clocks if None."""
    if seed is None:
        seed = time.perf_counter_ns() ^ time.time_ns()
    log.debug("Scheduler seed: %d", seed)
    return random.Random(seed)


class Scheduler:
    """Drives a full benchmark pass over a Configuration.

    Usage::

        scheduler = Scheduler(config, rng=make_rng(42))
        scheduler.run()
        # every config.commands[i].runs[j] is now a RunRecord
    """

    def __init__(
        self,
        config: Configuration,
        runner: ProcessRunner | None = None,
        *,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
        executor: Executor = execute,
    ) -> None:
        self.config = config
        self.runner: ProcessRunner = runner or OsProcessRunner()
        self.rng = rng or make_rng()
        self.sleep = sleep
        self.executor = executor

    def plan(self) -> list[tuple[int, int]]:
        """Return every ``(command_index, run_index)`` pair in random order."""
        pairs = [
            (cmd_idx, run_idx)
            for cmd_idx in range(len(self.config.commands))
            for run_idx in range(self.config.num_runs)
        ]
        self.rng.shuffle(pairs)
        return pairs

    def run(self) -> int:
        """Execute the whole schedule.

        Returns:
            The number of runs executed.

        Raises:
            RunbenchError: Propagated unchanged from the executor; the
                schedule is abandoned.
        """
        pairs = self.plan()
        total = len(pairs)
        log.debug(
            "Scheduling %d run(s) of %d command(s)",
            total,
            len(self.config.commands),
        )

        for n, (cmd_idx, run_idx) in enumerate(pairs, start=1):
            cmd = self.config.commands[cmd_idx]
            log.debug("[%d/%d] command %d, run %d", n, total, cmd_idx + 1, run_idx + 1)
            self.executor(cmd, run_idx, self.config, self.runner)

            if n < total and self.config.sleep_max > 0:
                delay = self.rng.random() * self.config.sleep_max
                log.debug("Sleeping %.3fs", delay)
                self.sleep(delay)

        return total
