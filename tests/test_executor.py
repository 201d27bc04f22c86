"""Tests for runbench.executor — single timed runs."""

from __future__ import annotations

import shlex
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from runbench.batch import parse_batch_text
from runbench.errors import HelperExitError, SpawnError
from runbench.executor import execute
from runbench.model import Command, Configuration
from runbench.process import OsProcessRunner
from runbench_test_helpers import FakeRunner


def _command(argv: list[str] | None = None, num_runs: int = 3, **kwargs: object) -> Command:
    return Command.create(argv or ["tool", "--fast"], num_runs, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Redirection and ordering (fake runner)
# ---------------------------------------------------------------------------


class TestExecuteWithFakeRunner(unittest.TestCase):
    """Tests for execute() using an in-memory process runner."""

    def setUp(self) -> None:
        self.runner = FakeRunner()
        self.config = Configuration(num_runs=3)

    def test_plain_run_fills_slot(self) -> None:
        cmd = _command()
        record = execute(cmd, 1, self.config, self.runner)
        self.assertIs(cmd.runs[1], record)
        self.assertIsNone(cmd.runs[0])
        self.assertEqual(record.duration_s, 0.25)
        self.assertEqual(record.exit_status, 0)
        self.assertEqual(
            self.runner.events,
            [("spawn", ["tool", "--fast"]), ("wait", ["tool", "--fast"])],
        )

    def test_plain_run_inherits_stdio(self) -> None:
        execute(_command(), 0, self.config, self.runner)
        self.assertEqual(self.runner.timed_stdin, [None])
        self.assertEqual(self.runner.timed_stdout, [None])

    def test_quiet_discards_stdout(self) -> None:
        execute(_command(quiet=True), 0, self.config, self.runner)
        self.assertEqual(self.runner.timed_stdout, [subprocess.DEVNULL])

    def test_input_command_feeds_stdin(self) -> None:
        self.runner.helper_output["gen 2"] = b"prepared input"
        cmd = _command(input_cmd="gen %", placeholder="%")
        execute(cmd, 1, self.config, self.runner)
        self.assertEqual(self.runner.timed_stdin, [b"prepared input"])
        self.assertEqual(self.runner.events[0], ("helper", "gen 2"))
        self.assertEqual(self.runner.events[1][0], "spawn")

    def test_input_command_without_placeholder_is_unchanged(self) -> None:
        self.runner.helper_output["gen %"] = b"x"
        execute(_command(input_cmd="gen %"), 2, self.config, self.runner)
        self.assertEqual(self.runner.events[0], ("helper", "gen %"))
        self.assertEqual(self.runner.timed_stdin, [b"x"])

    def test_output_command_receives_stdout(self) -> None:
        self.runner.command_output = b"result bytes"
        cmd = _command(output_cmd="check --run %", placeholder="%")
        execute(cmd, 0, self.config, self.runner)
        self.assertEqual(self.runner.sink_input, {"check --run 1": b"result bytes"})
        self.assertEqual(
            [kind for kind, _ in self.runner.events],
            ["spawn", "wait", "helper"],
        )

    def test_helpers_run_outside_timed_window(self) -> None:
        """Input preparation precedes spawn; output sinking follows wait."""
        cmd = _command(input_cmd="in", output_cmd="out")
        execute(cmd, 0, self.config, self.runner)
        self.assertEqual(
            self.runner.events,
            [
                ("helper", "in"),
                ("spawn", ["tool", "--fast"]),
                ("wait", ["tool", "--fast"]),
                ("helper", "out"),
            ],
        )

    def test_output_command_overrides_quiet(self) -> None:
        self.runner.command_output = b"kept\n"
        cmd = _command(quiet=True, output_cmd="wc -c")
        execute(cmd, 0, self.config, self.runner)
        self.assertNotEqual(self.runner.timed_stdout, [subprocess.DEVNULL])
        self.assertEqual(self.runner.sink_input, {"wc -c": b"kept\n"})

    def test_nonzero_exit_is_recorded(self) -> None:
        self.runner.exit_status = 2
        cmd = _command()
        record = execute(cmd, 0, self.config, self.runner)
        self.assertEqual(record.exit_status, 2)
        self.assertIs(cmd.runs[0], record)

    def test_failing_input_command_is_fatal(self) -> None:
        self.runner.helper_status["gen"] = 1
        cmd = _command(input_cmd="gen")
        with self.assertRaises(HelperExitError) as ctx:
            execute(cmd, 0, self.config, self.runner)
        self.assertEqual(ctx.exception.command, "gen")
        self.assertEqual(ctx.exception.status, 1)
        self.assertEqual(cmd.runs, [None, None, None])
        self.assertNotIn("spawn", [kind for kind, _ in self.runner.events])

    def test_failing_output_command_is_fatal(self) -> None:
        self.runner.helper_status["verify 3"] = 4
        cmd = _command(output_cmd="verify %", placeholder="%")
        with self.assertRaises(HelperExitError) as ctx:
            execute(cmd, 2, self.config, self.runner)
        self.assertIn("verify 3", str(ctx.exception))

    def test_refuses_filled_slot(self) -> None:
        cmd = _command()
        execute(cmd, 0, self.config, self.runner)
        with self.assertRaises(ValueError):
            execute(cmd, 0, self.config, self.runner)

    def test_verbose_echoes_command(self) -> None:
        config = Configuration(num_runs=3, verbosity=1)
        with self.assertLogs("runbench", level="INFO") as cm:
            execute(_command(["echo", "a b"]), 0, config, self.runner)
        self.assertIn("===> Executing echo 'a b'", cm.output[0])

    def test_quiet_verbosity_does_not_echo(self) -> None:
        with self.assertNoLogs("runbench", level="INFO"):
            execute(_command(), 0, self.config, self.runner)


# ---------------------------------------------------------------------------
# Real processes
# ---------------------------------------------------------------------------


class TestExecuteWithRealProcesses(unittest.TestCase):
    """End-to-end tests for execute() with OsProcessRunner."""

    def setUp(self) -> None:
        self.runner = OsProcessRunner()
        self.config = Configuration(num_runs=1)

    def test_input_bytes_reach_stdin(self) -> None:
        echo = "import sys; sys.stdout.buffer.write(sys.stdin.buffer.read())"
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "out.bin"
            cmd = Command.create(
                [sys.executable, "-c", echo],
                1,
                input_cmd="printf 'abc\\001def'",
                output_cmd=f"cat > {shlex.quote(str(out))}",
            )
            record = execute(cmd, 0, self.config, self.runner)
            self.assertEqual(record.exit_status, 0)
            self.assertEqual(out.read_bytes(), b"abc\x01def")

    def test_placeholder_reaches_helpers(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            base = shlex.quote(str(Path(tmpdir) / "run"))
            config = Configuration(num_runs=3)
            cmd = Command.create(
                [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
                3,
                placeholder="@N@",
                input_cmd="echo input-@N@",
                output_cmd=f"cat > {base}-@N@.txt",
            )
            execute(cmd, 2, config, self.runner)
            self.assertEqual((Path(tmpdir) / "run-3.txt").read_text(), "INPUT-3\n\n")

    def test_helper_time_not_measured(self) -> None:
        cmd = Command.create(
            ["/bin/sh", "-c", "cat > /dev/null"],
            1,
            input_cmd="sleep 0.5; echo ready",
            output_cmd="sleep 0.5; cat > /dev/null",
        )
        record = execute(cmd, 0, self.config, self.runner)
        self.assertEqual(record.exit_status, 0)
        self.assertLess(record.duration_s, 0.5)

    def test_failing_input_helper(self) -> None:
        cmd = Command.create(["/bin/sh", "-c", "exit 0"], 1, input_cmd="exit 3")
        with self.assertRaises(HelperExitError) as ctx:
            execute(cmd, 0, self.config, self.runner)
        self.assertEqual(ctx.exception.status, 3)

    def test_failing_output_helper(self) -> None:
        cmd = Command.create(["/bin/sh", "-c", "echo hi"], 1, output_cmd="grep -q nomatch")
        with self.assertRaises(HelperExitError):
            execute(cmd, 0, self.config, self.runner)
        # The timed run itself completed and was recorded.
        self.assertIsNotNone(cmd.runs[0])

    def test_missing_executable(self) -> None:
        cmd = Command.create(["/nonexistent/runbench-test-binary"], 1)
        with self.assertRaises(SpawnError) as ctx:
            execute(cmd, 0, self.config, self.runner)
        self.assertEqual(ctx.exception.command, "/nonexistent/runbench-test-binary")
        self.assertIsNone(cmd.runs[0])

    def test_batch_line_with_quiet_and_output_feeds_sink(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            sink = Path(tmpdir) / "sink.txt"
            text = f"-q -o \"cat > {shlex.quote(str(sink))}\" echo hi\n"
            (cmd,) = parse_batch_text(text, 1)
            execute(cmd, 0, self.config, self.runner)
            self.assertEqual(sink.read_bytes(), b"hi\n")


if __name__ == "__main__":
    unittest.main()
