"""Batch file parsing.

A batch file lists one command per line::

    # Compare two compressors on the same input.
    -q -i "cat corpus.txt" gzip -9
    -q -i "cat corpus.txt" xz -6
    -I % -i "gen-input %" -o "check-output %" ./mytool --fast

Rules:

- Leading spaces and tabs are ignored; blank lines are skipped.
- A line whose first non-blank character is ``#`` is a comment.
- Tokens are separated by spaces.  A token may be wrapped in ``'`` or
  ``"``; it then runs to the matching quote and may contain spaces, but
  not an unescaped line break.
- Backslash escapes the next character.  ``\\0``, ``\\n`` and ``\\r``
  give NUL, LF and CR; ``\\t`` also gives CR, matching the batch format
  existing files were written against.  Any other character stands for
  itself.
- Leading ``-I <token>``, ``-i <cmd>``, ``-o <cmd>`` and ``-q`` tokens
  configure the command; the first token not starting with ``-`` begins
  its argv.

Any violation raises :class:`~runbench.errors.ParseError` carrying the
1-based line number.
"""

from __future__ import annotations

import logging
from pathlib import Path

from runbench.errors import FileAccessError, ParseError
from runbench.model import Command

log = logging.getLogger("runbench")

_ESCAPES = {
    "0": "\0",
    "n": "\n",
    "r": "\r",
    "t": "\r",
}

_LINE_BREAKS = ("\n", "\r")
_QUOTES = ('"', "'")


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


class _Scanner:
    """Cursor over batch text that tracks the current line number."""

    def __init__(self, text: str, source: str) -> None:
        self.text = text
        self.source = source
        self.pos = 0
        self.line = 1

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos]

    def error(self, message: str) -> ParseError:
        return ParseError(message, line=self.line, source=self.source)

    def skip_blanks(self) -> None:
        while not self.at_end and self.peek() in (" ", "\t"):
            self.pos += 1

    def skip_line_break(self) -> None:
        if self.peek() == "\n":
            self.line += 1
        self.pos += 1

    def skip_to_line_break(self) -> None:
        while not self.at_end and self.peek() not in _LINE_BREAKS:
            self.pos += 1

    def read_token(self) -> str:
        """Read one (possibly quoted) token starting at the cursor."""
        quote = None
        if self.peek() in _QUOTES:
            quote = self.peek()
            self.pos += 1

        chars: list[str] = []
        while True:
            if self.at_end:
                if quote:
                    raise self.error("Unterminated string")
                break
            c = self.peek()
            if quote and c == quote:
                self.pos += 1
                break
            if c in _LINE_BREAKS:
                if quote:
                    raise self.error("Unterminated string")
                break
            if not quote and c == " ":
                break
            if c == "\\":
                if self.pos + 1 == len(self.text):
                    raise self.error("Escape char not specified")
                escaped = self.text[self.pos + 1]
                if escaped == "\n":
                    self.line += 1
                chars.append(_ESCAPES.get(escaped, escaped))
                self.pos += 2
                continue
            chars.append(c)
            self.pos += 1
        return "".join(chars)

    def read_line_tokens(self) -> list[str]:
        """Split the rest of the current line into tokens."""
        tokens: list[str] = []
        while not self.at_end and self.peek() not in _LINE_BREAKS:
            if self.peek() in (" ", "\t"):
                self.pos += 1
                continue
            tokens.append(self.read_token())
        return tokens


def tokenize(text: str, *, source: str = "<string>") -> list[tuple[int, list[str]]]:
    """Split batch text into ``(line_number, tokens)`` pairs.

    Blank and comment lines produce no entry.
    """
    scanner = _Scanner(text, source)
    lines: list[tuple[int, list[str]]] = []
    while not scanner.at_end:
        scanner.skip_blanks()
        if scanner.at_end:
            break
        c = scanner.peek()
        if c in _LINE_BREAKS:
            scanner.skip_line_break()
            continue
        if c == "#":
            scanner.skip_to_line_break()
            continue
        lineno = scanner.line
        lines.append((lineno, scanner.read_line_tokens()))
    return lines


# ---------------------------------------------------------------------------
# Per-line flags
# ---------------------------------------------------------------------------


def _build_command(
    tokens: list[str],
    num_runs: int,
    *,
    line: int,
    source: str,
) -> Command:
    """Strip leading flags from *tokens* and build a Command from the rest."""
    options: dict[str, str | bool] = {}
    j = 0
    while j < len(tokens):
        tok = tokens[j]
        if tok in ("-I", "-i", "-o"):
            if j + 1 == len(tokens):
                raise ParseError(
                    f"option requires an argument -- {tok[1]}", line=line, source=source
                )
            key = {"-I": "placeholder", "-i": "input_cmd", "-o": "output_cmd"}[tok]
            options[key] = tokens[j + 1]
            j += 2
        elif tok == "-q":
            options["quiet"] = True
            j += 1
        elif tok.startswith("-"):
            raise ParseError(f"unknown option -- {tok}", line=line, source=source)
        else:
            break

    argv = tokens[j:]
    if not argv:
        raise ParseError("Missing command", line=line, source=source)
    return Command.create(argv, num_runs, **options)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def parse_batch_text(text: str, num_runs: int, *, source: str = "<string>") -> list[Command]:
    """Parse batch *text* into commands with *num_runs* empty run slots each.

    Raises:
        ParseError: On any syntax or flag error, naming the line.
    """
    commands = [
        _build_command(tokens, num_runs, line=lineno, source=source)
        for lineno, tokens in tokenize(text, source=source)
    ]
    log.debug("Parsed %d command(s) from %s", len(commands), source)
    return commands


def parse_batch_file(path: str | Path, num_runs: int) -> list[Command]:
    """Read and parse the batch file at *path*.

    The file is read as bytes and decoded with ``surrogateescape`` so
    arguments that are not valid UTF-8 still reach the command unchanged.

    Raises:
        FileAccessError: If the file cannot be read.
        ParseError: On any syntax or flag error.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise FileAccessError(
            f"Error when trying to read '{path}': {exc.strerror or exc}"
        ) from exc
    text = data.decode("utf-8", errors="surrogateescape")
    return parse_batch_text(text, num_runs, source=str(path))
