"""Run-number substitution in helper command templates."""

from __future__ import annotations


def substitute(template: str | None, placeholder: str | None, run_number: int) -> str | None:
    """Replace every occurrence of *placeholder* in *template* with *run_number*.

    Occurrences are matched left to right without overlap.  An empty or
    missing placeholder leaves the template unchanged, and a missing
    template gives ``None``.

    Example::

        >>> substitute("gen --seed % --out in%.txt", "%", 3)
        'gen --seed 3 --out in3.txt'
    """
    if template is None:
        return None
    if not placeholder:
        return template
    return template.replace(placeholder, str(run_number))
