# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/progress.py

"""In-place progress bar for streaming backups."""

import math
from typing import Callable, Optional

import typer

GIB = 1024 ** 3
BAR_WIDTH = 40


def fraction(done: float, total: Optional[float]) -> Optional[float]:
    """done/total clamped to [0, 1]; None when the total is unknown."""
    if total is None or not total > 0:
        return None
    if math.isnan(done):
        return 0.0
    return max(0.0, min(1.0, done / total))


def _gib(n: float) -> str:
    return f"{n / GIB:.2f}"


def render(done: float, total: Optional[float], width: int = BAR_WIDTH) -> str:
    frac = fraction(done, total)
    if frac is None:
        return f"{_gib(done)} GiB"
    filled = int(frac * width)
    bar = "#" * filled + "." * (width - filled)
    return f"[{bar}] {frac * 100:5.1f}%  {_gib(done)} / {_gib(total)} GiB"


def _echo_inline(text: str) -> None:
    typer.echo(text, nl=False, err=True)


class ProgressBar:
    """Re-renders a single status line as byte counts arrive."""

    def __init__(
        self,
        total: Optional[float],
        width: int = BAR_WIDTH,
        write: Callable[[str], None] = _echo_inline,
    ):
        self.total = total
        self.width = width
        self.write = write
        self.line = ""

    def update(self, done: float) -> None:
        self.line = render(done, self.total, self.width)
        self.write("\r" + self.line)

    def finish(self) -> None:
        if self.line:
            self.write("\n")
