"""
Execution context shared by the pipeline, readers and writers.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field

from tqdm import tqdm

from src.domain.interfaces import OutputChannel
from src.shared.perf import StageTiming


def _print_output(text: str) -> None:
    print(text, file=sys.stdout, flush=True)


class ProgressReporter:
    """
    tqdm progress bar over a known number of steps.

    Disabled when quiet or when stderr is not a terminal.
    """

    def __init__(self, quiet: bool = False):
        self.quiet = quiet
        self._bar: tqdm | None = None

    @property
    def active(self) -> bool:
        return self._bar is not None

    def begin(self, total: int, desc: str) -> None:
        self.end()
        self._bar = tqdm(
            total=total,
            desc=desc,
            unit="step",
            file=sys.stderr,
            disable=self.quiet or not sys.stderr.isatty(),
            dynamic_ncols=True,
            leave=False,
        )

    def step(self, name: str | None = None) -> None:
        if not self.active:
            return
        if name:
            self._bar.set_postfix_str(name, refresh=False)
        self._bar.update(1)

    def end(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


@dataclass
class ProcessingContext:
    """
    Logger, progress and data output for one run.

    ``output`` receives user-facing data (summary reports) and is kept apart
    from logging so ``--quiet`` never hides requested output.
    """

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("splat_transform"))
    progress: ProgressReporter = field(default_factory=ProgressReporter)
    output: OutputChannel = _print_output
    timings: list[StageTiming] = field(default_factory=list)

    @classmethod
    def create(cls, quiet: bool = False, output: OutputChannel | None = None) -> ProcessingContext:
        return cls(
            progress=ProgressReporter(quiet=quiet),
            output=output or _print_output,
        )
