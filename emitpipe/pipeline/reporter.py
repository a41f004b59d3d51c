"""
Run Reporter
============
Aggregates per-unit records into run statistics and a printable summary.
Also hosts the verbose-mode timing helper used by the stages.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence

from .diagnostics import Diagnostic
from .types import RunStats, UnitRecord, UnitStatus

logger = logging.getLogger(__name__)

VerboseCallback = Callable[[str, str], None]
# Args: message, log_type (info, process, warning, error, success)


@contextmanager
def benchmark_if_verbose(
    label: str,
    enabled: bool,
    callback: Optional[VerboseCallback] = None,
) -> Iterator[None]:
    """
    Time the enclosed block and report it when verbose mode is on.

    Emits ``"{label}, took {n}ms"`` through ``callback`` (or the module
    logger at DEBUG when no callback is set).
    """
    if not enabled:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        took = int((time.perf_counter() - start) * 1000)
        message = f"{label}, took {took}ms"
        if callback:
            callback(message, "info")
        else:
            logger.debug(message)


def compute_stats(
    records: Sequence[UnitRecord],
    diagnostics: Sequence[Diagnostic],
    elapsed_ms: float,
    batches: int = 0,
) -> RunStats:
    """
    Derive run statistics from the records of attempted units.

    Args:
        records: One record per attempted unit
        diagnostics: Every diagnostic reported during the run
        elapsed_ms: Wall-clock duration of the run
        batches: Number of write batches formed

    Returns:
        RunStats for the run
    """
    return RunStats(
        total=len(records),
        successful=sum(1 for r in records if r.succeeded),
        failed=sum(1 for r in records if not r.succeeded),
        total_diagnostics=len(diagnostics),
        written=sum(1 for r in records if r.status is UnitStatus.WRITTEN),
        skipped=sum(1 for r in records if r.status is UnitStatus.SKIPPED),
        elapsed_ms=elapsed_ms,
        batches=batches,
    )


def format_summary(stats: RunStats) -> str:
    """Render stats as a multi-line, human-readable block."""
    return "\n".join([
        "Compilation summary",
        f"  units:       {stats.total} ({stats.successful} ok, {stats.failed} failed)",
        f"  diagnostics: {stats.total_diagnostics}",
        f"  written:     {stats.written}",
        f"  skipped:     {stats.skipped}",
        f"  batches:     {stats.batches}",
        f"  time:        {stats.elapsed_ms:.0f}ms ({stats.average_ms_per_unit:.2f}ms/unit)",
    ])


class RunReporter:
    """Computes the run summary and emits it to the log and verbose sink."""

    def __init__(self, verbose_callback: Optional[VerboseCallback] = None):
        self.verbose_callback = verbose_callback

    def report(
        self,
        records: Sequence[UnitRecord],
        diagnostics: Sequence[Diagnostic],
        started: float,
        finished: float,
        batches: int = 0,
    ) -> RunStats:
        """
        Build RunStats for a run timed with ``time.perf_counter``.

        Returns:
            The computed stats
        """
        elapsed_ms = max(0.0, (finished - started) * 1000)
        stats = compute_stats(records, diagnostics, elapsed_ms, batches)

        summary = format_summary(stats)
        logger.info(summary)
        if self.verbose_callback:
            self.verbose_callback(summary, "success" if stats.failed == 0 else "warning")
        return stats
