"""
Transform Stage
===============
Drives the transformer over units strictly one at a time, stopping at
the first unit that carries an Error diagnostic.

The transformer is called from a single thread. Diagnostics are drained
per unit before the next unit starts.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Generic, Optional, Sequence

from .collaborators import ContextT, PipelineServices
from .diagnostics import DiagnosticCollector, DiagnosticSink
from .reporter import VerboseCallback, benchmark_if_verbose
from .types import Unit, UnitRecord, UnitStatus

logger = logging.getLogger(__name__)

UnitProgressCallback = Callable[[int, int, str], None]
# Args: units_done, total_units, unit_key


class TransformStage(Generic[ContextT]):
    """Sequential, fail-fast transform over an ordered unit sequence."""

    def __init__(
        self,
        services: PipelineServices[ContextT],
        context: ContextT,
        verbose: bool = False,
        verbose_callback: Optional[VerboseCallback] = None,
        progress_callback: Optional[UnitProgressCallback] = None,
    ):
        self.services = services
        self.context = context
        self.verbose = verbose
        self.verbose_callback = verbose_callback
        self.progress_callback = progress_callback

    def run(self, units: Sequence[Unit]) -> list[UnitRecord]:
        """
        Transform units in input order.

        Args:
            units: Units to transform

        Returns:
            One record per attempted unit. When a unit fails, its record is
            the last one and later units are absent (not attempted).
        """
        records: list[UnitRecord] = []
        total = len(units)
        width = len(f"{total}/{total}")

        for idx, unit in enumerate(units):
            progress = f"{idx + 1}/{total}".rjust(width)
            with benchmark_if_verbose(f"{progress} transform {unit.key}", self.verbose, self.verbose_callback):
                record = self._transform_one(unit)
            records.append(record)

            if self.progress_callback:
                self.progress_callback(idx + 1, total, unit.key)

            if record.status is UnitStatus.FAILED:
                logger.info(
                    f"Transform stopped at {unit.key} ({idx + 1}/{total}); "
                    f"{total - idx - 1} unit(s) not attempted"
                )
                break

        return records

    def _transform_one(self, unit: Unit) -> UnitRecord:
        """Pre-checks, transform and sink drain for a single unit."""
        start = time.perf_counter()
        local = DiagnosticCollector()

        for check in self.services.pre_emit_checks:
            local.record_all(d.with_unit(unit.key) for d in check(unit, self.context))

        if local.has_error():
            return self._failed(unit, local, start)

        sink = DiagnosticSink(unit.key)
        ir: Any = self.services.transformer(unit, self.context, sink)
        local.record_all(sink.flush())

        if local.has_error():
            return self._failed(unit, local, start)

        return UnitRecord(
            unit=unit,
            status=UnitStatus.TRANSFORMED,
            ir=ir,
            diagnostics=local.all(),
            elapsed_ms=(time.perf_counter() - start) * 1000,
        )

    @staticmethod
    def _failed(unit: Unit, local: DiagnosticCollector, start: float) -> UnitRecord:
        for diagnostic in local.errors():
            logger.debug(f"Transform error: {diagnostic}")
        return UnitRecord(
            unit=unit,
            status=UnitStatus.FAILED,
            diagnostics=local.all(),
            elapsed_ms=(time.perf_counter() - start) * 1000,
        )
