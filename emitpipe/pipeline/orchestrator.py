"""
Emit Pipeline Orchestrator
==========================
Coordinates the stages of a compilation run:
Rewrite → Transform → Render → Write → Report

- Rewrite and Transform run sequentially on the coordinating task
- Render fans out over a bounded thread pool
- Write runs in bounded batches of concurrent async file operations

A run that reports any Error diagnostic is not emitted: its written
paths are withheld, and an error during Rewrite or Transform skips the
remaining stages entirely.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, Optional, Sequence

from ..config import PipelineConfig
from ..errors import DuplicateUnitError
from .collaborators import ContextT, PipelineServices
from .diagnostics import DiagnosticCollector
from .render import RenderStage
from .reporter import RunReporter, VerboseCallback, benchmark_if_verbose
from .rewrite import RewriteStage
from .transform import TransformStage
from .types import RunResult, Unit, UnitRecord
from .writer import AsyncFileManager, WriteStage

logger = logging.getLogger(__name__)


class PipelineStage(Enum):
    """Pipeline processing stages."""
    IDLE = "idle"
    REWRITING = "rewriting"
    TRANSFORMING = "transforming"
    RENDERING = "rendering"
    WRITING = "writing"
    REPORTING = "reporting"
    COMPLETE = "complete"
    FAILED = "failed"  # Finished with Error diagnostics
    ERROR = "error"  # Aborted by a collaborator fault


ProgressCallback = Callable[[PipelineStage, int, int, str], None]
# Args: stage, done, total, message


class EmitPipeline(Generic[ContextT]):
    """
    Drives a set of units through the full pipeline.

    Example:
        services = PipelineServices(
            transformer=transform_unit,
            renderer=render_ir,
            resolve_output_path=lambda unit: out_dir / f"{Path(unit.key).stem}.lua",
        )
        pipeline = EmitPipeline(services, PipelineConfig(write_only_if_changed=True))
        result = pipeline.run(units)
        if not result.emitted:
            for diagnostic in result.diagnostics:
                print(diagnostic)
    """

    def __init__(
        self,
        services: PipelineServices[ContextT],
        config: Optional[PipelineConfig] = None,
        context: Optional[ContextT] = None,
        progress_callback: Optional[ProgressCallback] = None,
        verbose_callback: Optional[VerboseCallback] = None,
        file_manager: Optional[AsyncFileManager] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            services: External collaborators (transformer, renderer, paths)
            config: Pipeline configuration
            context: Opaque handle passed through to the transformer and
                pre-emit checks
            progress_callback: Called on progress updates
            verbose_callback: Called with timing/progress lines in verbose mode
            file_manager: File I/O backend shared by the rewrite and write stages
        """
        self.services = services
        self.config = config or PipelineConfig()
        self.context = context
        self.progress_callback = progress_callback
        self.verbose_callback = verbose_callback
        self.file_manager = file_manager or AsyncFileManager()

        self._stage = PipelineStage.IDLE

    @property
    def stage(self) -> PipelineStage:
        """Current pipeline stage."""
        return self._stage

    @property
    def is_running(self) -> bool:
        """Check if pipeline is currently running."""
        return self._stage not in (
            PipelineStage.IDLE,
            PipelineStage.COMPLETE,
            PipelineStage.FAILED,
            PipelineStage.ERROR,
        )

    def run(self, units: Iterable[Unit]) -> RunResult:
        """
        Run the pipeline to completion.

        Must not be called from inside a running event loop; use
        ``run_async`` there.
        """
        return asyncio.run(self.run_async(units))

    async def run_async(self, units: Iterable[Unit]) -> RunResult:
        """
        Run the pipeline over ``units``.

        Args:
            units: Units in the order they must be transformed

        Returns:
            RunResult with diagnostics, written paths and per-unit records

        Raises:
            DuplicateUnitError: If two units share a key
        """
        started = time.perf_counter()
        units = list(units)
        self._check_unique(units)

        diagnostics = DiagnosticCollector()

        try:
            if self.services.rewriters:
                self._stage = PipelineStage.REWRITING
                self._notify_progress(0, len(units), "Rewriting sources...")
                with benchmark_if_verbose("running rewriters", self.config.verbose, self.verbose_callback):
                    rewrite = await RewriteStage(
                        self.services.rewriters,
                        write_transformed_files=self.config.write_transformed_files,
                        resolve_transformed_path=self.services.resolve_transformed_path,
                        encoding=self.config.encoding,
                        file_manager=self.file_manager,
                    ).run(units)
                diagnostics.record_all(rewrite.diagnostics)
                if diagnostics.has_error():
                    self._log_verbose("[REWRITE] Errors reported - skipping transform", "error")
                    return self._finish([], diagnostics, started)
                units = rewrite.units

            self._stage = PipelineStage.TRANSFORMING
            records = TransformStage(
                self.services,
                self.context,
                verbose=self.config.verbose,
                verbose_callback=self.verbose_callback,
                progress_callback=lambda done, total, key: self._notify_progress(
                    done, total, f"Transformed {key}"
                ),
            ).run(units)
            for record in records:
                diagnostics.record_all(record.diagnostics)

            if diagnostics.has_error():
                self._log_verbose(
                    f"[TRANSFORM] Stopped after {len(records)}/{len(units)} units", "error"
                )
                return self._finish(records, diagnostics, started)

            self._stage = PipelineStage.RENDERING
            self._notify_progress(0, len(records), "Rendering...")
            with benchmark_if_verbose(f"render {len(records)} units", self.config.verbose, self.verbose_callback):
                await RenderStage(self.services.renderer, self.config.render_workers).run(records)

            self._stage = PipelineStage.WRITING
            self._notify_progress(0, len(records), "Writing outputs...")
            with benchmark_if_verbose(f"write {len(records)} units", self.config.verbose, self.verbose_callback):
                report = await WriteStage(
                    self.services.resolve_output_path,
                    self.config,
                    self.file_manager,
                ).run(records)
            diagnostics.record_all(report.diagnostics)

            return self._finish(
                records,
                diagnostics,
                started,
                written_paths=report.written_paths,
                batches=len(report.batch_sizes),
            )

        except Exception:
            self._stage = PipelineStage.ERROR
            logger.exception("Pipeline run failed")
            raise

    def _finish(
        self,
        records: Sequence[UnitRecord],
        diagnostics: DiagnosticCollector,
        started: float,
        written_paths: Sequence[Path] = (),
        batches: int = 0,
    ) -> RunResult:
        """Report stats and assemble the RunResult."""
        self._stage = PipelineStage.REPORTING
        stats = RunReporter(self.verbose_callback if self.config.verbose else None).report(
            records,
            diagnostics.all(),
            started,
            time.perf_counter(),
            batches,
        )

        emitted = not diagnostics.has_error()
        self._stage = PipelineStage.COMPLETE if emitted else PipelineStage.FAILED
        self._notify_progress(
            len(records),
            len(records),
            "Emit complete" if emitted else "Emit skipped: errors reported",
        )

        return RunResult(
            emitted=emitted,
            diagnostics=diagnostics.all(),
            written_paths=tuple(written_paths) if emitted else (),
            records=tuple(records),
            stats=stats,
        )

    @staticmethod
    def _check_unique(units: Sequence[Unit]) -> None:
        seen: set[str] = set()
        for unit in units:
            if unit.key in seen:
                raise DuplicateUnitError(unit.key)
            seen.add(unit.key)

    def _notify_progress(self, done: int, total: int, message: str) -> None:
        """Send progress update via callback."""
        if self.progress_callback:
            self.progress_callback(self._stage, done, total, message)
        if self.config.verbose:
            logger.debug(f"[{self._stage.value}] {done}/{total} {message}")

    def _log_verbose(self, message: str, log_type: str = "info") -> None:
        """Emit verbose log if enabled and a callback is present."""
        if self.config.verbose and self.verbose_callback:
            self.verbose_callback(message, log_type)


def run_pipeline(
    units: Iterable[Unit],
    services: PipelineServices[Any],
    config: Optional[PipelineConfig] = None,
    context: Any = None,
) -> RunResult:
    """Convenience wrapper: build an EmitPipeline and run it once."""
    return EmitPipeline(services, config, context).run(units)
