"""
Rewrite Stage
=============
Applies source-to-source rewriters to every unit before transforming.

Rewriters see each unit in input order, one call at a time, each with
its own diagnostic sink. A rewriter that returns a string replaces the
unit's source for every later stage.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from .collaborators import PathResolver, SourceRewriter
from .diagnostics import Diagnostic, DiagnosticCollector, DiagnosticSink
from .types import Unit
from .writer import AsyncFileManager

logger = logging.getLogger(__name__)


@dataclass
class RewriteResult:
    """Units after rewriting, plus everything the rewriters reported."""
    units: list[Unit] = field(default_factory=list)
    diagnostics: tuple[Diagnostic, ...] = ()
    rewritten_keys: list[str] = field(default_factory=list)
    transformed_paths: list[Path] = field(default_factory=list)

    @property
    def has_error(self) -> bool:
        return any(d.is_error for d in self.diagnostics)


class RewriteStage:
    """Runs every rewriter over every unit."""

    def __init__(
        self,
        rewriters: Sequence[SourceRewriter],
        write_transformed_files: bool = False,
        resolve_transformed_path: Optional[PathResolver] = None,
        encoding: str = "utf-8",
        file_manager: Optional[AsyncFileManager] = None,
    ):
        self.rewriters = list(rewriters)
        self.write_transformed_files = write_transformed_files
        self.resolve_transformed_path = resolve_transformed_path
        self.encoding = encoding
        self.file_manager = file_manager or AsyncFileManager()

        if write_transformed_files and resolve_transformed_path is None:
            logger.warning(
                "write_transformed_files is set but no transformed-path resolver "
                "was provided; rewritten sources will not be persisted"
            )

    async def run(self, units: Sequence[Unit]) -> RewriteResult:
        """
        Rewrite units.

        Args:
            units: Units in input order

        Returns:
            RewriteResult whose ``units`` line up with the input
        """
        if not self.rewriters:
            return RewriteResult(units=list(units))

        collector = DiagnosticCollector()
        result = RewriteResult()

        for unit in units:
            current = unit
            for rewriter in self.rewriters:
                sink = DiagnosticSink(unit.key)
                replacement = rewriter(current, sink)
                collector.record_all(sink.flush())
                if replacement is not None and replacement != current.source:
                    current = dataclasses.replace(current, source=replacement)

            result.units.append(current)
            if current is not unit:
                result.rewritten_keys.append(unit.key)

        result.diagnostics = collector.all()
        if result.has_error:
            logger.info(f"Rewrite stage reported {len(collector.errors())} error(s)")
            return result

        if self.write_transformed_files and self.resolve_transformed_path is not None:
            rewritten_keys = set(result.rewritten_keys)
            for unit in (u for u in result.units if u.key in rewritten_keys):
                path = Path(self.resolve_transformed_path(unit))
                await self.file_manager.write_bytes(path, unit.source.encode(self.encoding))
                result.transformed_paths.append(path)

        logger.debug(f"Rewrote {len(result.rewritten_keys)} of {len(result.units)} unit(s)")
        return result
