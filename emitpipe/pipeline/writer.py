"""
Write Stage
===========
Persists rendered text to destination files.

Features:
- aiofiles for non-blocking reads and writes
- write-only-if-changed: byte comparison against the existing file
- bounded concurrency: contiguous batches, one batch in flight at a time
- per-entry fault isolation: I/O and encoding errors become diagnostics
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, TypeVar

import aiofiles
import aiofiles.os
import aiofiles.tempfile

from ..config import PipelineConfig
from ..errors import ErrorCode, StageOrderError, WriteFailedError
from .collaborators import PathResolver
from .diagnostics import Diagnostic, Severity
from .types import UnitRecord, UnitStatus, WriteOutcome

logger = logging.getLogger(__name__)

T = TypeVar('T')


def partition_batches(items: Sequence[T], size: int) -> list[list[T]]:
    """
    Split ``items`` into contiguous batches of at most ``size``.

    Args:
        items: Items to split, order is preserved
        size: Maximum batch size (>= 1)

    Returns:
        List of batches; empty when ``items`` is empty
    """
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class AsyncFileManager:
    """Manager for async file operations using aiofiles."""

    async def read_bytes(self, path: Path) -> Optional[bytes]:
        """Read a file's bytes, or None if it does not exist."""
        try:
            async with aiofiles.open(path, 'rb') as f:
                return await f.read()
        except FileNotFoundError:
            return None

    async def write_bytes(self, path: Path, data: bytes) -> None:
        """Write bytes, creating parent directories as needed."""
        await aiofiles.os.makedirs(path.parent, exist_ok=True)

        # Write to a uniquely named temp file beside the target, then rename (atomic)
        temp_path: Optional[Path] = None
        try:
            async with aiofiles.tempfile.NamedTemporaryFile(
                "wb", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as f:
                temp_path = Path(f.name)
                await f.write(data)
            await aiofiles.os.replace(temp_path, path)
        except BaseException:
            if temp_path is not None and await aiofiles.os.path.exists(temp_path):
                await aiofiles.os.remove(temp_path)
            raise

        try:
            await aiofiles.os.replace(temp_path, path)
        except BaseException:
            if await aiofiles.os.path.exists(temp_path):
                await aiofiles.os.remove(temp_path)
            raise


@dataclass
class WriteReport:
    """What the Write Stage did with the records it was given."""
    outcomes: list[WriteOutcome] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    batch_sizes: list[int] = field(default_factory=list)

    @property
    def written_paths(self) -> list[Path]:
        return [o.destination for o in self.outcomes if o.written]

    @property
    def written(self) -> int:
        return sum(1 for o in self.outcomes if o.written)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if not o.written and o.error is None)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.error is not None)


class WriteStage:
    """Batched, bounded-concurrency writer for rendered records."""

    def __init__(
        self,
        resolve_output_path: PathResolver,
        config: Optional[PipelineConfig] = None,
        file_manager: Optional[AsyncFileManager] = None,
    ):
        self.resolve_output_path = resolve_output_path
        self.config = config or PipelineConfig()
        self.file_manager = file_manager or AsyncFileManager()

    async def run(self, records: Sequence[UnitRecord]) -> WriteReport:
        """
        Write every record that has text.

        Batches run strictly in sequence; entries within a batch run
        concurrently, so at most ``write_batch_size`` writes are in flight.

        Args:
            records: Records from the Render Stage

        Returns:
            WriteReport with one outcome per record that had text
        """
        report = WriteReport()
        eligible = [r for r in records if r.has_text]

        for batch in partition_batches(eligible, self.config.write_batch_size):
            report.batch_sizes.append(len(batch))
            results = await asyncio.gather(*(self._write_one(r) for r in batch))
            for outcome, diagnostic in results:
                report.outcomes.append(outcome)
                if diagnostic is not None:
                    report.diagnostics.append(diagnostic)

        logger.debug(
            f"Write stage: {report.written} written, {report.skipped} skipped, "
            f"{report.failed} failed in {len(report.batch_sizes)} batch(es)"
        )
        return report

    async def _write_one(self, record: UnitRecord) -> tuple[WriteOutcome, Optional[Diagnostic]]:
        """Compare, then write, a single record's text."""
        if not record.has_text:
            raise StageOrderError("Record without text reached the Write Stage", record.key)

        destination = Path(self.resolve_output_path(record.unit))

        code = ErrorCode.E202
        try:
            data = record.text.encode(self.config.encoding)

            code = ErrorCode.E200
            if self.config.write_only_if_changed:
                existing = await self.file_manager.read_bytes(destination)
                if existing == data:
                    record.status = UnitStatus.SKIPPED
                    record.outcome = WriteOutcome(destination=destination, written=False)
                    return record.outcome, None

            code = ErrorCode.E201
            await self.file_manager.write_bytes(destination, data)
        except (OSError, UnicodeError) as e:
            return self._fail(record, destination, e, code)

        record.status = UnitStatus.WRITTEN
        record.outcome = WriteOutcome(destination=destination, written=True)
        return record.outcome, None

    def _fail(
        self,
        record: UnitRecord,
        destination: Path,
        error: Exception,
        code: ErrorCode,
    ) -> tuple[WriteOutcome, Diagnostic]:
        """Downgrade an I/O or encoding fault to an Error diagnostic on the record."""
        if not self.config.isolate_write_failures:
            raise WriteFailedError(
                f"Could not write output for {record.key}",
                file_path=destination,
                details=f"{code.value}: {error}",
            ) from error

        logger.error(f"{code.value} for {record.key} -> {destination}: {error}")
        diagnostic = Diagnostic(
            severity=Severity.ERROR,
            message=f"{code.value}: {destination} ({error})",
            unit_key=record.key,
            code=code.name,
        )
        record.add_diagnostics((diagnostic,))
        record.status = UnitStatus.WRITE_FAILED
        record.outcome = WriteOutcome(destination=destination, written=False, error=str(error))
        return record.outcome, diagnostic
