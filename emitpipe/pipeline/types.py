"""
Pipeline Types
==============
Units, the per-unit record every stage fills in, and run results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .diagnostics import Diagnostic, has_error


@dataclass(frozen=True)
class Unit:
    """One source input, identified by a stable unique key."""
    key: str  # Fully-qualified source path
    source: str
    path: Optional[Path] = None


class UnitStatus(Enum):
    """How far a unit got through the pipeline."""
    TRANSFORMED = "transformed"
    FAILED = "failed"
    RENDERED = "rendered"
    WRITTEN = "written"
    SKIPPED = "skipped"
    WRITE_FAILED = "write_failed"


SUCCESSFUL_STATUSES = frozenset({
    UnitStatus.TRANSFORMED,
    UnitStatus.RENDERED,
    UnitStatus.WRITTEN,
    UnitStatus.SKIPPED,
})


@dataclass(frozen=True)
class WriteOutcome:
    """Result of handing one rendered unit to the Write Stage."""
    destination: Path
    written: bool
    error: Optional[str] = None


@dataclass
class UnitRecord:
    """
    Everything the pipeline knows about one attempted unit.

    Created by the Transform Stage and filled in by later stages:
    ``ir`` after transform, ``text`` after render, ``outcome`` after
    write. ``diagnostics`` only ever grows; stages replace the tuple
    with a longer one and never edit entries.
    """
    unit: Unit
    status: UnitStatus
    ir: Any = None
    text: Optional[str] = None
    diagnostics: tuple[Diagnostic, ...] = ()
    outcome: Optional[WriteOutcome] = None
    elapsed_ms: float = 0.0

    @property
    def key(self) -> str:
        return self.unit.key

    @property
    def has_ir(self) -> bool:
        return self.status is not UnitStatus.FAILED

    @property
    def has_text(self) -> bool:
        return self.text is not None

    @property
    def has_error(self) -> bool:
        return has_error(self.diagnostics)

    @property
    def succeeded(self) -> bool:
        return self.status in SUCCESSFUL_STATUSES

    def add_diagnostics(self, diagnostics: tuple[Diagnostic, ...]) -> None:
        if diagnostics:
            self.diagnostics = self.diagnostics + tuple(diagnostics)


@dataclass(frozen=True)
class RunStats:
    """Counts and timing for one run."""
    total: int = 0
    successful: int = 0
    failed: int = 0
    total_diagnostics: int = 0
    written: int = 0
    skipped: int = 0
    elapsed_ms: float = 0.0
    batches: int = 0

    @property
    def average_ms_per_unit(self) -> float:
        if self.total == 0:
            return 0.0
        return self.elapsed_ms / self.total


@dataclass(frozen=True)
class RunResult:
    """Result of a full pipeline run."""
    emitted: bool
    diagnostics: tuple[Diagnostic, ...] = ()
    written_paths: tuple[Path, ...] = ()
    records: tuple[UnitRecord, ...] = ()
    stats: RunStats = field(default_factory=RunStats)

    def record_for(self, key: str) -> Optional[UnitRecord]:
        """Find the record for ``key``; None when the unit was never attempted."""
        for record in self.records:
            if record.key == key:
                return record
        return None
