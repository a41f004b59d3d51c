"""
Diagnostics
===========
Diagnostic records, the per-unit/run-wide collector, and the sink a
transformer reports through.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional


class Severity(str, Enum):
    """Diagnostic severity."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class SourceLocation:
    """1-based position inside a unit's source."""

    line: int
    column: int = 1

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Diagnostic:
    """A structured message attributable to a unit by key."""

    severity: Severity
    message: str
    unit_key: Optional[str] = None
    location: Optional[SourceLocation] = None
    code: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def with_unit(self, unit_key: str) -> Diagnostic:
        """Attribute to ``unit_key`` unless already attributed."""
        if self.unit_key is not None:
            return self
        return replace(self, unit_key=unit_key)

    def __str__(self) -> str:
        where = self.unit_key or "<run>"
        if self.location:
            where = f"{where}:{self.location}"
        code = f" {self.code}" if self.code else ""
        return f"{where} - {self.severity.value}{code}: {self.message}"


class DiagnosticCollector:
    """
    Accumulates diagnostics in the order they are recorded.

    Not thread-safe. Each instance is owned by exactly one caller: a
    single Transform iteration (per-unit collector) or the orchestrator
    (run-wide collector).
    """

    def __init__(self) -> None:
        self._diagnostics: list[Diagnostic] = []

    def record(self, diagnostic: Diagnostic) -> None:
        self._diagnostics.append(diagnostic)

    def record_all(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._diagnostics.extend(diagnostics)

    def all(self) -> tuple[Diagnostic, ...]:
        return tuple(self._diagnostics)

    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self._diagnostics if d.is_error)

    def has_error(self) -> bool:
        """True iff any recorded diagnostic has Error severity."""
        return any(d.is_error for d in self._diagnostics)

    def count_by_severity(self) -> dict[Severity, int]:
        counts = Counter(d.severity for d in self._diagnostics)
        return {severity: counts.get(severity, 0) for severity in Severity}

    def flush(self) -> tuple[Diagnostic, ...]:
        """Return everything recorded so far and start empty again."""
        drained = tuple(self._diagnostics)
        self._diagnostics.clear()
        return drained

    def __len__(self) -> int:
        return len(self._diagnostics)


class DiagnosticSink:
    """
    Side channel a transformer or rewriter reports diagnostics through.

    A sink is created for one collaborator call and handed to it as an
    argument, so reports from two units can never share a channel. The
    caller drains it with ``flush`` as soon as the call returns.
    Diagnostics reported without a unit key are attributed to the unit
    the sink was created for.
    """

    def __init__(self, unit_key: Optional[str] = None):
        self.unit_key = unit_key
        self._pending: list[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> None:
        if self.unit_key is not None:
            diagnostic = diagnostic.with_unit(self.unit_key)
        self._pending.append(diagnostic)

    def error(self, message: str, location: Optional[SourceLocation] = None, code: Optional[str] = None) -> None:
        self.report(Diagnostic(Severity.ERROR, message, location=location, code=code))

    def warning(self, message: str, location: Optional[SourceLocation] = None, code: Optional[str] = None) -> None:
        self.report(Diagnostic(Severity.WARNING, message, location=location, code=code))

    def info(self, message: str, location: Optional[SourceLocation] = None, code: Optional[str] = None) -> None:
        self.report(Diagnostic(Severity.INFO, message, location=location, code=code))

    def flush(self) -> tuple[Diagnostic, ...]:
        """Drain every pending diagnostic in report order."""
        drained = tuple(self._pending)
        self._pending.clear()
        return drained

    def empty(self) -> bool:
        return not self._pending


def has_error(diagnostics: Iterable[Diagnostic]) -> bool:
    return any(d.is_error for d in diagnostics)
