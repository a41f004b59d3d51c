"""
Run Reporter Tests
==================
"""

import logging
from pathlib import Path

from emitpipe.pipeline import (
    RunReporter,
    UnitRecord,
    UnitStatus,
    WriteOutcome,
    compute_stats,
    format_summary,
)
from emitpipe.pipeline.diagnostics import Diagnostic, Severity
from emitpipe.pipeline.reporter import benchmark_if_verbose
from emitpipe.pipeline.types import RunStats

from conftest import make_units


def record(status, index=0):
    unit = make_units(*["x"] * (index + 1))[index]
    outcome = None
    if status in (UnitStatus.WRITTEN, UnitStatus.SKIPPED):
        outcome = WriteOutcome(Path(f"out/{index}.lua"), written=status is UnitStatus.WRITTEN)
    return UnitRecord(unit=unit, status=status, text="x", outcome=outcome)


class TestComputeStats:
    """Tests for compute_stats."""

    def test_empty_run(self):
        stats = compute_stats([], [], elapsed_ms=0.0)
        assert stats == RunStats()
        assert stats.average_ms_per_unit == 0.0

    def test_counts(self):
        records = [
            record(UnitStatus.WRITTEN, 0),
            record(UnitStatus.SKIPPED, 1),
            record(UnitStatus.WRITTEN, 2),
            record(UnitStatus.WRITE_FAILED, 3),
        ]
        diagnostics = [Diagnostic(Severity.ERROR, "io"), Diagnostic(Severity.INFO, "note")]

        stats = compute_stats(records, diagnostics, elapsed_ms=40.0, batches=2)

        assert stats.total == 4
        assert stats.successful == 3
        assert stats.failed == 1
        assert stats.written == 2
        assert stats.skipped == 1
        assert stats.total_diagnostics == 2
        assert stats.batches == 2
        assert stats.average_ms_per_unit == 10.0

    def test_transform_failure_counts_as_failed(self):
        stats = compute_stats([record(UnitStatus.TRANSFORMED), record(UnitStatus.FAILED, 1)], [], 1.0)
        assert stats.successful == 1
        assert stats.failed == 1


class TestSummary:
    """Tests for summary formatting and emission."""

    def test_format_summary(self):
        text = format_summary(RunStats(total=2, successful=2, written=1, skipped=1, elapsed_ms=10.0))
        assert "units:       2 (2 ok, 0 failed)" in text
        assert "5.00ms/unit" in text

    def test_report_logs_and_forwards(self, caplog):
        lines = []
        reporter = RunReporter(verbose_callback=lambda msg, kind: lines.append((msg, kind)))

        with caplog.at_level(logging.INFO, logger="emitpipe.pipeline.reporter"):
            stats = reporter.report([record(UnitStatus.WRITTEN)], [], started=1.0, finished=1.5)

        assert stats.elapsed_ms == 500.0
        assert "Compilation summary" in caplog.text
        assert lines[0][1] == "success"


class TestBenchmarkIfVerbose:
    """Tests for benchmark_if_verbose."""

    def test_disabled_emits_nothing(self):
        lines = []
        with benchmark_if_verbose("step", False, lambda msg, kind: lines.append(msg)):
            pass
        assert lines == []

    def test_enabled_emits_timing(self):
        lines = []
        with benchmark_if_verbose("step", True, lambda msg, kind: lines.append(msg)):
            pass
        assert len(lines) == 1
        assert lines[0].startswith("step, took ")
        assert lines[0].endswith("ms")
