"""
Pipeline Module
================
Staged compilation pipeline: units in, emitted files out.

- Transform: sequential, fail-fast, per-unit diagnostics
- Render: parallel over a bounded thread pool
- Write: parallel in bounded batches, optionally skipping unchanged files
"""

from .collaborators import (
    PipelineServices,
    PreEmitCheck,
    Renderer,
    SourceRewriter,
    Transformer,
)
from .diagnostics import (
    Diagnostic,
    DiagnosticCollector,
    DiagnosticSink,
    Severity,
    SourceLocation,
)
from .orchestrator import EmitPipeline, PipelineStage, run_pipeline
from .render import RenderStage
from .reporter import RunReporter, compute_stats, format_summary
from .rewrite import RewriteResult, RewriteStage
from .transform import TransformStage
from .types import RunResult, RunStats, Unit, UnitRecord, UnitStatus, WriteOutcome
from .writer import AsyncFileManager, WriteReport, WriteStage, partition_batches

__all__ = [
    # Orchestration
    "EmitPipeline",
    "PipelineStage",
    "run_pipeline",
    # Collaborators
    "PipelineServices",
    "PreEmitCheck",
    "Renderer",
    "SourceRewriter",
    "Transformer",
    # Diagnostics
    "Diagnostic",
    "DiagnosticCollector",
    "DiagnosticSink",
    "Severity",
    "SourceLocation",
    # Stages
    "RewriteStage",
    "RewriteResult",
    "TransformStage",
    "RenderStage",
    "WriteStage",
    "WriteReport",
    "AsyncFileManager",
    "partition_batches",
    "RunReporter",
    "compute_stats",
    "format_summary",
    # Data model
    "Unit",
    "UnitRecord",
    "UnitStatus",
    "WriteOutcome",
    "RunStats",
    "RunResult",
]
