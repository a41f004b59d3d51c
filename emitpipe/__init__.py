"""
emitpipe
========
Batch compilation pipeline orchestrator.

Key Components:
    - EmitPipeline: Runs units through transform, render and write
    - PipelineConfig: Run options
    - PipelineServices: The transformer, renderer and path resolver to drive
"""

from .config import PipelineConfig
from .errors import EmitPipeError, ErrorCode
from .pipeline import (
    Diagnostic,
    EmitPipeline,
    PipelineServices,
    RunResult,
    Severity,
    Unit,
)

__version__ = "0.1.0"

__all__ = [
    "PipelineConfig",
    "EmitPipeError",
    "ErrorCode",
    "Diagnostic",
    "EmitPipeline",
    "PipelineServices",
    "RunResult",
    "Severity",
    "Unit",
]
