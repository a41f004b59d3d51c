"""
Error Handling Module
=====================
Custom exceptions for the emit pipeline.
Provides consistent error codes and messages for run-level faults.

Unit-level problems are reported as diagnostics, not raised; the
exceptions here cover misuse of the pipeline and collaborator faults.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional
from pathlib import Path


class ErrorCode(Enum):
    """Error codes for the emit pipeline."""
    # Configuration errors (E001-E099)
    E001 = "Invalid pipeline configuration"
    E002 = "Duplicate unit key"

    # Write errors (E200-E299)
    E200 = "Destination unreadable"
    E201 = "Write failed"
    E202 = "Output not encodable"

    # Pipeline errors (E300-E399)
    E300 = "Stage received records out of order"


@dataclass
class EmitPipeError(Exception):
    """Base exception for the emit pipeline with error codes."""
    code: ErrorCode
    message: str
    details: Optional[str] = None
    file_path: Optional[Path] = None

    def __str__(self) -> str:
        base = f"[{self.code.name}] {self.code.value}: {self.message}"
        if self.details:
            base += f" ({self.details})"
        if self.file_path:
            base += f" - File: {self.file_path}"
        return base


class ConfigurationError(EmitPipeError):
    """Error when a configuration option is unknown or out of range."""
    def __init__(self, message: str, details: str = None):
        super().__init__(
            code=ErrorCode.E001,
            message=message,
            details=details
        )


class DuplicateUnitError(EmitPipeError):
    """Error when two units share the same key."""
    def __init__(self, key: str):
        super().__init__(
            code=ErrorCode.E002,
            message=f"Unit key appears more than once: {key}",
            details="Unit keys must be unique within a run"
        )


class WriteFailedError(EmitPipeError):
    """Error when persisting an output file fails."""
    def __init__(self, message: str, file_path: Path = None, details: str = None):
        super().__init__(
            code=ErrorCode.E201,
            message=message,
            details=details,
            file_path=file_path
        )


class StageOrderError(EmitPipeError):
    """Error when a stage is handed a record it must never see."""
    def __init__(self, message: str, unit_key: str = None):
        super().__init__(
            code=ErrorCode.E300,
            message=message,
            details=f"Unit {unit_key}" if unit_key else None
        )
