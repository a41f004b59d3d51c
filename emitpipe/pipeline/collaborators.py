"""
Collaborator Contracts
======================
Interfaces the pipeline consumes but does not implement.

- Transformer: unit -> IR, reporting diagnostics through a sink
- Renderer: IR -> text, pure and deterministic
- PathResolver: unit -> destination path, distinct per unit
- PreEmitCheck: unit -> diagnostics gathered before transforming
- SourceRewriter: unit -> replacement source (or None to keep it)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, Optional, Protocol, Sequence, TypeVar

from .diagnostics import Diagnostic, DiagnosticSink
from .types import Unit

ContextT = TypeVar("ContextT")
IRT = TypeVar("IRT")


class Transformer(Protocol[ContextT, IRT]):
    """
    Turns one unit into an intermediate representation.

    Problems are reported through ``sink``; an Error diagnostic marks
    the unit failed even though an IR was returned. Raising is reserved
    for faults and aborts the run.
    """

    def __call__(self, unit: Unit, context: ContextT, sink: DiagnosticSink) -> IRT: ...


class Renderer(Protocol[IRT]):
    """Renders an IR to output text. Must not touch shared mutable state."""

    def __call__(self, ir: IRT) -> str: ...


class PreEmitCheck(Protocol[ContextT]):
    def __call__(self, unit: Unit, context: ContextT) -> Iterable[Diagnostic]: ...


class SourceRewriter(Protocol):
    def __call__(self, unit: Unit, sink: DiagnosticSink) -> Optional[str]: ...


PathResolver = Callable[[Unit], Path]


@dataclass
class PipelineServices(Generic[ContextT]):
    """
    The external collaborators one pipeline run drives.

    Attributes:
        transformer: Unit -> IR
        renderer: IR -> text
        resolve_output_path: Unit -> destination of the rendered text
        pre_emit_checks: Run in order before each transform
        rewriters: Source-to-source passes applied before the Transform Stage
        resolve_transformed_path: Destination of rewritten sources, used when
            ``write_transformed_files`` is enabled
    """
    transformer: Transformer[ContextT, Any]
    renderer: Renderer[Any]
    resolve_output_path: PathResolver
    pre_emit_checks: Sequence[PreEmitCheck[ContextT]] = ()
    rewriters: Sequence[SourceRewriter] = ()
    resolve_transformed_path: Optional[PathResolver] = None
