"""
Render Stage
============
Renders every transformed record's IR to text on a bounded thread pool.

The renderer is pure, so records are rendered with no ordering among
themselves; each result is attached to the record it came from.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..concurrency import WorkerPool
from ..config import DEFAULT_RENDER_WORKERS
from .collaborators import Renderer
from .types import UnitRecord, UnitStatus

logger = logging.getLogger(__name__)


class RenderStage:
    """Unordered, bounded-concurrency render over transform records."""

    def __init__(self, renderer: Renderer, max_workers: int = DEFAULT_RENDER_WORKERS):
        self.renderer = renderer
        self.max_workers = max_workers

    async def run(self, records: Sequence[UnitRecord]) -> list[UnitRecord]:
        """
        Render all records that carry an IR.

        Records without an IR pass through untouched: their text stays
        absent and their diagnostics are kept as they are. Exceptions from
        the renderer propagate.

        Args:
            records: Records from the Transform Stage

        Returns:
            The same records, in the same order
        """
        pending = {id(record): record for record in records if record.has_ir}
        if not pending:
            return list(records)

        workers = min(self.max_workers, len(pending))
        with WorkerPool(max_workers=workers, thread_name_prefix="emitpipe-render") as pool:
            rendered = await pool.map_async(
                self.renderer,
                {key: record.ir for key, record in pending.items()},
            )

        for key, text in rendered.items():
            record = pending[key]
            record.text = text
            record.status = UnitStatus.RENDERED

        logger.debug(f"Rendered {len(rendered)} unit(s) on {workers} worker(s)")
        return list(records)
