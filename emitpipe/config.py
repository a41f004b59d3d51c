"""
Pipeline Configuration
======================
Configuration for an emit pipeline run.

Every recognised option is a field here; anything else is rejected
by ``from_dict``.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass, fields

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_WRITE_BATCH_SIZE = 50
DEFAULT_RENDER_WORKERS = 4


@dataclass
class PipelineConfig:
    """
    Pipeline configuration.

    Attributes:
        write_only_if_changed: Skip destinations whose bytes already match
        write_batch_size: Max number of writes in flight at once
        verbose: Emit per-unit timing and progress to the verbose callback
        render_workers: Size of the render thread pool
        isolate_write_failures: Turn per-file I/O faults into diagnostics
            instead of aborting the run
        write_transformed_files: Persist sources produced by rewriters
        encoding: Text encoding used to compare and write outputs
    """

    # Write stage
    write_only_if_changed: bool = False
    write_batch_size: int = DEFAULT_WRITE_BATCH_SIZE
    isolate_write_failures: bool = True
    encoding: str = "utf-8"

    # Render stage
    render_workers: int = DEFAULT_RENDER_WORKERS

    # Rewrite stage
    write_transformed_files: bool = False

    # Observability
    verbose: bool = False

    def __post_init__(self):
        """Validate numeric limits."""
        if self.write_batch_size < 1:
            raise ConfigurationError(
                f"write_batch_size must be at least 1, got {self.write_batch_size}"
            )
        if self.render_workers < 1:
            raise ConfigurationError(
                f"render_workers must be at least 1, got {self.render_workers}"
            )
        if self.write_batch_size > 1024:
            logger.warning(
                f"write_batch_size={self.write_batch_size} may exhaust file handles "
                f"on constrained systems"
            )
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ConfigurationError(f"Unknown encoding: {self.encoding}") from e

    @classmethod
    def from_dict(cls, config_dict: dict) -> "PipelineConfig":
        """
        Create config from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            PipelineConfig instance

        Raises:
            ConfigurationError: If the dictionary holds an unknown option
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config_dict) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration option(s): {', '.join(unknown)}",
                details=f"Recognised: {', '.join(sorted(known))}",
            )
        return cls(**config_dict)

    def to_dict(self) -> dict:
        """
        Convert config to dictionary.

        Returns:
            Configuration dictionary
        """
        return {
            "write_only_if_changed": self.write_only_if_changed,
            "write_batch_size": self.write_batch_size,
            "isolate_write_failures": self.isolate_write_failures,
            "encoding": self.encoding,
            "render_workers": self.render_workers,
            "write_transformed_files": self.write_transformed_files,
            "verbose": self.verbose,
        }
