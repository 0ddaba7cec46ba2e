"""Run configuration and defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

MIB = 1024 * 1024

# Largest single GetPartialObject request
DEFAULT_CHUNK_SIZE = 15 * MIB

# Objects at least this large are reported, never skipped
DEFAULT_LARGE_OBJECT_WARNING = 100 * MIB


class TransferMode(str, Enum):
    """How object bytes are retrieved from the camera."""

    AUTO = "auto"  # chunked above chunk_size when the camera supports it
    WHOLE = "whole"
    CHUNKED = "chunked"


@dataclass
class IngestConfig:
    """Settings for one ingest run."""

    destination: Path = field(default_factory=Path)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    mode: TransferMode = TransferMode.AUTO
    large_object_warning_bytes: int | None = DEFAULT_LARGE_OBJECT_WARNING

    def __post_init__(self) -> None:
        self.destination = Path(self.destination)
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        self.mode = TransferMode(self.mode)
