"""Object metadata resolution: folder filtering, capture dates, reporting size."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from .camera import CameraSession
from .config import MIB, IngestConfig
from .errors import DateParseError, MetadataError
from .ptp.constants import PTPObjectFormat

logger = logging.getLogger(__name__)

CAPTURE_DATE_FORMAT = "%Y%m%dT%H%M%S"

# PTP DateTime strings may carry tenths of a second and a UTC offset
_DATE_TRAILER = re.compile(r"(\.\d)?(Z|[+-]\d{4})?$")


@dataclass
class ObjectMetadata:
    """What the pipeline needs to place and fetch one file object."""

    handle: int
    filename: str
    size: int
    captured: datetime

    @property
    def size_mib(self) -> float:
        return self.size / 1024 / 1024


def parse_capture_date(value: str) -> datetime:
    """Parse a PTP capture date (``YYYYMMDDThhmmss``).

    Raises:
        ValueError: if the string does not follow the layout.
    """
    core = _DATE_TRAILER.sub("", value, count=1) if len(value) > 15 else value
    return datetime.strptime(core, CAPTURE_DATE_FORMAT)


def resolve_metadata(
    camera: CameraSession, handle: int, config: IngestConfig
) -> ObjectMetadata | None:
    """Fetch and check the ObjectInfo of ``handle``.

    Returns None for folders. Raises DateParseError when the capture date
    cannot be read; other collaborator errors propagate unchanged.
    """
    info = camera.get_object_info(handle)

    if info.object_format == PTPObjectFormat.ASSOCIATION:
        logger.debug("Skipping folder %r (%#010x)", info.filename, handle)
        return None

    if info.filename in ("", ".", "..") or "/" in info.filename or "\\" in info.filename:
        raise MetadataError(f"Unusable filename {info.filename!r}", handle)

    try:
        captured = parse_capture_date(info.capture_date)
    except ValueError as e:
        raise DateParseError(
            f"Could not parse capture date {info.capture_date!r} of {info.filename!r}: {e}",
            handle,
        ) from e

    meta = ObjectMetadata(
        handle=handle, filename=info.filename, size=info.compressed_size, captured=captured
    )
    logger.info(
        "%s (%.2f MiB) from %s", meta.filename, meta.size_mib, captured.strftime("%d/%m/%Y")
    )

    threshold = config.large_object_warning_bytes
    if threshold is not None and meta.size >= threshold:
        logger.warning(
            "%s is large (%.2f MiB, warning threshold %.2f MiB); downloading anyway",
            meta.filename,
            meta.size_mib,
            threshold / MIB,
        )

    return meta
