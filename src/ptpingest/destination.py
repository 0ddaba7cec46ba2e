"""Date-bucketed destination paths with collision handling."""

from __future__ import annotations

import logging
import stat
from datetime import date
from pathlib import Path

from .errors import DestinationError

logger = logging.getLogger(__name__)

# Upper bound on "-N" suffixes tried for one filename
MAX_SUFFIX_PROBES = 10_000


def bucket_for(root: Path, captured: date) -> Path:
    """Return ``root/{year}/{month}/{day}`` without zero padding."""
    return root / str(captured.year) / str(captured.month) / str(captured.day)


def _existing_size(path: Path) -> int | None:
    """Size of the regular file at ``path``, -1 for anything else, None if absent.

    Symlinks are not followed; a dangling link still occupies the name.
    """
    try:
        st = path.lstat()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise DestinationError(f"Could not check {path}: {e}") from e
    if not stat.S_ISREG(st.st_mode):
        return -1
    return st.st_size


def resolve_destination(root: Path, captured: date, filename: str, size: int) -> Path | None:
    """Pick where an object of ``size`` bytes should be written.

    Creates the bucket directory. Returns None when a file of the same length
    already sits at the plain name or at one of its numbered variants.

    Raises:
        DestinationError: on filesystem errors or when every suffix up to
            MAX_SUFFIX_PROBES is taken.
    """
    bucket = bucket_for(root, captured)
    try:
        bucket.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DestinationError(f"Could not create {bucket}: {e}") from e

    candidate = bucket / filename
    existing = _existing_size(candidate)
    if existing is None:
        return candidate
    if existing == size:
        logger.info("%s already downloaded, skipping", candidate)
        return None

    logger.debug("%s exists with %d bytes, expected %d", candidate, existing, size)
    for n in range(1, MAX_SUFFIX_PROBES + 1):
        candidate = bucket / f"{filename}-{n}"
        existing = _existing_size(candidate)
        if existing is None:
            logger.info("%s differs from the file on disk, saving as %s", filename, candidate.name)
            return candidate
        if existing == size:
            logger.info("%s already downloaded as %s, skipping", filename, candidate)
            return None

    raise DestinationError(
        f"No free name for {filename} in {bucket} after {MAX_SUFFIX_PROBES} attempts"
    )
