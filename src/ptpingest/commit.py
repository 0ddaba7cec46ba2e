"""Writing downloaded objects to disk."""

from __future__ import annotations

from pathlib import Path

from .errors import CommitError


def commit_file(path: Path, data: bytes) -> None:
    """Create ``path`` and write ``data`` to it.

    The file must not exist yet. A partially written file is removed before
    CommitError is raised.
    """
    try:
        with open(path, "xb") as fh:
            fh.write(data)
    except FileExistsError as e:
        raise CommitError(f"Refusing to overwrite {path}") from e
    except OSError as e:
        path.unlink(missing_ok=True)
        raise CommitError(f"Could not write {path}: {e}") from e
