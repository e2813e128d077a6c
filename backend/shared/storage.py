"""Storage abstraction for scorekeeper snapshot persistence.

A snapshot is a single JSON document holding the current session, the
game history and the progression state. Files are written atomically
(temp file then rename) with owner-only permissions (0o600) inside an
owner-only directory (0o700).
"""

import contextlib
import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

# Owner-only directory permissions for snapshot storage.
_DATA_DIR_MODE = 0o700

# Owner-only file permissions for snapshot files.
_DATA_FILE_MODE = 0o600


class SnapshotStorage(Protocol):
    """Protocol for persisting serialized snapshots."""

    def save(self, content: str) -> None: ...

    def load(self) -> str | None: ...


class InMemorySnapshotStorage:
    """Keeps the last saved snapshot in memory."""

    def __init__(self, content: str | None = None) -> None:
        self._content = content

    def save(self, content: str) -> None:
        self._content = content

    def load(self) -> str | None:
        return self._content


class LocalSnapshotStorage:
    """Writes the snapshot to a single file on the local filesystem."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).resolve()

    @property
    def path(self) -> Path:
        return self._path

    def save(self, content: str) -> None:
        """Atomically replace the snapshot file with ``content``.

        Creates the parent directory lazily with owner-only permissions.
        A failed write leaves the previous snapshot intact and removes the
        temp file.
        """
        directory = self._path.parent
        directory.mkdir(mode=_DATA_DIR_MODE, parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp", prefix=".snapshot_")
        fd_owned = True
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _DATA_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(self._path)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
        logger.info("saved snapshot", path=str(self._path), size=len(content))

    def load(self) -> str | None:
        """Return the stored snapshot text, or None if nothing was saved yet."""
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
