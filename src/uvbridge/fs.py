"""File-system and file-watch collaborators.

The project model only needs a handful of operations, so they are expressed as
small protocols.  :class:`LocalFileSystem` and :class:`PollingFileWatcher` are
the default implementations; tests and embedding applications can pass their
own.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FileSystem(Protocol):
    """Protocol implemented by file-system backends."""

    def read_text(self, path: PathLike) -> str:
        ...

    def write_text(self, path: PathLike, text: str) -> None:
        ...

    def exists(self, path: PathLike) -> bool:
        ...

    def is_file(self, path: PathLike) -> bool:
        ...

    def is_dir(self, path: PathLike) -> bool:
        ...

    def list_dir(self, path: PathLike, pattern: Optional[str] = None) -> List[Path]:
        ...

    def make_dir(self, path: PathLike) -> None:
        ...


class LocalFileSystem:
    """:class:`FileSystem` backed by :mod:`pathlib`."""

    def read_text(self, path: PathLike) -> str:
        return Path(path).read_text(encoding="utf-8", errors="replace")

    def write_text(self, path: PathLike, text: str) -> None:
        Path(path).write_text(text, encoding="utf-8")

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def is_file(self, path: PathLike) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: PathLike) -> bool:
        return Path(path).is_dir()

    def list_dir(self, path: PathLike, pattern: Optional[str] = None) -> List[Path]:
        """List direct children of ``path`` sorted by name.

        ``pattern`` is a case-insensitive glob applied to the entry name.
        """

        entries = sorted(Path(path).iterdir(), key=lambda entry: entry.name)
        if pattern is None:
            return entries
        lowered = pattern.lower()
        return [entry for entry in entries if fnmatch.fnmatch(entry.name.lower(), lowered)]

    def make_dir(self, path: PathLike) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)


class FileWatcher(Protocol):
    """Protocol for watchers that call back when a file changes."""

    def watch(self) -> None:
        ...

    def close(self) -> None:
        ...


WatcherFactory = Callable[[Path, Callable[[], None]], FileWatcher]


class PollingFileWatcher:
    """Modification-time watcher driven by explicit :meth:`poll` calls.

    No background thread is started; the host application decides when to
    poll (for example from its own event loop or timer).
    """

    def __init__(self, path: PathLike, on_changed: Callable[[], None]) -> None:
        self.path = Path(path)
        self._on_changed = on_changed
        self._last_mtime: Optional[int] = None
        self._watching = False

    @property
    def watching(self) -> bool:
        return self._watching

    def _stat_mtime(self) -> Optional[int]:
        try:
            return self.path.stat().st_mtime_ns
        except OSError:
            return None

    def watch(self) -> None:
        self._last_mtime = self._stat_mtime()
        self._watching = True

    def poll(self) -> bool:
        """Invoke the callback when the file changed since the last check."""

        if not self._watching:
            return False
        current = self._stat_mtime()
        if current is None or current == self._last_mtime:
            return False
        self._last_mtime = current
        logger.debug("Detected change in %s", self.path)
        self._on_changed()
        return True

    def close(self) -> None:
        self._watching = False


__all__ = [
    "FileSystem",
    "FileWatcher",
    "LocalFileSystem",
    "PathLike",
    "PollingFileWatcher",
    "WatcherFactory",
]
