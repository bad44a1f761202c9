"""Multi-project registry with an active target.

The explorer is the headless half of an IDE project view: it opens and closes
projects, discovers project files in a workspace folder and tracks which
target build commands apply to.  Views subscribe through
:meth:`ProjectExplorer.on_view_changed`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .core.events import ChangeChannel, Listener
from .core.project import Project, ProjectTarget, project_id
from .fs import FileSystem, LocalFileSystem, WatcherFactory
from .macros import MacroCache
from .settings import ToolchainSettings
from .toolchains import supported_suffixes

logger = logging.getLogger(__name__)


class ProjectExplorer:
    def __init__(
        self,
        settings: Optional[ToolchainSettings] = None,
        *,
        fs: Optional[FileSystem] = None,
        watcher_factory: Optional[WatcherFactory] = None,
        macro_cache: Optional[MacroCache] = None,
        log_to_file: bool = True,
    ) -> None:
        self.settings = settings or ToolchainSettings()
        self._fs = fs or LocalFileSystem()
        self._watcher_factory = watcher_factory
        self._macro_cache = macro_cache
        self._log_to_file = log_to_file
        self._projects: Dict[str, Project] = {}
        self._active_key: Optional[Tuple[str, str]] = None
        self._view_changed = ChangeChannel()

    def on_view_changed(self, listener: Listener) -> Callable[[], None]:
        return self._view_changed.connect(listener)

    def _update_view(self) -> None:
        self._view_changed.emit()

    def projects(self) -> List[Project]:
        return list(self._projects.values())

    def get_project(self, prj_id: str) -> Optional[Project]:
        return self._projects.get(prj_id)

    def open_project(self, path: Path) -> Optional[Project]:
        """Open and load ``path``; returns ``None`` when it is already open.

        Errors (unknown toolchain, unreadable or malformed document) propagate
        to the caller.
        """

        path = Path(path).expanduser().absolute()
        if project_id(path) in self._projects:
            return None
        project = Project(
            path,
            self.settings,
            fs=self._fs,
            watcher_factory=self._watcher_factory,
            macro_cache=self._macro_cache,
            log_to_file=self._log_to_file,
        )
        try:
            project.load()
        except Exception:
            project.close()
            raise
        project.on_data_changed(self._update_view)
        self._projects[project.prj_id] = project
        self._update_view()
        return project

    def close_project(self, prj_id: str) -> bool:
        project = self._projects.pop(prj_id, None)
        if project is None:
            return False
        project.close()
        if self._active_key is not None and self._active_key[0] == prj_id:
            self._active_key = None
        self._update_view()
        return True

    def close_all(self) -> None:
        for prj_id in list(self._projects):
            self.close_project(prj_id)

    def load_workspace(self, folder: Path) -> List[Project]:
        """Open every project file directly inside ``folder``.

        Failures are logged and skipped.  The first target of the first loaded
        project becomes active when no target is active yet.
        """

        folder = Path(folder)
        if not self._fs.is_dir(folder):
            logger.warning("Workspace folder does not exist: %s", folder)
            return []
        suffixes = supported_suffixes()
        opened: List[Project] = []
        for entry in self._fs.list_dir(folder):
            if entry.suffix.lower() not in suffixes or not self._fs.is_file(entry):
                continue
            try:
                project = self.open_project(entry)
            except Exception as exc:
                logger.error("load project: '%s' failed !, msg: %s", entry.name, exc)
                continue
            if project is None:
                continue
            opened.append(project)
            if self._active_key is None and project.targets:
                self.set_active_target(project.targets[0])
        return opened

    @property
    def active_target(self) -> Optional[ProjectTarget]:
        """The active target, looked up by name so it survives project reloads."""

        if self._active_key is None:
            return None
        prj_id, name = self._active_key
        project = self._projects.get(prj_id)
        return project.get_target(name) if project is not None else None

    def set_active_target(self, target: ProjectTarget) -> None:
        self._active_key = (target.prj_id, target.name)
        self._update_view()

    def set_active_target_by_name(self, prj_id: str, name: str) -> bool:
        target = self.get_target(prj_id, name)
        if target is None:
            return False
        self.set_active_target(target)
        return True

    def reset_active_target(self) -> None:
        if self._active_key is not None:
            self._active_key = None
            self._update_view()

    def get_target(self, prj_id: Optional[str] = None, name: Optional[str] = None) -> Optional[ProjectTarget]:
        """Look a target up by project and name, or return the active target."""

        if prj_id is None:
            active = self.active_target
            if active is None:
                logger.warning("Not found any active target !")
            return active
        project = self._projects.get(prj_id)
        if project is None or name is None:
            return None
        return project.get_target(name)


__all__ = ["ProjectExplorer"]
