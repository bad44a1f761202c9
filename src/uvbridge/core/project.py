"""Project model: one uVision project file and the targets it declares.

A :class:`Project` owns its targets outright.  Any change to the project file
triggers a full rebuild; targets are never patched in place.

Examples
--------
>>> from pathlib import Path
>>> project_id(Path("/work/app/app.uvprojx")) == project_id(Path("/work/app/app.uvprojx"))
True
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Tuple

from ..formats.xml import as_list, node_at, parse_document
from ..fs import FileSystem, FileWatcher, LocalFileSystem, PollingFileWatcher, WatcherFactory
from ..macros import MacroCache
from ..settings import ToolchainSettings
from ..tasks import BuildTask, render_command_line
from ..toolchains.registry import ToolchainStrategy, resolve_strategy
from .builder import TargetBuilder, to_absolute_path
from .events import ChangeChannel, Listener
from .types import MalformedDocument, Target, UvBridgeError

VSCODE_DIR_NAME = ".vscode"
PROJECT_LOG_NAME = "uvbridge.log"
UV4_LOG_NAME = "uv4.log"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def project_id(project_file: Path) -> str:
    """Stable identifier: MD5 hex digest of the absolute project path."""

    return hashlib.md5(str(Path(project_file).absolute()).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class TargetLoadFailure:
    index: int
    name: str
    reason: str


class ProjectTarget:
    """One ``<Target>`` node of a project plus its loaded model."""

    def __init__(self, project: "Project", node: Any, builder: TargetBuilder) -> None:
        self.project = project
        self._node = node
        self._builder = builder
        self._changed = ChangeChannel()
        self.model: Optional[Target] = None
        raw_name = node.get("TargetName") if isinstance(node, Mapping) else None
        self._declared_name = raw_name.strip() if isinstance(raw_name, str) else ""

    @property
    def name(self) -> str:
        if self.model is not None:
            return self.model.name
        return self._declared_name

    @property
    def prj_id(self) -> str:
        return self.project.prj_id

    @property
    def strategy(self) -> ToolchainStrategy:
        return self._builder.strategy

    def on_data_changed(self, listener: Listener) -> Callable[[], None]:
        return self._changed.connect(listener)

    def load(self) -> Target:
        self.model = self._builder.build(self.project, self._node)
        self._changed.emit()
        return self.model

    def close(self) -> None:
        self._changed.clear()

    def build_task(self) -> BuildTask:
        return BuildTask(
            name="build",
            args=tuple(self.strategy.build_command(self.project.project_file, self.name)),
            problem_matchers=tuple(self.strategy.problem_matchers),
        )

    def rebuild_task(self) -> BuildTask:
        return BuildTask(
            name="rebuild",
            args=tuple(self.strategy.rebuild_command(self.project.project_file, self.name)),
            problem_matchers=tuple(self.strategy.problem_matchers),
        )

    def flash_task(self) -> BuildTask:
        return BuildTask(
            name="download",
            args=tuple(self.strategy.flash_command(self.project.project_file, self.name)),
            problem_matchers=tuple(self.strategy.problem_matchers),
        )

    def command_line(self, task: BuildTask) -> str:
        settings = self.project.settings
        return render_command_line(
            settings.builder_exe,
            task,
            log_file=self.project.uv4_log_file,
            shell=settings.shell,
        )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"ProjectTarget(name={self.name!r}, prj_id={self.prj_id!r})"


class Project:
    """A loaded uVision project.

    Raises:
        UnresolvedToolchain: at construction when the file suffix is not
            handled by any registered toolchain strategy.
        FileNotFoundError: at construction when the project file is missing;
            nothing is created on disk in that case.
    """

    def __init__(
        self,
        project_file: Path,
        settings: Optional[ToolchainSettings] = None,
        *,
        fs: Optional[FileSystem] = None,
        watcher_factory: Optional[WatcherFactory] = None,
        macro_cache: Optional[MacroCache] = None,
        logger: Optional[logging.Logger] = None,
        log_to_file: bool = True,
    ) -> None:
        self.project_file = Path(project_file).expanduser().absolute()
        self.settings = settings or ToolchainSettings()
        self._fs = fs or LocalFileSystem()
        self.strategy = resolve_strategy(
            self.project_file,
            self.settings,
            fs=self._fs,
            macro_cache=macro_cache,
        )
        if not self._fs.is_file(self.project_file):
            raise FileNotFoundError(f"Project file not found: {self.project_file}")
        self.prj_id = project_id(self.project_file)
        self.label = self.project_file.stem
        self.vscode_dir = self.project_file.parent / VSCODE_DIR_NAME

        self.logger = logger or logging.getLogger(f"uvbridge.project.{self.prj_id}")
        self._log_handler: Optional[logging.Handler] = None
        self._builder = TargetBuilder(self.strategy, fs=self._fs)
        self._targets: List[ProjectTarget] = []
        self.failures: List[TargetLoadFailure] = []
        self._changed = ChangeChannel()

        factory = watcher_factory or PollingFileWatcher
        self.watcher: FileWatcher = factory(self.project_file, self.reload)
        self.watcher.watch()

        self._fs.make_dir(self.vscode_dir)
        if log_to_file:
            self._log_handler = self._attach_log_handler()
        self.logger.info("Log at : %s", datetime.now(timezone.utc).isoformat())

    @property
    def root_dir(self) -> Path:
        return self.project_file.parent

    @property
    def uv4_log_file(self) -> Path:
        return self.vscode_dir / UV4_LOG_NAME

    @property
    def targets(self) -> Tuple[ProjectTarget, ...]:
        return tuple(self._targets)

    def get_targets(self) -> List[ProjectTarget]:
        return list(self._targets)

    def get_target(self, name: str) -> Optional[ProjectTarget]:
        for target in self._targets:
            if target.name == name:
                return target
        return None

    def on_data_changed(self, listener: Listener) -> Callable[[], None]:
        return self._changed.connect(listener)

    def to_absolute_path(self, raw: str) -> str:
        return to_absolute_path(raw, str(self.root_dir))

    def _attach_log_handler(self) -> logging.Handler:
        handler = logging.FileHandler(self.vscode_dir / PROJECT_LOG_NAME, mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        self.logger.addHandler(handler)
        if self.logger.level == logging.NOTSET:
            self.logger.setLevel(logging.INFO)
        return handler

    def _detach_log_handler(self) -> None:
        if self._log_handler is None:
            return
        self.logger.removeHandler(self._log_handler)
        self._log_handler.close()
        self._log_handler = None

    def _discard_targets(self) -> None:
        for target in self._targets:
            target.close()
        self._targets = []
        self.failures = []

    def _target_nodes(self) -> List[Any]:
        document = parse_document(self._fs.read_text(self.project_file))
        targets = node_at(document, "Project", "Targets")
        nodes = as_list(targets.get("Target")) if isinstance(targets, Mapping) else []
        if not nodes:
            raise MalformedDocument(f"{self.project_file.name} declares no <Target>")
        return nodes

    def load(self) -> Tuple[ProjectTarget, ...]:
        """Parse the project file and load every target in document order.

        Document-level problems (unreadable file, malformed XML, no targets)
        raise.  A failing target is logged, recorded in :attr:`failures` and
        skipped; its siblings still load.
        """

        self._discard_targets()
        for index, node in enumerate(self._target_nodes()):
            target = ProjectTarget(self, node, self._builder)
            disconnect = target.on_data_changed(self._changed.emit)
            try:
                target.load()
            except Exception as exc:
                disconnect()
                target.close()
                name = target.name or f"#{index}"
                self.failures.append(TargetLoadFailure(index=index, name=name, reason=str(exc)))
                self.logger.error("Failed to load target %s: %s", name, exc)
                continue
            self._targets.append(target)
        self.logger.info(
            "[Project Load]: %s (%d targets, %d failed)",
            self.label,
            len(self._targets),
            len(self.failures),
        )
        return self.targets

    def reload(self) -> None:
        """Discard every target and load the project file again."""

        try:
            self.load()
        except (UvBridgeError, OSError) as exc:
            self._discard_targets()
            self.logger.error("Failed to reload %s: %s", self.project_file.name, exc)
        self._changed.emit()

    def close(self) -> None:
        self.watcher.close()
        self._discard_targets()
        self._changed.clear()
        self.logger.info("[Project Close]: %s", self.label)
        self._detach_log_handler()

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Project(label={self.label!r}, prj_id={self.prj_id!r})"


__all__ = [
    "PROJECT_LOG_NAME",
    "Project",
    "ProjectTarget",
    "TargetLoadFailure",
    "UV4_LOG_NAME",
    "VSCODE_DIR_NAME",
    "project_id",
]
