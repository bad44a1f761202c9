"""Turn one ``<Target>`` document node into a resolved :class:`Target`.

The builder asks the project's toolchain strategy for the raw option strings,
resolves every path against the project directory, merges the toolchain's
system includes and macros, and writes the result into the shared
``c_cpp_properties.json`` next to the project.
"""

from __future__ import annotations

import logging
import ntpath
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Protocol

from ..cpp_properties import CPP_PROPERTIES_NAME, CppPropertiesStore
from ..formats.xml import as_list, text_at
from ..fs import FileSystem, LocalFileSystem
from .types import (
    FileGroup,
    MalformedDocument,
    PersistenceWriteFailed,
    Source,
    Target,
    is_drive_path,
)

if TYPE_CHECKING:  # pragma: no cover - import only for type hints
    from ..toolchains.registry import ToolchainStrategy

_DEFINE_SEPARATORS = re.compile(r"[,\s]+")


class ProjectInfo(Protocol):
    """The parts of a project a builder needs to see."""

    prj_id: str
    project_file: Path
    vscode_dir: Path
    logger: logging.Logger

    def to_absolute_path(self, raw: str) -> str:
        ...


def to_absolute_path(raw: str, base_dir: str) -> str:
    """Resolve a project-relative path token.

    Drive-letter paths are kept (only separators and ``..`` are normalised);
    everything else is joined onto ``base_dir``.

    >>> to_absolute_path("C:/Keil_v5/ARM/INC", "/work")
    'C:\\\\Keil_v5\\\\ARM\\\\INC'
    """

    if is_drive_path(raw):
        return ntpath.normpath(raw)
    relative = raw.replace("\\", os.sep).replace("/", os.sep)
    return os.path.normpath(os.path.join(base_dir, relative))


def split_include_paths(raw: str) -> List[str]:
    return [token.strip() for token in raw.split(";") if token.strip()]


def split_defines(raw: str) -> List[str]:
    return [token for token in _DEFINE_SEPARATORS.split(raw) if token]


def _is_excluded(file_node: Mapping[str, Any]) -> bool:
    option = file_node.get("FileOption")
    if not isinstance(option, Mapping):
        return False
    common = option.get("CommonProperty")
    return isinstance(common, Mapping) and common.get("IncludeInBuild") == "0"


def _group_files(group: Mapping[str, Any]) -> List[Any]:
    files: List[Any] = []
    for container in as_list(group.get("Files")):
        if isinstance(container, Mapping):
            files.extend(as_list(container.get("File")))
    return files


class TargetBuilder:
    """Build :class:`Target` models with a fixed toolchain strategy."""

    def __init__(
        self,
        strategy: "ToolchainStrategy",
        *,
        fs: Optional[FileSystem] = None,
        persist: bool = True,
    ) -> None:
        self.strategy = strategy
        self._fs = fs or LocalFileSystem()
        self._persist = persist

    def build(self, project: ProjectInfo, node: Any) -> Target:
        if not isinstance(node, Mapping):
            raise MalformedDocument("<Target> must be an element container")
        name = text_at(node, "TargetName").strip()
        if not name:
            raise MalformedDocument("<Target> has no <TargetName>")

        includes: List[str] = []
        raw_includes = split_include_paths(self.strategy.extract_include_paths(node))
        system_includes = self.strategy.extract_system_includes(node) or []
        for token in [*raw_includes, *system_includes]:
            includes.append(project.to_absolute_path(token))

        defines = split_defines(self.strategy.extract_defines(node))
        groups = self._build_groups(project, node, includes)
        defines.extend(self.strategy.extract_system_macros(node))

        target = Target(
            name=name,
            toolchain=self.strategy.name,
            includes=tuple(includes),
            defines=tuple(defines),
            groups=tuple(groups),
        )
        if self._persist:
            self._persist_target(project, target)
        return target

    def _build_groups(self, project: ProjectInfo, node: Mapping[str, Any], includes: List[str]) -> List[FileGroup]:
        groups: List[FileGroup] = []
        for group in as_list(self.strategy.extract_groups(node)):
            if not isinstance(group, Mapping) or "Files" not in group:
                continue
            sources: List[Source] = []
            for file_node in _group_files(group):
                if not isinstance(file_node, Mapping):
                    raise MalformedDocument("<File> must be an element container")
                raw_path = text_at(file_node, "FilePath").strip()
                if not raw_path:
                    raise MalformedDocument("<File> has no <FilePath>")
                source = Source.from_path(
                    project.to_absolute_path(raw_path),
                    enabled=not _is_excluded(file_node),
                )
                includes.append(source.directory)
                sources.append(source)
            groups.append(FileGroup(name=text_at(group, "GroupName"), sources=tuple(sources)))
        return groups

    def _persist_target(self, project: ProjectInfo, target: Target) -> None:
        store = CppPropertiesStore(project.vscode_dir / CPP_PROPERTIES_NAME, fs=self._fs)
        try:
            store.update(target.name, target.includes, target.defines)
        except PersistenceWriteFailed as exc:
            project.logger.warning("Target %s loaded without saving: %s", target.name, exc)


__all__ = [
    "ProjectInfo",
    "TargetBuilder",
    "split_defines",
    "split_include_paths",
    "to_absolute_path",
]
