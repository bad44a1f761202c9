"""Shared data structures and error types for the uvbridge project model.

The model mirrors what a Keil project explorer shows: a target owns an ordered
list of file groups, each group owns an ordered list of sources.  Everything in
this module is immutable once built so a reload simply swaps whole objects.

Example
-------
>>> source = Source.from_path("/work/app/src/main.c")
>>> source.category.value, source.icon
('c', 'CFile_16x')
>>> Source.from_path("/work/app/startup.s", enabled=False).icon
'FileExclude_16x'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import ntpath
import os
import re
from types import ModuleType
from typing import Any, Dict, Iterable, Tuple


class UvBridgeError(RuntimeError):
    """Base class for every error raised by uvbridge."""


class MalformedDocument(UvBridgeError, ValueError):
    """Raised when a project document cannot be parsed or lacks required nodes."""


class UnresolvedToolchain(UvBridgeError):
    """Raised when a project file does not map to a known toolchain."""


class ExternalToolUnavailable(UvBridgeError):
    """Raised when a toolchain installation cannot be located on disk."""


class MacroDiscoveryFailed(UvBridgeError):
    """Raised when the external compiler cannot report its predefined macros."""


class PersistenceWriteFailed(UvBridgeError):
    """Raised when the derived IDE configuration cannot be written."""


class SourceCategory(str, Enum):
    C_SOURCE = "c"
    CPP_SOURCE = "cpp"
    HEADER = "header"
    ASSEMBLY = "assembly"
    LIBRARY = "library"
    OTHER = "other"


_SUFFIX_CATEGORIES: Dict[str, SourceCategory] = {
    ".c": SourceCategory.C_SOURCE,
    ".h": SourceCategory.HEADER,
    ".hpp": SourceCategory.HEADER,
    ".hxx": SourceCategory.HEADER,
    ".inc": SourceCategory.HEADER,
    ".cpp": SourceCategory.CPP_SOURCE,
    ".c++": SourceCategory.CPP_SOURCE,
    ".cxx": SourceCategory.CPP_SOURCE,
    ".cc": SourceCategory.CPP_SOURCE,
    ".s": SourceCategory.ASSEMBLY,
    ".a51": SourceCategory.ASSEMBLY,
    ".asm": SourceCategory.ASSEMBLY,
    ".lib": SourceCategory.LIBRARY,
    ".a": SourceCategory.LIBRARY,
}

_CATEGORY_ICONS: Dict[SourceCategory, str] = {
    SourceCategory.C_SOURCE: "CFile_16x",
    SourceCategory.HEADER: "CPPHeaderFile_16x",
    SourceCategory.CPP_SOURCE: "CPP_16x",
    SourceCategory.ASSEMBLY: "AssemblerSourceFile_16x",
    SourceCategory.LIBRARY: "Library_16x",
    SourceCategory.OTHER: "Text_16x",
}

EXCLUDED_ICON = "FileExclude_16x"


def categorise_suffix(suffix: str) -> SourceCategory:
    """Map a file suffix (with the leading dot) onto a :class:`SourceCategory`."""

    return _SUFFIX_CATEGORIES.get(suffix.lower(), SourceCategory.OTHER)


_DRIVE_PATH = re.compile(r"^[A-Za-z]:")


def is_drive_path(path: str) -> bool:
    """Return ``True`` for Windows drive-letter paths such as ``C:\\Keil``."""

    return bool(_DRIVE_PATH.match(path))


def path_module(path: str) -> ModuleType:
    """Pick the path flavour able to split ``path`` on this host."""

    return ntpath if is_drive_path(path) else os.path


def _dedupe(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


@dataclass(frozen=True)
class Source:
    path: str
    name: str
    enabled: bool = True
    category: SourceCategory = SourceCategory.OTHER

    @classmethod
    def from_path(cls, path: str, *, enabled: bool = True) -> "Source":
        flavour = path_module(path)
        name = flavour.basename(path)
        _, suffix = flavour.splitext(name)
        return cls(
            path=path,
            name=name,
            enabled=enabled,
            category=categorise_suffix(suffix),
        )

    @property
    def directory(self) -> str:
        return path_module(self.path).dirname(self.path)

    @property
    def icon(self) -> str:
        if not self.enabled:
            return EXCLUDED_ICON
        return _CATEGORY_ICONS[self.category]

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "name": self.name,
            "enabled": self.enabled,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class FileGroup:
    name: str
    sources: Tuple[Source, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "sources": [source.to_dict() for source in self.sources],
        }


@dataclass(frozen=True)
class Target:
    """Fully resolved build configuration for one ``<Target>`` node.

    ``includes`` and ``defines`` are deduplicated while keeping first-seen
    order so the persisted configuration stays stable between loads.
    """

    name: str
    toolchain: str
    includes: Tuple[str, ...] = ()
    defines: Tuple[str, ...] = ()
    groups: Tuple[FileGroup, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "includes", _dedupe(self.includes))
        object.__setattr__(self, "defines", _dedupe(self.defines))
        object.__setattr__(self, "groups", tuple(self.groups))

    def iter_sources(self) -> Iterable[Source]:
        for group in self.groups:
            yield from group.sources

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "toolchain": self.toolchain,
            "includes": list(self.includes),
            "defines": list(self.defines),
            "groups": [group.to_dict() for group in self.groups],
        }
