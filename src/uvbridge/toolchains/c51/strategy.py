"""Keil C51 (8051) toolchain strategy for ``.uvproj`` projects.

C51 keywords such as ``xdata`` or ``sbit`` are not C.  The system macro table
rewrites them into empty tokens or plain integer types so generic C parsers
can read 8051 sources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, List, Mapping, Optional, Tuple

from ...formats.xml import text_at
from ...fs import FileSystem, LocalFileSystem
from ...macros import MacroCache, default_cache
from ...settings import ToolchainSettings, join_tool_path, keil_root
from ..registry import group_nodes, register, uv4_command

_OPTIONS_PATH = ("TargetOption", "Target51", "C51", "VariousControls")

C51_MACROS: Tuple[str, ...] = (
    "__C51__",
    "__VSCODE_C51__",
    "reentrant=",
    "compact=",
    "small=",
    "large=",
    "data=",
    "idata=",
    "pdata=",
    "bdata=",
    "xdata=",
    "code=",
    "bit=char",
    "sbit=char",
    "sfr=char",
    "sfr16=int",
    "sfr32=int",
    "interrupt=",
    "using=",
    "_at_=",
    "_priority_=",
    "_task_=",
)


@register
@dataclass(frozen=True)
class C51Strategy:
    name: ClassVar[str] = "c51"
    suffixes: ClassVar[Tuple[str, ...]] = (".uvproj",)
    problem_matchers: ClassVar[Tuple[str, ...]] = ("$c51",)

    settings: ToolchainSettings = field(default_factory=ToolchainSettings)
    fs: FileSystem = field(default_factory=LocalFileSystem, compare=False)
    macro_cache: MacroCache = field(default_factory=default_cache, compare=False)

    def extract_include_paths(self, target: Mapping[str, Any]) -> str:
        return text_at(target, *_OPTIONS_PATH, "IncludePath")

    def extract_defines(self, target: Mapping[str, Any]) -> str:
        return text_at(target, *_OPTIONS_PATH, "Define")

    def extract_groups(self, target: Mapping[str, Any]) -> List[Any]:
        return group_nodes(target)

    def extract_system_includes(self, target: Mapping[str, Any]) -> Optional[List[str]]:
        uv4_path = self.settings.c51_uv4_path
        if not self.fs.is_file(uv4_path):
            return None
        return [join_tool_path(keil_root(uv4_path), "C51", "INC")]

    def extract_system_macros(self, target: Mapping[str, Any]) -> List[str]:
        return list(C51_MACROS)

    def build_command(self, project_file: Path, target_name: str) -> List[str]:
        return uv4_command(self.settings.c51_uv4_path, project_file, target_name, "-b")

    def rebuild_command(self, project_file: Path, target_name: str) -> List[str]:
        return uv4_command(self.settings.c51_uv4_path, project_file, target_name, "-r", clean=True)

    def flash_command(self, project_file: Path, target_name: str) -> List[str]:
        return uv4_command(self.settings.c51_uv4_path, project_file, target_name, "-f")


__all__ = ["C51Strategy", "C51_MACROS"]
