"""uvbridge: build models for Keil uVision projects.

The package reads ``.uvproj`` (C51) and ``.uvprojx`` (MDK-ARM) project files
and exposes each target's include paths, macro definitions and source groups,
keeping ``.vscode/c_cpp_properties.json`` in sync for editor tooling.
"""

from __future__ import annotations

from .core import (
    ExternalToolUnavailable,
    FileGroup,
    MacroDiscoveryFailed,
    MalformedDocument,
    PersistenceWriteFailed,
    Project,
    ProjectTarget,
    Source,
    SourceCategory,
    Target,
    TargetBuilder,
    UnresolvedToolchain,
    UvBridgeError,
)
from .cpp_properties import CppPropertiesStore
from .explorer import ProjectExplorer
from .macros import MacroCache, discover_macros, to_expression
from .settings import ToolchainSettings, load_settings
from .tasks import BuildTask, render_command_line
from .toolchains import get_strategies, register, resolve_strategy

__all__ = [
    "BuildTask",
    "CppPropertiesStore",
    "ExternalToolUnavailable",
    "FileGroup",
    "MacroCache",
    "MacroDiscoveryFailed",
    "MalformedDocument",
    "PersistenceWriteFailed",
    "Project",
    "ProjectExplorer",
    "ProjectTarget",
    "Source",
    "SourceCategory",
    "Target",
    "TargetBuilder",
    "ToolchainSettings",
    "UnresolvedToolchain",
    "UvBridgeError",
    "discover_macros",
    "get_strategies",
    "load_settings",
    "register",
    "render_command_line",
    "resolve_strategy",
    "to_expression",
]
