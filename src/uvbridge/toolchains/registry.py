"""Toolchain strategy registry.

The registry keeps insertion-ordered strategy records keyed by name and maps
project file suffixes onto them.  A strategy is chosen once, when a project is
opened, and the resulting instance is immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Protocol, Tuple, Type

from ..core.types import UnresolvedToolchain
from ..formats.xml import as_list
from ..fs import FileSystem, LocalFileSystem
from ..macros import MacroCache, default_cache
from ..settings import ToolchainSettings


class ToolchainStrategy(Protocol):
    """Capability set implemented by every toolchain family."""

    name: str
    suffixes: Tuple[str, ...]
    problem_matchers: Tuple[str, ...]

    def extract_include_paths(self, target: Mapping[str, Any]) -> str:
        ...

    def extract_defines(self, target: Mapping[str, Any]) -> str:
        ...

    def extract_groups(self, target: Mapping[str, Any]) -> List[Any]:
        ...

    def extract_system_includes(self, target: Mapping[str, Any]) -> Optional[List[str]]:
        ...

    def extract_system_macros(self, target: Mapping[str, Any]) -> List[str]:
        ...

    def build_command(self, project_file: Path, target_name: str) -> List[str]:
        ...

    def rebuild_command(self, project_file: Path, target_name: str) -> List[str]:
        ...

    def flash_command(self, project_file: Path, target_name: str) -> List[str]:
        ...


@dataclass
class StrategyRecord:
    factory: Type[Any]
    name: str
    suffixes: Tuple[str, ...]


_STRATEGIES: List[StrategyRecord] = []


def register(factory: Type[Any]) -> Type[Any]:
    """Register a strategy class; usable as a class decorator.

    Registering the same class twice is a no-op.  A different class reusing a
    registered name or suffix raises :class:`ValueError` so collisions surface
    at import time.
    """

    name = factory.name
    suffixes = tuple(suffix.lower() for suffix in factory.suffixes)
    for record in _STRATEGIES:
        if record.factory is factory:
            return factory
        if record.name == name:
            raise ValueError(f"A toolchain named {name!r} is already registered: {record.factory!r}")
        clashing = set(record.suffixes) & set(suffixes)
        if clashing:
            raise ValueError(
                f"Suffix {sorted(clashing)[0]!r} is already handled by toolchain {record.name!r}"
            )
    _STRATEGIES.append(StrategyRecord(factory=factory, name=name, suffixes=suffixes))
    return factory


def get_strategies() -> Tuple[StrategyRecord, ...]:
    """Return a snapshot of registered strategies in registration order."""

    # Ensure registration side effects have run.
    from . import arm, c51  # noqa: F401

    return tuple(_STRATEGIES)


def supported_suffixes() -> Tuple[str, ...]:
    return tuple(suffix for record in get_strategies() for suffix in record.suffixes)


def resolve_strategy(
    project_file: Path,
    settings: Optional[ToolchainSettings] = None,
    *,
    fs: Optional[FileSystem] = None,
    macro_cache: Optional[MacroCache] = None,
) -> ToolchainStrategy:
    """Instantiate the strategy responsible for ``project_file``.

    Raises:
        UnresolvedToolchain: when no registered strategy handles the suffix.
    """

    suffix = Path(project_file).suffix.lower()
    for record in get_strategies():
        if suffix in record.suffixes:
            return record.factory(
                settings=settings or ToolchainSettings(),
                fs=fs or LocalFileSystem(),
                macro_cache=macro_cache or default_cache(),
            )
    known = ", ".join(supported_suffixes())
    raise UnresolvedToolchain(
        f"Unsupported project file {Path(project_file).name!r}; expected one of: {known}"
    )


def uv4_command(
    uv4_path: str,
    project_file: Path,
    target_name: str,
    flag: str,
    *,
    clean: bool = False,
) -> List[str]:
    """Build the argument list handed to the build orchestrator."""

    template = ["${toolPath}", flag, "${prjPath}", "-j0"]
    if clean:
        template.append("-z")
    template.extend(["-t", "${targetName}"])
    return [
        "--toolPath",
        uv4_path,
        "--prjPath",
        str(project_file),
        "--targetName",
        target_name,
        "-c",
        " ".join(template),
    ]


def group_nodes(target: Mapping[str, Any]) -> List[Any]:
    """Return the ``Groups/Group`` nodes as a list, empty when absent."""

    groups = target.get("Groups") if isinstance(target, Mapping) else None
    if not isinstance(groups, Mapping):
        return []
    value = groups.get("Group")
    if value is None or value == "":
        return []
    return as_list(value)


__all__ = [
    "StrategyRecord",
    "ToolchainStrategy",
    "get_strategies",
    "group_nodes",
    "register",
    "resolve_strategy",
    "supported_suffixes",
    "uv4_command",
]
