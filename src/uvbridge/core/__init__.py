"""uvbridge core module exports."""

from .builder import ProjectInfo, TargetBuilder, to_absolute_path
from .events import ChangeChannel
from .project import Project, ProjectTarget, TargetLoadFailure, project_id
from .types import (
    ExternalToolUnavailable,
    FileGroup,
    MacroDiscoveryFailed,
    MalformedDocument,
    PersistenceWriteFailed,
    Source,
    SourceCategory,
    Target,
    UnresolvedToolchain,
    UvBridgeError,
)

__all__ = [
    "ChangeChannel",
    "ExternalToolUnavailable",
    "FileGroup",
    "MacroDiscoveryFailed",
    "MalformedDocument",
    "PersistenceWriteFailed",
    "Project",
    "ProjectInfo",
    "ProjectTarget",
    "Source",
    "SourceCategory",
    "Target",
    "TargetBuilder",
    "TargetLoadFailure",
    "UnresolvedToolchain",
    "UvBridgeError",
    "project_id",
    "to_absolute_path",
]
