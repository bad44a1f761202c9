"""Merge target configurations into ``.vscode/c_cpp_properties.json``.

The file is shared with other tooling, so every update reads the whole
document, patches only the configuration whose ``name`` matches the target and
writes the whole document back.  Unknown keys and unrelated configurations are
kept verbatim.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, MutableMapping, Optional

from .core.types import PersistenceWriteFailed
from .fs import FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)

CPP_PROPERTIES_NAME = "c_cpp_properties.json"
CPP_PROPERTIES_VERSION = 4
DEFAULT_INTELLISENSE_MODE = "${default}"


def default_document() -> Dict[str, Any]:
    return {"configurations": [], "version": CPP_PROPERTIES_VERSION}


def _coerce_document(payload: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(payload, MutableMapping):
        return None
    configurations = payload.get("configurations")
    if configurations is None:
        payload["configurations"] = []
    elif not isinstance(configurations, list):
        return None
    return dict(payload)


class CppPropertiesStore:
    """Read-merge-write access to one ``c_cpp_properties.json`` file."""

    def __init__(self, path: Path, fs: Optional[FileSystem] = None) -> None:
        self.path = Path(path)
        self._fs = fs or LocalFileSystem()

    def read(self) -> Dict[str, Any]:
        """Return the current document, or a fresh default when unusable."""

        if not self._fs.is_file(self.path):
            return default_document()
        try:
            payload = json.loads(self._fs.read_text(self.path))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable %s: %s", self.path, exc)
            return default_document()
        document = _coerce_document(payload)
        if document is None:
            logger.warning("Ignoring %s: unexpected document structure", self.path)
            return default_document()
        return document

    def write(self, document: Dict[str, Any]) -> None:
        text = json.dumps(document, indent=4)
        try:
            self._fs.write_text(self.path, text)
        except OSError as exc:
            raise PersistenceWriteFailed(f"Unable to write {self.path}: {exc}") from exc

    def update(self, name: str, includes: Iterable[str], defines: Iterable[str]) -> Dict[str, Any]:
        """Insert or refresh the configuration named ``name`` and persist it."""

        document = self.read()
        configurations: List[Any] = document["configurations"]
        include_list = list(includes)
        define_list = list(defines)
        for entry in configurations:
            if isinstance(entry, MutableMapping) and entry.get("name") == name:
                entry["includePath"] = include_list
                entry["defines"] = define_list
                break
        else:
            configurations.append(
                {
                    "name": name,
                    "includePath": include_list,
                    "defines": define_list,
                    "intelliSenseMode": DEFAULT_INTELLISENSE_MODE,
                }
            )
        self.write(document)
        return document

    def configuration(self, name: str) -> Optional[Dict[str, Any]]:
        for entry in self.read()["configurations"]:
            if isinstance(entry, MutableMapping) and entry.get("name") == name:
                return dict(entry)
        return None


__all__ = [
    "CPP_PROPERTIES_NAME",
    "CPP_PROPERTIES_VERSION",
    "CppPropertiesStore",
    "DEFAULT_INTELLISENSE_MODE",
    "default_document",
]
