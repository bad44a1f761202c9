"""Toolchain location settings.

Keil installs every toolchain family below one root (``C:\\Keil_v5`` by
default), with ``UV4\\UV4.exe`` driving the build and the compilers living in
sibling directories.  C51 is often installed into its own root, hence the
separate ``c51_uv4_path``.

Settings come from, in increasing precedence, the defaults below, a JSON file
(:func:`load_settings`) and ``UVBRIDGE_*`` environment variables
(:meth:`ToolchainSettings.from_env`).
"""

from __future__ import annotations

import json
import ntpath
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .core.types import ExternalToolUnavailable

DEFAULT_UV4_PATH = "C:\\Keil_v5\\UV4\\UV4.exe"
DEFAULT_BUILDER_EXE = "Uv4Caller.exe"
DEFAULT_SHELL = "cmd.exe"

ENV_C51_UV4_PATH = "UVBRIDGE_C51_UV4_PATH"
ENV_ARM_UV4_PATH = "UVBRIDGE_ARM_UV4_PATH"
ENV_BUILDER_EXE = "UVBRIDGE_BUILDER_EXE"
ENV_SHELL = "UVBRIDGE_SHELL"

_FIELD_ALIASES = {
    "c51_uv4_path": ("c51_uv4_path", "C51.Uv4Path", "c51Uv4Path"),
    "arm_uv4_path": ("arm_uv4_path", "MDK.Uv4Path", "armUv4Path"),
    "builder_exe": ("builder_exe", "builderExe"),
    "shell": ("shell",),
}


def _normalise_optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return None


def _expand(value: str) -> str:
    return os.path.expanduser(os.path.expandvars(value))


def keil_root(uv4_path: str) -> str:
    """Return the Keil installation root for a ``UV4.exe`` path.

    >>> keil_root("C:\\\\Keil_v5\\\\UV4\\\\UV4.exe")
    'C:\\\\Keil_v5'
    """

    module = ntpath if ntpath.splitdrive(uv4_path)[0] else os.path
    return module.dirname(module.dirname(uv4_path))


def join_tool_path(root: str, *parts: str) -> str:
    module = ntpath if ntpath.splitdrive(root)[0] else os.path
    return module.join(root, *parts)


@dataclass(frozen=True)
class ToolchainSettings:
    c51_uv4_path: str = DEFAULT_UV4_PATH
    arm_uv4_path: str = DEFAULT_UV4_PATH
    builder_exe: str = DEFAULT_BUILDER_EXE
    shell: str = DEFAULT_SHELL

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ToolchainSettings":
        values: dict[str, str] = {}
        for field_name, aliases in _FIELD_ALIASES.items():
            for alias in aliases:
                value = _normalise_optional_str(payload.get(alias))
                if value is not None:
                    values[field_name] = _expand(value)
                    break
        return cls(**values)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        base: Optional["ToolchainSettings"] = None,
    ) -> "ToolchainSettings":
        env = os.environ if environ is None else environ
        settings = base or cls()
        overrides: dict[str, str] = {}
        for field_name, env_var in (
            ("c51_uv4_path", ENV_C51_UV4_PATH),
            ("arm_uv4_path", ENV_ARM_UV4_PATH),
            ("builder_exe", ENV_BUILDER_EXE),
            ("shell", ENV_SHELL),
        ):
            value = _normalise_optional_str(env.get(env_var))
            if value is not None:
                overrides[field_name] = _expand(value)
        return replace(settings, **overrides)

    def require_uv4(self, toolchain: str) -> Path:
        """Return the configured ``UV4.exe`` for ``toolchain`` or raise."""

        raw = self.c51_uv4_path if toolchain == "c51" else self.arm_uv4_path
        path = Path(raw)
        if not path.is_file():
            raise ExternalToolUnavailable(f"UV4 executable not found for {toolchain}: {raw}")
        return path


def load_settings(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> ToolchainSettings:
    """Load settings from an optional JSON file, then apply environment overrides."""

    base = ToolchainSettings()
    if path is not None:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, Mapping):
            raise ValueError("Settings file must contain a JSON object")
        base = ToolchainSettings.from_mapping(payload)
    return ToolchainSettings.from_env(environ, base=base)


__all__ = [
    "DEFAULT_BUILDER_EXE",
    "DEFAULT_SHELL",
    "DEFAULT_UV4_PATH",
    "ENV_ARM_UV4_PATH",
    "ENV_BUILDER_EXE",
    "ENV_C51_UV4_PATH",
    "ENV_SHELL",
    "ToolchainSettings",
    "join_tool_path",
    "keil_root",
    "load_settings",
]
