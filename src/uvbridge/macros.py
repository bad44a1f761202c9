"""Compiler built-in macro discovery.

``armclang -E -dM -`` prints one ``#define`` per predefined macro.  Each line is
turned into the ``NAME=VALUE`` form accepted by code-intelligence tools:

>>> to_expression("#define __ARM_ARCH 7")
'__ARM_ARCH=7'
>>> to_expression("#define __NOP() __builtin_arm_nop()")
'__NOP()='
>>> to_expression("#define __VFP_FP__")
'__VFP_FP__='
>>> to_expression("// not a define") is None
True

Function-like macros keep only their signature; the body would need a real
preprocessor and code-intelligence tools only need to know the name exists.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .core.types import MacroDiscoveryFailed

logger = logging.getLogger(__name__)

ProcessRunner = Callable[[Sequence[str]], Tuple[str, int]]

_OBJECT_MACRO = re.compile(r"^#define\s+(?P<name>\w+)(?:\s+(?P<value>.*))?$")
_FUNCTION_MACRO = re.compile(r"^#define\s+(?P<signature>\w+\([^)]*\))(?:\s+.*)?$")

DISCOVERY_FLAGS: Tuple[str, ...] = ("--target=arm-arm-none-eabi", "-E", "-dM", "-")

FALLBACK_MACROS: Tuple[str, ...] = (
    "__GNUC__=4",
    "__GNUC_MINOR__=2",
    "__GNUC_PATCHLEVEL__=1",
)


def to_expression(line: str) -> Optional[str]:
    """Normalise one ``#define`` line, returning ``None`` for anything else."""

    stripped = line.rstrip()
    if not stripped:
        return None

    match = _OBJECT_MACRO.match(stripped)
    if match:
        return f"{match.group('name')}={match.group('value') or ''}"

    match = _FUNCTION_MACRO.match(stripped)
    if match:
        return f"{match.group('signature')}="
    return None


def parse_macro_dump(output: str) -> List[str]:
    macros: List[str] = []
    for line in output.splitlines():
        expression = to_expression(line)
        if expression:
            macros.append(expression)
    return macros


def run_process(argv: Sequence[str]) -> Tuple[str, int]:
    """Run ``argv`` with empty stdin and return ``(stdout, returncode)``."""

    completed = subprocess.run(
        list(argv),
        input="",
        capture_output=True,
        text=True,
        check=False,
    )
    return completed.stdout, completed.returncode


def _query_compiler(compiler_path: str, runner: ProcessRunner) -> List[str]:
    try:
        output, returncode = runner([compiler_path, *DISCOVERY_FLAGS])
    except (OSError, ValueError, UnicodeDecodeError) as exc:
        raise MacroDiscoveryFailed(f"{compiler_path}: {exc}") from exc
    if returncode != 0:
        raise MacroDiscoveryFailed(f"{compiler_path} exited with status {returncode}")
    return parse_macro_dump(output)


def discover_macros(compiler_path: str, runner: Optional[ProcessRunner] = None) -> List[str]:
    """Ask ``compiler_path`` for its predefined macros.

    Any failure degrades to :data:`FALLBACK_MACROS` so a missing or broken
    compiler never blocks target loading.
    """

    try:
        return _query_compiler(compiler_path, runner or run_process)
    except MacroDiscoveryFailed as exc:
        logger.warning("Macro discovery failed, using fallback macros: %s", exc)
        return list(FALLBACK_MACROS)


@dataclass
class MacroCache:
    """Lazily computed discovery results keyed by compiler path."""

    runner: Optional[ProcessRunner] = None
    _entries: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def get(self, compiler_path: str) -> List[str]:
        cached = self._entries.get(compiler_path)
        if cached is None:
            cached = tuple(discover_macros(compiler_path, self.runner))
            self._entries[compiler_path] = cached
        return list(cached)

    def __contains__(self, compiler_path: object) -> bool:
        return compiler_path in self._entries

    def reset(self) -> None:
        self._entries.clear()


_DEFAULT_CACHE = MacroCache()


def default_cache() -> MacroCache:
    return _DEFAULT_CACHE


def reset_default_cache() -> None:
    """Forget every memoised discovery result (used by tests)."""

    _DEFAULT_CACHE.reset()


__all__ = [
    "DISCOVERY_FLAGS",
    "FALLBACK_MACROS",
    "MacroCache",
    "ProcessRunner",
    "default_cache",
    "discover_macros",
    "parse_macro_dump",
    "reset_default_cache",
    "run_process",
    "to_expression",
]
