"""Build task descriptions handed to the build orchestrator.

uvbridge never spawns the build itself.  A :class:`BuildTask` carries the
orchestrator arguments produced by the toolchain strategy, and
:func:`render_command_line` turns it into the shell line a task runner or
terminal would execute.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

_CMD_SHELL = re.compile(r"cmd(\.exe)?$", re.IGNORECASE)


@dataclass(frozen=True)
class BuildTask:
    name: str
    args: Tuple[str, ...]
    problem_matchers: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "args": list(self.args),
            "problem_matchers": list(self.problem_matchers),
        }


def quote_argument(value: str, quote: str = '"') -> str:
    """Quote ``value`` when it contains a space.

    >>> quote_argument("C:\\\\Keil v5\\\\UV4.exe")
    '"C:\\\\Keil v5\\\\UV4.exe"'
    >>> quote_argument("-j0")
    '-j0'
    """

    return f"{quote}{value}{quote}" if " " in value else value


def is_cmd_shell(shell: str) -> bool:
    return bool(_CMD_SHELL.search(shell.strip()))


def render_command_line(
    builder_exe: str,
    task: BuildTask,
    *,
    log_file: Path,
    shell: str = "cmd.exe",
) -> str:
    """Render the full shell command for ``task``.

    ``cmd.exe`` gets double quotes and an outer quote pair; any other shell is
    treated as PowerShell, which needs single quotes and the ``&`` call
    operator to invoke a quoted executable path.
    """

    cmd = is_cmd_shell(shell)
    quote = '"' if cmd else "'"
    prefix = "" if cmd else "& "
    wrapper = '"' if cmd else ""

    args: Sequence[str] = ["-o", str(log_file), *task.args]
    line = prefix + quote_argument(builder_exe, quote) + " "
    line += " ".join(quote_argument(arg, quote) for arg in args)
    return f"{wrapper}{line}{wrapper}"


__all__ = ["BuildTask", "is_cmd_shell", "quote_argument", "render_command_line"]
