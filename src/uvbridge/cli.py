"""Command-line entry point for inspecting uVision projects.

* ``uvbridge <project>`` loads a project, refreshes
  ``.vscode/c_cpp_properties.json`` and prints a target table.
* ``uvbridge <project> --json`` prints one JSON object per target instead.
* ``uvbridge command <project> <target> {build,rebuild,flash}`` prints the
  build orchestrator arguments, or the rendered shell line with ``--render``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .core.project import Project, ProjectTarget
from .core.types import UvBridgeError
from .settings import ToolchainSettings, load_settings
from .tasks import BuildTask

_COMMANDS = ("build", "rebuild", "flash")


def _add_settings_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="JSON file with toolchain locations (UVBRIDGE_* variables still apply).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uvbridge", description="Load a Keil uVision project and report its targets"
    )
    parser.add_argument("project", type=Path, help="Path to a .uvproj or .uvprojx file.")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON lines instead of a table.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log progress to stderr.",
    )
    _add_settings_argument(parser)
    return parser


def _build_command_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uvbridge command",
        description="Print the build orchestrator arguments for a target.",
    )
    parser.add_argument("project", type=Path, help="Path to a .uvproj or .uvprojx file.")
    parser.add_argument("target", help="Target name as shown in uVision.")
    parser.add_argument("action", choices=_COMMANDS, help="Build action.")
    parser.add_argument(
        "--render",
        action="store_true",
        help="Print the shell command line instead of the JSON argument list.",
    )
    _add_settings_argument(parser)
    return parser


def _load_settings(path: Optional[Path], parser: argparse.ArgumentParser) -> ToolchainSettings:
    try:
        return load_settings(path)
    except (OSError, ValueError) as exc:
        parser.error(f"Unable to read settings: {exc}")
        raise  # pragma: no cover - parser.error exits


def _open_project(path: Path, settings: ToolchainSettings) -> Project:
    project = Project(path, settings, log_to_file=False)
    try:
        project.load()
    except Exception:
        project.close()
        raise
    return project


def _emit_table(project: Project) -> None:
    columns = ("Target", "Toolchain", "Groups", "Sources", "Includes", "Defines")
    rows = []
    for target in project.targets:
        model = target.model
        if model is None:
            continue
        rows.append(
            (
                model.name,
                model.toolchain,
                str(len(model.groups)),
                str(sum(1 for _ in model.iter_sources())),
                str(len(model.includes)),
                str(len(model.defines)),
            )
        )
    widths = [len(column) for column in columns]
    for row in rows:
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(value))
    print("  ".join(column.ljust(widths[index]) for index, column in enumerate(columns)))
    print("  ".join("-" * width for width in widths))
    for row in rows:
        print("  ".join(value.ljust(widths[index]) for index, value in enumerate(row)))
    for failure in project.failures:
        sys.stderr.write(f"warning: target {failure.name} failed to load: {failure.reason}\n")


def _emit_json(project: Project) -> None:
    for target in project.targets:
        if target.model is None:
            continue
        payload = {"project": project.label, "prj_id": project.prj_id, **target.model.to_dict()}
        print(json.dumps(payload, sort_keys=True))
    for failure in project.failures:
        print(
            json.dumps(
                {"project": project.label, "name": failure.name, "error": failure.reason},
                sort_keys=True,
            )
        )


def _select_task(target: ProjectTarget, action: str) -> BuildTask:
    if action == "build":
        return target.build_task()
    if action == "rebuild":
        return target.rebuild_task()
    return target.flash_task()


def _run_command(argv: Sequence[str]) -> int:
    parser = _build_command_parser()
    args = parser.parse_args(argv)
    settings = _load_settings(args.settings, parser)

    try:
        project = _open_project(args.project, settings)
    except (UvBridgeError, OSError) as exc:
        sys.stderr.write(f"error: open project failed !, msg: {exc}\n")
        return 1

    try:
        target = project.get_target(args.target)
        if target is None:
            sys.stderr.write(f"error: target not found: {args.target}\n")
            return 1
        task = _select_task(target, args.action)
        if args.render:
            sys.stdout.write(target.command_line(task) + "\n")
        else:
            sys.stdout.write(json.dumps(task.to_dict(), indent=2) + "\n")
    finally:
        project.close()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    if argv is None:
        argv = list(sys.argv[1:])
    else:
        argv = list(argv)
    if argv and argv[0] == "command":
        return _run_command(argv[1:])

    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    settings = _load_settings(args.settings, parser)

    if not args.project.exists():
        parser.error(f"Path does not exist: {args.project}")
        return 2

    try:
        project = _open_project(args.project, settings)
    except (UvBridgeError, OSError) as exc:
        sys.stderr.write(f"error: open project failed !, msg: {exc}\n")
        return 1

    try:
        if args.json:
            _emit_json(project)
        else:
            _emit_table(project)
    finally:
        project.close()
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())


def console_main() -> None:
    """Entry point for ``uvbridge`` console script."""

    sys.exit(main())
