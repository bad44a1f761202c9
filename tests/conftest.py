from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import pytest

from uvbridge.macros import reset_default_cache
from uvbridge.settings import ToolchainSettings

FileSpec = Tuple[str, bool]
GroupSpec = Tuple[str, Sequence[FileSpec]]

_ARM_OPTIONS = ("TargetOption", "TargetArmAds", "Cads", "VariousControls")
_C51_OPTIONS = ("TargetOption", "Target51", "C51", "VariousControls")


def _file_xml(path: str, enabled: bool) -> str:
    option = ""
    if not enabled:
        option = "<FileOption><CommonProperty><IncludeInBuild>0</IncludeInBuild></CommonProperty></FileOption>"
    return f"<File><FileName>{Path(path.replace(chr(92), '/')).name}</FileName><FileType>1</FileType><FilePath>{path}</FilePath>{option}</File>"


def _group_xml(name: str, files: Sequence[FileSpec]) -> str:
    if not files:
        return f"<Group><GroupName>{name}</GroupName><Files></Files></Group>"
    body = "".join(_file_xml(path, enabled) for path, enabled in files)
    return f"<Group><GroupName>{name}</GroupName><Files>{body}</Files></Group>"


def target_xml(
    name: str,
    *,
    toolchain: str = "arm",
    includes: str = "",
    defines: str = "",
    groups: Iterable[GroupSpec] = (),
    uac6: Optional[str] = None,
) -> str:
    """Render one ``<Target>`` element the way uVision lays it out."""

    options = _ARM_OPTIONS if toolchain == "arm" else _C51_OPTIONS
    leaf = f"<Define>{defines}</Define><IncludePath>{includes}</IncludePath>"
    for element in reversed(options):
        leaf = f"<{element}>{leaf}</{element}>"
    group_body = "".join(_group_xml(group_name, files) for group_name, files in groups)
    uac6_xml = f"<uAC6>{uac6}</uAC6>" if uac6 is not None else ""
    return (
        f"<Target><TargetName>{name}</TargetName><ToolsetNumber>0x4</ToolsetNumber>"
        f"{uac6_xml}{leaf}<Groups>{group_body}</Groups></Target>"
    )


def project_xml(targets: Iterable[str]) -> str:
    body = "".join(targets)
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="no" ?>\n'
        "<Project><SchemaVersion>2.1</SchemaVersion><Header>### uVision Project</Header>"
        f"<Targets>{body}</Targets></Project>"
    )


def write_project(path: Path, targets: Iterable[str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(project_xml(targets), encoding="utf-8")
    return path


class RecordingRunner:
    """Process runner double that records every call."""

    def __init__(self, output: str = "", returncode: int = 0, error: Optional[Exception] = None) -> None:
        self.output = output
        self.returncode = returncode
        self.error = error
        self.calls: List[Tuple[str, ...]] = []

    def __call__(self, argv: Sequence[str]) -> Tuple[str, int]:
        self.calls.append(tuple(argv))
        if self.error is not None:
            raise self.error
        return self.output, self.returncode


class ManualWatcher:
    """Watcher double: tests trigger change notifications explicitly."""

    def __init__(self, path: Path, on_changed) -> None:
        self.path = path
        self.on_changed = on_changed
        self.watching = False
        self.closed = False

    def watch(self) -> None:
        self.watching = True

    def close(self) -> None:
        self.watching = False
        self.closed = True

    def fire(self) -> None:
        if self.watching:
            self.on_changed()


@pytest.fixture(autouse=True)
def _isolated_macro_cache():
    reset_default_cache()
    yield
    reset_default_cache()


@pytest.fixture
def missing_keil_settings(tmp_path: Path) -> ToolchainSettings:
    """Settings pointing at a Keil install that does not exist."""

    missing = str(tmp_path / "no-keil" / "UV4" / "UV4.exe")
    return ToolchainSettings(c51_uv4_path=missing, arm_uv4_path=missing)


@pytest.fixture
def keil_install(tmp_path: Path) -> Path:
    """Create a minimal Keil directory layout and return its UV4.exe path."""

    root = tmp_path / "Keil_v5"
    uv4 = root / "UV4" / "UV4.exe"
    uv4.parent.mkdir(parents=True)
    uv4.write_text("", encoding="utf-8")
    (root / "C51" / "INC").mkdir(parents=True)
    armcc = root / "ARM" / "ARMCC" / "include"
    (armcc / "rw").mkdir(parents=True)
    (armcc / "stdio.h").write_text("", encoding="utf-8")
    (root / "ARM" / "ARMCLANG" / "include" / "arm_acle").mkdir(parents=True)
    return uv4


@pytest.fixture
def make_target():
    return target_xml


@pytest.fixture
def make_project():
    return write_project


@pytest.fixture
def make_runner():
    return RecordingRunner


@pytest.fixture
def watchers():
    """Watcher factory that keeps every created :class:`ManualWatcher`."""

    created: List[ManualWatcher] = []

    def factory(path: Path, on_changed) -> ManualWatcher:
        watcher = ManualWatcher(path, on_changed)
        created.append(watcher)
        return watcher

    factory.created = created  # type: ignore[attr-defined]
    return factory
