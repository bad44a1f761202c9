from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path

import pytest

from uvbridge.core.builder import TargetBuilder, split_defines, split_include_paths, to_absolute_path
from uvbridge.core.types import EXCLUDED_ICON, MalformedDocument
from uvbridge.cpp_properties import CPP_PROPERTIES_NAME
from uvbridge.formats.xml import parse_document
from uvbridge.settings import ToolchainSettings
from uvbridge.toolchains.arm import ARMCC_MACROS, ArmStrategy
from uvbridge.toolchains.c51 import C51_MACROS, C51Strategy


class FakeProject:
    def __init__(self, root: Path) -> None:
        self.prj_id = "fake"
        self.project_file = root / "app.uvprojx"
        self.vscode_dir = root / ".vscode"
        self.vscode_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("uvbridge.tests.fake_project")

    def to_absolute_path(self, raw: str) -> str:
        return to_absolute_path(raw, str(self.project_file.parent))


@pytest.fixture
def project(tmp_path: Path) -> FakeProject:
    return FakeProject(tmp_path / "app")


def _node(xml: str):
    return parse_document(xml)["Target"]


def test_split_helpers() -> None:
    assert split_include_paths(" .\\inc ; ;..\\lib;") == [".\\inc", "..\\lib"]
    assert split_defines("A, B=1  C,\nD") == ["A", "B=1", "C", "D"]
    assert split_defines("") == []


def test_to_absolute_path_keeps_drive_letters() -> None:
    assert to_absolute_path("C:\\Keil_v5\\ARM\\..\\C51\\INC\\", "/work") == "C:\\Keil_v5\\C51\\INC"
    assert to_absolute_path(".\\inc\\", "/work/app") == os.path.normpath("/work/app/inc")
    assert to_absolute_path("../common/inc", "/work/app") == os.path.normpath("/work/common/inc")


def test_build_resolves_includes_defines_and_groups(
    project: FakeProject, make_target, missing_keil_settings
) -> None:
    strategy = C51Strategy(settings=missing_keil_settings)
    node = _node(
        make_target(
            "Target 1",
            toolchain="c51",
            includes=".\\inc;C:\\Keil_v5\\C51\\INC",
            defines="DEBUG, USE_UART",
            groups=[
                ("Source", [(".\\src\\main.c", True), (".\\src\\util.c", False)]),
                ("Startup", [(".\\startup\\STARTUP.A51", True)]),
                ("Empty", []),
            ],
        )
    )

    target = TargetBuilder(strategy).build(project, node)
    root = str(project.project_file.parent)

    assert target.name == "Target 1"
    assert target.toolchain == "c51"
    assert target.includes == (
        os.path.join(root, "inc"),
        "C:\\Keil_v5\\C51\\INC",
        os.path.join(root, "src"),
        os.path.join(root, "startup"),
    )
    assert target.defines == ("DEBUG", "USE_UART", *C51_MACROS)
    assert [group.name for group in target.groups] == ["Source", "Startup", "Empty"]
    main, util = target.groups[0].sources
    assert main.path == os.path.join(root, "src", "main.c")
    assert main.enabled and main.icon == "CFile_16x"
    assert not util.enabled and util.icon == EXCLUDED_ICON
    assert target.groups[1].sources[0].icon == "AssemblerSourceFile_16x"
    assert target.groups[2].sources == ()


def test_single_and_repeated_files_build_the_same_shape(project: FakeProject, make_target, missing_keil_settings) -> None:
    strategy = ArmStrategy(settings=missing_keil_settings)
    builder = TargetBuilder(strategy, persist=False)
    single = builder.build(project, _node(make_target("app", groups=[("g", [("a.c", True)])])))
    double = builder.build(project, _node(make_target("app", groups=[("g", [("a.c", True), ("b.c", True)])])))

    assert [source.name for source in single.groups[0].sources] == ["a.c"]
    assert [source.name for source in double.groups[0].sources] == ["a.c", "b.c"]
    assert single.defines == tuple(ARMCC_MACROS)


def test_group_without_files_element_is_skipped(project: FakeProject, missing_keil_settings) -> None:
    xml = (
        "<Target><TargetName>app</TargetName><TargetOption><TargetArmAds><Cads><VariousControls>"
        "<Define/><IncludePath/></VariousControls></Cads></TargetArmAds></TargetOption>"
        "<Groups><Group><GroupName>Docs</GroupName></Group><Group><GroupName>Src</GroupName>"
        "<Files><File><FilePath>main.c</FilePath></File></Files></Group></Groups></Target>"
    )

    target = TargetBuilder(ArmStrategy(settings=missing_keil_settings), persist=False).build(project, _node(xml))

    assert [group.name for group in target.groups] == ["Src"]


def test_system_includes_are_appended_after_project_includes(project: FakeProject, make_target, keil_install: Path) -> None:
    strategy = ArmStrategy(settings=ToolchainSettings(arm_uv4_path=str(keil_install)))

    target = TargetBuilder(strategy, persist=False).build(project, _node(make_target("app", includes=".\\inc")))

    include_dir = keil_install.parent.parent / "ARM" / "ARMCC" / "include"
    assert target.includes == (
        os.path.join(str(project.project_file.parent), "inc"),
        str(include_dir),
        str(include_dir / "rw"),
    )


def test_duplicates_are_collapsed(project: FakeProject, make_target, missing_keil_settings) -> None:
    node = _node(
        make_target(
            "app",
            includes=".\\src;.\\src\\",
            defines="A A __CC_ARM",
            groups=[("g", [(".\\src\\a.c", True), (".\\src\\b.c", True)])],
        )
    )

    target = TargetBuilder(ArmStrategy(settings=missing_keil_settings), persist=False).build(project, node)

    assert target.includes == (os.path.join(str(project.project_file.parent), "src"),)
    assert target.defines.count("A") == 1
    assert target.defines.count("__CC_ARM") == 1


@pytest.mark.parametrize(
    "xml",
    [
        "<Target><TargetName>  </TargetName></Target>",
        "<Target><TargetName>app</TargetName></Target>",
        "<Target><TargetName>app</TargetName><TargetOption><TargetArmAds><Cads><VariousControls>"
        "<Define/></VariousControls></Cads></TargetArmAds></TargetOption><Groups><Group><GroupName>g</GroupName>"
        "<Files><File><FileName>a.c</FileName></File></Files></Group></Groups></Target>",
    ],
)
def test_malformed_targets_raise(project: FakeProject, missing_keil_settings, xml: str) -> None:
    builder = TargetBuilder(ArmStrategy(settings=missing_keil_settings), persist=False)

    with pytest.raises(MalformedDocument):
        builder.build(project, _node(xml))


def test_build_persists_configuration(project: FakeProject, make_target, missing_keil_settings) -> None:
    builder = TargetBuilder(C51Strategy(settings=missing_keil_settings))

    target = builder.build(project, _node(make_target("Target 1", toolchain="c51", defines="DEBUG")))

    document = json.loads((project.vscode_dir / CPP_PROPERTIES_NAME).read_text(encoding="utf-8"))
    assert document["version"] == 4
    [entry] = document["configurations"]
    assert entry["name"] == "Target 1"
    assert entry["includePath"] == list(target.includes)
    assert entry["defines"] == list(target.defines)
    assert entry["intelliSenseMode"] == "${default}"


def test_persistence_failure_is_logged_not_raised(
    project: FakeProject, make_target, missing_keil_settings, caplog: pytest.LogCaptureFixture
) -> None:
    (project.vscode_dir / CPP_PROPERTIES_NAME).mkdir()
    builder = TargetBuilder(C51Strategy(settings=missing_keil_settings))

    with caplog.at_level(logging.WARNING, logger=project.logger.name):
        target = builder.build(project, _node(make_target("Target 1", toolchain="c51")))

    assert target.name == "Target 1"
    assert "loaded without saving" in caplog.text


def test_single_object_and_one_element_list_are_equivalent(
    project: FakeProject, make_target, missing_keil_settings
) -> None:
    builder = TargetBuilder(ArmStrategy(settings=missing_keil_settings), persist=False)
    single = _node(make_target("app", groups=[("g", [(".\\src\\a.c", False)])]))
    wrapped = copy.deepcopy(single)
    group = wrapped["Groups"]["Group"]
    group["Files"]["File"] = [group["Files"]["File"]]
    group["Files"] = [group["Files"]]
    wrapped["Groups"]["Group"] = [group]

    assert builder.build(project, single) == builder.build(project, wrapped)


def test_repeated_files_elements_keep_document_order(project: FakeProject, missing_keil_settings) -> None:
    xml = (
        "<Target><TargetName>app</TargetName><TargetOption><TargetArmAds><Cads><VariousControls>"
        "<Define/><IncludePath/></VariousControls></Cads></TargetArmAds></TargetOption>"
        "<Groups><Group><GroupName>Src</GroupName>"
        "<Files><File><FilePath>a.c</FilePath></File></Files>"
        "<Files><File><FilePath>b.c</FilePath></File></Files>"
        "</Group></Groups></Target>"
    )

    target = TargetBuilder(ArmStrategy(settings=missing_keil_settings), persist=False).build(project, _node(xml))

    assert [source.name for source in target.groups[0].sources] == ["a.c", "b.c"]
