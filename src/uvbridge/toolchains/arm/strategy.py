"""Keil MDK (ARM) toolchain strategy for ``.uvprojx`` projects.

MDK ships two compilers.  ``uAC6 == "1"`` selects ARM Compiler 6 (armclang),
anything else selects ARM Compiler 5 (armcc).  armcc's built-ins only exist as
the fixed table below.  armclang can report its own predefined macros, which
are appended to a smaller table covering its non-standard keywords.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, List, Mapping, Optional, Tuple

from ...formats.xml import text_at
from ...fs import FileSystem, LocalFileSystem
from ...macros import MacroCache, default_cache
from ...settings import ToolchainSettings, join_tool_path, keil_root
from ..registry import group_nodes, register, uv4_command

_OPTIONS_PATH = ("TargetOption", "TargetArmAds", "Cads", "VariousControls")

ARMCC_MACROS: Tuple[str, ...] = (
    "__CC_ARM",
    "__arm__",
    "__align(x)=",
    "__ALIGNOF__(x)=",
    "__alignof__(x)=",
    "__asm(x)=",
    "__forceinline=",
    "__restrict=",
    "__global_reg(n)=",
    "__inline=",
    "__int64=long long",
    "__INTADDR(expr)=",
    "__irq=",
    "__packed=",
    "__pure=",
    "__smc(n)=",
    "__svc(n)=",
    "__svc_indirect(n)=",
    "__svc_indirect_r7(n)=",
    "__value_in_regs=",
    "__weak=",
    "__writeonly=",
    "__declspec(x)=",
    "__attribute__(x)=",
    "__nonnull__(x)=",
    "__register=",
    "__enable_fiq()=",
    "__disable_fiq()=",
    "__nop()=",
    "__wfi()=",
    "__wfe()=",
    "__sev()=",
    "__isb(x)=",
    "__dsb(x)=",
    "__dmb(x)=",
    "__schedule_barrier()=",
    "__rev(x)=0U",
    "__ror(x,y)=0U",
    "__breakpoint(x)=",
    "__clz(x)=0U",
    "__ldrex(x)=0U",
    "__strex(x,y)=0U",
    "__clrex()=",
    "__ssat(x,y)=0U",
    "__usat(x,y)=0U",
    "__ldrt(x)=0U",
    "__strt(x,y)=",
)

ARMCLANG_MACROS: Tuple[str, ...] = (
    "__alignof__(x)=",
    "__unaligned=",
    "__forceinline=",
    "__restrict=",
    "__volatile__=",
    "__inline=",
    "__inline__=",
    "__asm(x)=",
    "__asm__(x)=",
    "__declspec(x)=",
    "__attribute__(x)=",
    "__nonnull__(x)=",
    "__irq=",
    "__swi=",
    "__weak=",
    "__register=",
    "__pure=",
    "__value_in_regs=",
    "__builtin_arm_nop()=",
    "__builtin_arm_wfi()=",
    "__builtin_arm_wfe()=",
    "__builtin_arm_sev()=",
    "__builtin_arm_sevl()=",
    "__builtin_arm_yield()=",
    "__builtin_arm_isb(x)=",
    "__builtin_arm_dsb(x)=",
    "__builtin_arm_dmb(x)=",
    "__builtin_bswap32(x)=0U",
    "__builtin_bswap16(x)=0U",
    "__builtin_arm_rbit(x)=0U",
    "__builtin_clz(x)=0U",
    "__builtin_arm_ldrex(x)=0U",
    "__builtin_arm_strex(x,y)=0U",
    "__builtin_arm_clrex()=",
    "__builtin_arm_ssat(x,y)=0U",
    "__builtin_arm_usat(x,y)=0U",
    "__builtin_arm_ldaex(x)=0U",
    "__builtin_arm_stlex(x,y)=0U",
)


def uses_armclang(target: Mapping[str, Any]) -> bool:
    return isinstance(target, Mapping) and target.get("uAC6") == "1"


@register
@dataclass(frozen=True)
class ArmStrategy:
    name: ClassVar[str] = "arm"
    suffixes: ClassVar[Tuple[str, ...]] = (".uvprojx",)
    problem_matchers: ClassVar[Tuple[str, ...]] = ("$armcc", "$gcc")

    settings: ToolchainSettings = field(default_factory=ToolchainSettings)
    fs: FileSystem = field(default_factory=LocalFileSystem, compare=False)
    macro_cache: MacroCache = field(default_factory=default_cache, compare=False)

    @property
    def armclang_path(self) -> str:
        root = keil_root(self.settings.arm_uv4_path)
        return join_tool_path(root, "ARM", "ARMCLANG", "bin", "armclang.exe")

    def extract_include_paths(self, target: Mapping[str, Any]) -> str:
        return text_at(target, *_OPTIONS_PATH, "IncludePath")

    def extract_defines(self, target: Mapping[str, Any]) -> str:
        return text_at(target, *_OPTIONS_PATH, "Define")

    def extract_groups(self, target: Mapping[str, Any]) -> List[Any]:
        return group_nodes(target)

    def extract_system_includes(self, target: Mapping[str, Any]) -> Optional[List[str]]:
        uv4_path = self.settings.arm_uv4_path
        if not self.fs.is_file(uv4_path):
            return None
        tool_name = "ARMCLANG" if uses_armclang(target) else "ARMCC"
        include_dir = join_tool_path(keil_root(uv4_path), "ARM", tool_name, "include")
        if not self.fs.is_dir(include_dir):
            return [include_dir]
        children = [
            str(entry)
            for entry in self.fs.list_dir(include_dir)
            if self.fs.is_dir(entry)
        ]
        return [include_dir, *children]

    def extract_system_macros(self, target: Mapping[str, Any]) -> List[str]:
        if uses_armclang(target):
            return [*ARMCLANG_MACROS, *self.discover_builtin_macros()]
        return list(ARMCC_MACROS)

    def discover_builtin_macros(self) -> List[str]:
        """Predefined armclang macros, computed once per compiler path."""

        return self.macro_cache.get(self.armclang_path)

    def build_command(self, project_file: Path, target_name: str) -> List[str]:
        return uv4_command(self.settings.arm_uv4_path, project_file, target_name, "-b")

    def rebuild_command(self, project_file: Path, target_name: str) -> List[str]:
        return uv4_command(self.settings.arm_uv4_path, project_file, target_name, "-r", clean=True)

    def flash_command(self, project_file: Path, target_name: str) -> List[str]:
        return uv4_command(self.settings.arm_uv4_path, project_file, target_name, "-f")


__all__ = ["ARMCC_MACROS", "ARMCLANG_MACROS", "ArmStrategy", "uses_armclang"]
