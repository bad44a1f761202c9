"""Keil MDK ARM toolchain support."""

from .strategy import ARMCC_MACROS, ARMCLANG_MACROS, ArmStrategy, uses_armclang

__all__ = ["ARMCC_MACROS", "ARMCLANG_MACROS", "ArmStrategy", "uses_armclang"]
