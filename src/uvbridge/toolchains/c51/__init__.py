"""Keil C51 toolchain support."""

from .strategy import C51_MACROS, C51Strategy

__all__ = ["C51Strategy", "C51_MACROS"]
