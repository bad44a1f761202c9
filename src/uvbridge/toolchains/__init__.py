"""Toolchain strategies package."""

from .registry import (
    StrategyRecord,
    ToolchainStrategy,
    get_strategies,
    register,
    resolve_strategy,
    supported_suffixes,
)

# Ensure built-in strategies register on import.
from . import arm as _arm_strategy  # noqa: F401
from . import c51 as _c51_strategy  # noqa: F401

__all__ = [
    "StrategyRecord",
    "ToolchainStrategy",
    "get_strategies",
    "register",
    "resolve_strategy",
    "supported_suffixes",
]
