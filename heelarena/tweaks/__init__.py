"""Tweak plugin framework."""

from .declarative import DeclarativeTweak, TweakCompileError, compile_tweak
from .registry import NONE_ID, TweakRegistry, load_tweak_modules
from .types import DrawState, TweakContext, TweakPlugin

__all__ = [
    "DeclarativeTweak",
    "DrawState",
    "NONE_ID",
    "TweakCompileError",
    "TweakContext",
    "TweakPlugin",
    "TweakRegistry",
    "compile_tweak",
    "load_tweak_modules",
]
