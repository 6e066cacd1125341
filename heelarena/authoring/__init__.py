"""Tweak authoring against a remote text-generation service."""

from .client import AuthoringResult, AuthoringSession, TweakAuthor, TweakAuthoringError
from .settings import AuthoringSettings
from .validation import TweakValidator, ValidationReport

__all__ = [
    "AuthoringResult",
    "AuthoringSession",
    "AuthoringSettings",
    "TweakAuthor",
    "TweakAuthoringError",
    "TweakValidator",
    "ValidationReport",
]
