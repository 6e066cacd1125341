"""Configuration for the tweak authoring service."""

from __future__ import annotations

import os
from dataclasses import dataclass

from ..config import _env_float, _env_int


def _env_str(name: str, default: str | None) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip()
    return value if value else default


@dataclass(frozen=True, slots=True)
class AuthoringSettings:
    api_key: str | None = None
    base_url: str | None = None
    azure_endpoint: str | None = None
    api_version: str = "2024-04-01-preview"
    model: str = "gpt-4.1"
    critique_model: str = "o4-mini"
    max_tokens: int = 1000
    critique_max_tokens: int = 4000
    temperature: float = 0.7
    max_attempts: int = 3

    @property
    def use_azure(self) -> bool:
        return bool(self.azure_endpoint)

    @classmethod
    def from_env(cls) -> AuthoringSettings:
        defaults = cls()
        return cls(
            api_key=_env_str("HEELARENA_OPENAI_API_KEY", _env_str("OPENAI_API_KEY", defaults.api_key)),
            base_url=_env_str("HEELARENA_OPENAI_BASE_URL", defaults.base_url),
            azure_endpoint=_env_str("AZURE_OPENAI_ENDPOINT", defaults.azure_endpoint),
            api_version=_env_str("AZURE_OPENAI_API_VERSION", defaults.api_version),
            model=_env_str("HEELARENA_AUTHORING_MODEL", defaults.model),
            critique_model=_env_str("HEELARENA_CRITIQUE_MODEL", defaults.critique_model),
            max_tokens=max(64, _env_int("HEELARENA_AUTHORING_MAX_TOKENS", defaults.max_tokens)),
            critique_max_tokens=max(64, _env_int("HEELARENA_CRITIQUE_MAX_TOKENS", defaults.critique_max_tokens)),
            temperature=min(2.0, max(0.0, _env_float("HEELARENA_AUTHORING_TEMPERATURE", defaults.temperature))),
            max_attempts=max(1, _env_int("HEELARENA_AUTHORING_MAX_ATTEMPTS", defaults.max_attempts)),
        )
