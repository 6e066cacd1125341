"""Tweak plugin registry and dynamic loader."""

from __future__ import annotations

import importlib
import logging
from collections.abc import Sequence

from .types import TweakPlugin

logger = logging.getLogger(__name__)

NONE_ID = "none"


def _key(tweak_id: str | None) -> str:
    return (tweak_id or "").strip().lower()


class TweakRegistry:
    def __init__(self) -> None:
        self._none = TweakPlugin()
        self._plugins: dict[str, TweakPlugin] = {NONE_ID: self._none}

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._plugins.keys()))

    def __contains__(self, tweak_id: object) -> bool:
        return isinstance(tweak_id, str) and _key(tweak_id) in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def register(self, plugin: TweakPlugin) -> None:
        key = _key(plugin.id)
        if not key:
            raise ValueError("Tweak plugin id cannot be empty")
        if key in self._plugins:
            logger.info("Replacing tweak plugin registration: %s", key)
        self._plugins[key] = plugin
        if key == NONE_ID:
            self._none = plugin

    def unregister(self, tweak_id: str) -> None:
        key = _key(tweak_id)
        if key == NONE_ID:
            raise ValueError("The 'none' tweak cannot be unregistered")
        self._plugins.pop(key, None)

    def get(self, tweak_id: str | None) -> TweakPlugin:
        return self._plugins.get(_key(tweak_id), self._none)

    def plugins(self) -> tuple[TweakPlugin, ...]:
        return tuple(self._plugins[name] for name in self.names)


def load_tweak_modules(module_names: Sequence[str], registry: TweakRegistry) -> None:
    for module_name in module_names:
        name = module_name.strip()
        if not name:
            continue
        module = importlib.import_module(name)
        register_fn = getattr(module, "register", None)
        if not callable(register_fn):
            raise ValueError(f"Tweak plugin module '{name}' must define register(registry)")
        register_fn(registry)
