"""Tweak plugin contract and the context objects handed to its hooks."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..particles import ParticleSystem

if TYPE_CHECKING:
    from ..models import Bot


@dataclass(slots=True)
class TweakContext:
    now: float
    dt: float
    particles: ParticleSystem
    rng: random.Random


@dataclass(slots=True)
class DrawState:
    """Render hints a plugin may adjust before its bot is drawn."""

    now: float = 0.0
    alpha: float = 1.0
    color: str | None = None
    outline: str = "#ffffff"
    label: str | None = None


class TweakPlugin:
    """Base for per-match bot modifiers.

    Every hook is a no-op here, so a plugin only overrides what it needs.
    Hooks run at fixed points of the tick:

    * ``on_bot_init`` once, right after the bot is built and before the loop starts.
    * ``on_bot_update`` every tick, after movement is integrated.
    * ``on_bot_collision`` once per side for each bot-bot contact, before hit checks.
    * ``on_bot_damage`` after damage actually lands (not on absorbed hits).
    * ``on_bot_draw`` every frame, to adjust ``DrawState``; it never draws the body itself.

    Bot-scoped bookkeeping belongs in ``bot.memory`` so one instance can serve both bots.
    """

    id: str = "none"
    name: str = "None"
    description: str = "No modifier."
    label: str = ""

    def __init__(self, id: str | None = None, name: str | None = None, description: str | None = None) -> None:
        if id is not None:
            self.id = id
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description

    def on_bot_init(self, bot: Bot, ctx: TweakContext) -> None:
        pass

    def on_bot_update(self, bot: Bot, ctx: TweakContext) -> None:
        pass

    def on_bot_collision(self, bot: Bot, other: Bot, ctx: TweakContext) -> None:
        pass

    def on_bot_damage(self, bot: Bot, ctx: TweakContext) -> None:
        pass

    def on_bot_draw(self, bot: Bot, draw: DrawState) -> None:
        pass

    def describe(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description, "label": self.label}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"
