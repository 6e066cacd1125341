"""Sandboxed compilation of authored tweaks.

Authored tweaks are never executed as code. They arrive as a JSON document
describing effects bound to hooks, are validated with pydantic, and are
compiled into a ``DeclarativeTweak`` whose only reach into the engine is the
fixed set of actions below. Every numeric effect is clamped into a safe range.

Example::

    {
      "name": "Last Stand",
      "description": "Speeds up when badly hurt",
      "effects": [
        {"hook": "update", "action": "scale_speed", "value": 1.02,
         "when": {"health_below": 0.5}}
      ]
    }
"""

from __future__ import annotations

import re
import uuid
from collections import defaultdict
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .. import config
from ..vector import Vector2
from .types import DrawState, TweakContext, TweakPlugin

if TYPE_CHECKING:
    from ..models import Bot

Hook = Literal["init", "update", "collision", "damage", "draw"]
Action = Literal[
    "scale_radius",
    "set_health",
    "add_health",
    "scale_arc_width",
    "scale_speed",
    "set_speed",
    "heal",
    "stealth",
    "particles",
    "set_alpha",
    "set_color",
]

ALLOWED_ACTIONS: dict[str, frozenset[str]] = {
    "init": frozenset(
        {"scale_radius", "set_health", "add_health", "scale_arc_width", "scale_speed", "set_speed", "set_color"}
    ),
    "update": frozenset({"scale_radius", "scale_arc_width", "scale_speed", "set_speed", "heal", "stealth", "particles"}),
    "collision": frozenset({"scale_speed", "set_speed", "heal", "stealth", "particles"}),
    "damage": frozenset({"scale_arc_width", "scale_speed", "set_speed", "heal", "stealth", "particles"}),
    "draw": frozenset({"set_alpha", "set_color"}),
}

NUMERIC_RANGES: dict[str, tuple[float, float]] = {
    "scale_radius": (0.3, 2.0),
    "set_health": (1, config.TWEAK_MAX_HEALTH),
    "add_health": (1, config.TWEAK_MAX_HEALTH),
    "scale_arc_width": (0.1, 5.0),
    "scale_speed": (0.2, 3.0),
    "set_speed": (0.0, config.BOT_MAX_SPEED),
    "heal": (1, config.TWEAK_MAX_HEALTH),
    "particles": (1, 30),
    "set_alpha": (0.1, 1.0),
}

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


class TweakCompileError(ValueError):
    """Raised when authored tweak source cannot be turned into a plugin."""


def _clamp(value: float, min_value: float, max_value: float) -> float:
    return min(max(value, min_value), max_value)


class Condition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    health_below: float | None = Field(default=None, ge=0.0, le=1.0)
    health_above: float | None = Field(default=None, ge=0.0, le=1.0)
    unhittable: bool | None = None

    def holds(self, bot: Bot, now: float) -> bool:
        ratio = bot.health_ratio
        if self.health_below is not None and not ratio < self.health_below:
            return False
        if self.health_above is not None and not ratio > self.health_above:
            return False
        if self.unhittable is not None and bot.is_unhittable(now) != self.unhittable:
            return False
        return True


class Effect(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hook: Hook
    action: Action
    value: float | str | None = None
    duration: float | None = Field(default=None, gt=0.0, le=30.0)
    every: float | None = Field(default=None, gt=0.0, le=600.0)
    color: str | None = None
    when: Condition | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> Effect:
        if self.action not in ALLOWED_ACTIONS[self.hook]:
            raise ValueError(f"action '{self.action}' is not allowed in the '{self.hook}' hook")
        if self.every is not None and self.hook != "update":
            raise ValueError("'every' is only valid for the 'update' hook")
        if self.action == "set_color":
            if not isinstance(self.value, str) or not _COLOR_RE.match(self.value):
                raise ValueError("set_color needs a '#rrggbb' value")
        elif self.action == "stealth":
            if self.duration is None:
                raise ValueError("stealth needs a duration in seconds")
        elif self.action in NUMERIC_RANGES:
            if self.value is None and self.action in {"heal", "particles"}:
                self.value = 1.0 if self.action == "heal" else 8.0
            if isinstance(self.value, str) or self.value is None:
                raise ValueError(f"{self.action} needs a numeric value")
        if self.color is not None and not _COLOR_RE.match(self.color):
            raise ValueError("color must look like '#rrggbb'")
        return self


class TweakDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str | None = Field(default=None, max_length=64)
    name: str = Field(min_length=1, max_length=40)
    description: str = Field(default="", max_length=200)
    effects: list[Effect] = Field(min_length=1, max_length=12)


class DeclarativeTweak(TweakPlugin):
    label = "AI"

    def __init__(self, definition: TweakDefinition, tweak_id: str) -> None:
        super().__init__(tweak_id, definition.name, definition.description)
        self.definition = definition
        self._effects: dict[str, list[tuple[int, Effect]]] = defaultdict(list)
        for index, effect in enumerate(definition.effects):
            self._effects[effect.hook].append((index, effect))

    def on_bot_init(self, bot: Bot, ctx: TweakContext) -> None:
        self._run("init", bot, ctx)

    def on_bot_update(self, bot: Bot, ctx: TweakContext) -> None:
        self._run("update", bot, ctx)

    def on_bot_collision(self, bot: Bot, other: Bot, ctx: TweakContext) -> None:
        self._run("collision", bot, ctx)

    def on_bot_damage(self, bot: Bot, ctx: TweakContext) -> None:
        self._run("damage", bot, ctx)

    def on_bot_draw(self, bot: Bot, draw: DrawState) -> None:
        for _, effect in self._effects.get("draw", ()):
            if effect.when is not None and not effect.when.holds(bot, draw.now):
                continue
            if effect.action == "set_alpha":
                draw.alpha = _clamp(float(effect.value), *NUMERIC_RANGES["set_alpha"])
            elif effect.action == "set_color":
                draw.color = str(effect.value)

    def _run(self, hook: str, bot: Bot, ctx: TweakContext) -> None:
        for index, effect in self._effects.get(hook, ()):
            if effect.when is not None and not effect.when.holds(bot, ctx.now):
                continue
            if effect.every is not None and not self._due(bot, index, effect.every, ctx.now):
                continue
            self._apply(effect, bot, ctx)

    def _due(self, bot: Bot, index: int, every: float, now: float) -> bool:
        key = f"{self.id}:{index}:last_at"
        last = bot.memory.get(key)
        if last is None:
            bot.memory[key] = now
            return False
        if now - float(last) < every:
            return False
        bot.memory[key] = now
        return True

    def _apply(self, effect: Effect, bot: Bot, ctx: TweakContext) -> None:
        action = effect.action
        if action == "set_color":
            bot.color = str(effect.value)
            return
        if action == "stealth":
            bot.unhittable_until = max(bot.unhittable_until, ctx.now + float(effect.duration))
            return

        low, high = NUMERIC_RANGES[action]
        value = _clamp(float(effect.value), low, high)
        if action == "scale_radius":
            bot.radius = _clamp(bot.radius * value, config.TWEAK_MIN_RADIUS, config.TWEAK_MAX_RADIUS)
        elif action == "set_health":
            bot.health = bot.max_health = int(value)
        elif action == "add_health":
            bot.max_health = min(bot.max_health + int(value), config.TWEAK_MAX_HEALTH)
            bot.health = min(bot.health + int(value), bot.max_health)
        elif action == "scale_arc_width":
            bot.weak_spot_arc_width = _clamp(
                bot.weak_spot_arc_width * value, config.WEAK_SPOT_ARC_MIN, config.WEAK_SPOT_ARC_MAX
            )
        elif action == "scale_speed":
            bot.velocity = _limit(bot.velocity.multiply(value))
        elif action == "set_speed":
            bot.velocity = bot.velocity.normalize().multiply(value)
        elif action == "heal":
            bot.health = min(bot.health + int(value), bot.max_health)
        elif action == "particles":
            color = effect.color or bot.color
            ctx.particles.emit(bot.position.x, bot.position.y, color, int(value))


def _limit(velocity: Vector2) -> Vector2:
    if velocity.magnitude() > config.BOT_MAX_SPEED:
        return velocity.normalize().multiply(config.BOT_MAX_SPEED)
    return velocity


def _generated_id(name: str) -> str:
    slug = _SLUG_RE.sub("-", name.lower()).strip("-")[:24] or "tweak"
    return f"ai-{slug}-{uuid.uuid4().hex[:8]}"


def strip_code_fences(source: str) -> str:
    text = (source or "").strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def parse_tweak(source: str) -> TweakDefinition:
    text = strip_code_fences(source)
    if not text:
        raise TweakCompileError("Tweak source is empty")
    try:
        return TweakDefinition.model_validate_json(text)
    except ValidationError as exc:
        raise TweakCompileError(str(exc)) from exc


def compile_tweak(source: str) -> DeclarativeTweak:
    definition = parse_tweak(source)
    tweak_id = _SLUG_RE.sub("-", (definition.id or "").lower()).strip("-")
    if not tweak_id:
        tweak_id = _generated_id(definition.name)
    elif not tweak_id.startswith("ai-"):
        tweak_id = f"ai-{tweak_id}"
    return DeclarativeTweak(definition, tweak_id)
