"""Core dataclasses representing arena entities and match state."""

from __future__ import annotations

from dataclasses import dataclass, field
from math import pi
from typing import TYPE_CHECKING, Any

from . import config
from .vector import Vector2

if TYPE_CHECKING:
    from .tweaks.types import TweakPlugin


@dataclass(slots=True, frozen=True)
class WeakSpotArc:
    center: float
    start: float
    end: float


@dataclass(slots=True)
class Bot:
    id: int
    position: Vector2
    velocity: Vector2
    color: str
    tweak: TweakPlugin
    radius: float = config.BOT_RADIUS
    health: int = config.MAX_HEALTH
    max_health: int = config.MAX_HEALTH
    heading: float = 0.0
    body_angle: float = 0.0
    weak_spot_arc_width: float = config.WEAK_SPOT_ARC_WIDTH
    last_hit_at: float = -1e9
    unhittable_until: float = -1e9
    squash_scale: float = 1.0
    memory: dict[str, Any] = field(default_factory=dict)

    @property
    def is_dead(self) -> bool:
        return self.health <= 0

    @property
    def health_ratio(self) -> float:
        if self.max_health <= 0:
            return 0.0
        return self.health / self.max_health

    @property
    def speed(self) -> float:
        return self.velocity.magnitude()

    def weak_spot_arc(self) -> WeakSpotArc:
        center = self.body_angle + pi
        half = self.weak_spot_arc_width / 2.0
        return WeakSpotArc(center=center, start=center - half, end=center + half)

    def is_invulnerable(self, now: float) -> bool:
        return now - self.last_hit_at < config.INVULNERABILITY_SECONDS

    def is_unhittable(self, now: float) -> bool:
        return now < self.unhittable_until


@dataclass(slots=True)
class MatchState:
    running: bool = False
    over: bool = False
    winner: int | None = None
    started_at: float | None = None
    elapsed: float = 0.0


@dataclass(slots=True, frozen=True)
class MatchResult:
    over: bool
    winner: int | None = None

    @property
    def draw(self) -> bool:
        return self.over and self.winner is None
