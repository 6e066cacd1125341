"""Runtime tunables for the bot arena."""

from __future__ import annotations

import os
from math import pi


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_csv(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


CANVAS_WIDTH = 800.0
CANVAS_HEIGHT = 600.0

ARENA_CENTER_X = CANVAS_WIDTH / 2.0
ARENA_CENTER_Y = CANVAS_HEIGHT / 2.0
ARENA_RADIUS = _env_float("HEELARENA_ARENA_RADIUS", 250.0)
# Octagon rather than a circle so bounce angles vary.
ARENA_SIDES = max(3, _env_int("HEELARENA_ARENA_SIDES", 8))

TICK_RATE = 60
FIXED_DT = 1.0 / TICK_RATE

BOT_RADIUS = 25.0
BOT_SPEED = 8.0
BOT_MAX_SPEED = 12.0
BOT_HEADING_MIN_SPEED = 0.1
BOT_SPIN_PER_TICK = 0.02
BOT_SQUASH_RECOVERY = 0.05
BOT_COLLISION_SQUASH = 0.8
BOT_HIT_SQUASH = 0.7
BOT_SPAWN_OFFSETS = ((-100.0, -50.0), (100.0, 50.0))
BOT_COLORS = ("#3498db", "#e74c3c")

WEAK_SPOT_ARC_WIDTH = pi * 0.6
WEAK_SPOT_ARC_MIN = pi / 8.0
WEAK_SPOT_ARC_MAX = pi
HIT_DISTANCE_BUFFER = 10.0

FRICTION = 1.0

MAX_HEALTH = 5
INVULNERABILITY_SECONDS = 1.0

SMALLER_RADIUS_FACTOR = 0.7
EXTRA_LIFE_HEALTH = 6
REGEN_INTERVAL_SECONDS = 60.0

TWEAK_MIN_RADIUS = 8.0
TWEAK_MAX_RADIUS = 60.0
TWEAK_MAX_HEALTH = 20

PARTICLE_DECAY = 0.02
PARTICLE_DAMPING = 0.98
PARTICLE_SHRINK = 0.99
REDUCED_PARTICLES = _env_bool("HEELARENA_REDUCED_PARTICLES", False)

WALL_PARTICLE_COUNT = 5
WALL_PARTICLE_COLOR = "#ffffff"
HIT_PARTICLE_COUNT = 15
HIT_PARTICLE_COLOR = "#ff6b6b"
REGEN_PARTICLE_COUNT = 10
REGEN_PARTICLE_COLOR = "#00ff88"

TWEAK_PLUGIN_MODULES = _env_csv("HEELARENA_TWEAK_PLUGIN_MODULES", "heelarena.tweak_plugins.core")
_seed = _env_int("HEELARENA_RANDOM_SEED", -1)
RANDOM_SEED: int | None = _seed if _seed >= 0 else None
