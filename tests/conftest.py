import random

import pytest

from heelarena.geometry import Arena
from heelarena.match import MatchController
from heelarena.models import Bot
from heelarena.tweaks.types import TweakPlugin
from heelarena.vector import Vector2
from heelarena.world import ArenaWorld


def make_bot(bot_id, x, y, vx=0.0, vy=0.0, *, tweak=None, body_angle=0.0, radius=25.0):
    return Bot(
        id=bot_id,
        position=Vector2(x, y),
        velocity=Vector2(vx, vy),
        color="#3498db" if bot_id == 0 else "#e74c3c",
        tweak=tweak or TweakPlugin(),
        body_angle=body_angle,
        radius=radius,
    )


@pytest.fixture
def square_arena():
    # Counter-clockwise square, 200 units across, centered on the origin.
    vertices = (Vector2(-100, -100), Vector2(100, -100), Vector2(100, 100), Vector2(-100, 100))
    return Arena(center=Vector2(0, 0), radius=141.42, sides=4, vertices=vertices)


@pytest.fixture
def big_arena():
    return Arena.regular(sides=8, radius=1000.0, center=Vector2(0, 0))


@pytest.fixture
def make_world():
    def _make(arena, bot1, bot2, now=0.0):
        return ArenaWorld(arena, [bot1, bot2], rng=random.Random(3), now=now)

    return _make


@pytest.fixture
def controller():
    return MatchController(rng=random.Random(7), plugin_modules=("heelarena.tweak_plugins.core",))
