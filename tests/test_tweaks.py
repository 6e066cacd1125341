import random

import pytest

from heelarena import config
from heelarena.particles import ParticleSystem
from heelarena.tweaks import NONE_ID, TweakPlugin, TweakRegistry, load_tweak_modules
from heelarena.tweaks.types import TweakContext

from conftest import make_bot


@pytest.fixture
def registry():
    registry = TweakRegistry()
    load_tweak_modules(["heelarena.tweak_plugins.core"], registry)
    return registry


def ctx_at(now):
    particles = ParticleSystem(random.Random(0), reduced=False)
    return TweakContext(now=now, dt=config.FIXED_DT, particles=particles, rng=random.Random(0))


class BouncyTweak(TweakPlugin):
    id = "bouncy"
    name = "Bouncy"


def test_builtin_pack_registered(registry):
    assert registry.names == ("extra-life", "none", "regeneration", "smaller")
    assert "Smaller" in registry
    assert len(registry) == 4


def test_unknown_tweak_falls_back_to_none(registry):
    assert registry.get("no-such-tweak").id == NONE_ID
    assert registry.get(None).id == NONE_ID
    assert registry.get("").id == NONE_ID


def test_register_round_trip_and_overwrite(registry):
    first = BouncyTweak()
    registry.register(first)
    assert registry.get("bouncy") is first

    second = BouncyTweak()
    registry.register(second)
    assert registry.get("BOUNCY") is second

    registry.unregister("bouncy")
    assert registry.get("bouncy").id == NONE_ID


def test_register_rejects_empty_id(registry):
    with pytest.raises(ValueError):
        registry.register(TweakPlugin(id="  "))


def test_none_cannot_be_unregistered(registry):
    with pytest.raises(ValueError):
        registry.unregister("none")


def test_loader_requires_register_function():
    with pytest.raises(ValueError):
        load_tweak_modules(["heelarena.config"], TweakRegistry())


def test_loader_propagates_missing_module():
    with pytest.raises(ModuleNotFoundError):
        load_tweak_modules(["heelarena.no_such_plugins"], TweakRegistry())


def test_none_plugin_hooks_are_noops():
    plugin = TweakPlugin()
    bot = make_bot(0, 0.0, 0.0, 1.0, 1.0, tweak=plugin)
    plugin.on_bot_init(bot, ctx_at(0.0))
    plugin.on_bot_update(bot, ctx_at(0.0))
    assert bot.radius == config.BOT_RADIUS
    assert bot.health == config.MAX_HEALTH
    assert plugin.describe() == {"id": "none", "name": "None", "description": "No modifier.", "label": ""}


def test_smaller_size(registry):
    plugin = registry.get("smaller")
    bot = make_bot(0, 0.0, 0.0, tweak=plugin)
    plugin.on_bot_init(bot, ctx_at(0.0))
    assert bot.radius == pytest.approx(17.5)
    assert plugin.label == "SMALL"


def test_extra_life(registry):
    plugin = registry.get("extra-life")
    bot = make_bot(0, 0.0, 0.0, tweak=plugin)
    plugin.on_bot_init(bot, ctx_at(0.0))
    assert bot.health == 6
    assert bot.max_health == 6


def test_regeneration_waits_a_full_interval(registry):
    plugin = registry.get("regeneration")
    bot = make_bot(0, 0.0, 0.0, tweak=plugin)
    plugin.on_bot_init(bot, ctx_at(0.0))
    bot.health = 3

    plugin.on_bot_update(bot, ctx_at(59.9))
    assert bot.health == 3

    ctx = ctx_at(60.0)
    plugin.on_bot_update(bot, ctx)
    assert bot.health == 4
    assert len(ctx.particles) == config.REGEN_PARTICLE_COUNT

    plugin.on_bot_update(bot, ctx_at(90.0))
    assert bot.health == 4

    plugin.on_bot_update(bot, ctx_at(120.0))
    assert bot.health == 5


def test_regeneration_never_exceeds_max(registry):
    plugin = registry.get("regeneration")
    bot = make_bot(0, 0.0, 0.0, tweak=plugin)
    plugin.on_bot_init(bot, ctx_at(0.0))

    plugin.on_bot_update(bot, ctx_at(300.0))
    assert bot.health == config.MAX_HEALTH


def test_shared_plugin_keeps_per_bot_state(registry):
    plugin = registry.get("regeneration")
    early = make_bot(0, 0.0, 0.0, tweak=plugin)
    late = make_bot(1, 0.0, 0.0, tweak=plugin)
    plugin.on_bot_init(early, ctx_at(0.0))
    plugin.on_bot_init(late, ctx_at(30.0))
    early.health = late.health = 2

    plugin.on_bot_update(early, ctx_at(60.0))
    plugin.on_bot_update(late, ctx_at(60.0))

    assert early.health == 3
    assert late.health == 2
