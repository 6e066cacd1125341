import logging
from math import isclose, pi

import pytest

from heelarena import config
from heelarena.tweaks.types import TweakPlugin
from heelarena.vector import Vector2

from conftest import make_bot

SPIN = config.BOT_SPIN_PER_TICK


class RecordingTweak(TweakPlugin):
    id = "recording"

    def __init__(self, events):
        super().__init__()
        self.events = events

    def on_bot_collision(self, bot, other, ctx):
        self.events.append(("collision", bot.id))

    def on_bot_damage(self, bot, ctx):
        self.events.append(("damage", bot.id))


class ExplodingTweak(TweakPlugin):
    id = "exploding"

    def on_bot_update(self, bot, ctx):
        raise RuntimeError("boom")


def test_world_requires_two_bots(square_arena):
    from heelarena.world import ArenaWorld

    with pytest.raises(ValueError):
        ArenaWorld(square_arena, [make_bot(0, 0, 0)])


def test_wall_bounce_reflects_and_pushes_out(square_arena, make_world):
    bot = make_bot(0, 0.0, 90.0, 3.0, 4.0)
    other = make_bot(1, -50.0, -50.0)
    world = make_world(square_arena, bot, other)

    world.update(config.FIXED_DT, 0.0)

    assert bot.position == Vector2(3.0, 75.0)
    assert bot.velocity == Vector2(3.0, -4.0)
    assert bot.speed == 5.0
    assert len(world.particles) > 0


def test_wall_bounce_preserves_speed_into_corner(square_arena, make_world):
    bot = make_bot(0, 85.0, 85.0, 3.0, 2.0)
    other = make_bot(1, -50.0, -50.0)
    world = make_world(square_arena, bot, other)

    world.update(config.FIXED_DT, 0.0)

    assert isclose(bot.speed, Vector2(3.0, 2.0).magnitude())
    assert bot.velocity.x < 0.0
    assert bot.velocity.y < 0.0


def test_bot_collision_preserves_each_speed(big_arena, make_world):
    bot1 = make_bot(0, 0.0, 0.0, 2.0, 0.0, body_angle=-SPIN)
    bot2 = make_bot(1, 47.0, 0.0, -3.0, 0.0, body_angle=-SPIN)
    world = make_world(big_arena, bot1, bot2)

    world.update(config.FIXED_DT, 0.0)

    assert bot1.position == Vector2(-6.0, 0.0)
    assert bot2.position == Vector2(52.0, 0.0)
    assert bot1.speed == 2.0
    assert bot2.speed == 3.0
    assert bot1.velocity.x < 0.0
    assert bot2.velocity.x > 0.0
    assert bot1.squash_scale == config.BOT_COLLISION_SQUASH


def test_collision_hits_only_the_exposed_heel(big_arena, make_world):
    # Both heels point at 180 degrees: bot 1 is struck from behind, bot 0 is struck head on.
    bot1 = make_bot(0, 0.0, 0.0, 2.0, 0.0, body_angle=-SPIN)
    bot2 = make_bot(1, 47.0, 0.0, -3.0, 0.0, body_angle=-SPIN)
    world = make_world(big_arena, bot1, bot2)

    world.update(config.FIXED_DT, 5.0)

    assert bot1.health == config.MAX_HEALTH
    assert bot2.health == config.MAX_HEALTH - 1
    assert bot2.last_hit_at == 5.0
    assert bot2.squash_scale == config.BOT_HIT_SQUASH


def test_collision_can_damage_both_bots(big_arena, make_world):
    bot1 = make_bot(0, 0.0, 0.0, 2.0, 0.0, body_angle=pi - SPIN)
    bot2 = make_bot(1, 47.0, 0.0, -3.0, 0.0, body_angle=-SPIN)
    world = make_world(big_arena, bot1, bot2)

    world.update(config.FIXED_DT, 0.0)

    assert bot1.health == config.MAX_HEALTH - 1
    assert bot2.health == config.MAX_HEALTH - 1


def test_collision_hooks_run_before_damage(big_arena, make_world):
    events = []
    tweak = RecordingTweak(events)
    bot1 = make_bot(0, 0.0, 0.0, 2.0, 0.0, body_angle=-SPIN, tweak=tweak)
    bot2 = make_bot(1, 47.0, 0.0, -3.0, 0.0, body_angle=-SPIN, tweak=tweak)
    world = make_world(big_arena, bot1, bot2)

    world.update(config.FIXED_DT, 0.0)

    assert events == [("collision", 0), ("collision", 1), ("damage", 1)]


def test_unhittable_defender_takes_no_damage(big_arena, make_world):
    bot1 = make_bot(0, 0.0, 0.0, 2.0, 0.0, body_angle=-SPIN)
    bot2 = make_bot(1, 47.0, 0.0, -3.0, 0.0, body_angle=-SPIN)
    bot2.unhittable_until = 10.0
    world = make_world(big_arena, bot1, bot2)

    world.update(config.FIXED_DT, 0.0)

    assert bot2.health == config.MAX_HEALTH
    assert bot2.speed == 3.0


def test_weak_spot_distance_gate(big_arena, make_world):
    defender = make_bot(0, 0.0, 0.0, body_angle=pi)
    attacker = make_bot(1, 59.0, 0.0)
    world = make_world(big_arena, defender, attacker)

    assert world.check_weak_spot_hit(attacker, defender, 0.0)

    attacker.position = Vector2(61.0, 0.0)
    assert not world.check_weak_spot_hit(attacker, defender, 0.0)


def test_weak_spot_misses_outside_arc(big_arena, make_world):
    defender = make_bot(0, 0.0, 0.0, body_angle=pi)
    attacker = make_bot(1, -50.0, 0.0)
    world = make_world(big_arena, defender, attacker)

    assert not world.check_weak_spot_hit(attacker, defender, 0.0)


def test_invulnerability_window(big_arena, make_world):
    bot1 = make_bot(0, -200.0, 0.0)
    bot2 = make_bot(1, 200.0, 0.0)
    world = make_world(big_arena, bot1, bot2)

    assert world.apply_damage(bot1, world.context(0.0, 10.0))
    assert not world.apply_damage(bot1, world.context(0.0, 10.5))
    assert bot1.health == config.MAX_HEALTH - 1
    assert bot1.last_hit_at == 10.0

    assert world.apply_damage(bot1, world.context(0.0, 11.0))
    assert bot1.health == config.MAX_HEALTH - 2


def test_win_condition(big_arena, make_world):
    bot1 = make_bot(0, -200.0, 0.0)
    bot2 = make_bot(1, 200.0, 0.0)
    world = make_world(big_arena, bot1, bot2)

    bot2.health = 0
    world.update(config.FIXED_DT, 1.0)

    assert world.state.over
    assert not world.state.running
    assert world.state.winner == 0


def test_draw_when_both_bots_die(big_arena, make_world):
    bot1 = make_bot(0, -200.0, 0.0)
    bot2 = make_bot(1, 200.0, 0.0)
    world = make_world(big_arena, bot1, bot2)

    bot1.health = 0
    bot2.health = 0
    assert world.check_win_condition() is None
    assert world.state.over
    assert world.state.winner is None


def test_no_changes_after_match_over(big_arena, make_world):
    bot1 = make_bot(0, -200.0, 0.0, 3.0, 1.0)
    bot2 = make_bot(1, 200.0, 0.0, -1.0, 2.0)
    world = make_world(big_arena, bot1, bot2)
    bot1.health = 0
    world.update(config.FIXED_DT, 0.0)
    positions = (bot1.position, bot2.position)
    healths = (bot1.health, bot2.health)

    for step in range(10):
        world.update(config.FIXED_DT, step / 60.0)

    assert (bot1.position, bot2.position) == positions
    assert (bot1.health, bot2.health) == healths
    assert world.state.winner == 1


def test_elapsed_time_tracks_clock(big_arena, make_world):
    world = make_world(big_arena, make_bot(0, -200.0, 0.0), make_bot(1, 200.0, 0.0), now=10.0)
    world.update(config.FIXED_DT, 12.5)
    assert world.state.elapsed == 2.5


def test_failing_hook_is_isolated(big_arena, make_world, caplog):
    bot1 = make_bot(0, -200.0, 0.0, 1.0, 0.0, tweak=ExplodingTweak())
    bot2 = make_bot(1, 200.0, 0.0)
    world = make_world(big_arena, bot1, bot2)

    with caplog.at_level(logging.ERROR, logger="heelarena.world"):
        world.update(config.FIXED_DT, 0.0)

    assert bot1.position == Vector2(-199.0, 0.0)
    assert any("exploding" in record.getMessage() for record in caplog.records)


def test_snapshot_shape(big_arena, make_world):
    bot1 = make_bot(0, -200.0, 0.0)
    bot2 = make_bot(1, 200.0, 0.0)
    world = make_world(big_arena, bot1, bot2)
    bot1.last_hit_at = 0.5

    frame = world.snapshot(1.0)

    assert frame["type"] == "state"
    assert len(frame["arena"]["vertices"]) == 8
    first, second = frame["bots"]
    assert first["invulnerable"] is True
    assert first["weakSpot"]["color"] == "#ffaa00"
    assert second["weakSpot"]["color"] == "#00ff00"
    assert second["weakSpot"]["centerDeg"] == 180.0
    assert first["alpha"] == 1.0
    assert frame["match"]["over"] is False


def test_integrate_clamps_speed_and_spins_body(big_arena, make_world):
    bot = make_bot(0, 0.0, 0.0, 30.0, 40.0, body_angle=2 * pi - 0.01)
    other = make_bot(1, -500.0, -500.0)
    world = make_world(big_arena, bot, other)

    world.update(config.FIXED_DT, 0.0)

    assert bot.position == Vector2(30.0, 40.0)
    assert bot.speed == pytest.approx(config.BOT_MAX_SPEED)
    assert bot.velocity.x == pytest.approx(7.2)
    assert bot.velocity.y == pytest.approx(9.6)
    assert bot.heading == pytest.approx(0.9272952180016122)
    assert 0.0 <= bot.body_angle < 2 * pi
    assert bot.body_angle == pytest.approx(config.BOT_SPIN_PER_TICK - 0.01)


def test_heading_holds_when_nearly_still(big_arena, make_world):
    bot = make_bot(0, 0.0, 0.0, 0.05, 0.0)
    bot.heading = 1.5
    other = make_bot(1, -500.0, -500.0)
    world = make_world(big_arena, bot, other)

    world.update(config.FIXED_DT, 0.0)

    assert bot.heading == 1.5
    assert bot.position == Vector2(0.05, 0.0)
