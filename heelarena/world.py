"""Authoritative arena simulation: movement, collisions, combat and win checks."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from math import atan2, pi

from . import config
from .geometry import Arena, angle_in_arc, closest_point_on_segment, normalize_degrees
from .models import Bot, MatchState
from .particles import ParticleSystem
from .tweaks.types import DrawState, TweakContext
from .vector import Vector2

logger = logging.getLogger(__name__)

TAU = 2.0 * pi

# Used when two bot centers coincide and no contact normal exists.
_FALLBACK_NORMAL = Vector2(1.0, 0.0)


def _clamp_speed(velocity: Vector2, max_speed: float) -> Vector2:
    if velocity.magnitude() > max_speed:
        return velocity.normalize().multiply(max_speed)
    return velocity


class ArenaWorld:
    def __init__(
        self,
        arena: Arena,
        bots: Sequence[Bot],
        *,
        rng: random.Random | None = None,
        particles: ParticleSystem | None = None,
        now: float = 0.0,
    ) -> None:
        if len(bots) != 2:
            raise ValueError(f"An arena match needs exactly two bots, got {len(bots)}")
        self.arena = arena
        self.bots: list[Bot] = list(bots)
        self.rng = rng or random.Random()
        self.particles = particles or ParticleSystem(self.rng)
        self.state = MatchState(running=True, started_at=now)

    def context(self, dt: float, now: float) -> TweakContext:
        return TweakContext(now=now, dt=dt, particles=self.particles, rng=self.rng)

    def init_bots(self, now: float) -> None:
        ctx = self.context(0.0, now)
        for bot in self.bots:
            self._run_hook(bot, "on_bot_init", bot, ctx)

    def update(self, dt: float, now: float) -> None:
        if self.state.over:
            return

        ctx = self.context(dt, now)
        for bot in self.bots:
            self._integrate(bot)
            self._run_hook(bot, "on_bot_update", bot, ctx)

        for bot in self.bots:
            self._resolve_wall_collisions(bot)

        self._resolve_bot_collision(ctx)
        self.particles.update()

        if self.state.started_at is not None:
            self.state.elapsed = max(0.0, now - self.state.started_at)
        self.check_win_condition()

    def _integrate(self, bot: Bot) -> None:
        bot.position = bot.position.add(bot.velocity)
        if bot.velocity.magnitude() > config.BOT_HEADING_MIN_SPEED:
            bot.heading = atan2(bot.velocity.y, bot.velocity.x)

        bot.velocity = _clamp_speed(bot.velocity.multiply(config.FRICTION), config.BOT_MAX_SPEED)
        bot.squash_scale = min(bot.squash_scale + config.BOT_SQUASH_RECOVERY, 1.0)
        bot.body_angle = (bot.body_angle + config.BOT_SPIN_PER_TICK) % TAU

    def _resolve_wall_collisions(self, bot: Bot) -> None:
        # Edges are resolved one after another, so a bot wedged into a vertex may bounce twice in one tick.
        for start, end in self.arena.edges():
            closest = closest_point_on_segment(bot.position, start, end)
            offset = bot.position.subtract(closest)
            distance = offset.magnitude()
            if distance >= bot.radius:
                continue

            normal = offset.normalize()
            if normal.x == 0.0 and normal.y == 0.0:
                # Center sits exactly on the wall; push toward the arena center instead.
                normal = self.arena.center.subtract(closest).normalize()
            penetration = bot.radius - distance

            bot.position = bot.position.add(normal.multiply(penetration))
            bot.velocity = bot.velocity.subtract(normal.multiply(2.0 * bot.velocity.dot(normal)))
            self.particles.emit_wall_bounce(closest)

    def _resolve_bot_collision(self, ctx: TweakContext) -> None:
        bot1, bot2 = self.bots
        distance = bot1.position.subtract(bot2.position).magnitude()
        min_distance = bot1.radius + bot2.radius
        if distance >= min_distance:
            return

        normal = bot2.position.subtract(bot1.position).normalize()
        if normal.x == 0.0 and normal.y == 0.0:
            normal = _FALLBACK_NORMAL
        penetration = min_distance - distance

        # Both bots move by the full penetration, which over-separates on purpose.
        push = normal.multiply(penetration)
        bot1.position = bot1.position.subtract(push)
        bot2.position = bot2.position.add(push)

        speed1 = bot1.velocity.magnitude()
        speed2 = bot2.velocity.magnitude()
        bot1.velocity = normal.multiply(-speed1)
        bot2.velocity = normal.multiply(speed2)

        bot1.squash_scale = config.BOT_COLLISION_SQUASH
        bot2.squash_scale = config.BOT_COLLISION_SQUASH

        self._run_hook(bot1, "on_bot_collision", bot1, bot2, ctx)
        self._run_hook(bot2, "on_bot_collision", bot2, bot1, ctx)

        logger.debug("Collision between bot %d and bot %d", bot1.id, bot2.id)
        if self.check_weak_spot_hit(bot1, bot2, ctx.now):
            self.apply_damage(bot2, ctx)
        if self.check_weak_spot_hit(bot2, bot1, ctx.now):
            self.apply_damage(bot1, ctx)

    def check_weak_spot_hit(self, attacker: Bot, defender: Bot, now: float) -> bool:
        if defender.is_unhittable(now):
            logger.debug("Bot %d is unhittable, skipping heel check", defender.id)
            return False

        to_attacker = attacker.position.subtract(defender.position)
        distance = to_attacker.magnitude()
        max_distance = defender.radius + attacker.radius + config.HIT_DISTANCE_BUFFER
        if distance > max_distance:
            logger.debug("Heel check bot %d -> bot %d: too far (%.1f > %.1f)", attacker.id, defender.id, distance, max_distance)
            return False

        attack_angle = normalize_degrees(atan2(to_attacker.y, to_attacker.x))
        arc = defender.weak_spot_arc()
        start = normalize_degrees(arc.start)
        end = normalize_degrees(arc.end)
        hit = angle_in_arc(attack_angle, start, end)
        logger.debug(
            "Heel check bot %d -> bot %d: attack %.1f deg, arc %.1f..%.1f deg, hit=%s",
            attacker.id,
            defender.id,
            attack_angle,
            start,
            end,
            hit,
        )
        return hit

    def apply_damage(self, bot: Bot, ctx: TweakContext) -> bool:
        if bot.is_invulnerable(ctx.now):
            logger.debug("Damage to bot %d absorbed, still invulnerable", bot.id)
            return False

        bot.health -= 1
        bot.last_hit_at = ctx.now
        bot.squash_scale = config.BOT_HIT_SQUASH
        self.particles.emit(bot.position.x, bot.position.y, config.HIT_PARTICLE_COLOR, config.HIT_PARTICLE_COUNT)
        self._run_hook(bot, "on_bot_damage", bot, ctx)
        logger.info("Bot %d took a heel hit, health %d/%d", bot.id, bot.health, bot.max_health)
        return True

    def check_win_condition(self) -> int | None:
        if self.state.over:
            return self.state.winner

        bot1_dead = self.bots[0].is_dead
        bot2_dead = self.bots[1].is_dead
        if bot1_dead and bot2_dead:
            self._end(None)
        elif bot1_dead:
            self._end(self.bots[1].id)
        elif bot2_dead:
            self._end(self.bots[0].id)
        return self.state.winner

    def _end(self, winner: int | None) -> None:
        self.state.over = True
        self.state.running = False
        self.state.winner = winner
        if winner is None:
            logger.info("Match over after %.1fs: draw", self.state.elapsed)
        else:
            logger.info("Match over after %.1fs: bot %d wins", self.state.elapsed, winner)

    def _run_hook(self, bot: Bot, hook: str, *args) -> None:
        try:
            getattr(bot.tweak, hook)(*args)
        except Exception:
            logger.exception("Tweak '%s' failed in %s for bot %d", bot.tweak.id, hook, bot.id)

    def _draw_state(self, bot: Bot, now: float) -> DrawState:
        draw = DrawState(now=now, label=bot.tweak.label or None)
        try:
            bot.tweak.on_bot_draw(bot, draw)
        except Exception:
            logger.exception("Tweak '%s' failed in on_bot_draw for bot %d", bot.tweak.id, bot.id)
            draw = DrawState(now=now)
        return draw

    def snapshot(self, now: float) -> dict:
        bots: list[dict] = []
        for bot in self.bots:
            draw = self._draw_state(bot, now)
            arc = bot.weak_spot_arc()
            invulnerable = bot.is_invulnerable(now)
            bots.append(
                {
                    "id": bot.id,
                    "x": round(bot.position.x, 2),
                    "y": round(bot.position.y, 2),
                    "radius": round(bot.radius, 2),
                    "color": draw.color or bot.color,
                    "outline": draw.outline,
                    "alpha": round(draw.alpha, 3),
                    "label": draw.label,
                    "health": bot.health,
                    "maxHealth": bot.max_health,
                    "squash": round(bot.squash_scale, 3),
                    "invulnerable": invulnerable,
                    "weakSpot": {
                        "start": round(arc.start, 4),
                        "end": round(arc.end, 4),
                        "centerDeg": round(normalize_degrees(arc.center), 2),
                        "color": "#ffaa00" if invulnerable else "#00ff00",
                    },
                    "tweak": bot.tweak.id,
                }
            )

        return {
            "type": "state",
            "arena": {
                "center": {"x": self.arena.center.x, "y": self.arena.center.y},
                "radius": self.arena.radius,
                "vertices": [{"x": round(v.x, 2), "y": round(v.y, 2)} for v in self.arena.vertices],
            },
            "bots": bots,
            "particles": self.particles.snapshot(),
            "match": {
                "running": self.state.running,
                "over": self.state.over,
                "winner": self.state.winner,
                "elapsed": round(self.state.elapsed, 3),
            },
        }

