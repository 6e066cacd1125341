"""Match lifecycle: bot spawning, tweak wiring and the control surface used by the UI."""

from __future__ import annotations

import logging
import random
from math import pi

from . import config
from .geometry import Arena, normalize_degrees
from .models import Bot, MatchResult
from .tweaks.declarative import compile_tweak
from .tweaks.registry import TweakRegistry, load_tweak_modules
from .tweaks.types import TweakPlugin
from .vector import Vector2
from .world import ArenaWorld

logger = logging.getLogger(__name__)


class MatchController:
    def __init__(
        self,
        registry: TweakRegistry | None = None,
        *,
        arena: Arena | None = None,
        rng: random.Random | None = None,
        plugin_modules: tuple[str, ...] | None = None,
    ) -> None:
        if registry is not None and plugin_modules is not None:
            raise ValueError("Pass either a populated registry or plugin modules to load, not both")
        if registry is None:
            registry = TweakRegistry()
            load_tweak_modules(config.TWEAK_PLUGIN_MODULES if plugin_modules is None else plugin_modules, registry)
        self.registry = registry
        self.arena = arena or Arena.regular()
        self.rng = rng or random.Random(config.RANDOM_SEED)
        self.world: ArenaWorld | None = None
        self.tweaks: tuple[str, str] = ("none", "none")
        self._authored: set[str] = set()

    def describe(self) -> dict:
        return {
            "registeredTweaks": [plugin.describe() for plugin in self.registry.plugins()],
            "authoredTweaks": sorted(self._authored),
            "selectedTweaks": list(self.tweaks),
            "arena": {"sides": self.arena.sides, "radius": self.arena.radius},
            "match": self._match_status(),
        }

    def _match_status(self) -> dict:
        if self.world is None:
            return {"running": False, "over": False, "winner": None, "elapsed": 0.0, "health": []}
        state = self.world.state
        return {
            "running": state.running,
            "over": state.over,
            "winner": state.winner,
            "elapsed": round(state.elapsed, 3),
            "health": [bot.health for bot in self.world.bots],
        }

    def regenerate_arena(self, width: float, height: float) -> None:
        if self.world is not None and self.world.state.running:
            raise RuntimeError("Arena can only be regenerated between matches")
        center = Vector2(width / 2.0, height / 2.0)
        self.arena = Arena.regular(sides=self.arena.sides, radius=self.arena.radius, center=center)

    def start_match(self, tweak1: str = "none", tweak2: str = "none", *, now: float) -> ArenaWorld:
        plugin1 = self.registry.get(tweak1)
        plugin2 = self.registry.get(tweak2)
        self.tweaks = (plugin1.id, plugin2.id)

        bots = [self._spawn_bot(index, plugin) for index, plugin in enumerate((plugin1, plugin2))]
        world = ArenaWorld(self.arena, bots, rng=self.rng, now=now)
        world.init_bots(now)
        self.world = world

        for bot in bots:
            arc = bot.weak_spot_arc()
            logger.debug(
                "Bot %d (%s) heel center %.1f deg, arc %.1f..%.1f deg",
                bot.id,
                bot.color,
                normalize_degrees(arc.center),
                normalize_degrees(arc.start),
                normalize_degrees(arc.end),
            )
        logger.info("Match started: bot 0 with '%s', bot 1 with '%s'", plugin1.id, plugin2.id)
        return world

    def _spawn_bot(self, index: int, plugin: TweakPlugin) -> Bot:
        offset_x, offset_y = config.BOT_SPAWN_OFFSETS[index]
        position = Vector2(self.arena.center.x + offset_x, self.arena.center.y + offset_y)
        velocity = Vector2(
            (self.rng.random() - 0.5) * config.BOT_SPEED,
            (self.rng.random() - 0.5) * config.BOT_SPEED,
        )
        return Bot(
            id=index,
            position=position,
            velocity=velocity,
            color=config.BOT_COLORS[index],
            tweak=plugin,
            heading=self.rng.random() * pi * 2.0,
            body_angle=self.rng.random() * pi * 2.0,
        )

    def tick(self, *, now: float, dt: float = config.FIXED_DT) -> None:
        if self.world is None:
            return
        self.world.update(dt, now)

    def snapshot(self, *, now: float) -> dict | None:
        if self.world is None:
            return None
        return self.world.snapshot(now)

    def reset_to_pre_match(self) -> None:
        self.world = None
        self.tweaks = ("none", "none")
        for tweak_id in self._authored:
            self.registry.unregister(tweak_id)
        if self._authored:
            logger.info("Dropped %d authored tweak(s): %s", len(self._authored), ", ".join(sorted(self._authored)))
        self._authored.clear()

    def is_over(self) -> MatchResult:
        if self.world is None or not self.world.state.over:
            return MatchResult(over=False)
        return MatchResult(over=True, winner=self.world.state.winner)

    def get_health(self, bot_id: int) -> int:
        if self.world is None:
            raise RuntimeError("No match in progress")
        for bot in self.world.bots:
            if bot.id == bot_id:
                return bot.health
        raise ValueError(f"Unknown bot id {bot_id}")

    def get_elapsed_time(self, *, now: float) -> float:
        if self.world is None:
            return 0.0
        state = self.world.state
        if state.over or state.started_at is None:
            return state.elapsed
        return max(0.0, now - state.started_at)

    def install_authored_tweak(self, code: str) -> str:
        """Compile authored tweak source and register it for the next match.

        Raises ``TweakCompileError`` and leaves the registry untouched when the
        source cannot be compiled.
        """
        plugin = compile_tweak(code)
        self.registry.register(plugin)
        self._authored.add(plugin.id)
        logger.info("Installed authored tweak '%s' (%s)", plugin.id, plugin.name)
        return plugin.id
