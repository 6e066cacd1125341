"""Built-in tweak pack."""

from __future__ import annotations

import logging

from .. import config
from ..models import Bot
from ..tweaks.registry import TweakRegistry
from ..tweaks.types import TweakContext, TweakPlugin

logger = logging.getLogger(__name__)


class SmallerSizeTweak(TweakPlugin):
    id = "smaller"
    name = "Smaller Size"
    description = "Bot is 30% smaller, making it harder to hit."
    label = "SMALL"

    def on_bot_init(self, bot: Bot, ctx: TweakContext) -> None:
        bot.radius *= config.SMALLER_RADIUS_FACTOR


class ExtraLifeTweak(TweakPlugin):
    id = "extra-life"
    name = "Extra Life"
    description = "Bot starts with 6 health instead of 5."
    label = "EXTRA"

    def on_bot_init(self, bot: Bot, ctx: TweakContext) -> None:
        bot.health = config.EXTRA_LIFE_HEALTH
        bot.max_health = config.EXTRA_LIFE_HEALTH


class RegenerationTweak(TweakPlugin):
    id = "regeneration"
    name = "Regeneration"
    description = "Bot regains 1 health every 60 seconds."
    label = "REGEN"

    def on_bot_init(self, bot: Bot, ctx: TweakContext) -> None:
        bot.memory["last_regen_at"] = ctx.now

    def on_bot_update(self, bot: Bot, ctx: TweakContext) -> None:
        if bot.health >= bot.max_health:
            return
        last_regen_at = float(bot.memory.get("last_regen_at", ctx.now))
        if ctx.now - last_regen_at < config.REGEN_INTERVAL_SECONDS:
            return

        bot.health = min(bot.health + 1, bot.max_health)
        bot.memory["last_regen_at"] = ctx.now
        ctx.particles.emit(
            bot.position.x,
            bot.position.y,
            config.REGEN_PARTICLE_COLOR,
            config.REGEN_PARTICLE_COUNT,
        )
        logger.info("Bot %d regenerated, health %d/%d", bot.id, bot.health, bot.max_health)


def register(registry: TweakRegistry) -> None:
    registry.register(SmallerSizeTweak())
    registry.register(ExtraLifeTweak())
    registry.register(RegenerationTweak())
