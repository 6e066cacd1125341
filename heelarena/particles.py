"""Cosmetic particle bursts. Nothing in the simulation reads them back."""

from __future__ import annotations

import random
from collections.abc import Iterator
from dataclasses import dataclass
from math import ceil, pi

from . import config
from .vector import Vector2


@dataclass(slots=True)
class Particle:
    position: Vector2
    velocity: Vector2
    color: str
    size: float
    life: float = 1.0
    decay: float = config.PARTICLE_DECAY

    @property
    def is_dead(self) -> bool:
        return self.life <= 0.0

    def update(self) -> None:
        self.position = self.position.add(self.velocity)
        self.velocity = self.velocity.multiply(config.PARTICLE_DAMPING)
        self.life -= self.decay
        self.size *= config.PARTICLE_SHRINK


class ParticleSystem:
    def __init__(self, rng: random.Random | None = None, *, reduced: bool | None = None) -> None:
        self.rng = rng or random.Random()
        self.reduced = config.REDUCED_PARTICLES if reduced is None else reduced
        self._particles: list[Particle] = []

    def __len__(self) -> int:
        return len(self._particles)

    def __iter__(self) -> Iterator[Particle]:
        return iter(self._particles)

    def clear(self) -> None:
        self._particles.clear()

    def emit(
        self,
        x: float,
        y: float,
        color: str,
        count: int,
        angle: float | None = None,
        speed: float | None = None,
    ) -> None:
        if count <= 0:
            return
        total = ceil(count / 2) if self.reduced else count
        for _ in range(total):
            particle_angle = angle if angle is not None else self.rng.random() * pi * 2.0
            particle_speed = speed if speed is not None else 2.0 + self.rng.random() * 3.0
            self._particles.append(
                Particle(
                    position=Vector2(x, y),
                    velocity=Vector2.from_angle(particle_angle, particle_speed),
                    color=color,
                    size=3.0 + self.rng.random() * 4.0,
                )
            )

    def emit_wall_bounce(self, point: Vector2) -> None:
        # Wall sparks use their own slower speed range, one random speed each.
        for _ in range(config.WALL_PARTICLE_COUNT):
            self.emit(
                point.x,
                point.y,
                config.WALL_PARTICLE_COLOR,
                1,
                angle=self.rng.random() * pi * 2.0,
                speed=1.0 + self.rng.random() * 2.0,
            )

    def update(self) -> None:
        for particle in self._particles:
            particle.update()
        self._particles = [p for p in self._particles if not p.is_dead]

    def snapshot(self) -> list[dict]:
        return [
            {
                "x": round(p.position.x, 2),
                "y": round(p.position.y, 2),
                "color": p.color,
                "size": round(p.size, 2),
                "life": round(p.life, 3),
            }
            for p in self._particles
        ]
