"""Immutable 2D vector used by the arena simulation."""

from __future__ import annotations

from dataclasses import dataclass
from math import cos, sin, sqrt


@dataclass(slots=True, frozen=True)
class Vector2:
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def from_angle(cls, angle: float, length: float = 1.0) -> Vector2:
        return cls(cos(angle) * length, sin(angle) * length)

    def add(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def subtract(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def multiply(self, scalar: float) -> Vector2:
        return Vector2(self.x * scalar, self.y * scalar)

    def dot(self, other: Vector2) -> float:
        return self.x * other.x + self.y * other.y

    def magnitude(self) -> float:
        return sqrt(self.x * self.x + self.y * self.y)

    def normalize(self) -> Vector2:
        mag = self.magnitude()
        if mag == 0.0:
            return Vector2(0.0, 0.0)
        return Vector2(self.x / mag, self.y / mag)

    def rotate(self, angle: float) -> Vector2:
        c = cos(angle)
        s = sin(angle)
        return Vector2(self.x * c - self.y * s, self.x * s + self.y * c)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    def __add__(self, other: Vector2) -> Vector2:
        return self.add(other)

    def __sub__(self, other: Vector2) -> Vector2:
        return self.subtract(other)

    def __mul__(self, scalar: float) -> Vector2:
        return self.multiply(scalar)

    __rmul__ = __mul__

    def __neg__(self) -> Vector2:
        return Vector2(-self.x, -self.y)
