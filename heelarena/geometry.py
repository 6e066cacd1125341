"""Arena polygon geometry and angular helpers."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from math import cos, degrees, pi, sin

from . import config
from .vector import Vector2

TAU = 2.0 * pi


def _clamp(value: float, min_value: float, max_value: float) -> float:
    return min(max(value, min_value), max_value)


def generate_vertices(sides: int, radius: float, center: Vector2) -> tuple[Vector2, ...]:
    if sides < 3:
        raise ValueError(f"An arena polygon needs at least 3 sides, got {sides}")
    vertices: list[Vector2] = []
    for i in range(sides):
        angle = (i / sides) * TAU
        vertices.append(Vector2(center.x + cos(angle) * radius, center.y + sin(angle) * radius))
    return tuple(vertices)


def closest_point_on_segment(p: Vector2, a: Vector2, b: Vector2) -> Vector2:
    line = b.subtract(a)
    length_sq = line.dot(line)
    if length_sq == 0.0:
        return a
    t = _clamp(p.subtract(a).dot(line) / length_sq, 0.0, 1.0)
    return a.add(line.multiply(t))


def normalize_degrees(angle: float) -> float:
    """Convert an angle in radians to degrees in ``[0, 360)``."""
    value = degrees(angle) % 360.0
    # -1e-17 % 360.0 rounds to 360.0
    if value >= 360.0:
        value -= 360.0
    return value


def angle_in_arc(angle: float, start: float, end: float) -> bool:
    """Degree-domain containment; an arc with ``start > end`` wraps through 0."""
    if start <= end:
        return start <= angle <= end
    return angle >= start or angle <= end


@dataclass(slots=True, frozen=True)
class Arena:
    center: Vector2
    radius: float
    sides: int
    vertices: tuple[Vector2, ...]

    @classmethod
    def regular(
        cls,
        sides: int = config.ARENA_SIDES,
        radius: float = config.ARENA_RADIUS,
        center: Vector2 | None = None,
    ) -> Arena:
        if center is None:
            center = Vector2(config.ARENA_CENTER_X, config.ARENA_CENTER_Y)
        return cls(center=center, radius=radius, sides=sides, vertices=generate_vertices(sides, radius, center))

    def edges(self) -> Iterator[tuple[Vector2, Vector2]]:
        count = len(self.vertices)
        for i in range(count):
            yield (self.vertices[i], self.vertices[(i + 1) % count])

    def contains(self, point: Vector2) -> bool:
        # Vertices wind counter-clockwise in math coordinates, so the interior is on the left.
        for a, b in self.edges():
            edge = b.subtract(a)
            rel = point.subtract(a)
            if edge.x * rel.y - edge.y * rel.x < 0.0:
                return False
        return True
