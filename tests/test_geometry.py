from math import isclose, pi, sqrt

import pytest

from heelarena.geometry import (
    Arena,
    angle_in_arc,
    closest_point_on_segment,
    generate_vertices,
    normalize_degrees,
)
from heelarena.vector import Vector2


def test_vector_operations_return_new_values():
    a = Vector2(3.0, 4.0)
    b = Vector2(1.0, -2.0)
    assert a.add(b) == Vector2(4.0, 2.0)
    assert a.subtract(b) == Vector2(2.0, 6.0)
    assert a.multiply(2.0) == Vector2(6.0, 8.0)
    assert a.dot(b) == -5.0
    assert a.magnitude() == 5.0
    assert a == Vector2(3.0, 4.0)


def test_normalize_zero_vector_is_zero():
    assert Vector2(0.0, 0.0).normalize() == Vector2(0.0, 0.0)
    unit = Vector2(3.0, 4.0).normalize()
    assert isclose(unit.magnitude(), 1.0)


def test_rotate_quarter_turn():
    rotated = Vector2(1.0, 0.0).rotate(pi / 2)
    assert isclose(rotated.x, 0.0, abs_tol=1e-12)
    assert isclose(rotated.y, 1.0)


def test_generate_vertices_octagon():
    center = Vector2(400.0, 300.0)
    vertices = generate_vertices(8, 250.0, center)
    assert len(vertices) == 8
    assert vertices[0] == Vector2(650.0, 300.0)
    for vertex in vertices:
        assert isclose(vertex.subtract(center).magnitude(), 250.0)
    assert isclose(vertices[2].x, 400.0, abs_tol=1e-9)
    assert isclose(vertices[2].y, 550.0)


def test_generate_vertices_rejects_degenerate_polygon():
    with pytest.raises(ValueError):
        generate_vertices(2, 10.0, Vector2())


def test_closest_point_clamps_to_segment_ends():
    a = Vector2(0.0, 0.0)
    b = Vector2(10.0, 0.0)
    assert closest_point_on_segment(Vector2(5.0, 3.0), a, b) == Vector2(5.0, 0.0)
    assert closest_point_on_segment(Vector2(-4.0, 3.0), a, b) == a
    assert closest_point_on_segment(Vector2(14.0, -3.0), a, b) == b


def test_closest_point_on_zero_length_segment():
    a = Vector2(2.0, 2.0)
    point = closest_point_on_segment(Vector2(5.0, 6.0), a, a)
    assert point == a


def test_arena_edges_wrap_around():
    arena = Arena.regular(sides=8, radius=250.0, center=Vector2(400.0, 300.0))
    edges = list(arena.edges())
    assert len(edges) == 8
    assert edges[-1] == (arena.vertices[7], arena.vertices[0])
    assert arena.contains(Vector2(400.0, 300.0))
    assert not arena.contains(Vector2(700.0, 300.0))


def test_edge_length_of_regular_polygon():
    arena = Arena.regular(sides=4, radius=sqrt(2.0), center=Vector2())
    for a, b in arena.edges():
        assert isclose(b.subtract(a).magnitude(), 2.0)


def test_normalize_degrees_wraps_into_range():
    assert isclose(normalize_degrees(-pi / 2), 270.0)
    assert isclose(normalize_degrees(5 * pi), 180.0)
    assert 0.0 <= normalize_degrees(-1e-17) < 360.0


def test_arc_wrap_around_case():
    assert angle_in_arc(355.0, 350.0, 10.0)
    assert angle_in_arc(5.0, 350.0, 10.0)
    assert not angle_in_arc(180.0, 350.0, 10.0)


def test_arc_normal_case():
    assert angle_in_arc(150.0, 100.0, 200.0)
    assert angle_in_arc(100.0, 100.0, 200.0)
    assert not angle_in_arc(50.0, 100.0, 200.0)
    assert not angle_in_arc(250.0, 100.0, 200.0)
