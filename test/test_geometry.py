"""
Tests für Entity-Modell und Geometrie-Hilfsfunktionen (Winkel, Boxen).
"""

import math

import pytest

from drafting.entities import (
    EntityType, LineEntity, Point3D, copy_entity, entity_to_dict, make_arc, make_line, next_entity_id,
)
from drafting.geometry import (
    angle_in_arc, angular_distance, arc_sweep, normalize_relative, point_in_polygon, segment_intersects_box,
)


class TestEntities:

    def test_ids_are_unique(self):
        a = make_line(0, 0, 1, 1)
        b = make_line(0, 0, 1, 1)
        assert a.id != b.id
        assert next_entity_id() > b.id

    def test_defaults(self):
        line = LineEntity()
        assert line.type == EntityType.LINE
        assert line.layer == "0"
        assert line.visible is True

    def test_copy_entity_gets_fresh_id(self):
        line = make_line(0, 0, 1, 1, layer="L1")
        copy = copy_entity(line, end=Point3D(5, 5))
        assert copy.id != line.id
        assert copy.layer == "L1"
        assert copy.end == Point3D(5, 5)
        assert line.end == Point3D(1, 1)

    def test_entity_to_dict(self):
        data = entity_to_dict(make_arc(0, 0, 2, 0.0, 1.0))
        assert data["type"] == "ARC"
        assert data["center"] == (0, 0, 0.0)
        assert data["radius"] == 2

    def test_arc_endpoints(self):
        arc = make_arc(1, 1, 2, 0.0, math.pi / 2)
        assert math.isclose(arc.start_point.x, 3.0, abs_tol=1e-9)
        assert math.isclose(arc.end_point.y, 3.0, abs_tol=1e-9)


class TestAngles:

    @pytest.mark.parametrize("angle,reference,expected", [
        (0.5, 0.0, 0.5),
        (-0.5, 0.0, 2 * math.pi - 0.5),
        (7.0, 0.0, 7.0 - 2 * math.pi),
        (0.0, 3 * math.pi / 2, 2 * math.pi),
        (-10.0, 1.0, -10.0 + 4 * math.pi),
    ])
    def test_normalize_relative(self, angle, reference, expected):
        result = normalize_relative(angle, reference)
        assert math.isclose(result, expected, abs_tol=1e-9)
        assert reference <= result < reference + 2 * math.pi

    def test_sweep(self):
        assert math.isclose(arc_sweep(0.0, math.pi / 2), math.pi / 2)
        assert math.isclose(arc_sweep(3 * math.pi / 2, math.pi / 2), math.pi)
        assert math.isclose(arc_sweep(0.0, 2 * math.pi), 2 * math.pi)

    def test_angle_in_arc_across_zero(self):
        start, end = 3 * math.pi / 2, math.pi / 2
        assert angle_in_arc(0.0, start, end)
        assert angle_in_arc(-0.1, start, end)
        assert not angle_in_arc(math.pi, start, end)
        # Enden zählen dazu
        assert angle_in_arc(math.pi / 2, start, end)

    def test_angular_distance(self):
        assert math.isclose(angular_distance(0.1, 2 * math.pi - 0.1), 0.2, abs_tol=1e-9)


class TestBoxes:

    def test_segment_through_box(self):
        box = (0, 0, 4, 4)
        assert segment_intersects_box(Point3D(-5, 2), Point3D(5, 2), box)
        assert segment_intersects_box(Point3D(1, 1), Point3D(2, 2), box)
        assert not segment_intersects_box(Point3D(0, 10), Point3D(10, 0), box)
        assert not segment_intersects_box(Point3D(5, 5), Point3D(6, 6), box)

    def test_vertical_segment_outside(self):
        assert not segment_intersects_box(Point3D(5, -1), Point3D(5, 5), (0, 0, 4, 4))

    def test_point_in_polygon(self):
        square = [Point3D(0, 0), Point3D(4, 0), Point3D(4, 4), Point3D(0, 4)]
        assert point_in_polygon(Point3D(2, 2), square)
        assert not point_in_polygon(Point3D(5, 2), square)
