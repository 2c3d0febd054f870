"""
Tests für Feature-Punkte: Snap-Punkte, Grips, Ausrichtungs-Hilfslinien.
"""

import math

from drafting.entities import (
    DimensionEntity, DimensionType, MTextEntity, Point3D, PointEntity, TextEntity,
    make_arc, make_circle, make_line, make_polyline,
)
from drafting.features import (
    GripKind, find_alignment_points, get_closest_snap_point, get_grip_points, get_snap_points,
)
from drafting.snapper import SnapMode


def _close(p, x, y, tol=1e-6):
    return math.isclose(p.x, x, abs_tol=tol) and math.isclose(p.y, y, abs_tol=tol)


class TestSnapPoints:

    def test_line(self):
        snaps = get_snap_points(make_line(0, 0, 10, 0))
        kinds = [s.kind for s in snaps]
        assert kinds == [SnapMode.ENDPOINT, SnapMode.ENDPOINT, SnapMode.MIDPOINT]
        assert _close(snaps[2].point, 5.0, 0.0)

    def test_polyline_vertices_and_midpoints(self):
        snaps = get_snap_points(make_polyline([(0, 0), (10, 0), (10, 10)], closed=True))
        assert sum(1 for s in snaps if s.kind == SnapMode.ENDPOINT) == 3
        # Drei Segmente inklusive Schlusssegment
        assert sum(1 for s in snaps if s.kind == SnapMode.MIDPOINT) == 3

    def test_circle_center(self):
        snaps = get_snap_points(make_circle(2, 3, 5))
        assert len(snaps) == 1
        assert snaps[0].kind == SnapMode.CENTER

    def test_text_has_none(self):
        assert get_snap_points(TextEntity(text="x")) == []


class TestGripPoints:

    def test_line_grips(self):
        grips = get_grip_points(make_line(0, 0, 10, 0))
        assert [g.kind for g in grips] == [GripKind.START, GripKind.END, GripKind.MID]

    def test_circle_has_four_quadrants(self):
        grips = get_grip_points(make_circle(0, 0, 5))
        assert sum(1 for g in grips if g.kind == GripKind.QUADRANT) == 4

    def test_arc_mid_grip_lies_on_arc(self):
        grips = get_grip_points(make_arc(0, 0, 5, 0.0, math.pi))
        mid = next(g for g in grips if g.kind == GripKind.MID)
        assert _close(mid.point, 0.0, 5.0)

    def test_arc_mid_grip_across_zero(self):
        grips = get_grip_points(make_arc(0, 0, 5, 3 * math.pi / 2, math.pi / 2))
        mid = next(g for g in grips if g.kind == GripKind.MID)
        assert _close(mid.point, 5.0, 0.0)

    def test_polyline_vertex_indices(self):
        grips = get_grip_points(make_polyline([(0, 0), (1, 0), (1, 1)]))
        assert [g.index for g in grips] == [0, 1, 2]

    def test_mtext_corners(self):
        mtext = MTextEntity(position=Point3D(0, 0), text="a", width=4, height=1)
        grips = get_grip_points(mtext)
        assert grips[0].kind == GripKind.ORIGIN
        assert len(grips) == 4
        assert _close(grips[1].point, 4.0, 0.0)

    def test_angular_dimension_has_center(self):
        dim = DimensionEntity(dim_type=DimensionType.ANGULAR, start=Point3D(1, 0), end=Point3D(0, 1),
                              center=Point3D(0, 0))
        assert any(g.kind == GripKind.CENTER for g in get_grip_points(dim))


def test_closest_snap_point_strict_threshold():
    line = make_line(0, 0, 10, 0)
    snap = get_closest_snap_point((0.5, 0), [line], threshold=1.0)
    assert snap.kind == SnapMode.ENDPOINT
    assert get_closest_snap_point((1.0, 0), [line], threshold=1.0) is None


def test_closest_snap_point_skips_invisible():
    hidden = PointEntity(position=Point3D(0, 0), visible=False)
    assert get_closest_snap_point((0, 0), [hidden]) is None


class TestAlignment:

    def test_x_and_y_guides(self):
        entities = [make_line(0, 0, 10, 0), make_line(20, 30, 20, 40)]
        guides = find_alignment_points((10.2, 30.3), entities)
        assert guides.x is not None and guides.x.value == 10
        assert guides.y is not None and guides.y.value == 30

    def test_no_guides_outside_threshold(self):
        guides = find_alignment_points((3, 3), [make_line(0, 0, 10, 0)])
        assert guides.x is None
        assert guides.y is None

    def test_extra_points_checked_first(self):
        guides = find_alignment_points((5.2, 50), [make_line(5, 0, 5, 0.1)], extra_points=[(5, 100)])
        assert guides.x.point == Point3D(5, 100)
