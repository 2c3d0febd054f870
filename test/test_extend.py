"""
Extend Tests

Linien und Bögen bis zur nächsten Begrenzung; ExtendOperation.
"""

import math

from drafting.entities import make_arc, make_circle, make_line
from drafting.operations import (
    ExtendOperation, ResultStatus, extend_arc_entity, extend_entity, extend_line_entity,
)


def _close(p, x, y, tol=1e-6):
    return math.isclose(p.x, x, abs_tol=tol) and math.isclose(p.y, y, abs_tol=tol)


# =============================================================================
# Linie
# =============================================================================

class TestExtendLine:

    def test_end_extended_to_boundary(self):
        target = make_line(0, 0, 5, 0)
        boundary = make_line(10, -5, 10, 5)

        result = extend_line_entity(target, (4.9, 0), [boundary])

        assert _close(result.start, 0.0, 0.0)
        assert _close(result.end, 10.0, 0.0)
        # Extend ersetzt die Entity, ID bleibt
        assert result.id == target.id
        assert result is not target
        assert _close(target.end, 5.0, 0.0)

    def test_start_extended_when_click_is_nearer(self):
        target = make_line(0, 0, 5, 0)
        boundary = make_line(-3, -5, -3, 5)

        result = extend_line_entity(target, (0.5, 0), [boundary])

        assert _close(result.start, -3.0, 0.0)
        assert _close(result.end, 5.0, 0.0)

    def test_nearest_boundary_wins(self):
        target = make_line(0, 0, 5, 0)
        boundaries = [make_line(10, -5, 10, 5), make_line(7, -5, 7, 5)]
        result = extend_line_entity(target, (5, 0), boundaries)
        assert _close(result.end, 7.0, 0.0)

    def test_boundary_behind_is_ignored(self):
        target = make_line(0, 0, 5, 0)
        boundary = make_line(-3, -5, -3, 5)
        assert extend_line_entity(target, (5, 0), [boundary]) is target

    def test_boundary_crossing_the_line_is_ignored(self):
        target = make_line(0, 0, 5, 0)
        boundary = make_line(2, -5, 2, 5)
        assert extend_line_entity(target, (5, 0), [boundary]) is target

    def test_circle_boundary(self):
        target = make_line(0, 0, 5, 0)
        result = extend_line_entity(target, (5, 0), [make_circle(20, 0, 5)])
        assert _close(result.end, 15.0, 0.0)

    def test_degenerate_line_unchanged(self):
        target = make_line(3, 3, 3, 3)
        assert extend_line_entity(target, (3, 3), [make_line(10, -5, 10, 5)]) is target

    def test_no_boundaries_unchanged(self):
        target = make_line(0, 0, 5, 0)
        assert extend_line_entity(target, (5, 0), []) is target

    def test_non_line_unchanged(self):
        circle = make_circle(0, 0, 5)
        assert extend_line_entity(circle, (5, 0), [make_line(10, -5, 10, 5)]) is circle


# =============================================================================
# Bogen
# =============================================================================

class TestExtendArc:

    def test_end_extended_along_circle(self):
        arc = make_arc(0, 0, 5, 0.0, math.pi / 2)
        boundary = make_line(-10, 3, 0, 3)

        result = extend_arc_entity(arc, (0, 5), [boundary])

        assert math.isclose(result.start_angle, 0.0, abs_tol=1e-12)
        assert math.isclose(result.end_angle, math.atan2(3, -4), abs_tol=1e-6)
        assert _close(result.end_point, -4.0, 3.0)
        assert result.id == arc.id

    def test_start_extended_backwards(self):
        arc = make_arc(0, 0, 5, 0.0, math.pi / 2)
        boundary = make_line(3, -10, 3, 0)

        result = extend_arc_entity(arc, (5, 0.1), [boundary])

        assert math.isclose(result.start_angle, math.atan2(-4, 3), abs_tol=1e-6)
        assert math.isclose(result.end_angle, math.pi / 2, abs_tol=1e-12)

    def test_points_inside_span_are_ignored(self):
        arc = make_arc(0, 0, 5, 0.0, math.pi / 2)
        # Schneidet den Kreis nur bei (3, 4), also innerhalb des Bogens
        boundary = make_line(3, 0, 3, 10)
        assert extend_arc_entity(arc, (0, 5), [boundary]) is arc

    def test_no_boundaries_unchanged(self):
        arc = make_arc(0, 0, 5, 0.0, math.pi / 2)
        assert extend_arc_entity(arc, (0, 5), []) is arc


def test_extend_entity_dispatch():
    circle = make_circle(0, 0, 5)
    boundary = make_line(10, -5, 10, 5)
    assert extend_entity(circle, (5, 0), [boundary]) is circle
    assert _close(extend_entity(make_line(0, 0, 5, 0), (5, 0), [boundary]).end, 10.0, 0.0)


# =============================================================================
# ExtendOperation
# =============================================================================

class TestExtendOperation:

    def test_execute_success(self):
        op = ExtendOperation()
        target = make_line(0, 0, 5, 0)
        result = op.execute(target, (5, 0), [make_line(10, -5, 10, 5)])

        assert result.status == ResultStatus.SUCCESS
        assert _close(result.entity.end, 10.0, 0.0)
        assert result.data.extend_start is False
        assert math.isclose(result.data.distance, 5.0, abs_tol=1e-9)
        assert op.last_result is result

    def test_find_extension(self):
        data = ExtendOperation().find_extension(make_line(0, 0, 5, 0), (0, 0), [make_line(-2, -1, -2, 1)])
        assert data.extend_start is True
        assert _close(data.new_point, -2.0, 0.0)

    def test_execute_without_boundary_is_warning(self):
        target = make_line(0, 0, 5, 0)
        result = ExtendOperation().execute(target, (5, 0), [])
        assert result.status == ResultStatus.WARNING
        assert result.success
        assert result.entity is target

    def test_execute_on_unsupported_type(self):
        circle = make_circle(0, 0, 5)
        result = ExtendOperation().execute(circle, (5, 0), [])
        assert result.status == ResultStatus.NO_TARGET
        assert result.entity is circle
