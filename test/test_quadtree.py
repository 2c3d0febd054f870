"""
QuadTree Tests - Spatial Index für Hit-Test und Snapping
"""

import math

from drafting.entities import (
    EllipseEntity, Point3D, TextEntity, make_arc, make_circle, make_line, make_polyline, SplineEntity,
)
from drafting.quadtree import Bounds, QuadTree, entity_bounds


class TestBounds:

    def test_touching_edges_intersect(self):
        a = Bounds(0, 0, 1, 1)
        b = Bounds(1, 0, 2, 1)
        assert a.intersects(b)
        assert not a.intersects(Bounds(1.1, 0, 2, 1))

    def test_contains_and_union(self):
        outer = Bounds(0, 0, 10, 10)
        inner = Bounds(2, 2, 3, 3)
        assert outer.contains(inner)
        assert not inner.contains(outer)
        merged = inner.union(Bounds(-1, 5, 0, 6))
        assert merged == Bounds(-1, 2, 3, 6)
        assert merged.width == 4 and merged.height == 4

    def test_from_points_empty(self):
        assert Bounds.from_points([]) is None


class TestEntityBounds:

    def test_line(self):
        assert entity_bounds(make_line(3, 4, -1, 2)) == Bounds(-1, 2, 3, 4)

    def test_arc_uses_full_circle(self):
        assert entity_bounds(make_arc(1, 1, 2, 0.0, math.pi / 4)) == Bounds(-1, -1, 3, 3)

    def test_ellipse_is_conservative(self):
        b = entity_bounds(EllipseEntity(center=Point3D(0, 0), rx=4, ry=1))
        assert b == Bounds(-4, -4, 4, 4)

    def test_rotated_text(self):
        text = TextEntity(position=Point3D(0, 0), text="AB", height=2.0, rotation=math.pi / 2)
        b = entity_bounds(text)
        assert math.isclose(b.min_x, -2.0, abs_tol=1e-9)
        assert math.isclose(b.max_y, 2.4, abs_tol=1e-9)

    def test_empty_geometry(self):
        assert entity_bounds(SplineEntity()) is None
        assert entity_bounds(make_polyline([])) is None


class TestQuadTree:

    def test_query_finds_items_once(self):
        tree = QuadTree(Bounds(0, 0, 100, 100), max_items=2)
        for i in range(20):
            tree.insert(i, Bounds(i * 5, i * 5, i * 5 + 1, i * 5 + 1))
        # Ein großes Item über alle Quadranten
        tree.insert("big", Bounds(10, 10, 90, 90))

        assert len(tree) == 21
        hits = tree.query(Bounds(0, 0, 12, 12))
        assert sorted(h for h in hits if isinstance(h, int)) == [0, 1, 2]
        assert "big" in hits
        assert len(hits) == len(set(map(str, hits)))

    def test_items_outside_root_are_found(self):
        tree = QuadTree(Bounds(0, 0, 10, 10))
        tree.insert("far", Bounds(50, 50, 51, 51))
        assert tree.query(Bounds(49, 49, 52, 52)) == ["far"]

    def test_clear(self):
        tree = QuadTree(Bounds(0, 0, 10, 10))
        tree.insert("a", Bounds(1, 1, 2, 2))
        tree.clear()
        assert len(tree) == 0
        assert tree.query(Bounds(0, 0, 10, 10)) == []

    def test_from_entities_stores_snapshot_index(self):
        entities = [make_line(0, 0, 1, 1), SplineEntity(), make_circle(50, 50, 2)]
        tree = QuadTree.from_entities(entities)

        assert len(tree) == 2
        hits = tree.query(Bounds(49, 49, 51, 51))
        assert hits == [(2, entities[2])]

    def test_brute_force_equivalence(self):
        entities = [make_line(i, (i * 7) % 13, i + 3, (i * 5) % 11) for i in range(60)]
        tree = QuadTree.from_entities(entities, max_items=4)

        window = Bounds(10, 2, 25, 8)
        expected = [i for i, e in enumerate(entities) if entity_bounds(e).intersects(window)]
        assert sorted(i for i, _ in tree.query(window)) == expected
