"""
DraftKernel - Spatial Indexing (Quadtree)
Provides O(log n) spatial queries for hit-testing and snapping.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from loguru import logger

from .entities import Entity, EntityType, Point3D
from .hittest import dimension_text_box, layout_corners
from .intersection import segment_of


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounding box. Touching edges count as intersecting."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_points(cls, points: Iterable[Point3D]) -> Optional['Bounds']:
        points = list(points)
        if not points:
            return None
        return cls(min(p.x for p in points), min(p.y for p in points),
                   max(p.x for p in points), max(p.y for p in points))

    @classmethod
    def around(cls, center: Point3D, radius: float) -> 'Bounds':
        return cls(center.x - radius, center.y - radius, center.x + radius, center.y + radius)

    def intersects(self, other: 'Bounds') -> bool:
        return not (other.min_x > self.max_x or other.max_x < self.min_x or
                    other.min_y > self.max_y or other.max_y < self.min_y)

    def contains_point(self, point: Point3D) -> bool:
        return self.min_x <= point.x <= self.max_x and self.min_y <= point.y <= self.max_y

    def contains(self, other: 'Bounds') -> bool:
        return (self.min_x <= other.min_x and other.max_x <= self.max_x and
                self.min_y <= other.min_y and other.max_y <= self.max_y)

    def expanded(self, margin: float) -> 'Bounds':
        return Bounds(self.min_x - margin, self.min_y - margin, self.max_x + margin, self.max_y + margin)

    def union(self, other: 'Bounds') -> 'Bounds':
        return Bounds(min(self.min_x, other.min_x), min(self.min_y, other.min_y),
                      max(self.max_x, other.max_x), max(self.max_y, other.max_y))

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


def entity_bounds(entity: Entity) -> Optional[Bounds]:
    """Bounding box of the displayed geometry, None for empty entities.

    Arcs use the bounds of their full circle, ellipses the square of their
    larger semi-axis (conservative).
    """
    t = entity.type
    if t in (EntityType.LINE, EntityType.RAY, EntityType.XLINE):
        return Bounds.from_points(segment_of(entity))
    if t in (EntityType.CIRCLE, EntityType.ARC):
        return Bounds.around(entity.center, entity.radius)
    if t == EntityType.DONUT:
        return Bounds.around(entity.center, entity.outer_radius)
    if t == EntityType.ELLIPSE:
        # Tangenten-Fang nutzt den mittleren Radius, daher das umschließende Quadrat
        return Bounds.around(entity.center, max(entity.rx, entity.ry))
    if t == EntityType.POLYLINE:
        return Bounds.from_points(entity.vertices)
    if t == EntityType.SPLINE:
        return Bounds.from_points(entity.defining_points)
    if t == EntityType.HATCH:
        return Bounds.from_points(entity.boundary)
    if t == EntityType.POINT:
        return Bounds.from_points([entity.position])
    if t in (EntityType.TEXT, EntityType.MTEXT, EntityType.TABLE):
        return Bounds.from_points(layout_corners(entity))
    if t == EntityType.DIMENSION:
        points = [entity.start, entity.end]
        if entity.dim_line_position is not None:
            points.append(entity.dim_line_position)
        bounds = Bounds.from_points(points)
        text_box = dimension_text_box(entity)
        if text_box is not None:
            bounds = bounds.union(Bounds(*text_box))
        return bounds
    return None


class QuadTree:
    """
    Root wrapper for the Quadtree.
    Items outside the root bounds are kept at the root so queries still find them.
    """
    def __init__(self, bounds: Bounds, max_items=8, max_depth=8):
        self.root = QuadTreeNode(bounds, max_items, max_depth, depth=0)
        self.max_items = max_items
        self.max_depth = max_depth
        self._size = 0

    def __len__(self):
        return self._size

    def insert(self, item, bounds: Bounds):
        """
        Insert an item into the tree.
        :param item: The stored object (entity, index, ...)
        :param bounds: The Bounds of the item
        """
        self.root.insert(item, bounds)
        self._size += 1

    def query(self, range_bounds: Bounds) -> list:
        """
        Returns a list of items whose bounds intersect with range_bounds.
        Every item is returned at most once.
        """
        return self.root.query(range_bounds)

    def clear(self, bounds: Optional[Bounds] = None):
        """Resets the tree (optionally with new bounds)."""
        self.root = QuadTreeNode(bounds or self.root.bounds, self.max_items, self.max_depth, depth=0)
        self._size = 0

    @classmethod
    def from_entities(cls, entities: Iterable[Entity], max_items=8, max_depth=8) -> 'QuadTree':
        """Index (snapshot_index, entity) pairs of all entities with geometry."""
        indexed = []
        total = None
        for index, entity in enumerate(entities):
            bounds = entity_bounds(entity)
            if bounds is None:
                continue
            indexed.append(((index, entity), bounds))
            total = bounds if total is None else total.union(bounds)

        tree = cls(total.expanded(1.0) if total else Bounds(-1.0, -1.0, 1.0, 1.0), max_items, max_depth)
        for item, bounds in indexed:
            tree.insert(item, bounds)
        logger.debug(f"[QUADTREE] {len(tree)} Items indiziert")
        return tree


class QuadTreeNode:
    def __init__(self, bounds: Bounds, max_items, max_depth, depth):
        self.bounds = bounds
        self.max_items = max_items
        self.max_depth = max_depth
        self.depth = depth
        # Stores tuples of (item, item_bounds)
        self.items = []
        self.children = None

    def insert(self, item, item_bounds: Bounds):
        if self.children:
            child = self._child_containing(item_bounds)
            if child is not None:
                child.insert(item, item_bounds)
                return
            # Spans several children (or lies outside): stays here
            self.items.append((item, item_bounds))
            return

        self.items.append((item, item_bounds))
        if len(self.items) > self.max_items and self.depth < self.max_depth:
            self._subdivide()
            old_items = self.items
            self.items = []
            for it, bd in old_items:
                child = self._child_containing(bd)
                if child is not None:
                    child.insert(it, bd)
                else:
                    self.items.append((it, bd))

    def _child_containing(self, item_bounds: Bounds) -> Optional['QuadTreeNode']:
        for child in self.children:
            if child.bounds.contains(item_bounds):
                return child
        return None

    def _subdivide(self):
        b = self.bounds
        mx = (b.min_x + b.max_x) / 2
        my = (b.min_y + b.max_y) / 2
        depth = self.depth + 1
        self.children = [
            QuadTreeNode(Bounds(b.min_x, b.min_y, mx, my), self.max_items, self.max_depth, depth),
            QuadTreeNode(Bounds(mx, b.min_y, b.max_x, my), self.max_items, self.max_depth, depth),
            QuadTreeNode(Bounds(b.min_x, my, mx, b.max_y), self.max_items, self.max_depth, depth),
            QuadTreeNode(Bounds(mx, my, b.max_x, b.max_y), self.max_items, self.max_depth, depth),
        ]

    def query(self, range_bounds: Bounds) -> list:
        results = []

        # Items at this node may lie outside self.bounds (root overflow), so no early exit on them
        for item, item_bounds in self.items:
            if range_bounds.intersects(item_bounds):
                results.append(item)

        if self.children:
            for child in self.children:
                if child.bounds.intersects(range_bounds):
                    results.extend(child.query(range_bounds))

        return results
