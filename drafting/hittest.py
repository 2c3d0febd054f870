"""
DraftKernel - Hit-Test Engine
Abstand Cursor -> Entity (Pick-Toleranz) sowie Window-/Crossing-Auswahl.

Window: Entity vollständig in der Box.
Crossing: Entity berührt die Box überhaupt. Crossing prüft zuerst Window,
damit Window => Crossing für jeden Typ gilt.
"""

import math
from typing import List, Optional, Sequence, Tuple, Iterable

import numpy as np
from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from .entities import Entity, EntityType, DimensionType, Point3D, as_point, PointLike
from .geometry import (
    angle_in_arc, angle_of, box_corners, distance, distance_point_to_segment,
    distance_to_local_box, iter_segments, normalize_box, point_in_box, point_in_polygon,
    segment_intersects_box, to_local, to_world,
)
from .intersection import line_circle_intersection, segment_of

Box = Tuple[float, float, float, float]


# =============================================================================
# Vektorisierte Segment-Abstände
# =============================================================================

def batch_distances_to_segments(cursor: PointLike, starts, ends) -> np.ndarray:
    """
    Abstände eines Punktes zu N Segmenten in einem numpy-Durchlauf.

    Args:
        cursor: Abfragepunkt
        starts: (N, 2) Array-artig, Segment-Startpunkte
        ends: (N, 2) Array-artig, Segment-Endpunkte

    Returns:
        (N,) Array der geklemmten Punkt-Segment-Abstände
    """
    p = as_point(cursor)
    a = np.asarray(starts, dtype=float).reshape(-1, 2)
    b = np.asarray(ends, dtype=float).reshape(-1, 2)
    if a.shape[0] == 0:
        return np.empty(0)

    seg = b - a
    seg_len_sq = np.sum(seg ** 2, axis=1)
    to_point = np.array([p.x, p.y]) - a
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(seg_len_sq > 0, np.sum(to_point * seg, axis=1) / seg_len_sq, 0.0)
    t = np.clip(t, 0.0, 1.0)
    projection = a + seg * t[:, None]
    return np.hypot(p.x - projection[:, 0], p.y - projection[:, 1])


def _polyline_distance(cursor: Point3D, points: Sequence[Point3D], closed: bool) -> float:
    segments = list(iter_segments(points, closed))
    if not segments:
        return math.inf
    starts = [(s.x, s.y) for s, _ in segments]
    ends = [(e.x, e.y) for _, e in segments]
    return float(np.min(batch_distances_to_segments(cursor, starts, ends)))


# =============================================================================
# Layout-Boxen (Text, MText, Table)
# =============================================================================

def text_width(entity: Entity) -> float:
    return len(entity.text) * entity.height * Tolerances.TEXT_CHAR_WIDTH_FACTOR


def mtext_height(entity: Entity) -> float:
    return entity.line_count * entity.height * Tolerances.MTEXT_LINE_SPACING_FACTOR


def local_layout_box(entity: Entity) -> Tuple[float, float, float, float]:
    """Lokale Box (x_min, x_max, y_min, y_max) relativ zu position, vor Rotation.

    TEXT wächst nach oben, MTEXT und TABLE hängen von position nach unten.
    """
    if entity.type == EntityType.TEXT:
        return 0.0, text_width(entity), 0.0, entity.height
    if entity.type == EntityType.MTEXT:
        return 0.0, entity.width, -mtext_height(entity), 0.0
    if entity.type == EntityType.TABLE:
        return 0.0, entity.cols * entity.col_width, -entity.rows * entity.row_height, 0.0
    raise ValueError(f"Kein Layout-Typ: {entity.type}")


def layout_corners(entity: Entity) -> List[Point3D]:
    """Die vier Weltkoordinaten-Ecken der rotierten Layout-Box."""
    x0, x1, y0, y1 = local_layout_box(entity)
    return [to_world(x, y, entity.position, entity.rotation)
            for x, y in ((x0, y0), (x1, y0), (x1, y1), (x0, y1))]


# =============================================================================
# Bemaßungen
# =============================================================================

def dimension_text_box(entity: Entity) -> Optional[Box]:
    """Achsparallele Textbox um dim_line_position inklusive Rand."""
    pos = entity.dim_line_position
    if pos is None:
        return None
    text_len = len(entity.text or "x") * entity.text_height * Tolerances.TEXT_CHAR_WIDTH_FACTOR
    margin = Tolerances.DIMENSION_TEXT_MARGIN
    half_w = text_len / 2 + margin
    half_h = entity.text_height / 2 + margin
    return pos.x - half_w, pos.y - half_h, pos.x + half_w, pos.y + half_h


def dimension_segments(entity: Entity) -> List[Tuple[Point3D, Point3D]]:
    """Hilfslinien, Maßlinie bzw. Radius-Führung einer Bemaßung."""
    start, end, pos = entity.start, entity.end, entity.dim_line_position
    if pos is None:
        return [(start, end)]

    if entity.dim_type in (DimensionType.LINEAR, DimensionType.ALIGNED):
        dx = end.x - start.x
        dy = end.y - start.y
        length = math.hypot(dx, dy)
        ux, uy = (dx / length, dy / length) if length > 0 else (1.0, 0.0)
        # Senkrechte zur Messrichtung
        px, py = -uy, ux
        dist_perp = (pos.x - start.x) * px + (pos.y - start.y) * py
        dim_start = start.offset(dist_perp * px, dist_perp * py)
        dim_end = end.offset(dist_perp * px, dist_perp * py)
        return [(start, dim_start), (end, dim_end), (dim_start, dim_end)]

    if entity.dim_type in (DimensionType.RADIUS, DimensionType.DIAMETER):
        return [(start, pos)]

    return []


def _dimension_distance(cursor: Point3D, entity: Entity) -> float:
    text_box = dimension_text_box(entity)
    best = math.inf
    if text_box is not None:
        if point_in_box(cursor, text_box):
            return 0.0
        best = distance(cursor, entity.dim_line_position)
    for s, e in dimension_segments(entity):
        best = min(best, distance_point_to_segment(cursor, s, e))
    return best


# =============================================================================
# Abstand Cursor -> Entity
# =============================================================================

def distance_from_entity(cursor: PointLike, entity: Entity) -> float:
    """
    Kürzester Abstand vom Cursor zur dargestellten Geometrie einer Entity.

    Flächen (Hatch, Text, MText, Table, Bemaßungstext) liefern 0, wenn der
    Cursor innerhalb liegt. Unbekannte oder leere Geometrie liefert inf.
    """
    p = as_point(cursor)
    t = entity.type

    if t in (EntityType.LINE, EntityType.RAY, EntityType.XLINE):
        start, end = segment_of(entity)
        return distance_point_to_segment(p, start, end)

    if t == EntityType.POLYLINE:
        return _polyline_distance(p, entity.vertices, entity.closed)

    if t in (EntityType.CIRCLE, EntityType.ARC):
        return abs(distance(p, entity.center) - entity.radius)

    if t == EntityType.ELLIPSE:
        return abs(distance(p, entity.center) - (entity.rx + entity.ry) / 2)

    if t == EntityType.DONUT:
        d = distance(p, entity.center)
        return min(abs(d - entity.inner_radius), abs(d - entity.outer_radius))

    if t == EntityType.POINT:
        return distance(p, entity.position)

    if t == EntityType.SPLINE:
        points = entity.defining_points
        if len(points) < 2:
            return math.inf
        vertex_dist = min(distance(p, v) for v in points)
        return min(vertex_dist, _polyline_distance(p, points, entity.closed))

    if t == EntityType.HATCH:
        if len(entity.boundary) < 3:
            return math.inf
        if point_in_polygon(p, entity.boundary):
            return 0.0
        return _polyline_distance(p, entity.boundary, True)

    if t in (EntityType.TEXT, EntityType.MTEXT, EntityType.TABLE):
        local_x, local_y = to_local(p, entity.position, entity.rotation)
        return distance_to_local_box(local_x, local_y, *local_layout_box(entity))

    if t == EntityType.DIMENSION:
        return _dimension_distance(p, entity)

    return math.inf


# Name entsprechend der Interaktions-Schnittstelle (closestPointOnEntity -> Abstand)
closest_point_distance = distance_from_entity


# =============================================================================
# Window-Auswahl
# =============================================================================

def _circle_in_box(center: Point3D, radius: float, box: Box) -> bool:
    min_x, min_y, max_x, max_y = box
    return (center.x - radius >= min_x and center.x + radius <= max_x and
            center.y - radius >= min_y and center.y + radius <= max_y)


def _window(entity: Entity, box: Box) -> bool:
    t = entity.type

    if t == EntityType.LINE:
        return point_in_box(entity.start, box) and point_in_box(entity.end, box)
    if t in (EntityType.CIRCLE, EntityType.ARC):
        return _circle_in_box(entity.center, entity.radius, box)
    if t == EntityType.DONUT:
        return _circle_in_box(entity.center, entity.outer_radius, box)
    if t == EntityType.ELLIPSE:
        c = entity.center
        min_x, min_y, max_x, max_y = box
        return (c.x - entity.rx >= min_x and c.x + entity.rx <= max_x and
                c.y - entity.ry >= min_y and c.y + entity.ry <= max_y)
    if t == EntityType.POLYLINE:
        return bool(entity.vertices) and all(point_in_box(v, box) for v in entity.vertices)
    if t == EntityType.SPLINE:
        points = entity.defining_points
        return bool(points) and all(point_in_box(v, box) for v in points)
    if t == EntityType.HATCH:
        return bool(entity.boundary) and all(point_in_box(v, box) for v in entity.boundary)
    if t == EntityType.POINT:
        return point_in_box(entity.position, box)
    if t in (EntityType.TEXT, EntityType.MTEXT, EntityType.TABLE):
        return all(point_in_box(c, box) for c in layout_corners(entity))
    if t == EntityType.DIMENSION:
        return (point_in_box(entity.start, box) and point_in_box(entity.end, box) and
                (entity.dim_line_position is None or point_in_box(entity.dim_line_position, box)))
    # RAY/XLINE sind unbegrenzt
    return False


def is_entity_in_box(entity: Entity, box_min: PointLike, box_max: PointLike) -> bool:
    """Window-Auswahl: True wenn die Entity vollständig in der Box liegt."""
    return _window(entity, normalize_box(as_point(box_min), as_point(box_max)))


# =============================================================================
# Crossing-Auswahl
# =============================================================================

def _any_segment_hits(segments: Iterable[Tuple[Point3D, Point3D]], box: Box) -> bool:
    return any(segment_intersects_box(s, e, box) for s, e in segments)


def _disc_touches_box(center: Point3D, radius: float, box: Box) -> bool:
    min_x, min_y, max_x, max_y = box
    cx = max(min_x, min(center.x, max_x))
    cy = max(min_y, min(center.y, max_y))
    dx = cx - center.x
    dy = cy - center.y
    return dx * dx + dy * dy <= radius * radius


def _arc_touches_box(entity: Entity, box: Box) -> bool:
    if point_in_box(entity.start_point, box) or point_in_box(entity.end_point, box):
        return True
    corners = box_corners(box)
    for i in range(4):
        for hit in line_circle_intersection(corners[i], corners[(i + 1) % 4], entity.center, entity.radius):
            if angle_in_arc(angle_of(hit.point, entity.center), entity.start_angle, entity.end_angle):
                return True
    return False


def _polygon_touches_box(polygon: Sequence[Point3D], box: Box) -> bool:
    if _any_segment_hits(iter_segments(polygon, True), box):
        return True
    # Box vollständig im Polygon
    return any(point_in_polygon(c, polygon) for c in box_corners(box))


def _crossing(entity: Entity, box: Box) -> bool:
    t = entity.type

    if t in (EntityType.LINE, EntityType.RAY, EntityType.XLINE):
        start, end = segment_of(entity)
        return segment_intersects_box(start, end, box)
    if t == EntityType.POLYLINE:
        return _any_segment_hits(iter_segments(entity.vertices, entity.closed), box)
    if t == EntityType.SPLINE:
        points = entity.defining_points
        if len(points) == 1:
            return point_in_box(points[0], box)
        return _any_segment_hits(iter_segments(points, entity.closed), box)
    if t == EntityType.CIRCLE:
        return _disc_touches_box(entity.center, entity.radius, box)
    if t == EntityType.DONUT:
        return _disc_touches_box(entity.center, entity.outer_radius, box)
    if t == EntityType.ARC:
        return _arc_touches_box(entity, box)
    if t == EntityType.ELLIPSE:
        c = entity.center
        min_x, min_y, max_x, max_y = box
        return not (c.x + entity.rx < min_x or c.x - entity.rx > max_x or
                    c.y + entity.ry < min_y or c.y - entity.ry > max_y)
    if t == EntityType.HATCH:
        if len(entity.boundary) < 3:
            return _any_segment_hits(iter_segments(entity.boundary, False), box)
        return _polygon_touches_box(entity.boundary, box)
    if t == EntityType.POINT:
        return point_in_box(entity.position, box)
    if t in (EntityType.TEXT, EntityType.MTEXT, EntityType.TABLE):
        return _polygon_touches_box(layout_corners(entity), box)
    if t == EntityType.DIMENSION:
        text_box = dimension_text_box(entity)
        if text_box is not None:
            min_x, min_y, max_x, max_y = box
            tx0, ty0, tx1, ty1 = text_box
            if not (tx1 < min_x or tx0 > max_x or ty1 < min_y or ty0 > max_y):
                return True
        segments = dimension_segments(entity) + [(entity.start, entity.end)]
        return _any_segment_hits(segments, box)
    return False


def does_entity_intersect_box(entity: Entity, box_min: PointLike, box_max: PointLike) -> bool:
    """Crossing-Auswahl: True wenn die Entity die Box berührt (Obermenge von Window)."""
    box = normalize_box(as_point(box_min), as_point(box_max))
    if _window(entity, box):
        return True
    return _crossing(entity, box)


# =============================================================================
# Pick / Auswahl
# =============================================================================

def pick_entity(cursor: PointLike, entities: Iterable[Entity],
                tolerance: float = Tolerances.PICK_TOLERANCE) -> Optional[Entity]:
    """Nächste sichtbare Entity innerhalb der Pick-Toleranz (bei Gleichstand die erste)."""
    p = as_point(cursor)
    best = None
    best_dist = math.inf
    for entity in entities:
        if not entity.visible:
            continue
        d = distance_from_entity(p, entity)
        if d <= tolerance and d < best_dist:
            best = entity
            best_dist = d
    if is_enabled("kernel_debug_logging"):
        logger.debug(f"[HITTEST] pick @ {p}: {best.type.name + '#' + str(best.id) if best else 'nichts'}")
    return best


def select_in_box(entities: Iterable[Entity], box_min: PointLike, box_max: PointLike,
                  crossing: bool = False) -> List[Entity]:
    """Alle sichtbaren Entities der Window- (Default) oder Crossing-Auswahl."""
    test = does_entity_intersect_box if crossing else is_entity_in_box
    return [e for e in entities if e.visible and test(e, box_min, box_max)]
