"""
DraftKernel - Feature-Punkte
Snap-Punkte, Grip-Punkte (Bearbeitungs-Griffe) und Ausrichtungs-Hilfslinien.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Sequence, Iterable

from config.tolerances import Tolerances
from .entities import Entity, EntityType, DimensionType, Point3D, arc_point, as_point, PointLike
from .geometry import arc_sweep, distance, iter_segments, to_world
from .hittest import layout_corners, text_width
from .snapper import SnapMode


@dataclass
class SnapPoint:
    kind: SnapMode
    point: Point3D


class GripKind(Enum):
    START = auto()
    END = auto()
    MID = auto()
    CENTER = auto()
    VERTEX = auto()
    QUADRANT = auto()
    ORIGIN = auto()


@dataclass
class GripPoint:
    point: Point3D
    kind: GripKind
    index: Optional[int] = None  # Vertex-Index bei Polylinien/Splines


def _quadrants(center: Point3D, radius: float) -> List[Point3D]:
    return [center.offset(radius, 0), center.offset(-radius, 0),
            center.offset(0, radius), center.offset(0, -radius)]


def get_snap_points(entity: Entity) -> List[SnapPoint]:
    """Statische Fangpunkte einer Entity (unabhängig vom Cursor)."""
    snaps: List[SnapPoint] = []
    t = entity.type

    if t == EntityType.LINE:
        snaps.append(SnapPoint(SnapMode.ENDPOINT, entity.start))
        snaps.append(SnapPoint(SnapMode.ENDPOINT, entity.end))
        snaps.append(SnapPoint(SnapMode.MIDPOINT, entity.start.midpoint(entity.end)))
    elif t == EntityType.POLYLINE:
        for v in entity.vertices:
            snaps.append(SnapPoint(SnapMode.ENDPOINT, v))
        for s, e in iter_segments(entity.vertices, entity.closed):
            snaps.append(SnapPoint(SnapMode.MIDPOINT, s.midpoint(e)))
    elif t in (EntityType.CIRCLE, EntityType.ARC, EntityType.ELLIPSE, EntityType.DONUT):
        snaps.append(SnapPoint(SnapMode.CENTER, entity.center))
    elif t == EntityType.POINT:
        # Punkte verhalten sich wie Endpunkte
        snaps.append(SnapPoint(SnapMode.ENDPOINT, entity.position))
    elif t == EntityType.SPLINE:
        points = entity.defining_points
        for p in points:
            snaps.append(SnapPoint(SnapMode.ENDPOINT, p))
        for s, e in iter_segments(points, entity.closed):
            snaps.append(SnapPoint(SnapMode.MIDPOINT, s.midpoint(e)))

    return snaps


def get_grip_points(entity: Entity) -> List[GripPoint]:
    """Griffe für die direkte Bearbeitung (Endpunkte, Mitte, Zentrum, Ecken, Quadranten)."""
    grips: List[GripPoint] = []
    t = entity.type

    if t == EntityType.LINE:
        grips.append(GripPoint(entity.start, GripKind.START))
        grips.append(GripPoint(entity.end, GripKind.END))
        grips.append(GripPoint(entity.start.midpoint(entity.end), GripKind.MID))

    elif t == EntityType.CIRCLE:
        grips.append(GripPoint(entity.center, GripKind.CENTER))
        grips.extend(GripPoint(q, GripKind.QUADRANT) for q in _quadrants(entity.center, entity.radius))

    elif t == EntityType.ARC:
        grips.append(GripPoint(entity.center, GripKind.CENTER))
        grips.append(GripPoint(entity.start_point, GripKind.START))
        grips.append(GripPoint(entity.end_point, GripKind.END))
        mid_angle = entity.start_angle + arc_sweep(entity.start_angle, entity.end_angle) / 2
        grips.append(GripPoint(arc_point(entity.center, entity.radius, mid_angle), GripKind.MID))

    elif t == EntityType.POLYLINE:
        grips.extend(GripPoint(v, GripKind.VERTEX, i) for i, v in enumerate(entity.vertices))

    elif t == EntityType.POINT:
        grips.append(GripPoint(entity.position, GripKind.CENTER))

    elif t == EntityType.ELLIPSE:
        grips.append(GripPoint(entity.center, GripKind.CENTER))
        grips.append(GripPoint(entity.center.offset(entity.rx, 0), GripKind.QUADRANT))
        grips.append(GripPoint(entity.center.offset(0, entity.ry), GripKind.QUADRANT))

    elif t == EntityType.SPLINE:
        grips.extend(GripPoint(v, GripKind.VERTEX, i) for i, v in enumerate(entity.defining_points))

    elif t == EntityType.HATCH:
        grips.extend(GripPoint(v, GripKind.VERTEX, i) for i, v in enumerate(entity.boundary))

    elif t == EntityType.DONUT:
        grips.append(GripPoint(entity.center, GripKind.CENTER))
        grips.extend(GripPoint(q, GripKind.QUADRANT) for q in _quadrants(entity.center, entity.outer_radius))

    elif t == EntityType.TEXT:
        grips.append(GripPoint(entity.position, GripKind.ORIGIN))
        grips.append(GripPoint(to_world(text_width(entity), 0.0, entity.position, entity.rotation), GripKind.END))

    elif t in (EntityType.MTEXT, EntityType.TABLE):
        # Ecken: oben links (Origin), oben rechts, unten links, unten rechts
        bottom_left, bottom_right, top_right, top_left = layout_corners(entity)
        grips.append(GripPoint(entity.position, GripKind.ORIGIN))
        grips.append(GripPoint(top_right, GripKind.VERTEX, 0))
        grips.append(GripPoint(bottom_left, GripKind.VERTEX, 1))
        grips.append(GripPoint(bottom_right, GripKind.VERTEX, 2))

    elif t == EntityType.DIMENSION:
        grips.append(GripPoint(entity.start, GripKind.START))
        grips.append(GripPoint(entity.end, GripKind.END))
        if entity.dim_line_position is not None:
            grips.append(GripPoint(entity.dim_line_position, GripKind.VERTEX, 0))
        grips.append(GripPoint(entity.start.midpoint(entity.end), GripKind.MID))
        if entity.dim_type == DimensionType.ANGULAR and entity.center is not None:
            grips.append(GripPoint(entity.center, GripKind.CENTER))

    return grips


def get_closest_snap_point(cursor: PointLike, entities: Iterable[Entity],
                           threshold: float = Tolerances.SNAP_POINT_THRESHOLD) -> Optional[SnapPoint]:
    """Nächster statischer Fangpunkt aller sichtbaren Entities, strikt innerhalb threshold."""
    p = as_point(cursor)
    best = None
    best_dist = threshold
    for entity in entities:
        if not entity.visible:
            continue
        for snap in get_snap_points(entity):
            d = distance(p, snap.point)
            if d < best_dist:
                best_dist = d
                best = snap
    return best


# =============================================================================
# Ausrichtungs-Hilfslinien (Object Tracking)
# =============================================================================

@dataclass
class AlignmentGuide:
    """Vertikale (axis='x') oder horizontale (axis='y') Hilfslinie durch point."""
    axis: str
    value: float
    point: Point3D


@dataclass
class AlignmentGuides:
    x: Optional[AlignmentGuide] = None
    y: Optional[AlignmentGuide] = None


def find_alignment_points(cursor: PointLike, entities: Iterable[Entity],
                          extra_points: Sequence[PointLike] = (),
                          threshold: float = Tolerances.ALIGNMENT_THRESHOLD) -> AlignmentGuides:
    """
    Sucht Fangpunkte, deren x bzw. y mit dem Cursor übereinstimmt.

    extra_points (z.B. bereits gesetzte Punkte des laufenden Befehls) werden
    zuerst geprüft und gewinnen damit bei gleichem Abstand.
    """
    p = as_point(cursor)
    guides = AlignmentGuides()
    min_dx = threshold
    min_dy = threshold

    def check(pt: Point3D):
        nonlocal min_dx, min_dy
        dx = abs(p.x - pt.x)
        if dx < min_dx:
            min_dx = dx
            guides.x = AlignmentGuide("x", pt.x, pt)
        dy = abs(p.y - pt.y)
        if dy < min_dy:
            min_dy = dy
            guides.y = AlignmentGuide("y", pt.y, pt)

    for extra in extra_points:
        check(as_point(extra))
    for entity in entities:
        if not entity.visible:
            continue
        for snap in get_snap_points(entity):
            check(snap.point)

    return guides

