"""
DraftKernel - Intersection Engine
Paarweise Schnittpunkte für Linie/Kreis/Bogen-Kombinationen.

Die Roh-Solver arbeiten auf Punkten und Radien; find_entity_intersections()
verteilt über eine symmetrische Dispatch-Tabelle auf Entity-Typen. Pro
Typ-Paar ist nur eine Richtung implementiert, die Gegenrichtung vertauscht
Argumente und t-Werte.
"""

from dataclasses import dataclass
from typing import Optional, List, Tuple, Callable, Dict, Iterable
import math

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from .entities import (
    Entity, EntityType, Point3D, LineEntity, RayEntity, as_point, PointLike,
)
from .geometry import (
    angle_in_arc, angle_of, distance, iter_segments, lerp, normalize_relative, arc_sweep,
)


@dataclass
class IntersectionResult:
    """Schnittpunkt plus Segment-Parameter auf beiden Eingaben (nur bei Linien)."""
    point: Point3D
    t1: Optional[float] = None
    t2: Optional[float] = None

    def swapped(self) -> 'IntersectionResult':
        return IntersectionResult(self.point, self.t2, self.t1)


# =============================================================================
# Roh-Solver
# =============================================================================

def line_line_intersection(p1: Point3D, p2: Point3D, p3: Point3D, p4: Point3D) -> Optional[IntersectionResult]:
    """
    Schnittpunkt der unbegrenzten Geraden p1-p2 und p3-p4 (Determinanten-Form).

    Returns:
        IntersectionResult mit t (auf p1-p2) und u (auf p3-p4), ungefiltert.
        None wenn parallel (|denom| < Tolerances.DETERMINANT).
    """
    denom = (p1.x - p2.x) * (p3.y - p4.y) - (p1.y - p2.y) * (p3.x - p4.x)
    if abs(denom) < Tolerances.DETERMINANT:
        return None

    t = ((p1.x - p3.x) * (p3.y - p4.y) - (p1.y - p3.y) * (p3.x - p4.x)) / denom
    u = -((p1.x - p2.x) * (p1.y - p3.y) - (p1.y - p2.y) * (p1.x - p3.x)) / denom

    point = Point3D(p1.x + t * (p2.x - p1.x), p1.y + t * (p2.y - p1.y), p1.z)
    return IntersectionResult(point, t, u)


def is_point_on_segment(point: Point3D, seg_start: Point3D, seg_end: Point3D,
                        tolerance: float = Tolerances.PARAMETRIC_ON_SEGMENT) -> bool:
    """Projektions-Parameter in [-tol, 1+tol]; degenerierte Segmente enthalten nichts."""
    dx = seg_end.x - seg_start.x
    dy = seg_end.y - seg_start.y
    length_sq = dx * dx + dy * dy
    if length_sq < Tolerances.MIN_SEGMENT_LENGTH_SQ:
        return False
    t = ((point.x - seg_start.x) * dx + (point.y - seg_start.y) * dy) / length_sq
    return -tolerance <= t <= 1 + tolerance


def line_circle_intersection(start: Point3D, end: Point3D,
                             center: Point3D, radius: float) -> List[IntersectionResult]:
    """
    Segment-Kreis Schnitt über die quadratische Gleichung in t.

    Nur Wurzeln mit t ∈ [0, 1]. Fast gleiche Wurzeln (Tangente) ergeben
    einen einzigen Punkt.
    """
    dx = end.x - start.x
    dy = end.y - start.y
    fx = start.x - center.x
    fy = start.y - center.y

    a = dx * dx + dy * dy
    if a < Tolerances.MIN_SEGMENT_LENGTH_SQ:
        return []
    b = 2 * (fx * dx + fy * dy)
    c = fx * fx + fy * fy - radius * radius

    discriminant = b * b - 4 * a * c
    if discriminant < 0:
        if discriminant < -Tolerances.DISCRIMINANT:
            return []
        discriminant = 0.0

    root = math.sqrt(discriminant)
    t_values = [(-b - root) / (2 * a), (-b + root) / (2 * a)]
    if abs(t_values[1] - t_values[0]) < Tolerances.ROOT_DEDUP:
        t_values = [(t_values[0] + t_values[1]) / 2]

    return [IntersectionResult(lerp(start, end, t), t, None)
            for t in t_values if 0.0 <= t <= 1.0]


def circle_circle_intersection(c1: Point3D, r1: float, c2: Point3D, r2: float) -> List[Point3D]:
    """
    Kreis-Kreis Schnitt (Dreieckskonstruktion über die Sehne).

    Returns:
        0 Punkte: zu weit entfernt, ineinander oder konzentrisch
        1 Punkt: Berührung (halbe Sehne ≈ 0)
        2 Punkte: symmetrisch zur Mittelpunktslinie
    """
    dx = c2.x - c1.x
    dy = c2.y - c1.y
    d = math.hypot(dx, dy)

    if d < Tolerances.CONCENTRIC:
        return []
    if d > r1 + r2 + Tolerances.EPSILON_MATH:
        return []
    if d < abs(r1 - r2) - Tolerances.EPSILON_MATH:
        return []

    a = (r1 * r1 - r2 * r2 + d * d) / (2 * d)
    h = math.sqrt(max(0.0, r1 * r1 - a * a))

    mx = c1.x + a * dx / d
    my = c1.y + a * dy / d

    if h <= Tolerances.TANGENT_HALF_CHORD:
        return [Point3D(mx, my, c1.z)]

    return [
        Point3D(mx + h * dy / d, my - h * dx / d, c1.z),
        Point3D(mx - h * dy / d, my + h * dx / d, c1.z),
    ]


# =============================================================================
# Entity-Adapter
# =============================================================================

def segment_of(entity: Entity) -> Tuple[Point3D, Point3D]:
    """Start/Ende einer Linie; RAY/XLINE werden als lange Segmente dargestellt."""
    if entity.type == EntityType.LINE:
        return entity.start, entity.end

    d = entity.direction
    length = math.hypot(d.x, d.y)
    if length < Tolerances.EPSILON_MATH:
        return entity.origin, entity.origin
    ux = d.x / length * Tolerances.CONSTRUCTION_LINE_LENGTH
    uy = d.y / length * Tolerances.CONSTRUCTION_LINE_LENGTH
    far = entity.origin.offset(ux, uy)
    if entity.type == EntityType.RAY:
        return entity.origin, far
    return entity.origin.offset(-ux, -uy), far


def _on_curve(entity: Entity, point: Point3D) -> bool:
    if entity.type != EntityType.ARC:
        return True
    return angle_in_arc(angle_of(point, entity.center), entity.start_angle, entity.end_angle)


def _segment_tolerance(entity: Entity) -> float:
    # Ersatzstrecken von RAY/XLINE: Schlupf in Weltkoordinaten statt in t
    if entity.type == EntityType.LINE:
        return Tolerances.PARAMETRIC_ON_SEGMENT
    return Tolerances.PARAMETRIC_ON_SEGMENT / Tolerances.CONSTRUCTION_LINE_LENGTH


def _line_line(a: Entity, b: Entity) -> List[IntersectionResult]:
    s1, e1 = segment_of(a)
    s2, e2 = segment_of(b)
    result = line_line_intersection(s1, e1, s2, e2)
    if result is None:
        return []
    if (is_point_on_segment(result.point, s1, e1, _segment_tolerance(a))
            and is_point_on_segment(result.point, s2, e2, _segment_tolerance(b))):
        return [result]
    return []


def _line_curve(line: Entity, curve: Entity) -> List[IntersectionResult]:
    start, end = segment_of(line)
    return [r for r in line_circle_intersection(start, end, curve.center, curve.radius)
            if _on_curve(curve, r.point)]


def _curve_curve(a: Entity, b: Entity) -> List[IntersectionResult]:
    points = circle_circle_intersection(a.center, a.radius, b.center, b.radius)
    return [IntersectionResult(p) for p in points if _on_curve(a, p) and _on_curve(b, p)]


# Kreise sind Bögen über [0, 2π); _on_curve filtert nur echte Bögen
_DISPATCH: Dict[Tuple[EntityType, EntityType], Callable[[Entity, Entity], List[IntersectionResult]]] = {
    (EntityType.LINE, EntityType.LINE): _line_line,
    (EntityType.LINE, EntityType.CIRCLE): _line_curve,
    (EntityType.LINE, EntityType.ARC): _line_curve,
    (EntityType.CIRCLE, EntityType.CIRCLE): _curve_curve,
    (EntityType.CIRCLE, EntityType.ARC): _curve_curve,
    (EntityType.ARC, EntityType.ARC): _curve_curve,
}

# Konstruktionslinien verhalten sich wie Linien
_KIND_ALIAS = {
    EntityType.RAY: EntityType.LINE,
    EntityType.XLINE: EntityType.LINE,
}

INTERSECTABLE_TYPES = frozenset({
    EntityType.LINE, EntityType.CIRCLE, EntityType.ARC,
    EntityType.POLYLINE, EntityType.RAY, EntityType.XLINE,
})


def _kind(entity: Entity) -> EntityType:
    return _KIND_ALIAS.get(entity.type, entity.type)


def _explode(entity: Entity) -> List[Entity]:
    """Polylinie -> temporäre Segment-Linien (gleiche ID, keine neue Vergabe)."""
    if entity.type != EntityType.POLYLINE:
        return [entity]
    return [LineEntity(id=entity.id, layer=entity.layer, start=s, end=e)
            for s, e in iter_segments(entity.vertices, entity.closed)]


def _dedupe(results: Iterable[IntersectionResult]) -> List[IntersectionResult]:
    unique: List[IntersectionResult] = []
    for r in results:
        if all(distance(r.point, u.point) > Tolerances.POINT_MERGE for u in unique):
            unique.append(r)
    return unique


def _polyline_intersections(a: Entity, b: Entity) -> List[IntersectionResult]:
    results = []
    for piece_a in _explode(a):
        for piece_b in _explode(b):
            for r in find_entity_intersections(piece_a, piece_b):
                # Segment-Parameter einer Polylinie sind nach außen bedeutungslos
                results.append(IntersectionResult(
                    r.point,
                    None if a.type == EntityType.POLYLINE else r.t1,
                    None if b.type == EntityType.POLYLINE else r.t2,
                ))
    # Nachbarsegmente teilen sich Eckpunkte
    return _dedupe(results)


def find_entity_intersections(a: Entity, b: Entity) -> List[IntersectionResult]:
    """
    Alle Schnittpunkte zweier Entities.

    Nicht unterstützte Typ-Paare liefern eine leere Liste, nie eine Exception.
    t1 bezieht sich auf a, t2 auf b.
    """
    if a.type == EntityType.POLYLINE or b.type == EntityType.POLYLINE:
        return _polyline_intersections(a, b)

    key = (_kind(a), _kind(b))
    solver = _DISPATCH.get(key)
    if solver is not None:
        results = solver(a, b)
    else:
        solver = _DISPATCH.get((key[1], key[0]))
        if solver is None:
            return []
        results = [r.swapped() for r in solver(b, a)]

    if is_enabled("kernel_debug_logging"):
        logger.debug(f"[INTERSECT] {a.type.name}#{a.id} x {b.type.name}#{b.id}: {len(results)} Punkt(e)")
    return results


# =============================================================================
# Nächste Punkte
# =============================================================================

def project_point_on_line(point: Point3D, line_start: Point3D, line_end: Point3D) -> Point3D:
    """Lotfußpunkt auf dem Segment, auf [0, 1] geklemmt. Degeneriert -> line_start."""
    dx = line_end.x - line_start.x
    dy = line_end.y - line_start.y
    length_sq = dx * dx + dy * dy
    if length_sq < Tolerances.MIN_SEGMENT_LENGTH_SQ:
        return line_start
    t = ((point.x - line_start.x) * dx + (point.y - line_start.y) * dy) / length_sq
    return lerp(line_start, line_end, max(0.0, min(1.0, t)))


def closest_point_on_circle(point: Point3D, center: Point3D, radius: float) -> Point3D:
    """Nächster Umfangspunkt entlang des Strahls Mittelpunkt -> point."""
    dx = point.x - center.x
    dy = point.y - center.y
    if math.hypot(dx, dy) < Tolerances.EPSILON_MATH:
        return Point3D(center.x + radius, center.y, center.z)
    angle = math.atan2(dy, dx)
    return Point3D(center.x + math.cos(angle) * radius,
                   center.y + math.sin(angle) * radius,
                   center.z)


def clamp_angle_to_arc(angle: float, start_angle: float, end_angle: float) -> float:
    """Winkel innerhalb des Bogens bleibt, sonst das winkelmäßig nähere Bogenende."""
    if angle_in_arc(angle, start_angle, end_angle):
        return angle
    sweep = arc_sweep(start_angle, end_angle)
    rel = normalize_relative(angle, start_angle) - start_angle
    # rel liegt in (sweep, 2π): Abstand zum Ende vs. Abstand zum Start (rückwärts)
    if rel - sweep <= (2 * math.pi) - rel:
        return start_angle + sweep
    return start_angle


def closest_point_on_entity(cursor: PointLike, entity: Entity) -> Optional[Point3D]:
    """
    Nächster Punkt auf der Geometrie einer Entity.

    Unterstützt LINE/RAY/XLINE, CIRCLE, ARC (in den Bogen geklemmt),
    POLYLINE und POINT. Andere Typen liefern None.
    """
    p = as_point(cursor)
    t = entity.type

    if t in (EntityType.LINE, EntityType.RAY, EntityType.XLINE):
        start, end = segment_of(entity)
        return project_point_on_line(p, start, end)

    if t == EntityType.CIRCLE:
        return closest_point_on_circle(p, entity.center, entity.radius)

    if t == EntityType.ARC:
        angle = clamp_angle_to_arc(angle_of(p, entity.center), entity.start_angle, entity.end_angle)
        c = entity.center
        return Point3D(c.x + math.cos(angle) * entity.radius, c.y + math.sin(angle) * entity.radius, c.z)

    if t == EntityType.POLYLINE:
        best = None
        best_dist = math.inf
        for s, e in iter_segments(entity.vertices, entity.closed):
            foot = project_point_on_line(p, s, e)
            d = distance(p, foot)
            if d < best_dist:
                best_dist = d
                best = foot
        return best

    if t == EntityType.POINT:
        return entity.position

    return None


# =============================================================================
# Ray-Casting
# =============================================================================

@dataclass
class RayHit:
    """Nächster Treffer eines Strahls."""
    point: Point3D
    distance: float
    entity: Entity


def cast_ray(start: PointLike, direction: PointLike, entities: Iterable[Entity]) -> Optional[RayHit]:
    """
    Schießt einen Strahl ab start in Richtung direction und liefert den
    nächsten Treffer (oder None).

    Treffer näher als Tolerances.RAY_MIN_HIT_DISTANCE am Startpunkt werden
    ignoriert, damit der Strahl nicht an der eigenen Startkante hängen bleibt.
    """
    origin = as_point(start)
    d = as_point(direction)
    length = math.hypot(d.x, d.y)
    if length < Tolerances.EPSILON_MATH:
        return None

    ray = RayEntity(id=-1, origin=origin, direction=Point3D(d.x / length, d.y / length))

    closest: Optional[RayHit] = None
    for entity in entities:
        if not entity.visible:
            continue
        for hit in find_entity_intersections(ray, entity):
            dist = distance(origin, hit.point)
            if dist < Tolerances.RAY_MIN_HIT_DISTANCE:
                continue
            if closest is None or dist < closest.distance:
                closest = RayHit(hit.point, dist, entity)
    return closest
