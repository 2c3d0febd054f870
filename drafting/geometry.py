"""
DraftKernel - Geometrie-Helfer
Vektor-, Winkel- und Segment-Funktionen, die von allen Engines genutzt werden.

Alle Winkelvergleiche laufen über normalize_relative(), damit Bögen über
den Winkel 0 (end_angle < start_angle) überall gleich behandelt werden.
"""

import math
from typing import List, Tuple, Sequence, Iterator

from config.tolerances import Tolerances, TWO_PI
from .entities import Point3D


# =============================================================================
# Winkel
# =============================================================================

def normalize_relative(angle: float, reference: float) -> float:
    """
    Verschiebt angle um Vielfache von 2π in das Intervall [reference, reference + 2π).

    Args:
        angle: Beliebiger Winkel (Radians)
        reference: Bezugswinkel, typischerweise der Startwinkel eines Bogens

    Returns:
        Äquivalenter Winkel >= reference
    """
    result = reference + math.fmod(angle - reference, TWO_PI)
    if result < reference:
        result += TWO_PI
    if result >= reference + TWO_PI:
        result -= TWO_PI
    return result


def arc_sweep(start_angle: float, end_angle: float) -> float:
    """Überstrichener Winkel gegen den Uhrzeigersinn, in (0, 2π].

    Ein Bogen mit end = start + 2π (Vollkreis) liefert 2π statt 0.
    """
    sweep = normalize_relative(end_angle, start_angle) - start_angle
    if sweep < Tolerances.ARC_SPAN and abs(end_angle - start_angle) > Tolerances.ARC_SPAN:
        return TWO_PI
    return sweep


def angle_in_arc(angle: float, start_angle: float, end_angle: float,
                 tolerance: float = Tolerances.ARC_SPAN) -> bool:
    """Prüft ob angle im Bogen [start_angle, end_angle] (CCW) liegt."""
    sweep = arc_sweep(start_angle, end_angle)
    rel = normalize_relative(angle, start_angle) - start_angle
    # rel knapp unter 2π bedeutet knapp vor dem Startwinkel
    return rel <= sweep + tolerance or rel >= TWO_PI - tolerance


def angle_of(point: Point3D, center: Point3D) -> float:
    """Polarwinkel von point um center."""
    return math.atan2(point.y - center.y, point.x - center.x)


def angular_distance(a: float, b: float) -> float:
    """Kleinster Winkelabstand zwischen zwei Winkeln, in [0, π]."""
    diff = normalize_relative(a, b) - b
    return min(diff, TWO_PI - diff)


# =============================================================================
# Punkte und Segmente
# =============================================================================

def distance(a: Point3D, b: Point3D) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def segment_parameter(point: Point3D, start: Point3D, end: Point3D) -> float:
    """Projektions-Parameter t von point auf die Gerade start->end (ungeklemmt)."""
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq < Tolerances.MIN_SEGMENT_LENGTH_SQ:
        return 0.0
    return ((point.x - start.x) * dx + (point.y - start.y) * dy) / length_sq


def lerp(start: Point3D, end: Point3D, t: float) -> Point3D:
    return Point3D(start.x + t * (end.x - start.x),
                   start.y + t * (end.y - start.y),
                   start.z + t * (end.z - start.z))


def distance_point_to_segment(point: Point3D, start: Point3D, end: Point3D) -> float:
    """Kürzester Abstand zu einem Segment (geklemmte Projektion)."""
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return distance(point, start)
    t = max(0.0, min(1.0, ((point.x - start.x) * dx + (point.y - start.y) * dy) / length_sq))
    return math.hypot(point.x - (start.x + t * dx), point.y - (start.y + t * dy))


def iter_segments(points: Sequence[Point3D], closed: bool = False) -> Iterator[Tuple[Point3D, Point3D]]:
    """Segmente eines Linienzugs; bei closed inklusive Schlusssegment."""
    for i in range(len(points) - 1):
        yield points[i], points[i + 1]
    if closed and len(points) > 2:
        yield points[-1], points[0]


def point_in_polygon(point: Point3D, polygon: Sequence[Point3D]) -> bool:
    """Ray-Casting Punkt-in-Polygon Test (Polygon implizit geschlossen)."""
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i].x, polygon[i].y
        xj, yj = polygon[j].x, polygon[j].y
        if (yi > point.y) != (yj > point.y):
            x_cross = (xj - xi) * (point.y - yi) / (yj - yi) + xi
            if point.x < x_cross:
                inside = not inside
        j = i
    return inside


def polygon_centroid(vertices: Sequence[Point3D]) -> Point3D:
    """Schwerpunkt der Eckpunkte (arithmetisches Mittel)."""
    n = len(vertices)
    return Point3D(sum(v.x for v in vertices) / n,
                   sum(v.y for v in vertices) / n,
                   sum(v.z for v in vertices) / n)


# =============================================================================
# Lokale Koordinaten (rotierte Boxen)
# =============================================================================

def to_local(point: Point3D, origin: Point3D, rotation: float) -> Tuple[float, float]:
    """Transformiert point in das um rotation gedrehte Koordinatensystem bei origin."""
    cos_r = math.cos(-rotation)
    sin_r = math.sin(-rotation)
    dx = point.x - origin.x
    dy = point.y - origin.y
    return dx * cos_r - dy * sin_r, dx * sin_r + dy * cos_r


def to_world(local_x: float, local_y: float, origin: Point3D, rotation: float) -> Point3D:
    cos_r = math.cos(rotation)
    sin_r = math.sin(rotation)
    return Point3D(origin.x + local_x * cos_r - local_y * sin_r,
                   origin.y + local_x * sin_r + local_y * cos_r,
                   origin.z)


def distance_to_local_box(local_x: float, local_y: float,
                          x_min: float, x_max: float, y_min: float, y_max: float) -> float:
    """0 innerhalb der Box, sonst Abstand zum nächsten Boxpunkt."""
    if x_min <= local_x <= x_max and y_min <= local_y <= y_max:
        return 0.0
    cx = max(x_min, min(x_max, local_x))
    cy = max(y_min, min(y_max, local_y))
    return math.hypot(local_x - cx, local_y - cy)


# =============================================================================
# Achsparallele Boxen
# =============================================================================

def normalize_box(box_min: Point3D, box_max: Point3D) -> Tuple[float, float, float, float]:
    """(min_x, min_y, max_x, max_y), unabhängig von der Eckreihenfolge."""
    return (min(box_min.x, box_max.x), min(box_min.y, box_max.y),
            max(box_min.x, box_max.x), max(box_min.y, box_max.y))


def point_in_box(point: Point3D, box: Tuple[float, float, float, float]) -> bool:
    min_x, min_y, max_x, max_y = box
    return min_x <= point.x <= max_x and min_y <= point.y <= max_y


def segment_intersects_box(start: Point3D, end: Point3D, box: Tuple[float, float, float, float]) -> bool:
    """Liang-Barsky Clipping: True wenn das Segment die Box berührt."""
    min_x, min_y, max_x, max_y = box
    dx = end.x - start.x
    dy = end.y - start.y
    t0, t1 = 0.0, 1.0
    for p, q in ((-dx, start.x - min_x), (dx, max_x - start.x),
                 (-dy, start.y - min_y), (dy, max_y - start.y)):
        if p == 0:
            if q < 0:
                return False
            continue
        r = q / p
        if p < 0:
            if r > t1:
                return False
            t0 = max(t0, r)
        else:
            if r < t0:
                return False
            t1 = min(t1, r)
    return t0 <= t1


def box_corners(box: Tuple[float, float, float, float]) -> List[Point3D]:
    min_x, min_y, max_x, max_y = box
    return [Point3D(min_x, min_y), Point3D(max_x, min_y),
            Point3D(max_x, max_y), Point3D(min_x, max_y)]
