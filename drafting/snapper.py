"""
DraftKernel - Snap Resolver (OSNAP)
Findet den nächsten Fangpunkt aller sichtbaren Entities innerhalb der Apertur.

Snapshot-Vertrag: Der Resolver arbeitet auf dem zuletzt per update_entities()
übergebenen Snapshot. Nur dort werden Spatial-Index und Schnittpunkt-Cache
neu aufgebaut; ändert der Aufrufer Entities ohne update_entities(), sind die
Ergebnisse undefiniert.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from .entities import Entity, EntityType, Point3D, arc_point, as_point, PointLike
from .geometry import angle_in_arc, angle_of, distance, iter_segments, polygon_centroid
from .intersection import (
    INTERSECTABLE_TYPES, clamp_angle_to_arc, closest_point_on_circle,
    find_entity_intersections, project_point_on_line,
)
from .quadtree import Bounds, QuadTree, entity_bounds


class SnapMode(Enum):
    """Fangmodi"""
    ENDPOINT = auto()
    MIDPOINT = auto()
    CENTER = auto()
    NODE = auto()
    QUADRANT = auto()
    INTERSECTION = auto()
    PERPENDICULAR = auto()
    TANGENT = auto()
    NEAREST = auto()


# Marker-Farben je Modus (für die Darstellungsschicht)
SNAP_COLORS: Dict[SnapMode, str] = {
    SnapMode.ENDPOINT: "#00FF00",
    SnapMode.MIDPOINT: "#00FFFF",
    SnapMode.CENTER: "#FF00FF",
    SnapMode.NODE: "#FFFF00",
    SnapMode.QUADRANT: "#FF8000",
    SnapMode.INTERSECTION: "#FF0000",
    SnapMode.PERPENDICULAR: "#8000FF",
    SnapMode.TANGENT: "#0080FF",
    SnapMode.NEAREST: "#FFFFFF",
}


@dataclass
class SnapSettings:
    """
    Fang-Einstellungen.

    modes ist geordnet: die Reihenfolge bestimmt bei gleichem Abstand den
    Gewinner (siehe SnapResolver.find_snap_point).
    """
    enabled: bool = True
    modes: Tuple[SnapMode, ...] = (SnapMode.ENDPOINT, SnapMode.MIDPOINT,
                                   SnapMode.CENTER, SnapMode.INTERSECTION)
    aperture: float = Tolerances.SNAP_APERTURE
    magnet_enabled: bool = True
    magnet_strength: float = Tolerances.SNAP_MAGNET_STRENGTH

    def __post_init__(self):
        if self.aperture < 0:
            raise ValueError(f"aperture muss >= 0 sein, ist {self.aperture}")
        # Reihenfolge behalten, Duplikate entfernen
        self.modes = tuple(dict.fromkeys(self.modes))
        self.magnet_strength = max(0.0, min(1.0, float(self.magnet_strength)))


DEFAULT_SNAP_SETTINGS = SnapSettings()


@dataclass
class SnapResult:
    snapped: bool
    point: Point3D
    mode: Optional[SnapMode] = None
    entity: Optional[Entity] = None
    distance: float = 0.0  # Abstand Cursor -> ungeblendeter Fangpunkt


def _closest_of(points: Iterable[Point3D], cursor: Point3D) -> Optional[Point3D]:
    best = None
    best_dist = math.inf
    for p in points:
        d = distance(cursor, p)
        if d < best_dist:
            best_dist = d
            best = p
    return best


def _nearest_foot(vertices: Sequence[Point3D], closed: bool, cursor: Point3D) -> Optional[Point3D]:
    return _closest_of((project_point_on_line(cursor, s, e) for s, e in iter_segments(vertices, closed)), cursor)


# =============================================================================
# Regeln je Modus: ein bester Kandidat pro (Entity, Modus)
# =============================================================================

def _find_endpoint(entity: Entity, cursor: Point3D) -> Optional[Point3D]:
    t = entity.type
    if t == EntityType.LINE:
        return _closest_of([entity.start, entity.end], cursor)
    if t == EntityType.POLYLINE and entity.vertices:
        return _closest_of([entity.vertices[0], entity.vertices[-1]], cursor)
    if t == EntityType.ARC:
        return _closest_of([entity.start_point, entity.end_point], cursor)
    return None


def _find_midpoint(entity: Entity, cursor: Point3D) -> Optional[Point3D]:
    if entity.type == EntityType.LINE:
        return entity.start.midpoint(entity.end)
    if entity.type == EntityType.POLYLINE and len(entity.vertices) >= 2:
        return _closest_of((s.midpoint(e) for s, e in iter_segments(entity.vertices, entity.closed)), cursor)
    return None


def _find_center(entity: Entity, cursor: Point3D) -> Optional[Point3D]:
    if entity.type in (EntityType.CIRCLE, EntityType.ARC, EntityType.ELLIPSE):
        return entity.center
    if entity.type == EntityType.POLYLINE and entity.closed and entity.vertices:
        return polygon_centroid(entity.vertices)
    return None


def _find_perpendicular(entity: Entity, cursor: Point3D) -> Optional[Point3D]:
    if entity.type == EntityType.LINE:
        return project_point_on_line(cursor, entity.start, entity.end)
    if entity.type == EntityType.POLYLINE:
        return _nearest_foot(entity.vertices, entity.closed, cursor)
    return None


def _find_nearest(entity: Entity, cursor: Point3D) -> Optional[Point3D]:
    t = entity.type
    if t == EntityType.LINE:
        return project_point_on_line(cursor, entity.start, entity.end)
    if t == EntityType.POLYLINE:
        return _nearest_foot(entity.vertices, entity.closed, cursor)
    if t == EntityType.CIRCLE:
        return closest_point_on_circle(cursor, entity.center, entity.radius)
    if t == EntityType.ARC:
        angle = clamp_angle_to_arc(angle_of(cursor, entity.center), entity.start_angle, entity.end_angle)
        return arc_point(entity.center, entity.radius, angle)
    return None


def _find_tangent(entity: Entity, cursor: Point3D) -> Optional[Point3D]:
    if entity.type in (EntityType.CIRCLE, EntityType.ARC):
        radius = entity.radius
    elif entity.type == EntityType.ELLIPSE:
        # Näherung als Kreis mit mittlerem Radius
        radius = (entity.rx + entity.ry) / 2
    else:
        return None
    # Cursor im Kreis: keine Tangente
    if distance(cursor, entity.center) < radius:
        return None
    return closest_point_on_circle(cursor, entity.center, radius)


def _find_quadrant(entity: Entity, cursor: Point3D) -> Optional[Point3D]:
    if entity.type not in (EntityType.CIRCLE, EntityType.ARC):
        return None
    c, r = entity.center, entity.radius
    quadrants = [(c.offset(r, 0), 0.0), (c.offset(0, r), math.pi / 2),
                 (c.offset(-r, 0), math.pi), (c.offset(0, -r), 3 * math.pi / 2)]
    if entity.type == EntityType.ARC:
        quadrants = [(p, a) for p, a in quadrants if angle_in_arc(a, entity.start_angle, entity.end_angle)]
    return _closest_of((p for p, _ in quadrants), cursor)


def _find_node(entity: Entity, cursor: Point3D) -> Optional[Point3D]:
    if entity.type == EntityType.POINT:
        return entity.position
    if entity.type == EntityType.POLYLINE:
        return _closest_of(entity.vertices, cursor)
    return None


# INTERSECTION braucht den Snapshot und wird im Resolver behandelt
_FINDERS = {
    SnapMode.ENDPOINT: _find_endpoint,
    SnapMode.MIDPOINT: _find_midpoint,
    SnapMode.CENTER: _find_center,
    SnapMode.PERPENDICULAR: _find_perpendicular,
    SnapMode.NEAREST: _find_nearest,
    SnapMode.TANGENT: _find_tangent,
    SnapMode.QUADRANT: _find_quadrant,
    SnapMode.NODE: _find_node,
}


class SnapResolver:
    """
    Objektfang über einem Entity-Snapshot.

    Pro (Entity, Modus) wird genau ein bester Kandidat bestimmt; global
    gewinnt der nächste innerhalb aperture / zoom. Bei exakt gleichem
    Abstand gewinnt die Auswertungsreihenfolge (Snapshot-Reihenfolge, dann
    Modus-Reihenfolge). Dieser Tie-Break ist akzeptiert, nicht geometrisch
    begründet.
    """

    MAX_INTERSECTION_ENTITIES = 96

    def __init__(self, settings: Optional[SnapSettings] = None, entities: Iterable[Entity] = ()):
        self.settings = settings or SnapSettings()
        self._entities: Tuple[Entity, ...] = ()
        self._index: Optional[QuadTree] = None
        self._bounds: List[Optional[Bounds]] = []
        self._intersection_cache: Dict[Tuple[int, int], List[Point3D]] = {}
        self.update_entities(entities)

    # --- Snapshot / Settings ---

    @property
    def entities(self) -> Tuple[Entity, ...]:
        return self._entities

    def update_entities(self, entities: Iterable[Entity]):
        """Übernimmt einen neuen Snapshot: Index neu, Schnittpunkt-Cache leer."""
        self._entities = tuple(entities)
        self._bounds = [entity_bounds(e) for e in self._entities]
        self._index = QuadTree.from_entities(self._entities)
        self.invalidate_intersection_cache()

    def update_settings(self, **changes):
        """Partielles Update, z.B. update_settings(aperture=5, magnet_enabled=False)."""
        self.settings = replace(self.settings, **changes)

    def invalidate_intersection_cache(self):
        self._intersection_cache.clear()

    # --- Abfrage ---

    def find_snap_point(self, cursor: PointLike, zoom: float = 1.0) -> SnapResult:
        """
        Fangpunkt nahe cursor.

        Args:
            cursor: Cursor in Weltkoordinaten
            zoom: Viewport-Zoom; die Apertur wird durch zoom geteilt, damit der
                  Fangradius auf dem Bildschirm konstant bleibt (<= 0 -> 1)

        Returns:
            SnapResult; snapped=False gibt den Cursor unverändert zurück.
        """
        cursor = as_point(cursor)
        settings = self.settings
        if not settings.enabled or not settings.modes:
            return SnapResult(False, cursor)

        if zoom <= 0:
            zoom = 1.0
        aperture = settings.aperture / zoom

        candidates = self._candidate_entities(cursor, aperture)
        nearby = None
        if SnapMode.INTERSECTION in settings.modes and is_enabled("snap_intersection"):
            nearby = self._intersection_neighbours(candidates)

        best_point: Optional[Point3D] = None
        best_dist = aperture
        best_mode: Optional[SnapMode] = None
        best_entity: Optional[Entity] = None

        for entity in candidates:
            for mode in settings.modes:
                if mode == SnapMode.INTERSECTION:
                    point = self._find_intersection(entity, cursor, nearby) if nearby else None
                else:
                    finder = _FINDERS.get(mode)
                    point = finder(entity, cursor) if finder else None
                if point is None:
                    continue
                d = distance(cursor, point)
                if d < best_dist:
                    best_dist = d
                    best_point = point
                    best_mode = mode
                    best_entity = entity

        if best_point is None:
            return SnapResult(False, cursor)

        if is_enabled("kernel_debug_logging"):
            logger.debug(f"[SNAP] {best_mode.name} auf {best_entity.type.name}#{best_entity.id} "
                         f"d={best_dist:.4f} (Apertur {aperture:.4f})")

        point = best_point
        if settings.magnet_enabled:
            point = self._apply_magnet(cursor, best_point)
        return SnapResult(True, point, best_mode, best_entity, best_dist)

    def _candidate_entities(self, cursor: Point3D, aperture: float) -> List[Entity]:
        """Sichtbare Entities in Snapshot-Reihenfolge, optional per QuadTree vorgefiltert.

        Der Vorfilter ist exakt: jeder Fangpunkt einer Entity liegt in deren Bounds,
        also kann eine Entity außerhalb des Apertur-Quadrats nichts beitragen.
        """
        if is_enabled("snap_spatial_index") and self._index is not None:
            window = Bounds.around(cursor, aperture)
            hits = sorted(self._index.query(window), key=lambda item: item[0])
            return [entity for _, entity in hits if entity.visible]
        return [e for e in self._entities if e.visible]

    def _intersection_neighbours(self, candidates: List[Entity]) -> List[Entity]:
        nearby = [e for e in candidates if e.type in INTERSECTABLE_TYPES]
        if len(nearby) > self.MAX_INTERSECTION_ENTITIES:
            logger.debug(f"[SNAP] {len(nearby)} Entities nahe Cursor > {self.MAX_INTERSECTION_ENTITIES}, "
                         f"INTERSECTION übersprungen")
            return []
        return nearby

    def _pair_intersections(self, a: Entity, b: Entity) -> List[Point3D]:
        cache_key = (min(a.id, b.id), max(a.id, b.id))
        cached = self._intersection_cache.get(cache_key)
        if cached is None:
            cached = [r.point for r in find_entity_intersections(a, b)]
            self._intersection_cache[cache_key] = cached
        return cached

    def _find_intersection(self, entity: Entity, cursor: Point3D, nearby: List[Entity]) -> Optional[Point3D]:
        if entity.type not in INTERSECTABLE_TYPES:
            return None
        points = []
        for other in nearby:
            if other.id == entity.id:
                continue
            points.extend(self._pair_intersections(entity, other))
        return _closest_of(points, cursor)

    def _apply_magnet(self, cursor: Point3D, snap_point: Point3D) -> Point3D:
        strength = self.settings.magnet_strength
        return Point3D(cursor.x + (snap_point.x - cursor.x) * strength,
                       cursor.y + (snap_point.y - cursor.y) * strength,
                       cursor.z + (snap_point.z - cursor.z) * strength)
