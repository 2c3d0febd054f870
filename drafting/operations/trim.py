"""
DraftKernel - Trim Operation
============================

Entfernt das angeklickte Stück einer Linie, eines Bogens oder Kreises
zwischen den benachbarten Schnittpunkten mit den Schnittkanten.

Verwendung:
    from drafting.operations import TrimOperation

    op = TrimOperation()
    result = op.execute(target, click_point, cutters)

    if result.success:
        replace(target, result.entities)

Die freien Funktionen (trim_entity & Co.) liefern direkt die Ersatz-Liste:
leer = Entity löschen, [target] = nicht trimmbar.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances, TWO_PI
from ..entities import ArcEntity, Entity, EntityType, Point3D, PointLike, arc_point, as_point, copy_entity
from ..geometry import angle_of, arc_sweep, lerp, normalize_relative, segment_parameter
from ..intersection import find_entity_intersections
from .base import KernelOperation, OperationResult


TRIMMABLE_TYPES = frozenset({EntityType.LINE, EntityType.ARC, EntityType.CIRCLE})


@dataclass
class TrimSegment:
    """
    Beschreibt das zu entfernende Stück.

    start_param/end_param sind Linien-Parameter t (Linie) bzw. Winkel in
    Radians (Bogen, Kreis). kept enthält die verbleibenden Teile.
    """
    target: Entity
    start_param: float
    end_param: float
    start_point: Point3D
    end_point: Point3D
    cut_params: List[float] = field(default_factory=list)
    kept: List[Entity] = field(default_factory=list)
    is_full_delete: bool = False  # Keine (ausreichenden) Schnittpunkte


@dataclass
class TrimResult(OperationResult):
    """Ergebnis eines Trims. entities ersetzt das Ziel (leer = löschen)."""
    segment: Optional[TrimSegment] = None
    entities: List[Entity] = field(default_factory=list)

    @classmethod
    def trimmed(cls, segment: TrimSegment) -> 'TrimResult':
        return cls.ok(f"{len(segment.kept)} Teil(e) verbleiben",
                      segment=segment, entities=list(segment.kept))

    @classmethod
    def deleted(cls, segment: TrimSegment) -> 'TrimResult':
        return cls.no_intersections("Keine Schnittpunkte, Entity wird gelöscht", segment=segment)

    @classmethod
    def not_trimmable(cls, target: Optional[Entity]) -> 'TrimResult':
        if target is None:
            return cls.no_target()
        return cls.no_target(f"{target.type.name} kann nicht getrimmt werden", entities=[target])


# =============================================================================
# Schnittparameter
# =============================================================================

def _cut_points(target: Entity, cutters: Iterable[Entity]) -> List[Point3D]:
    points = []
    for cutter in cutters:
        if cutter is target or cutter.id == target.id:
            continue
        points.extend(r.point for r in find_entity_intersections(target, cutter))
    return points


def _sorted_unique(values: Iterable[float], tolerance: float) -> List[float]:
    values = sorted(values)
    if not is_enabled("trim_dedupe_intersections"):
        return values
    unique: List[float] = []
    for v in values:
        if not unique or v - unique[-1] > tolerance:
            unique.append(v)
    return unique


def _interval_index(bounds: Sequence[float], value: float) -> int:
    """Index i des Intervalls [bounds[i], bounds[i+1]], das value enthält (geklemmt)."""
    for i in range(len(bounds) - 1):
        if value <= bounds[i + 1]:
            return i
    return len(bounds) - 2


# =============================================================================
# Zerlegung pro Typ
# =============================================================================

def _split_line(target: Entity, click: Point3D, cutters: Sequence[Entity]) -> TrimSegment:
    start, end = target.start, target.end
    margin = Tolerances.TRIM_PARAM_MARGIN

    params = [segment_parameter(p, start, end) for p in _cut_points(target, cutters)]
    cuts = _sorted_unique((t for t in params if margin < t < 1.0 - margin), Tolerances.ROOT_DEDUP)

    if not cuts:
        return TrimSegment(target, 0.0, 1.0, start, end, is_full_delete=True)

    bounds = [0.0] + cuts + [1.0]
    removed = _interval_index(bounds, segment_parameter(click, start, end))

    kept = []
    for i in range(len(bounds) - 1):
        if i == removed:
            continue
        kept.append(copy_entity(target, start=lerp(start, end, bounds[i]), end=lerp(start, end, bounds[i + 1])))

    return TrimSegment(
        target,
        bounds[removed], bounds[removed + 1],
        lerp(start, end, bounds[removed]), lerp(start, end, bounds[removed + 1]),
        cut_params=cuts,
        kept=kept,
    )


def _split_arc(target: Entity, click: Point3D, cutters: Sequence[Entity]) -> TrimSegment:
    center, radius = target.center, target.radius
    start = target.start_angle
    end = start + arc_sweep(start, target.end_angle)
    margin = Tolerances.TRIM_ANGLE_MARGIN

    angles = [normalize_relative(angle_of(p, center), start) for p in _cut_points(target, cutters)]
    cuts = _sorted_unique((a for a in angles if start + margin < a < end - margin), Tolerances.COMPARE_ANGLE)

    if not cuts:
        return TrimSegment(target, start, end, target.start_point, target.end_point, is_full_delete=True)

    click_angle = normalize_relative(angle_of(click, center), start)
    if click_angle > end:
        # Klick in der Bogen-Lücke: näheres Ende zählt
        click_angle = end if click_angle - end < start + TWO_PI - click_angle else start

    bounds = [start] + cuts + [end]
    removed = _interval_index(bounds, click_angle)
    last = len(bounds) - 2

    kept = []
    for i in range(len(bounds) - 1):
        if i == removed:
            continue
        end_angle = target.end_angle if i == last else bounds[i + 1]
        kept.append(copy_entity(target, start_angle=bounds[i], end_angle=end_angle))

    return TrimSegment(
        target,
        bounds[removed], bounds[removed + 1],
        arc_point(center, radius, bounds[removed]), arc_point(center, radius, bounds[removed + 1]),
        cut_params=cuts,
        kept=kept,
    )


def _split_circle(target: Entity, click: Point3D, cutters: Sequence[Entity]) -> TrimSegment:
    center, radius = target.center, target.radius

    angles = _sorted_unique((normalize_relative(angle_of(p, center), 0.0) for p in _cut_points(target, cutters)),
                            Tolerances.COMPARE_ANGLE)
    # 2π - ε und 0 sind derselbe Schnittpunkt
    if len(angles) > 1 and angles[0] + TWO_PI - angles[-1] <= Tolerances.COMPARE_ANGLE:
        angles.pop()

    if len(angles) < 2:
        seam = arc_point(center, radius, 0.0)
        return TrimSegment(target, 0.0, TWO_PI, seam, seam, cut_params=angles, is_full_delete=True)

    bounds = angles + [angles[0] + TWO_PI]
    removed = _interval_index(bounds, normalize_relative(angle_of(click, center), angles[0]))

    kept = []
    for i in range(len(bounds) - 1):
        if i == removed:
            continue
        kept.append(ArcEntity(
            center=center,
            radius=radius,
            start_angle=bounds[i],
            end_angle=bounds[i + 1],
            layer=target.layer,
            color=target.color,
            visible=target.visible,
        ))

    return TrimSegment(
        target,
        bounds[removed], bounds[removed + 1],
        arc_point(center, radius, bounds[removed]), arc_point(center, radius, bounds[removed + 1]),
        cut_params=angles,
        kept=kept,
    )


_SPLITTERS: Dict[EntityType, Callable[[Entity, Point3D, Sequence[Entity]], TrimSegment]] = {
    EntityType.LINE: _split_line,
    EntityType.ARC: _split_arc,
    EntityType.CIRCLE: _split_circle,
}


# =============================================================================
# Freie Funktionen
# =============================================================================

def trim_line_entity(target: Entity, click: PointLike, cutters: Iterable[Entity]) -> List[Entity]:
    """
    Trimmt eine Linie an den Schnittpunkten mit cutters.

    Returns:
        Verbleibende Linien (neue IDs). [] wenn keine Schnittpunkte im
        Inneren liegen, [target] wenn target keine Linie ist.
    """
    if target.type != EntityType.LINE:
        return [target]
    return _split_line(target, as_point(click), list(cutters)).kept


def trim_arc_entity(target: Entity, click: PointLike, cutters: Iterable[Entity]) -> List[Entity]:
    """Trimmt einen Bogen; Schnittwinkel zählen nur mit Abstand zu den Bogen-Enden."""
    if target.type != EntityType.ARC:
        return [target]
    return _split_arc(target, as_point(click), list(cutters)).kept


def trim_circle_entity(target: Entity, click: PointLike, cutters: Iterable[Entity]) -> List[Entity]:
    """Trimmt einen Kreis zu Bögen. Unter zwei Schnittpunkten wird gelöscht."""
    if target.type != EntityType.CIRCLE:
        return [target]
    return _split_circle(target, as_point(click), list(cutters)).kept


def trim_entity(target: Entity, click: PointLike, cutters: Iterable[Entity]) -> List[Entity]:
    """Trim nach Typ. Nicht trimmbare Typen werden unverändert zurückgegeben."""
    splitter = _SPLITTERS.get(target.type)
    if splitter is None:
        return [target]
    return splitter(target, as_point(click), list(cutters)).kept


# =============================================================================
# Operation
# =============================================================================

class TrimOperation(KernelOperation):
    """
    Trim-Operation mit getrennter Analyse (find_segment) und Ausführung.

    find_segment() ermöglicht eine Vorschau des entfernten Stücks, ohne
    Entities zu erzeugen, die der Aufrufer übernehmen muss.
    """

    def can_execute(self, target: Optional[Entity] = None, *args, **kwargs) -> bool:
        return target is not None and target.type in TRIMMABLE_TYPES

    def find_segment(self, target: Optional[Entity], click_point: PointLike,
                     cutters: Iterable[Entity]) -> Optional[TrimSegment]:
        """
        Analysiert den Trim ohne Seiteneffekte.

        Returns:
            TrimSegment oder None für nicht trimmbare Ziele
        """
        if not self.can_execute(target):
            return None
        segment = _SPLITTERS[target.type](target, as_point(click_point), list(cutters))
        if is_enabled("kernel_debug_logging"):
            logger.debug(f"[TRIM] {target.type.name}#{target.id}: Schnitte={len(segment.cut_params)}, "
                         f"entfernt=[{segment.start_param:.4f}, {segment.end_param:.4f}]")
        return segment

    def execute(self, target: Optional[Entity], click_point: PointLike,
                cutters: Iterable[Entity]) -> TrimResult:
        """
        Kombinierte Analyse + Ausführung.

        Returns:
            TrimResult; entities ersetzt target
        """
        try:
            segment = self.find_segment(target, click_point, cutters)
            if segment is None:
                logger.debug(f"[TRIM] Kein trimmbares Ziel: {target.type.name if target else None}")
                return self._remember(TrimResult.not_trimmable(target))

            if segment.is_full_delete:
                logger.info(f"[TRIM] {target.type.name}#{target.id} ohne Schnittpunkte gelöscht")
                return self._remember(TrimResult.deleted(segment))

            logger.info(f"[TRIM] {target.type.name}#{target.id} -> {len(segment.kept)} Teil(e)")
            return self._remember(TrimResult.trimmed(segment))

        except Exception as e:
            logger.exception(f"[TRIM] Trim fehlgeschlagen: {e}")
            return self._remember(TrimResult.error(f"Trim fehlgeschlagen: {e}"))
