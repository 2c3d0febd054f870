"""
DraftKernel - Extend Operation
==============================

Verlängert Linien und Bögen bis zur nächsten Begrenzungskante.

Verwendung:
    from drafting.operations import ExtendOperation

    op = ExtendOperation()
    result = op.execute(target_line, click_point, boundaries)

    if result.status == ResultStatus.SUCCESS:
        replace(target_line, result.entity)

Verlängert wird immer das Ende, das näher am Klick liegt. Ohne passende
Begrenzung bleibt die Entity unverändert (WARNING, keine Exception).
"""

import math
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances, TWO_PI
from ..entities import CircleEntity, Entity, EntityType, LineEntity, Point3D, PointLike, as_point
from ..geometry import angle_in_arc, angle_of, distance
from ..intersection import find_entity_intersections
from .base import KernelOperation, OperationResult


EXTENDABLE_TYPES = frozenset({EntityType.LINE, EntityType.ARC})


@dataclass
class ExtendData:
    """Beschreibt eine geplante Verlängerung."""
    target: Entity
    extend_start: bool  # True = Start verlängern, False = Ende
    new_point: Point3D
    distance: float  # Länge (Linie) bzw. Winkel in Radians (Bogen)
    extended: Entity


@dataclass
class ExtendResult(OperationResult):
    """Ergebnis eines Extends. entity ersetzt das Ziel."""
    entity: Optional[Entity] = None

    @classmethod
    def extended(cls, data: ExtendData) -> 'ExtendResult':
        end = "Start" if data.extend_start else "Ende"
        return cls.ok(f"{end} verlängert", data=data, entity=data.extended)

    @classmethod
    def unchanged(cls, target: Entity) -> 'ExtendResult':
        return cls.warning("Keine Verlängerung möglich", entity=target)

    @classmethod
    def not_extendable(cls, target: Optional[Entity]) -> 'ExtendResult':
        if target is None:
            return cls.no_target()
        return cls.no_target(f"{target.type.name} kann nicht verlängert werden", entity=target)


def _boundary_points(probe: Entity, target: Entity, boundaries: Iterable[Entity]) -> List[Point3D]:
    points = []
    for boundary in boundaries:
        if boundary is target or boundary.id == target.id:
            continue
        points.extend(r.point for r in find_entity_intersections(probe, boundary))
    return points


# =============================================================================
# Planung pro Typ
# =============================================================================

def _plan_line(target: Entity, click: Point3D, boundaries: List[Entity]) -> Optional[ExtendData]:
    start, end = target.start, target.end
    extend_start = distance(click, start) < distance(click, end)
    anchor, fixed = (start, end) if extend_start else (end, start)

    dx = anchor.x - fixed.x
    dy = anchor.y - fixed.y
    length = math.hypot(dx, dy)
    if length < Tolerances.MIN_SEGMENT_LENGTH:
        return None
    ux, uy = dx / length, dy / length

    # Prüflinie: festes Ende bis weit hinter das verlängerte Ende
    probe = LineEntity(id=target.id, start=fixed,
                       end=anchor.offset(ux * Tolerances.EXTEND_LENGTH, uy * Tolerances.EXTEND_LENGTH))

    best_point = None
    best_dist = math.inf
    for p in _boundary_points(probe, target, boundaries):
        # Nur Punkte vor dem verlängerten Ende
        if (p.x - anchor.x) * ux + (p.y - anchor.y) * uy <= Tolerances.EPSILON_MATH:
            continue
        d = distance(anchor, p)
        if d < best_dist:
            best_dist = d
            best_point = p

    if best_point is None:
        return None

    extended = replace(target, start=best_point) if extend_start else replace(target, end=best_point)
    return ExtendData(target, extend_start, best_point, best_dist, extended)


def _plan_arc(target: Entity, click: Point3D, boundaries: List[Entity]) -> Optional[ExtendData]:
    extend_start = distance(click, target.start_point) < distance(click, target.end_point)
    start, end = target.start_angle, target.end_angle

    probe = CircleEntity(id=target.id, center=target.center, radius=target.radius)

    best_point = None
    best_angle = None
    best_dist = math.inf
    for p in _boundary_points(probe, target, boundaries):
        angle = angle_of(p, target.center)
        if angle_in_arc(angle, start, end):
            continue
        # Start läuft rückwärts (CW), Ende vorwärts (CCW)
        if extend_start:
            d = (start - angle) % TWO_PI
        else:
            d = (angle - end) % TWO_PI
        if d <= Tolerances.EXTEND_MIN_ANGLE:
            continue
        if d < best_dist:
            best_dist = d
            best_angle = angle
            best_point = p

    if best_point is None:
        return None

    if extend_start:
        extended = replace(target, start_angle=best_angle)
    else:
        extended = replace(target, end_angle=best_angle)
    return ExtendData(target, extend_start, best_point, best_dist, extended)


_PLANNERS: Dict[EntityType, Callable[[Entity, Point3D, List[Entity]], Optional[ExtendData]]] = {
    EntityType.LINE: _plan_line,
    EntityType.ARC: _plan_arc,
}


# =============================================================================
# Freie Funktionen
# =============================================================================

def extend_line_entity(target: Entity, click: PointLike, boundaries: Iterable[Entity]) -> Entity:
    """
    Verlängert das klick-nahe Ende einer Linie bis zur nächsten Begrenzung.

    Returns:
        Kopie mit verschobenem Endpunkt (gleiche ID) oder target unverändert
    """
    if target.type != EntityType.LINE:
        return target
    plan = _plan_line(target, as_point(click), list(boundaries))
    return plan.extended if plan else target


def extend_arc_entity(target: Entity, click: PointLike, boundaries: Iterable[Entity]) -> Entity:
    """Verlängert einen Bogen entlang seines Kreises bis zur nächsten Begrenzung."""
    if target.type != EntityType.ARC:
        return target
    plan = _plan_arc(target, as_point(click), list(boundaries))
    return plan.extended if plan else target


def extend_entity(target: Entity, click: PointLike, boundaries: Iterable[Entity]) -> Entity:
    planner = _PLANNERS.get(target.type)
    if planner is None:
        return target
    plan = planner(target, as_point(click), list(boundaries))
    return plan.extended if plan else target


# =============================================================================
# Operation
# =============================================================================

class ExtendOperation(KernelOperation):
    """
    Extend-Operation mit getrennter Analyse (find_extension) und Ausführung.
    """

    def can_execute(self, target: Optional[Entity] = None, *args, **kwargs) -> bool:
        return target is not None and target.type in EXTENDABLE_TYPES

    def find_extension(self, target: Optional[Entity], click_point: PointLike,
                       boundaries: Iterable[Entity]) -> Optional[ExtendData]:
        """
        Analysiert welche Verlängerung möglich ist.

        Returns:
            ExtendData oder None (nicht verlängerbar / keine Begrenzung)
        """
        if not self.can_execute(target):
            return None
        plan = _PLANNERS[target.type](target, as_point(click_point), list(boundaries))
        if plan is not None and is_enabled("kernel_debug_logging"):
            end = "Start" if plan.extend_start else "Ende"
            logger.debug(f"[EXTEND] {target.type.name}#{target.id} {end} -> "
                         f"({plan.new_point.x:.2f}, {plan.new_point.y:.2f})")
        return plan

    def execute(self, target: Optional[Entity], click_point: PointLike,
                boundaries: Iterable[Entity]) -> ExtendResult:
        """
        Kombinierte Analyse + Ausführung.

        Returns:
            ExtendResult; entity ersetzt target
        """
        try:
            if not self.can_execute(target):
                logger.debug(f"[EXTEND] Kein verlängerbares Ziel: {target.type.name if target else None}")
                return self._remember(ExtendResult.not_extendable(target))

            plan = self.find_extension(target, click_point, boundaries)
            if plan is None:
                logger.info(f"[EXTEND] {target.type.name}#{target.id}: keine Begrenzung gefunden")
                return self._remember(ExtendResult.unchanged(target))

            logger.info(f"[EXTEND] {target.type.name}#{target.id} verlängert um {plan.distance:.4f}")
            return self._remember(ExtendResult.extended(plan))

        except Exception as e:
            logger.exception(f"[EXTEND] Extend fehlgeschlagen: {e}")
            return self._remember(ExtendResult.error(f"Extend fehlgeschlagen: {e}"))
