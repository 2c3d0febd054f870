"""
DraftKernel - Entity-Modell
Punkte und Zeichnungs-Entities (Linie, Kreis, Bogen, Polylinie, Text, ...)

Reine Daten ohne Verhalten. Der Kern liest Entities als unveränderlichen
Snapshot; Trim/Extend erzeugen neue Entities mit frischer ID über
copy_entity() statt Eingaben zu verändern.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Optional, List, Tuple, Union, Sequence
from enum import Enum, auto
import itertools
import math


class EntityType(Enum):
    """Entity-Typen"""
    LINE = auto()
    CIRCLE = auto()
    ARC = auto()
    ELLIPSE = auto()
    POLYLINE = auto()
    SPLINE = auto()
    POINT = auto()
    DONUT = auto()
    TEXT = auto()
    MTEXT = auto()
    TABLE = auto()
    DIMENSION = auto()
    HATCH = auto()
    RAY = auto()
    XLINE = auto()


class DimensionType(Enum):
    """Bemaßungs-Typen"""
    LINEAR = auto()
    ALIGNED = auto()
    ANGULAR = auto()
    RADIUS = auto()
    DIAMETER = auto()


_id_counter = itertools.count(1)


def next_entity_id() -> int:
    """Liefert eine neue, innerhalb des Prozesses eindeutige Entity-ID."""
    return next(_id_counter)


@dataclass(frozen=True)
class Point3D:
    """3D-Koordinate. Der Kern rechnet nur in XY, z wird durchgereicht."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def distance_to(self, other: 'Point3D') -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def midpoint(self, other: 'Point3D') -> 'Point3D':
        return Point3D((self.x + other.x) / 2, (self.y + other.y) / 2, (self.z + other.z) / 2)

    def offset(self, dx: float, dy: float) -> 'Point3D':
        return Point3D(self.x + dx, self.y + dy, self.z)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def __repr__(self):
        return f"P({self.x:.3f}, {self.y:.3f})"


PointLike = Union[Point3D, Sequence[float]]


def as_point(value: PointLike) -> Point3D:
    """Akzeptiert Point3D oder (x, y[, z])-Tupel."""
    if isinstance(value, Point3D):
        return value
    coords = tuple(value)
    if len(coords) == 2:
        return Point3D(float(coords[0]), float(coords[1]))
    return Point3D(float(coords[0]), float(coords[1]), float(coords[2]))


def arc_point(center: Point3D, radius: float, angle: float) -> Point3D:
    """Punkt auf dem Kreis um center bei Winkel angle (Radians)."""
    return Point3D(center.x + math.cos(angle) * radius,
                   center.y + math.sin(angle) * radius,
                   center.z)


# =============================================================================
# Entities
# =============================================================================

@dataclass
class Entity:
    """Basis aller Entities: Identität, Layer, Farbe, Sichtbarkeit."""
    id: int = field(default_factory=next_entity_id)
    layer: str = "0"
    color: str = "#FFFFFF"
    visible: bool = True

    type = None  # von Unterklassen gesetzt


@dataclass
class LineEntity(Entity):
    start: Point3D = field(default_factory=Point3D)
    end: Point3D = field(default_factory=Point3D)

    type = EntityType.LINE

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)


@dataclass
class CircleEntity(Entity):
    center: Point3D = field(default_factory=Point3D)
    radius: float = 0.0

    type = EntityType.CIRCLE


@dataclass
class ArcEntity(Entity):
    """Bogen gegen den Uhrzeigersinn von start_angle nach end_angle (Radians).

    end_angle < start_angle ist erlaubt und bedeutet, dass der Bogen
    über den Winkel 0 läuft.
    """
    center: Point3D = field(default_factory=Point3D)
    radius: float = 0.0
    start_angle: float = 0.0
    end_angle: float = 0.0

    type = EntityType.ARC

    @property
    def start_point(self) -> Point3D:
        return arc_point(self.center, self.radius, self.start_angle)

    @property
    def end_point(self) -> Point3D:
        return arc_point(self.center, self.radius, self.end_angle)


@dataclass
class EllipseEntity(Entity):
    center: Point3D = field(default_factory=Point3D)
    rx: float = 0.0
    ry: float = 0.0
    rotation: float = 0.0  # nur Dokument-Layer, der Kern rechnet achsparallel

    type = EntityType.ELLIPSE


@dataclass
class PolylineEntity(Entity):
    vertices: List[Point3D] = field(default_factory=list)
    closed: bool = False

    type = EntityType.POLYLINE


@dataclass
class SplineEntity(Entity):
    control_points: List[Point3D] = field(default_factory=list)
    degree: int = 3
    closed: bool = False
    fit_points: List[Point3D] = field(default_factory=list)

    type = EntityType.SPLINE

    @property
    def defining_points(self) -> List[Point3D]:
        """Kontrollpunkte, ersatzweise Fit-Punkte."""
        return self.control_points or self.fit_points


@dataclass
class PointEntity(Entity):
    position: Point3D = field(default_factory=Point3D)

    type = EntityType.POINT


@dataclass
class DonutEntity(Entity):
    center: Point3D = field(default_factory=Point3D)
    inner_radius: float = 0.0
    outer_radius: float = 0.0

    type = EntityType.DONUT


@dataclass
class TextEntity(Entity):
    position: Point3D = field(default_factory=Point3D)
    text: str = ""
    height: float = 1.0
    rotation: float = 0.0

    type = EntityType.TEXT


@dataclass
class MTextEntity(Entity):
    """Mehrzeiliger Text, position ist die linke obere Ecke."""
    position: Point3D = field(default_factory=Point3D)
    text: str = ""
    width: float = 0.0
    height: float = 1.0
    rotation: float = 0.0
    line_spacing: float = 1.0

    type = EntityType.MTEXT

    @property
    def line_count(self) -> int:
        return self.text.count("\n") + 1


@dataclass
class TableEntity(Entity):
    """Tabelle, position ist die linke obere Ecke (Zeilen wachsen nach unten)."""
    position: Point3D = field(default_factory=Point3D)
    rows: int = 1
    cols: int = 1
    row_height: float = 1.0
    col_width: float = 1.0
    rotation: float = 0.0

    type = EntityType.TABLE


@dataclass
class DimensionEntity(Entity):
    dim_type: DimensionType = DimensionType.LINEAR
    start: Point3D = field(default_factory=Point3D)
    end: Point3D = field(default_factory=Point3D)
    dim_line_position: Optional[Point3D] = None
    text_height: float = 5.0
    text: Optional[str] = None
    center: Optional[Point3D] = None  # nur ANGULAR

    type = EntityType.DIMENSION


@dataclass
class HatchEntity(Entity):
    """Schraffur; boundary ist ein implizit geschlossenes Polygon."""
    boundary: List[Point3D] = field(default_factory=list)
    pattern: str = "SOLID"
    scale: float = 1.0
    rotation: float = 0.0

    type = EntityType.HATCH


@dataclass
class RayEntity(Entity):
    """Halbstrahl ab origin in Richtung direction."""
    origin: Point3D = field(default_factory=Point3D)
    direction: Point3D = field(default_factory=lambda: Point3D(1.0, 0.0))

    type = EntityType.RAY


@dataclass
class XLineEntity(Entity):
    """Unendliche Konstruktionslinie durch origin."""
    origin: Point3D = field(default_factory=Point3D)
    direction: Point3D = field(default_factory=lambda: Point3D(1.0, 0.0))

    type = EntityType.XLINE


# =============================================================================
# Helfer
# =============================================================================

def copy_entity(entity: Entity, **changes) -> Entity:
    """Kopie mit frischer ID und geänderten Feldern. Das Original bleibt unverändert."""
    changes.setdefault("id", next_entity_id())
    return replace(entity, **changes)


def make_line(x1: float, y1: float, x2: float, y2: float, **meta) -> LineEntity:
    return LineEntity(start=Point3D(x1, y1), end=Point3D(x2, y2), **meta)


def make_circle(cx: float, cy: float, radius: float, **meta) -> CircleEntity:
    return CircleEntity(center=Point3D(cx, cy), radius=radius, **meta)


def make_arc(cx: float, cy: float, radius: float, start_angle: float, end_angle: float, **meta) -> ArcEntity:
    return ArcEntity(center=Point3D(cx, cy), radius=radius,
                     start_angle=start_angle, end_angle=end_angle, **meta)


def make_polyline(points: Sequence[Tuple[float, float]], closed: bool = False, **meta) -> PolylineEntity:
    return PolylineEntity(vertices=[as_point(p) for p in points], closed=closed, **meta)


def entity_to_dict(entity: Entity) -> dict:
    """Flache Dictionary-Ansicht (Logging/Debugging)."""
    data = {"type": entity.type.name if entity.type else None}
    for f in fields(entity):
        value = getattr(entity, f.name)
        if isinstance(value, Point3D):
            value = value.as_tuple()
        elif isinstance(value, list):
            value = [v.as_tuple() if isinstance(v, Point3D) else v for v in value]
        elif isinstance(value, Enum):
            value = value.name
        data[f.name] = value
    return data
