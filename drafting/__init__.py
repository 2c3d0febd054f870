"""
DraftKernel Drafting Module
"""

from config.version import VERSION as __version__

from .entities import (
    EntityType, DimensionType, Point3D, Entity,
    LineEntity, CircleEntity, ArcEntity, EllipseEntity, PolylineEntity, SplineEntity,
    PointEntity, DonutEntity, TextEntity, MTextEntity, TableEntity, DimensionEntity,
    HatchEntity, RayEntity, XLineEntity,
    next_entity_id, copy_entity, arc_point, as_point, entity_to_dict,
    make_line, make_circle, make_arc, make_polyline,
)

from .geometry import normalize_relative, arc_sweep, angle_in_arc

from .intersection import (
    IntersectionResult, RayHit,
    line_line_intersection, line_circle_intersection, circle_circle_intersection,
    is_point_on_segment, find_entity_intersections, closest_point_on_entity, cast_ray,
)

from .hittest import (
    distance_from_entity, closest_point_distance, batch_distances_to_segments,
    is_entity_in_box, does_entity_intersect_box, pick_entity, select_in_box,
)

from .snapper import (
    SnapMode, SnapSettings, SnapResult, SnapResolver, DEFAULT_SNAP_SETTINGS, SNAP_COLORS,
)

from .features import (
    SnapPoint, GripKind, GripPoint, AlignmentGuide, AlignmentGuides,
    get_snap_points, get_grip_points, get_closest_snap_point, find_alignment_points,
)

from .quadtree import Bounds, QuadTree, entity_bounds

from .operations import (
    OperationResult, ResultStatus,
    TrimOperation, TrimResult, TrimSegment, ExtendOperation, ExtendResult, ExtendData,
    trim_entity, trim_line_entity, trim_arc_entity, trim_circle_entity,
    extend_entity, extend_line_entity, extend_arc_entity,
)
