"""
DraftKernel - Operations Module
===============================

Trim und Extend als eigenständige Operationen mit strukturiertem Ergebnis,
plus freie Funktionen für direkten Aufruf.

Verwendung:
    from drafting.operations import TrimOperation

    op = TrimOperation()
    result = op.execute(target, click_point, cutters)

    if result.success:
        # result.entities ersetzt target
    else:
        logger.warning(result.message)
"""

from .base import KernelOperation, OperationResult, ResultStatus
from .trim import (
    TrimOperation, TrimResult, TrimSegment, TRIMMABLE_TYPES,
    trim_entity, trim_line_entity, trim_arc_entity, trim_circle_entity,
)
from .extend import (
    ExtendOperation, ExtendResult, ExtendData, EXTENDABLE_TYPES,
    extend_entity, extend_line_entity, extend_arc_entity,
)

__all__ = [
    # Core
    'KernelOperation',
    'OperationResult',
    'ResultStatus',
    # Trim
    'TrimOperation',
    'TrimResult',
    'TrimSegment',
    'TRIMMABLE_TYPES',
    'trim_entity',
    'trim_line_entity',
    'trim_arc_entity',
    'trim_circle_entity',
    # Extend
    'ExtendOperation',
    'ExtendResult',
    'ExtendData',
    'EXTENDABLE_TYPES',
    'extend_entity',
    'extend_line_entity',
    'extend_arc_entity',
]
