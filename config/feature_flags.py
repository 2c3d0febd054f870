"""
DraftKernel - Feature Flags
===========================

Feature Flags schalten Debug-Ausgaben und optionales Verhalten des
Geometriekerns zur Laufzeit um. Neue Verhaltensweisen werden mit Flag
eingeführt und nach Validierung zum Standard.
"""

from typing import Dict

from loguru import logger

# Feature Flag Registry
# =====================
# Standard ohne Flag (validiert):
#
# - Symmetrische Schnittpunkt-Dispatch-Tabelle
# - Normalisierung aller Winkel über normalize_relative()
# - Crossing-Auswahl mit echter Segment/Box-Prüfung statt Bounding-Box
#
# Die Flags unten sind für aktives Debugging oder optionale Features.

FEATURE_FLAGS: Dict[str, bool] = {
    # Debug-Modi
    "kernel_debug_logging": False,  # Detaillierte [TRIM]/[EXTEND]/[SNAP] Traces pro Abfrage

    # Snap
    "snap_intersection": True,  # INTERSECTION-Fangmodus berechnet echte Schnittpunkte benachbarter Entities
    "snap_spatial_index": True,  # QuadTree-Vorfilter im SnapResolver

    # Trim
    "trim_dedupe_intersections": True,  # Doppelte Schnittpunkte (mehrere Schneidkanten durch einen Punkt) zusammenfassen
}


def is_enabled(flag: str) -> bool:
    """
    Prüft ob ein Feature-Flag aktiviert ist.

    Args:
        flag: Name des Feature-Flags

    Returns:
        True wenn aktiviert, False wenn nicht aktiviert oder unbekannt
    """
    return FEATURE_FLAGS.get(flag, False)


def set_flag(flag: str, value: bool) -> None:
    """
    Setzt ein Feature-Flag zur Laufzeit.
    Nützlich für Tests und Debugging.

    Args:
        flag: Name des Feature-Flags
        value: Neuer Wert
    """
    if flag not in FEATURE_FLAGS:
        logger.warning(f"Unbekanntes Feature-Flag gesetzt: {flag}")
    FEATURE_FLAGS[flag] = value


def get_all_flags() -> Dict[str, bool]:
    """Gibt alle Feature-Flags zurück."""
    return FEATURE_FLAGS.copy()
