"""
DraftKernel - Zentralisierte Toleranz-Konfiguration
===================================================

Alle Toleranzen des 2D-Geometriekerns an einem Ort.

Toleranz-Philosophie:
- Positional: Abstände und quadrierte Längen in Zeichnungseinheiten
- Parametric: Segment-Parameter t ∈ [0, 1] (einheitenlos)
- Angular: Winkel in Radians
- Numeric: Determinanten/Diskriminanten gegen Null

Verwendung:
    from config.tolerances import Tolerances

    # Direkt als Klassenvariablen
    tol = Tolerances.DETERMINANT

    # Oder via Convenience-Funktionen
    from config.tolerances import positional_tolerance
    tol = positional_tolerance()
"""

import math


class Tolerances:
    """
    Zentrale Toleranz-Konstanten für den Geometriekern.

    Kategorien:
    - POSITIONAL: Punkt-/Längen-Vergleiche in Zeichnungseinheiten
    - PARAMETRIC: Segment-Parameter (t-Werte)
    - ANGULAR: Winkel-Vergleiche (Radians)
    - NUMERIC: Singularitäten (Determinante, Diskriminante)
    - EXTEND/RAY: Synthetische Längen für Extend und Ray-Casting
    - SNAP/PICK: Defaults für interaktive Abfragen
    """

    # =========================================================================
    # Numerik (Division durch Null vermeiden)
    # =========================================================================

    # Linie-Linie: |denom| darunter = parallel
    DETERMINANT = 1e-4

    # Linie-Kreis: Diskriminante darüber als Tangente behandelt
    DISCRIMINANT = 1e-4

    # Allgemeines Epsilon für Normierungen
    EPSILON_MATH = 1e-9

    # =========================================================================
    # Positional (Zeichnungseinheiten)
    # =========================================================================

    # Minimale quadrierte Segmentlänge - kürzere Segmente enthalten keinen Punkt
    MIN_SEGMENT_LENGTH_SQ = 1e-4

    # Minimale Segmentlänge (für Richtungsvektoren)
    MIN_SEGMENT_LENGTH = 1e-4

    # Halbe Sehne darunter = Kreise berühren sich (ein Schnittpunkt)
    TANGENT_HALF_CHORD = 1e-4

    # Abstand der Mittelpunkte darunter = konzentrisch
    CONCENTRIC = 1e-9

    # Zwei Schnittpunkte gelten als identisch
    POINT_MERGE = 1e-6

    # =========================================================================
    # Parametric (Segment-Parameter t)
    # =========================================================================

    # Punkt-auf-Segment: t ∈ [-tol, 1+tol]
    PARAMETRIC_ON_SEGMENT = 1e-4

    # Doppelte Wurzeln der Linie-Kreis-Gleichung
    ROOT_DEDUP = 1e-4

    # Trim verwirft Schnittpunkte mit t außerhalb (margin, 1-margin)
    TRIM_PARAM_MARGIN = 0.001

    # =========================================================================
    # Angular (Radians)
    # =========================================================================

    # Bogen-Mitgliedschaft an den Endwinkeln
    ARC_SPAN = 1e-9

    # Trim verwirft Schnittwinkel näher als das an den Bogenenden
    TRIM_ANGLE_MARGIN = 0.001

    # Extend: minimale Winkeldistanz für einen gültigen Zielpunkt
    EXTEND_MIN_ANGLE = 0.01

    # Zwei Winkel gelten als gleich
    COMPARE_ANGLE = 1e-6

    # =========================================================================
    # Extend / Ray-Casting
    # =========================================================================

    # Länge der synthetischen Verlängerung beim Extend
    EXTEND_LENGTH = 10000.0

    # Ausdehnung von RAY/XLINE und Cast-Ray
    CONSTRUCTION_LINE_LENGTH = 10000.0

    # Ray-Treffer näher als das am Startpunkt werden ignoriert
    RAY_MIN_HIT_DISTANCE = 0.001

    # =========================================================================
    # Snap / Pick
    # =========================================================================

    # Fangradius in Weltkoordinaten bei Zoom 1
    SNAP_APERTURE = 10.0

    # Magnet-Stärke (0 = kein Zug, 1 = Sprung)
    SNAP_MAGNET_STRENGTH = 0.5

    # get_closest_snap_point Default
    SNAP_POINT_THRESHOLD = 1.0

    # Ausrichtungs-Hilfslinien
    ALIGNMENT_THRESHOLD = 0.5

    # Pick-Radius für Auswahl
    PICK_TOLERANCE = 1.0

    # Rand um Bemaßungstext beim Hit-Test
    DIMENSION_TEXT_MARGIN = 1.0

    # =========================================================================
    # Text-Layout (Näherung für Hit-Test)
    # =========================================================================

    TEXT_CHAR_WIDTH_FACTOR = 0.6
    MTEXT_LINE_SPACING_FACTOR = 1.2


TWO_PI = 2.0 * math.pi


# =============================================================================
# Convenience-Funktionen
# =============================================================================

def positional_tolerance() -> float:
    """Gibt die Standard-Positions-Toleranz zurück."""
    return Tolerances.MIN_SEGMENT_LENGTH


def parametric_tolerance() -> float:
    """Gibt die Standard-Parameter-Toleranz zurück."""
    return Tolerances.PARAMETRIC_ON_SEGMENT


def angular_tolerance() -> float:
    """Gibt die Standard-Winkel-Toleranz zurück."""
    return Tolerances.COMPARE_ANGLE


# =============================================================================
# Toleranz-Validierung (für Debugging)
# =============================================================================

def validate_tolerances():
    """
    Validiert dass alle Toleranzen sinnvolle Werte haben.
    Nützlich für Tests und Debugging.
    """
    issues = []

    if not (0.0 < Tolerances.TRIM_PARAM_MARGIN < 0.5):
        issues.append(f"TRIM_PARAM_MARGIN außerhalb (0, 0.5): {Tolerances.TRIM_PARAM_MARGIN}")

    # Parallel-Toleranz sollte nicht gröber als die Längen-Toleranz sein
    if Tolerances.DETERMINANT > Tolerances.MIN_SEGMENT_LENGTH_SQ * 100:
        issues.append(
            f"DETERMINANT ({Tolerances.DETERMINANT}) gröber als "
            f"MIN_SEGMENT_LENGTH_SQ*100 ({Tolerances.MIN_SEGMENT_LENGTH_SQ * 100})"
        )

    if Tolerances.EXTEND_MIN_ANGLE <= Tolerances.ARC_SPAN:
        issues.append(f"EXTEND_MIN_ANGLE ({Tolerances.EXTEND_MIN_ANGLE}) <= ARC_SPAN ({Tolerances.ARC_SPAN})")

    if not (0.0 <= Tolerances.SNAP_MAGNET_STRENGTH <= 1.0):
        issues.append(f"SNAP_MAGNET_STRENGTH außerhalb [0, 1]: {Tolerances.SNAP_MAGNET_STRENGTH}")

    if Tolerances.EXTEND_LENGTH <= 0 or Tolerances.CONSTRUCTION_LINE_LENGTH <= 0:
        issues.append("EXTEND_LENGTH/CONSTRUCTION_LINE_LENGTH müssen positiv sein")

    return issues


# Automatische Validierung beim Import (nur Warnung, kein Fehler)
_validation_issues = validate_tolerances()
if _validation_issues:
    from loguru import logger
    for issue in _validation_issues:
        logger.warning(f"Toleranz-Validierung: {issue}")
