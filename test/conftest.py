import pytest

from config.feature_flags import set_flag


# Global Feature Flag Defaults - Single Source of Truth for Test Isolation
# ========================================================================
# WICHTIG: Jeder Test muss mit sauberen Feature-Flags starten.
# Diese Defaults müssen mit config/feature_flags.py synchron gehalten werden.
FEATURE_FLAG_DEFAULTS = {
    # Debug-Modi
    "kernel_debug_logging": False,

    # Snap
    "snap_intersection": True,
    "snap_spatial_index": True,

    # Trim
    "trim_dedupe_intersections": True,
}


@pytest.fixture(autouse=True)
def _global_feature_flag_isolation():
    """
    Globale Feature-Flag-Isolation.

    Stellt sicher, dass jeder Test mit sauberen, deterministischen
    Feature-Flags startet. Verhindert Leakage von Flag-Mutationen
    zwischen Tests (z.B. snap_spatial_index=False).
    """
    # Pre-Test: Alle Flags auf Defaults zurücksetzen
    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)

    yield

    # Post-Test: Alle Flags auf Defaults zurücksetzen (cleanup)
    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)
