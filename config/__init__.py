"""
DraftKernel - Configuration Module
==================================

Zentrale Konfiguration: Toleranzen, Feature-Flags, Version.
"""

from .tolerances import (
    Tolerances, TWO_PI, positional_tolerance, parametric_tolerance, angular_tolerance,
)
from .feature_flags import is_enabled, set_flag, get_all_flags, FEATURE_FLAGS
from .version import VERSION, VERSION_STRING, get_version_info
