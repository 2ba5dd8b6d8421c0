"""
Domain Package
==============
Immutable value objects shared by the services: the resolved account
identity and the greenhouse threshold set, plus the hub error taxonomy.
"""

from .greenhouse_thresholds import THRESHOLD_DEFAULTS, THRESHOLD_KEYS, ThresholdSet
from .identity import Identity

__all__ = [
    "Identity",
    "THRESHOLD_DEFAULTS",
    "THRESHOLD_KEYS",
    "ThresholdSet",
]
