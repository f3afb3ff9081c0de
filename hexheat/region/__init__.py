"""
hexheat.region - The reference region and its per-resolution cell masks.
"""

from .boundaries import boundary_bounds, load_state_boundary, select_state
from .mask import RegionMask, RegionMaskCache

__all__ = [
    "boundary_bounds",
    "load_state_boundary",
    "select_state",
    "RegionMask",
    "RegionMaskCache",
]
