"""Numeric constants and solver configuration.

All geometry works in abstract *world units*; every user-facing length
is in metres.  :data:`WORLD_UNITS_PER_METER` converts between the two.
"""

from __future__ import annotations

from dataclasses import dataclass


WORLD_UNITS_PER_METER = 100.0

# Slack (world units) that absorbs sketch imprecision when two
# constraint circles just miss each other.  10 units = 0.1 m.
SOLVER_TOLERANCE = 10.0

DEFAULT_WALL_THICKNESS_CM = 10.0

HISTORY_DEPTH = 50

# Opening widths (metres) used when a door or window is placed without one.
DEFAULT_FEATURE_WIDTHS = {"door": 0.8, "window": 1.2}


@dataclass(frozen=True)
class SolverConfig:
    """Tuneable parameters shared by the solver and the alignment engine.

    Attributes
    ----------
    scale : float
        World units per metre.
    tolerance : float
        Circle-intersection slack in world units.
    default_thickness : float
        Wall thickness (cm) assumed for edges that carry none.
    """

    scale: float = WORLD_UNITS_PER_METER
    tolerance: float = SOLVER_TOLERANCE
    default_thickness: float = DEFAULT_WALL_THICKNESS_CM

    def to_world(self, meters: float) -> float:
        return meters * self.scale

    def to_meters(self, world: float) -> float:
        return world / self.scale


DEFAULT_SOLVER_CONFIG = SolverConfig()
