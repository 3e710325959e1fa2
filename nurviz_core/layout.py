"""
Deterministic initial layout for network cells.

Cells are split into three lanes by role. Inputs sit on one row at a fixed
depth, outputs on another on the far side, and interior cells fill a block in
between that wraps into successive bands. Within a lane each cell is offset
from the previous one by the fanout, either zig-zagging around the lane's
center or stepping monotonically.

The result only seeds the force-directed refinement; its job is to keep cells
from piling on top of each other and to make roles readable from the start.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .config import LayoutConfig
from .enums import LanePolicy, Role
from .network import Network, canonical_order, classify_role


@dataclass(frozen=True)
class Placement:
    """Role and initial position assigned to one cell."""

    role: Role
    x: float
    y: float


class _LaneCursor:
    """Running offset/depth state of a single lane."""

    def __init__(self, fanout: float, depth: float, policy: LanePolicy):
        self.offset = 0.0
        self.fanout = fanout
        self.depth = depth
        self.policy = policy

    def advance(self) -> float:
        if self.policy == LanePolicy.ZIGZAG:
            self.offset = -self.offset + self.fanout
            self.fanout = -self.fanout
        else:
            self.offset = self.offset + abs(self.fanout)
        return self.offset


def assign_layout(network: Network, config: LayoutConfig | None = None) -> Dict[str, Placement]:
    """
    Assign a role and an (x, y) position to every cell.

    Cells are visited in canonical id order, so the layout depends only on the
    network's content and never on mapping iteration order. Each lane keeps its
    own cursor; an empty lane leaves the others untouched.

    Args:
        network: The loaded network
        config: Lane geometry and offset policy

    Returns:
        Dict of cell id -> Placement
    """
    config = config or LayoutConfig()
    step = abs(config.fanout)
    lanes = {
        Role.INPUT: _LaneCursor(config.fanout, config.input_depth, config.lane_policy),
        Role.INTERIOR: _LaneCursor(config.fanout, config.interior_start_depth, config.lane_policy),
        Role.OUTPUT: _LaneCursor(config.fanout, config.output_depth, config.lane_policy),
    }

    placements: Dict[str, Placement] = {}
    for cell_id in canonical_order(network.cells):
        role = classify_role(network.cells[cell_id].tag, config.input_tag_prefix)
        lane = lanes[role]
        x = lane.advance()
        if role == Role.INTERIOR and abs(x) > config.interior_wrap_width:
            lane.depth += 2 * step
            lane.offset = 0.0
            x = 0.0
        placements[cell_id] = Placement(role=role, x=float(x), y=float(lane.depth))
    return placements


def lane_bounds(placements: Dict[str, Placement]) -> Dict[Role, Tuple[float, float]]:
    """Depth range (min y, max y) covered by each non-empty lane."""
    bounds: Dict[Role, Tuple[float, float]] = {}
    for p in placements.values():
        lo, hi = bounds.get(p.role, (p.y, p.y))
        bounds[p.role] = (min(lo, p.y), max(hi, p.y))
    return bounds
