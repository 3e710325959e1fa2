"""
Interactive bounded-depth path exploration.

Given a focus cell, a depth limit and a direction, the explorer finds every
cell reachable within that many synapses and makes only those nodes visible.
Changing the focus or the parameters re-runs the walk; every walk rebuilds
the visited set from scratch and overwrites the visibility of every node, so
nothing from an earlier focus survives.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, FrozenSet, Optional, Tuple

from .enums import Direction
from .errors import InvalidParameterError, UnknownCellError
from .network import Network
from .view import VisualGraph

logger = logging.getLogger(__name__)


def validate_depth(max_depth) -> int:
    """
    Check a depth limit coming from the UI.

    Raises:
        InvalidParameterError: If the value is not a non-negative integer
    """
    if isinstance(max_depth, bool) or not isinstance(max_depth, int):
        raise InvalidParameterError("max_depth", max_depth, "expected an integer")
    if max_depth < 0:
        raise InvalidParameterError("max_depth", max_depth, "must not be negative")
    return max_depth


def reachable(
    network: Network, focus: str, max_depth: int, direction: Direction
) -> FrozenSet[str]:
    """
    Cells within ``max_depth`` synapses of ``focus``.

    Breadth-first over an explicit queue: a cell is marked the first time it
    is dequeued within the depth bound, and an already-marked cell is never
    expanded again, which keeps cycles from looping.

    Raises:
        UnknownCellError: If ``focus`` is not in the network
    """
    if focus not in network:
        raise UnknownCellError(focus)
    # The focus itself is always reached
    max_depth = max(max_depth, 0)

    visited = set()
    queue: Deque[Tuple[str, int]] = deque([(focus, 0)])
    while queue:
        cell_id, depth = queue.popleft()
        if cell_id in visited:
            continue
        if depth > max_depth:
            continue
        visited.add(cell_id)
        for neighbor in network.neighbors(cell_id, direction):
            if neighbor not in visited:
                queue.append((neighbor, depth + 1))
    return frozenset(visited)


class PathExplorer:
    """
    Stateful reachability explorer writing the visibility mask of a visual graph.

    Attributes:
        network: The network being explored
        graph: Visual graph whose node visibility this explorer owns
        focus: Currently selected cell id, or None
        max_depth: Maximum number of synapses walked from the focus
        direction: Which synapses the walk follows
        visited: Cells reached by the most recent walk
    """

    def __init__(
        self,
        network: Network,
        graph: VisualGraph,
        max_depth: int = 2,
        direction: Direction | str = Direction.BOTH,
    ):
        self.network = network
        self.graph = graph
        self.max_depth = validate_depth(max_depth)
        self.direction = Direction.parse(direction)
        self.focus: Optional[str] = None
        self.visited: FrozenSet[str] = frozenset()

    def select_focus(self, cell_id: str) -> FrozenSet[str]:
        """
        Focus on a cell and walk from it.

        Raises:
            UnknownCellError: If the cell does not exist; the current view is kept
        """
        if cell_id not in self.network:
            raise UnknownCellError(cell_id)
        self.focus = cell_id
        return self.walk()

    def set_parameters(
        self,
        max_depth: Optional[int] = None,
        direction: Direction | str | None = None,
    ) -> FrozenSet[str]:
        """
        Update depth and/or direction and re-walk when a focus is set.

        Both values are validated before either is applied.

        Raises:
            InvalidParameterError: On a negative/non-integer depth or unknown direction
        """
        depth = self.max_depth if max_depth is None else validate_depth(max_depth)
        new_direction = self.direction if direction is None else Direction.parse(direction)
        self.max_depth = depth
        self.direction = new_direction
        if self.focus is None:
            return self.visited
        return self.walk()

    def walk(self) -> FrozenSet[str]:
        """
        Recompute the visited set from the focus and overwrite all visibility.

        Without a focus this does nothing and returns the empty set.
        """
        if self.focus is None:
            return frozenset()
        self.visited = reachable(self.network, self.focus, self.max_depth, self.direction)
        self.graph.show_only(self.visited)
        logger.debug(
            "Walked path from %s (%s, depth %d): %d / %d cells",
            self.focus,
            self.direction.value,
            self.max_depth,
            len(self.visited),
            len(self.graph),
        )
        return self.visited

    def clear(self) -> None:
        """Forget the focus and show every node."""
        self.focus = None
        self.visited = frozenset()
        self.graph.show_all()

    def hide_all(self) -> None:
        """Hide every node, regardless of focus."""
        self.graph.hide_all()
