"""
Core enumerations for the nurviz network viewer.

This module defines the classifications and policy switches used throughout
the viewer: the role a cell plays in the network, the direction a path walk
follows, and the configurable layout and coloring policies.
"""

from __future__ import annotations

from enum import Enum, auto


class Role(Enum):
    """
    Role of a cell, derived from its tag.

    - INPUT: tag carries the input prefix (``in-`` by default)
    - INTERIOR: no tag; a hidden cell inside the network
    - OUTPUT: any other non-empty tag
    """

    INPUT = auto()
    """Cell fed by the outside world; laid out above the interior block."""

    INTERIOR = auto()
    """Untagged cell; laid out in the wrapped interior block."""

    OUTPUT = auto()
    """Tagged non-input cell; laid out below the interior block."""


class Direction(Enum):
    """
    Direction followed by a bounded path walk.

    - FORWARD: follow axon synapses to the cells they excite or inhibit
    - BACKWARD: follow dendrite synapses to the cells that feed this one
    - BOTH: follow both
    """

    FORWARD = "forward"
    """Walk along outgoing (axon) synapses."""

    BACKWARD = "backward"
    """Walk along incoming (dendrite) synapses."""

    BOTH = "both"
    """Walk along synapses in both directions."""

    @property
    def forward(self) -> bool:
        return self in (Direction.FORWARD, Direction.BOTH)

    @property
    def backward(self) -> bool:
        return self in (Direction.BACKWARD, Direction.BOTH)

    @classmethod
    def parse(cls, token: "Direction | str") -> "Direction":
        """
        Resolve a direction from an enum member or a UI token.

        The viewer's select box historically used ``fwd`` and ``back``; both
        are accepted next to the full names, case-insensitively.

        Raises:
            InvalidParameterError: If the token names no direction
        """
        from .errors import InvalidParameterError

        if isinstance(token, Direction):
            return token
        if isinstance(token, str):
            key = token.strip().lower()
            member = _DIRECTION_ALIASES.get(key)
            if member is not None:
                return member
        raise InvalidParameterError("direction", token, "expected one of forward, backward, both")


_DIRECTION_ALIASES = {
    "forward": Direction.FORWARD,
    "fwd": Direction.FORWARD,
    "backward": Direction.BACKWARD,
    "back": Direction.BACKWARD,
    "both": Direction.BOTH,
}


class LanePolicy(Enum):
    """
    How successive cells in one lane are offset from each other.

    - ZIGZAG: alternate sides with a growing magnitude (10, -20, 30, ...)
    - MONOTONIC: step in one direction by the fanout (10, 20, 30, ...)
    """

    ZIGZAG = "zigzag"
    MONOTONIC = "monotonic"


class NodeColorPolicy(Enum):
    """
    What a node's color encodes.

    - ROLE: input / interior / output palette entries
    - POLARITY: sign of the cell's summed outgoing millivolts, using the
      synapse palette
    """

    ROLE = "role"
    POLARITY = "polarity"
