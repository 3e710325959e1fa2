"""
Renderer-agnostic visual graph built from a network and its layout.

The builder is a pure mapping: the same network, placements and view config
always produce the same nodes and edges, in the same order, with the same
sizes and colors. After construction only two fields ever change, each owned
by one writer:

- ``VisualNode.hidden``: written by the path explorer
- ``VisualNode.x`` / ``VisualNode.y``: written by the layout refinement
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from .config import ViewConfig
from .enums import NodeColorPolicy, Role
from .errors import UnknownCellError
from .layout import Placement
from .network import Network, canonical_order

CURVED_ARROW = "curvedArrow"


@dataclass
class VisualNode:
    """
    A drawable node.

    Attributes:
        id: Cell id
        label: Cell tag when present, otherwise the id
        size: Total degree of the cell (renderer clamps to its own range)
        color: CSS color derived from role or polarity
        role: Role of the cell
        x: Horizontal position
        y: Vertical position
        hidden: Whether the renderer should skip this node
    """

    id: str
    label: str
    size: int
    color: str
    role: Role
    x: float = 0.0
    y: float = 0.0
    hidden: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.name
        return data


@dataclass(frozen=True)
class VisualEdge:
    """A drawable edge for one synapse."""

    id: str
    source: str
    target: str
    color: str
    millivolts: float
    curve: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class VisualGraph:
    """
    Nodes and edges ready for a renderer.

    Position reads and writes go through a lock, because a background
    refinement worker may move nodes while the explorer toggles visibility.
    """

    def __init__(self, nodes: Iterable[VisualNode], edges: Iterable[VisualEdge]):
        self.nodes: Dict[str, VisualNode] = {n.id: n for n in nodes}
        self.edges: Dict[str, VisualEdge] = {e.id: e for e in edges}
        self._positions_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, node_id: str) -> VisualNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise UnknownCellError(node_id) from None

    # ----- visibility -----
    def visible_node_ids(self) -> FrozenSet[str]:
        return frozenset(nid for nid, n in self.nodes.items() if not n.hidden)

    def show_only(self, node_ids: Iterable[str]) -> None:
        """Overwrite every node's visibility: shown iff its id is in ``node_ids``."""
        keep = set(node_ids)
        for nid, n in self.nodes.items():
            n.hidden = nid not in keep

    def show_all(self) -> None:
        for n in self.nodes.values():
            n.hidden = False

    def hide_all(self) -> None:
        for n in self.nodes.values():
            n.hidden = True

    # ----- positions -----
    def positions(self) -> Dict[str, Tuple[float, float]]:
        with self._positions_lock:
            return {nid: (n.x, n.y) for nid, n in self.nodes.items()}

    def update_positions(self, positions: Mapping[str, Tuple[float, float]]) -> None:
        """
        Move nodes.

        Raises:
            UnknownCellError: If a position names a node that is not in the graph
        """
        with self._positions_lock:
            for nid in positions:
                if nid not in self.nodes:
                    raise UnknownCellError(nid)
            for nid, (x, y) in positions.items():
                node = self.nodes[nid]
                node.x = float(x)
                node.y = float(y)

    # ----- serialization -----
    def to_dict(self) -> Dict[str, Any]:
        with self._positions_lock:
            nodes = [n.to_dict() for n in self.nodes.values()]
        return {"nodes": nodes, "edges": [e.to_dict() for e in self.edges.values()]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    def copy(self) -> "VisualGraph":
        with self._positions_lock:
            nodes = [replace(n) for n in self.nodes.values()]
        return VisualGraph(nodes, self.edges.values())


def _node_color(network: Network, cell_id: str, role: Role, config: ViewConfig) -> str:
    if config.node_color_policy == NodeColorPolicy.POLARITY:
        return config.palette.for_millivolts(network.outgoing_millivolts(cell_id))
    return config.palette.for_role(role)


def build_visual_graph(
    network: Network,
    placements: Mapping[str, Placement],
    config: ViewConfig | None = None,
) -> VisualGraph:
    """
    Map a network and its placements to visual nodes and edges.

    Args:
        network: The loaded network
        placements: Output of `assign_layout` for the same network
        config: Color policy, palette and edge curve hint

    Returns:
        VisualGraph with every node visible

    Raises:
        ValueError: If a cell has no placement
    """
    config = config or ViewConfig()

    nodes = []
    for cell_id in canonical_order(network.cells):
        placement = placements.get(cell_id)
        if placement is None:
            raise ValueError(f"cell {cell_id!r} has no placement")
        cell = network.cells[cell_id]
        nodes.append(
            VisualNode(
                id=cell_id,
                label=cell.tag or cell_id,
                size=cell.degree,
                color=_node_color(network, cell_id, placement.role, config),
                role=placement.role,
                x=placement.x,
                y=placement.y,
            )
        )

    curve = CURVED_ARROW if config.curved_edges else None
    edges = []
    for syn_id in canonical_order(network.synapses):
        synapse = network.synapses[syn_id]
        edges.append(
            VisualEdge(
                id=syn_id,
                source=synapse.from_cell,
                target=synapse.to_cell,
                color=config.palette.for_millivolts(synapse.millivolts),
                millivolts=float(synapse.millivolts),
                curve=curve,
            )
        )

    return VisualGraph(nodes, edges)
