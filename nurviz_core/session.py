"""
Explorer session: the single owner of one loaded network and its view.

A session ties the components together: it loads the network, assigns the
initial layout, builds the visual graph, and exposes the synchronous command
interface that host adapters (Streamlit app, HTTP backend, CLI) translate
their UI events into. After every command that changes the view it fires
the one "visual graph changed" notification so the adapter can re-render.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Union

from .codec import ON_DANGLING_RAISE, load_network, load_network_file
from .config import RefinementOptions, SessionConfig
from .enums import Direction
from .errors import UnknownCellError
from .explorer import PathExplorer
from .layout import Placement, assign_layout
from .network import Network, canonical_order
from .refine import LayoutRefinementController, RefinementEngine
from .view import VisualGraph, build_visual_graph

logger = logging.getLogger(__name__)

ChangeListener = Callable[["ExplorerSession"], None]


class ExplorerSession:
    """
    One network being viewed and explored.

    Attributes:
        network: The loaded, read-only network
        config: Session configuration
        placements: Initial layout, one Placement per cell
        graph: The visual graph handed to the renderer
        explorer: Path explorer owning node visibility
        refinement: Layout refinement controller owning node positions
    """

    def __init__(
        self,
        network: Network,
        config: Optional[SessionConfig] = None,
        engine: Optional[RefinementEngine] = None,
    ):
        self.network = network
        self.config = config or SessionConfig()
        self.placements: Dict[str, Placement] = assign_layout(network, self.config.layout)
        self.graph: VisualGraph = build_visual_graph(network, self.placements, self.config.view)
        self.explorer = PathExplorer(
            network,
            self.graph,
            max_depth=self.config.explorer.max_depth,
            direction=self.config.explorer.direction,
        )
        self.refinement = LayoutRefinementController(
            self.graph,
            engine=engine,
            options=self.config.refinement,
            on_batch=self._notify,
        )
        self._listener: Optional[ChangeListener] = None

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        config: Optional[SessionConfig] = None,
        on_dangling: str = ON_DANGLING_RAISE,
        engine: Optional[RefinementEngine] = None,
    ) -> "ExplorerSession":
        """Load a network from file bytes; load errors propagate before any view exists."""
        return cls(load_network(data, on_dangling=on_dangling), config, engine)

    @classmethod
    def from_file(
        cls,
        filepath: str,
        config: Optional[SessionConfig] = None,
        on_dangling: str = ON_DANGLING_RAISE,
        engine: Optional[RefinementEngine] = None,
    ) -> "ExplorerSession":
        return cls(load_network_file(filepath, on_dangling=on_dangling), config, engine)

    # ----- notification -----
    def on_change(self, listener: Optional[ChangeListener]) -> None:
        """Register the listener called after the visual graph changes (None to remove)."""
        self._listener = listener

    def _notify(self) -> None:
        if self._listener is not None:
            self._listener(self)

    # ----- state -----
    @property
    def focus(self) -> Optional[str]:
        return self.explorer.focus

    @property
    def visited(self) -> FrozenSet[str]:
        return self.explorer.visited

    @property
    def max_depth(self) -> int:
        return self.explorer.max_depth

    @property
    def direction(self) -> Direction:
        return self.explorer.direction

    # ----- exploration commands -----
    def select_focus(self, cell_id: str) -> FrozenSet[str]:
        """
        Handle a node click: focus the cell and show what is reachable from it.

        Raises:
            UnknownCellError: If the cell does not exist; nothing changes
        """
        if cell_id not in self.network:
            raise UnknownCellError(cell_id)
        if self.config.stop_refinement_on_focus:
            self.refinement.stop()
        visited = self.explorer.select_focus(cell_id)
        logger.info(
            "Focus %s: %d / %d cells visible", self.describe_focus(), len(visited), len(self.graph)
        )
        self._notify()
        return visited

    def set_parameters(
        self,
        max_depth: Optional[int] = None,
        direction: Union[Direction, str, None] = None,
    ) -> FrozenSet[str]:
        """
        Change depth and/or direction; re-walks when a focus is set.

        Raises:
            InvalidParameterError: On a bad depth or direction; nothing changes
        """
        visited = self.explorer.set_parameters(max_depth=max_depth, direction=direction)
        if self.focus is not None:
            self._notify()
        return visited

    def clear(self) -> None:
        """Drop the focus and show the whole network."""
        self.explorer.clear()
        self._notify()

    def hide_all(self) -> None:
        """Blank the canvas."""
        self.explorer.hide_all()
        self._notify()

    # ----- layout commands -----
    def configure_layout(self, options: Union[RefinementOptions, Mapping[str, Any]]) -> RefinementOptions:
        return self.refinement.configure(options)

    def start_layout(self) -> bool:
        return self.refinement.start()

    def stop_layout(self) -> None:
        self.refinement.stop()

    def tick_layout(self) -> bool:
        return self.refinement.tick()

    def close(self) -> None:
        """Stop background work owned by the session."""
        self.refinement.stop()

    # ----- presentation -----
    def describe_focus(self) -> str:
        """Display text for the focused cell: ``"<id> (<tag>)"``, or empty without a focus."""
        if self.focus is None:
            return ""
        tag = self.network.cells[self.focus].tag
        return f"{self.focus} ({tag})" if tag else self.focus

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the session for adapters."""
        return {
            "focus": self.focus,
            "focus_label": self.describe_focus(),
            "max_depth": self.max_depth,
            "direction": self.direction.value,
            "visited": canonical_order(self.visited),
            "layout_running": self.refinement.running,
            "graph": self.graph.to_dict(),
        }
