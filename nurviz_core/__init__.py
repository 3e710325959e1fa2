"""
nurviz Core Package.

This package contains the viewer core for connectome-like networks of cells
joined by weighted, directed synapses, including:

- The read-only network model and its file codec (Network, Cell, Synapse)
- A deterministic lane layout by cell role
- The renderer-agnostic visual graph builder
- The bounded-depth path explorer that drives node visibility
- A start/stop/configure controller over force-directed layout refinement
- The explorer session tying them together behind a command interface
"""

# nurviz Core Package

__version__ = "0.1.0"

from .enums import Direction, LanePolicy, NodeColorPolicy, Role
from .errors import (
    DecodeError,
    IntegrityError,
    InvalidParameterError,
    NurvizError,
    ParseError,
    UnknownCellError,
)
from .config import (
    ExplorerConfig,
    LayoutConfig,
    Palette,
    RefinementOptions,
    SessionConfig,
    ViewConfig,
    config_from_dict,
    load_config,
    resolve_network_source,
)
from .network import Cell, IntegrityReport, Network, Synapse, check_integrity, classify_role
from .codec import dump_network, load_network, load_network_file
from .layout import Placement, assign_layout
from .view import VisualEdge, VisualGraph, VisualNode, build_visual_graph
from .explorer import PathExplorer, reachable
from .refine import ForceAtlas2Engine, LayoutRefinementController, RefinementEngine
from .session import ExplorerSession
