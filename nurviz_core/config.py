"""
Configuration objects for the nurviz viewer.

Exposes layout geometry, palettes, explorer defaults and refinement options
as plain dataclasses, so visual variants are a matter of configuration
rather than code forks. Configurations can be read from YAML files.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

import yaml

from .enums import Direction, LanePolicy, NodeColorPolicy, Role
from .errors import InvalidParameterError

NETWORK_FILE_ENV = "NETWORK_FILE"


@dataclass
class LayoutConfig:
    """
    Geometry of the initial lane layout.

    Defaults put inputs on a row at
    depth 1200, outputs at -200, and the interior block growing from depth 1
    in bands that wrap once an offset passes 400.
    """

    # Zig-zag step magnitude
    fanout: float = 10.0

    # Interior lane wraps into a new band past this offset magnitude
    interior_wrap_width: float = 400.0
    interior_start_depth: float = 1.0

    # Fixed depths of the input and output lanes
    input_depth: float = 1200.0
    output_depth: float = -200.0

    lane_policy: LanePolicy = LanePolicy.ZIGZAG

    # Tags starting with this prefix mark input cells
    input_tag_prefix: str = "in-"

    def __post_init__(self):
        if self.fanout == 0:
            raise InvalidParameterError("fanout", self.fanout, "must be non-zero")
        if self.interior_wrap_width <= 0:
            raise InvalidParameterError(
                "interior_wrap_width", self.interior_wrap_width, "must be positive"
            )


@dataclass
class Palette:
    """Colors for node roles and synapse polarity."""

    input: str = "#ffffff"
    interior: str = "#aaaaaa"
    output: str = "#444444"

    excitatory: str = "#00FF2D"
    inhibitory: str = "#A62A2A"
    neutral: str = "#000000"

    def for_role(self, role: Role) -> str:
        if role == Role.INPUT:
            return self.input
        if role == Role.OUTPUT:
            return self.output
        return self.interior

    def for_millivolts(self, millivolts: float) -> str:
        if millivolts > 0:
            return self.excitatory
        if millivolts < 0:
            return self.inhibitory
        return self.neutral


@dataclass
class ViewConfig:
    """Derivation rules for the visual graph."""

    node_color_policy: NodeColorPolicy = NodeColorPolicy.ROLE
    # Renderers that support it draw edges as curved arrows
    curved_edges: bool = False
    palette: Palette = field(default_factory=Palette)


@dataclass
class ExplorerConfig:
    """Initial parameters of the path explorer."""

    max_depth: int = 2
    direction: Direction = Direction.BOTH


# camelCase option names of the sigma.js ForceAtlas2 plugin
_REFINEMENT_ALIASES = {
    "iterationsPerRender": "iterations_per_render",
    "edgeWeightInfluence": "edge_weight_influence",
    "linLogMode": "lin_log_mode",
    "adjustSizes": "adjust_sizes",
    "outboundAttractionDistribution": "outbound_attraction_distribution",
    "scalingRatio": "scaling_ratio",
    "restartOnStart": "restart_on_start",
}


@dataclass
class RefinementOptions:
    """
    Options forwarded to the force-directed refinement engine.

    The controller does not interpret these beyond checking their shape.
    """

    iterations_per_render: int = 10
    gravity: float = 10.0
    edge_weight_influence: float = 0.0
    # Logarithmic rather than linear attraction
    lin_log_mode: bool = True
    # Resolve node overlap using node sizes
    adjust_sizes: bool = True
    # Iterate on a background thread instead of host-driven ticks
    worker: bool = False
    outbound_attraction_distribution: bool = True
    scaling_ratio: float = 1.0
    # start() on a running refinement resets it instead of doing nothing
    restart_on_start: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check field types and ranges.

        Raises:
            InvalidParameterError: On the first offending field
        """
        for name in ("lin_log_mode", "adjust_sizes", "worker",
                     "outbound_attraction_distribution", "restart_on_start"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise InvalidParameterError(name, value, "expected a boolean")

        iterations = self.iterations_per_render
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations <= 0:
            raise InvalidParameterError(
                "iterations_per_render", iterations, "expected a positive integer"
            )

        for name in ("gravity", "edge_weight_influence", "scaling_ratio"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidParameterError(name, value, "expected a number")
        if self.edge_weight_influence < 0:
            raise InvalidParameterError(
                "edge_weight_influence", self.edge_weight_influence, "must be >= 0"
            )
        if self.scaling_ratio <= 0:
            raise InvalidParameterError("scaling_ratio", self.scaling_ratio, "must be > 0")

        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int)):
            raise InvalidParameterError("seed", self.seed, "expected an integer or null")

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "RefinementOptions":
        """
        Build options from a mapping of snake_case or plugin-style camelCase keys.

        Raises:
            InvalidParameterError: For unknown keys or badly typed values
        """
        if isinstance(options, RefinementOptions):
            return options
        if not isinstance(options, Mapping):
            raise InvalidParameterError("refinement options", options, "expected a mapping")
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = _REFINEMENT_ALIASES.get(key, key)
            if name not in known:
                raise InvalidParameterError("refinement option", key, "unrecognized")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionConfig:
    """Everything an explorer session needs, grouped by component."""

    layout: LayoutConfig = field(default_factory=LayoutConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    explorer: ExplorerConfig = field(default_factory=ExplorerConfig)
    refinement: RefinementOptions = field(default_factory=RefinementOptions)

    # Selecting a focus halts a running refinement first
    stop_refinement_on_focus: bool = True


_ENUM_FIELDS = {
    "lane_policy": LanePolicy,
    "node_color_policy": NodeColorPolicy,
}


def _build_section(cls, section: str, data: Any):
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise InvalidParameterError(section, data, "expected a mapping")
    known = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            raise InvalidParameterError(f"{section} option", key, "unrecognized")
        if key in _ENUM_FIELDS:
            try:
                value = _ENUM_FIELDS[key](str(value).lower())
            except ValueError as exc:
                raise InvalidParameterError(key, value) from exc
        elif key == "direction":
            value = Direction.parse(value)
        elif key == "palette":
            value = _build_section(Palette, "palette", value)
        kwargs[key] = value
    return cls(**kwargs)


def config_from_dict(spec: Optional[Mapping[str, Any]]) -> SessionConfig:
    """
    Build a `SessionConfig` from a parsed YAML/JSON mapping.

    Recognized sections: ``layout``, ``view``, ``explorer``, ``refinement``
    and ``session`` (for session-level switches). Missing sections keep
    their defaults.

    Raises:
        InvalidParameterError: For unknown sections, keys or values
    """
    spec = spec or {}
    if not isinstance(spec, Mapping):
        raise InvalidParameterError("config", spec, "expected a mapping")

    unknown = set(spec) - {"layout", "view", "explorer", "refinement", "session"}
    if unknown:
        raise InvalidParameterError("config section", sorted(unknown)[0], "unrecognized")

    session = spec.get("session") or {}
    if not isinstance(session, Mapping):
        raise InvalidParameterError("session", session, "expected a mapping")
    for key in session:
        if key != "stop_refinement_on_focus":
            raise InvalidParameterError("session option", key, "unrecognized")
    stop_on_focus = session.get("stop_refinement_on_focus", True)
    if not isinstance(stop_on_focus, bool):
        raise InvalidParameterError("stop_refinement_on_focus", stop_on_focus, "expected a boolean")

    return SessionConfig(
        layout=_build_section(LayoutConfig, "layout", spec.get("layout")),
        view=_build_section(ViewConfig, "view", spec.get("view")),
        explorer=_build_explorer(spec.get("explorer")),
        refinement=RefinementOptions.from_mapping(spec.get("refinement") or {}),
        stop_refinement_on_focus=stop_on_focus,
    )


def _build_explorer(data: Any) -> ExplorerConfig:
    cfg = _build_section(ExplorerConfig, "explorer", data)
    depth = cfg.max_depth
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 0:
        raise InvalidParameterError("max_depth", depth, "expected a non-negative integer")
    return cfg


def load_config(filepath: str) -> SessionConfig:
    """
    Load a `SessionConfig` from a YAML file.

    Example::

        layout:
          fanout: 12
          lane_policy: monotonic
        view:
          node_color_policy: polarity
        explorer:
          max_depth: 3
          direction: fwd
        refinement:
          gravity: 5
          worker: true
    """
    with open(filepath, "r", encoding="utf-8") as f:
        spec = yaml.safe_load(f)
    return config_from_dict(spec)


def resolve_network_source(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the network file named by ``NETWORK_FILE``, or None when unset."""
    environ = os.environ if environ is None else environ
    value = environ.get(NETWORK_FILE_ENV, "").strip()
    return value or None
