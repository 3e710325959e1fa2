"""
Lightweight renderer payload builders decoupled from Streamlit to enable testing.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from nurviz_core.view import VisualGraph

# Renderer size policy, applied here and not in the visual graph
MIN_NODE_SIZE = 2
MAX_NODE_SIZE = 10


def build_cytoscape_elements(graph: VisualGraph, include_hidden: bool = True) -> List[Dict[str, Any]]:
    """Convert a VisualGraph into Cytoscape-compatible elements.

    Hidden nodes are kept with ``data.hidden`` set (and the ``hidden`` class)
    so the renderer can toggle them without rebuilding; pass
    ``include_hidden=False`` to drop them together with their edges.
    """
    elements: List[Dict[str, Any]] = []
    shown = set()

    for node in graph.to_dict()["nodes"]:
        if node["hidden"] and not include_hidden:
            continue
        shown.add(node["id"])
        elements.append({
            "data": {
                "id": node["id"],
                "label": node["label"],
                "color": node["color"],
                "size": node["size"],
                "group": node["role"],
                "hidden": node["hidden"],
            },
            "position": {"x": node["x"], "y": node["y"]},
            "classes": "hidden" if node["hidden"] else "",
        })

    for edge in graph.edges.values():
        if edge.source not in shown or edge.target not in shown:
            continue
        data: Dict[str, Any] = {
            "id": edge.id,
            "source": edge.source,
            "target": edge.target,
            "color": edge.color,
            "weight": edge.millivolts,
        }
        if edge.curve:
            data["curve"] = edge.curve
        elements.append({"data": data})

    return elements


def build_sigma_graph(graph: VisualGraph) -> Dict[str, List[Dict[str, Any]]]:
    """Convert a VisualGraph into the ``{nodes, edges}`` shape sigma.js reads."""
    nodes = []
    for node in graph.to_dict()["nodes"]:
        nodes.append({
            "id": node["id"],
            "label": node["label"],
            "size": node["size"],
            "color": node["color"],
            "x": node["x"],
            "y": node["y"],
            "hidden": node["hidden"],
        })
    edges = []
    for edge in graph.edges.values():
        item = {
            "id": edge.id,
            "source": edge.source,
            "target": edge.target,
            "color": edge.color,
        }
        if edge.curve:
            item["type"] = edge.curve
        edges.append(item)
    return {"nodes": nodes, "edges": edges}


def scaled_node_size(size: int, sizes: List[int], lo: float = MIN_NODE_SIZE, hi: float = MAX_NODE_SIZE) -> float:
    """Map a degree into [lo, hi] linearly against the range of ``sizes``."""
    if not sizes:
        return lo
    smallest, largest = min(sizes), max(sizes)
    if largest == smallest:
        return (lo + hi) / 2
    return lo + (hi - lo) * (size - smallest) / (largest - smallest)


def visible_subgraph(graph: VisualGraph) -> Tuple[Dict[str, Tuple[float, float]], List[Tuple[str, str, str]]]:
    """Positions of visible nodes and (source, target, color) of edges between them."""
    positions = graph.positions()
    visible = graph.visible_node_ids()
    pos = {nid: xy for nid, xy in positions.items() if nid in visible}
    edges = [
        (e.source, e.target, e.color)
        for e in graph.edges.values()
        if e.source in visible and e.target in visible
    ]
    return pos, edges


def direction_label(token: Optional[str]) -> str:
    labels = {"forward": "Forward", "backward": "Backward", "both": "Both"}
    return labels.get((token or "").lower(), "Both")
