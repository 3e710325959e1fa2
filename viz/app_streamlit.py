"""
Streamlit viewer for nurviz networks.

Loads a ``.nur`` network (from ``NETWORK_FILE`` or an uploaded file), draws
it in lanes by cell role and lets the user explore the paths through it:
pick a focus cell, set a depth and a direction, and only the cells reachable
from the focus stay on screen. Layout refinement can be started, stopped and
stepped from the sidebar.

Streamlit has no node clicks on a static figure, so the focus selector in
the sidebar stands in for clicking a node.

Run with::

    streamlit run viz/app_streamlit.py
"""

import logging
import os
import sys

# Add project root to Python path BEFORE any imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import matplotlib.pyplot as plt
import networkx as nx
import streamlit as st
import yaml

from nurviz_core import (
    Direction,
    ExplorerSession,
    NurvizError,
    SessionConfig,
    config_from_dict,
    resolve_network_source,
)
from nurviz_core.network import canonical_order
from viz.utils import direction_label, scaled_node_size, visible_subgraph

logger = logging.getLogger(__name__)

DIRECTION_OPTIONS = [d.value for d in Direction]
NO_FOCUS = "(none)"


def focus_options(session: ExplorerSession):
    """Selectable focus entries: a no-focus entry, then every cell in canonical order."""
    return [NO_FOCUS] + canonical_order(session.network.cells)


def format_focus_option(session: ExplorerSession, cell_id: str) -> str:
    if cell_id == NO_FOCUS:
        return cell_id
    tag = session.network.cells[cell_id].tag
    return f"{cell_id} ({tag})" if tag else cell_id


def build_session(data: bytes, config_text: str = "", on_dangling: str = "raise") -> ExplorerSession:
    """Create a session from network bytes and optional YAML config text."""
    config = config_from_dict(yaml.safe_load(config_text)) if config_text.strip() else SessionConfig()
    return ExplorerSession.from_bytes(data, config=config, on_dangling=on_dangling)


def draw_graph(session: ExplorerSession):
    """Render the visible part of the session's graph into a matplotlib figure."""
    pos, edges = visible_subgraph(session.graph)
    nodes = session.graph.nodes
    sizes = [n.size for n in nodes.values()]

    G = nx.MultiDiGraph()
    G.add_nodes_from(pos)
    for src, dst, color in edges:
        G.add_edge(src, dst, color=color)

    fig, ax = plt.subplots(figsize=(10, 8))
    if pos:
        node_list = list(G.nodes())
        nx.draw_networkx_edges(
            G,
            pos,
            edge_color=[d["color"] for _, _, d in G.edges(data=True)],
            arrows=True,
            arrowsize=8,
            width=0.8,
            alpha=0.7,
            connectionstyle="arc3,rad=0.15" if session.config.view.curved_edges else "arc3",
            ax=ax,
        )
        nx.draw_networkx_nodes(
            G,
            pos,
            nodelist=node_list,
            node_color=[nodes[n].color for n in node_list],
            node_size=[scaled_node_size(nodes[n].size, sizes) ** 2 * 4 for n in node_list],
            edgecolors="#333333",
            linewidths=0.5,
            ax=ax,
        )
        if session.focus in pos:
            fx, fy = pos[session.focus]
            ax.scatter(fx, fy, s=300, facecolors="none", edgecolors="#ff7f0e", linewidths=2.0, zorder=5)
        if len(pos) <= 60:
            nx.draw_networkx_labels(
                G, pos, labels={n: nodes[n].label for n in node_list}, font_size=7, ax=ax
            )
    else:
        ax.text(0.5, 0.5, "No cells visible", ha="center", va="center", transform=ax.transAxes)
    ax.axis("off")
    return fig


def _read_network_source():
    """Bytes and display name of the network to show, or (None, None) while waiting for upload."""
    path = resolve_network_source()
    if path:
        with open(path, "rb") as f:
            return f.read(), path
    uploaded = st.file_uploader("Network file", type=["nur", "json"])
    if uploaded is None:
        return None, None
    return uploaded.getvalue(), uploaded.name


def main():
    st.set_page_config(layout="wide", page_title="nurviz")
    st.title("nurviz: network path explorer")

    data, source_name = _read_network_source()
    if data is None:
        st.info("Set NETWORK_FILE or upload a .nur / .json network to begin.")
        st.stop()

    with st.sidebar:
        st.header("Configuration")
        config_file = st.file_uploader("Viewer config (YAML)", type=["yaml", "yml"])
        exclude_dangling = st.checkbox("Exclude dangling synapses", value=False)

    config_text = config_file.getvalue().decode("utf-8") if config_file is not None else ""
    on_dangling = "exclude" if exclude_dangling else "raise"
    session_key = (source_name, len(data), config_text, on_dangling)

    if st.session_state.get("session_key") != session_key:
        previous = st.session_state.get("session")
        if previous is not None:
            previous.close()
        try:
            st.session_state.session = build_session(data, config_text, on_dangling)
        except NurvizError as exc:
            st.session_state.pop("session", None)
            st.session_state.pop("session_key", None)
            st.error(f"Could not load {source_name}: {exc}")
            st.stop()
        st.session_state.session_key = session_key
        logger.info("Loaded %s", source_name)

    session: ExplorerSession = st.session_state.session

    with st.sidebar:
        st.divider()
        st.header("Path")
        options = focus_options(session)
        current = session.focus if session.focus is not None else NO_FOCUS
        focus = st.selectbox(
            "Focus cell",
            options,
            index=options.index(current),
            format_func=lambda cid: format_focus_option(session, cid),
        )
        depth = st.number_input("Depth", min_value=0, value=session.max_depth, step=1)
        direction = st.selectbox(
            "Direction",
            DIRECTION_OPTIONS,
            index=DIRECTION_OPTIONS.index(session.direction.value),
            format_func=direction_label,
        )

        try:
            if int(depth) != session.max_depth or direction != session.direction.value:
                session.set_parameters(max_depth=int(depth), direction=direction)
            if focus != current:
                if focus == NO_FOCUS:
                    session.clear()
                else:
                    session.select_focus(focus)
        except NurvizError as exc:
            st.error(str(exc))

        col_clear, col_hide = st.columns(2)
        with col_clear:
            if st.button("Clear", use_container_width=True):
                session.clear()
                st.rerun()
        with col_hide:
            if st.button("Hide all", use_container_width=True):
                session.hide_all()

        st.divider()
        st.header("Layout")
        col_start, col_stop, col_step = st.columns(3)
        with col_start:
            if st.button("Start", use_container_width=True):
                session.start_layout()
        with col_stop:
            if st.button("Stop", use_container_width=True):
                session.stop_layout()
        with col_step:
            if st.button("Step", use_container_width=True):
                if not session.refinement.running:
                    session.start_layout()
                    session.tick_layout()
                    session.stop_layout()
                else:
                    session.tick_layout()
        st.caption("Running" if session.refinement.running else "Stopped")
        if session.refinement.error is not None:
            st.error(f"Layout refinement failed: {session.refinement.error}")

    # Host-driven refinement: one batch per render
    if session.refinement.running and not session.refinement.options.worker:
        session.tick_layout()

    totals = session.network.totals(session.config.layout.input_tag_prefix)
    col_cells, col_synapses, col_visible, col_focus = st.columns(4)
    with col_cells:
        st.metric("Cells", totals["cells"])
    with col_synapses:
        st.metric("Synapses", totals["synapses"])
    with col_visible:
        st.metric("Visible", len(session.graph.visible_node_ids()))
    with col_focus:
        st.metric("Focus", session.describe_focus() or "-")

    fig = draw_graph(session)
    st.pyplot(fig, use_container_width=True)
    plt.close(fig)

    if session.refinement.running:
        st.button("Refresh layout")


if __name__ == "__main__":
    main()
