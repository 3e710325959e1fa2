"""
Unit tests for the visual graph builder and VisualGraph mutations.
"""

import pytest

from nurviz_core.config import Palette, ViewConfig
from nurviz_core.enums import NodeColorPolicy, Role
from nurviz_core.errors import UnknownCellError
from nurviz_core.layout import assign_layout
from nurviz_core.view import CURVED_ARROW, build_visual_graph
from tests.netutil import build_network, example_network


def _graph(net=None, config=None):
    net = net or example_network()
    return build_visual_graph(net, assign_layout(net), config)


class TestBuildVisualGraph:
    """Test the network -> visual graph mapping."""

    def test_one_node_per_cell_one_edge_per_synapse(self):
        net = build_network(
            [("1", "a", "b", 1), ("2", "a", "b", -2), ("3", "b", "c", 0)], cells=["lonely"]
        )
        graph = _graph(net)
        assert set(graph.nodes) == set(net.cells)
        assert set(graph.edges) == set(net.synapses)

    def test_node_fields(self):
        graph = _graph()
        a = graph.node("A")
        assert a.label == "in-1"
        assert a.size == 1
        assert a.role == Role.INPUT
        assert (a.x, a.y) == (10.0, 1200.0)
        assert a.hidden is False
        # Untagged cells are labeled by id
        assert graph.node("B").label == "B"
        assert graph.node("B").size == 2

    def test_role_colors(self):
        graph = _graph()
        assert graph.node("A").color == "#ffffff"
        assert graph.node("B").color == "#aaaaaa"
        assert graph.node("C").color == "#444444"

    def test_edge_polarity_colors(self):
        net = build_network([("1", "a", "b", 5), ("2", "b", "c", -3), ("3", "c", "a", 0)])
        graph = _graph(net)
        assert graph.edges["1"].color == "#00FF2D"
        assert graph.edges["2"].color == "#A62A2A"
        assert graph.edges["3"].color == "#000000"
        assert graph.edges["2"].millivolts == -3.0

    def test_polarity_node_colors(self):
        cfg = ViewConfig(node_color_policy=NodeColorPolicy.POLARITY)
        graph = _graph(config=cfg)
        assert graph.node("A").color == "#00FF2D"
        assert graph.node("B").color == "#A62A2A"
        # No outgoing synapses
        assert graph.node("C").color == "#000000"

    def test_custom_palette(self):
        cfg = ViewConfig(palette=Palette(input="#123456", excitatory="green"))
        graph = _graph(config=cfg)
        assert graph.node("A").color == "#123456"
        assert graph.edges["S1"].color == "green"

    def test_curved_edges_hint(self):
        assert _graph().edges["S1"].curve is None
        assert _graph(config=ViewConfig(curved_edges=True)).edges["S1"].curve == CURVED_ARROW

    def test_missing_placement(self):
        net = example_network()
        placements = assign_layout(net)
        del placements["B"]
        with pytest.raises(ValueError):
            build_visual_graph(net, placements)

    def test_build_is_deterministic(self):
        net = example_network()
        assert _graph(net).to_json() == _graph(net).to_json()


class TestVisualGraphVisibility:
    """Test the visibility mask."""

    def test_show_only(self):
        graph = _graph()
        graph.show_only({"A", "B"})
        assert graph.visible_node_ids() == {"A", "B"}
        assert graph.node("C").hidden

    def test_show_only_overwrites_previous(self):
        graph = _graph()
        graph.show_only({"A"})
        graph.show_only({"C"})
        assert graph.visible_node_ids() == {"C"}

    def test_hide_all_and_show_all(self):
        graph = _graph()
        graph.hide_all()
        assert graph.visible_node_ids() == frozenset()
        graph.show_all()
        assert graph.visible_node_ids() == {"A", "B", "C"}


class TestVisualGraphPositions:
    """Test position updates."""

    def test_update_positions(self):
        graph = _graph()
        graph.update_positions({"A": (1, 2)})
        assert graph.positions()["A"] == (1.0, 2.0)
        assert graph.node("B").y == 1.0

    def test_update_unknown_node_changes_nothing(self):
        graph = _graph()
        before = graph.positions()
        with pytest.raises(UnknownCellError):
            graph.update_positions({"A": (0, 0), "Z": (1, 1)})
        assert graph.positions() == before

    def test_positions_do_not_touch_visibility(self):
        graph = _graph()
        graph.show_only({"A"})
        graph.update_positions({"B": (5, 5)})
        assert graph.visible_node_ids() == {"A"}

    def test_copy_is_independent(self):
        graph = _graph()
        clone = graph.copy()
        clone.update_positions({"A": (0, 0)})
        clone.hide_all()
        assert graph.positions()["A"] == (10.0, 1200.0)
        assert graph.visible_node_ids() == {"A", "B", "C"}


class TestSerialization:
    """Test plain-data output for adapters."""

    def test_to_dict(self):
        data = _graph().to_dict()
        assert [n["id"] for n in data["nodes"]] == ["A", "B", "C"]
        assert data["nodes"][0]["role"] == "INPUT"
        assert data["edges"][0] == {
            "id": "S1",
            "source": "A",
            "target": "B",
            "color": "#00FF2D",
            "millivolts": 5.0,
            "curve": None,
        }
