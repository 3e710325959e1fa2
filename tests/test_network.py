"""
Unit tests for the network model.

Covers Cell/Synapse records, role classification, canonical id ordering,
integrity checking and the read-only Network queries.
"""

import pytest

from nurviz_core.enums import Direction, Role
from nurviz_core.errors import IntegrityError, UnknownCellError
from nurviz_core.network import (
    Cell,
    Network,
    Synapse,
    canonical_order,
    check_integrity,
    classify_role,
)
from tests.netutil import build_network, example_network


class TestRoles:
    """Test role classification from tags."""

    def test_input_prefix(self):
        assert classify_role("in-1") == Role.INPUT
        assert classify_role("in-retina") == Role.INPUT

    def test_other_tag_is_output(self):
        assert classify_role("out-1") == Role.OUTPUT
        assert classify_role("motor") == Role.OUTPUT
        # Prefix must be at the start
        assert classify_role("main-in-1") == Role.OUTPUT

    def test_no_tag_is_interior(self):
        assert classify_role(None) == Role.INTERIOR
        assert classify_role("") == Role.INTERIOR

    def test_custom_prefix(self):
        assert classify_role("sensor-3", input_prefix="sensor-") == Role.INPUT
        assert classify_role("in-3", input_prefix="sensor-") == Role.OUTPUT


class TestCanonicalOrder:
    """Test the content-defined id ordering."""

    def test_numeric_ids_by_value(self):
        assert canonical_order(["10", "9", "100", "1"]) == ["1", "9", "10", "100"]

    def test_numeric_before_text(self):
        assert canonical_order(["b", "2", "a", "-1"]) == ["-1", "2", "a", "b"]

    def test_independent_of_input_order(self):
        ids = ["C", "3", "A", "20", "B"]
        assert canonical_order(ids) == canonical_order(reversed(ids))


class TestIntegrity:
    """Test dangling reference detection."""

    def test_consistent_network_is_ok(self):
        net = example_network()
        assert net.integrity.ok
        assert net.integrity.issues() == []

    def test_synapse_with_missing_cell_raises(self):
        cells = {"A": Cell("A", axon_synapses=frozenset({"S1"}))}
        synapses = {"S1": Synapse("S1", "A", "Z", 1.0)}
        with pytest.raises(IntegrityError) as excinfo:
            Network(cells, synapses)
        assert "S1" in excinfo.value.synapse_ids
        assert "S1" in str(excinfo.value)
        assert excinfo.value.report.synapse_missing_dendrite_cell == {"S1": "Z"}

    def test_cell_with_missing_synapse_reported(self):
        cells = {
            "A": Cell("A", axon_synapses=frozenset({"S1", "S9"})),
            "B": Cell("B", dendrite_synapses=frozenset({"S1", "S8"})),
        }
        synapses = {"S1": Synapse("S1", "A", "B", 2.0)}
        report = check_integrity(cells, synapses)
        assert not report.ok
        assert report.offending_cell_ids == {"A", "B"}
        assert report.missing_synapse_ids == {"S8", "S9"}
        assert report.offending_synapse_ids == frozenset()
        assert report.issues() == [
            "Cell 'A' has missing axon synapse 'S9'",
            "Cell 'B' has missing dendrite synapse 'S8'",
        ]

    def test_all_four_categories(self):
        cells = {"A": Cell("A", axon_synapses=frozenset({"X"}), dendrite_synapses=frozenset({"Y"}))}
        synapses = {"S1": Synapse("S1", "P", "Q", 0.0)}
        report = check_integrity(cells, synapses)
        assert set(report.to_dict()) == {
            "cell_missing_axon_synapses",
            "cell_missing_dendrite_synapses",
            "synapse_missing_axon_cell",
            "synapse_missing_dendrite_cell",
        }

    def test_empty_network_is_valid(self):
        net = Network({}, {})
        assert len(net) == 0
        assert net.integrity.ok


class TestNetworkQueries:
    """Test the read-only queries of a loaded network."""

    def test_counts(self):
        net = example_network()
        assert len(net) == 3
        assert len(net.synapses) == 2
        assert "A" in net
        assert "Z" not in net

    def test_mappings_are_read_only(self):
        net = example_network()
        with pytest.raises(TypeError):
            net.cells["D"] = Cell("D")

    def test_roles_and_degree(self):
        net = example_network()
        assert net.role_of("A") == Role.INPUT
        assert net.role_of("B") == Role.INTERIOR
        assert net.role_of("C") == Role.OUTPUT
        assert net.degree("B") == 2
        assert net.degree("A") == 1

    def test_unknown_cell(self):
        net = example_network()
        with pytest.raises(UnknownCellError) as excinfo:
            net.cell("nope")
        assert excinfo.value.cell_id == "nope"
        # Still catchable as a KeyError
        with pytest.raises(KeyError):
            net.neighbors("nope")

    def test_neighbors_by_direction(self):
        net = example_network()
        assert net.neighbors("B", Direction.FORWARD) == ["C"]
        assert net.neighbors("B", Direction.BACKWARD) == ["A"]
        assert sorted(net.neighbors("B", Direction.BOTH)) == ["A", "C"]
        assert net.neighbors("C", Direction.FORWARD) == []

    def test_parallel_synapses_and_self_loop(self):
        net = build_network([("1", "A", "B", 1), ("2", "A", "B", -1), ("3", "A", "A", 1)])
        assert net.neighbors("A", Direction.FORWARD) == ["B", "B", "A"]
        assert net.outgoing_millivolts("A") == 1

    def test_totals(self):
        totals = example_network().totals()
        assert totals["cells"] == 3
        assert totals["synapses"] == 2
        assert totals["avg_synapses_per_cell"] == round(2 / 3, 3)
        assert totals["roles"] == {"input": 1, "interior": 1, "output": 1}
        assert totals["synapses_by_polarity"] == {"excitatory": 1, "inhibitory": 1, "neutral": 0}


class TestNetworkExport:
    """Test NetworkX conversion and GraphML export."""

    def test_to_networkx_keeps_parallel_edges(self):
        net = build_network([("1", "A", "B", 1), ("2", "A", "B", -1)])
        G = net.to_networkx()
        assert G.number_of_nodes() == 2
        assert G.number_of_edges() == 2
        assert G["A"]["B"]["2"]["millivolts"] == -1.0

    def test_export_graphml(self, tmp_path):
        import networkx as nx

        path = tmp_path / "net.graphml"
        example_network().export_graphml(str(path))
        G = nx.read_graphml(str(path))
        assert set(G.nodes()) == {"A", "B", "C"}
        assert G.nodes["A"]["role"] == "INPUT"
