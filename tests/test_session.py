"""
Integration tests for the explorer session command interface.
"""

import pytest

from nurviz_core.codec import ON_DANGLING_EXCLUDE
from nurviz_core.config import SessionConfig, config_from_dict
from nurviz_core.enums import Direction
from nurviz_core.errors import IntegrityError, InvalidParameterError, UnknownCellError
from nurviz_core.refine import RefinementEngine
from nurviz_core.session import ExplorerSession
from tests.netutil import encode, example_document, example_network


class NullEngine(RefinementEngine):
    def configure(self, options):
        self.options = options

    def step(self, graph):
        pass


def _session(config=None):
    session = ExplorerSession(example_network(), config=config, engine=NullEngine())
    changes = []
    session.on_change(lambda s: changes.append(s.graph.visible_node_ids()))
    return session, changes


class TestSessionConstruction:
    """Test loading and the initial view."""

    def test_initial_view(self):
        session, _ = _session()
        assert len(session.graph) == 3
        assert session.graph.visible_node_ids() == {"A", "B", "C"}
        assert session.focus is None
        assert session.max_depth == 2
        assert session.direction == Direction.BOTH
        assert set(session.placements) == {"A", "B", "C"}

    def test_from_bytes(self):
        session = ExplorerSession.from_bytes(encode(example_document()), engine=NullEngine())
        assert set(session.graph.nodes) == {"1", "2", "3"}
        assert session.graph.node("1").label == "in-1"

    def test_from_bytes_integrity_failure(self):
        doc = example_document()
        doc["Cells"]["2"]["AxonSynapses"]["99"] = True
        with pytest.raises(IntegrityError):
            ExplorerSession.from_bytes(encode(doc))
        session = ExplorerSession.from_bytes(encode(doc), on_dangling=ON_DANGLING_EXCLUDE)
        assert len(session.graph.edges) == 2

    def test_from_file(self, tmp_path):
        path = tmp_path / "net.nur"
        path.write_bytes(encode(example_document()))
        session = ExplorerSession.from_file(str(path), engine=NullEngine())
        assert len(session.network) == 3

    def test_explorer_defaults_from_config(self):
        cfg = config_from_dict({"explorer": {"max_depth": 1, "direction": "fwd"}})
        session, _ = _session(cfg)
        assert session.max_depth == 1
        assert session.direction == Direction.FORWARD


class TestSessionCommands:
    """Test commands and change notifications."""

    def test_select_focus_notifies(self):
        session, changes = _session()
        session.set_parameters(max_depth=1, direction="forward")
        assert changes == []
        session.select_focus("A")
        assert changes == [{"A", "B"}]
        assert session.describe_focus() == "A (in-1)"

    def test_describe_untagged_focus(self):
        session, _ = _session()
        assert session.describe_focus() == ""
        session.select_focus("B")
        assert session.describe_focus() == "B"

    def test_set_parameters_with_focus_notifies(self):
        session, changes = _session()
        session.set_parameters(max_depth=1, direction="forward")
        session.select_focus("A")
        session.set_parameters(max_depth=2)
        assert changes[-1] == {"A", "B", "C"}

    def test_failed_commands_do_not_notify(self):
        session, changes = _session()
        session.select_focus("A")
        count = len(changes)
        visible = session.graph.visible_node_ids()
        with pytest.raises(UnknownCellError):
            session.select_focus("missing")
        with pytest.raises(InvalidParameterError):
            session.set_parameters(max_depth=-1)
        assert len(changes) == count
        assert session.graph.visible_node_ids() == visible

    def test_clear_and_hide_all(self):
        session, changes = _session()
        session.select_focus("C")
        session.hide_all()
        assert changes[-1] == frozenset()
        session.clear()
        assert changes[-1] == {"A", "B", "C"}
        assert session.focus is None

    def test_focus_stops_refinement(self):
        session, _ = _session()
        session.start_layout()
        assert session.refinement.running
        session.select_focus("A")
        assert not session.refinement.running

    def test_focus_can_leave_refinement_running(self):
        session, _ = _session(SessionConfig(stop_refinement_on_focus=False))
        session.start_layout()
        session.select_focus("A")
        assert session.refinement.running
        session.close()
        assert not session.refinement.running

    def test_layout_commands(self):
        session, changes = _session()
        opts = session.configure_layout({"gravity": 1})
        assert opts.gravity == 1
        assert session.tick_layout() is False
        assert session.start_layout() is True
        assert session.tick_layout() is True
        # Each batch is a change
        assert len(changes) == 1
        session.stop_layout()
        assert not session.refinement.running

    def test_remove_listener(self):
        session, changes = _session()
        session.on_change(None)
        session.select_focus("A")
        assert changes == []


class TestSnapshot:
    """Test the plain-data snapshot used by adapters."""

    def test_snapshot(self):
        session, _ = _session()
        session.set_parameters(max_depth=1, direction="backward")
        session.select_focus("C")
        snap = session.snapshot()
        assert snap["focus"] == "C"
        assert snap["focus_label"] == "C (out-1)"
        assert snap["max_depth"] == 1
        assert snap["direction"] == "backward"
        assert snap["visited"] == ["B", "C"]
        assert snap["layout_running"] is False
        hidden = {n["id"]: n["hidden"] for n in snap["graph"]["nodes"]}
        assert hidden == {"A": True, "B": False, "C": False}
