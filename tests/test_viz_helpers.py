"""
Unit tests for small helper functions in the Streamlit viewer.
"""

import pytest

from tests.netutil import encode, example_document


class TestFocusOptions:
    def test_options_in_canonical_order(self):
        pytest.importorskip("streamlit")
        from viz.app_streamlit import NO_FOCUS, build_session, focus_options  # noqa: WPS433
        session = build_session(encode(example_document()))
        assert focus_options(session) == [NO_FOCUS, "1", "2", "3"]

    def test_option_labels(self):
        pytest.importorskip("streamlit")
        from viz.app_streamlit import NO_FOCUS, build_session, format_focus_option  # noqa: WPS433
        session = build_session(encode(example_document()))
        assert format_focus_option(session, "1") == "1 (in-1)"
        assert format_focus_option(session, "2") == "2"
        assert format_focus_option(session, NO_FOCUS) == NO_FOCUS


class TestBuildSession:
    def test_config_text_applied(self):
        pytest.importorskip("streamlit")
        from viz.app_streamlit import build_session  # noqa: WPS433
        session = build_session(
            encode(example_document()), "explorer:\n  max_depth: 0\n  direction: fwd\n"
        )
        assert session.max_depth == 0
        assert session.direction.value == "forward"

    def test_blank_config_text_uses_defaults(self):
        pytest.importorskip("streamlit")
        from viz.app_streamlit import build_session  # noqa: WPS433
        session = build_session(encode(example_document()), "   ")
        assert session.max_depth == 2


class TestDrawGraph:
    def test_draws_visible_part(self):
        pytest.importorskip("streamlit")
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from viz.app_streamlit import build_session, draw_graph  # noqa: WPS433
        session = build_session(encode(example_document()))
        session.select_focus("1")
        fig = draw_graph(session)
        assert fig.axes
        plt.close(fig)

    def test_draws_empty_canvas(self):
        pytest.importorskip("streamlit")
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from viz.app_streamlit import build_session, draw_graph  # noqa: WPS433
        session = build_session(encode(example_document()))
        session.hide_all()
        fig = draw_graph(session)
        assert fig.axes[0].texts[0].get_text() == "No cells visible"
        plt.close(fig)
