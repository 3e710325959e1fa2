"""
Tests for the renderer payload builders in viz.utils.
"""

from nurviz_core.config import ViewConfig
from nurviz_core.layout import assign_layout
from nurviz_core.view import build_visual_graph
from tests.netutil import example_network
from viz.utils import (
    MAX_NODE_SIZE,
    MIN_NODE_SIZE,
    build_cytoscape_elements,
    build_sigma_graph,
    direction_label,
    scaled_node_size,
    visible_subgraph,
)


def _graph(config=None):
    net = example_network()
    return build_visual_graph(net, assign_layout(net), config)


def test_builder_basic_nodes_and_edges():
    els = build_cytoscape_elements(_graph())
    node_ids = {e['data']['id'] for e in els if 'source' not in e['data']}
    edge_ids = {e['data']['id'] for e in els if 'source' in e['data']}

    assert node_ids == {'A', 'B', 'C'}
    assert edge_ids == {'S1', 'S2'}

    # Check node A attributes
    node_a = next(e for e in els if e['data']['id'] == 'A')
    assert node_a['data']['label'] == 'in-1'
    assert node_a['data']['color'] == '#ffffff'
    assert node_a['data']['size'] == 1
    assert node_a['data']['group'] == 'INPUT'
    assert node_a['position'] == {'x': 10.0, 'y': 1200.0}
    assert node_a['classes'] == ''

    # Check edge attributes
    edge = next(e for e in els if e['data']['id'] == 'S2')
    assert edge['data']['source'] == 'B'
    assert edge['data']['target'] == 'C'
    assert edge['data']['color'] == '#A62A2A'
    assert abs(edge['data']['weight'] + 3.0) < 1e-9
    assert 'curve' not in edge['data']


def test_builder_marks_hidden_nodes():
    graph = _graph()
    graph.show_only({'A', 'B'})
    els = build_cytoscape_elements(graph)
    node_c = next(e for e in els if e['data']['id'] == 'C')
    assert node_c['data']['hidden'] is True
    assert node_c['classes'] == 'hidden'


def test_builder_can_drop_hidden_nodes_and_their_edges():
    graph = _graph()
    graph.show_only({'A', 'B'})
    els = build_cytoscape_elements(graph, include_hidden=False)
    ids = {e['data']['id'] for e in els}
    assert ids == {'A', 'B', 'S1'}


def test_builder_curve_hint():
    els = build_cytoscape_elements(_graph(ViewConfig(curved_edges=True)))
    edge = next(e for e in els if e['data']['id'] == 'S1')
    assert edge['data']['curve'] == 'curvedArrow'


def test_sigma_graph_shape():
    graph = _graph(ViewConfig(curved_edges=True))
    graph.hide_all()
    data = build_sigma_graph(graph)
    assert [n['id'] for n in data['nodes']] == ['A', 'B', 'C']
    assert all(n['hidden'] for n in data['nodes'])
    assert data['edges'][0] == {
        'id': 'S1', 'source': 'A', 'target': 'B', 'color': '#00FF2D', 'type': 'curvedArrow',
    }


def test_scaled_node_size():
    sizes = [1, 2, 5]
    assert scaled_node_size(1, sizes) == MIN_NODE_SIZE
    assert scaled_node_size(5, sizes) == MAX_NODE_SIZE
    assert scaled_node_size(3, sizes) == (MIN_NODE_SIZE + MAX_NODE_SIZE) / 2
    assert scaled_node_size(4, [4, 4]) == (MIN_NODE_SIZE + MAX_NODE_SIZE) / 2
    assert scaled_node_size(4, []) == MIN_NODE_SIZE


def test_visible_subgraph():
    graph = _graph()
    graph.show_only({'B', 'C'})
    pos, edges = visible_subgraph(graph)
    assert set(pos) == {'B', 'C'}
    assert edges == [('B', 'C', '#A62A2A')]


def test_direction_label():
    assert direction_label('forward') == 'Forward'
    assert direction_label('BACKWARD') == 'Backward'
    assert direction_label(None) == 'Both'
