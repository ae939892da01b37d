"""
Tests for ECharts option building and chart event payload parsing.
"""

import pytest

from orgchart.chart_builder import (
    DROP_TARGET_COLOR,
    PALETTES,
    PENDING_COLOR,
    SELECTED_COLOR,
    REQUESTED_EVENT_KEYS,
    build_echart_options,
    normalize_click_payload,
    pending_summary,
    summary_rows,
    resolve_edge_from_payload,
    resolve_node_id_from_payload,
)
from orgchart.hierarchy import build
from orgchart.layout import compute_layout
from orgchart.models import Node, NodeKind, ReparentOp


@pytest.fixture
def forest():
    return build([
        Node("a", "Board", None, NodeKind.SECTOR, child_count=2, member_count=5),
        Node("b", "Operations", "a"),
        Node("c", "Finance", "a"),
    ])


def series_of(options):
    return options['series'][0]


def node_by_id(options, node_id):
    return next(n for n in series_of(options)['data'] if n['id'] == node_id)


class TestBuildOptions:

    def test_fixed_layout_graph(self, forest):
        layout = compute_layout(forest)
        options = build_echart_options(forest, layout)

        series = series_of(options)
        assert series['type'] == 'graph'
        assert series['layout'] == 'none'
        assert len(series['data']) == 3
        assert {(l['source'], l['target']) for l in series['links']} == {('a', 'b'), ('a', 'c')}

        node = node_by_id(options, 'b')
        assert (node['x'], node['y']) == layout['b']
        assert node['name'] == 'b'
        assert node['value'] == 'Operations'

    def test_links_have_arrows(self, forest):
        options = build_echart_options(forest, compute_layout(forest))
        assert all(l['symbol'] == ['none', 'arrow'] for l in series_of(options)['links'])

    def test_root_is_highlighted(self, forest):
        options = build_echart_options(forest, compute_layout(forest), kind=NodeKind.SECTOR)
        root_style = node_by_id(options, 'a')['itemStyle']
        child_style = node_by_id(options, 'b')['itemStyle']
        assert root_style['borderColor'] == PALETTES[NodeKind.SECTOR]['accent']
        assert root_style['borderWidth'] == 2
        assert child_style['borderWidth'] == 1

    def test_palette_per_kind(self, forest):
        options = build_echart_options(forest, compute_layout(forest), kind=NodeKind.POSITION)
        assert options['backgroundColor'] == PALETTES[NodeKind.POSITION]['background']
        assert series_of(options)['links'][0]['lineStyle']['color'] == PALETTES[NodeKind.POSITION]['edge']

    def test_pending_selected_and_drop_target_styles(self, forest):
        options = build_echart_options(
            forest, compute_layout(forest),
            pending_ids={'b'}, selected_id='c', drop_target_id='a',
        )
        assert node_by_id(options, 'b')['itemStyle']['borderColor'] == PENDING_COLOR
        assert node_by_id(options, 'c')['itemStyle']['borderColor'] == SELECTED_COLOR
        assert node_by_id(options, 'a')['itemStyle']['borderColor'] == DROP_TARGET_COLOR
        link_to_b = next(l for l in series_of(options)['links'] if l['target'] == 'b')
        assert link_to_b['lineStyle']['color'] == PENDING_COLOR

    def test_nodes_without_position_are_skipped(self, forest):
        options = build_echart_options(forest, {'a': (0.0, 0.0)})
        assert [n['id'] for n in series_of(options)['data']] == ['a']
        assert series_of(options)['links'] == []

    def test_counts_in_label(self, forest):
        options = build_echart_options(forest, compute_layout(forest))
        assert '2 positions' in node_by_id(options, 'a')['label']['formatter']

    def test_names_cannot_break_formatters(self):
        tricky = build([Node('x', 'R&D {core|lab} <b>')])
        item = node_by_id(build_echart_options(tricky, compute_layout(tricky)), 'x')
        label = item['label']['formatter']
        tooltip = item['tooltip']['formatter']

        assert label.startswith('{title|')
        assert label.count('{') == 2 and label.count('|') == 2
        assert '<b>' not in tooltip
        assert '&lt;b&gt;' in tooltip and 'R&amp;D' in tooltip
        assert '{' not in tooltip


class TestPayloads:

    def test_normalize_dict_passthrough(self):
        payload = {'componentType': 'series', 'name': 'a'}
        assert normalize_click_payload(payload) is payload

    def test_normalize_list(self):
        payload = normalize_click_payload(['series', 'a', 'graph'])
        assert payload == {'componentType': 'series', 'name': 'a', 'seriesType': 'graph'}
        assert set(payload) <= set(REQUESTED_EVENT_KEYS)

    def test_normalize_string_and_junk(self):
        assert normalize_click_payload('a') == {'componentType': 'series', 'name': 'a'}
        assert normalize_click_payload(None) == {}

    def test_resolve_node_by_id_or_name(self, forest):
        assert resolve_node_id_from_payload({'componentType': 'series', 'name': 'b'}, forest) == 'b'
        assert resolve_node_id_from_payload({'componentType': 'series', 'name': 'Finance'}, forest) == 'c'

    def test_resolve_node_rejects_non_nodes(self, forest):
        assert resolve_node_id_from_payload({'componentType': 'title', 'name': 'b'}, forest) is None
        assert resolve_node_id_from_payload({'componentType': 'series', 'name': 'zzz'}, forest) is None
        assert resolve_node_id_from_payload(
            {'componentType': 'series', 'dataType': 'edge', 'name': 'a > b'}, forest) is None
        assert resolve_node_id_from_payload('b', forest) is None

    def test_resolve_edge(self, forest):
        payload = {'componentType': 'series', 'dataType': 'edge', 'data': {'source': 'a', 'target': 'b'}}
        assert resolve_edge_from_payload(payload, forest) == ('a', 'b')

    def test_resolve_stale_edge(self, forest):
        payload = {'componentType': 'series', 'dataType': 'edge', 'data': {'source': 'c', 'target': 'b'}}
        assert resolve_edge_from_payload(payload, forest) is None
        assert resolve_edge_from_payload({'componentType': 'series', 'name': 'b'}, forest) is None


def test_pending_summary(forest):
    lines = pending_summary(forest, [ReparentOp('b', 'a', 'c'), ReparentOp('c', 'a', None)])
    assert lines == ['Operations → Finance', 'Finance → (root)']


def test_summary_rows_are_keyed_by_id():
    forest = build([
        Node("a", "Board"),
        Node("b", "Support", "a"),
        Node("c", "Support", "a"),
    ])
    rows = summary_rows(forest)
    assert [r['id'] for r in rows] == ['a', 'b', 'c']
    assert [r['parent'] for r in rows] == ['-', 'Board', 'Board']
