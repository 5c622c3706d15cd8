import importlib
import warnings

import pytest
import pandas as pd
from pathlib import Path
import sys

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import map_layers
from map_layers import (
    NEUTRAL_STYLE,
    MarkerSelection,
    base_layer_layout,
    boundary_style,
    boundary_traces,
    build_map_figure,
    build_marker_frame,
    color_for_rate,
    device_for_width,
    find_aging_row,
    marker_size,
    selected_record_id,
)
from records import empty_records, normalize_records


@pytest.fixture
def filtered():
    return normalize_records(pd.DataFrame({
        'address': ['서울 강남구', '서울 송파구', '부산 해운대구'],
        'latitude': ['37.5', 'abc', '35.16'],
        'longitude': ['127.0', '127.1', '129.16'],
        'date': ['2021-05-01', '2020-07-22', '2021-08-09'],
        'category': ['하수_누수', '상수_노후', '굴착공사'],
    }))


@pytest.fixture
def aging():
    return pd.DataFrame({
        'region2': ['강남구', '해운대구', '송파구'],
        '2021': ['36.5', '14.0', ''],
        '2022': ['85', '9.5', ''],
    })


@pytest.fixture
def geojson():
    square = [[[127.0, 37.0], [127.1, 37.0], [127.1, 37.1], [127.0, 37.0]]]
    return {
        'type': 'FeatureCollection',
        'features': [
            {'type': 'Feature', 'id': str(i), 'properties': {'name': name}, 'geometry': {'type': 'Polygon', 'coordinates': square}}
            for i, name in enumerate(['서울특별시 강남구', '송파구', '부산광역시 해운대구', '제주시'])
        ],
    }


class TestRateColors:
    @pytest.mark.parametrize('rate,color', [
        (95, '#800026'),
        (80, '#800026'),
        (79.9, '#BD0026'),
        (60, '#BD0026'),
        (40, '#E31A1C'),
        (20, '#FC4E2A'),
        (10, '#FD8D3C'),
        (9.99, '#FFEDA0'),
        (0, '#FFEDA0'),
    ])
    def test_thresholds(self, rate, color):
        assert color_for_rate(rate) == color


class TestAgingJoin:
    def test_substring_match(self, aging):
        assert find_aging_row('서울특별시 강남구', aging)['region2'] == '강남구'

    def test_first_match_wins(self):
        table = pd.DataFrame({'region2': ['남구', '강남구'], '2022': ['1', '2']})
        assert find_aging_row('강남구', table)['region2'] == '남구'

    def test_no_match(self, aging):
        assert find_aging_row('제주시', aging) is None
        assert find_aging_row('강남구', None) is None

    def test_empty_keys_never_match(self):
        table = pd.DataFrame({'region2': ['', '강남구'], '2022': ['50', '20']})
        assert find_aging_row('강남구', table)['2022'] == '20'

    def test_neutral_when_overlay_hidden(self, aging):
        assert boundary_style('강남구', aging, '2022', show_aging=False) == NEUTRAL_STYLE

    def test_filled_style(self, aging):
        style = boundary_style('강남구', aging, '2022', show_aging=True)
        assert style == {'color': '#555', 'weight': 1, 'fillOpacity': 0.7, 'fillColor': '#800026'}

    def test_missing_year_value_is_neutral(self, aging):
        assert boundary_style('송파구', aging, '2022', show_aging=True) == NEUTRAL_STYLE
        assert boundary_style('강남구', aging, '2016', show_aging=True) == NEUTRAL_STYLE

    def test_traces_grouped_by_style(self, geojson, aging):
        traces = boundary_traces(geojson, aging, '2022', show_aging=True)
        # 강남구 filled, 해운대구 filled (different colour), 송파구 + 제주시 neutral
        assert len(traces) == 3
        located = sorted(loc for trace in traces for loc in trace.locations)
        assert located == ['0', '1', '2', '3']

    def test_single_trace_without_overlay(self, geojson):
        traces = boundary_traces(geojson)
        assert len(traces) == 1
        assert traces[0].marker.opacity == 0
        assert list(traces[0].hovertext) == ['서울특별시 강남구', '송파구', '부산광역시 해운대구', '제주시']

    def test_no_boundaries(self):
        assert boundary_traces(None) == []


class TestMarkers:
    def test_marker_frame(self, filtered):
        markers = build_marker_frame(filtered)
        # non-numeric latitude cannot be placed on the map
        assert list(markers['record_id']) == [0, 2]
        assert markers['lat'].tolist() == [37.5, 35.16]
        assert list(markers['major']) == ['하수', '기타']
        assert list(markers['color']) == ['blue', 'black']

    def test_empty_marker_frame(self):
        assert build_marker_frame(empty_records()).empty

    def test_device_and_size(self):
        assert device_for_width(500) == 'mobile'
        assert device_for_width(800) == 'tablet'
        assert device_for_width(1440) == 'desktop'
        assert device_for_width(None) == 'desktop'
        assert marker_size('mobile', responsive=True) > marker_size('desktop', responsive=True)
        assert marker_size('mobile', responsive=False) == marker_size('desktop', responsive=False)

    def test_figure_layers(self, filtered, geojson):
        fig = build_map_figure(build_marker_frame(filtered), geojson=geojson)
        kinds = [trace.type for trace in fig.data]
        assert kinds == ['choroplethmapbox', 'scattermapbox', 'scattermapbox']
        assert [trace.name for trace in fig.data[1:]] == ['하수', '기타']

    def test_base_layers(self):
        assert base_layer_layout('OSM') == {'mapbox_style': 'open-street-map'}
        satellite = base_layer_layout('ESRI Satellite')
        assert satellite['mapbox_style'] == 'white-bg'
        assert satellite['mapbox_layers'][0]['sourcetype'] == 'raster'
        assert base_layer_layout('unknown') == {'mapbox_style': 'open-street-map'}


class TestSelection:
    def test_marker_click(self):
        payload = {'selection': {'points': [{'customdata': [3, '하수_누수', '서울 강남구', '2021-05-01']}]}}
        assert selected_record_id(payload) == 3

    def test_boundary_click_ignored(self):
        payload = {'selection': {'points': [{'location': '0'}]}}
        assert selected_record_id(payload) is None

    def test_empty_payloads(self):
        assert selected_record_id(None) is None
        assert selected_record_id({'selection': {'points': []}}) is None
        assert selected_record_id({}) is None

    def test_repeated_selection_is_not_a_new_click(self):
        tracker = MarkerSelection()
        assert tracker.new_click(3) == 3
        assert tracker.new_click(3) is None
        assert tracker.new_click(5) == 5

    def test_clear_allows_same_marker_again(self):
        tracker = MarkerSelection()
        key = tracker.chart_key
        tracker.new_click(3)
        tracker.clear()
        assert tracker.chart_key != key
        assert tracker.new_click(3) == 3

    def test_deselect_resets_tracking(self):
        tracker = MarkerSelection()
        tracker.new_click(3)
        assert tracker.new_click(None) is None
        assert tracker.new_click(3) == 3


class TestWarnings:
    def test_mapbox_deprecation_filtered_on_import(self):
        with warnings.catch_warnings():
            importlib.reload(map_layers)
            assert any(
                action == 'ignore' and category is DeprecationWarning
                and message is not None and message.match('choroplethmapbox is deprecated, use maplibre')
                for action, message, category, _, _ in warnings.filters
            )
