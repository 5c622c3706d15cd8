"""Map layers: incident markers, municipal boundaries and the aging-rate overlay as plotly mapbox traces."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from config import BASE_LAYERS, DEFAULT_BASE_LAYER, DEFAULT_ZOOM, KOREA_CENTER, MAP_HEIGHT
from utils.sinkhole_taxonomy import (
    COLOR_HEX,
    MAJOR_CATEGORIES,
    MAJOR_COLOR_MAP,
    OTHER_CATEGORY,
    classify_category,
)

warnings.filterwarnings('ignore', message='.*mapbox.*', category=DeprecationWarning)

NEUTRAL_STYLE: Dict[str, Any] = {'color': '#0077ff', 'weight': 1, 'fillOpacity': 0}
AGING_LINE_COLOR = '#555'

RATE_BINS = [10, 20, 40, 60, 80]
RATE_COLORS = ['#FFEDA0', '#FD8D3C', '#FC4E2A', '#E31A1C', '#BD0026', '#800026']

MARKER_SIZES = {'mobile': 12, 'tablet': 9, 'desktop': 9}
DESKTOP_MARKER_SIZE = 9


def color_for_rate(rate: float) -> str:
    """Fill colour for an aging rate in percent."""
    return RATE_COLORS[int(np.digitize(rate, RATE_BINS, right=False))]


def device_for_width(width: Optional[int]) -> str:
    if not width:
        return 'desktop'
    if width < 600:
        return 'mobile'
    if width < 1024:
        return 'tablet'
    return 'desktop'


def marker_size(device: str, responsive: bool) -> int:
    if not responsive:
        return DESKTOP_MARKER_SIZE
    return MARKER_SIZES.get(device, DESKTOP_MARKER_SIZE)


def build_marker_frame(filtered: pd.DataFrame) -> pd.DataFrame:
    """One row per plottable record: position as floats, major category, colour, record id."""
    columns = ['record_id', 'lat', 'lon', 'major', 'color', 'category', 'address', 'date']
    if filtered.empty:
        return pd.DataFrame(columns=columns)
    markers = pd.DataFrame({
        'record_id': filtered.index,
        'lat': pd.to_numeric(filtered['latitude'], errors='coerce').to_numpy(),
        'lon': pd.to_numeric(filtered['longitude'], errors='coerce').to_numpy(),
        'category': filtered['category'].to_numpy(),
        'address': filtered['address'].to_numpy(),
        'date': filtered['date'].to_numpy(),
    })
    markers['major'] = markers['category'].map(classify_category)
    markers['color'] = markers['major'].map(MAJOR_COLOR_MAP).fillna(MAJOR_COLOR_MAP[OTHER_CATEGORY])
    return markers.dropna(subset=['lat', 'lon'])[columns].reset_index(drop=True)


def find_aging_row(name: str, aging_rates: Optional[pd.DataFrame]) -> Optional[pd.Series]:
    """First aging row whose region2 appears inside the boundary name."""
    if aging_rates is None or aging_rates.empty or not name:
        return None
    for _, row in aging_rates.iterrows():
        key = str(row.get('region2', '') or '')
        if key and key in name:
            return row
    return None


def boundary_style(
    name: str,
    aging_rates: Optional[pd.DataFrame],
    year: str,
    show_aging: bool,
) -> Dict[str, Any]:
    if not show_aging:
        return dict(NEUTRAL_STYLE)
    row = find_aging_row(name, aging_rates)
    if row is None:
        return dict(NEUTRAL_STYLE)
    rate = pd.to_numeric(pd.Series([row.get(str(year), '')]), errors='coerce').iloc[0]
    if pd.isna(rate):
        return dict(NEUTRAL_STYLE)
    return {
        'color': AGING_LINE_COLOR,
        'weight': 1,
        'fillOpacity': 0.7,
        'fillColor': color_for_rate(float(rate)),
    }


def _style_key(style: Dict[str, Any]) -> Tuple:
    return (style['color'], style['weight'], style['fillOpacity'], style.get('fillColor'))


def boundary_traces(
    geojson: Optional[Dict[str, Any]],
    aging_rates: Optional[pd.DataFrame] = None,
    year: str = '',
    show_aging: bool = False,
) -> List[go.Choroplethmapbox]:
    """One choropleth trace per distinct boundary style, hovering the feature name."""
    if not geojson or not geojson.get('features'):
        return []
    groups: Dict[Tuple, Dict[str, Any]] = {}
    for feature in geojson['features']:
        name = str(feature.get('properties', {}).get('name', ''))
        style = boundary_style(name, aging_rates, year, show_aging)
        group = groups.setdefault(_style_key(style), {'style': style, 'ids': [], 'names': []})
        group['ids'].append(feature['id'])
        group['names'].append(name)

    traces = []
    for group in groups.values():
        style = group['style']
        fill = style.get('fillColor', style['color'])
        traces.append(go.Choroplethmapbox(
            geojson=geojson,
            locations=group['ids'],
            featureidkey='id',
            z=[1] * len(group['ids']),
            colorscale=[[0, fill], [1, fill]],
            showscale=False,
            marker_opacity=style['fillOpacity'],
            marker_line_color=style['color'],
            marker_line_width=style['weight'],
            hovertext=group['names'],
            hoverinfo='text',
            name='시군구 경계',
            showlegend=False,
        ))
    return traces


def marker_traces(markers: pd.DataFrame, size: int) -> List[go.Scattermapbox]:
    traces = []
    for major in (*MAJOR_CATEGORIES, OTHER_CATEGORY):
        subset = markers[markers['major'] == major]
        if subset.empty:
            continue
        traces.append(go.Scattermapbox(
            lat=subset['lat'],
            lon=subset['lon'],
            mode='markers',
            marker={'size': size, 'color': COLOR_HEX[MAJOR_COLOR_MAP[major]]},
            name=major,
            customdata=subset[['record_id', 'category', 'address', 'date']].to_numpy(),
            hovertemplate='<b>%{customdata[1]}</b><br>%{customdata[2]}<br>%{customdata[3]}<extra></extra>',
        ))
    return traces


def base_layer_layout(name: str) -> Dict[str, Any]:
    """mapbox layout settings for a named base layer; unknown names fall back to OSM."""
    tiles = BASE_LAYERS.get(name)
    if not tiles:
        return {'mapbox_style': 'open-street-map'}
    return {
        'mapbox_style': 'white-bg',
        'mapbox_layers': [{'below': 'traces', 'sourcetype': 'raster', 'source': [tiles]}],
    }


def build_map_figure(
    markers: pd.DataFrame,
    geojson: Optional[Dict[str, Any]] = None,
    aging_rates: Optional[pd.DataFrame] = None,
    year: str = '',
    show_aging: bool = False,
    size: int = DESKTOP_MARKER_SIZE,
    base_layer: str = DEFAULT_BASE_LAYER,
) -> go.Figure:
    """Boundary layer underneath, one marker trace per major category on top."""
    fig = go.Figure()
    for trace in boundary_traces(geojson, aging_rates, year, show_aging):
        fig.add_trace(trace)
    for trace in marker_traces(markers, size):
        fig.add_trace(trace)
    fig.update_layout(
        **base_layer_layout(base_layer),
        mapbox_center=KOREA_CENTER,
        mapbox_zoom=DEFAULT_ZOOM,
        margin={'r': 0, 't': 0, 'l': 0, 'b': 0},
        height=MAP_HEIGHT,
        legend={'orientation': 'h', 'yanchor': 'bottom', 'y': 0.01, 'xanchor': 'left', 'x': 0.01},
        clickmode='event+select',
    )
    return fig


def selected_record_id(selection_state: Any) -> Optional[Any]:
    """Record id of the clicked marker in a streamlit plotly selection payload.

    Boundary polygons carry no customdata, so clicks on them yield None.
    """
    if selection_state is None or not hasattr(selection_state, 'get'):
        return None
    points = (selection_state.get('selection') or {}).get('points', [])
    for point in points:
        customdata = point.get('customdata')
        if isinstance(customdata, (list, tuple)) and customdata:
            return customdata[0]
    return None


@dataclass
class MarkerSelection:
    """Tracks marker clicks across reruns.

    The chart reports the same selection on every rerun, so a record id only
    counts as a click when it differs from the last one seen. clear() moves the
    chart to a new key, which drops the selection it still holds.
    """

    last_record_id: Optional[Any] = None
    generation: int = 0

    @property
    def chart_key(self) -> str:
        return f'incident-map-{self.generation}'

    def new_click(self, record_id: Optional[Any]) -> Optional[Any]:
        if record_id is None:
            self.last_record_id = None
            return None
        if record_id == self.last_record_id:
            return None
        self.last_record_id = record_id
        return record_id

    def clear(self) -> None:
        self.last_record_id = None
        self.generation += 1
