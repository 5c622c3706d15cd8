import streamlit as st
import pandas as pd
import plotly.express as px
from pathlib import Path
import sys
from typing import Any, Dict, Optional, Tuple

ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / 'src'
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from config import (
    AGING_RATE_CSV,
    AGING_YEARS,
    BASE_LAYERS,
    DATE_INPUT_MAX,
    DATE_INPUT_MIN,
    DEFAULT_AGING_YEAR,
    DEFAULT_BASE_LAYER,
    MUNI_TOPOJSON,
    SUBSIDENCE_CSV,
    DashboardFeatures,
    features_for,
)
from data.loaders import load_aging_rates, load_boundaries, load_incidents
from exports import EXPORT_MIME, export_bytes, export_filename
from filter_engine import FilterState, apply_filters, category_values, region1_options, region2_options
from map_layers import MarkerSelection, build_map_figure, build_marker_frame, marker_size, selected_record_id
from records import empty_records
from summaries import counts_by_major, summarize
from utils import MAJOR_CATEGORIES, OTHER_CATEGORY, group_categories
from utils.exceptions import ConfigError, DatasetLoadError
from utils.logger_config import setup_logger
from utils.sinkhole_taxonomy import COLOR_HEX, legend_entries

logger = setup_logger('sinkhole_dashboard')

PLOTLY_CONFIG = {
    'scrollZoom': True,
    'displaylogo': False,
    'modeBarButtonsToRemove': ['lasso2d', 'select2d']
}

DEVICE_LABELS = {'desktop': '데스크톱', 'tablet': '태블릿', 'mobile': '모바일'}


@st.cache_data(show_spinner=False)
def cached_incidents(source: str) -> Tuple[pd.DataFrame, Optional[str]]:
    try:
        return load_incidents(source), None
    except DatasetLoadError as err:
        return empty_records(), str(err)


@st.cache_data(show_spinner=False)
def cached_boundaries(source: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    try:
        return load_boundaries(source), None
    except DatasetLoadError as err:
        return None, str(err)


@st.cache_data(show_spinner=False)
def cached_aging_rates(source: str) -> Tuple[pd.DataFrame, Optional[str]]:
    try:
        return load_aging_rates(source), None
    except DatasetLoadError as err:
        return pd.DataFrame(columns=['region2', *AGING_YEARS]), str(err)


def resolve_features() -> DashboardFeatures:
    variant = st.query_params.get('variant')
    try:
        return features_for(variant)
    except ConfigError as err:
        logger.warning(str(err))
        st.warning(f'{err} (전체 기능으로 표시합니다)')
        return features_for(None)


def filter_state() -> FilterState:
    if 'filter_state' not in st.session_state:
        st.session_state['filter_state'] = FilterState()
    return st.session_state['filter_state']


def marker_selection() -> MarkerSelection:
    if 'marker_selection' not in st.session_state:
        st.session_state['marker_selection'] = MarkerSelection()
    return st.session_state['marker_selection']


def reset_view_state(state: FilterState) -> None:
    state.reset()
    marker_selection().clear()
    st.session_state['expanded_majors'] = []
    st.session_state['show_aging'] = False
    st.session_state['aging_year'] = DEFAULT_AGING_YEAR
    for key in ('region1_select', 'region2_select', 'start_date_input', 'end_date_input', 'search_input'):
        st.session_state.pop(key, None)


def render_selected_tags(state: FilterState) -> None:
    if not state.selected_categories:
        return
    st.sidebar.caption('선택된 분류')
    for cat in list(state.selected_categories):
        if st.sidebar.button(f'{cat} ✕', key=f'tag-{cat}'):
            state.toggle_category(cat)
            st.rerun()
    if st.sidebar.button('전체 해제', key='clear-categories'):
        state.clear_categories()
        st.rerun()


def render_filters(state: FilterState, records: pd.DataFrame) -> None:
    st.sidebar.header('필터')
    if st.sidebar.button('초기화', key='reset-filters'):
        reset_view_state(state)
        st.rerun()

    render_selected_tags(state)

    region1_list = [''] + region1_options(records)
    if state.region1 not in region1_list:
        state.select_region1('')
    region1 = st.sidebar.selectbox(
        '시/도',
        region1_list,
        index=region1_list.index(state.region1),
        format_func=lambda r: r or '전체',
        key='region1_select',
    )
    if region1 != state.region1:
        state.select_region1(region1)
        st.session_state.pop('region2_select', None)

    if state.region1:
        region2_list = [''] + region2_options(records, state.region1)
        if state.region2 not in region2_list:
            state.select_region2('')
        region2 = st.sidebar.selectbox(
            '구/군',
            region2_list,
            index=region2_list.index(state.region2),
            format_func=lambda r: r or '전체',
            key='region2_select',
        )
        state.select_region2(region2)

    start = st.sidebar.date_input('시작일', value=None, min_value=DATE_INPUT_MIN, max_value=DATE_INPUT_MAX, key='start_date_input')
    end = st.sidebar.date_input('종료일', value=None, min_value=DATE_INPUT_MIN, max_value=DATE_INPUT_MAX, key='end_date_input')
    state.start_date = start.isoformat() if start else ''
    state.end_date = end.isoformat() if end else ''
    state.search_text = st.sidebar.text_input('검색', placeholder='하수,연약', key='search_input')

    groups = group_categories(category_values(records))
    expanded = st.session_state.setdefault('expanded_majors', [])
    st.sidebar.subheader('분류')
    for major in (*MAJOR_CATEGORIES, OTHER_CATEGORY):
        toggle_label = f"{'▾' if major in expanded else '▸'} {major}"
        if st.sidebar.button(toggle_label, key=f'major-{major}'):
            if major in expanded:
                expanded.remove(major)
            else:
                expanded.append(major)
            st.rerun()
        if major in expanded:
            for cat in groups.for_major(major):
                label = f"✓ {cat}" if cat in state.selected_categories else cat
                if st.sidebar.button(label, key=f'cat-{major}-{cat}'):
                    state.toggle_category(cat)
                    st.rerun()


def render_overlay_controls(features: DashboardFeatures) -> Tuple[bool, str]:
    if not features.aging_overlay:
        return False, DEFAULT_AGING_YEAR
    st.sidebar.markdown('---')
    show_aging = st.sidebar.checkbox('노후화율', key='show_aging')
    year = DEFAULT_AGING_YEAR
    if show_aging:
        year = st.sidebar.selectbox('년도', AGING_YEARS, key='aging_year')
    return show_aging, year


def render_exports(features: DashboardFeatures, filtered: pd.DataFrame) -> None:
    if not features.export_formats:
        return
    st.sidebar.markdown('---')
    for fmt in sorted(features.export_formats, key=lambda f: f != 'xlsx'):
        st.sidebar.download_button(
            label='Excel' if fmt == 'xlsx' else 'CSV',
            data=export_bytes(filtered, fmt),
            file_name=export_filename(fmt),
            mime=EXPORT_MIME[fmt],
            key=f'export-{fmt}',
        )


def render_detail(record: Dict[str, Any]) -> None:
    st.markdown('### 사고 정보')
    st.markdown(f"**주소:** {record.get('address', '')}")
    st.markdown(f"**날짜:** {record.get('date', '')}")
    st.markdown(
        f"- 폭: {record.get('width', '')}m\n"
        f"- 연장: {record.get('length', '')}m\n"
        f"- 깊이: {record.get('depth', '')}m"
    )
    st.markdown(f"**분류:** {record.get('category', '')}")
    if st.button('선택 해제', key='clear-marker'):
        filter_state().selected_marker = None
        marker_selection().clear()
        st.rerun()


def render_summary(filtered: pd.DataFrame, show_aging: bool, year: str) -> None:
    summary = summarize(filtered)
    st.markdown('### 요약')
    st.metric('사고 수', f'{summary.total_count:,}')
    if show_aging:
        st.caption(f'{year}년 노후화율 표시 중')
    chart = summary.to_frame()
    if chart.empty:
        st.info('표시할 사고가 없습니다.')
        return
    fig = px.bar(chart, x='value', y='name', orientation='h')
    fig.update_layout(
        template='plotly_white',
        height=max(200, 24 * len(chart)),
        margin={'r': 0, 't': 10, 'l': 0, 'b': 0},
        xaxis={'visible': False},
        yaxis={'title': None, 'autorange': 'reversed'},
    )
    st.plotly_chart(fig, use_container_width=True, config=PLOTLY_CONFIG)


def render_legend(filtered: pd.DataFrame) -> None:
    st.markdown('#### 범례')
    counts = counts_by_major(filtered)
    rows = [
        f"<div><span style='background:{COLOR_HEX[color]};width:10px;height:10px;"
        f"display:inline-block;margin-right:5px'></span>{major} ({counts[major]:,})</div>"
        for major, color in legend_entries()
    ]
    st.markdown(''.join(rows), unsafe_allow_html=True)


def main():
    st.set_page_config(page_title='지반침하 사고 대시보드', layout='wide')
    st.markdown('## 지반침하 사고 현황')

    features = resolve_features()
    state = filter_state()

    records, load_error = cached_incidents(str(SUBSIDENCE_CSV))
    if load_error:
        st.error(f'사고 데이터를 불러오지 못했습니다: {load_error}')
    boundaries, boundary_error = cached_boundaries(str(MUNI_TOPOJSON))
    if boundary_error:
        st.warning(f'경계 데이터를 불러오지 못했습니다: {boundary_error}')

    aging_rates = None
    if features.aging_overlay:
        aging_rates, aging_error = cached_aging_rates(str(AGING_RATE_CSV))
        if aging_error:
            st.warning(f'노후화율 데이터를 불러오지 못했습니다: {aging_error}')

    render_filters(state, records)
    show_aging, year = render_overlay_controls(features)

    st.sidebar.markdown('---')
    base_layer = st.sidebar.selectbox('배경 지도', list(BASE_LAYERS), index=list(BASE_LAYERS).index(DEFAULT_BASE_LAYER))
    device = 'desktop'
    if features.responsive_icons:
        device = st.sidebar.radio('화면', list(DEVICE_LABELS), format_func=DEVICE_LABELS.get, horizontal=True)

    filtered = apply_filters(records, state)
    render_exports(features, filtered)

    map_col, panel_col = st.columns([2.8, 1.2], gap='large')

    with map_col:
        markers = build_marker_frame(filtered)
        fig = build_map_figure(
            markers,
            geojson=boundaries,
            aging_rates=aging_rates,
            year=year,
            show_aging=show_aging,
            size=marker_size(device, features.responsive_icons),
            base_layer=base_layer,
        )
        selection = st.plotly_chart(
            fig,
            use_container_width=True,
            config=PLOTLY_CONFIG,
            key=marker_selection().chart_key,
            on_select='rerun',
            selection_mode=('points',),
        )
        record_id = marker_selection().new_click(selected_record_id(selection))
        if record_id is not None:
            try:
                state.selected_marker = records.loc[int(record_id)].to_dict()
            except (KeyError, ValueError, TypeError):
                logger.debug(f'Ignoring selection of unknown record {record_id!r}')

    with panel_col:
        show_summary = st.checkbox('요약 표시', value=True, key='show_summary')
        show_legend = st.checkbox('범례 표시', value=True, key='show_legend')
        if show_summary:
            if state.selected_marker:
                render_detail(state.selected_marker)
            else:
                render_summary(filtered, show_aging, year)
        if show_legend:
            render_legend(filtered)


if __name__ == '__main__':
    main()
