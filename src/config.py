"""Static configuration for the sinkhole dashboard: asset locations, map defaults, variant flags."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, FrozenSet, Tuple

from utils.exceptions import ConfigError


ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = ROOT / 'data'

SUBSIDENCE_CSV = DATA_DIR / 'subsidence.csv'
AGING_RATE_CSV = DATA_DIR / 'aging_rate.csv'
MUNI_TOPOJSON = DATA_DIR / 'geo' / 'muni18.topo.json'
MUNI_TOPO_OBJECT = 'skorea_municipalities_2018_geo'

INCIDENT_COLUMNS: Tuple[str, ...] = ('address', 'latitude', 'longitude', 'date', 'width', 'length', 'depth', 'category')
REGION_COLUMNS: Tuple[str, ...] = ('region1', 'region2')

KOREA_CENTER = {"lat": 36.5, "lon": 127.8}
DEFAULT_ZOOM = 6.0
MAP_HEIGHT = 720

AGING_YEARS: Tuple[str, ...] = ('2022', '2021', '2020', '2019', '2018', '2017', '2016')
DEFAULT_AGING_YEAR = '2022'

# streamlit's default date_input range is ten years either side of today
DATE_INPUT_MIN = date(1900, 1, 1)
DATE_INPUT_MAX = date(2099, 12, 31)

EXPORT_FILENAMES: Dict[str, str] = {
    'xlsx': 'SinkholeData.xlsx',
    'csv': 'SinkholeData.csv',
}

FETCH_RETRIES = 3
FETCH_RETRY_DELAY = 1.0
FETCH_TIMEOUT = 15


@dataclass(frozen=True)
class DashboardFeatures:
    """Capability flags that replace the separate dashboard variants."""

    responsive_icons: bool = False
    export_formats: FrozenSet[str] = frozenset()
    aging_overlay: bool = False


VARIANTS: Dict[str, DashboardFeatures] = {
    'desktop': DashboardFeatures(),
    'responsive': DashboardFeatures(responsive_icons=True),
    'export': DashboardFeatures(responsive_icons=True, export_formats=frozenset({'xlsx', 'csv'})),
    'aging': DashboardFeatures(responsive_icons=True, export_formats=frozenset({'xlsx'}), aging_overlay=True),
    'full': DashboardFeatures(responsive_icons=True, export_formats=frozenset({'xlsx', 'csv'}), aging_overlay=True),
}
DEFAULT_VARIANT = 'full'


def features_for(variant: str | None) -> DashboardFeatures:
    """Resolve a variant name (case-insensitive) to its feature flags."""
    if not variant:
        return VARIANTS[DEFAULT_VARIANT]
    key = variant.strip().lower()
    if key not in VARIANTS:
        raise ConfigError(f'Unknown dashboard variant: {variant!r}. Expected one of {sorted(VARIANTS)}')
    return VARIANTS[key]


# Raster tile templates; None means plotly's built-in open-street-map style
BASE_LAYERS: Dict[str, str | None] = {
    'OSM': None,
    'ESRI Satellite': 'https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}',
    'Google Map': 'https://mt0.google.com/vt/lyrs=m&x={x}&y={y}&z={z}',
    'Google Satellite': 'https://mt0.google.com/vt/lyrs=s&x={x}&y={y}&z={z}',
}
DEFAULT_BASE_LAYER = 'OSM'
