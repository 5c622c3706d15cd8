"""
Static asset loaders for the sinkhole dashboard.

Every asset can live on local disk or behind an http(s) URL. URL sources are
fetched with a bounded retry; all failures surface as DatasetLoadError (or
TopologyDecodeError for an unreadable boundary file) so the UI can fall back to an
empty dataset instead of crashing.
"""

from __future__ import annotations

import json
import time
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Dict, Optional, Union

import geopandas as gpd
import pandas as pd
import requests

from config import (
    AGING_YEARS,
    FETCH_RETRIES,
    FETCH_RETRY_DELAY,
    FETCH_TIMEOUT,
    INCIDENT_COLUMNS,
    MUNI_TOPO_OBJECT,
)
from records import normalize_records
from utils.exceptions import DatasetLoadError, DatasetSchemaError, TopologyDecodeError
from utils.logger_config import setup_logger

logger = setup_logger(__name__)

Source = Union[str, Path]


def _is_url(source: Source) -> bool:
    return isinstance(source, str) and source.lower().startswith(('http://', 'https://'))


def _fetch_url(url: str, retries: int = FETCH_RETRIES, delay: float = FETCH_RETRY_DELAY) -> str:
    """
    GET a text asset with retry logic.

    Args:
        url (str): Asset URL
        retries (int): Number of attempts before giving up (Default = FETCH_RETRIES)
        delay (float): Seconds to wait between attempts

    Returns:
        str: Response body decoded as text
    """
    last_error: Optional[Exception] = None
    for attempt in range(1, retries + 1):
        try:
            response = requests.get(url, timeout=FETCH_TIMEOUT)
            response.raise_for_status()
            response.encoding = response.encoding or 'utf-8'
            return response.text
        except requests.RequestException as e:
            last_error = e
            logger.warning(f'Attempt {attempt}/{retries} failed for {url}: {e}')
            if attempt < retries:
                time.sleep(delay)
    logger.error(f'Giving up on {url} after {retries} attempts')
    raise DatasetLoadError(f'Failed to fetch {url}: {last_error}')


def read_source_text(source: Source) -> str:
    if _is_url(source):
        return _fetch_url(str(source))
    path = Path(source)
    try:
        return path.read_text(encoding='utf-8-sig')
    except OSError as e:
        logger.error(f'Failed to read {path}: {e}')
        raise DatasetLoadError(f'Failed to read {path}: {e}') from e


def read_table(source: Source) -> pd.DataFrame:
    """Parse a delimited text asset with every value kept as a string."""
    text = read_source_text(source)
    try:
        df = pd.read_csv(StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except (pd.errors.ParserError, ValueError) as e:
        logger.error(f'Failed to parse {source}: {e}')
        raise DatasetLoadError(f'Failed to parse {source}: {e}') from e
    df.columns = [str(c).strip() for c in df.columns]
    return df


def load_incidents(source: Source) -> pd.DataFrame:
    """Load the incident CSV and derive the region fields."""
    raw = read_table(source)
    missing = [c for c in INCIDENT_COLUMNS if c not in raw.columns]
    if missing:
        logger.error(f'{source} is missing columns {missing}')
        raise DatasetSchemaError(f'{source} is missing required columns: {", ".join(missing)}')
    records = normalize_records(raw)
    logger.info(f'Loaded {len(records)} incident records from {source}')
    return records


def load_aging_rates(source: Source) -> pd.DataFrame:
    """Load the per-district aging-rate table (region2 + one column per year)."""
    table = read_table(source)
    if 'region2' not in table.columns:
        raise DatasetSchemaError(f'{source} is missing required column: region2')
    absent_years = [y for y in AGING_YEARS if y not in table.columns]
    if absent_years:
        logger.warning(f'{source} has no columns for years {absent_years}')
    logger.info(f'Loaded {len(table)} aging-rate rows from {source}')
    return table


def load_boundaries(source: Source, object_name: str = MUNI_TOPO_OBJECT) -> Dict[str, Any]:
    """
    Read one object of the TopoJSON boundary file as a GeoJSON FeatureCollection.

    Args:
        source: Local path or http(s) URL of the TopoJSON file
        object_name (str): Object key in the topology, read as a layer (Default = MUNI_TOPO_OBJECT)

    Returns:
        dict: FeatureCollection whose features carry a string 'id' (the row
        position) and the boundary properties such as 'name'
    """
    if _is_url(source):
        target = BytesIO(read_source_text(source).encode('utf-8'))
    else:
        target = Path(source)
        if not target.exists():
            logger.error(f'Boundary file not found: {target}')
            raise DatasetLoadError(f'Boundary file not found: {target}')
    try:
        gdf = gpd.read_file(target, layer=object_name)
    except Exception as e:
        logger.error(f'Failed to read boundary layer {object_name!r} from {source}: {e}')
        raise TopologyDecodeError(f'Failed to read boundary layer {object_name!r} from {source}: {e}') from e
    geojson = json.loads(gdf.to_json())
    logger.info(f'Loaded {len(geojson["features"])} boundary features from {source}')
    return geojson
