#!/usr/bin/env python3
"""Generate a smoke summary CSV for the static dashboard assets.

Reports, per asset, whether it loads and how many rows/features it holds,
plus incident counts per major category and the number of incidents that
would be dropped from the map for missing coordinates.

Writes: reports/smoke_summary.csv
"""
from pathlib import Path
import pandas as pd
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / 'src'
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from config import AGING_RATE_CSV, MUNI_TOPOJSON, SUBSIDENCE_CSV
from data.loaders import load_aging_rates, load_boundaries, load_incidents
from filter_engine import has_location
from summaries import counts_by_major
from utils.exceptions import SinkholeDashboardError

OUT = ROOT / 'reports' / 'smoke_summary.csv'


def scan_incidents(source=SUBSIDENCE_CSV):
    try:
        records = load_incidents(source)
    except SinkholeDashboardError as e:
        return [{'asset': 'incidents', 'path': str(source), 'exists': False, 'rows': None, 'error': str(e)}]
    located = has_location(records) if not records.empty else pd.Series(dtype=bool)
    rows = [{
        'asset': 'incidents',
        'path': str(source),
        'exists': True,
        'rows': len(records),
        'missing_location': int((~located).sum()),
        'regions': records['region1'].replace('', pd.NA).nunique(),
    }]
    for major, count in counts_by_major(records).items():
        rows.append({'asset': 'incidents', 'path': str(source), 'exists': True, 'major': major, 'rows': count})
    return rows


def scan_boundaries(source=MUNI_TOPOJSON):
    try:
        geojson = load_boundaries(source)
    except SinkholeDashboardError as e:
        return [{'asset': 'boundaries', 'path': str(source), 'exists': False, 'rows': None, 'error': str(e)}]
    return [{'asset': 'boundaries', 'path': str(source), 'exists': True, 'rows': len(geojson['features'])}]


def scan_aging(source=AGING_RATE_CSV):
    try:
        table = load_aging_rates(source)
    except SinkholeDashboardError as e:
        return [{'asset': 'aging_rate', 'path': str(source), 'exists': False, 'rows': None, 'error': str(e)}]
    return [{'asset': 'aging_rate', 'path': str(source), 'exists': True, 'rows': len(table)}]


def build_rows(incidents=SUBSIDENCE_CSV, boundaries=MUNI_TOPOJSON, aging=AGING_RATE_CSV):
    return scan_incidents(incidents) + scan_boundaries(boundaries) + scan_aging(aging)


def main():
    all_rows = build_rows()
    df = pd.DataFrame(all_rows)
    OUT.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(OUT, index=False, encoding='utf-8-sig')
    print('Wrote', OUT)
    if not df['exists'].all():
        print('Some assets failed to load; see the error column.', file=sys.stderr)
        return 2
    return 0

if __name__ == '__main__':
    raise SystemExit(main())
