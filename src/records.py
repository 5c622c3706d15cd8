"""Record normalisation: raw incident rows -> incident records with derived region fields."""

from __future__ import annotations

import pandas as pd

from config import INCIDENT_COLUMNS, REGION_COLUMNS

RECORD_COLUMNS = list(INCIDENT_COLUMNS) + list(REGION_COLUMNS)


def empty_records() -> pd.DataFrame:
    """Zero-row record frame, the state before (or instead of) a successful load."""
    return pd.DataFrame({col: pd.Series(dtype=object) for col in RECORD_COLUMNS})


def normalize_records(raw: pd.DataFrame) -> pd.DataFrame:
    """Derive region1/region2 from the address; every other field passes through as a string.

    region1 is the first whitespace-delimited token of the address and region2
    the second; either is "" when the address is too short. Row order and the
    index are preserved.
    """
    if raw is None:
        return empty_records()
    df = raw.copy()
    for col in INCIDENT_COLUMNS:
        if col not in df.columns:
            df[col] = ''
    if df.empty:
        for col in REGION_COLUMNS:
            df[col] = pd.Series(dtype=object)
        return df.astype(object)

    df = df.fillna('').astype(str)
    tokens = df['address'].str.split()
    df['region1'] = tokens.str[0].fillna('')
    df['region2'] = tokens.str[1].fillna('')
    return df
