"""Filter engine: reduce the incident records to the visible subset for a FilterState."""

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields
from typing import Any, Iterable, List, Optional

import pandas as pd


@dataclass
class FilterState:
    """Session filter/selection state owned by the UI shell.

    Empty strings, None and empty collections all mean "no constraint".
    region2 only applies while region1 is set; use select_region1() so the
    district selection is cleared whenever the province changes.
    """

    region1: str = ''
    region2: str = ''
    start_date: str = ''
    end_date: str = ''
    search_text: str = ''
    selected_categories: List[str] = field(default_factory=list)
    selected_marker: Optional[Any] = None

    def select_region1(self, region1: str) -> None:
        self.region1 = region1 or ''
        self.region2 = ''

    def select_region2(self, region2: str) -> None:
        self.region2 = (region2 or '') if self.region1 else ''

    def toggle_category(self, category: str) -> None:
        if category in self.selected_categories:
            self.selected_categories = [c for c in self.selected_categories if c != category]
        else:
            self.selected_categories = [*self.selected_categories, category]

    def clear_categories(self) -> None:
        self.selected_categories = []

    def reset(self) -> None:
        for f in fields(self):
            setattr(self, f.name, f.default if f.default_factory is MISSING else f.default_factory())

def search_tokens(search_text: Optional[str]) -> List[str]:
    """Comma-separated search terms, stripped, empties dropped."""
    if not search_text:
        return []
    return [token.strip() for token in str(search_text).split(',') if token.strip()]


def _present(series: pd.Series) -> pd.Series:
    return series.fillna('').astype(str) != ''


def has_location(records: pd.DataFrame) -> pd.Series:
    """Mask of records carrying both a latitude and a longitude."""
    return _present(records['latitude']) & _present(records['longitude'])


def apply_filters(records: pd.DataFrame, state: Optional[FilterState]) -> pd.DataFrame:
    """Return the records passing every active filter, in their original order.

    Dates are compared as strings, so they must be stored in an ISO-like
    sortable form. Records without coordinates are always dropped, which also
    keeps them out of exports.
    """
    if records.empty:
        return records.copy()
    state = state or FilterState()

    mask = pd.Series(True, index=records.index)
    if state.region1:
        mask &= records['region1'] == state.region1
    if state.region2:
        mask &= records['region2'] == state.region2
    if state.start_date:
        mask &= records['date'].astype(str) >= str(state.start_date)
    if state.end_date:
        mask &= records['date'].astype(str) <= str(state.end_date)

    tokens = search_tokens(state.search_text)
    if tokens:
        category = records['category'].fillna('').astype(str)
        matched = pd.Series(False, index=records.index)
        for token in tokens:
            matched |= category.str.contains(token, regex=False)
        mask &= matched

    if state.selected_categories:
        mask &= records['category'].isin(list(state.selected_categories))

    mask &= has_location(records)
    return records[mask].copy()


def _sorted_distinct(values: Iterable[str]) -> List[str]:
    return sorted({v for v in values if v})


def region1_options(records: pd.DataFrame) -> List[str]:
    if records.empty:
        return []
    return _sorted_distinct(records['region1'])


def region2_options(records: pd.DataFrame, region1: Optional[str]) -> List[str]:
    """District options for a province, taken from the unfiltered records."""
    if not region1 or records.empty:
        return []
    return _sorted_distinct(records.loc[records['region1'] == region1, 'region2'])


def category_values(records: pd.DataFrame) -> List[str]:
    if records.empty:
        return []
    return _sorted_distinct(records['category'])
