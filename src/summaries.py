"""Derived views over the filtered incident records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

import pandas as pd

from utils.sinkhole_taxonomy import MAJOR_CATEGORIES, OTHER_CATEGORY, classify_category


@dataclass
class ViewSummary:
    total_count: int = 0
    counts_by_category: Dict[str, int] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        """name/value rows for the category bar chart."""
        return pd.DataFrame(
            {'name': list(self.counts_by_category), 'value': list(self.counts_by_category.values())},
            columns=['name', 'value'],
        )


def summarize(filtered: pd.DataFrame) -> ViewSummary:
    """Total count plus per-category counts, keyed in order of first appearance."""
    if filtered.empty:
        return ViewSummary()
    counts = filtered.groupby('category', sort=False).size()
    return ViewSummary(
        total_count=int(len(filtered)),
        counts_by_category={str(k): int(v) for k, v in counts.items()},
    )


def counts_by_major(filtered: pd.DataFrame) -> Dict[str, int]:
    order = [*MAJOR_CATEGORIES, OTHER_CATEGORY]
    result = {major: 0 for major in order}
    if filtered.empty:
        return result
    majors = filtered['category'].map(classify_category)
    for major, count in majors.value_counts().items():
        result[major] = int(count)
    return result
