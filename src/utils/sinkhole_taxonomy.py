"""Utility helpers for grouping sinkhole incident categories into major categories."""

from __future__ import annotations

from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple


OTHER_CATEGORY = "기타"
DEFAULT_COLOR = "black"

# Checked in this order; the first prefix that matches wins.
MAJOR_CATEGORIES: Tuple[str, ...] = (
    "상수",
    "오수",
    "우수",
    "지반",
    "타 지하시설물",
    "하수",
    "맨홀",
)

MAJOR_COLOR_MAP: Dict[str, str] = {
    "타 지하시설물": "red",
    "상수": "grey",
    "하수": "blue",
    "오수": "green",
    "우수": "yellow",
    "지반": "orange",
    "맨홀": "violet",
    OTHER_CATEGORY: "black",
}

# Hex values for marker traces and legend swatches
COLOR_HEX: Dict[str, str] = {
    "red": "#cb2b3e",
    "grey": "#7b7b7b",
    "blue": "#2a81cb",
    "green": "#2aad27",
    "yellow": "#ffd326",
    "orange": "#cb8427",
    "violet": "#9c2bcb",
    "black": "#3d3d3d",
}


class CategoryGroups(NamedTuple):
    grouped: Dict[str, Tuple[str, ...]]
    others: Tuple[str, ...]

    def for_major(self, major: str) -> Tuple[str, ...]:
        """Categories listed under a major button; "기타" shows the unmatched bucket."""
        if major == OTHER_CATEGORY:
            return self.others
        return self.grouped.get(major, ())


def classify_category(category: Optional[str]) -> str:
    """Map a raw incident category to its major category."""
    if not category:
        return OTHER_CATEGORY
    for major in MAJOR_CATEGORIES:
        if category.startswith(major):
            return major
    return OTHER_CATEGORY


def category_color(category: Optional[str]) -> str:
    return MAJOR_COLOR_MAP.get(classify_category(category), DEFAULT_COLOR)


def legend_entries() -> List[Tuple[str, str]]:
    """(major, colour) pairs in display order, "기타" last."""
    return [(major, MAJOR_COLOR_MAP[major]) for major in (*MAJOR_CATEGORIES, OTHER_CATEGORY)]


def group_categories(categories: Iterable[str]) -> CategoryGroups:
    """Group distinct category values by their major category."""
    grouped: Dict[str, set] = {}
    others: set = set()
    for cat in categories:
        if not cat:
            continue
        major = classify_category(cat)
        if major == OTHER_CATEGORY:
            others.add(cat)
        else:
            grouped.setdefault(major, set()).add(cat)
    # Precomposed Hangul code points follow Korean dictionary order
    return CategoryGroups(
        grouped={major: tuple(sorted(grouped[major])) for major in MAJOR_CATEGORIES if major in grouped},
        others=tuple(sorted(others)),
    )


__all__ = [
    "OTHER_CATEGORY",
    "DEFAULT_COLOR",
    "MAJOR_CATEGORIES",
    "MAJOR_COLOR_MAP",
    "COLOR_HEX",
    "CategoryGroups",
    "classify_category",
    "category_color",
    "legend_entries",
    "group_categories",
]
