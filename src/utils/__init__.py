from .sinkhole_taxonomy import (
    MAJOR_CATEGORIES,
    MAJOR_COLOR_MAP,
    OTHER_CATEGORY,
    category_color,
    classify_category,
    group_categories,
)

__all__ = [
    "MAJOR_CATEGORIES",
    "MAJOR_COLOR_MAP",
    "OTHER_CATEGORY",
    "category_color",
    "classify_category",
    "group_categories",
]
