"""OpenStreetMap Overpass place source."""

from .service import (
    EXCLUDED_VALUES,
    LANDMARK_TAGS,
    RELEVANT_TAGS,
    OverpassService,
    categorize,
    element_coordinates,
    is_excluded,
)

__all__ = [
    "EXCLUDED_VALUES",
    "LANDMARK_TAGS",
    "RELEVANT_TAGS",
    "OverpassService",
    "categorize",
    "element_coordinates",
    "is_excluded",
]
