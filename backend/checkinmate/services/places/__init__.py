"""Places lookup: merge engine and request handler."""

from .merge import DUPLICATE_TOLERANCE_DEG, is_duplicate, merge_places, with_distance
from .service import PlacesService

__all__ = [
    "DUPLICATE_TOLERANCE_DEG",
    "PlacesService",
    "is_duplicate",
    "merge_places",
    "with_distance",
]
