"""Place validator service module.

Single validation entry point used when parsing external data and when
filtering merge input.
"""

from .service import ValidationResult, validate_place

__all__ = [
    "ValidationResult",
    "validate_place",
]
