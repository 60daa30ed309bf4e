"""Request rate limiting."""

from .service import LimitInfo, RateLimiter

__all__ = ["LimitInfo", "RateLimiter"]
