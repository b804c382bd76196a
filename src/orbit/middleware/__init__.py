from orbit.middleware.overload import LoadMonitor, OverloadMiddleware
from orbit.middleware.ratelimit import RateLimitMiddleware, TokenBucket

__all__ = ["LoadMonitor", "OverloadMiddleware", "RateLimitMiddleware", "TokenBucket"]
