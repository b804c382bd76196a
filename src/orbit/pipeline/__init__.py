from orbit.pipeline.interceptors import Claims, JWTInterceptor, authorize
from orbit.pipeline.handler import build_context, make_endpoint

__all__ = ["Claims", "JWTInterceptor", "authorize", "build_context", "make_endpoint"]
