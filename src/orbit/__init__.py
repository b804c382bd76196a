"""
Orbit: convention-over-configuration HTTP services.
Services are plain classes whose methods take (ctx, request); version groups
turn them into POST routes via app.register(group).
"""
from orbit.core import (
    ActionSignatureError,
    Application,
    ConfigurationError,
    Container,
    Context,
    DeadlineExceeded,
    DependencyError,
    KnownError,
    Module,
    Options,
    RouteConflictError,
    Tier,
    VersionGroup,
)
from orbit.actions import Anonymous, LocalFile, Omitted, Request, StreamFile
from orbit.log import configure_logging
from orbit.pipeline import Claims, JWTInterceptor

__all__ = [
    "Application",
    "Container",
    "Module",
    "Options",
    "VersionGroup",
    "Tier",
    "Context",
    "KnownError",
    "DeadlineExceeded",
    "ConfigurationError",
    "DependencyError",
    "ActionSignatureError",
    "RouteConflictError",
    "Request",
    "StreamFile",
    "LocalFile",
    "Omitted",
    "Anonymous",
    "JWTInterceptor",
    "Claims",
    "configure_logging",
]
