from orbit.core.errors import (
    ActionSignatureError,
    AuthenticationError,
    ConfigurationError,
    ConstructorError,
    CyclicDependencyError,
    DependencyError,
    DependencyTypeError,
    DuplicateVersionError,
    KnownError,
    MissingDependencyError,
    OrbitError,
    RouteConflictError,
    ServiceNameError,
)
from orbit.core.context import Context, DeadlineExceeded
from orbit.core.config import Options
from orbit.core.container import Container
from orbit.core.module import Module
from orbit.core.routing import Tier, VersionGroup
from orbit.core.app import Application

__all__ = [
    "Application",
    "Container",
    "Module",
    "Options",
    "VersionGroup",
    "Tier",
    "Context",
    "DeadlineExceeded",
    "OrbitError",
    "ConfigurationError",
    "ConstructorError",
    "DependencyError",
    "MissingDependencyError",
    "CyclicDependencyError",
    "DependencyTypeError",
    "DuplicateVersionError",
    "ActionSignatureError",
    "ServiceNameError",
    "RouteConflictError",
    "AuthenticationError",
    "KnownError",
]
