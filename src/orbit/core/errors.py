"""Error taxonomy: configuration errors (fatal at build) and business errors (409)."""
from __future__ import annotations

from typing import Any


class OrbitError(Exception):
    """Base class for every error raised by orbit."""


class ConfigurationError(OrbitError):
    """Invalid wiring detected while providing, mapping or building. The app must not start."""


class ConstructorError(ConfigurationError):
    """A constructor does not have the accepted shape."""


class DependencyError(ConfigurationError):
    """The dependency graph cannot produce a value."""


class MissingDependencyError(DependencyError):
    def __init__(self, key: Any, required_by: str | None = None) -> None:
        self.key = key
        self.required_by = required_by
        where = f" (required by {required_by})" if required_by else ""
        super().__init__(f"No registration for {_type_name(key)}{where}")


class CyclicDependencyError(DependencyError):
    def __init__(self, path: list[Any]) -> None:
        self.path = list(path)
        super().__init__("Dependency cycle: " + " -> ".join(_type_name(k) for k in self.path))


class DependencyTypeError(DependencyError):
    """A constructor returned a value that is not an instance of its declared type."""


class DuplicateVersionError(ConfigurationError):
    def __init__(self, major: int) -> None:
        self.major = major
        super().__init__(f"Duplicated main version {major}")


class ActionSignatureError(ConfigurationError):
    """A method matched the action arity but its types are not acceptable."""


class ServiceNameError(ConfigurationError):
    """A service class name does not carry a recognized suffix."""


class RouteConflictError(ConfigurationError):
    def __init__(self, path: str, first: str, second: str) -> None:
        self.path = path
        super().__init__(f"Route {path} is claimed by both {first} and {second}")


class AuthenticationError(OrbitError):
    """Identity could not be established from the request headers."""


class KnownError(OrbitError):
    """
    Business error: expected domain failure returned to the client as 409.
    Two KnownErrors are equal when status and message are equal.
    """

    def __init__(self, status: str, message: str) -> None:
        super().__init__(status, message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return f"[Status] {self.status} [Message] {self.message}"

    def __repr__(self) -> str:
        return f"KnownError(status={self.status!r}, message={self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KnownError):
            return NotImplemented
        return self.status == other.status and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.status, self.message))

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "message": self.message}


def _type_name(key: Any) -> str:
    if isinstance(key, type):
        return key.__qualname__
    return str(key)
