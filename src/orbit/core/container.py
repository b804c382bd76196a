"""DI container: validate constructors, register them by return type, resolve the graph."""
from __future__ import annotations

import inspect
import types
import typing
from typing import Any, Callable, TypeVar, get_type_hints

from orbit.core.errors import (
    ConstructorError,
    CyclicDependencyError,
    DependencyError,
    DependencyTypeError,
    MissingDependencyError,
)

T = TypeVar("T")

# Return types that are values rather than objects or interfaces.
_VALUE_TYPES = frozenset(
    {int, float, complex, bool, str, bytes, bytearray, list, dict, tuple, set, frozenset, object, type(None)}
)


def _name(constructor: Any) -> str:
    return getattr(constructor, "__qualname__", None) or repr(constructor)


def _hints(constructor: Callable[..., Any]) -> dict[str, Any]:
    """Resolved annotations (string annotations from __future__ included)."""
    target = constructor
    if isinstance(constructor, type):
        target = constructor.__init__
        if target is object.__init__:
            return {}
    try:
        return get_type_hints(target)
    except (NameError, TypeError) as exc:
        raise ConstructorError(f"Cannot resolve annotations of {_name(constructor)}: {exc}") from exc


def verify_constructor(constructor: Any) -> type:
    """
    Check the accepted constructor shape and return the type it provides.

    Accepted: a synchronous callable, not variadic, declaring exactly one
    return type that is a class or an interface (ABC / Protocol).
    """
    if not callable(constructor):
        raise ConstructorError(f"Constructor must be callable, got {constructor!r}")
    if inspect.iscoroutinefunction(constructor):
        raise ConstructorError(f"Constructor {_name(constructor)} must be synchronous")
    try:
        sig = inspect.signature(constructor)
    except (TypeError, ValueError) as exc:
        raise ConstructorError(f"Cannot inspect constructor {_name(constructor)}: {exc}") from exc
    for param in sig.parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise ConstructorError(f"Constructor {_name(constructor)} must not be variadic")

    if isinstance(constructor, type):
        _hints(constructor)
        return constructor

    hints = _hints(constructor)
    if "return" not in hints:
        raise ConstructorError(f"Constructor {_name(constructor)} must declare exactly one return type")
    returned = hints["return"]
    origin = typing.get_origin(returned)
    if returned is tuple or origin is tuple:
        raise ConstructorError(f"Constructor {_name(constructor)} must return one value, not a tuple")
    if origin in (typing.Union, types.UnionType):
        raise ConstructorError(f"Constructor {_name(constructor)} must return one type, got {returned}")
    if not isinstance(returned, type) or returned in _VALUE_TYPES:
        raise ConstructorError(
            f"Constructor {_name(constructor)} must return an object or interface type, got {returned!r}"
        )
    return returned


class Container:
    """
    Register constructors by the type they return and resolve by type.
    Each provided type is built once per container; invoke() builds a value
    from the graph without registering it.
    """

    def __init__(self) -> None:
        self._registry: dict[Any, Callable[..., Any]] = {}
        self._instances: dict[Any, Any] = {}
        self._resolving: list[Any] = []

    def provide(self, constructor: Callable[..., Any]) -> type:
        """Validate and register a constructor. Returns the type it provides."""
        key = verify_constructor(constructor)
        if self.has(key):
            raise DependencyError(f"{key.__qualname__} is already provided")
        self._registry[key] = constructor
        return key

    def provide_instance(self, key: type[T] | Any, instance: T) -> None:
        """Register a ready-made instance."""
        self._instances[key] = instance

    def has(self, key: Any) -> bool:
        return key in self._instances or key in self._registry

    def resolve(self, key: type[T]) -> T:
        """Resolve an instance by type, building its dependencies first."""
        if key in self._instances:
            return self._instances[key]
        if key not in self._registry:
            raise MissingDependencyError(key)
        if key in self._resolving:
            start = self._resolving.index(key)
            raise CyclicDependencyError(self._resolving[start:] + [key])
        self._resolving.append(key)
        try:
            instance = self._call(self._registry[key], key)
        finally:
            self._resolving.pop()
        self._instances[key] = instance
        return instance

    def invoke(self, constructor: Callable[..., T]) -> T:
        """Validate the constructor, resolve its parameters from the graph and call it."""
        key = verify_constructor(constructor)
        return self._call(constructor, key)

    def _call(self, constructor: Callable[..., Any], key: type) -> Any:
        args, kwargs = self._arguments(constructor)
        instance = constructor(*args, **kwargs)
        _check_instance(instance, key, constructor)
        return instance

    def _arguments(self, constructor: Callable[..., Any]) -> tuple[list[Any], dict[str, Any]]:
        hints = _hints(constructor)
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for name, param in inspect.signature(constructor).parameters.items():
            ann = hints.get(name)
            if ann is not None and self.has(ann):
                value = self.resolve(ann)
            elif param.default is not inspect.Parameter.empty:
                continue
            else:
                raise MissingDependencyError(ann if ann is not None else f"parameter {name!r}", _name(constructor))
            if param.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[name] = value
        return args, kwargs


def _check_instance(instance: Any, key: type, constructor: Any) -> None:
    if instance is None:
        raise DependencyTypeError(f"Constructor {_name(constructor)} returned None")
    try:
        ok = isinstance(instance, key)
    except TypeError:
        # Protocol without @runtime_checkable: nothing to check against.
        return
    if not ok:
        raise DependencyTypeError(
            f"Constructor {_name(constructor)} returned {type(instance).__qualname__}, "
            f"expected {key.__qualname__}"
        )
