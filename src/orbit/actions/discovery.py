"""
Action discovery: find the methods of a resolved service that can be served
as routes and capture everything the request pipeline needs to call them.

A method is an action when it takes exactly (ctx: Context, req: SomeRequest)
besides self. Methods of any other arity are helpers and are skipped. Once
the arity matches, the types must be acceptable or the build fails.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, get_type_hints

from pydantic import TypeAdapter
from pydantic.errors import PydanticSchemaGenerationError

from orbit.actions.naming import method_name, resource_name
from orbit.actions.protocol import Anonymous, Omitted, Request, StreamFile
from orbit.core.context import Context
from orbit.core.errors import ActionSignatureError

logger = logging.getLogger(__name__)

JSON = "json"
STREAM = "stream"

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
_VALUE_TYPES = frozenset(
    {int, float, complex, bool, str, bytes, bytearray, list, dict, tuple, set, frozenset, object, type(None)}
)


@dataclass(frozen=True)
class Action:
    """One (service, method) pair served as one route."""

    service: Any
    attr: str
    resource: str
    method: str
    request_type: type
    response_type: type
    kind: str
    invocable: Callable[..., Any] = field(repr=False)
    is_async: bool = field(repr=False)
    request_adapter: TypeAdapter[Any] = field(repr=False)
    response_adapter: TypeAdapter[Any] | None = field(default=None, repr=False)
    anonymous: bool = False
    omitted: bool = False

    @property
    def qualname(self) -> str:
        return f"{type(self.service).__name__}.{self.attr}"

    def bind(self, body: bytes) -> Any:
        """
        Build a fresh request value from a raw JSON body; an empty body binds as {}.
        Strict: "1000" or true never bind into an int field. Raises pydantic.ValidationError.
        """
        if not body.strip():
            body = b"{}"
        return self.request_adapter.validate_json(body, strict=True)

    def dump(self, result: Any) -> Any:
        """JSON-compatible form of a json-kind result."""
        if self.response_adapter is None:
            raise TypeError(f"{self.qualname} streams its result and has no JSON form")
        return self.response_adapter.dump_python(result, mode="json")

    async def invoke(self, ctx: Context, payload: Any) -> Any:
        """Call the bound method; plain functions run in a worker thread."""
        if self.is_async:
            return await self.invocable(ctx, payload)
        return await asyncio.to_thread(self.invocable, ctx, payload)


def discover(service: Any, suffixes: Iterable[str], *, strict: bool = True) -> list[Action]:
    """
    Return the actions of a service instance, ordered by method name.

    strict: a method with the action arity whose request type lacks
    validate() raises ActionSignatureError; when False it is skipped.
    """
    cls = type(service)
    omitted = isinstance(service, Omitted) and bool(service.omitted())
    anonymous = isinstance(service, Anonymous) and bool(service.anonymous())
    resource = resource_name(cls.__name__, suffixes, allow_empty=omitted)

    actions: list[Action] = []
    for attr in sorted(dir(cls)):
        if attr.startswith("_"):
            continue
        func = inspect.getattr_static(cls, attr)
        if not inspect.isfunction(func):
            continue
        shape = _action_shape(cls, attr, func, strict)
        if shape is None:
            continue
        request_type, response_type, kind = shape
        where = f"{cls.__qualname__}.{attr}"
        actions.append(
            Action(
                service=service,
                attr=attr,
                resource=resource,
                method=method_name(attr),
                request_type=request_type,
                response_type=response_type,
                kind=kind,
                invocable=getattr(service, attr),
                is_async=inspect.iscoroutinefunction(func),
                request_adapter=_adapter(request_type, where),
                response_adapter=_adapter(response_type, where) if kind == JSON else None,
                anonymous=anonymous,
                omitted=omitted,
            )
        )
    if not actions:
        logger.warning("%s exposes no actions", cls.__qualname__)
    return actions


def _action_shape(cls: type, attr: str, func: Callable[..., Any], strict: bool) -> tuple[type, type, str] | None:
    where = f"{cls.__qualname__}.{attr}"
    params = list(inspect.signature(func).parameters.values())[1:]
    if len(params) != 2 or any(p.kind not in _POSITIONAL for p in params):
        return None
    try:
        hints = get_type_hints(func)
    except (NameError, TypeError) as exc:
        raise ActionSignatureError(f"Cannot resolve annotations of {where}: {exc}") from exc

    ctx_type = hints.get(params[0].name)
    if not (isinstance(ctx_type, type) and issubclass(ctx_type, Context)):
        return None

    request_type = hints.get(params[1].name)
    if not _is_request(request_type):
        if strict:
            raise ActionSignatureError(f"{where}: request type {request_type!r} must define validate()")
        logger.debug("Skipping %s: request type %r does not define validate()", where, request_type)
        return None

    response_type = _response_type(hints, where)
    kind = STREAM if issubclass(response_type, StreamFile) else JSON
    return request_type, response_type, kind


def _is_request(t: Any) -> bool:
    if not isinstance(t, type) or _is_interface(t) or not issubclass(t, Request):
        return False
    # pydantic.BaseModel.validate is a deprecated classmethod, not a payload check.
    return inspect.isfunction(inspect.getattr_static(t, "validate"))


def _is_interface(t: type) -> bool:
    return bool(getattr(t, "_is_protocol", False)) or inspect.isabstract(t)


def _response_type(hints: dict[str, Any], where: str) -> type:
    if "return" not in hints:
        raise ActionSignatureError(f"{where} must declare its return type")
    returned = hints["return"]
    if typing.get_origin(returned) in (typing.Union, types.UnionType):
        members = [a for a in typing.get_args(returned) if a is not type(None)]
        if len(members) != 1:
            raise ActionSignatureError(f"{where} must return a single class, got {returned}")
        returned = members[0]
    if not isinstance(returned, type) or returned in _VALUE_TYPES or _is_interface(returned):
        raise ActionSignatureError(f"{where} must return a concrete class, got {returned!r}")
    return returned


def _adapter(t: type, where: str) -> TypeAdapter[Any]:
    try:
        return TypeAdapter(t)
    except PydanticSchemaGenerationError as exc:
        raise ActionSignatureError(
            f"{where}: {t.__qualname__} must be a dataclass or a pydantic model"
        ) from exc
