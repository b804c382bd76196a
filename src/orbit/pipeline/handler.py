"""
Per-request pipeline for one action:

    auth -> bind -> validate -> context -> invoke -> classify -> serialize

Each step either hands over to the next one or answers right away. Nothing
raised by the action escapes: business errors become 409, deadlines 504 and
everything else a logged 500 without details.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Iterator

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse

from orbit.actions.discovery import STREAM, Action
from orbit.actions.protocol import StreamFile
from orbit.core.config import Options
from orbit.core.context import IDENTITY_KEY, REQUEST_ID_HEADER, REQUEST_ID_KEY, Context, DeadlineExceeded
from orbit.core.errors import KnownError
from orbit.pipeline.interceptors import authorize

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

Endpoint = Callable[[Request], Awaitable[Response]]


class _BadRequest(Exception):
    pass


def make_endpoint(action: Action, options: Options) -> Endpoint:
    """Starlette endpoint serving one action."""

    async def endpoint(request: Request) -> Response:
        identity = None
        if not action.anonymous:
            status, identity = await authorize(request.headers, options)
            if status is not None:
                return Response(status_code=status)

        try:
            payload = await _bind(request, action)
        except _BadRequest as exc:
            logger.debug("Bad payload for %s: %s", action.qualname, exc)
            return Response(status_code=400)

        try:
            payload.validate()
        except Exception as exc:
            logger.debug("Payload for %s rejected: %s", action.qualname, exc)
            return Response(status_code=400)

        request_id = str(uuid.uuid4())
        ctx = build_context(options, request_id, identity)
        headers = {REQUEST_ID_HEADER: request_id}

        deadline = asyncio.timeout(ctx.remaining())
        try:
            async with deadline:
                result = await action.invoke(ctx, payload)
        except KnownError as err:
            return JSONResponse({"error": err.to_dict()}, status_code=409, headers=headers)
        except DeadlineExceeded:
            return Response(status_code=504, headers=headers)
        except TimeoutError:
            if deadline.expired():
                logger.warning("%s exceeded its deadline (request %s)", action.qualname, request_id)
                return Response(status_code=504, headers=headers)
            logger.exception("%s failed (request %s)", action.qualname, request_id)
            return Response(status_code=500, headers=headers)
        except Exception:
            logger.exception("%s failed (request %s)", action.qualname, request_id)
            return Response(status_code=500, headers=headers)
        finally:
            ctx.cancel()

        return await _respond(action, result, headers, request_id)

    endpoint.__name__ = f"{action.resource or 'root'}_{action.method}"
    return endpoint


def build_context(options: Options, request_id: str, identity: Any = None) -> Context:
    base = options.context_factory() if options.context_factory is not None else Context.background()
    ctx = base.with_value(REQUEST_ID_KEY, request_id)
    if identity is not None:
        ctx = ctx.with_value(IDENTITY_KEY, identity)
    return ctx.with_timeout(options.ctx_timeout)


async def _bind(request: Request, action: Action) -> Any:
    body = await request.body()
    try:
        return action.bind(body)
    except ValidationError as exc:
        raise _BadRequest(str(exc)) from exc


async def _respond(action: Action, result: Any, headers: dict[str, str], request_id: str) -> Response:
    if result is None:
        return Response(status_code=404, headers=headers)

    if action.kind == STREAM:
        close = _close_once(result)
        try:
            size = (await asyncio.to_thread(result.stat)).st_size
        except Exception:
            logger.exception("Cannot stat stream of %s (request %s)", action.qualname, request_id)
            close()
            return Response(status_code=500, headers=headers)
        headers["Content-Length"] = str(size)
        return StreamingResponse(
            _chunks(result, close),
            media_type="application/octet-stream",
            headers=headers,
            background=BackgroundTask(close),
        )

    try:
        body = {"result": action.dump(result)}
    except PydanticSerializationError:
        logger.exception("Cannot serialize result of %s (request %s)", action.qualname, request_id)
        return Response(status_code=500, headers=headers)
    return JSONResponse(body, headers=headers)


def _close_once(file: StreamFile) -> Callable[[], None]:
    # Called from the chunk iterator and from the background task; whichever runs first wins.
    closed = False

    def close() -> None:
        nonlocal closed
        if not closed:
            closed = True
            file.close()

    return close


def _chunks(file: StreamFile, close: Callable[[], None]) -> Iterator[bytes]:
    try:
        while chunk := file.read(CHUNK_SIZE):
            yield chunk
    finally:
        close()
