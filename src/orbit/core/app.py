"""Application: owns the container, options and version groups; builds and serves the ASGI app."""
from __future__ import annotations

import dataclasses
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

import uvicorn
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from orbit.core.config import Options
from orbit.core.container import Container, verify_constructor
from orbit.core.context import REQUEST_ID_HEADER
from orbit.core.errors import ConfigurationError, DuplicateVersionError
from orbit.core.module import Module
from orbit.core.routing import BoundRoute, RouteTable, VersionGroup, bind_group
from orbit.log import configure_logging, parse_level
from orbit.middleware.overload import LoadMonitor, OverloadMiddleware
from orbit.middleware.ratelimit import RateLimitMiddleware, TokenBucket
from orbit.pipeline.handler import make_endpoint

logger = logging.getLogger(__name__)


async def _not_implemented(request: Request, exc: HTTPException) -> Response:
    return Response(status_code=501)


class Application:
    """
    Application. Dependencies via provide(), services via version groups
    (register(group) or map(group)). The first request, routes or run()
    builds the route table; wiring errors surface there as ConfigurationError.

    An Application is an ASGI app: `uvicorn main:app` works as well as app.run().
    """

    def __init__(self, options: Options | None = None, **overrides: Any) -> None:
        if options is None:
            options = Options(**overrides)
        elif overrides:
            options = dataclasses.replace(options, **overrides)
        self.options = options
        self._container = Container()
        self._container.provide_instance(Options, options)
        self._groups: dict[int, VersionGroup] = {}
        self._table = RouteTable()
        self._asgi: Starlette | None = None
        self._bucket = (
            TokenBucket(options.fill_interval, options.capacity, options.quantum)
            if options.enable_rate_limit
            else None
        )
        self._monitor = (
            LoadMonitor(
                options.max_cpu_percent,
                options.max_mem_percent,
                interval=options.load_interval,
                sample_window=options.load_sample_window,
            )
            if options.enable_load_limit
            else None
        )

    def register(self, module: Module) -> Application:
        """Register a module (VersionGroup or any object with register_into). Returns self for chaining."""
        module.register_into(self)
        return self

    def provide(self, *constructors: Callable[..., Any]) -> Application:
        """Register dependency constructors. All are validated before any is registered."""
        self._ensure_not_built()
        for constructor in constructors:
            verify_constructor(constructor)
        for constructor in constructors:
            self._container.provide(constructor)
        return self

    def map(self, *groups: VersionGroup) -> Application:
        """Attach version groups. A major version may only be mapped once."""
        self._ensure_not_built()
        for group in groups:
            if group.major in self._groups:
                raise DuplicateVersionError(group.major)
            self._groups[group.major] = group
        return self

    @property
    def container(self) -> Container:
        """DI container: registration and resolution of dependencies."""
        return self._container

    @property
    def monitor(self) -> LoadMonitor | None:
        return self._monitor

    @property
    def routes(self) -> list[BoundRoute]:
        self.build()
        return list(self._table)

    def build(self) -> Starlette:
        """Resolve services, discover actions and assemble the Starlette app (once)."""
        if self._asgi is not None:
            return self._asgi

        table = RouteTable()
        for major in sorted(self._groups):
            bind_group(
                table,
                self._groups[major],
                self._container,
                base_url=self.options.base_url,
                suffixes=self.options.suffixes,
                strict=self.options.strict_requests,
            )

        routes = [Route("/", self._welcome, methods=["GET"])]
        routes.extend(
            Route(bound.path, make_endpoint(bound.action, self.options), methods=["POST"]) for bound in table
        )

        self._table = table
        self._asgi = Starlette(
            routes=routes,
            middleware=self._middleware(),
            exception_handlers={404: _not_implemented, 405: _not_implemented},
            lifespan=self._lifespan,
        )
        logger.info("Built %d routes across %d version groups", len(table), len(self._groups))
        return self._asgi

    def _middleware(self) -> list[Middleware]:
        # Outermost first: shed load, then rate limit, then CORS and compression.
        stack: list[Middleware] = []
        if self._monitor is not None:
            stack.append(Middleware(OverloadMiddleware, monitor=self._monitor))
        if self._bucket is not None:
            stack.append(Middleware(RateLimitMiddleware, bucket=self._bucket))
        stack.append(
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["*"],
                allow_headers=["*"],
                expose_headers=[REQUEST_ID_HEADER],
            )
        )
        stack.append(Middleware(GZipMiddleware))
        return stack

    async def _welcome(self, request: Request) -> Response:
        message = "Welcome"
        if self.options.app_name:
            message = f"{message} to {self.options.app_name}"
        return PlainTextResponse(message)

    @asynccontextmanager
    async def _lifespan(self, app: Starlette) -> AsyncIterator[None]:
        if self._monitor is not None:
            self._monitor.start()
        try:
            yield
        finally:
            if self._monitor is not None:
                await self._monitor.stop()

    def _ensure_not_built(self) -> None:
        if self._asgi is not None:
            raise ConfigurationError("Application is already built")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.build()(scope, receive, send)

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Run the HTTP server (blocks). host/port default to options.addr."""
        configure_logging(self.options.log_level, json_format=self.options.log_json)
        self.build()
        host = host or self.options.host
        port = port or self.options.port
        scheme = "https" if self.options.tls_cert else "http"
        logger.info("%s server is listening on %s:%d", scheme, host, port)
        uvicorn.run(
            self,
            host=host,
            port=port,
            ssl_certfile=self.options.tls_cert,
            ssl_keyfile=self.options.tls_key,
            log_level=parse_level(self.options.log_level),
        )
