"""Application options: one object passed to Application(options=...) and available via DI."""
from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Union

from orbit.core.context import Context
from orbit.core.errors import ConfigurationError
from orbit.log import parse_level

DEFAULT_SUFFIXES = ("service", "handler", "usecase", "controller")

# headers -> identity; raise or return None to reject with 401.
IdentityInterceptor = Callable[[Mapping[str, str]], Union[Any, Awaitable[Any]]]
# (headers, identity) -> None; raise to reject with 403.
PermissionInterceptor = Callable[[Mapping[str, str], Any], Union[None, Awaitable[None]]]

_TRUE = {"1", "true", "yes", "on"}


@dataclass
class Options:
    """
    Every recognized option with its default. Callables (interceptors,
    context_factory) can only be set in code; the rest also from the
    environment via load_from_env().
    """

    addr: str = ":8080"
    app_name: str = ""
    base_url: str = ""
    ctx_timeout: float = 30.0
    suffixes: tuple[str, ...] = DEFAULT_SUFFIXES
    strict_requests: bool = True

    identity_interceptor: IdentityInterceptor | None = None
    permission_interceptor: PermissionInterceptor | None = None
    require_auth: bool = False
    context_factory: Callable[[], Context] | None = None

    enable_rate_limit: bool = False
    fill_interval: float = 1.0
    capacity: int = 100
    quantum: int = 1

    enable_load_limit: bool = False
    max_cpu_percent: float = 90.0
    max_mem_percent: float = 90.0
    load_interval: float = 60.0
    load_sample_window: float = 5.0

    tls_cert: str | None = None
    tls_key: str | None = None

    log_level: str = "info"
    log_json: bool = False

    extra: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.ensure()

    def ensure(self) -> None:
        """Fill empty values with defaults and reject values the app cannot run with."""
        if not self.addr:
            self.addr = ":8080"
        if not self.ctx_timeout:
            self.ctx_timeout = 30.0
        self.suffixes = tuple(s.strip().lower() for s in self.suffixes if s and s.strip())
        if not self.suffixes:
            self.suffixes = DEFAULT_SUFFIXES
        if self.ctx_timeout < 0:
            raise ConfigurationError("ctx_timeout must be positive")
        if self.enable_rate_limit and (self.fill_interval <= 0 or self.capacity <= 0 or self.quantum <= 0):
            raise ConfigurationError("rate limit needs positive fill_interval, capacity and quantum")
        if self.enable_load_limit and self.load_interval <= 0:
            raise ConfigurationError("load_interval must be positive")
        if bool(self.tls_cert) != bool(self.tls_key):
            raise ConfigurationError("tls_cert and tls_key must be set together")
        try:
            parse_level(self.log_level)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    @property
    def host(self) -> str:
        host, _, _ = self.addr.rpartition(":")
        return host or "0.0.0.0"

    @property
    def port(self) -> int:
        _, _, port = self.addr.rpartition(":")
        try:
            return int(port)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid listen address {self.addr!r}") from exc

    @classmethod
    def load_from_env(cls, prefix: str = "ORBIT_", **overrides: Any) -> Options:
        """
        Build options from os.environ: ORBIT_CTX_TIMEOUT=5 -> ctx_timeout=5.0.
        Unknown prefixed variables land in .extra; keyword overrides win over env.
        """
        known = {f.name: f for f in dataclasses.fields(cls)}
        values: dict[str, Any] = {}
        extra: dict[str, str] = {}
        for key, raw in os.environ.items():
            if not key.startswith(prefix):
                continue
            name = key[len(prefix):].lower()
            f = known.get(name)
            if f is None or name == "extra":
                extra[name] = raw
                continue
            values[name] = _coerce(name, f.type, raw)
        values.update(overrides)
        values.setdefault("extra", extra)
        try:
            return cls(**values)
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc


def _coerce(name: str, annotation: Any, raw: str) -> Any:
    # Annotations are strings under `from __future__ import annotations`.
    kind = str(annotation)
    try:
        if kind.startswith("bool"):
            return raw.strip().lower() in _TRUE
        if kind.startswith("int"):
            return int(raw)
        if kind.startswith("float"):
            return float(raw)
        if kind.startswith("tuple"):
            return tuple(part.strip() for part in raw.split(",") if part.strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from exc
    if kind.startswith("str") and "None" in kind:
        return raw or None
    if kind.startswith("str"):
        return raw
    raise ConfigurationError(f"Option {name} cannot be set from the environment")
