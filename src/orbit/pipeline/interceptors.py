"""Authentication step of the pipeline and the JWT identity interceptor."""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence

import jwt

from orbit.core.config import Options
from orbit.core.errors import AuthenticationError

logger = logging.getLogger(__name__)


async def _call(fn: Callable[..., Any], *args: Any) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def authorize(headers: Mapping[str, str], options: Options) -> tuple[int | None, Any]:
    """
    Run the identity interceptor, then the permission interceptor.
    Returns (status, identity); status is None when the request may proceed.
    """
    if options.identity_interceptor is None:
        if options.require_auth:
            logger.error("Authentication is required but no identity interceptor is configured")
            return 503, None
        return None, None

    try:
        identity = await _call(options.identity_interceptor, headers)
    except Exception as exc:
        logger.info("Authentication failed: %s", exc)
        return 401, None
    if identity is None:
        logger.info("Authentication failed: no identity established")
        return 401, None

    # Permission is only checked once an identity exists.
    if options.permission_interceptor is not None:
        try:
            await _call(options.permission_interceptor, headers, identity)
        except Exception as exc:
            logger.info("Permission denied: %s", exc)
            return 403, identity
    return None, identity


@dataclass(frozen=True)
class Claims:
    """Identity carried by the token; raw keeps every claim."""

    tenant_id: str = ""
    user_type: str = ""
    user_role: str = ""
    user_id: str = ""
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JWTInterceptor:
    """
    Identity interceptor for `Authorization: [Bearer ]<jwt>` headers.

    key_func returns the verification key (an RSA public key for the default
    RS256). Expiry is checked against time_func() so tests and clock-skewed
    deployments can supply their own clock.
    """

    def __init__(
        self,
        key_func: Callable[[], Any],
        *,
        time_func: Callable[[], datetime] = _utc_now,
        algorithms: Sequence[str] = ("RS256",),
    ) -> None:
        self.key_func = key_func
        self.time_func = time_func
        self.algorithms = list(algorithms)

    def __call__(self, headers: Mapping[str, str]) -> Claims:
        token = headers.get("authorization") or headers.get("Authorization")
        if not token:
            raise AuthenticationError("no Authorization in header")
        if token[:7].lower() == "bearer ":
            token = token[7:].strip()

        try:
            payload = jwt.decode(
                token,
                self.key_func(),
                algorithms=self.algorithms,
                options={"verify_exp": False},
            )
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError(f"invalid token: {exc}") from exc

        exp = payload.get("exp")
        if exp is None:
            raise AuthenticationError("token has no expiry")
        if self.time_func().timestamp() > float(exp):
            raise AuthenticationError("jwt expired")

        return Claims(
            tenant_id=str(payload.get("TenantID", "")),
            user_type=str(payload.get("UserType", "")),
            user_role=str(payload.get("UserRole", "")),
            user_id=str(payload.get("UserID", "")),
            raw=dict(payload),
        )
