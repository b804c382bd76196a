"""Request context: value bag, deadline and cancellation handed to every action."""
from __future__ import annotations

import time
from typing import Any

from orbit.core.errors import OrbitError

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_KEY = "request_id"
IDENTITY_KEY = "identity"


class DeadlineExceeded(OrbitError, TimeoutError):
    """The context deadline passed. Raising it from an action yields 504."""


class Cancelled(OrbitError):
    """The context was cancelled before its deadline."""


class Context:
    """
    Immutable view over request-scoped values with an optional deadline.
    Derive children with with_value() / with_timeout(); cancelling a parent
    cancels every child derived from it.
    """

    __slots__ = ("_parent", "_values", "_deadline", "_cancelled")

    def __init__(
        self,
        parent: Context | None = None,
        *,
        values: dict[str, Any] | None = None,
        deadline: float | None = None,
    ) -> None:
        self._parent = parent
        self._values = dict(values or {})
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline
        self._cancelled = False

    @classmethod
    def background(cls) -> Context:
        """Empty context: no values, no deadline."""
        return cls()

    def with_value(self, key: str, value: Any) -> Context:
        return Context(self, values={key: value})

    def with_timeout(self, seconds: float) -> Context:
        return Context(self, deadline=time.monotonic() + seconds)

    def value(self, key: str, default: Any = None) -> Any:
        ctx: Context | None = self
        while ctx is not None:
            if key in ctx._values:
                return ctx._values[key]
            ctx = ctx._parent
        return default

    @property
    def request_id(self) -> str | None:
        return self.value(REQUEST_ID_KEY)

    @property
    def identity(self) -> Any:
        return self.value(IDENTITY_KEY)

    @property
    def deadline(self) -> float | None:
        """Deadline on the time.monotonic() clock, or None."""
        return self._deadline

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        ctx: Context | None = self
        while ctx is not None:
            if ctx._cancelled:
                return True
            ctx = ctx._parent
        return False

    def done(self) -> bool:
        return self.err() is not None

    def err(self) -> OrbitError | None:
        """DeadlineExceeded or Cancelled once the context is finished, else None."""
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceeded("context deadline exceeded")
        if self.cancelled():
            return Cancelled("context cancelled")
        return None

    def raise_if_done(self) -> None:
        err = self.err()
        if err is not None:
            raise err

    def __repr__(self) -> str:
        return f"Context(request_id={self.request_id!r}, remaining={self.remaining()!r})"
