"""Version groups and the route table: one POST path per discovered action."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator

from orbit.actions.discovery import Action, discover
from orbit.core.container import Container
from orbit.core.errors import ConfigurationError, RouteConflictError
from orbit.core.module import Module

if TYPE_CHECKING:
    from orbit.core.app import Application

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    """Stability tier; the value is appended to the version segment."""

    STABLE = ""
    BETA = "beta"
    ALPHA = "alpha"


def normalize_base(base_url: str) -> str:
    """'api/' -> '/api', '' or '/' -> ''."""
    stripped = base_url.strip().strip("/")
    return f"/{stripped}" if stripped else ""


def tier_prefix(major: int, tier: Tier, base_url: str = "") -> str:
    return f"{normalize_base(base_url)}/v{major}{tier.value}"


def action_path(prefix: str, action: Action) -> str:
    if action.omitted:
        return f"{prefix}/{action.method}"
    return f"{prefix}/{action.resource}/{action.method}"


class VersionGroup(Module):
    """
    Service constructors under one major version, split by stability tier.
    Attach via app.register(group) or app.map(group).
    """

    def __init__(self, major: int) -> None:
        if major < 0:
            raise ConfigurationError(f"Main version must be at least zero, got {major}")
        self.major = major
        self._constructors: dict[Tier, list[Callable[..., Any]]] = {tier: [] for tier in Tier}

    def stable(self, *constructors: Callable[..., Any]) -> VersionGroup:
        self._constructors[Tier.STABLE].extend(constructors)
        return self

    def beta(self, *constructors: Callable[..., Any]) -> VersionGroup:
        self._constructors[Tier.BETA].extend(constructors)
        return self

    def alpha(self, *constructors: Callable[..., Any]) -> VersionGroup:
        self._constructors[Tier.ALPHA].extend(constructors)
        return self

    def constructors(self, tier: Tier) -> list[Callable[..., Any]]:
        return list(self._constructors[tier])

    def register_into(self, app: Application) -> None:
        app.map(self)

    def __repr__(self) -> str:
        counts = ", ".join(f"{t.name.lower()}={len(c)}" for t, c in self._constructors.items())
        return f"VersionGroup({self.major}, {counts})"


@dataclass(frozen=True)
class BoundRoute:
    path: str
    action: Action
    major: int
    tier: Tier


class RouteTable:
    """Path -> action. A second action on the same path is a build error."""

    def __init__(self) -> None:
        self._routes: dict[str, BoundRoute] = {}

    def add(self, route: BoundRoute) -> None:
        existing = self._routes.get(route.path)
        if existing is not None:
            raise RouteConflictError(route.path, existing.action.qualname, route.action.qualname)
        self._routes[route.path] = route

    def get(self, path: str) -> BoundRoute | None:
        return self._routes.get(path)

    def __iter__(self) -> Iterator[BoundRoute]:
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)


def bind_group(
    table: RouteTable,
    group: VersionGroup,
    container: Container,
    *,
    base_url: str = "",
    suffixes: Iterable[str],
    strict: bool = True,
) -> None:
    """Resolve every service of the group, discover its actions and add their routes."""
    suffixes = list(suffixes)
    for tier in Tier:
        prefix = tier_prefix(group.major, tier, base_url)
        for constructor in group.constructors(tier):
            service = container.invoke(constructor)
            for action in discover(service, suffixes, strict=strict):
                route = BoundRoute(action_path(prefix, action), action, group.major, tier)
                table.add(route)
                logger.debug("POST %s -> %s [%s]", route.path, action.qualname, action.kind)
