"""Route segment names derived from service class names and method names."""
from __future__ import annotations

import re
from typing import Iterable

from orbit.core.errors import ServiceNameError

_ACRONYM = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD = re.compile(r"([a-z\d])([A-Z])")
_SEPARATORS = re.compile(r"[\s\-.]+")
_UNDERSCORES = re.compile(r"_+")


def snake(name: str) -> str:
    """GetOrder -> get_order, HTTPStatus -> http_status. Idempotent on snake_case input."""
    s = _SEPARATORS.sub("_", name.strip())
    s = _ACRONYM.sub(r"\1_\2", s)
    s = _WORD.sub(r"\1_\2", s)
    return _UNDERSCORES.sub("_", s).strip("_").lower()


def strip_suffix(type_name: str, suffixes: Iterable[str]) -> str | None:
    """Lower-cased name without the first matching suffix, or None when none matches."""
    lowered = type_name.lower()
    for suffix in suffixes:
        s = suffix.lower()
        if s and lowered.endswith(s):
            return lowered[: -len(s)]
    return None


def resource_name(type_name: str, suffixes: Iterable[str], *, allow_empty: bool = False) -> str:
    """
    DemoService -> demo. The class name is lower-cased before the suffix is
    stripped, so word boundaries inside it are not preserved.
    """
    suffixes = list(suffixes)
    stripped = strip_suffix(type_name, suffixes)
    if stripped is None:
        raise ServiceNameError(f"{type_name} must end with one of {', '.join(suffixes)}")
    name = snake(stripped)
    if not name and not allow_empty:
        raise ServiceNameError(f"{type_name} has nothing left once its suffix is stripped")
    return name


def method_name(name: str) -> str:
    return snake(name)
