from __future__ import annotations

"""Route table consumed by the dispatcher.

Matching is kept deliberately small: a path template such as
``/users/{uid}`` becomes an anchored regex with one named group per segment.
Anything satisfying :class:`Router` can be plugged in instead.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Pattern, Protocol, Tuple

from .http import Request, Response

View = Callable[[Any, Request, Response], None]

_PARAM = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def compile_path(path: str) -> Pattern[str]:
    parts: List[str] = []
    last = 0
    for match in _PARAM.finditer(path):
        parts.append(re.escape(path[last : match.start()]))
        parts.append(f"(?P<{match.group(1)}>[^/]+)")
        last = match.end()
    parts.append(re.escape(path[last:]))
    return re.compile("^" + "".join(parts) + "$")


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


@dataclass(slots=True)
class Route:
    """A registered (name, method, path, view) entry."""

    name: str
    method: str
    path: str
    view: View
    pattern: Pattern[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.pattern = compile_path(_normalize(self.path))

    def __str__(self) -> str:
        return f"{self.name}={self.method}:{self.path}"


class Router(Protocol):
    def match(self, method: str, path: str) -> Optional[Tuple[Route, Dict[str, str]]]:
        ...


class RouteTable:
    def __init__(self, routes: Iterable[Route] = ()) -> None:
        self._routes: Tuple[Route, ...] = tuple(routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes)

    def match(self, method: str, path: str) -> Optional[Tuple[Route, Dict[str, str]]]:
        method = method.upper()
        normalized = _normalize(path)
        for route in self._routes:
            if route.method != method:
                continue
            found = route.pattern.match(normalized)
            if found:
                return route, found.groupdict()
        return None


__all__ = [
    "Route",
    "RouteTable",
    "Router",
    "View",
    "compile_path",
]
