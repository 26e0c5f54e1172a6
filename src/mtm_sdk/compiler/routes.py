"""
Route Registry
==============

Tracks which source file owns which route during one build and rejects
routes that collide.

Route Syntax
------------
Routes are ``/``-separated paths. A segment written ``[name]`` is a
dynamic parameter:

    /                 static
    /about            static
    /user/[id]        dynamic, one parameter
    /blog/[year]/[slug]

Conflict Rules
--------------
- The same path registered again by the *same* file is accepted (no-op).
- Two dynamic routes conflict when they have the same *structure*: after
  every ``[param]`` segment is replaced with a wildcard the patterns are
  identical. ``/user/[id]`` and ``/user/[name]`` conflict;
  ``/user/[id]`` and ``/admin/[id]`` do not. This check runs first, so a
  dynamic path registered twice by different files reports a
  DynamicRouteConflictError.
- A static path registered by a different file raises RouteConflictError.

Concurrency
-----------
One registry lives for exactly one build. All mutation goes through a
single lock, so files compiled on worker threads can register routes
safely. There is no removal operation.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Iterator, Optional
from urllib.parse import parse_qsl, urlsplit

from mtm_sdk.errors import (
    DynamicRouteConflictError,
    FrontmatterValidationError,
    RouteConflictError,
)


logger = logging.getLogger(__name__)

DYNAMIC_SEGMENT = re.compile(r"^\[(\w+)\]$")
WILDCARD = "*"


def split_segments(path: str) -> tuple[str, ...]:
    """Split a route into its non-empty segments."""
    return tuple(segment for segment in path.split("/") if segment)


def is_dynamic(path: str) -> bool:
    """Return True if any segment of path is a [param]."""
    return any(DYNAMIC_SEGMENT.match(segment) for segment in split_segments(path))


def structural_pattern(path: str) -> str:
    """Replace every [param] segment with a wildcard: /user/[id] -> /user/*."""
    segments = [
        WILDCARD if DYNAMIC_SEGMENT.match(segment) else segment
        for segment in split_segments(path)
    ]
    return "/" + "/".join(segments)


def validate_pattern(path: str) -> list[str]:
    """
    Check bracket syntax in a route.

    Returns:
        A list of problems, empty when the pattern is valid
    """
    problems = []
    depth = 0
    start = 0

    for index, char in enumerate(path):
        if char == "[":
            if depth:
                problems.append(f"nested brackets at offset {index}")
            depth += 1
            start = index
        elif char == "]":
            if not depth:
                problems.append(f"unmatched ']' at offset {index}")
                continue
            depth -= 1
            if not path[start + 1:index].strip():
                problems.append(f"empty parameter name at offset {start}")

    if depth:
        problems.append("unclosed '['")

    return problems


# =============================================================================
# Registry Entries
# =============================================================================

@dataclass(frozen=True)
class RouteEntry:
    """
    One registered route.

    Attributes:
        path: Route as written in the frontmatter
        source_file: File that registered it
        is_dynamic: True if any segment is a [param]
        segments: Path split on "/"
    """
    path: str
    source_file: str
    is_dynamic: bool = False
    segments: tuple[str, ...] = field(default_factory=tuple)

    @property
    def param_names(self) -> tuple[str, ...]:
        names = []
        for segment in self.segments:
            match = DYNAMIC_SEGMENT.match(segment)
            if match:
                names.append(match.group(1))
        return tuple(names)

    def match(self, path: str) -> Optional[dict[str, str]]:
        """Return the parameters if path matches this route, else None."""
        candidate = split_segments(path)
        if len(candidate) != len(self.segments):
            return None

        params = {}
        for pattern, actual in zip(self.segments, candidate):
            dynamic = DYNAMIC_SEGMENT.match(pattern)
            if dynamic:
                params[dynamic.group(1)] = actual
            elif pattern != actual:
                return None
        return params


@dataclass(frozen=True)
class RouteMatch:
    """Result of resolving a URL against the registry."""
    entry: RouteEntry
    params: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)


# =============================================================================
# Registry
# =============================================================================

class RouteRegistry:
    """
    Per-build mapping from route path to owning source file.

    Usage:
        registry = RouteRegistry()
        registry.register("/user/[id]", "pages/user.mtm")
        match = registry.resolve("/user/42?tab=posts")
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._routes: dict[str, RouteEntry] = {}
        self._dynamic: list[RouteEntry] = []

    def register(self, path: str, source_file: str) -> RouteEntry:
        """
        Register a route for a source file.

        Raises:
            FrontmatterValidationError: Malformed bracket syntax
            DynamicRouteConflictError: Same structure as an existing dynamic route
            RouteConflictError: Path already owned by another file
        """
        problems = validate_pattern(path)
        if problems:
            raise FrontmatterValidationError(
                "route",
                path,
                file=source_file,
                valid_values=(f"pattern problem: {p}" for p in problems),
            )

        with self._lock:
            existing = self._routes.get(path)
            if existing is not None and existing.source_file == source_file:
                return existing

            dynamic = is_dynamic(path)
            if dynamic:
                pattern = structural_pattern(path)
                for other in self._dynamic:
                    if other.source_file != source_file and structural_pattern(other.path) == pattern:
                        raise DynamicRouteConflictError(
                            path, other.path, source_file, other.source_file
                        )

            if existing is not None:
                raise RouteConflictError(path, existing.source_file, source_file)

            entry = RouteEntry(path, source_file, dynamic, split_segments(path))
            self._routes[path] = entry
            if dynamic:
                self._dynamic.append(entry)

        logger.debug(f"Registered route {path} -> {source_file}")
        return entry

    def resolve(self, url: str) -> Optional[RouteMatch]:
        """
        Find the route that serves url.

        Exact static matches win; dynamic routes are tried in
        registration order.
        """
        parts = urlsplit(url)
        path = parts.path or "/"
        query = dict(parse_qsl(parts.query))

        with self._lock:
            entry = self._routes.get(path)
            if entry is not None and not entry.is_dynamic:
                return RouteMatch(entry, {}, query)

            for entry in self._dynamic:
                params = entry.match(path)
                if params is not None:
                    return RouteMatch(entry, params, query)

        return None

    def entries(self) -> list[RouteEntry]:
        """Return all entries in registration order."""
        with self._lock:
            return list(self._routes.values())

    def get(self, path: str) -> Optional[RouteEntry]:
        with self._lock:
            return self._routes.get(path)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._routes

    def __len__(self) -> int:
        with self._lock:
            return len(self._routes)

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self.entries())
