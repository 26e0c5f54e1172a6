"""
Import Path Resolution
======================

Resolves the path in ``import Name from "path"`` to a file on disk so
that framework detection and prop extraction can look at the real file.

Import Kinds
------------
| Kind      | Example                 | Resolved against            |
|-----------|-------------------------|-----------------------------|
| Relative  | ./Counter, ../ui/Button | directory of importing file |
| Aliased   | @components/Button      | alias targets under base_dir|
| Absolute  | /src/widgets/Chart      | base_dir                    |
| Package   | react, @scope/widget    | not on disk (virtual)       |

For every candidate base path the resolver tries, in order:

    1. the path exactly as written
    2. the path plus each known extension
    3. <path>/index plus each known extension

Every path tried is recorded in ``Resolution.search_paths`` so a failed
lookup can report where it looked.

Default aliases mirror the usual project layout:

    @components/*  -> src/components/*, components/*
    @pages/*       -> src/pages/*, pages/*
    @utils/*       -> src/utils/*, utils/*
    @/*            -> src/*
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from mtm_sdk.errors import ImportResolutionError


logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".tsx", ".ts", ".jsx", ".js", ".vue", ".svelte", ".mtm")

DEFAULT_ALIASES: dict[str, tuple[str, ...]] = {
    "@components/*": ("src/components/*", "components/*"),
    "@pages/*": ("src/pages/*", "pages/*"),
    "@utils/*": ("src/utils/*", "utils/*"),
    "@/*": ("src/*",),
}


@dataclass(frozen=True)
class Resolution:
    """
    Result of resolving one import.

    Attributes:
        found: True if a file (or package) was found
        resolved_path: Path of the file found, the package name for
            package imports, or None
        search_paths: Every path that was tried, in order
        is_package: True for bare package specifiers
    """
    found: bool
    resolved_path: Optional[str] = None
    search_paths: tuple[str, ...] = field(default_factory=tuple)
    is_package: bool = False


class PathResolver:
    """
    Resolves component import paths.

    Usage:
        resolver = PathResolver("/project")
        resolution = resolver.resolve("@components/Counter", "/project/src/pages/index.mtm")

    Attributes:
        base_dir: Project root that aliases and absolute imports are
            resolved against
        aliases: Alias pattern -> target patterns (``*`` is the capture);
            caller aliases take precedence over the defaults
        extensions: Extensions tried for extension-less imports
        strict: Raise ImportResolutionError from resolve() on a miss
    """

    def __init__(
        self,
        base_dir: str | Path = ".",
        aliases: Optional[Mapping[str, Sequence[str]]] = None,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        strict: bool = False,
    ):
        self.base_dir = Path(base_dir)
        self.aliases: dict[str, tuple[str, ...]] = {
            pattern: tuple(targets) for pattern, targets in (aliases or {}).items()
        }
        for pattern, targets in DEFAULT_ALIASES.items():
            self.aliases.setdefault(pattern, targets)
        self.extensions = tuple(extensions)
        self.strict = strict

    def resolve(self, import_path: str, from_file: str = "", line: Optional[int] = None) -> Resolution:
        """
        Resolve an import path.

        Args:
            import_path: Path as written in the import statement
            from_file: File containing the import
            line: Line of the import, used only for the strict-mode error

        Returns:
            A Resolution; ``found`` is False on a miss unless strict

        Raises:
            ImportResolutionError: On a miss when the resolver is strict
        """
        if self.is_relative(import_path):
            base = Path(from_file).parent if from_file else self.base_dir
            resolution = self._try_candidates([base / import_path])
        elif self._alias_match(import_path) is not None:
            resolution = self._try_candidates(self._alias_candidates(import_path))
        elif import_path.startswith("/"):
            resolution = self._try_candidates([self.base_dir / import_path.lstrip("/")])
        else:
            logger.debug(f"Treating {import_path!r} as a package import")
            resolution = Resolution(True, import_path, (), is_package=True)

        if resolution.found:
            logger.debug(f"Resolved {import_path!r} -> {resolution.resolved_path}")
        elif self.strict:
            raise ImportResolutionError(import_path, from_file or None, line, resolution.search_paths)

        return resolution

    @staticmethod
    def is_relative(import_path: str) -> bool:
        return import_path.startswith(("./", "../"))

    def _alias_match(self, import_path: str) -> Optional[tuple[str, str]]:
        """Return (pattern, captured) for the first alias matching the path."""
        for pattern in self.aliases:
            if pattern.endswith("*"):
                prefix = pattern[:-1]
                if import_path.startswith(prefix):
                    return pattern, import_path[len(prefix):]
            elif import_path == pattern:
                return pattern, ""
        return None

    def _alias_candidates(self, import_path: str) -> list[Path]:
        pattern, captured = self._alias_match(import_path)
        return [self.base_dir / target.replace("*", captured) for target in self.aliases[pattern]]

    def _try_candidates(self, bases: Sequence[Path]) -> Resolution:
        searched: list[str] = []

        for base in bases:
            candidates = [base]
            candidates.extend(Path(f"{base}{ext}") for ext in self.extensions)
            candidates.extend(base / f"index{ext}" for ext in self.extensions)

            for candidate in candidates:
                searched.append(str(candidate))
                if candidate.is_file():
                    return Resolution(True, str(candidate), tuple(searched))

        return Resolution(False, None, tuple(searched))
