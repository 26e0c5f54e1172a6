"""
MTM SDK Error Hierarchy
=======================

This module defines the exception hierarchy for the MTM compiler toolchain.
All exceptions inherit from MTMError, allowing callers to catch every
SDK-related error with a single except clause if desired.

Exception Hierarchy
-------------------
MTMError (base)
└── CompilationError (anything fatal or reportable for one source file)
    ├── RouteConflictError - route already owned by another file
    ├── DynamicRouteConflictError - dynamic routes with the same structure
    ├── ImportResolutionError - component import not found on disk
    ├── FrontmatterValidationError - invalid `route` or `compileJsMode`
    │   └── InvalidCompilationModeError - raised by the mode strategy
    ├── ConditionSyntaxError - malformed {#if ...} condition
    └── UnknownIdentifierError - condition names an undeclared variable

Design Philosophy
-----------------
Every CompilationError carries the file and line (when known) and a
non-empty list of suggestions, so a full-project build can report all
problems in one pass with actionable advice.

Error messages follow this format:
    filename:line: error: description
    suggestions:
      1. first suggestion
      2. second suggestion

Errors are collected by an ErrorCollector rather than raised on first
occurrence when compiling many files; see mtm_sdk.compiler.build.
"""

from dataclasses import dataclass
from typing import Optional, Sequence


# =============================================================================
# Base Exception Class
# =============================================================================

class MTMError(Exception):
    """
    Base exception for all MTM SDK errors.

    Callers can catch all SDK errors with a single except clause:

        try:
            compiler.compile_file("pages/index.mtm")
        except MTMError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A location in an MTM source file.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed), 0 when unknown
    """
    filename: str
    line: int = 0

    def __str__(self) -> str:
        if self.line > 0:
            return f"{self.filename}:{self.line}"
        return self.filename


# =============================================================================
# Compilation Errors
# =============================================================================

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"


class CompilationError(MTMError):
    """
    Base exception for everything reported against a single source file.

    Attributes:
        message: The error description
        file: Source file the error belongs to (optional)
        line: Line number in the source file (optional)
        suggestions: Actionable advice for fixing the problem
        severity: "error" (fatal for the file) or "warning"
        kind: Short machine-readable category, e.g. "route-conflict"
    """

    kind = "compilation"

    def __init__(
        self,
        message: str,
        file: Optional[str] = None,
        line: Optional[int] = None,
        suggestions: Sequence[str] = (),
        severity: str = SEVERITY_ERROR,
    ):
        self.message = message
        self.file = file
        self.line = line
        self.suggestions = tuple(suggestions) or (
            "Check the MTM documentation for the correct syntax",
        )
        self.severity = severity
        super().__init__(self._format_message())

    @property
    def location(self) -> Optional[SourceLocation]:
        if self.file is None:
            return None
        return SourceLocation(self.file, self.line or 0)

    @property
    def is_warning(self) -> bool:
        return self.severity == SEVERITY_WARNING

    def _format_message(self) -> str:
        """
        Format the error with location prefix and numbered suggestions.

        Example output:
            pages/user.mtm:2: error: route "/user" is already registered by "pages/account.mtm"
            suggestions:
              1. Change the route in "pages/user.mtm" to a different path
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: {self.severity}: {self.message}")
        else:
            parts.append(f"{self.severity}: {self.message}")

        if self.suggestions:
            parts.append("suggestions:")
            for index, suggestion in enumerate(self.suggestions, start=1):
                parts.append(f"  {index}. {suggestion}")

        return "\n".join(parts)

    def to_dict(self) -> dict:
        """Return the error as a plain record for build summaries."""
        return {
            "kind": self.kind,
            "severity": self.severity,
            "message": self.message,
            "file": self.file,
            "line": self.line,
            "suggestions": list(self.suggestions),
        }


class RouteConflictError(CompilationError):
    """
    Route already registered by a different source file.

    Raised by the route registry on an exact path match between two files.
    """

    kind = "route-conflict"

    def __init__(self, route: str, existing_file: str, new_file: str):
        self.route = route
        self.existing_file = existing_file
        self.new_file = new_file
        super().__init__(
            f'route "{route}" is already registered by "{existing_file}"',
            file=new_file,
            suggestions=(
                f'Change the route in "{new_file}" to a different path',
                "Remove the duplicate route definition",
                'Use a dynamic route parameter if appropriate (e.g. "/user/[id]")',
                "Check if both files should actually use the same route",
            ),
        )


class DynamicRouteConflictError(CompilationError):
    """
    Two dynamic routes share the same structure.

    After replacing every [param] segment with a wildcard, the two paths
    produce the same pattern, so no URL could tell them apart.
    """

    kind = "dynamic-route-conflict"

    def __init__(
        self,
        route: str,
        existing_route: str,
        new_file: str,
        existing_file: str,
    ):
        self.route = route
        self.existing_route = existing_route
        self.new_file = new_file
        self.existing_file = existing_file
        super().__init__(
            f'dynamic routes "{route}" ({new_file}) and "{existing_route}" '
            f"({existing_file}) conflict - they have the same structure",
            file=new_file,
            suggestions=(
                'Use different route structures (e.g. "/user/[id]" vs "/admin/[id]")',
                "Combine the functionality into a single route",
                'Add distinguishing path segments (e.g. "/user/profile/[id]")',
                "Consider using query parameters instead of route parameters",
            ),
        )


class ImportResolutionError(CompilationError):
    """
    Component import could not be found.

    Carries every path that was tried so the user can see where the
    resolver looked.
    """

    kind = "import-resolution"

    def __init__(
        self,
        import_path: str,
        file: Optional[str] = None,
        line: Optional[int] = None,
        search_paths: Sequence[str] = (),
        severity: str = SEVERITY_ERROR,
    ):
        self.import_path = import_path
        self.search_paths = list(search_paths)

        suggestions = [
            "Check if the file exists at the specified path",
            "Verify the file extension is correct (.tsx, .jsx, .vue, .svelte)",
            "Check for typos in the import path",
        ]
        if import_path.startswith("@components/"):
            suggestions.append("Ensure the component exists in src/components/")
        elif import_path.startswith(("./", "../")):
            suggestions.append(f"Check the relative path from {file or 'the importing file'}")
        else:
            suggestions.append(
                "Consider using a relative path (./ComponentName) or the @components/ prefix"
            )
        if self.search_paths:
            suggestions.append(f"Searched in: {', '.join(self.search_paths)}")

        super().__init__(
            f'cannot resolve import "{import_path}"',
            file=file,
            line=line,
            suggestions=suggestions,
            severity=severity,
        )


class FrontmatterValidationError(CompilationError):
    """
    Invalid value for a frontmatter field consumed by the compiler.

    Examples:
        route: home              # missing leading "/"
        compileJsMode: bundle    # not inline, external.js or *.js
    """

    kind = "frontmatter-validation"

    def __init__(
        self,
        field: str,
        value: str,
        file: Optional[str] = None,
        valid_values: Sequence[str] = (),
        line: Optional[int] = None,
    ):
        self.field = field
        self.value = value
        self.valid_values = list(valid_values)

        suggestions = [f"Check the documentation for valid {field} values"]
        if self.valid_values:
            suggestions.append(f"Valid values: {', '.join(self.valid_values)}")
        if field == "route":
            suggestions.append('Routes must start with "/" (e.g. "/home", "/user/[id]")')
        elif field == "compileJsMode":
            suggestions.append('Use "inline", "external.js", or a custom .js filename')

        super().__init__(
            f'invalid frontmatter field "{field}": "{value}"',
            file=file,
            line=line,
            suggestions=suggestions,
        )


class InvalidCompilationModeError(FrontmatterValidationError):
    """Unsupported compileJsMode, raised by the compilation mode strategy."""

    kind = "invalid-compilation-mode"

    def __init__(self, value: str, file: Optional[str] = None):
        super().__init__(
            "compileJsMode",
            value,
            file=file,
            valid_values=("inline", "external.js", "<name>.js"),
        )


class ConditionSyntaxError(CompilationError):
    """
    Malformed {#if ...} condition.

    Conditions accept declared variables, literals, comparison and
    boolean operators only.
    """

    kind = "condition-syntax"

    def __init__(
        self,
        condition: str,
        reason: str,
        position: int = 0,
        file: Optional[str] = None,
        severity: str = SEVERITY_ERROR,
    ):
        self.condition = condition
        self.reason = reason
        self.position = position
        super().__init__(
            f'invalid condition "{condition}": {reason} (at offset {position})',
            file=file,
            suggestions=(
                "Conditions may use declared variables, numbers, strings, true/false/null",
                "Supported operators: == != === !== < <= > >= && || ! and parentheses",
            ),
            severity=severity,
        )


class UnknownIdentifierError(CompilationError):
    """
    A condition references a name that is not a declared variable.

    The restricted condition interpreter refuses anything it cannot look up
    in the component's own variables.
    """

    kind = "unknown-identifier"

    def __init__(
        self,
        name: str,
        condition: str,
        known_names: Sequence[str] = (),
        file: Optional[str] = None,
        severity: str = SEVERITY_ERROR,
    ):
        self.name = name
        self.condition = condition
        self.known_names = list(known_names)

        suggestions = [f'Declare "${name}" as a reactive or computed variable']
        similar = _similar_names(name, self.known_names)
        if similar:
            suggestions.insert(0, f"did you mean {', '.join(repr(s) for s in similar)}?")

        super().__init__(
            f'unknown identifier "{name}" in condition "{condition}"',
            file=file,
            suggestions=suggestions,
            severity=severity,
        )


def _similar_names(name: str, candidates: Sequence[str]) -> list[str]:
    """Return up to three candidates that look like typos of name."""
    import difflib
    return difflib.get_close_matches(name, list(candidates), n=3, cutoff=0.6)


# =============================================================================
# Error Collection (for multi-file reporting)
# =============================================================================

class ErrorCollector:
    """
    Collects errors and warnings for batch reporting.

    The build uses this to keep compiling after one file fails, so every
    problem in a project is reported in a single pass.

    Example:
        collector = ErrorCollector()
        for path in files:
            try:
                compile_one(path)
            except CompilationError as e:
                collector.add(e)
        if collector.has_errors():
            print(collector.report())
    """

    def __init__(self):
        self.errors: list[CompilationError] = []
        self.warnings: list[CompilationError] = []

    def add(self, error: CompilationError) -> None:
        """File an error under errors or warnings according to its severity."""
        if error.is_warning:
            self.warnings.append(error)
        else:
            self.errors.append(error)

    def add_warning(
        self,
        message: str,
        file: Optional[str] = None,
        line: Optional[int] = None,
        suggestions: Sequence[str] = (),
    ) -> None:
        """Record a free-form warning."""
        self.warnings.append(
            CompilationError(
                message,
                file=file,
                line=line,
                suggestions=suggestions,
                severity=SEVERITY_WARNING,
            )
        )

    def extend(self, other: "ErrorCollector") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def clear(self) -> None:
        self.errors.clear()
        self.warnings.clear()

    def summary(self) -> dict:
        """Return counts plus the full error and warning records."""
        return {
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }

    def report(self) -> str:
        """Render every collected record followed by a count line."""
        lines = [str(e) for e in self.errors]
        lines.extend(str(w) for w in self.warnings)

        error_word = "error" if len(self.errors) == 1 else "errors"
        warning_word = "warning" if len(self.warnings) == 1 else "warnings"
        lines.append(
            f"{len(self.errors)} {error_word}, {len(self.warnings)} {warning_word}"
        )
        return "\n".join(lines)
