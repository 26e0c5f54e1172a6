"""
MTM SDK - Single-File Component Compiler
========================================

This package compiles MTM single-file components into standalone HTML
pages with a small reactive JavaScript runtime.

Main Components
---------------
- **compiler**: The MTM pipeline (mtmc)
    Frontmatter extraction, tokenizer, AST builder, route registry,
    compilation modes, runtime code generator and HTML assembly

- **compiler.build**: Multi-file builds (mtmbuild)
    Dependency ordering, parallel compilation, one route registry per build

- **cli**: Command-line tools
    mtmc compiles one file, mtmbuild compiles a project

Quick Start
-----------
Compile one file:
    >>> from mtm_sdk import compile_file
    >>> result = compile_file("src/pages/index.mtm", output_dir="dist")

Build a project:
    >>> from mtm_sdk import BuildConfig, build_project, discover_sources
    >>> config = BuildConfig(output_dir="dist", production=True)
    >>> build = build_project(discover_sources(["src/pages"]), config)
    >>> print(build.summary())

Or use the command-line tools:
    $ mtmc src/pages/index.mtm -o dist
    $ mtmbuild src/pages -o dist --production
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from mtm_sdk.errors import (
    MTMError,
    SourceLocation,
    CompilationError,
    RouteConflictError,
    DynamicRouteConflictError,
    ImportResolutionError,
    FrontmatterValidationError,
    InvalidCompilationModeError,
    ConditionSyntaxError,
    UnknownIdentifierError,
    ErrorCollector,
)
from mtm_sdk.compiler import (
    MTMCompiler,
    CompilerOptions,
    CompilerResult,
    compile_mtm,
    compile_file,
    write_result,
    RouteRegistry,
    CompilationMode,
)
from mtm_sdk.config import BuildConfig
from mtm_sdk.compiler.build import BuildResult, build_project, discover_sources

__all__ = [
    "__version__",
    # Errors
    "MTMError",
    "SourceLocation",
    "CompilationError",
    "RouteConflictError",
    "DynamicRouteConflictError",
    "ImportResolutionError",
    "FrontmatterValidationError",
    "InvalidCompilationModeError",
    "ConditionSyntaxError",
    "UnknownIdentifierError",
    "ErrorCollector",
    # Compiler
    "MTMCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_mtm",
    "compile_file",
    "write_result",
    "RouteRegistry",
    "CompilationMode",
    # Builds
    "BuildConfig",
    "BuildResult",
    "build_project",
    "discover_sources",
]
