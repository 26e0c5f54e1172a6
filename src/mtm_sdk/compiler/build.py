"""
Multi-File Build
================

Compiles every MTM file of a project in one pass.

Build Process
-------------
1. Scan each file's imports and resolve them. An import that resolves to
   another file of the same build is a dependency edge.
2. Order the files with a topological sort so a file is never compiled
   before a file it imports. A dependency cycle is reported as a warning
   and the edges of the cycle are dropped.
3. Compile ready files concurrently on a thread pool. All files share one
   RouteRegistry; its lock serializes route registration.
4. Write each file's artifacts from the coordinating thread as soon as it
   finishes. Each output path belongs to the first file that produced it;
   a later file producing the same path (two route-less pages both writing
   index.html, two production scripts both named js/component.js) fails
   without writing anything.

A fatal error in one file is recorded and the build carries on: files
already written stay written, and files that depend on the failed file
are still compiled (the dependency only orders them). The caller gets a
BuildResult with per-file results and an ErrorCollector holding every
error and warning.
"""

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from pathlib import Path
from typing import Iterable, Optional, Sequence

from mtm_sdk.compiler.compiler import CompilerResult, MTMCompiler, write_result
from mtm_sdk.compiler.frontmatter import extract_frontmatter
from mtm_sdk.compiler.lexer import MTMLexer, MTMTokenType
from mtm_sdk.compiler.resolver import PathResolver
from mtm_sdk.compiler.routes import RouteRegistry
from mtm_sdk.config import BuildConfig
from mtm_sdk.errors import CompilationError, ErrorCollector


logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """
    Outcome of a build.

    Attributes:
        results: Per-file results keyed by path, in completion order.
            Failed files have ``success`` False and their error in ``errors``.
        registry: The route registry populated by this build
        collector: Every error and warning from every file
        order: Files in the order they were scheduled
        written: Artifact paths written to disk
        outputs: Artifact path (relative to the output directory) to the
            source file that owns it
    """
    results: dict[str, CompilerResult] = field(default_factory=dict)
    registry: RouteRegistry = field(default_factory=RouteRegistry)
    collector: ErrorCollector = field(default_factory=ErrorCollector)
    order: list[str] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)
    outputs: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return [name for name, result in self.results.items() if result.success]

    @property
    def failed(self) -> list[str]:
        return [name for name, result in self.results.items() if not result.success]

    @property
    def success(self) -> bool:
        return not self.failed and not self.collector.has_errors()

    def summary(self) -> dict:
        """Counts plus full error and warning records."""
        summary = {
            "files": len(self.results),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "routes": {entry.path: entry.source_file for entry in self.registry.entries()},
        }
        summary.update(self.collector.summary())
        return summary


def discover_sources(paths: Iterable[str | Path], extensions: Sequence[str] = (".mtm",)) -> list[Path]:
    """
    Expand files and directories into a sorted list of source files.

    Directories are scanned recursively for the given extensions; files
    are taken as given.
    """
    found: dict[Path, None] = {}

    for path in map(Path, paths):
        if path.is_dir():
            for ext in extensions:
                for candidate in sorted(path.rglob(f"*{ext}")):
                    if candidate.is_file():
                        found[candidate] = None
        else:
            found[path] = None

    return list(found)


# =============================================================================
# Dependency Graph
# =============================================================================

def scan_imports(source: str, filename: str) -> list[tuple[str, int]]:
    """Return (import path, line) for each import in a file."""
    extracted = extract_frontmatter(source)
    lexer = MTMLexer(extracted.body, filename, line_offset=extracted.body_offset)
    return [
        (token.path, token.line)
        for token in lexer.iter_tokens()
        if token.type is MTMTokenType.IMPORT
    ]


def dependency_graph(
    sources: dict[str, str],
    resolver: PathResolver,
) -> dict[str, set[str]]:
    """
    Map each file to the build files it imports.

    Only imports that resolve to another file of the same build count.
    """
    by_resolved = {str(Path(name).resolve()): name for name in sources}
    graph: dict[str, set[str]] = {name: set() for name in sources}

    for name, source in sources.items():
        for import_path, line in scan_imports(source, name):
            resolution = resolver.resolve(import_path, name, line)
            if not resolution.found or resolution.is_package:
                continue
            target = by_resolved.get(str(Path(resolution.resolved_path).resolve()))
            if target is not None and target != name:
                graph[name].add(target)

    return graph


def _sorter_without_cycles(
    graph: dict[str, set[str]],
    collector: ErrorCollector,
) -> TopologicalSorter:
    """Build a prepared sorter, dropping the edges of any cycle found."""
    graph = {node: set(deps) for node, deps in graph.items()}

    while True:
        sorter = TopologicalSorter(graph)
        try:
            sorter.prepare()
            return sorter
        except CycleError as e:
            cycle = e.args[1]
            members = set(cycle)
            message = f"import cycle: {' -> '.join(cycle)}"
            logger.warning(message)
            collector.add_warning(
                message,
                file=cycle[0],
                suggestions=("Break the cycle; these files are compiled in arbitrary order",),
            )
            for node in members:
                graph[node] -= members


# =============================================================================
# Build Driver
# =============================================================================

def _compile_one(compiler: MTMCompiler, filename: str, source: str) -> CompilerResult:
    try:
        return compiler.compile_source(source, filename)
    except CompilationError as e:
        result = CompilerResult(filename=filename, success=False)
        result.errors = [e]
        return result


def build_project(
    files: Iterable[str | Path],
    config: Optional[BuildConfig] = None,
    write: bool = True,
) -> BuildResult:
    """
    Compile a set of MTM files as one build.

    Args:
        files: Source files to compile
        config: Build configuration (defaults to BuildConfig())
        write: Write artifacts under config.output_dir

    Returns:
        BuildResult; inspect ``failed`` or ``collector`` for problems
    """
    config = config or BuildConfig()
    build = BuildResult()
    collector = build.collector

    sources: dict[str, str] = {}
    for path in map(Path, files):
        try:
            sources[str(path)] = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            error = CompilationError(
                f"cannot read source file: {e}",
                file=str(path),
                suggestions=("Check that the file exists and is UTF-8 text",),
            )
            collector.add(error)
            build.results[str(path)] = CompilerResult(filename=str(path), errors=[error])

    resolver = PathResolver(config.base_dir, config.aliases)
    sorter = _sorter_without_cycles(dependency_graph(sources, resolver), collector)
    compiler = MTMCompiler(config.to_compiler_options(), build.registry)

    logger.info(f"Building {len(sources)} files ({'production' if config.production else 'development'})")

    with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
        pending: dict[Future, str] = {}

        while sorter.is_active():
            for name in sorter.get_ready():
                build.order.append(name)
                pending[executor.submit(_compile_one, compiler, name, sources[name])] = name

            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                name = pending.pop(future)
                result = future.result()
                build.results[name] = result
                _record(build, result, config, write)
                sorter.done(name)

    logger.info(
        f"Build finished: {len(build.succeeded)} succeeded, {len(build.failed)} failed, "
        f"{len(collector.warnings)} warnings"
    )
    return build


def _record(build: BuildResult, result: CompilerResult, config: BuildConfig, write: bool) -> None:
    """Collect a file's diagnostics and write its artifacts."""
    for error in result.errors:
        build.collector.add(error)
        logger.error(f"{result.filename}: {error.message}")
    for warning in result.warnings:
        build.collector.add(warning)

    if not result.success:
        return

    names = result.artifact_names()
    for name in names:
        owner = build.outputs.get(name)
        if owner is not None and owner != result.filename:
            _fail(build, result, CompilationError(
                f"output file '{name}' is already produced by {owner}",
                file=result.filename,
                suggestions=(
                    "Give each page a distinct route",
                    "Name each component with 'export default function' or set compileJsMode",
                ),
            ))
            return
    for name in names:
        build.outputs[name] = result.filename

    if not write:
        return

    try:
        build.written.extend(write_result(result, config.output_dir))
    except OSError as e:
        _fail(build, result, CompilationError(
            f"cannot write output: {e}",
            file=result.filename,
            suggestions=(f"Check that {config.output_dir} is writable",),
        ))


def _fail(build: BuildResult, result: CompilerResult, error: CompilationError) -> None:
    logger.error(f"{result.filename}: {error.message}")
    result.success = False
    result.errors.append(error)
    build.collector.add(error)
