"""
MTM Compiler Main Module
========================

This module provides the main compiler interface for MTM files. It
orchestrates the complete pipeline for one file:

    Source → Frontmatter → Lex → Parse → Routes → Mode → Generate → HTML

Usage
-----
Command line:
    $ mtmc pages/index.mtm -o dist

Programmatic:
    >>> from mtm_sdk.compiler import compile_mtm
    >>> result = compile_mtm(open("pages/index.mtm").read(), "pages/index.mtm")
    >>> print(result.html)

Error Handling
--------------
Problems that are fatal for the file (frontmatter validation, route
conflicts, an unsupported compileJsMode, unresolvable imports) are raised
as CompilationError subclasses. Non-fatal problems (rejected template
conditions, unknown event handlers, skipped imports) end up in
``CompilerResult.warnings``. A multi-file build catches the raised errors
per file; see mtm_sdk.compiler.build.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from mtm_sdk.compiler.ast import Component
from mtm_sdk.compiler.codegen import CodeGenerator, LoweredTemplate
from mtm_sdk.compiler.frameworks import ComponentDefinition, adapter_for
from mtm_sdk.compiler.frontmatter import extract_frontmatter, validate_frontmatter
from mtm_sdk.compiler.html import output_filename, render_document
from mtm_sdk.compiler.lexer import MTMLexer
from mtm_sdk.compiler.modes import CompilationMode, resolve_compilation_mode
from mtm_sdk.compiler.parser import MTMParser
from mtm_sdk.compiler.resolver import PathResolver
from mtm_sdk.compiler.routes import RouteRegistry
from mtm_sdk.errors import (
    SEVERITY_WARNING,
    CompilationError,
    ErrorCollector,
    ImportResolutionError,
)


logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        development: Development build (inline scripts by default)
        production: Production build (external scripts by default)
        skip_runtime: Leave the runtime library out of the generated script
        resolve_imports: Look up imported component files on disk
        base_dir: Project root for aliased and absolute imports
        aliases: Extra import aliases, e.g. {"@ui/*": ["src/ui/*"]}
        strict_imports: An import that cannot be resolved is fatal. When
            False it is reported as a warning and compilation continues.
    """
    development: bool = False
    production: bool = False
    skip_runtime: bool = False
    resolve_imports: bool = False
    base_dir: str = "."
    aliases: dict = None
    strict_imports: bool = True

    def __post_init__(self):
        if self.aliases is None:
            self.aliases = {}


@dataclass
class CompilerResult:
    """
    Result of compiling one file.

    Attributes:
        filename: Source filename
        success: True if compilation succeeded
        component: The parsed AST
        tokens: Tokens produced by the lexer
        mode: Compilation mode used
        javascript: Generated program
        template: Lowered template
        html: Complete HTML document
        output_name: File name for the HTML document
        errors: Fatal errors (at most one, since the first one stops the file)
        warnings: Non-fatal problems
    """
    filename: str = ""
    success: bool = False
    component: Optional[Component] = None
    tokens: list = None
    mode: Optional[CompilationMode] = None
    javascript: str = ""
    template: Optional[LoweredTemplate] = None
    html: str = ""
    output_name: str = "index.html"
    errors: list = None
    warnings: list = None

    def __post_init__(self):
        if self.tokens is None:
            self.tokens = []
        if self.errors is None:
            self.errors = []
        if self.warnings is None:
            self.warnings = []

    @property
    def route(self) -> Optional[str]:
        return self.component.route if self.component else None

    @property
    def external_file(self) -> Optional[tuple[str, str]]:
        """(filename, content) of the external script, if the mode has one."""
        if self.mode is None or self.mode.is_inline:
            return None
        return self.mode.filename, self.javascript

    def artifact_names(self) -> list[str]:
        """Output paths relative to the output directory, HTML first."""
        names = [Path(self.output_name).as_posix()]
        if self.external_file is not None:
            names.append(Path(self.external_file[0]).as_posix())
        return names


class MTMCompiler:
    """
    MTM single-file compiler.

    Example:
        compiler = MTMCompiler(CompilerOptions(production=True))
        result = compiler.compile_file("pages/index.mtm")
        write_result(result, "dist")

    Attributes:
        options: Compiler configuration options
        registry: Route registry shared by every file of one build. A
            fresh registry is created when none is given.
    """

    def __init__(
        self,
        options: Optional[CompilerOptions] = None,
        registry: Optional[RouteRegistry] = None,
    ):
        self.options = options or CompilerOptions()
        self.registry = registry if registry is not None else RouteRegistry()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile MTM source text.

        Args:
            source: Complete MTM source, frontmatter included
            filename: Source filename for errors and route ownership

        Returns:
            CompilerResult containing the generated document and script

        Raises:
            CompilationError: If the file cannot be compiled
        """
        collector = ErrorCollector()
        result = CompilerResult(filename=filename)

        # Stage 1: Frontmatter
        extracted = extract_frontmatter(source)
        problems = validate_frontmatter(extracted.frontmatter, filename)
        if problems:
            raise problems[0]

        # Stage 2: Lexical analysis
        lexer = MTMLexer(
            extracted.body,
            filename,
            line_offset=extracted.body_offset,
            locate_import=self._import_locator(filename, collector),
        )
        result.tokens = lexer.tokenize()

        # Stage 3: Parsing
        component = MTMParser(result.tokens, filename, extracted.frontmatter).parse()
        result.component = component

        # Stage 4: Route registration
        if component.route is not None:
            self.registry.register(component.route, filename)

        # Stage 5: Compilation mode
        result.mode = resolve_compilation_mode(
            component.frontmatter,
            development=self.options.development,
            production=self.options.production,
            component_name=component.name,
            file=filename,
        )

        # Stage 6: Code generation
        generated = CodeGenerator(
            component,
            result.mode,
            definitions=self._component_definitions(component),
            skip_runtime=self.options.skip_runtime,
            collector=collector,
        ).generate()
        result.javascript = generated.javascript
        result.template = generated.template

        # Stage 7: Document
        result.html = render_document(component.frontmatter, generated.template.html, generated.script_tag)
        result.output_name = output_filename(component.route)

        result.success = True
        result.warnings = list(collector.warnings)
        logger.info(f"Compiled {filename} ({result.mode.label}, {len(result.warnings)} warnings)")
        return result

    def compile_file(self, filepath: str) -> CompilerResult:
        """
        Compile an MTM source file.

        Raises:
            CompilationError: If the file cannot be compiled
            FileNotFoundError: If the source file does not exist
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        return self.compile_source(path.read_text(encoding="utf-8"), str(path))

    # =========================================================================
    # Import Handling
    # =========================================================================

    def _import_locator(self, filename: str, collector: ErrorCollector):
        if not self.options.resolve_imports:
            return None

        resolver = PathResolver(self.options.base_dir, self.options.aliases)

        def locate(import_path: str, line: int) -> Optional[str]:
            resolution = resolver.resolve(import_path, filename, line)
            if resolution.found:
                return resolution.resolved_path
            if self.options.strict_imports:
                raise ImportResolutionError(import_path, filename, line, resolution.search_paths)
            collector.add(
                ImportResolutionError(
                    import_path, filename, line, resolution.search_paths, severity=SEVERITY_WARNING
                )
            )
            logger.warning(f"{filename}:{line}: cannot resolve import {import_path!r}")
            return None

        return locate

    def _component_definitions(self, component: Component) -> list[ComponentDefinition]:
        definitions = []

        for imp in component.imports:
            props = ()
            if imp.resolved_path and Path(imp.resolved_path).is_file():
                try:
                    source = Path(imp.resolved_path).read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    logger.debug(f"Could not read {imp.resolved_path} for props: {e}")
                else:
                    props = tuple(adapter_for(imp.framework).extract_props(source))

            definitions.append(
                ComponentDefinition(imp.name, imp.framework, imp.path, imp.resolved_path, props)
            )

        return definitions


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_mtm(
    source: str,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
    registry: Optional[RouteRegistry] = None,
) -> CompilerResult:
    """
    Compile MTM source text.

    This is the primary high-level interface.

    Example:
        >>> result = compile_mtm("<template><h1>Hi</h1></template>")
        >>> result.output_name
        'index.html'
    """
    return MTMCompiler(options, registry).compile_source(source, filename)


def compile_file(
    filepath: str,
    output_dir: Optional[str] = None,
    options: Optional[CompilerOptions] = None,
) -> CompilerResult:
    """
    Compile an MTM file, optionally writing its artifacts.

    Raises:
        CompilationError: If compilation fails
        FileNotFoundError: If the source file does not exist
    """
    result = MTMCompiler(options).compile_file(filepath)
    if output_dir is not None:
        write_result(result, output_dir)
    return result


def write_result(result: CompilerResult, output_dir: str | Path) -> list[Path]:
    """
    Write the HTML document and any external script under output_dir.

    Returns:
        The paths written
    """
    if not result.success:
        raise CompilationError(
            "cannot write artifacts for a failed compilation",
            file=result.filename,
        )

    root = Path(output_dir)
    written = []

    html_path = root / result.output_name
    html_path.parent.mkdir(parents=True, exist_ok=True)
    html_path.write_text(result.html, encoding="utf-8")
    written.append(html_path)

    external = result.external_file
    if external is not None:
        script_path = root / external[0]
        script_path.parent.mkdir(parents=True, exist_ok=True)
        script_path.write_text(external[1], encoding="utf-8")
        written.append(script_path)

    for path in written:
        logger.debug(f"Wrote {path}")
    return written
