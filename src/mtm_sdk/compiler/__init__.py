"""
MTM Component Compiler
======================

This package implements the compiler for MTM single-file components. An
MTM file combines a frontmatter block, reactive state declarations,
event-handler functions and an HTML-like template; the compiler emits a
standalone HTML document plus JavaScript that provides reactive updates,
client-side routing and mount points for components written in other UI
frameworks.

Pipeline
--------
    Source → Frontmatter → Lexer → Parser → AST
           → Route Registry → Compilation Mode → Code Generator → HTML

Usage
-----
>>> from mtm_sdk.compiler import compile_mtm
>>> source = '''
... $count! = signal('count', 0)
... $increment = () => { $count = $count + 1 }
... <template><button click={$increment}>{$count}</button></template>
... '''
>>> result = compile_mtm(source, "counter.mtm")
>>> "create('count', 0)" in result.javascript
True

Multi-file builds live in mtm_sdk.compiler.build.
"""

from mtm_sdk.compiler.compiler import (
    MTMCompiler,
    CompilerOptions,
    CompilerResult,
    compile_mtm,
    compile_file,
    write_result,
)
from mtm_sdk.compiler.frontmatter import ExtractedSource, extract_frontmatter, validate_frontmatter
from mtm_sdk.compiler.lexer import MTMLexer, MTMTokenType, MTMToken
from mtm_sdk.compiler.parser import MTMParser, parse_source
from mtm_sdk.compiler.codegen import CodeGenerator, GeneratedCode, LoweredTemplate
from mtm_sdk.compiler.modes import CompilationMode, ModeKind, resolve_compilation_mode
from mtm_sdk.compiler.routes import RouteRegistry, RouteEntry, RouteMatch
from mtm_sdk.compiler.frameworks import Framework, ComponentDefinition, Prop, detect_framework
from mtm_sdk.compiler.resolver import PathResolver, Resolution
from mtm_sdk.compiler.ast import (
    ASTPrinter,
    Component,
    Function,
    Import,
    Template,
    Variable,
    VariableKind,
)

__all__ = [
    # Main compiler interface
    "MTMCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_mtm",
    "compile_file",
    "write_result",
    # Frontmatter
    "ExtractedSource",
    "extract_frontmatter",
    "validate_frontmatter",
    # Lexer
    "MTMLexer",
    "MTMTokenType",
    "MTMToken",
    # Parser
    "MTMParser",
    "parse_source",
    # Code generation
    "CodeGenerator",
    "GeneratedCode",
    "LoweredTemplate",
    "CompilationMode",
    "ModeKind",
    "resolve_compilation_mode",
    # Routes
    "RouteRegistry",
    "RouteEntry",
    "RouteMatch",
    # Components and imports
    "Framework",
    "ComponentDefinition",
    "Prop",
    "detect_framework",
    "PathResolver",
    "Resolution",
    # AST
    "ASTPrinter",
    "Component",
    "Function",
    "Import",
    "Template",
    "Variable",
    "VariableKind",
]
