"""
MTM Abstract Syntax Tree
========================

The AST of an MTM file is deliberately flat: one Component record per
file, holding the pieces the lexer found in encounter order.

Node Hierarchy
--------------
Component - root record for one file
├── frontmatter - ordered key/value mapping
├── Import - component imported from another framework
├── Variable - reactive ($name!) or computed ($name) declaration
├── Function - event handler with an opaque JavaScript body
└── Template - raw markup between <template> and </template>

Design Notes
------------
- All nodes are frozen dataclasses; the AST is never mutated after the
  parser returns it.
- Order matters: code generation iterates variables and functions in
  source order, so the generated program is deterministic.
- Function bodies and variable expressions are opaque JavaScript text.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from mtm_sdk.compiler.frameworks import Framework


class VariableKind(Enum):
    """Whether a variable is signal-backed or evaluated once."""
    REACTIVE = "reactive"
    COMPUTED = "computed"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# AST Nodes
# =============================================================================

@dataclass(frozen=True)
class ASTNode:
    """Base class for all AST nodes. ``line`` is 0 when unknown."""
    line: int = 0


@dataclass(frozen=True)
class Import(ASTNode):
    """
    ``import Name from "path"``.

    Attributes:
        name: Local component name
        path: Import path as written
        framework: Framework inferred from the (resolved) path
        resolved_path: Path on disk when import resolution ran
    """
    name: str = ""
    path: str = ""
    framework: Framework = Framework.UNKNOWN
    resolved_path: Optional[str] = None


@dataclass(frozen=True)
class Variable(ASTNode):
    """
    ``$name! = expr`` (reactive) or ``$name = expr`` (computed).

    Attributes:
        name: Variable name without the ``$`` sigil
        kind: VariableKind.REACTIVE or VariableKind.COMPUTED
        value_expr: The initializer as JavaScript source text
    """
    name: str = ""
    kind: VariableKind = VariableKind.COMPUTED
    value_expr: str = ""

    @property
    def is_reactive(self) -> bool:
        return self.kind is VariableKind.REACTIVE


@dataclass(frozen=True)
class Function(ASTNode):
    """
    ``$name = (params) => { body }``.

    ``params`` is the text between the parentheses. ``body`` is opaque;
    ``$variable`` references are rewritten during code generation.
    """
    name: str = ""
    params: str = ""
    body: str = ""


@dataclass(frozen=True)
class Template(ASTNode):
    """Raw markup between the template tags."""
    content: str = ""


@dataclass(frozen=True)
class Component(ASTNode):
    """
    Root AST node for one MTM file.

    Attributes:
        name: Component name (last ``export default function`` wins)
        framework: Framework the file itself was written for
        frontmatter: Read-only view of the frontmatter mapping
        imports: Imports in source order
        variables: Variables in source order (duplicates kept)
        functions: Functions in source order
        template: The template, or None when the file has none
        filename: Source file the component was parsed from
    """
    name: str = "Component"
    framework: Framework = Framework.UNKNOWN
    frontmatter: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    imports: tuple[Import, ...] = ()
    variables: tuple[Variable, ...] = ()
    functions: tuple[Function, ...] = ()
    template: Optional[Template] = None
    filename: str = "<input>"

    @property
    def route(self) -> Optional[str]:
        return self.frontmatter.get("route")

    @property
    def reactive_variables(self) -> tuple[Variable, ...]:
        return tuple(v for v in self.variables if v.is_reactive)

    @property
    def variable_names(self) -> tuple[str, ...]:
        """Declared names in order, first occurrence only."""
        return tuple(dict.fromkeys(v.name for v in self.variables))

    @property
    def template_content(self) -> str:
        return self.template.content if self.template else ""

    def find_import(self, name: str) -> Optional[Import]:
        for imp in self.imports:
            if imp.name == name:
                return imp
        return None


# =============================================================================
# AST Visitor / Printer
# =============================================================================

class ASTVisitor:
    """
    Base class for AST visitors.

    Subclasses override visit_* methods for the node types they care about.
    """

    def visit(self, node: ASTNode):
        method_name = f"visit_{type(node).__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ASTNode):
        return None


class ASTPrinter(ASTVisitor):
    """
    Pretty printer for AST debugging (used by ``mtmc --ast``).

    Usage:
        printer = ASTPrinter()
        print(printer.print(component))
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, node: ASTNode) -> str:
        """Print the AST and return as string."""
        self.output = []
        self.indent_level = 0
        self.visit(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        indent = "  " * self.indent_level
        self.output.append(f"{indent}{text}")

    def visit_Component(self, node: Component):
        self._emit(f"Component: {node.name} ({node.framework})")
        self.indent_level += 1

        if node.frontmatter:
            self._emit("Frontmatter")
            self.indent_level += 1
            for key, value in node.frontmatter.items():
                self._emit(f"{key}: {value!r}")
            self.indent_level -= 1

        for child in (*node.imports, *node.variables, *node.functions):
            self.visit(child)
        if node.template is not None:
            self.visit(node.template)

        self.indent_level -= 1

    def visit_Import(self, node: Import):
        self._emit(f"Import: {node.name} from {node.path!r} [{node.framework}]")

    def visit_Variable(self, node: Variable):
        self._emit(f"Variable ({node.kind}): ${node.name} = {node.value_expr}")

    def visit_Function(self, node: Function):
        self._emit(f"Function: ${node.name}({node.params})")
        self.indent_level += 1
        for line in node.body.split("\n"):
            if line.strip():
                self._emit(line.strip())
        self.indent_level -= 1

    def visit_Template(self, node: Template):
        first = node.content.strip().split("\n")[0] if node.content.strip() else ""
        if len(first) > 60:
            first = first[:57] + "..."
        self._emit(f"Template: {first}")
