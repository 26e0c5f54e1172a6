"""
MTM Runtime Code Generator
==========================

Turns a Component AST into one self-contained JavaScript program and the
lowered template markup that program drives.

Generated Program Layout
------------------------
    // MTM runtime           (omitted with skip_runtime)
    const MTMRouter = {...}      signal store + client-side router
    const MTMComponents = {...}  mount registry for imported components
    const MTMConditions = {...}  interpreter for {#if} condition trees

    const pageMetadata = {...};  frontmatter, in source order
    MTMRouter.routes.set("/", pageMetadata);

    function HomePage() {
      const count = MTMRouter.create('count', 0);   // reactive variables
      const label = { value: ("Clicks") };          // computed variables
      const increment = () => { ... };              // $name -> name.value
      MTMComponents.register(...);                  // one per import
      const updateAll = () => { ... };              // bindings + conditions
      updateAll();
      MTMComponents.mountAll(scope);
      count.subscribe(() => updateAll());           // every reactive variable
      ...event bindings...
    }

    document.addEventListener('DOMContentLoaded', () => { ... });

Template Lowering
-----------------
Applied in this order:

| Source                         | Output                                              |
|--------------------------------|-----------------------------------------------------|
| {title} (frontmatter key)      | the escaped frontmatter value                       |
| <Link href="/x">..</Link>      | <a href="/x" data-link="true">..</a>                |
| <Counter start={5} />          | <div data-component="Counter" ... data-prop-*>      |
| click={$increment}             | data-click="$increment"                             |
| input={$update}                | data-event-input="$update"                          |
| {#if cond}..{/if}              | <div data-if="cond" style="display: none;">..</div> |
| {$count}                       | <span data-bind="$count"></span>                    |

Conditions are parsed with mtm_sdk.compiler.conditions. A condition that
does not parse is emitted as ``null`` (always hidden, with a console
warning) and recorded as a warning; generation itself never fails.

{#if} blocks do not nest. A block ends at the first {/if}, so an inner
block pairs its {/if} with the outer opening. Such a block is lowered as
written and recorded as a warning.

Update Cycle
------------
Every reactive variable subscribes ``updateAll``. Notification is
synchronous, so a subscriber that writes a signal while ``updateAll`` runs
re-enters it immediately. There is no batching.

Output is a pure function of the AST, the mode and the options: the same
input always produces byte-identical JavaScript.
"""

import html
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from mtm_sdk.compiler.ast import Component, Variable
from mtm_sdk.compiler.conditions import CondNode, parse_condition, to_json
from mtm_sdk.compiler.frameworks import ComponentDefinition
from mtm_sdk.compiler.modes import CompilationMode
from mtm_sdk.errors import CompilationError, ErrorCollector, SEVERITY_WARNING


logger = logging.getLogger(__name__)

INDENT = "  "


# =============================================================================
# Runtime Library
# =============================================================================

RUNTIME = """\
// MTM runtime
const MTMRouter = {
  _signals: new Map(),
  _subscribers: new Map(),
  routes: new Map(),
  currentRoute: null,

  // Signal store: create() never resets an existing key
  create(key, initialValue) {
    if (!this._signals.has(key)) {
      this._signals.set(key, initialValue);
      this._subscribers.set(key, new Set());
    }
    return {
      get value() { return MTMRouter._signals.get(key); },
      set value(newValue) {
        MTMRouter._signals.set(key, newValue);
        MTMRouter._notify(key, newValue);
      },
      subscribe(callback) { MTMRouter._subscribers.get(key).add(callback); }
    };
  },

  _notify(key, value) {
    const subscribers = this._subscribers.get(key);
    if (subscribers) {
      subscribers.forEach(callback => callback(value));
    }
  },

  // Router
  navigate(path) {
    if (this.currentRoute !== path) {
      this.currentRoute = path;
      window.history.pushState({ path }, '', path);
      this.emit('route-changed', { path, route: this.routes.get(path) });
    }
  },

  setupLinkInterception() {
    document.addEventListener('click', (e) => {
      if (e.defaultPrevented || e.button !== 0 || e.metaKey || e.ctrlKey || e.shiftKey || e.altKey) {
        return;
      }
      const link = e.target.closest('a[href]');
      if (!link || link.hasAttribute('external') || link.target === '_blank') {
        return;
      }
      const url = new URL(link.href, window.location.href);
      if (url.origin !== window.location.origin) {
        return;
      }
      e.preventDefault();
      this.navigate(url.pathname + url.search);
    });
  },

  setupPopState() {
    window.addEventListener('popstate', (e) => {
      const path = (e.state && e.state.path) || window.location.pathname;
      this.currentRoute = path;
      this.emit('route-changed', { path, route: this.routes.get(path) });
    });
  },

  init() {
    this.setupLinkInterception();
    this.setupPopState();
    this.currentRoute = window.location.pathname;
  },

  emit(event, detail) {
    window.dispatchEvent(new CustomEvent('mtm-' + event, { detail }));
  }
};

// Document metadata follows the current route
window.addEventListener('mtm-route-changed', (e) => {
  const route = e.detail.route;
  if (route && route.title) {
    document.title = route.title;
  }
});

const MTMComponents = {
  _registry: new Map(),

  register(name, framework, factory) {
    this._registry.set(name, { framework, factory });
  },

  mount(element, name, props = {}) {
    const component = this._registry.get(name);
    if (!component) {
      console.warn('MTM: no component registered as', name);
      return;
    }
    const instance = component.factory(props);
    if (instance && typeof instance.mount === 'function') {
      instance.mount(element);
    } else {
      element.innerHTML = instance;
    }
  },

  readProps(element, scope) {
    const props = {};
    Array.from(element.attributes).forEach(attr => {
      if (!attr.name.startsWith('data-prop-') || attr.name.endsWith('-type')) {
        return;
      }
      const name = attr.name.slice('data-prop-'.length);
      const type = element.getAttribute('data-prop-' + name + '-type');
      let value = attr.value;
      if (type === 'boolean') {
        value = value === 'true';
      } else if (type === 'variable') {
        const cell = scope[value.replace(/^\\$/, '')];
        value = cell ? cell.value : undefined;
      } else if (type === 'literal') {
        try { value = JSON.parse(value); } catch (err) { /* keep the raw text */ }
      }
      props[name] = value;
    });
    return props;
  },

  mountAll(scope = {}) {
    document.querySelectorAll('[data-component]').forEach(el => {
      this.mount(el, el.getAttribute('data-component'), this.readProps(el, scope));
    });
  }
};

// Interpreter for compiled {#if} condition trees
const MTMConditions = {
  evaluate(node, scope) {
    switch (node.type) {
      case 'literal': return node.value;
      case 'var': return scope[node.name] ? scope[node.name].value : undefined;
      case 'not': return !this.evaluate(node.operand, scope);
      case 'and': {
        const left = this.evaluate(node.left, scope);
        return left ? this.evaluate(node.right, scope) : left;
      }
      case 'or': {
        const left = this.evaluate(node.left, scope);
        return left ? left : this.evaluate(node.right, scope);
      }
      case 'compare':
        return this.compare(node.op, this.evaluate(node.left, scope), this.evaluate(node.right, scope));
      default:
        throw new Error('MTM: unknown condition node ' + node.type);
    }
  },

  compare(op, a, b) {
    switch (op) {
      case '===': return a === b;
      case '!==': return a !== b;
      case '==': return a == b;
      case '!=': return a != b;
      case '<': return a < b;
      case '<=': return a <= b;
      case '>': return a > b;
      case '>=': return a >= b;
      default: throw new Error('MTM: unknown operator ' + op);
    }
  }
};

window.signal = MTMRouter;
"""


# =============================================================================
# $name Reference Rewriting
# =============================================================================

_IDENTIFIER = re.compile(r"[A-Za-z_]\w*")


def _string_end(source: str, start: int, quote: str) -> int:
    """Index just past the string literal opening at start."""
    index = start + 1
    while index < len(source):
        char = source[index]
        if char == "\\":
            index += 2
            continue
        if char == quote or char == "\n":
            return index + 1
        index += 1
    return len(source)


def rewrite_references(source: str, names: Sequence[str]) -> str:
    """
    Rewrite ``$name`` to ``name.value`` for every declared name.

    Occurrences inside string literals and comments are left alone, as is
    text in template literals outside ``${...}``. A ``$name`` followed by
    ``.``, or preceded by an identifier character or ``.``, is not a
    reference.
    """
    declared = set(names)
    out: list[str] = []
    # "`" = template literal text, "${" = substitution, "{" = brace inside one
    stack: list[str] = []
    index = 0
    length = len(source)

    while index < length:
        char = source[index]
        context = stack[-1] if stack else None

        if context == "`":
            if char == "\\":
                out.append(source[index:index + 2])
                index += 2
            elif char == "`":
                stack.pop()
                out.append(char)
                index += 1
            elif source.startswith("${", index):
                stack.append("${")
                out.append("${")
                index += 2
            else:
                out.append(char)
                index += 1
            continue

        if char in ("'", '"'):
            end = _string_end(source, index, char)
            out.append(source[index:end])
            index = end
        elif char == "`":
            stack.append("`")
            out.append(char)
            index += 1
        elif source.startswith("//", index):
            end = source.find("\n", index)
            end = length if end < 0 else end
            out.append(source[index:end])
            index = end
        elif source.startswith("/*", index):
            end = source.find("*/", index + 2)
            end = length if end < 0 else end + 2
            out.append(source[index:end])
            index = end
        elif char == "{" and stack:
            stack.append("{")
            out.append(char)
            index += 1
        elif char == "}" and stack:
            stack.pop()
            out.append(char)
            index += 1
        elif char == "$":
            match = _IDENTIFIER.match(source, index + 1)
            previous = source[index - 1] if index else ""
            is_reference = (
                match is not None
                and match.group(0) in declared
                and not (previous and (previous.isalnum() or previous in "_$."))
                and not source.startswith(".", match.end())
            )
            if is_reference:
                out.append(f"{match.group(0)}.value")
                index = match.end()
            else:
                out.append(char)
                index += 1
        else:
            out.append(char)
            index += 1

    return "".join(out)


# =============================================================================
# Template Lowering
# =============================================================================

_PLACEHOLDER = re.compile(r"\{(\w+)\}")
_LINK = re.compile(r"<Link\b([^>]*)>(.*?)</Link>", re.DOTALL)
_EVENT = re.compile(r"(?<![\w-])([A-Za-z][\w-]*)=\{\$(\w+)\}")
_IF_BLOCK = re.compile(r"\{#if\s+([^}]+)\}(.*?)\{/if\}", re.DOTALL)
_BINDING = re.compile(r"\{\$(\w+)\}")
_COMPONENT_ATTR = re.compile(r"""([A-Za-z_][\w-]*)(?:\s*=\s*(?:\{([^}]*)\}|"([^"]*)"|'([^']*)'))?""")


@dataclass(frozen=True)
class LoweredTemplate:
    """
    Template markup after lowering.

    Attributes:
        html: Markup to place inside the app container
        events: (event, function name) pairs in order of first appearance
        conditions: (condition text, tree or None) pairs, unique by text
        bindings: Variable names bound with {$name}, unique, in order
    """
    html: str = ""
    events: tuple[tuple[str, str], ...] = ()
    conditions: tuple[tuple[str, Optional[CondNode]], ...] = ()
    bindings: tuple[str, ...] = ()


def component_attributes(attrs: str) -> str:
    """Convert component tag attributes into data-prop-* attributes."""
    rendered = []
    for match in _COMPONENT_ATTR.finditer(attrs.strip()):
        name, braced, double, single = match.groups()
        if braced is not None:
            value = braced.strip()
            kind = "variable" if value.startswith("$") else "literal"
        elif double is not None or single is not None:
            value = double if double is not None else single
            kind = "string"
        else:
            value, kind = "true", "boolean"
        rendered.append(f'data-prop-{name}="{html.escape(value)}"')
        rendered.append(f'data-prop-{name}-type="{kind}"')
    return "".join(f" {attr}" for attr in rendered)


class TemplateLowering:
    """
    Lowers MTM template syntax to plain HTML with data-* markers.

    Usage:
        lowered = TemplateLowering(component, collector).lower()
    """

    def __init__(self, component: Component, collector: Optional[ErrorCollector] = None):
        self.component = component
        self.collector = collector
        self._events: list[tuple[str, str]] = []
        self._conditions: dict[str, Optional[CondNode]] = {}
        self._bindings: list[str] = []

    def lower(self) -> LoweredTemplate:
        markup = self.component.template_content
        markup = self._replace_placeholders(markup)
        markup = self._lower_links(markup)
        markup = self._lower_components(markup)
        markup = _EVENT.sub(self._lower_event, markup)
        markup = _IF_BLOCK.sub(self._lower_condition, markup)
        markup = _BINDING.sub(self._lower_binding, markup)

        return LoweredTemplate(
            html=markup,
            events=tuple(self._events),
            conditions=tuple(self._conditions.items()),
            bindings=tuple(self._bindings),
        )

    def _replace_placeholders(self, markup: str) -> str:
        frontmatter = self.component.frontmatter

        def replace(match: re.Match) -> str:
            key = match.group(1)
            if key in frontmatter:
                return html.escape(frontmatter[key])
            return match.group(0)

        return _PLACEHOLDER.sub(replace, markup)

    def _lower_links(self, markup: str) -> str:
        def replace(match: re.Match) -> str:
            attrs = match.group(1).rstrip()
            return f'<a{attrs} data-link="true">{match.group(2)}</a>'

        return _LINK.sub(replace, markup)

    def _lower_components(self, markup: str) -> str:
        for imp in self.component.imports:
            opening = (
                f'<div data-component="{imp.name}" data-framework="{imp.framework}" '
                f'data-type="component"'
            )
            self_closing = re.compile(rf"<{imp.name}\b([^>]*?)\s*/>")
            with_children = re.compile(rf"<{imp.name}\b([^>]*)>(.*?)</{imp.name}>", re.DOTALL)

            markup = self_closing.sub(
                lambda m: f"{opening}{component_attributes(m.group(1))}></div>", markup
            )
            markup = with_children.sub(
                lambda m: f"{opening}{component_attributes(m.group(1))}>{m.group(2)}</div>",
                markup,
            )
        return markup

    def _lower_event(self, match: re.Match) -> str:
        event, handler = match.group(1), match.group(2)
        if (event, handler) not in self._events:
            self._events.append((event, handler))
        if event == "click":
            return f'data-click="${handler}"'
        return f'data-event-{event}="${handler}"'

    def _lower_condition(self, match: re.Match) -> str:
        condition = match.group(1).strip()
        if "{#if" in match.group(2):
            message = f"nested {{#if}} blocks are not supported (outer condition: {condition})"
            logger.warning(f"{self.component.filename}: {message}")
            if self.collector is not None:
                self.collector.add_warning(
                    message,
                    file=self.component.filename,
                    suggestions=("Combine the conditions with && into a single {#if} block",),
                )
        if condition not in self._conditions:
            self._conditions[condition] = self._compile_condition(condition)
        return f'<div data-if="{html.escape(condition)}" style="display: none;">{match.group(2)}</div>'

    def _compile_condition(self, condition: str) -> Optional[CondNode]:
        try:
            return parse_condition(
                condition,
                self.component.variable_names,
                file=self.component.filename,
                severity=SEVERITY_WARNING,
            )
        except CompilationError as e:
            logger.warning(f"{self.component.filename}: {e.message}")
            if self.collector is not None:
                self.collector.add(e)
            return None

    def _lower_binding(self, match: re.Match) -> str:
        name = match.group(1)
        if name not in self._bindings:
            self._bindings.append(name)
        return f'<span data-bind="${name}"></span>'


# =============================================================================
# Code Generator
# =============================================================================

_SIGNAL_CALL = re.compile(r"""^signal\s*\(\s*['"]([^'"]+)['"]\s*,\s*(.+)\s*\)\s*;?$""", re.DOTALL)


def page_function_name(component_name: str) -> str:
    """"my-home" -> "MyhomePage"; the name is always a valid identifier."""
    cleaned = re.sub(r"[^A-Za-z0-9]", "", component_name) or "Component"
    if cleaned[0].isdigit():
        cleaned = "_" + cleaned
    return cleaned[0].upper() + cleaned[1:] + "Page"


@dataclass(frozen=True)
class GeneratedCode:
    """
    Output of the code generator.

    Attributes:
        javascript: The complete program
        template: The lowered template
        mode: Compilation mode the program was generated for
    """
    javascript: str
    template: LoweredTemplate = field(default_factory=LoweredTemplate)
    mode: CompilationMode = field(default_factory=CompilationMode.inline)

    @property
    def script_tag(self) -> str:
        return self.mode.script_tag(self.javascript)

    @property
    def external_file(self) -> Optional[tuple[str, str]]:
        """(filename, content) for external and custom modes, else None."""
        if self.mode.is_inline:
            return None
        return self.mode.filename, self.javascript


class CodeGenerator:
    """
    Generates the JavaScript program for one component.

    Usage:
        generator = CodeGenerator(component, mode)
        code = generator.generate()
        print(code.javascript)

    Attributes:
        component: The parsed component
        mode: Resolved compilation mode
        definitions: Component definitions for the imports (derived from
            the imports when not given)
        skip_runtime: Leave out the runtime library (when the page loads a
            shared copy)
        collector: Receives warnings for rejected conditions and unknown
            event handlers
    """

    def __init__(
        self,
        component: Component,
        mode: Optional[CompilationMode] = None,
        definitions: Optional[Sequence[ComponentDefinition]] = None,
        skip_runtime: bool = False,
        collector: Optional[ErrorCollector] = None,
    ):
        self.component = component
        self.mode = mode or CompilationMode.inline()
        if definitions is None:
            definitions = [
                ComponentDefinition(imp.name, imp.framework, imp.path, imp.resolved_path)
                for imp in component.imports
            ]
        self.definitions = list(definitions)
        self.skip_runtime = skip_runtime
        self.collector = collector
        self.output: list[str] = []

    def generate(self) -> GeneratedCode:
        """Generate the program and return it with the lowered template."""
        self.output = []
        lowered = TemplateLowering(self.component, self.collector).lower()

        if not self.skip_runtime:
            self.output.append(RUNTIME)

        self._emit_metadata()
        self._emit_page_function(lowered)
        self._emit_bootstrap()

        javascript = "\n".join(self.output)
        logger.debug(
            f"{self.component.filename}: generated {len(javascript)} bytes of JavaScript "
            f"({self.mode.label})"
        )
        return GeneratedCode(javascript, lowered, self.mode)

    # =========================================================================
    # Output Helpers
    # =========================================================================

    def _emit(self, line: str = "", level: int = 0) -> None:
        self.output.append(f"{INDENT * level}{line}" if line else "")

    def _emit_block(self, text: str, level: int) -> None:
        for line in text.split("\n"):
            self._emit(line, level)

    # =========================================================================
    # Sections
    # =========================================================================

    def _emit_metadata(self) -> None:
        route = self.component.route or "/"
        metadata = json.dumps(dict(self.component.frontmatter), indent=2, ensure_ascii=False)
        # must not close an inline <script>
        metadata = metadata.replace("</", "<\\/")
        self._emit("// Page metadata")
        self._emit(f"const pageMetadata = {metadata};")
        self._emit(f"MTMRouter.routes.set({json.dumps(route)}, pageMetadata);")
        self._emit()

    def _emit_page_function(self, lowered: LoweredTemplate) -> None:
        component = self.component
        names = component.variable_names

        self._emit(f"// Page component: {component.name}")
        self._emit(f"function {page_function_name(component.name)}() {{")

        if component.variables:
            self._emit("// Variables", 1)
            for variable in component.variables:
                self._emit(self.variable_declaration(variable, names), 1)
            self._emit()

        scope_entries = ", ".join(names)
        self._emit(f"const scope = {{ {scope_entries} }};" if names else "const scope = {};", 1)
        self._emit()

        if component.functions:
            self._emit("// Functions", 1)
            for function in component.functions:
                self._emit_function(function.name, function.params, function.body, names)
            self._emit()

        if self.definitions:
            self._emit("// Components", 1)
            for definition in self.definitions:
                self._emit_block(definition.adapter.generate_wrapper(definition), 1)
            self._emit()

        self._emit_update_cycle(lowered)
        self._emit_event_bindings(lowered)
        self._emit("}")
        self._emit()

    def variable_declaration(self, variable: Variable, names: Sequence[str]) -> str:
        """Return the ``const`` declaration for one variable."""
        if variable.is_reactive:
            match = _SIGNAL_CALL.match(variable.value_expr.strip())
            if match:
                key, initial = match.group(1), match.group(2).strip()
            else:
                key, initial = variable.name, variable.value_expr
            initial = rewrite_references(initial, names)
            return f"const {variable.name} = MTMRouter.create('{key}', {initial});"

        expr = rewrite_references(variable.value_expr, names)
        return f"const {variable.name} = {{ value: ({expr}) }};"

    def _emit_function(self, name: str, params: str, body: str, names: Sequence[str]) -> None:
        rewritten = rewrite_references(body, names)
        lines = [line for line in rewritten.split("\n")]
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()

        common = min(
            (len(line) - len(line.lstrip()) for line in lines if line.strip()),
            default=0,
        )
        self._emit(f"const {name} = ({params}) => {{", 1)
        for line in lines:
            self._emit(line[common:].rstrip(), 2)
        self._emit("};", 1)

    def _emit_update_cycle(self, lowered: LoweredTemplate) -> None:
        self._emit("// DOM bindings", 1)
        self._emit("const container = document.getElementById('app');", 1)

        if lowered.conditions:
            self._emit("const conditions = {", 1)
            for text, tree in lowered.conditions:
                self._emit(f"{json.dumps(text, ensure_ascii=False)}: {to_json(tree)},", 2)
            self._emit("};", 1)
        else:
            self._emit("const conditions = {};", 1)
        self._emit()

        self._emit("const updateAll = () => {", 1)
        for name in self.component.variable_names:
            self._emit(f"container.querySelectorAll('[data-bind=\"${name}\"]').forEach(el => {{", 2)
            self._emit(f"el.textContent = {name}.value;", 3)
            self._emit("});", 2)
        self._emit("container.querySelectorAll('[data-if]').forEach(el => {", 2)
        self._emit("const condition = el.getAttribute('data-if');", 3)
        self._emit("const tree = conditions[condition];", 3)
        self._emit("let shouldShow = false;", 3)
        self._emit("if (tree) {", 3)
        self._emit("shouldShow = Boolean(MTMConditions.evaluate(tree, scope));", 4)
        self._emit("} else {", 3)
        self._emit("console.warn('MTM: condition was rejected at compile time:', condition);", 4)
        self._emit("}", 3)
        self._emit("el.style.display = shouldShow ? 'block' : 'none';", 3)
        self._emit("});", 2)
        self._emit("};", 1)
        self._emit()

        self._emit("updateAll();", 1)
        self._emit("MTMComponents.mountAll(scope);", 1)
        for variable in self.component.reactive_variables:
            self._emit(f"{variable.name}.subscribe(() => updateAll());", 1)

    def _emit_event_bindings(self, lowered: LoweredTemplate) -> None:
        declared = {function.name for function in self.component.functions}

        for event, handler in lowered.events:
            if handler not in declared:
                message = f"event handler ${handler} for '{event}' is not a declared function"
                logger.warning(f"{self.component.filename}: {message}")
                if self.collector is not None:
                    self.collector.add_warning(
                        message,
                        file=self.component.filename,
                        suggestions=(f"Declare ${handler} = (e) => {{ ... }}",),
                    )
                continue

            attribute = "data-click" if event == "click" else f"data-event-{event}"
            self._emit()
            self._emit(f"container.querySelectorAll('[{attribute}=\"${handler}\"]').forEach(el => {{", 1)
            self._emit(f"el.addEventListener('{event}', (e) => {handler}(e));", 2)
            self._emit("});", 1)

    def _emit_bootstrap(self) -> None:
        self._emit("document.addEventListener('DOMContentLoaded', () => {")
        self._emit("MTMRouter.init();", 1)
        self._emit(f"{page_function_name(self.component.name)}();", 1)
        self._emit("});")


def generate_javascript(
    component: Component,
    mode: Optional[CompilationMode] = None,
    skip_runtime: bool = False,
) -> str:
    """Convenience function returning only the JavaScript text."""
    return CodeGenerator(component, mode, skip_runtime=skip_runtime).generate().javascript
