"""
Framework Detection and Component Adapters
==========================================

MTM pages can mount components written for other UI frameworks. Each
framework is represented by one adapter implementing the same capability:

    detect(path)                 -> bool
    extract_props(source)        -> list[Prop]
    generate_wrapper(definition) -> str   (JavaScript)

The adapter for an import is chosen once, when the import is resolved,
and travels with the ComponentDefinition from then on. Code generation
never re-dispatches on the framework name.

Detection Rules
---------------
| Path                                  | Framework |
|---------------------------------------|-----------|
| ends with .vue                        | vue       |
| ends with .svelte                     | svelte    |
| ends with .solid.tsx or has "solid"   | solid     |
| ends with .tsx or .jsx                | react     |
| anything else                         | unknown   |

The rules are checked in that order, so ``components/solid/Counter.vue``
is still a Vue component.
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Framework(Enum):
    """Framework tag carried by every import."""
    REACT = "react"
    VUE = "vue"
    SOLID = "solid"
    SVELTE = "svelte"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


def detect_framework(path: str) -> Framework:
    """Infer the framework of a component from its import path."""
    if path.endswith(".vue"):
        return Framework.VUE
    if path.endswith(".svelte"):
        return Framework.SVELTE
    if path.endswith(".solid.tsx") or "solid" in path:
        return Framework.SOLID
    if path.endswith((".tsx", ".jsx")):
        return Framework.REACT
    return Framework.UNKNOWN


# =============================================================================
# Component Definitions
# =============================================================================

@dataclass(frozen=True)
class Prop:
    """
    A single component property.

    Attributes:
        name: Property name
        type: Declared type as written in the source ("any" when unknown)
        required: False when the declaration is optional or has a default
        default: Default value source text, if any
    """
    name: str
    type: str = "any"
    required: bool = True
    default: Optional[str] = None


@dataclass(frozen=True)
class ComponentDefinition:
    """
    Everything code generation needs to mount one imported component.

    Attributes:
        name: Local component name from the import statement
        framework: Framework tag
        path: Import path as written
        resolved_path: Path on disk, if the import was resolved
        props: Props extracted from the component source
    """
    name: str
    framework: Framework
    path: str
    resolved_path: Optional[str] = None
    props: tuple[Prop, ...] = field(default_factory=tuple)

    @property
    def adapter(self) -> "ComponentAdapter":
        return adapter_for(self.framework)


# =============================================================================
# Adapter Capability
# =============================================================================

# interface XProps { ... } / type XProps = { ... }
_TS_PROPS = re.compile(
    r"(?:interface\s+\w*Props\s*|type\s+\w*Props\s*=\s*)\{([^}]*)\}"
)
# name?: type
_TS_MEMBER = re.compile(r"^\s*(\w+)(\?)?\s*:\s*([^;,\n]+)")


def _parse_ts_members(body: str) -> list[Prop]:
    props = []
    for chunk in re.split(r"[;\n]", body):
        match = _TS_MEMBER.match(chunk)
        if match:
            props.append(
                Prop(
                    name=match.group(1),
                    type=match.group(3).strip().rstrip(","),
                    required=match.group(2) is None,
                )
            )
    return props


def _dedupe(props: list[Prop]) -> list[Prop]:
    seen = set()
    unique = []
    for prop in props:
        if prop.name not in seen:
            seen.add(prop.name)
            unique.append(prop)
    return unique


class ComponentAdapter(ABC):
    """
    Capability implemented once per framework.

    Subclasses set ``framework`` and provide the three operations.
    """

    framework: Framework = Framework.UNKNOWN

    def detect(self, path: str) -> bool:
        """Return True if this adapter handles components at path."""
        return detect_framework(path) is self.framework

    @abstractmethod
    def extract_props(self, source: str) -> list[Prop]:
        """Extract the component's props from its source text."""

    @abstractmethod
    def mount_expression(self, definition: ComponentDefinition) -> str:
        """JavaScript statement body that mounts ``Component`` into ``el``."""

    def generate_wrapper(self, definition: ComponentDefinition) -> str:
        """
        Generate the JavaScript that registers a mount factory.

        The component itself is looked up on ``window`` under its import
        name; the page's bundler is responsible for putting it there.
        """
        prop_names = json.dumps([p.name for p in definition.props])
        return "\n".join([
            f"// {definition.framework} component: {definition.name}",
            f"MTMComponents.register('{definition.name}', '{definition.framework}', (props) => ({{",
            f"  props: {prop_names},",
            "  mount(el) {",
            f"    const Component = window['{definition.name}'];",
            "    if (!Component) {",
            f"      el.innerHTML = '<div class=\"{definition.framework}-component\">{definition.name}</div>';",
            "      return;",
            "    }",
            f"    {self.mount_expression(definition)}",
            "  }",
            "}));",
        ])


class ReactAdapter(ComponentAdapter):
    """React function/class components (.tsx, .jsx)."""

    framework = Framework.REACT

    _PROP_TYPES = re.compile(r"\w+\.propTypes\s*=\s*\{([^}]*)\}")
    _PROP_TYPE_ENTRY = re.compile(r"(\w+)\s*:\s*PropTypes\.(\w+)(\.isRequired)?")

    def extract_props(self, source: str) -> list[Prop]:
        props = []
        for match in _TS_PROPS.finditer(source):
            props.extend(_parse_ts_members(match.group(1)))
        for match in self._PROP_TYPES.finditer(source):
            for entry in self._PROP_TYPE_ENTRY.finditer(match.group(1)):
                props.append(
                    Prop(
                        name=entry.group(1),
                        type=entry.group(2),
                        required=entry.group(3) is not None,
                    )
                )
        return _dedupe(props)

    def mount_expression(self, definition: ComponentDefinition) -> str:
        return "ReactDOM.createRoot(el).render(React.createElement(Component, props));"


class SolidAdapter(ComponentAdapter):
    """Solid components (.solid.tsx or a path mentioning solid)."""

    framework = Framework.SOLID

    def extract_props(self, source: str) -> list[Prop]:
        props = []
        for match in _TS_PROPS.finditer(source):
            props.extend(_parse_ts_members(match.group(1)))
        return _dedupe(props)

    def mount_expression(self, definition: ComponentDefinition) -> str:
        return "SolidWeb.render(() => Component(props), el);"


class VueAdapter(ComponentAdapter):
    """Vue single-file components (.vue), options or composition API."""

    framework = Framework.VUE

    _ARRAY_PROPS = re.compile(r"props\s*:\s*\[([^\]]*)\]")
    _OBJECT_PROPS = re.compile(r"props\s*:\s*\{((?:[^{}]|\{[^{}]*\})*)\}")
    _DEFINE_PROPS = re.compile(r"defineProps\s*<\s*\{([^}]*)\}\s*>")
    _OBJECT_ENTRY = re.compile(r"(\w+)\s*:\s*(\{[^{}]*\}|\w+)")

    def extract_props(self, source: str) -> list[Prop]:
        props = []

        for match in self._ARRAY_PROPS.finditer(source):
            for name in re.findall(r"['\"](\w+)['\"]", match.group(1)):
                props.append(Prop(name=name, required=False))

        for match in self._OBJECT_PROPS.finditer(source):
            for entry in self._OBJECT_ENTRY.finditer(match.group(1)):
                props.append(self._object_prop(entry.group(1), entry.group(2)))

        for match in self._DEFINE_PROPS.finditer(source):
            props.extend(_parse_ts_members(match.group(1)))

        return _dedupe(props)

    def _object_prop(self, name: str, config: str) -> Prop:
        if not config.startswith("{"):
            return Prop(name=name, type=config, required=False)

        type_match = re.search(r"type\s*:\s*(\w+)", config)
        default_match = re.search(r"default\s*:\s*([^,}]+)", config)
        required = re.search(r"required\s*:\s*true", config) is not None
        return Prop(
            name=name,
            type=type_match.group(1) if type_match else "any",
            required=required,
            default=default_match.group(1).strip() if default_match else None,
        )

    def mount_expression(self, definition: ComponentDefinition) -> str:
        return "Vue.createApp(Component, props).mount(el);"


class SvelteAdapter(ComponentAdapter):
    """Svelte components (.svelte)."""

    framework = Framework.SVELTE

    _EXPORT_LET = re.compile(r"export\s+let\s+(\w+)(?:\s*:\s*([\w\[\]<>|]+))?(?:\s*=\s*([^;\n]+))?")

    def extract_props(self, source: str) -> list[Prop]:
        props = []
        for match in self._EXPORT_LET.finditer(source):
            default = match.group(3).strip() if match.group(3) else None
            props.append(
                Prop(
                    name=match.group(1),
                    type=match.group(2) or "any",
                    required=default is None,
                    default=default,
                )
            )
        return _dedupe(props)

    def mount_expression(self, definition: ComponentDefinition) -> str:
        return "new Component({ target: el, props });"


class UnknownAdapter(ComponentAdapter):
    """Fallback for imports whose framework cannot be determined."""

    framework = Framework.UNKNOWN

    def extract_props(self, source: str) -> list[Prop]:
        props = []
        for match in _TS_PROPS.finditer(source):
            props.extend(_parse_ts_members(match.group(1)))
        return _dedupe(props)

    def mount_expression(self, definition: ComponentDefinition) -> str:
        return "el.innerHTML = typeof Component === 'function' ? Component(props) : String(Component);"


ADAPTERS: dict[Framework, ComponentAdapter] = {
    adapter.framework: adapter
    for adapter in (
        ReactAdapter(),
        VueAdapter(),
        SolidAdapter(),
        SvelteAdapter(),
        UnknownAdapter(),
    )
}


def adapter_for(framework: Framework) -> ComponentAdapter:
    """Return the adapter registered for a framework tag."""
    return ADAPTERS[framework]
