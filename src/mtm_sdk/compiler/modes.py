"""
Compilation Mode Strategy
=========================

Decides where the generated JavaScript goes:

| Mode     | Trigger                                   | Output                      |
|----------|-------------------------------------------|-----------------------------|
| inline   | compileJsMode: inline, or development     | <script>...</script>        |
| external | compileJsMode: external.js, or production | js/<component-name>.js      |
| custom   | compileJsMode: <anything>.js              | the given file name         |

An explicit ``compileJsMode`` in the frontmatter always wins over the
build options. Without one, development builds inline the script and
production builds write ``js/<name>.js``; the default is inline.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from mtm_sdk.errors import InvalidCompilationModeError


class ModeKind(Enum):
    INLINE = "inline"
    EXTERNAL = "external"
    CUSTOM = "custom"


@dataclass(frozen=True)
class CompilationMode:
    """
    Tagged compilation mode.

    Attributes:
        kind: ModeKind
        filename: Output path of the JavaScript file (None for inline)
    """
    kind: ModeKind
    filename: Optional[str] = None

    @classmethod
    def inline(cls) -> "CompilationMode":
        return cls(ModeKind.INLINE)

    @classmethod
    def external(cls, filename: str) -> "CompilationMode":
        return cls(ModeKind.EXTERNAL, filename)

    @classmethod
    def custom(cls, filename: str) -> "CompilationMode":
        return cls(ModeKind.CUSTOM, filename)

    @property
    def is_inline(self) -> bool:
        return self.kind is ModeKind.INLINE

    @property
    def label(self) -> str:
        if self.filename:
            return f"{self.kind.value}({self.filename})"
        return self.kind.value

    def script_tag(self, javascript: str) -> str:
        """Return the tag that embeds or references the generated script."""
        if self.is_inline:
            return f"<script>\n{javascript}\n</script>"
        return f'<script src="{self.filename}"></script>'


def external_filename(component_name: str) -> str:
    """Derive js/<name>.js from a component name: "My Page" -> js/my-page.js."""
    slug = re.sub(r"[^a-z0-9]", "-", component_name.lower())
    return f"js/{slug}.js"


def resolve_compilation_mode(
    frontmatter: Mapping[str, str],
    development: bool = False,
    production: bool = False,
    component_name: str = "Component",
    file: Optional[str] = None,
) -> CompilationMode:
    """
    Pick the compilation mode for one file.

    Args:
        frontmatter: The file's frontmatter
        development: Development build flag
        production: Production build flag
        component_name: Used to derive the external file name
        file: Source file, for error reporting

    Raises:
        InvalidCompilationModeError: compileJsMode is not inline,
            external.js or a .js file name
    """
    requested = frontmatter.get("compileJsMode")

    if requested is not None:
        if requested == "inline":
            return CompilationMode.inline()
        if requested == "external.js":
            return CompilationMode.external(external_filename(component_name))
        if requested.endswith(".js"):
            return CompilationMode.custom(requested)
        raise InvalidCompilationModeError(requested, file)

    if development:
        return CompilationMode.inline()
    if production:
        return CompilationMode.external(external_filename(component_name))
    return CompilationMode.inline()
