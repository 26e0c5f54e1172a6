"""
MTM Lexer (Tokenizer)
=====================

This module converts the body of an MTM file (everything after the
frontmatter) into a flat stream of tokens for the parser.

Unlike a character-level lexer, the MTM lexer is line oriented: each
line is matched against a small set of patterns and the first match wins.

Rules (in priority order)
-------------------------
| # | Line shape                          | Token               |
|---|-------------------------------------|---------------------|
| 1 | blank, or starts with //            | (skipped)           |
| 2 | import Name from "path"             | IMPORT              |
| 3 | $name! = expr                       | REACTIVE_VARIABLE   |
| 4 | $name = expr   (expr without =>)    | COMPUTED_VARIABLE   |
| 5 | $name = (params) => {               | FUNCTION            |
| 6 | <template> ... </template>          | TEMPLATE            |
| 7 | export default function Name        | COMPONENT_NAME      |

Anything else is skipped without error.

Block Modes
-----------
Rules 5 and 6 open a block. The lexer then collects lines verbatim until
the block closes:

    NORMAL -> IN_FUNCTION_BODY -> NORMAL   (closed by a line that is just "}")
    NORMAL -> IN_TEMPLATE      -> NORMAL   (closed by a line ending in </template>)

Blocks do not nest. A function body ends at the first line whose text is
exactly ``}``, even when that brace belongs to a nested block inside the
function. A function whose opening line already carries its closing
brace, e.g. ``$inc = () => { $n = $n + 1 }``, is a complete single-line
function. The template tags may share a line with markup.

Example Usage
-------------
>>> from mtm_sdk.compiler.lexer import MTMLexer
>>> lexer = MTMLexer("$count! = signal('count', 0)", "counter.mtm")
>>> for token in lexer.tokenize():
...     print(token)
Token(REACTIVE_VARIABLE, 'count', 1)
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Iterator, Optional

from mtm_sdk.compiler.frameworks import Framework, detect_framework
from mtm_sdk.errors import SourceLocation


logger = logging.getLogger(__name__)


# =============================================================================
# Token Type Enumeration
# =============================================================================

class MTMTokenType(Enum):
    """Token types produced by the MTM lexer."""
    IMPORT = auto()
    REACTIVE_VARIABLE = auto()
    COMPUTED_VARIABLE = auto()
    FUNCTION = auto()
    TEMPLATE = auto()
    COMPONENT_NAME = auto()


class LexerMode(Enum):
    """Block state of the line scanner."""
    NORMAL = auto()
    IN_TEMPLATE = auto()
    IN_FUNCTION_BODY = auto()


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class MTMToken:
    """
    A single token from an MTM body.

    Only the fields relevant to the token type are set:

    | Type              | Fields                                    |
    |-------------------|-------------------------------------------|
    | IMPORT            | name, path, framework, resolved_path      |
    | REACTIVE_VARIABLE | name, value                               |
    | COMPUTED_VARIABLE | name, value                               |
    | FUNCTION          | name, params, body                        |
    | TEMPLATE          | value (the raw markup)                    |
    | COMPONENT_NAME    | name                                      |

    Attributes:
        type: The MTMTokenType classification
        line: Line number in the full source file (1-indexed)
        filename: Name of the source file
    """
    type: MTMTokenType
    line: int
    filename: str = "<input>"
    name: Optional[str] = None
    value: Optional[str] = None
    params: Optional[str] = None
    body: Optional[str] = None
    path: Optional[str] = None
    framework: Optional[Framework] = None
    resolved_path: Optional[str] = None

    def __repr__(self) -> str:
        label = self.name if self.name is not None else self.value
        if label is None:
            return f"Token({self.type.name}, {self.line})"
        if len(label) > 40:
            label = label[:37] + "..."
        return f"Token({self.type.name}, {label!r}, {self.line})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line)


# =============================================================================
# Line Patterns
# =============================================================================

IMPORT_PATTERN = re.compile(r"""^\s*import\s+(\w+)\s+from\s+["']([^"']+)["']\s*;?\s*$""")
REACTIVE_PATTERN = re.compile(r"^\s*\$(\w+)!\s*=\s*(.+)$")
COMPUTED_PATTERN = re.compile(r"^\s*\$(\w+)\s*=\s*(.+)$")
FUNCTION_PATTERN = re.compile(r"^\s*\$(\w+)\s*=\s*\(([^)]*)\)\s*=>\s*\{(.*)$")
COMPONENT_NAME_PATTERN = re.compile(r"export\s+default\s+function\s+(\w+)")

TEMPLATE_OPEN = "<template>"
TEMPLATE_CLOSE = "</template>"
FUNCTION_CLOSE = "}"


# Resolves an import path (as written) to the path used for framework
# detection. May raise ImportResolutionError.
ImportLocator = Callable[[str, int], Optional[str]]


# =============================================================================
# Lexer Implementation
# =============================================================================

class MTMLexer:
    """
    Tokenizes the body of an MTM file.

    Usage:
        lexer = MTMLexer(body, "pages/index.mtm", line_offset=4)
        tokens = lexer.tokenize()

    Attributes:
        source: The body text being tokenized
        filename: Name of the source file (for tokens and errors)
        line_offset: Number of source lines preceding the body, so token
            line numbers point into the original file
    """

    def __init__(
        self,
        source: str,
        filename: str = "<input>",
        line_offset: int = 0,
        locate_import: Optional[ImportLocator] = None,
    ):
        """
        Initialize the lexer.

        Args:
            source: Body text (frontmatter already removed)
            filename: Source file name
            line_offset: Lines consumed by the frontmatter block
            locate_import: Optional path-resolution hook. It receives the
                import path and its line and returns the resolved path (or
                None to keep the path as written). Framework detection runs
                on the returned path.
        """
        self.source = source
        self.filename = filename
        self.line_offset = line_offset
        self.locate_import = locate_import
        self.mode = LexerMode.NORMAL

    def tokenize(self) -> list[MTMToken]:
        """Tokenize the entire body and return the token list."""
        return list(self.iter_tokens())

    def iter_tokens(self) -> Iterator[MTMToken]:
        """Yield tokens one at a time in source order."""
        lines = self.source.split("\n")
        index = 0

        while index < len(lines):
            line = lines[index]
            line_number = self.line_offset + index + 1
            stripped = line.strip()
            index += 1

            if not stripped or stripped.startswith("//"):
                continue

            match = IMPORT_PATTERN.match(line)
            if match:
                yield self._import_token(match.group(1), match.group(2), line_number)
                continue

            match = REACTIVE_PATTERN.match(line)
            if match:
                yield self._token(
                    MTMTokenType.REACTIVE_VARIABLE,
                    line_number,
                    name=match.group(1),
                    value=match.group(2).strip(),
                )
                continue

            match = COMPUTED_PATTERN.match(line)
            if match and "=>" not in match.group(2):
                yield self._token(
                    MTMTokenType.COMPUTED_VARIABLE,
                    line_number,
                    name=match.group(1),
                    value=match.group(2).strip(),
                )
                continue

            match = FUNCTION_PATTERN.match(line)
            if match:
                token, index = self._function_token(match, lines, index, line_number)
                yield token
                continue

            if stripped.startswith(TEMPLATE_OPEN):
                token, index = self._template_token(stripped, lines, index, line_number)
                yield token
                continue

            match = COMPONENT_NAME_PATTERN.search(line)
            if match:
                yield self._token(MTMTokenType.COMPONENT_NAME, line_number, name=match.group(1))
                continue

            logger.debug(f"{self.filename}:{line_number}: skipping unrecognized line {stripped!r}")

    # =========================================================================
    # Token Builders
    # =========================================================================

    def _token(self, token_type: MTMTokenType, line: int, **fields) -> MTMToken:
        return MTMToken(type=token_type, line=line, filename=self.filename, **fields)

    def _import_token(self, name: str, path: str, line: int) -> MTMToken:
        resolved = None
        if self.locate_import is not None:
            resolved = self.locate_import(path, line)

        return self._token(
            MTMTokenType.IMPORT,
            line,
            name=name,
            path=path,
            framework=detect_framework(resolved or path),
            resolved_path=resolved,
        )

    def _function_token(
        self,
        match: re.Match,
        lines: list[str],
        index: int,
        line_number: int,
    ) -> tuple[MTMToken, int]:
        """
        Build a FUNCTION token, consuming body lines as needed.

        Returns the token and the index of the first line after the block.
        """
        name, params, rest = match.group(1), match.group(2).strip(), match.group(3).rstrip()

        if rest.endswith(FUNCTION_CLOSE):
            body = rest[: -len(FUNCTION_CLOSE)].strip()
            return self._token(
                MTMTokenType.FUNCTION, line_number, name=name, params=params, body=body
            ), index

        self.mode = LexerMode.IN_FUNCTION_BODY
        body_lines = [rest.strip()] if rest.strip() else []

        while index < len(lines):
            line = lines[index]
            index += 1
            if line.strip() == FUNCTION_CLOSE:
                self.mode = LexerMode.NORMAL
                break
            body_lines.append(line)

        if self.mode is LexerMode.IN_FUNCTION_BODY:
            logger.warning(f"{self.filename}:{line_number}: function ${name} is never closed")
            self.mode = LexerMode.NORMAL

        return self._token(
            MTMTokenType.FUNCTION,
            line_number,
            name=name,
            params=params,
            body="\n".join(body_lines),
        ), index

    def _template_token(
        self,
        stripped: str,
        lines: list[str],
        index: int,
        line_number: int,
    ) -> tuple[MTMToken, int]:
        """Build a TEMPLATE token from an opening line and what follows."""
        first = stripped[len(TEMPLATE_OPEN):]

        if first.rstrip().endswith(TEMPLATE_CLOSE):
            content = first.rstrip()[: -len(TEMPLATE_CLOSE)]
            return self._token(MTMTokenType.TEMPLATE, line_number, value=content.strip()), index

        self.mode = LexerMode.IN_TEMPLATE
        content_lines = [first] if first.strip() else []

        while index < len(lines):
            line = lines[index]
            index += 1
            closing = line.rstrip()
            if closing.endswith(TEMPLATE_CLOSE):
                tail = closing[: -len(TEMPLATE_CLOSE)]
                if tail.strip():
                    content_lines.append(tail)
                self.mode = LexerMode.NORMAL
                break
            content_lines.append(line)

        if self.mode is LexerMode.IN_TEMPLATE:
            logger.warning(f"{self.filename}:{line_number}: <template> is never closed")
            self.mode = LexerMode.NORMAL

        return self._token(
            MTMTokenType.TEMPLATE, line_number, value="\n".join(content_lines)
        ), index


def tokenize(source: str, filename: str = "<input>") -> list[MTMToken]:
    """Convenience function to tokenize an MTM body."""
    return MTMLexer(source, filename).tokenize()
