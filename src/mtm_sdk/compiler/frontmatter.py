"""
MTM Frontmatter Extractor
=========================

Splits an MTM source file into its metadata block and its body.

Format
------
The metadata block must start on the very first line:

    ---
    title: "Home"
    route: /
    # comments and blank lines are ignored
    ---
    ...body...

Each line inside the block is a flat ``key: value`` pair. One layer of
matching single or double quotes is stripped from the value. There is no
nesting. Lines that do not look like ``key: value`` are skipped without
error.

If the first line is not ``---`` the frontmatter is empty and the body is
the whole source. If the opening delimiter is never closed, the block is
treated as absent as well and the body starts after the opening line.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from mtm_sdk.errors import FrontmatterValidationError


logger = logging.getLogger(__name__)

DELIMITER = "---"

# key: value (the key is a plain identifier)
_LINE_PATTERN = re.compile(r"^(\w+):\s*(.+)$")

VALID_MODES = ("inline", "external.js")


@dataclass(frozen=True)
class ExtractedSource:
    """
    Result of frontmatter extraction.

    Attributes:
        frontmatter: Ordered key/value mapping
        body: Source text after the closing delimiter
        body_offset: Number of source lines before the body (for line numbers)
    """
    frontmatter: dict[str, str] = field(default_factory=dict)
    body: str = ""
    body_offset: int = 0


def extract_frontmatter(source: str) -> ExtractedSource:
    """
    Split source text into frontmatter and body.

    Args:
        source: Full MTM source text

    Returns:
        ExtractedSource with the parsed mapping and the remaining body
    """
    lines = source.split("\n")

    if not lines or lines[0].strip() != DELIMITER:
        return ExtractedSource({}, source, 0)

    for index in range(1, len(lines)):
        if lines[index].strip() == DELIMITER:
            block = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1:])
            return ExtractedSource(parse_frontmatter(block), body, index + 1)

    logger.debug("Frontmatter opening delimiter without a closing one; ignoring block")
    return ExtractedSource({}, "\n".join(lines[1:]), 1)


def parse_frontmatter(block: str) -> dict[str, str]:
    """
    Parse the lines between the delimiters into an ordered mapping.

    Blank lines and ``#`` comments are skipped, as is anything that is not a
    ``key: value`` pair. Later keys overwrite earlier ones in place.
    """
    frontmatter: dict[str, str] = {}

    for raw_line in block.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        match = _LINE_PATTERN.match(line)
        if not match:
            logger.debug(f"Skipping malformed frontmatter line: {line!r}")
            continue

        key, value = match.group(1), match.group(2).strip()
        frontmatter[key] = unquote(value)

    return frontmatter


def unquote(value: str) -> str:
    """Strip one layer of matching single or double quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def is_valid_compile_mode(mode: str) -> bool:
    """Return True for inline, external.js or any *.js filename."""
    return mode in VALID_MODES or mode.endswith(".js")


def validate_frontmatter(
    frontmatter: dict[str, str],
    file: Optional[str] = None,
) -> list[FrontmatterValidationError]:
    """
    Check the frontmatter keys the compiler itself consumes.

    Only ``route`` and ``compileJsMode`` are checked; every other key passes
    through to the HTML assembler untouched.

    Returns:
        A list of errors, empty when the frontmatter is valid
    """
    errors: list[FrontmatterValidationError] = []

    route = frontmatter.get("route")
    if route is not None and not route.startswith("/"):
        errors.append(FrontmatterValidationError("route", route, file=file))

    mode = frontmatter.get("compileJsMode")
    if mode is not None and not is_valid_compile_mode(mode):
        errors.append(
            FrontmatterValidationError(
                "compileJsMode",
                mode,
                file=file,
                valid_values=("inline", "external.js", "<name>.js"),
            )
        )

    return errors
