"""
MTM Parser (AST Builder)
========================

Folds the lexer's token stream into a single Component record in one
left-to-right pass:

- IMPORT, REACTIVE_VARIABLE, COMPUTED_VARIABLE and FUNCTION tokens are
  appended in encounter order.
- TEMPLATE sets the template (a later template replaces an earlier one).
- COMPONENT_NAME overwrites the name; the last one wins.

Duplicate variable names are kept as they appear. They are logged at
WARNING because code generation will emit both declarations.

Usage:
    >>> from mtm_sdk.compiler.parser import parse_source
    >>> component = parse_source(source_text, "pages/index.mtm")
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from mtm_sdk.compiler.ast import (
    Component,
    Function,
    Import,
    Template,
    Variable,
    VariableKind,
)
from mtm_sdk.compiler.frameworks import detect_framework
from mtm_sdk.compiler.frontmatter import extract_frontmatter
from mtm_sdk.compiler.lexer import ImportLocator, MTMLexer, MTMToken, MTMTokenType


logger = logging.getLogger(__name__)


class MTMParser:
    """
    Builds a Component from tokens.

    Usage:
        parser = MTMParser(tokens, "pages/index.mtm", frontmatter)
        component = parser.parse()
    """

    def __init__(
        self,
        tokens: Sequence[MTMToken],
        filename: str = "<input>",
        frontmatter: Optional[Mapping[str, str]] = None,
    ):
        self.tokens = list(tokens)
        self.filename = filename
        self.frontmatter = dict(frontmatter or {})

    def parse(self) -> Component:
        """Fold the token stream into a Component."""
        name = "Component"
        imports: list[Import] = []
        variables: list[Variable] = []
        functions: list[Function] = []
        template: Optional[Template] = None
        seen_names: set[str] = set()

        for token in self.tokens:
            if token.type is MTMTokenType.IMPORT:
                imports.append(
                    Import(
                        line=token.line,
                        name=token.name,
                        path=token.path,
                        framework=token.framework,
                        resolved_path=token.resolved_path,
                    )
                )

            elif token.type in (MTMTokenType.REACTIVE_VARIABLE, MTMTokenType.COMPUTED_VARIABLE):
                if token.name in seen_names:
                    logger.warning(
                        f"{self.filename}:{token.line}: variable ${token.name} is declared more than once"
                    )
                seen_names.add(token.name)
                kind = (
                    VariableKind.REACTIVE
                    if token.type is MTMTokenType.REACTIVE_VARIABLE
                    else VariableKind.COMPUTED
                )
                variables.append(
                    Variable(line=token.line, name=token.name, kind=kind, value_expr=token.value)
                )

            elif token.type is MTMTokenType.FUNCTION:
                functions.append(
                    Function(line=token.line, name=token.name, params=token.params, body=token.body)
                )

            elif token.type is MTMTokenType.TEMPLATE:
                if template is not None:
                    logger.warning(f"{self.filename}:{token.line}: second <template> replaces the first")
                template = Template(line=token.line, content=token.value)

            elif token.type is MTMTokenType.COMPONENT_NAME:
                name = token.name

        component = Component(
            line=1,
            name=name,
            framework=detect_framework(self.filename),
            frontmatter=MappingProxyType(dict(self.frontmatter)),
            imports=tuple(imports),
            variables=tuple(variables),
            functions=tuple(functions),
            template=template,
            filename=self.filename,
        )
        logger.debug(
            f"{self.filename}: parsed {len(imports)} imports, {len(variables)} variables, "
            f"{len(functions)} functions"
        )
        return component


def parse_source(
    source: str,
    filename: str = "<input>",
    locate_import: Optional[ImportLocator] = None,
) -> Component:
    """
    Run the front half of the pipeline on full source text.

    Extracts the frontmatter, tokenizes the body and builds the AST.

    Args:
        source: Complete MTM source, frontmatter included
        filename: Name used for tokens, errors and framework detection
        locate_import: Optional import-resolution hook for the lexer
    """
    extracted = extract_frontmatter(source)
    lexer = MTMLexer(
        extracted.body,
        filename,
        line_offset=extracted.body_offset,
        locate_import=locate_import,
    )
    return MTMParser(lexer.tokenize(), filename, extracted.frontmatter).parse()
