"""
Template Condition Expressions
==============================

``{#if cond}`` blocks in templates take a small boolean expression. The
expression is parsed at compile time into a tree; the runtime walks the
tree against the current variable values. Nothing is ever passed to
``eval``.

Supported Operations
--------------------
**Boolean:** ``||``, ``&&``, ``!``

**Comparison:** ``==``, ``!=``, ``===``, ``!==``, ``<``, ``<=``, ``>``, ``>=``

**Operands:**
- Declared variables, written ``$count`` or ``count``
- Numbers: ``0``, ``42``, ``3.5``
- Strings: ``'admin'`` or ``"admin"``
- ``true``, ``false``, ``null``
- Parenthesized sub-expressions

Grammar (lowest precedence first)
---------------------------------
    or         := and ("||" and)*
    and        := unary ("&&" unary)*
    unary      := "!" unary | comparison
    comparison := primary (cmp_op primary)?
    primary    := NUMBER | STRING | true | false | null | NAME | "(" or ")"

Identifiers that are not declared variables are rejected with
UnknownIdentifierError; anything else the grammar does not accept raises
ConditionSyntaxError.

Example Usage
-------------
>>> from mtm_sdk.compiler.conditions import parse_condition, evaluate
>>> tree = parse_condition("$count > 5 && !$done", ["count", "done"])
>>> evaluate(tree, {"count": 7, "done": False})
True
>>> to_json(parse_condition("$count > 5", ["count"]))
'{"type":"compare","op":">","left":{"type":"var","name":"count"},"right":{"type":"literal","value":5}}'
"""

import json
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Mapping, Optional, Sequence

from mtm_sdk.errors import ConditionSyntaxError, UnknownIdentifierError, SEVERITY_ERROR


# =============================================================================
# Condition Tokens
# =============================================================================

class CondTokenType(Enum):
    NUMBER = auto()
    STRING = auto()
    NAME = auto()
    OPERATOR = auto()
    EOF = auto()


@dataclass(frozen=True)
class CondToken:
    type: CondTokenType
    value: Any
    position: int


_SCANNER = re.compile(
    r"""
    (?P<number>\d+(?:\.\d+)?)
    | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    | (?P<name>\$?[A-Za-z_]\w*)
    | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>!()])
    """,
    re.VERBOSE,
)

_STRING_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"'}

COMPARISON_OPERATORS = ("===", "!==", "==", "!=", "<=", ">=", "<", ">")
KEYWORD_LITERALS = {"true": True, "false": False, "null": None}


def _unescape(literal: str) -> str:
    body = literal[1:-1]
    return re.sub(r"\\(.)", lambda m: _STRING_ESCAPES.get(m.group(1), m.group(1)), body)


# =============================================================================
# Condition Tree
# =============================================================================

class CondNodeType(Enum):
    """Types of condition tree nodes (values match the runtime format)."""
    OR = "or"
    AND = "and"
    NOT = "not"
    COMPARE = "compare"
    VAR = "var"
    LITERAL = "literal"


@dataclass(frozen=True)
class CondNode:
    """
    Node in a condition tree.

    VAR nodes carry ``name``; LITERAL nodes carry ``value``; COMPARE nodes
    carry ``op``; binary nodes use ``left``/``right`` and NOT uses ``left``.
    """
    node_type: CondNodeType
    name: Optional[str] = None
    value: Any = None
    op: Optional[str] = None
    left: Optional["CondNode"] = None
    right: Optional["CondNode"] = None

    def to_dict(self) -> dict:
        """Return the plain-dict form interpreted by the runtime."""
        kind = self.node_type
        if kind is CondNodeType.VAR:
            return {"type": kind.value, "name": self.name}
        if kind is CondNodeType.LITERAL:
            return {"type": kind.value, "value": self.value}
        if kind is CondNodeType.NOT:
            return {"type": kind.value, "operand": self.left.to_dict()}
        result = {"type": kind.value}
        if kind is CondNodeType.COMPARE:
            result["op"] = self.op
        result["left"] = self.left.to_dict()
        result["right"] = self.right.to_dict()
        return result


# =============================================================================
# Parser
# =============================================================================

class ConditionParser:
    """
    Recursive descent parser for template conditions.

    Usage:
        parser = ConditionParser("$count > 0", known_names=["count"])
        tree = parser.parse()
    """

    def __init__(
        self,
        condition: str,
        known_names: Sequence[str] = (),
        file: Optional[str] = None,
        severity: str = SEVERITY_ERROR,
    ):
        self.condition = condition
        self.known_names = list(known_names)
        self.file = file
        self.severity = severity
        self._tokens = self._scan(condition)
        self._pos = 0

    def parse(self) -> CondNode:
        """Parse the whole condition and return its tree."""
        if self._current().type is CondTokenType.EOF:
            self._fail("empty condition")

        node = self._parse_or()
        if self._current().type is not CondTokenType.EOF:
            self._fail(f"unexpected '{self._current().value}'")
        return node

    # =========================================================================
    # Scanning
    # =========================================================================

    def _scan(self, text: str) -> list[CondToken]:
        tokens = []
        index = 0

        while index < len(text):
            if text[index].isspace():
                index += 1
                continue

            match = _SCANNER.match(text, index)
            if not match:
                self._fail(f"unexpected character '{text[index]}'", index)

            kind = match.lastgroup
            lexeme = match.group(kind)
            if kind == "number":
                value = float(lexeme) if "." in lexeme else int(lexeme)
                tokens.append(CondToken(CondTokenType.NUMBER, value, index))
            elif kind == "string":
                tokens.append(CondToken(CondTokenType.STRING, _unescape(lexeme), index))
            elif kind == "name":
                tokens.append(CondToken(CondTokenType.NAME, lexeme, index))
            else:
                tokens.append(CondToken(CondTokenType.OPERATOR, lexeme, index))
            index = match.end()

        tokens.append(CondToken(CondTokenType.EOF, None, len(text)))
        return tokens

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> CondToken:
        return self._tokens[self._pos]

    def _advance(self) -> CondToken:
        token = self._current()
        if token.type is not CondTokenType.EOF:
            self._pos += 1
        return token

    def _match_operator(self, *operators: str) -> Optional[str]:
        token = self._current()
        if token.type is CondTokenType.OPERATOR and token.value in operators:
            self._advance()
            return token.value
        return None

    def _fail(self, reason: str, position: Optional[int] = None):
        if position is None:
            position = self._current().position
        raise ConditionSyntaxError(
            self.condition, reason, position, file=self.file, severity=self.severity
        )

    # =========================================================================
    # Recursive Descent
    # =========================================================================

    def _parse_or(self) -> CondNode:
        left = self._parse_and()
        while self._match_operator("||"):
            left = CondNode(CondNodeType.OR, left=left, right=self._parse_and())
        return left

    def _parse_and(self) -> CondNode:
        left = self._parse_unary()
        while self._match_operator("&&"):
            left = CondNode(CondNodeType.AND, left=left, right=self._parse_unary())
        return left

    def _parse_unary(self) -> CondNode:
        if self._match_operator("!"):
            return CondNode(CondNodeType.NOT, left=self._parse_unary())
        return self._parse_comparison()

    def _parse_comparison(self) -> CondNode:
        left = self._parse_primary()
        op = self._match_operator(*COMPARISON_OPERATORS)
        if op:
            return CondNode(CondNodeType.COMPARE, op=op, left=left, right=self._parse_primary())
        return left

    def _parse_primary(self) -> CondNode:
        token = self._current()

        if token.type in (CondTokenType.NUMBER, CondTokenType.STRING):
            self._advance()
            return CondNode(CondNodeType.LITERAL, value=token.value)

        if token.type is CondTokenType.NAME:
            self._advance()
            if token.value in KEYWORD_LITERALS:
                return CondNode(CondNodeType.LITERAL, value=KEYWORD_LITERALS[token.value])
            name = token.value.lstrip("$")
            if name not in self.known_names:
                raise UnknownIdentifierError(
                    name,
                    self.condition,
                    self.known_names,
                    file=self.file,
                    severity=self.severity,
                )
            return CondNode(CondNodeType.VAR, name=name)

        if self._match_operator("("):
            node = self._parse_or()
            if not self._match_operator(")"):
                self._fail("expected ')'")
            return node

        if token.type is CondTokenType.EOF:
            self._fail("unexpected end of condition")
        self._fail(f"expected a value, got '{token.value}'")


def parse_condition(
    condition: str,
    known_names: Sequence[str] = (),
    file: Optional[str] = None,
    severity: str = SEVERITY_ERROR,
) -> CondNode:
    """Convenience function to parse one condition."""
    return ConditionParser(condition, known_names, file, severity).parse()


def to_json(node: Optional[CondNode]) -> str:
    """Serialize a tree (or None) to compact JSON for the runtime."""
    payload = node.to_dict() if node is not None else None
    return json.dumps(payload, separators=(",", ":"))


# =============================================================================
# Interpreter
# =============================================================================
# Mirrors the runtime interpreter so conditions can be checked (and tested)
# without a browser. Truthiness and equality follow JavaScript.

def truthy(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == value and value != 0
    if isinstance(value, str):
        return value != ""
    return True


def _to_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip() or "0")
        except ValueError:
            return float("nan")
    return float("nan")


def _strict_equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    numbers = (int, float)
    if isinstance(left, numbers) and isinstance(right, numbers):
        return left == right
    return type(left) is type(right) and left == right


def _loose_equal(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return _to_number(left) == _to_number(right)


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "===":
        return _strict_equal(left, right)
    if op == "!==":
        return not _strict_equal(left, right)
    if op == "==":
        return _loose_equal(left, right)
    if op == "!=":
        return not _loose_equal(left, right)

    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = _to_number(left), _to_number(right)
    if op == "<":
        return a < b
    if op == "<=":
        return a <= b
    if op == ">":
        return a > b
    return a >= b


def evaluate(node: CondNode, values: Mapping[str, Any]) -> Any:
    """
    Evaluate a condition tree against variable values.

    ``&&`` and ``||`` return one of their operands, as in JavaScript; use
    truthy() on the result for a plain bool.
    """
    kind = node.node_type

    if kind is CondNodeType.LITERAL:
        return node.value
    if kind is CondNodeType.VAR:
        return values.get(node.name)
    if kind is CondNodeType.NOT:
        return not truthy(evaluate(node.left, values))
    if kind is CondNodeType.AND:
        left = evaluate(node.left, values)
        return evaluate(node.right, values) if truthy(left) else left
    if kind is CondNodeType.OR:
        left = evaluate(node.left, values)
        return left if truthy(left) else evaluate(node.right, values)
    return _compare(node.op, evaluate(node.left, values), evaluate(node.right, values))
