"""
Expression Evaluator - turns a formula string and a token map into a price.

Pipeline:
1. Substitute tokens (longest first, whole words only, single pass)
2. Replace leftover identifiers with 0 and report them as unknown
3. Reject anything but digits, ".", + - * /, parentheses and whitespace
4. Parse into a small AST with a recursive-descent grammar:
       expr   := term (('+'|'-') term)*
       term   := factor (('*'|'/') factor)*
       factor := number | '(' expr ')' | '-' factor
5. Evaluate with Decimal, round half away from zero, clamp to [min, max]

Strings are never executed as code.
"""
import re
from abc import ABC
from dataclasses import dataclass
from decimal import Decimal, DecimalException, ROUND_HALF_UP, localcontext
from typing import Any, Optional

from .errors import DivisionByZeroError, EvaluationError, FormulaSyntaxError

DEFAULT_MAX_DEPTH = 100

_WORD_CHARS = 'A-Za-z0-9_'
_IDENTIFIER = re.compile(r'(?<![A-Za-z0-9_.])[A-Za-z_][A-Za-z0-9_]*')
_INVALID_CHAR = re.compile(r'[^0-9.+\-*/()\s]')
_NUMBER = re.compile(r'\d+(?:\.\d*)?|\.\d+')


class Node(ABC):
    """Base class for arithmetic AST nodes."""


@dataclass(frozen=True)
class Literal(Node):
    value: Decimal


@dataclass(frozen=True)
class Add(Node):
    left: Node
    right: Node


@dataclass(frozen=True)
class Sub(Node):
    left: Node
    right: Node


@dataclass(frozen=True)
class Mul(Node):
    left: Node
    right: Node


@dataclass(frozen=True)
class Div(Node):
    left: Node
    right: Node


@dataclass(frozen=True)
class Neg(Node):
    operand: Node


@dataclass(frozen=True)
class Paren(Node):
    inner: Node


def format_contribution(value: Any) -> str:
    """
    Render a token contribution as expression text.

    Numbers are written in plain positional notation; negative numbers and
    string sub-expressions (Checkbox values) are parenthesised so they bind
    as a single factor.
    """
    if isinstance(value, str):
        text = value.strip()
        return f"({text})" if text else "0"
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = format(Decimal(str(value)), 'f')
    if text.startswith('-'):
        return f"({text})"
    return text


def substitute_tokens(expression: str, token_map: dict[str, Any]) -> tuple[str, list[str]]:
    """
    Substitute every token occurrence with its contribution.

    Tokens are matched longest first and only when bounded by non-identifier
    characters, so "sqft" never matches inside "sqft2". Identifiers left
    over afterwards have no entry in token_map; they become 0 and are
    returned as the second element.
    """
    text = expression or ''
    if token_map:
        ordered = sorted(token_map, key=lambda t: (-len(t), t))
        pattern = re.compile(
            rf'(?<![{_WORD_CHARS}])(' + '|'.join(re.escape(t) for t in ordered) + rf')(?![{_WORD_CHARS}])'
        )
        text = pattern.sub(lambda m: format_contribution(token_map[m.group(1)]), text)

    unknown: list[str] = []

    def _unknown(match):
        if match.group(0) not in unknown:
            unknown.append(match.group(0))
        return '0'

    text = _IDENTIFIER.sub(_unknown, text)
    return text, unknown


def tokenize(text: str) -> list[tuple[str, str, int]]:
    """Split a substituted expression into (kind, text, position) tuples."""
    match = _INVALID_CHAR.search(text)
    if match:
        raise FormulaSyntaxError(f"Invalid character {match.group(0)!r}", match.start())

    tokens = []
    pos = 0
    while pos < len(text):
        ch = text[pos]
        if ch.isspace():
            pos += 1
            continue
        if ch in '+-*/()':
            tokens.append(('op', ch, pos))
            pos += 1
            continue
        number = _NUMBER.match(text, pos)
        if not number:
            raise FormulaSyntaxError(f"Malformed number {ch!r}", pos)
        tokens.append(('num', number.group(0), pos))
        pos = number.end()
    return tokens


class _Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, tokens: list[tuple[str, str, int]], max_depth: int):
        self.tokens = tokens
        self.index = 0
        self.depth = 0
        self.max_depth = max_depth

    def peek(self) -> Optional[tuple[str, str, int]]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> tuple[str, str, int]:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaSyntaxError("Empty expression")
        node = self.expr()
        token = self.peek()
        if token is not None:
            if token[1] == ')':
                raise FormulaSyntaxError("Unbalanced parentheses", token[2])
            raise FormulaSyntaxError(f"Unexpected {token[1]!r}", token[2])
        return node

    def expr(self) -> Node:
        node = self.term()
        while self.peek() is not None and self.peek()[1] in ('+', '-'):
            op = self.advance()[1]
            right = self.term()
            node = Add(node, right) if op == '+' else Sub(node, right)
        return node

    def term(self) -> Node:
        node = self.factor()
        while self.peek() is not None and self.peek()[1] in ('*', '/'):
            op = self.advance()[1]
            right = self.factor()
            node = Mul(node, right) if op == '*' else Div(node, right)
        return node

    def factor(self) -> Node:
        token = self.peek()
        if token is None:
            raise FormulaSyntaxError("Unexpected end of expression")

        kind, text, pos = token
        if kind == 'num':
            self.advance()
            return Literal(Decimal(text))

        if text in ('(', '-'):
            self.depth += 1
            if self.depth > self.max_depth:
                raise FormulaSyntaxError("Expression nested too deeply", pos)
            self.advance()
            try:
                if text == '-':
                    return Neg(self.factor())
                inner = self.expr()
                closing = self.peek()
                if closing is None or closing[1] != ')':
                    raise FormulaSyntaxError("Unbalanced parentheses", pos)
                self.advance()
                return Paren(inner)
            finally:
                self.depth -= 1

        if text == ')':
            raise FormulaSyntaxError("Unbalanced parentheses", pos)
        raise FormulaSyntaxError(f"Unexpected {text!r}", pos)


def parse(text: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Node:
    """Parse a substituted expression into an AST."""
    return _Parser(tokenize(text), max_depth).parse()


def evaluate_node(node: Node) -> Decimal:
    """Evaluate an AST node."""
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Paren):
        return evaluate_node(node.inner)
    if isinstance(node, Neg):
        return -evaluate_node(node.operand)
    if isinstance(node, Add):
        return evaluate_node(node.left) + evaluate_node(node.right)
    if isinstance(node, Sub):
        return evaluate_node(node.left) - evaluate_node(node.right)
    if isinstance(node, Mul):
        return evaluate_node(node.left) * evaluate_node(node.right)
    if isinstance(node, Div):
        divisor = evaluate_node(node.right)
        if divisor == 0:
            raise DivisionByZeroError("Division by zero")
        return evaluate_node(node.left) / divisor
    raise EvaluationError(f"Unsupported expression node: {type(node).__name__}")


def evaluate_expression(text: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Decimal:
    """Evaluate an already-substituted arithmetic expression."""
    try:
        return evaluate_node(parse(text, max_depth))
    except DecimalException as e:
        raise EvaluationError(f"Arithmetic error: {e!r}") from e


def round_half_away_from_zero(value) -> int:
    """
    Round to the nearest integer; .5 moves away from zero.

    Precision is widened to the integer part of value, so results larger
    than the default 28 digits round exactly.
    """
    value = value if isinstance(value, Decimal) else Decimal(str(value))
    if not value.is_finite():
        raise EvaluationError(f"Result is not a finite number: {value}")
    try:
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, value.adjusted() + 2)
            return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except DecimalException as e:
        raise EvaluationError(f"Arithmetic error: {e!r}") from e


def clamp_price(price: int, min_price: Optional[int] = None,
                max_price: Optional[int] = None) -> tuple[int, Optional[str]]:
    """Clamp a rounded price. Returns (price, "min" | "max" | None)."""
    if min_price is not None and price < min_price:
        return min_price, "min"
    if max_price is not None and price > max_price:
        return max_price, "max"
    return price, None


def evaluate(expression: str, token_map: dict[str, Any], min_price: Optional[int] = None,
             max_price: Optional[int] = None, max_depth: int = DEFAULT_MAX_DEPTH) -> int:
    """
    Compute a clamped integer price from an expression and a token map.

    Raises FormulaSyntaxError or DivisionByZeroError.
    """
    substituted, _ = substitute_tokens(expression, token_map)
    value = evaluate_expression(substituted, max_depth)
    price, _ = clamp_price(round_half_away_from_zero(value), min_price, max_price)
    return price
