"""Ads Hub — Formula Parser & Validator.

Custom metrics are written as small arithmetic expressions over metric
names, e.g. ``spend / clicks`` or ``round((revenue - spend) / spend * 100)``.

Two entry points:
- ``validate_formula``: advisory syntax check run before a formula is
  persisted. Returns a structured result, never raises.
- ``parse_formula``: recursive-descent parser producing an expression tree
  that the evaluator walks. Only numbers, names, ``+ - * /``, parentheses
  and the profile's single-argument functions are expressible.

Grammar::

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/") unary)*
    unary   := ("+" | "-") unary | primary
    primary := NUMBER | FUNC "(" expr ")" | NAME | "(" expr ")"

Nesting deeper than ``MAX_NESTING_DEPTH`` is a syntax error.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import BaseModel

from adshub.core.metric_registry import DEFAULT_PROFILE, FormulaProfile
from adshub.formula.errors import ERROR_MESSAGES, FormulaErrorCode, FormulaSyntaxError

_VALID_CHARS = re.compile(r"^[a-zA-Z0-9_+\-*/().\s]+$")
_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
# Digits glued to the end of an identifier (``cost_2``) are part of the name
_NUMERIC_LITERAL = re.compile(r"(?<![A-Za-z0-9_])[0-9.]+")
_OPERATORS = re.compile(r"[+\-*/()]")

_TOKEN = re.compile(
    r"\s*(?:(?P<number>\d+(?:\.\d*)?|\.\d+)"
    r"|(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>[-+*/()]))"
)

# Parentheses, signs and function calls all count toward nesting
MAX_NESTING_DEPTH = 100


# ─────────────────────────────────────────────
# VALIDATION
# ─────────────────────────────────────────────


class FormulaValidation(BaseModel):
    """Result of validating a formula string."""

    valid: bool
    error: Optional[FormulaErrorCode] = None
    message: Optional[str] = None
    inputs: List[str] = []


def _invalid(code: FormulaErrorCode) -> FormulaValidation:
    return FormulaValidation(valid=False, error=code, message=ERROR_MESSAGES[code])


def extract_variables(
    formula: str, profile: FormulaProfile = DEFAULT_PROFILE
) -> List[str]:
    """Distinct metric names referenced by a formula, in first-seen order."""
    cleaned = _NUMERIC_LITERAL.sub(" ", formula)
    cleaned = _OPERATORS.sub(" ", cleaned)

    seen: dict[str, None] = {}
    for word in cleaned.split():
        if profile.is_function(word):
            continue
        if _IDENTIFIER.match(word):
            seen.setdefault(word, None)
    return list(seen)


def validate_formula(
    formula: str, profile: FormulaProfile = DEFAULT_PROFILE
) -> FormulaValidation:
    """Check formula syntax and extract its inputs.

    Names are not checked against the profile vocabulary; a formula over an
    unknown metric passes here and evaluates to ``None`` later.
    """
    if not formula.strip():
        return _invalid(FormulaErrorCode.EMPTY_FORMULA)

    depth = 0
    for char in formula:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if depth < 0:
            return _invalid(FormulaErrorCode.UNBALANCED_PARENTHESES)
    if depth != 0:
        return _invalid(FormulaErrorCode.UNBALANCED_PARENTHESES)

    if not _VALID_CHARS.match(formula):
        return _invalid(FormulaErrorCode.INVALID_CHARACTERS)

    inputs = extract_variables(formula, profile)
    if not inputs:
        return _invalid(FormulaErrorCode.NO_VARIABLES)

    return FormulaValidation(valid=True, inputs=inputs)


# ─────────────────────────────────────────────
# EXPRESSION TREE
# ─────────────────────────────────────────────


@dataclass(frozen=True)
class Literal:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str  # "+" | "-"
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str  # "+" | "-" | "*" | "/"
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class FunctionCall:
    name: str  # lower-cased
    argument: "Node"


Node = Union[Literal, Variable, UnaryOp, BinaryOp, FunctionCall]


# ─────────────────────────────────────────────
# TOKENIZER & PARSER
# ─────────────────────────────────────────────


@dataclass(frozen=True)
class Token:
    kind: str  # "number" | "name" | "op"
    text: str
    position: int


def tokenize(formula: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    end = len(formula.rstrip())
    while pos < end:
        match = _TOKEN.match(formula, pos)
        if not match:
            raise FormulaSyntaxError(f"Unexpected character {formula[pos]!r}", pos)
        kind = match.lastgroup
        tokens.append(Token(kind, match.group(kind), match.start(kind)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: List[Token], profile: FormulaProfile):
        self.tokens = tokens
        self.profile = profile
        self.index = 0
        self.depth = 0

    def _peek(self) -> Optional[Token]:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise FormulaSyntaxError("Unexpected end of formula")
        self.index += 1
        return token

    def _accept(self, *ops: str) -> Optional[Token]:
        token = self._peek()
        if token is not None and token.kind == "op" and token.text in ops:
            self.index += 1
            return token
        return None

    def _expect(self, op: str) -> None:
        token = self._next()
        if token.kind != "op" or token.text != op:
            raise FormulaSyntaxError(f"Expected {op!r}", token.position)

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaSyntaxError("Empty formula")
        node = self._expr()
        token = self._peek()
        if token is not None:
            raise FormulaSyntaxError(f"Unexpected {token.text!r}", token.position)
        return node

    def _expr(self) -> Node:
        node = self._term()
        while True:
            token = self._accept("+", "-")
            if token is None:
                return node
            node = BinaryOp(token.text, node, self._term())

    def _term(self) -> Node:
        node = self._unary()
        while True:
            token = self._accept("*", "/")
            if token is None:
                return node
            node = BinaryOp(token.text, node, self._unary())

    def _unary(self) -> Node:
        # Every nested operand passes through here
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            token = self._peek()
            position = token.position if token is not None else -1
            raise FormulaSyntaxError("Formula is nested too deeply", position)
        try:
            token = self._accept("+", "-")
            if token is not None:
                return UnaryOp(token.text, self._unary())
            return self._primary()
        finally:
            self.depth -= 1

    def _primary(self) -> Node:
        token = self._next()
        if token.kind == "number":
            return Literal(float(token.text))
        if token.kind == "name":
            if self.profile.is_function(token.text) and self._accept("("):
                argument = self._expr()
                self._expect(")")
                return FunctionCall(token.text.lower(), argument)
            return Variable(token.text)
        if token.text == "(":
            node = self._expr()
            self._expect(")")
            return node
        raise FormulaSyntaxError(f"Unexpected {token.text!r}", token.position)


def parse_formula(formula: str, profile: FormulaProfile = DEFAULT_PROFILE) -> Node:
    """Parse a formula into an expression tree. Raises FormulaSyntaxError."""
    return _Parser(tokenize(formula), profile).parse()
