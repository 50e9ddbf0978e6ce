"""
Admin-authored price formulas.

A formula is a plain arithmetic expression over numbers and a closed set of
variable names, e.g. ``(width * height * weight * quantity * ton_price) / 1000000``.
It is tokenized, parsed by recursive descent into a small expression tree, and
evaluated against a binding map. Unknown identifiers are rejected while
parsing so a bad formula is refused when it is saved, not during checkout.

Grammar::

    expr   := term (("+" | "-") term)*
    term   := factor (("*" | "/") factor)*
    factor := ("+" | "-") factor | NUMBER | IDENT | "(" expr ")"
"""

from dataclasses import dataclass
from decimal import Decimal, DivisionByZero, InvalidOperation
from typing import Iterable, Mapping, Union

from apps.pricing.domain.errors import FormulaEvaluationError

STANDARD_VARIABLES = frozenset({
    "width",
    "height",
    "weight",
    "quantity",
    "ton_price",
    "usd_rate",
    "eur_rate",
})

CUSTOM_CUT_VARIABLES = STANDARD_VARIABLES | {"cutting_fee", "waste_rate"}

VARIABLES_BY_KIND = {
    "standard": STANDARD_VARIABLES,
    "custom_cut": CUSTOM_CUT_VARIABLES,
}

# Typographic operators admins paste from documents.
OPERATOR_ALIASES = {"×": "*", "÷": "/", "−": "-"}

NUMBER = "NUMBER"
IDENT = "IDENT"
OP = "OP"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
END = "END"

DIGITS = "0123456789"

# Brackets and unary signs nested deeper than this are refused.
MAX_NESTING = 50


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


def tokenize(text: str) -> list[Token]:
    if text is None or not str(text).strip():
        raise FormulaEvaluationError("Formula is empty")

    tokens: list[Token] = []
    i = 0
    length = len(text)

    while i < length:
        char = text[i]

        if char.isspace():
            i += 1
            continue

        char = OPERATOR_ALIASES.get(char, char)

        if char in "+-*/":
            tokens.append(Token(OP, char, i))
            i += 1
        elif char == "(":
            tokens.append(Token(LPAREN, char, i))
            i += 1
        elif char == ")":
            tokens.append(Token(RPAREN, char, i))
            i += 1
        elif char in DIGITS or char == ".":
            start = i
            seen_dot = False
            while i < length and (text[i] in DIGITS or text[i] == "."):
                if text[i] == ".":
                    if seen_dot:
                        raise FormulaEvaluationError("Malformed number", i)
                    seen_dot = True
                i += 1
            literal = text[start:i]
            if literal == ".":
                raise FormulaEvaluationError("Malformed number", start)
            tokens.append(Token(NUMBER, literal, start))
        elif char.isalpha() or char == "_":
            start = i
            while i < length and (text[i].isalnum() or text[i] == "_"):
                i += 1
            tokens.append(Token(IDENT, text[start:i], start))
        else:
            raise FormulaEvaluationError(f"Unexpected character '{char}'", i)

    tokens.append(Token(END, "", length))
    return tokens


@dataclass(frozen=True)
class Number:
    value: Decimal

    def evaluate(self, bindings: Mapping[str, Decimal]) -> Decimal:
        return self.value


@dataclass(frozen=True)
class Variable:
    name: str
    position: int

    def evaluate(self, bindings: Mapping[str, Decimal]) -> Decimal:
        try:
            return bindings[self.name]
        except KeyError:
            raise FormulaEvaluationError(f"No value bound for variable '{self.name}'", self.position)


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"

    def evaluate(self, bindings: Mapping[str, Decimal]) -> Decimal:
        value = self.operand.evaluate(bindings)
        return -value if self.op == "-" else value


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"
    position: int

    def evaluate(self, bindings: Mapping[str, Decimal]) -> Decimal:
        left = self.left.evaluate(bindings)
        right = self.right.evaluate(bindings)
        if self.op == "+":
            return left + right
        if self.op == "-":
            return left - right
        if self.op == "*":
            return left * right
        if right == 0:
            raise FormulaEvaluationError("Division by zero", self.position)
        return left / right


Node = Union[Number, Variable, UnaryOp, BinaryOp]


class _Parser:

    def __init__(self, tokens: list[Token], allowed: frozenset):
        self.tokens = tokens
        self.allowed = allowed
        self.index = 0
        self.names: set[str] = set()
        self.depth = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def enter(self, token: Token) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise FormulaEvaluationError(f"Formula is nested more than {MAX_NESTING} levels deep", token.position)

    def parse(self) -> Node:
        node = self.expr()
        if self.current.kind != END:
            raise FormulaEvaluationError(f"Unexpected '{self.current.text}'", self.current.position)
        return node

    def expr(self) -> Node:
        node = self.term()
        while self.current.kind == OP and self.current.text in "+-":
            token = self.advance()
            node = BinaryOp(token.text, node, self.term(), token.position)
        return node

    def term(self) -> Node:
        node = self.factor()
        while self.current.kind == OP and self.current.text in "*/":
            token = self.advance()
            node = BinaryOp(token.text, node, self.factor(), token.position)
        return node

    def factor(self) -> Node:
        token = self.current

        if token.kind == OP and token.text in "+-":
            self.advance()
            self.enter(token)
            operand = self.factor()
            self.depth -= 1
            return UnaryOp(token.text, operand)

        if token.kind == NUMBER:
            self.advance()
            return Number(Decimal(token.text))

        if token.kind == IDENT:
            self.advance()
            if token.text not in self.allowed:
                raise FormulaEvaluationError(f"Unknown variable '{token.text}'", token.position)
            self.names.add(token.text)
            return Variable(token.text, token.position)

        if token.kind == LPAREN:
            self.advance()
            self.enter(token)
            node = self.expr()
            if self.current.kind != RPAREN:
                raise FormulaEvaluationError("Missing closing parenthesis", self.current.position)
            self.advance()
            self.depth -= 1
            return node

        if token.kind == END:
            raise FormulaEvaluationError("Unexpected end of formula", token.position)
        raise FormulaEvaluationError(f"Unexpected '{token.text}'", token.position)


@dataclass(frozen=True)
class Formula:
    """A parsed expression; evaluation never mutates it."""

    text: str
    tree: Node
    names: frozenset

    def evaluate(self, bindings: Mapping[str, object]) -> Decimal:
        values = {name: _to_decimal(name, bindings[name]) for name in self.names if name in bindings}
        missing = sorted(self.names - values.keys())
        if missing:
            raise FormulaEvaluationError(f"No value bound for variable(s): {', '.join(missing)}")
        try:
            return self.tree.evaluate(values)
        except (InvalidOperation, DivisionByZero) as e:
            raise FormulaEvaluationError(f"Formula could not be evaluated: {e}")
        except RecursionError:
            raise FormulaEvaluationError("Formula is too long to evaluate")

    def references(self, name: str) -> bool:
        return name in self.names


def allowed_variables(kind: str) -> frozenset:
    try:
        return VARIABLES_BY_KIND[kind]
    except KeyError:
        raise FormulaEvaluationError(f"Unknown formula kind '{kind}'")


def parse_formula(text: str, allowed: Iterable[str] = STANDARD_VARIABLES) -> Formula:
    """Parse ``text``; raises FormulaEvaluationError on bad syntax or names."""
    allowed = frozenset(allowed)
    parser = _Parser(tokenize(text), allowed)
    tree = parser.parse()
    return Formula(text=text, tree=tree, names=frozenset(parser.names))


def validate_formula(text: str, kind: str = "standard") -> Formula:
    return parse_formula(text, allowed_variables(kind))


def preview_formula(text: str, kind: str, bindings: Mapping[str, object]) -> Decimal:
    """Evaluate a formula against sample values, for the admin preview."""
    return validate_formula(text, kind).evaluate(bindings)


def _to_decimal(name: str, value: object) -> Decimal:
    if isinstance(value, bool):
        raise FormulaEvaluationError(f"Variable '{name}' must be numeric")
    if isinstance(value, Decimal):
        return value
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise FormulaEvaluationError(f"Variable '{name}' must be numeric, got {value!r}")
    if not number.is_finite():
        raise FormulaEvaluationError(f"Variable '{name}' must be a finite number")
    return number
