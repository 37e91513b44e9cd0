"""Reverse codec: expression text -> rule DTO tree.

Reads the grammar written by :mod:`rulebridge.domain.encoder`. Parsing is
a small recursive-descent parser over a regex tokenizer; ``&&`` binds
tighter than ``||``. Quantities and ids are not part of the grammar, so a
decoded entry never carries them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, NoReturn

from rulebridge.domain.dto import ExpressionEntry, RuleEntry, RuleSnapshot
from rulebridge.domain.errors import TranslationError
from rulebridge.domain.fields import FieldService
from rulebridge.domain.types import (
    COMPARISON_SYMBOLS,
    FUNCTION_FORMS,
    LIST_OPERATORS,
    NULLARY_OPERATORS,
    RANGE_OPERATORS,
    GroupOperator,
    Operator,
    is_operator_allowed,
)

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<string>"(?:[^"\\]|\\.)*")
    |(?P<number>-?\d+(?:\.\d+)?)
    |(?P<cmp>==|!=|>=|<=|>|<)
    |(?P<and>&&)
    |(?P<or>\|\|)
    |(?P<not>!)
    |(?P<lparen>\()
    |(?P<rparen>\))
    |(?P<lbracket>\[)
    |(?P<rbracket>\])
    |(?P<comma>,)
    |(?P<ident>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
    """,
    re.VERBOSE,
)

_SYMBOL_OPERATORS: dict[str, Operator] = {sym: op for op, sym in COMPARISON_SYMBOLS.items()}

_NULL = object()


def _function_table() -> dict[str, tuple[Operator | None, Operator | None]]:
    """Map each function name to its (plain, negated) operators."""
    table: dict[str, list[Operator | None]] = {}
    for operator, (name, negated) in FUNCTION_FORMS.items():
        slots = table.setdefault(name, [None, None])
        slots[1 if negated else 0] = operator
    return {name: (slots[0], slots[1]) for name, slots in table.items()}


_FUNCTIONS = _function_table()


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int


@dataclass
class _Group:
    operator: GroupOperator
    children: list[Any] = field(default_factory=list)


def tokenize(text: str) -> list[Token]:
    """Split expression text into tokens, ending with an ``eof`` token."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_PATTERN.match(text, pos)
        if match is None:
            raise TranslationError(
                f"Unexpected character {text[pos]!r}", expression=text, position=pos
            )
        kind = match.lastgroup or ""
        if kind != "ws":
            tokens.append(Token(kind, match.group(), pos))
        pos = match.end()
    tokens.append(Token("eof", "", len(text)))
    return tokens


def decode(text: str | None, field_service: FieldService) -> RuleSnapshot | None:
    """Translate expression text into a snapshot holding one rule entry.

    Returns None for null, empty, or whitespace-only text ("no rule").

    Raises:
        TranslationError: On malformed syntax, unknown functions or fields,
            or constructs the rule builder cannot represent.
    """
    entry = decode_entry(text, field_service)
    if entry is None:
        return None
    return RuleSnapshot(data=[entry])


def decode_entry(text: str | None, field_service: FieldService) -> RuleEntry | None:
    """Translate expression text into a single top-level rule entry."""
    if text is None or not text.strip():
        return None
    parser = _Parser(text, field_service)
    root = parser.parse()
    if isinstance(root, _Group):
        return _to_entry(root)
    return RuleEntry(groups=[root])


def _to_entry(group: _Group) -> RuleEntry:
    nodes: list[RuleEntry | ExpressionEntry] = []
    for child in _flatten(group):
        nodes.append(_to_entry(child) if isinstance(child, _Group) else child)
    return RuleEntry(group_operator=group.operator, groups=nodes)


def _flatten(group: _Group) -> list[Any]:
    """Splice same-operator subgroups into their parent."""
    result: list[Any] = []
    for child in group.children:
        if isinstance(child, _Group) and child.operator is group.operator:
            result.extend(_flatten(child))
        else:
            result.append(child)
    return result


class _Parser:
    """Recursive-descent parser producing clauses and ``_Group`` nodes."""

    def __init__(self, text: str, field_service: FieldService) -> None:
        self._text = text
        self._fields = field_service
        self._tokens = tokenize(text)
        self._index = 0

    # -- token helpers -----------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        return self._tokens[min(self._index + offset, len(self._tokens) - 1)]

    def _next(self) -> Token:
        token = self._peek()
        self._index += 1
        return token

    def _expect(self, kind: str) -> Token:
        token = self._next()
        if token.kind != kind:
            self._fail(f"Expected {kind} but found {token.text or token.kind!r}", token)
        return token

    def _fail(self, message: str, token: Token) -> NoReturn:
        raise TranslationError(message, expression=self._text, position=token.pos)

    # -- grammar -----------------------------------------------------------

    def parse(self) -> Any:
        node = self._or_expr()
        token = self._peek()
        if token.kind != "eof":
            self._fail(f"Unexpected trailing {token.text!r}", token)
        return node

    def _or_expr(self) -> Any:
        return self._chain("or", GroupOperator.OR, self._and_expr)

    def _and_expr(self) -> Any:
        return self._chain("and", GroupOperator.AND, self._unary)

    def _chain(self, kind: str, operator: GroupOperator, operand: Any) -> Any:
        children = [operand()]
        while self._peek().kind == kind:
            self._next()
            children.append(operand())
        if len(children) == 1:
            return children[0]
        return _Group(operator, children)

    def _unary(self) -> Any:
        token = self._peek()
        if token.kind == "lparen":
            self._next()
            node = self._or_expr()
            self._expect("rparen")
            return node
        if token.kind == "not":
            self._next()
            if self._peek().kind != "ident" or self._peek(1).kind != "lparen":
                self._fail("Negation is only supported on function clauses", token)
            return self._call(negated=True)
        if token.kind == "ident" and self._peek(1).kind == "lparen":
            return self._call(negated=False)
        if token.kind == "ident":
            return self._comparison()
        self._fail(f"Unexpected {token.text or token.kind!r}", token)

    def _comparison(self) -> ExpressionEntry:
        ref = self._next()
        name = self._field_name(ref)
        cmp = self._expect("cmp")
        value = self._literal()
        if value is _NULL:
            if cmp.text == "==":
                return self._clause(ref, name, Operator.IS_NULL)
            if cmp.text == "!=":
                return self._clause(ref, name, Operator.NOT_NULL)
            self._fail(f"Operator {cmp.text} cannot compare against null", cmp)
        if isinstance(value, list):
            self._fail("List literals are only valid inside in(...)", cmp)
        return self._clause(ref, name, _SYMBOL_OPERATORS[cmp.text], value=value)

    def _call(self, *, negated: bool) -> ExpressionEntry:
        head = self._next()
        forms = _FUNCTIONS.get(head.text)
        if forms is None:
            self._fail(f"Unknown function {head.text!r}", head)
        plain, negated_op = forms
        operator = negated_op if negated else plain
        if operator is None:
            self._fail(f"Function {head.text!r} cannot be negated", head)
        self._expect("lparen")
        ref = self._expect("ident")
        name = self._field_name(ref)
        clause: ExpressionEntry
        if operator in NULLARY_OPERATORS:
            clause = self._clause(ref, name, operator)
        elif operator in RANGE_OPERATORS:
            self._expect("comma")
            start = self._scalar()
            self._expect("comma")
            end = self._scalar()
            clause = self._clause(ref, name, operator, start=start, end=end)
        elif operator in LIST_OPERATORS:
            self._expect("comma")
            items = self._literal()
            if not isinstance(items, list):
                self._fail(f"{head.text}(...) expects a list literal", head)
            clause = self._clause(ref, name, operator, value=items)
        else:
            self._expect("comma")
            clause = self._clause(ref, name, operator, value=self._scalar())
        self._expect("rparen")
        return clause

    def _scalar(self) -> str:
        token = self._peek()
        value = self._literal()
        if value is _NULL or isinstance(value, list):
            self._fail("Expected a scalar literal", token)
        return value

    def _literal(self) -> Any:
        token = self._next()
        if token.kind == "string":
            return _unescape(token.text[1:-1])
        if token.kind == "number":
            return token.text
        if token.kind == "lbracket":
            items: list[str] = []
            if self._peek().kind != "rbracket":
                items.append(self._scalar())
                while self._peek().kind == "comma":
                    self._next()
                    items.append(self._scalar())
            self._expect("rbracket")
            return items
        if token.kind == "ident":
            if token.text == "null":
                return _NULL
            if token.text in ("true", "false"):
                return token.text
            if token.text == "date":
                self._expect("lparen")
                inner = self._expect("string")
                self._expect("rparen")
                return _unescape(inner.text[1:-1])
        self._fail(f"Expected a literal but found {token.text or token.kind!r}", token)

    def _field_name(self, ref: Token) -> str:
        prefix = f"{self._fields.entity_key}."
        if not ref.text.startswith(prefix):
            self._fail(
                f"Field reference {ref.text!r} is outside the {self._fields.entity_key!r} context",
                ref,
            )
        name = ref.text[len(prefix) :]
        if self._fields.get_field(name) is None:
            self._fail(f"Unknown field {name!r} for rule context {self._fields.identifier}", ref)
        return name

    def _clause(self, ref: Token, name: str, operator: Operator, **operands: Any) -> ExpressionEntry:
        definition = self._fields.get_field(name)
        if definition is not None and not is_operator_allowed(definition.type, operator):
            self._fail(f"Operator {operator} is not supported for field {name!r}", ref)
        return ExpressionEntry(name=name, operator=operator, **operands)


def _unescape(body: str) -> str:
    return re.sub(r"\\(.)", r"\1", body)
