"""
parser.py

Requirement expression parser. Converts text such as ``Parsed & (Validated | !Draft)``
into the expression AST accepted by ``CapabilityRegistry.build_query``.

Grammar (lowest precedence first)::

    or      := and ( "|" and )*
    and     := unary ( "&" unary )*
    unary   := "!" unary | primary
    primary := "(" or ")" | NAME
    NAME    := IDENT ( "." IDENT )* ( "::" IDENT )?

AST shapes: a name string, ("and", l, r), ("or", l, r), ("not", x), ("group", x).
No registry access happens here; name resolution is the registry's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Union

from captrie.core.exceptions import RequirementSyntaxError

ExprAst = Union[str, tuple]

_OPERATORS = {
    "&": "AND",
    "|": "OR",
    "!": "NOT",
    "(": "LPAREN",
    ")": "RPAREN",
}


@dataclass
class Token:
    """A lexical token."""
    type: str
    value: str
    column: int


class Lexer:
    """Tokenizes requirement text."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Convert source to token list, terminated by an EOF token."""
        while self.pos < len(self.source):
            ch = self.source[self.pos]

            if ch.isspace():
                self.pos += 1
                continue

            if ch in _OPERATORS:
                self.tokens.append(Token(_OPERATORS[ch], ch, self.pos + 1))
                self.pos += 1
                continue

            if ch.isalpha() or ch == "_":
                self.tokens.append(self._read_name())
                continue

            raise RequirementSyntaxError(f"unexpected character {ch!r}", self.pos + 1)

        self.tokens.append(Token("EOF", "", len(self.source) + 1))
        return self.tokens

    def _read_ident(self) -> str:
        start = self.pos
        if self.pos >= len(self.source) or not (
            self.source[self.pos].isalpha() or self.source[self.pos] == "_"
        ):
            raise RequirementSyntaxError("expected identifier", self.pos + 1)
        while self.pos < len(self.source) and (
            self.source[self.pos].isalnum() or self.source[self.pos] == "_"
        ):
            self.pos += 1
        return self.source[start:self.pos]

    def _read_name(self) -> Token:
        start = self.pos
        parts = [self._read_ident()]

        # Dotted module path, optionally followed by ::Name
        while self.source.startswith(".", self.pos):
            self.pos += 1
            parts.append(".")
            parts.append(self._read_ident())

        if self.source.startswith("::", self.pos):
            self.pos += 2
            parts.append("::")
            parts.append(self._read_ident())
        elif len(parts) > 1:
            raise RequirementSyntaxError(
                "dotted names must be qualified as module::Name", start + 1
            )

        return Token("NAME", "".join(parts), start + 1)


class Parser:
    """Recursive descent parser over the token list."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def parse(self) -> ExprAst:
        if self._peek().type == "EOF":
            raise RequirementSyntaxError("empty requirement", self._peek().column)
        expr = self._parse_or()
        tok = self._peek()
        if tok.type != "EOF":
            raise RequirementSyntaxError(f"unexpected {tok.value!r}", tok.column)
        return expr

    def _parse_or(self) -> ExprAst:
        lhs = self._parse_and()
        while self._peek().type == "OR":
            self._advance()
            lhs = ("or", lhs, self._parse_and())
        return lhs

    def _parse_and(self) -> ExprAst:
        lhs = self._parse_unary()
        while self._peek().type == "AND":
            self._advance()
            lhs = ("and", lhs, self._parse_unary())
        return lhs

    def _parse_unary(self) -> ExprAst:
        if self._peek().type == "NOT":
            self._advance()
            return ("not", self._parse_unary())
        return self._parse_primary()

    def _parse_primary(self) -> ExprAst:
        tok = self._advance()
        if tok.type == "NAME":
            return tok.value
        if tok.type == "LPAREN":
            inner = self._parse_or()
            closing = self._advance()
            if closing.type != "RPAREN":
                raise RequirementSyntaxError("expected ')'", closing.column)
            return ("group", inner)
        if tok.type == "EOF":
            raise RequirementSyntaxError("unexpected end of requirement", tok.column)
        raise RequirementSyntaxError(f"unexpected {tok.value!r}", tok.column)


def parse_requirement(text: str) -> ExprAst:
    """Parse requirement text into an expression AST."""
    if not isinstance(text, str):
        raise TypeError("requirement text must be a string")
    return Parser(Lexer(text).tokenize()).parse()
