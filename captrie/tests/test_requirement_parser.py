from __future__ import annotations

import pytest

from captrie.core.exceptions import RequirementSyntaxError
from captrie.core.query.parser import Lexer, parse_requirement


def test_precedence_not_binds_tighter_than_and_than_or() -> None:
    assert parse_requirement("A | B & !C") == ("or", "A", ("and", "B", ("not", "C")))


def test_operators_are_left_associative() -> None:
    assert parse_requirement("A & B & C") == ("and", ("and", "A", "B"), "C")
    assert parse_requirement("A | B | C") == ("or", ("or", "A", "B"), "C")


def test_parentheses_become_groups() -> None:
    assert parse_requirement("(A | B) & C") == ("and", ("group", ("or", "A", "B")), "C")
    assert parse_requirement("!!A") == ("not", ("not", "A"))


def test_qualified_names() -> None:
    assert parse_requirement("app.doc::Parsed & core::Clone") == (
        "and",
        "app.doc::Parsed",
        "core::Clone",
    )


def test_lexer_reports_columns() -> None:
    tokens = Lexer("A &  B").tokenize()
    assert [(t.type, t.column) for t in tokens] == [
        ("NAME", 1),
        ("AND", 3),
        ("NAME", 6),
        ("EOF", 7),
    ]


@pytest.mark.parametrize(
    "text, column",
    [
        ("", 1),
        ("A &", 4),
        ("(A | B", 7),
        ("A B", 3),
        ("A $ B", 3),
        ("app.doc", 1),
        ("A & )", 5),
    ],
)
def test_syntax_errors_carry_column(text: str, column: int) -> None:
    with pytest.raises(RequirementSyntaxError) as exc:
        parse_requirement(text)
    assert exc.value.column == column
    assert str(exc.value).startswith(f"column {column}:")
