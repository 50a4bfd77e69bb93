"""Unit tests for the ply lexer."""

import pytest
from eqsolve.core.errors import ParseError
from eqsolve.parsing.lexer import EesLexer


@pytest.fixture
def lexer():
    return EesLexer()


def kinds(tokens):
    return [t.kind for t in tokens]


def test_assignment_tokens(lexer):
    """Explicit assignment lexes as ID ASSIGN NUMBER"""
    tokens = lexer.tokenize("x := 3.5", include_hidden=False)
    assert kinds(tokens) == ['ID', 'ASSIGN', 'NUMBER']
    assert tokens[2].text == '3.5'


def test_operators(lexer):
    """Longest operator wins: ':=' over '=', '**' over '*'"""
    tokens = lexer.tokenize("a = b ** 2 * c ^ d / e - f + g", include_hidden=False)
    assert kinds(tokens) == [
        'ID', 'EQUALS', 'ID', 'POWER', 'NUMBER', 'TIMES', 'ID', 'POWER', 'ID',
        'DIVIDE', 'ID', 'MINUS', 'ID', 'PLUS', 'ID',
    ]


def test_number_forms(lexer):
    """Integers, decimals and exponents are single NUMBER tokens"""
    tokens = lexer.tokenize("1 2.5 .5 3. 1e3 2.5E-4", include_hidden=False)
    assert kinds(tokens) == ['NUMBER'] * 6
    assert [t.text for t in tokens] == ['1', '2.5', '.5', '3.', '1e3', '2.5E-4']


def test_identifier_with_dollar_suffix(lexer):
    """Identifiers may end in '$'"""
    tokens = lexer.tokenize("name$ := 'steam'", include_hidden=False)
    assert tokens[0].kind == 'ID'
    assert tokens[0].text == 'name$'
    assert tokens[2].kind == 'STRING'


def test_string_with_escaped_quote(lexer):
    """Doubled single quotes stay inside one STRING token"""
    tokens = lexer.tokenize("s$ := 'it''s ok'", include_hidden=False)
    assert tokens[-1].kind == 'STRING'
    assert tokens[-1].text == "'it''s ok'"


def test_comments_are_hidden(lexer):
    """All three comment forms go to the hidden channel"""
    text = 'x := 1 {brace} "quote ""q""" // slash'
    visible = lexer.tokenize(text, include_hidden=False)
    assert kinds(visible) == ['ID', 'ASSIGN', 'NUMBER']

    everything = lexer.tokenize(text)
    comments = [t for t in everything if t.kind == 'COMMENT']
    assert len(comments) == 3
    assert all(t.channel == 'hidden' for t in comments)


def test_multiline_brace_comment_tracks_lines(lexer):
    """Line numbers keep counting through comments spanning lines"""
    tokens = lexer.tokenize("{ one\ntwo\nthree }\ny := 2", include_hidden=False)
    assert tokens[0].text == 'y'
    assert tokens[0].line == 4
    assert tokens[0].column == 1


def test_directive_and_plot(lexer):
    """Directive and PLOT lines are single tokens up to end of line"""
    tokens = lexer.tokenize("$INCLUDE other.lse\nPLOT x, y\nz := 1", include_hidden=False)
    assert tokens[0].kind == 'DIRECTIVE'
    assert tokens[0].text == '$INCLUDE other.lse'
    assert tokens[1].kind == 'PLOT'
    assert tokens[1].text == 'PLOT x, y'
    assert tokens[2].kind == 'ID'


def test_plot_prefix_is_not_reserved_inside_identifiers(lexer):
    """'plotter' is an ordinary identifier"""
    tokens = lexer.tokenize("plotter := 1", include_hidden=False)
    assert kinds(tokens) == ['ID', 'ASSIGN', 'NUMBER']


def test_unit_token(lexer):
    """Bracketed unit text is one UNIT token"""
    tokens = lexer.tokenize("P := 101.3 [kPa]", include_hidden=False)
    assert tokens[-1].kind == 'UNIT'
    assert tokens[-1].text == '[kPa]'


def test_columns(lexer):
    """Columns are 1-based"""
    tokens = lexer.tokenize("a := 1\n  bb = 2", include_hidden=False)
    bb = tokens[3]
    assert (bb.line, bb.column) == (2, 3)


def test_illegal_character(lexer):
    """Unmatched characters raise ParseError with position"""
    with pytest.raises(ParseError, match="Illegal character") as excinfo:
        lexer.tokenize("x := 1\ny := 2 # 3")
    assert excinfo.value.line == 2
    assert excinfo.value.column == 8
    assert excinfo.value.token == '#'


def test_lexer_is_reusable(lexer):
    """A second tokenize() starts from line 1 again"""
    lexer.tokenize("a := 1\nb := 2\n")
    tokens = lexer.tokenize("c := 3", include_hidden=False)
    assert tokens[0].line == 1


def test_line_breaks_reach_the_parser(lexer):
    """token() inserts NEWLINE where a new line can start a statement"""
    lexer.input("a := 3\n-b + a = 0")
    kinds_seen = []
    while True:
        tok = lexer.token()
        if tok is None:
            break
        kinds_seen.append(tok.type)
    assert kinds_seen == ['ID', 'ASSIGN', 'NUMBER', 'NEWLINE',
                          'MINUS', 'ID', 'PLUS', 'ID', 'EQUALS', 'NUMBER']


def test_no_line_break_inside_open_expression(lexer):
    """Open parentheses and trailing operators suppress NEWLINE"""
    lexer.input("y := (a\n+ b) -\nc")
    kinds_seen = []
    while True:
        tok = lexer.token()
        if tok is None:
            break
        kinds_seen.append(tok.type)
    assert 'NEWLINE' not in kinds_seen


def test_tokenize_lists_only_lexical_tokens(lexer):
    """tokenize() keeps newlines on the hidden channel"""
    tokens = lexer.tokenize("a := 1\nb := 2", include_hidden=False)
    assert 'NEWLINE' not in kinds(tokens)
