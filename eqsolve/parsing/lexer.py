"""
Lexer for equation files, built with ply.lex.

Significant tokens feed the parser. Whitespace, newlines and the three
comment forms ({...}, "...", //...) are routed to a hidden channel: the
parser never sees them, but tokenize() keeps them for diagnostics.

Statements need no separator, so the parser is told where lines end: when
a visible token starts a new line, token() first hands out a NEWLINE token,
unless the expression is still open (unbalanced parentheses, a trailing
operator, or a next line that starts with an operator that cannot begin an
expression).
"""

from dataclasses import dataclass
from typing import List, Literal

import ply.lex as lex

from eqsolve.core.errors import ParseError


NUMBER_PATTERN = r'(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?'
IDENTIFIER_PATTERN = r'[A-Za-z][A-Za-z0-9_]*\$?'

# A line break never ends a statement after these tokens...
CONTINUES_AFTER = frozenset({
    'PLUS', 'MINUS', 'TIMES', 'DIVIDE', 'POWER', 'ASSIGN', 'EQUALS', 'COMMA', 'LPAREN',
})
# ...or before these
CONTINUES_BEFORE = frozenset({
    'TIMES', 'DIVIDE', 'POWER', 'ASSIGN', 'EQUALS', 'RPAREN', 'COMMA', 'UNIT', 'SEMI',
})


@dataclass(frozen=True)
class Token:
    """
    A lexed token.

    Attributes:
        kind: Token type ('ID', 'NUMBER', 'COMMENT', 'WHITESPACE', ...)
        text: Literal source text
        line: 1-based line
        column: 1-based column
        channel: 'visible' for parser tokens, 'hidden' for whitespace/comments
    """
    kind: str
    text: str
    line: int
    column: int
    channel: Literal['visible', 'hidden'] = 'visible'


def find_column(data: str, position: int) -> int:
    """1-based column of an absolute offset"""
    line_start = data.rfind('\n', 0, position) + 1
    return position - line_start + 1


class EesLexer:
    """
    ply lexer for the equation language.

    Usage:
        lexer = EesLexer()
        for token in lexer.tokenize("x := 2 * y  // comment"):
            print(token.kind, token.text)

    Raises:
        ParseError: On the first character no rule matches
    """

    tokens = (
        'NUMBER',
        'STRING',
        'ID',
        'DIRECTIVE',
        'PLOT',
        'UNIT',
        'ASSIGN',
        'EQUALS',
        'PLUS',
        'MINUS',
        'TIMES',
        'DIVIDE',
        'POWER',
        'LPAREN',
        'RPAREN',
        'COMMA',
        'SEMI',
        'NEWLINE',
    )

    # String rules are tried longest-regex first, so ':=' beats '=' and
    # '**' beats '*'.
    t_ASSIGN = r':='
    t_EQUALS = r'='
    t_PLUS = r'\+'
    t_MINUS = r'-'
    t_POWER = r'\*\*|\^'
    t_TIMES = r'\*'
    t_DIVIDE = r'/'
    t_LPAREN = r'\('
    t_RPAREN = r'\)'
    t_COMMA = r','
    t_SEMI = r';'

    def __init__(self):
        self.lexer = lex.lex(module=self, optimize=False, debug=False,
                             errorlog=lex.NullLogger())
        self.lexer.hidden = []
        self._reset_lines()

    # Function rules are matched in definition order.

    def t_ignore_COMMENT_BRACE(self, t):
        r'\{[^}]*\}'
        self._hide(t, 'COMMENT')

    def t_ignore_COMMENT_QUOTE(self, t):
        r'"(?:[^"]|"")*"'
        self._hide(t, 'COMMENT')

    def t_ignore_COMMENT_SLASH(self, t):
        r'//[^\n]*'
        self._hide(t, 'COMMENT')

    def t_ignore_NEWLINE(self, t):
        r'\n+'
        self._hide(t, 'NEWLINE')

    def t_ignore_WHITESPACE(self, t):
        r'[ \t\r\f]+'
        self._hide(t, 'WHITESPACE')

    def t_DIRECTIVE(self, t):
        r'\$[A-Za-z][^\n]*'
        t.value = t.value.rstrip()
        return t

    def t_PLOT(self, t):
        r'(?i:plot)\b[^\n]*'
        t.value = t.value.rstrip()
        return t

    def t_UNIT(self, t):
        r'\[[^\]\n]*\]'
        return t

    @lex.TOKEN(NUMBER_PATTERN)
    def t_NUMBER(self, t):
        return t

    def t_STRING(self, t):
        r"'(?:[^'\n]|'')*'"
        return t

    @lex.TOKEN(IDENTIFIER_PATTERN)
    def t_ID(self, t):
        return t

    def t_error(self, t):
        column = find_column(t.lexer.lexdata, t.lexpos)
        raise ParseError(f"Illegal character {t.value[0]!r}", t.lineno, column, t.value[0])

    def _hide(self, t, kind: str) -> None:
        """Record a hidden-channel token and keep line numbers in step"""
        t.lexer.hidden.append(Token(
            kind, t.value, t.lineno, find_column(t.lexer.lexdata, t.lexpos), 'hidden'
        ))
        t.lexer.lineno += t.value.count('\n')

    def input(self, text: str) -> None:
        """Reset and feed source text (ply lexer protocol)"""
        self.lexer.lineno = 1
        self.lexer.hidden = []
        self.lexer.input(text)
        self._reset_lines()

    def token(self):
        """
        Next visible ply token, or None at end of input (ply lexer protocol).

        A synthetic NEWLINE token precedes the first token of a line that
        starts a new statement.
        """
        if self._pending is not None:
            tok, self._pending = self._pending, None
            return self._advance(tok)
        tok = self.lexer.token()
        if tok is None:
            return None
        if self._starts_statement(tok):
            self._pending = tok
            return self._line_break()
        return self._advance(tok)

    def _reset_lines(self) -> None:
        self._previous = None
        self._pending = None
        self._depth = 0

    def _starts_statement(self, tok) -> bool:
        previous = self._previous
        return (previous is not None
                and tok.lineno > previous.lineno
                and self._depth == 0
                and previous.type not in CONTINUES_AFTER
                and tok.type not in CONTINUES_BEFORE)

    def _advance(self, tok):
        if tok.type == 'LPAREN':
            self._depth += 1
        elif tok.type == 'RPAREN' and self._depth > 0:
            self._depth -= 1
        self._previous = tok
        return tok

    def _line_break(self):
        # Positioned just after the last token of the finished line
        previous = self._previous
        tok = lex.LexToken()
        tok.type = 'NEWLINE'
        tok.value = '\n'
        tok.lineno = previous.lineno
        tok.lexpos = previous.lexpos + len(str(previous.value))
        tok.lexer = self.lexer
        return tok

    def tokenize(self, text: str, include_hidden: bool = True) -> List[Token]:
        """
        Lex a whole text.

        Only lexical tokens are listed; statement-ending NEWLINE tokens are
        a parser concern and line breaks appear on the hidden channel.

        Args:
            text: Source text
            include_hidden: Merge hidden-channel tokens into the result

        Returns:
            Tokens in source order
        """
        self.input(text)
        visible = []
        while True:
            tok = self.lexer.token()
            if tok is None:
                break
            visible.append(Token(tok.type, tok.value, tok.lineno, find_column(text, tok.lexpos)))
        if not include_hidden:
            return visible
        return sorted(visible + self.lexer.hidden, key=lambda tk: (tk.line, tk.column))
