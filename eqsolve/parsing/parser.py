"""
LALR parser for equation files, built with ply.yacc.

The parser produces a concrete syntax tree of ParseNode objects that still
mirrors the grammar (parenthesized groups, operator token text, source
positions). AstBuilder lowers it to the typed AST.

Grammar (precedence low to high):

    file        : (statement | NEWLINE)*
    statement   : assignment terminator
                | equation terminator
                | DIRECTIVE | PLOT
    terminator  : [UNIT] [';']
    assignment  : ID ':=' expr | ID '=' expr
    equation    : expr '=' expr
    expr        : expr ('+' | '-') expr          left
                | expr ('*' | '/') expr          left
                | ('-' | '+') expr               unary
                | expr ('^' | '**') expr         right
                | '(' expr ')' | NUMBER | STRING | ID | ID '(' [args] ')'

A statement whose left side is a bare identifier is always an assignment;
equations need a compound left side. ``x = x + 1`` is therefore an
assignment, not a fixed-point equation. The rule is enforced through
precedence: reducing ID to an expression (IDREF) binds looser than shifting
'=' or ':='.

NEWLINE comes from EesLexer and ends a statement at a line break, so a line
starting with '-', '+' or '(' begins a new statement instead of extending
the previous one. Several statements may still share one line.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import ply.yacc as yacc

from eqsolve.core.errors import ParseError
from eqsolve.parsing.lexer import EesLexer, find_column


@dataclass
class ParseNode:
    """
    Concrete syntax tree node.

    Attributes:
        kind: Grammar alternative ('file', 'assignment', 'equation', 'binary',
              'unary', 'paren', 'number', 'string', 'variable', 'call',
              'directive', 'plot')
        children: Child ParseNodes, in source order
        text: Token text carried by the node (operator, literal, name, raw line)
        line: 1-based line of the node's first token
        column: 1-based column of the node's first token
    """
    kind: str
    children: List['ParseNode'] = field(default_factory=list)
    text: Optional[str] = None
    line: int = 0
    column: int = 0


class EesParser:
    """
    ply LALR parser.

    Usage:
        tree = EesParser().parse("x := 3\\n2*x + y = 10")
        tree.kind        # 'file'
        len(tree.children)  # 2

    Raises:
        ParseError: On the first lexical or syntax error; no tree is returned
    """

    tokens = EesLexer.tokens

    precedence = (
        ('nonassoc', 'IDREF'),
        ('nonassoc', 'ASSIGN', 'EQUALS'),
        ('left', 'PLUS', 'MINUS'),
        ('left', 'TIMES', 'DIVIDE'),
        ('right', 'UNARY'),
        ('right', 'POWER'),
        ('nonassoc', 'LPAREN'),
    )

    def __init__(self):
        self.lexer = EesLexer()
        self.parser = yacc.yacc(module=self, start='file', debug=False,
                                write_tables=False, errorlog=yacc.NullLogger())

    def parse(self, text: str) -> ParseNode:
        """Parse source text into a concrete syntax tree"""
        self._text = text
        return self.parser.parse(text, lexer=self.lexer)

    # -- helpers -------------------------------------------------------------

    def _position(self, p, index: int):
        return p.lineno(index), find_column(self._text, p.lexpos(index))

    def _leaf(self, p, kind: str, index: int = 1) -> ParseNode:
        line, column = self._position(p, index)
        return ParseNode(kind, text=p[index], line=line, column=column)

    # -- statements ----------------------------------------------------------

    def p_file(self, p):
        '''file : statements'''
        p[0] = ParseNode('file', p[1], line=1, column=1)

    def p_statements(self, p):
        '''statements : statements statement'''
        p[0] = p[1] + [p[2]]

    def p_statements_line_break(self, p):
        '''statements : statements NEWLINE'''
        p[0] = p[1]

    def p_statements_empty(self, p):
        '''statements : '''
        p[0] = []

    def p_statement(self, p):
        '''statement : assignment terminator
                     | equation terminator'''
        p[0] = p[1]

    def p_statement_directive(self, p):
        '''statement : DIRECTIVE'''
        p[0] = self._leaf(p, 'directive')

    def p_statement_plot(self, p):
        '''statement : PLOT'''
        p[0] = self._leaf(p, 'plot')

    def p_terminator(self, p):
        '''terminator : UNIT SEMI
                      | UNIT
                      | SEMI
                      | '''
        p[0] = None

    def p_assignment(self, p):
        '''assignment : ID ASSIGN expr
                      | ID EQUALS expr'''
        line, column = self._position(p, 1)
        target = ParseNode('variable', text=p[1], line=line, column=column)
        p[0] = ParseNode('assignment', [target, p[3]], text=p[2], line=line, column=column)

    def p_equation(self, p):
        '''equation : expr EQUALS expr'''
        p[0] = ParseNode('equation', [p[1], p[3]], text=p[2],
                         line=p[1].line, column=p[1].column)

    # -- expressions ---------------------------------------------------------

    def p_expr_binary(self, p):
        '''expr : expr PLUS expr
                | expr MINUS expr
                | expr TIMES expr
                | expr DIVIDE expr
                | expr POWER expr'''
        p[0] = ParseNode('binary', [p[1], p[3]], text=p[2],
                         line=p[1].line, column=p[1].column)

    def p_expr_unary(self, p):
        '''expr : MINUS expr %prec UNARY
                | PLUS expr %prec UNARY'''
        line, column = self._position(p, 1)
        p[0] = ParseNode('unary', [p[2]], text=p[1], line=line, column=column)

    def p_expr_paren(self, p):
        '''expr : LPAREN expr RPAREN'''
        line, column = self._position(p, 1)
        p[0] = ParseNode('paren', [p[2]], line=line, column=column)

    def p_expr_number(self, p):
        '''expr : NUMBER'''
        p[0] = self._leaf(p, 'number')

    def p_expr_string(self, p):
        '''expr : STRING'''
        p[0] = self._leaf(p, 'string')

    def p_expr_variable(self, p):
        '''expr : ID %prec IDREF'''
        p[0] = self._leaf(p, 'variable')

    def p_expr_call(self, p):
        '''expr : ID LPAREN arguments RPAREN
                | ID LPAREN RPAREN'''
        line, column = self._position(p, 1)
        arguments = p[3] if len(p) == 5 else []
        p[0] = ParseNode('call', arguments, text=p[1], line=line, column=column)

    def p_arguments(self, p):
        '''arguments : arguments COMMA expr
                     | expr'''
        if len(p) == 4:
            p[0] = p[1] + [p[3]]
        else:
            p[0] = [p[1]]

    def p_error(self, p):
        if p is None:
            lines = self._text.splitlines() or ['']
            raise ParseError("Unexpected end of input", len(lines), len(lines[-1]) + 1, '')
        column = find_column(self._text, p.lexpos)
        if p.type == 'NEWLINE':
            raise ParseError("Unexpected end of line", p.lineno, column, '')
        raise ParseError(f"Unexpected {p.type} {p.value!r}", p.lineno, column, str(p.value))


_default_parser: Optional[EesParser] = None


def parse(text: str) -> ParseNode:
    """Parse with a shared parser instance (tables are built once)"""
    global _default_parser
    if _default_parser is None:
        _default_parser = EesParser()
    return _default_parser.parse(text)
