"""
Lexing and parsing of equation files into the AST.
"""

from eqsolve.core.nodes import File
from eqsolve.parsing.builder import AstBuilder
from eqsolve.parsing.lexer import EesLexer, Token
from eqsolve.parsing.parser import EesParser, ParseNode
from eqsolve.parsing.parser import parse as parse_tree


def parse(text: str) -> File:
    """
    Parse source text into a File AST.

    Raises:
        ParseError: On the first lexical or syntax error
    """
    return AstBuilder().build(parse_tree(text))


__all__ = ['AstBuilder', 'EesLexer', 'EesParser', 'ParseNode', 'Token', 'parse', 'parse_tree']
