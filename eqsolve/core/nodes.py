"""
Abstract syntax tree for equation files.

The tree is a closed set of immutable node types. Consumers dispatch with
``match`` over the Expression / Statement unions, and fall through to
``unreachable()`` so that a new node kind fails loudly everywhere it is not
handled yet.

String forms are fully parenthesized source text: parsing ``str(node)``
yields a structurally equal tree.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NoReturn, Tuple, Union


class BinaryOperator(Enum):
    """Arithmetic operators, valued by their canonical source symbol"""
    ADD = '+'
    SUBTRACT = '-'
    MULTIPLY = '*'
    DIVIDE = '/'
    POWER = '^'

    @classmethod
    def from_symbol(cls, symbol: str) -> 'BinaryOperator':
        """Map operator token text ('**' is an alias of '^')"""
        if symbol == '**':
            return cls.POWER
        return cls(symbol)


@dataclass(frozen=True)
class Number:
    value: float

    def __str__(self) -> str:
        text = repr(float(self.value))
        # negative literals are parenthesized so that (-2.0 ^ x) reparses unchanged
        return f"({text})" if text.startswith("-") else text


@dataclass(frozen=True)
class Variable:
    """
    Reference to a variable.

    Identity is case-insensitive: the VariableStore canonicalizes names, so
    ``Variable('T')`` and ``Variable('t')`` address the same record.
    """
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class StringLiteral:
    """Unescaped string value (``''`` in source becomes ``'``)"""
    value: str

    @classmethod
    def from_source(cls, text: str) -> 'StringLiteral':
        """Build from quoted token text, e.g. ``'it''s ok'``"""
        if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
            text = text[1:-1]
        return cls(text.replace("''", "'"))

    def __str__(self) -> str:
        return "'" + self.value.replace("'", "''") + "'"


@dataclass(frozen=True)
class BinaryOperation:
    left: 'Expression'
    operator: BinaryOperator
    right: 'Expression'

    def __str__(self) -> str:
        return f"({self.left} {self.operator.value} {self.right})"


@dataclass(frozen=True)
class FunctionCall:
    name: str
    arguments: Tuple['Expression', ...] = ()

    def __str__(self) -> str:
        args = ', '.join(str(arg) for arg in self.arguments)
        return f"{self.name}({args})"


Expression = Union[Number, Variable, StringLiteral, BinaryOperation, FunctionCall]


@dataclass(frozen=True)
class Assignment:
    """
    ``target := rhs`` or ``target = rhs``.

    The target is always a bare Variable; the parser guarantees it.
    ``operator`` records which surface form was written.
    """
    target: Variable
    rhs: Expression
    operator: str = ':='

    def __str__(self) -> str:
        return f"{self.target} {self.operator} {self.rhs}"


@dataclass(frozen=True)
class Equation:
    lhs: Expression
    rhs: Expression

    def __str__(self) -> str:
        return f"{self.lhs} = {self.rhs}"


@dataclass(frozen=True)
class Directive:
    """Opaque ``$...`` line for external collaborators"""
    raw_text: str

    def __str__(self) -> str:
        return self.raw_text


@dataclass(frozen=True)
class PlotCommand:
    """Opaque ``PLOT ...`` line for external collaborators"""
    raw_text: str

    def __str__(self) -> str:
        return self.raw_text


Statement = Union[Assignment, Equation, Directive, PlotCommand]


@dataclass(frozen=True)
class File:
    statements: Tuple[Statement, ...] = ()

    def __str__(self) -> str:
        return '\n'.join(str(statement) for statement in self.statements)


Node = Union[Expression, Statement, File]


def unreachable(node: object) -> NoReturn:
    """Terminal case of exhaustive node matches"""
    raise TypeError(f"Unhandled AST node type: {type(node).__name__}")
