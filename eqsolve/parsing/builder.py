"""
AstBuilder: lowers the concrete syntax tree into typed AST nodes.

Structural transformation. The only check made here is that numeric
literals are finite; undefined variables and unknown functions are only
detected when statements run.
"""

import math

from eqsolve.core.errors import ParseError
from eqsolve.core.nodes import (
    Assignment,
    BinaryOperation,
    BinaryOperator,
    Directive,
    Equation,
    Expression,
    File,
    FunctionCall,
    Number,
    PlotCommand,
    Statement,
    StringLiteral,
    Variable,
)
from eqsolve.parsing.parser import ParseNode


class AstBuilder:
    """
    Converts ParseNode trees into the AST.

    Usage:
        tree = EesParser().parse(text)
        ast = AstBuilder().build(tree)
    """

    def build(self, tree: ParseNode) -> File:
        if tree.kind != 'file':
            raise ValueError(f"Expected a 'file' node, got '{tree.kind}'")
        return File(tuple(self.statement(child) for child in tree.children))

    def statement(self, node: ParseNode) -> Statement:
        match node.kind:
            case 'assignment':
                target, rhs = node.children
                return Assignment(Variable(target.text), self.expression(rhs), node.text)
            case 'equation':
                lhs, rhs = node.children
                return Equation(self.expression(lhs), self.expression(rhs))
            case 'directive':
                return Directive(node.text)
            case 'plot':
                return PlotCommand(node.text)
            case _:
                raise ValueError(f"Not a statement node: '{node.kind}'")

    def expression(self, node: ParseNode) -> Expression:
        match node.kind:
            case 'number':
                value = float(node.text)
                if not math.isfinite(value):
                    raise ParseError(f"Number {node.text} is out of range",
                                     node.line, node.column, node.text)
                return Number(value)
            case 'variable':
                return Variable(node.text)
            case 'string':
                return StringLiteral.from_source(node.text)
            case 'paren':
                return self.expression(node.children[0])
            case 'binary':
                left, right = node.children
                return BinaryOperation(
                    self.expression(left),
                    BinaryOperator.from_symbol(node.text),
                    self.expression(right),
                )
            case 'unary':
                operand = self.expression(node.children[0])
                if node.text == '+':
                    return operand
                if isinstance(operand, Number):
                    return Number(-operand.value)
                return BinaryOperation(Number(0.0), BinaryOperator.SUBTRACT, operand)
            case 'call':
                arguments = tuple(self.expression(child) for child in node.children)
                return FunctionCall(node.text, arguments)
            case _:
                raise ValueError(f"Not an expression node: '{node.kind}'")
