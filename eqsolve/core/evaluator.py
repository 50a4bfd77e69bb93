"""
Expression evaluation over a variable table and a function registry.

Arithmetic runs on numpy float64 scalars with floating point traps enabled,
so overflow and invalid operations surface as EvaluationError instead of
silently producing inf/nan.
"""

from typing import List, Optional, Protocol

import numpy as np

from eqsolve.core.diagnostics import Diagnostic, DiagnosticSink, NullSink
from eqsolve.core.errors import (
    DivisionByZeroError,
    EvaluationError,
    FunctionArgumentError,
    UnitNotRecognizedError,
)
from eqsolve.core.functions import FunctionRegistry
from eqsolve.core.nodes import (
    BinaryOperation,
    BinaryOperator,
    Expression,
    FunctionCall,
    Number,
    StringLiteral,
    Variable,
    unreachable,
)
from eqsolve.core.variable import canonical_name
from eqsolve.units.pint_wrapper import UnitSystem, default_unit_system


class ValueSource(Protocol):
    """What the evaluator reads variables from (VariableStore or StoreOverlay)"""

    def get(self, name: str) -> float:
        ...

    def unit_of(self, name: str) -> Optional[str]:
        ...


_OPERATIONS = {
    BinaryOperator.ADD: np.add,
    BinaryOperator.SUBTRACT: np.subtract,
    BinaryOperator.MULTIPLY: np.multiply,
    BinaryOperator.DIVIDE: np.divide,
    BinaryOperator.POWER: np.power,
}

# Functions evaluated by the evaluator itself because they take string literals,
# and INTEGRAL, which only the statement executor may run
SPECIAL_FORMS = frozenset({'convert', 'converttemp', 'integral'})


def collect_variables(node: Expression, into: Optional[List[str]] = None) -> List[str]:
    """
    Variable names referenced by an expression, first-encounter order,
    without case-insensitive duplicates.
    """
    names = [] if into is None else into
    match node:
        case Variable(name=name):
            if canonical_name(name) not in {canonical_name(n) for n in names}:
                names.append(name)
        case BinaryOperation(left=left, right=right):
            collect_variables(left, names)
            collect_variables(right, names)
        case FunctionCall(arguments=arguments):
            for argument in arguments:
                collect_variables(argument, names)
        case Number() | StringLiteral():
            pass
        case _:
            unreachable(node)
    return names


def collect_functions(node: Expression, into: Optional[List[str]] = None) -> List[str]:
    """Function names called anywhere in an expression"""
    names = [] if into is None else into
    match node:
        case FunctionCall(name=name, arguments=arguments):
            names.append(name)
            for argument in arguments:
                collect_functions(argument, names)
        case BinaryOperation(left=left, right=right):
            collect_functions(left, names)
            collect_functions(right, names)
        case Number() | Variable() | StringLiteral():
            pass
        case _:
            unreachable(node)
    return names


class ExpressionEvaluator:
    """
    Computes the numeric value of expression trees.

    Args:
        values: Variable source (store, or overlay during solving)
        functions: Function registry for calls
        sink: Receives unit-mismatch warnings when check_units is on
        check_units: Compare units of variables joined by + or -
        units: Unit system for CONVERT/CONVERTTEMP and unit checks

    Raises (from evaluate):
        UndefinedVariableError, UnknownFunctionError, FunctionArgumentError,
        DivisionByZeroError, EvaluationError, UnitNotRecognizedError
    """

    def __init__(self,
                 values: ValueSource,
                 functions: FunctionRegistry,
                 sink: Optional[DiagnosticSink] = None,
                 check_units: bool = False,
                 units: Optional[UnitSystem] = None):
        self.values = values
        self.functions = functions
        self.sink = sink if sink is not None else NullSink()
        self.check_units = check_units
        self._units = units

    @property
    def units(self) -> UnitSystem:
        if self._units is None:
            self._units = default_unit_system()
        return self._units

    def evaluate(self, node: Expression) -> float:
        """Evaluate an expression to a finite float"""
        with np.errstate(divide='raise', over='raise', invalid='raise', under='ignore'):
            try:
                result = self._evaluate(node)
            except FloatingPointError as e:
                raise EvaluationError(f"Arithmetic error in {node}: {e}") from e
        value = float(result)
        if not np.isfinite(value):
            raise EvaluationError(f"Expression {node} evaluated to {value}")
        return value

    def _evaluate(self, node: Expression) -> np.float64:
        match node:
            case Number(value=value):
                return np.float64(value)
            case Variable(name=name):
                return np.float64(self.values.get(name))
            case BinaryOperation(left=left, operator=operator, right=right):
                return self._binary(node, left, operator, right)
            case FunctionCall():
                return self._call(node)
            case StringLiteral():
                raise EvaluationError(f"String {node} cannot be used as a number")
            case _:
                unreachable(node)

    def _binary(self, node: BinaryOperation, left: Expression,
                operator: BinaryOperator, right: Expression) -> np.float64:
        left_value = self._evaluate(left)
        right_value = self._evaluate(right)
        if operator in (BinaryOperator.ADD, BinaryOperator.SUBTRACT) and self.check_units:
            self._check_unit_compatibility(node, left, right)
        if operator is BinaryOperator.DIVIDE and right_value == 0.0:
            raise DivisionByZeroError(f"Division by zero: {left} / {right}")
        return _OPERATIONS[operator](left_value, right_value)

    def _call(self, node: FunctionCall) -> np.float64:
        key = canonical_name(node.name)
        if key == 'convert':
            from_unit, to_unit = self._string_arguments(node, 2)
            try:
                return np.float64(self.units.conversion_factor(from_unit, to_unit))
            except UnitNotRecognizedError:
                raise
            except ValueError as e:
                raise FunctionArgumentError(f"{node.name}: {e}") from e
        if key == 'converttemp':
            from_unit, to_unit = self._string_arguments(node, 3)
            value = float(self._evaluate(node.arguments[2]))
            try:
                return np.float64(self.units.convert_temperature(value, from_unit, to_unit))
            except UnitNotRecognizedError:
                raise
            except ValueError as e:
                raise FunctionArgumentError(f"{node.name}: {e}") from e
        if key == 'integral':
            raise FunctionArgumentError(
                f"{node.name} must be the whole right-hand side of an assignment, "
                f"as in y = INTEGRAL(dydt, t, 0, 1)"
            )

        function = self.functions.resolve(node.name)
        arguments = [self._evaluate(argument) for argument in node.arguments]
        function.check_arity(len(arguments))
        result = function.implementation(*arguments)
        if not np.isfinite(result):
            raise EvaluationError(f"{node} evaluated to {float(result)}")
        return np.float64(result)

    def _string_arguments(self, node: FunctionCall, count: int) -> List[str]:
        if len(node.arguments) != count:
            raise FunctionArgumentError(
                f"Function '{node.name}' requires exactly {count} arguments, "
                f"but {len(node.arguments)} were provided"
            )
        strings = []
        for position, argument in enumerate(node.arguments[:2], start=1):
            if not isinstance(argument, StringLiteral):
                raise FunctionArgumentError(
                    f"Argument {position} of '{node.name}' must be a string literal "
                    f"such as 'm', got {argument}"
                )
            strings.append(argument.value)
        return strings

    def _check_unit_compatibility(self, node: BinaryOperation,
                                  left: Expression, right: Expression) -> None:
        if not (isinstance(left, Variable) and isinstance(right, Variable)):
            return
        left_unit = self.values.unit_of(left.name)
        right_unit = self.values.unit_of(right.name)
        if not left_unit or not right_unit:
            return
        try:
            compatible = self.units.compatible(left_unit, right_unit)
        except UnitNotRecognizedError as e:
            self.sink.emit(Diagnostic('UnitNotRecognizedError', str(e), 'warning',
                                      variables=(left.name, right.name)))
            return
        if not compatible:
            self.sink.emit(Diagnostic(
                'UnitMismatch',
                f"Cannot add/subtract '{left.name}' [{left_unit}] and "
                f"'{right.name}' [{right_unit}]: incompatible dimensions in {node}",
                'warning',
                variables=(left.name, right.name),
            ))
