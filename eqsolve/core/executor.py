"""
StatementExecutor: runs a File AST in source order.

Assignments are evaluated immediately against the VariableStore; equations
are deferred for the EquationSolver; directives and PLOT lines are handed
to optional callbacks untouched.

Assignments of the form ``y = INTEGRAL(dydt, t, lower, upper[, step])`` are
not evaluated here. They are collected as IntegralRecords for OdeIntegrator,
and every assignment to a derivative named by such an integral is deferred
as an equation, since it reads the state that is only known while
integrating.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from eqsolve.core.diagnostics import Diagnostic, DiagnosticSink, NullSink
from eqsolve.core.errors import FunctionArgumentError
from eqsolve.core.evaluator import ExpressionEvaluator, collect_variables
from eqsolve.core.functions import FunctionRegistry
from eqsolve.core.nodes import (
    Assignment,
    Directive,
    Equation,
    Expression,
    File,
    FunctionCall,
    PlotCommand,
    Variable,
    unreachable,
)
from eqsolve.core.store import VariableStore
from eqsolve.core.variable import canonical_name
from eqsolve.units.pint_wrapper import UnitSystem


@dataclass(frozen=True)
class EquationRecord:
    """
    A deferred equation.

    Attributes:
        index: Source-order position among the file's equations (0-based)
        equation: The Equation node
        variables: Variable names referenced on either side, first-encounter order
    """
    index: int
    equation: Equation
    variables: Tuple[str, ...]

    def __str__(self) -> str:
        return f"#{self.index}: {self.equation}"

    def references(self, name: str) -> bool:
        key = canonical_name(name)
        return any(canonical_name(n) == key for n in self.variables)


def is_integral_call(node: Expression) -> bool:
    return isinstance(node, FunctionCall) and canonical_name(node.name) == 'integral'


@dataclass(frozen=True)
class IntegralRecord:
    """
    An ``target = INTEGRAL(derivative, variable, lower, upper[, step])`` assignment.

    Attributes:
        target: State variable receiving the value at the upper limit
        derivative: Variable defined by equations as d(target)/d(variable)
        variable: Independent variable
        lower, upper: Limit expressions, evaluated when integrating
        step: Optional fixed output step expression
    """
    target: str
    derivative: str
    variable: str
    lower: Expression
    upper: Expression
    step: Optional[Expression] = None

    @classmethod
    def from_assignment(cls, assignment: Assignment) -> 'IntegralRecord':
        """
        Raises:
            FunctionArgumentError: Wrong argument count, or the first two
                arguments are not plain variable names
        """
        call = assignment.rhs
        if not 4 <= len(call.arguments) <= 5:
            raise FunctionArgumentError(
                f"Function '{call.name}' requires 4 or 5 arguments "
                f"(derivative, variable, lower, upper[, step]), "
                f"but {len(call.arguments)} were provided"
            )
        derivative, variable = call.arguments[:2]
        if not (isinstance(derivative, Variable) and isinstance(variable, Variable)):
            raise FunctionArgumentError(
                f"The first two arguments of '{call.name}' must be variable names, "
                f"got {derivative} and {variable}"
            )
        step = call.arguments[4] if len(call.arguments) == 5 else None
        return cls(assignment.target.name, derivative.name, variable.name,
                   call.arguments[2], call.arguments[3], step)


@dataclass
class ExecutionResult:
    """What a pass over the statements leaves for the solver and front ends"""
    equations: List[EquationRecord] = field(default_factory=list)
    integrals: List[IntegralRecord] = field(default_factory=list)
    directives: List[Directive] = field(default_factory=list)
    plot_commands: List[PlotCommand] = field(default_factory=list)
    assignments: int = 0


class StatementExecutor:
    """
    Executes statements strictly in source order.

    Args:
        store: Variable table written by assignments
        functions: Function registry for evaluation
        sink: Diagnostic sink (unit warnings, passthrough events)
        on_directive: Called with each Directive as it is reached
        on_plot: Called with each PlotCommand as it is reached
        units: Unit system for CONVERT/CONVERTTEMP and unit checks

    Raises (from execute):
        UndefinedVariableError, DivisionByZeroError, EvaluationError,
        UnknownFunctionError, FunctionArgumentError, UnitNotRecognizedError:
        the first failing assignment aborts the run

    Example:
        store = VariableStore()
        result = StatementExecutor(store, FunctionRegistry()).execute(parse(text))
        result.equations   # deferred EquationRecords
    """

    def __init__(self,
                 store: VariableStore,
                 functions: FunctionRegistry,
                 sink: Optional[DiagnosticSink] = None,
                 on_directive: Optional[Callable[[Directive], None]] = None,
                 on_plot: Optional[Callable[[PlotCommand], None]] = None,
                 units: Optional[UnitSystem] = None):
        self.store = store
        self.functions = functions
        self.sink = sink if sink is not None else NullSink()
        self.on_directive = on_directive
        self.on_plot = on_plot
        self.evaluator = ExpressionEvaluator(store, functions, sink=self.sink,
                                             check_units=True, units=units)

    def execute(self, file: File) -> ExecutionResult:
        result = ExecutionResult()
        result.integrals = [IntegralRecord.from_assignment(statement)
                            for statement in file.statements
                            if isinstance(statement, Assignment) and is_integral_call(statement.rhs)]
        derivatives = {canonical_name(integral.derivative) for integral in result.integrals}

        for statement in file.statements:
            match statement:
                case Assignment(rhs=rhs) if is_integral_call(rhs):
                    pass
                case Assignment(target=target, rhs=rhs) if canonical_name(target.name) in derivatives:
                    self._defer(result, Equation(target, rhs))
                case Assignment(target=target, rhs=rhs):
                    value = self.evaluator.evaluate(rhs)
                    self.store.set(target.name, value, explicit=True)
                    result.assignments += 1
                case Equation():
                    self._defer(result, statement)
                case Directive():
                    result.directives.append(statement)
                    self.sink.emit(Diagnostic('Directive', statement.raw_text))
                    if self.on_directive is not None:
                        self.on_directive(statement)
                case PlotCommand():
                    result.plot_commands.append(statement)
                    self.sink.emit(Diagnostic('PlotCommand', statement.raw_text))
                    if self.on_plot is not None:
                        self.on_plot(statement)
                case _:
                    unreachable(statement)

        summary = (f"{result.assignments} assignments evaluated, "
                   f"{len(result.equations)} equations deferred")
        if result.integrals:
            summary = f"{summary}, {len(result.integrals)} integrals pending"
        self.sink.emit(Diagnostic('StatementsExecuted', summary))
        return result

    def _defer(self, result: ExecutionResult, equation: Equation) -> None:
        names = collect_variables(equation.lhs)
        collect_variables(equation.rhs, names)
        result.equations.append(EquationRecord(len(result.equations), equation, tuple(names)))
