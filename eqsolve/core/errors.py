"""
Error taxonomy for parsing, evaluation and solving.

Parse and evaluation errors are fatal for a run. SolverError subclasses are
recoverable: EquationProgram.run() turns them into a failed RunResult while
keeping the variable state produced by the assignment phase.
"""

from typing import Sequence


class EqSolveError(Exception):
    """Base class for every error raised by eqsolve"""


class ParseError(EqSolveError):
    """
    Lexical or syntactic error in source text.

    Attributes:
        line: 1-based line of the offending token
        column: 1-based column of the offending token
        token: Offending token text ('' at end of input)
    """

    def __init__(self, message: str, line: int, column: int, token: str = ''):
        self.line = line
        self.column = column
        self.token = token
        super().__init__(f"line {line}:{column}: {message}")


class UndefinedVariableError(EqSolveError, LookupError):
    """Variable read before it was assigned"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Variable '{name}' is referenced before it is assigned")


class EvaluationError(EqSolveError, ArithmeticError):
    """Arithmetic domain failure (overflow, invalid operation, bad operand)"""


class DivisionByZeroError(EvaluationError, ZeroDivisionError):
    """Divisor evaluated to exactly zero"""


class UnknownFunctionError(EqSolveError, LookupError):
    """Function name not present in the registry"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown function '{name}'")


class FunctionArgumentError(EqSolveError, TypeError):
    """Wrong number or kind of arguments in a function call"""


class UnitNotRecognizedError(EqSolveError, ValueError):
    """Unit string could not be resolved by the unit system"""

    def __init__(self, unit: str, reason: str = ''):
        self.unit = unit
        message = f"Unit '{unit}' is not recognized"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SolverError(EqSolveError):
    """Base class for recoverable failures of the equation solving phase"""


class UnderdeterminedSystemError(SolverError):
    """Fewer equations than unknowns; no solve is attempted"""

    def __init__(self, unknowns: Sequence[str], equation_count: int):
        self.unknowns = tuple(unknowns)
        self.equation_count = equation_count
        super().__init__(
            f"There are {equation_count} equations and {len(self.unknowns)} unknowns; "
            f"the system is underspecified. Unresolved: {', '.join(self.unknowns)}"
        )


class OverdeterminedSystemError(SolverError):
    """More equations than unknowns (reported as a warning, solve proceeds)"""

    def __init__(self, unknowns: Sequence[str], equation_count: int):
        self.unknowns = tuple(unknowns)
        self.equation_count = equation_count
        super().__init__(
            f"There are {equation_count} equations and {len(self.unknowns)} unknowns; "
            f"a least-squares solution will be attempted and may be unreliable"
        )


class ConvergenceFailureError(SolverError):
    """
    Optimizer stopped without driving the objective below tolerance.

    Attributes:
        objective: Best sum of squared residuals reached
        iterations: Iterations performed
        unknowns: Names the solver was working on
    """

    def __init__(self, objective: float, iterations: int, unknowns: Sequence[str] = (),
                 reason: str = ''):
        self.objective = objective
        self.iterations = iterations
        self.unknowns = tuple(unknowns)
        message = (f"Solver did not converge after {iterations} iterations "
                   f"(best objective {objective:.6g})")
        if reason:
            message = f"{message}; optimizer status: {reason}"
        super().__init__(message)


class InconsistentSystemError(SolverError):
    """All variables are known but some equations are not satisfied"""

    def __init__(self, equations: Sequence[int], residuals: Sequence[float]):
        self.equations = tuple(equations)
        self.residuals = tuple(residuals)
        detail = ', '.join(f"#{i} (residual {r:.6g})" for i, r in zip(self.equations, self.residuals))
        super().__init__(f"Equations with no unknowns are not satisfied: {detail}")


class SolveCancelledError(SolverError):
    """Host requested cancellation while the optimizer was iterating"""

    def __init__(self, iterations: int):
        self.iterations = iterations
        super().__init__(f"Solve cancelled after {iterations} iterations")
