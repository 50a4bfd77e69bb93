"""Core of the equation language: AST, variables, evaluation, execution and solving."""

from eqsolve.core.errors import (
    EqSolveError,
    ParseError,
    UndefinedVariableError,
    EvaluationError,
    DivisionByZeroError,
    UnknownFunctionError,
    FunctionArgumentError,
    UnitNotRecognizedError,
    SolverError,
    UnderdeterminedSystemError,
    OverdeterminedSystemError,
    ConvergenceFailureError,
    InconsistentSystemError,
    SolveCancelledError,
)
from eqsolve.core.diagnostics import Diagnostic, DiagnosticLog, DiagnosticSink, NullSink
from eqsolve.core.variable import VariableRecord, canonical_name
from eqsolve.core.store import VariableStore
from eqsolve.core.functions import FunctionRegistry
from eqsolve.core.evaluator import ExpressionEvaluator
from eqsolve.core.settings import SolverAlgorithm, SolverSettings
from eqsolve.core.executor import EquationRecord, IntegralRecord, StatementExecutor
from eqsolve.core.solver import EquationSolver, SolveResult
from eqsolve.core.integrator import IntegralResult, OdeIntegrator
from eqsolve.core.program import EquationProgram, RunResult

__all__ = [
    'EqSolveError',
    'ParseError',
    'UndefinedVariableError',
    'EvaluationError',
    'DivisionByZeroError',
    'UnknownFunctionError',
    'FunctionArgumentError',
    'UnitNotRecognizedError',
    'SolverError',
    'UnderdeterminedSystemError',
    'OverdeterminedSystemError',
    'ConvergenceFailureError',
    'InconsistentSystemError',
    'SolveCancelledError',
    'Diagnostic',
    'DiagnosticLog',
    'DiagnosticSink',
    'NullSink',
    'VariableRecord',
    'canonical_name',
    'VariableStore',
    'FunctionRegistry',
    'ExpressionEvaluator',
    'SolverAlgorithm',
    'SolverSettings',
    'EquationRecord',
    'IntegralRecord',
    'StatementExecutor',
    'EquationSolver',
    'SolveResult',
    'IntegralResult',
    'OdeIntegrator',
    'EquationProgram',
    'RunResult',
]
