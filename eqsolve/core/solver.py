"""
EquationSolver: numerical solution of the deferred equation system.

Unknowns are the variables referenced by deferred equations that are not
explicit when solving starts. Their values are found by minimizing the sum
of squared residuals (lhs - rhs) with scipy.optimize, either Nelder-Mead
(derivative-free simplex) or least_squares (Levenberg-Marquardt, or a trust
region method when bounds are given).

Trial points are evaluated through a StoreOverlay, so the VariableStore is
only written once, after convergence.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares, minimize

from eqsolve.core.diagnostics import Diagnostic, DiagnosticSink, NullSink
from eqsolve.core.errors import (
    ConvergenceFailureError,
    EvaluationError,
    InconsistentSystemError,
    OverdeterminedSystemError,
    SolveCancelledError,
    UnderdeterminedSystemError,
    UnknownFunctionError,
)
from eqsolve.core.evaluator import SPECIAL_FORMS, ExpressionEvaluator, ValueSource, collect_functions
from eqsolve.core.executor import EquationRecord
from eqsolve.core.functions import FunctionRegistry
from eqsolve.core.settings import SolverAlgorithm, SolverSettings
from eqsolve.core.store import VariableStore
from eqsolve.core.variable import canonical_name
from eqsolve.units.pint_wrapper import UnitSystem

# Residual assigned to every equation at a point where evaluation fails
PENALTY = 1e10


@dataclass(frozen=True)
class SolveResult:
    """
    Outcome of a solve.

    An over-determined system whose best least-squares fit stays above the
    tolerance is still returned, with success=False and reliable=False; its
    values are reported here but not written to the store.

    Attributes:
        success: Objective fell below tolerance (values were stored)
        unknowns: Variables solved for, first-encounter order
        values: Solved value per unknown
        objective: Final sum of squared residuals
        iterations: Optimizer iterations (function evaluations for least_squares)
        algorithm: Algorithm used, None when nothing had to be solved
        reliable: False for over-determined (least-squares) systems
        message: Optimizer status message
        residuals: Final residual per equation, source order
    """
    success: bool
    unknowns: Tuple[str, ...] = ()
    values: Dict[str, float] = field(default_factory=dict)
    objective: float = 0.0
    iterations: int = 0
    algorithm: Optional[SolverAlgorithm] = None
    reliable: bool = True
    message: str = ''
    residuals: Tuple[float, ...] = ()


class EquationSolver:
    """
    Solves deferred equations for the unknown variables.

    Args:
        store: Variable table; read for known values, written on success
        functions: Function registry for residual evaluation
        settings: Solver options (defaults to SolverSettings())
        sink: Diagnostic sink for solver events
        units: Unit system for CONVERT/CONVERTTEMP inside equations

    Raises (from solve):
        UnknownFunctionError: An equation calls an unregistered function
        UnderdeterminedSystemError: Fewer equations than unknowns
        InconsistentSystemError: No unknowns and some equation is violated
        ConvergenceFailureError: Objective stayed above tolerance (square systems)
        SolveCancelledError: should_cancel() returned True

    Example:
        solver = EquationSolver(store, FunctionRegistry(), SolverSettings(tolerance=1e-8))
        result = solver.solve(execution.equations)
        result.values   # {'x': 6.0, 'y': 4.0}
    """

    def __init__(self,
                 store: VariableStore,
                 functions: FunctionRegistry,
                 settings: Optional[SolverSettings] = None,
                 sink: Optional[DiagnosticSink] = None,
                 units: Optional[UnitSystem] = None):
        self.store = store
        self.functions = functions
        self.settings = settings if settings is not None else SolverSettings()
        self.sink = sink if sink is not None else NullSink()
        self.units = units

    def identify_unknowns(self, equations: Sequence[EquationRecord]) -> List[str]:
        """Non-explicit variables referenced by the equations, first-encounter order"""
        unknowns = []
        seen = set()
        for record in equations:
            for name in record.variables:
                key = canonical_name(name)
                if key in seen:
                    continue
                seen.add(key)
                if not self.store.is_explicit(name):
                    unknowns.append(name)
        return unknowns

    def initial_guess(self, unknowns: Sequence[str]) -> np.ndarray:
        """Settings guess, else the stored value, else fallback_guess; clipped into bounds"""
        x0 = np.empty(len(unknowns))
        for i, name in enumerate(unknowns):
            guess = self.settings.guess_for(name)
            if guess is None and self.store.has_value(name):
                guess = self.store.get(name)
            if guess is None:
                guess = self.settings.fallback_guess
            lower, upper = self.settings.bounds_for(name)
            if lower is not None:
                guess = max(guess, lower)
            if upper is not None:
                guess = min(guess, upper)
            x0[i] = guess
        return x0

    def residuals(self, equations: Sequence[EquationRecord],
                  values: ValueSource) -> np.ndarray:
        """
        lhs - rhs for every equation, evaluated against a value source.

        Raises:
            EvaluationError: If any side cannot be evaluated to a finite number
        """
        evaluator = ExpressionEvaluator(values, self.functions, units=self.units)
        out = np.empty(len(equations))
        for i, record in enumerate(equations):
            lhs = evaluator.evaluate(record.equation.lhs)
            rhs = evaluator.evaluate(record.equation.rhs)
            out[i] = lhs - rhs
        if not np.all(np.isfinite(out)):
            raise EvaluationError("Residual is not finite")
        return out

    def solve(self,
              equations: Sequence[EquationRecord],
              should_cancel: Optional[Callable[[], bool]] = None) -> SolveResult:
        """
        Solve the equations and write the unknowns into the store on success.

        Args:
            equations: Deferred equations in source order
            should_cancel: Polled once per iteration; returning True aborts the solve

        Returns:
            SolveResult; success is only False for an over-determined system
            whose least-squares fit missed the tolerance (the store is untouched)
        """
        if not equations:
            return SolveResult(success=True, message='No equations to solve')

        self._check_functions(equations)
        unknowns = self.identify_unknowns(equations)
        self.sink.emit(Diagnostic(
            'UnknownsIdentified',
            f"{len(equations)} equations, {len(unknowns)} unknowns: {', '.join(unknowns) or '(none)'}",
            variables=tuple(unknowns),
        ))

        if not unknowns:
            return self._check_consistency(equations)
        if len(equations) < len(unknowns):
            raise UnderdeterminedSystemError(unknowns, len(equations))

        reliable = True
        if len(equations) > len(unknowns):
            warning = OverdeterminedSystemError(unknowns, len(equations))
            self.sink.emit(Diagnostic.from_error(warning, severity='warning'))
            reliable = False

        algorithm = self.settings.algorithm
        self.sink.emit(Diagnostic(
            'SolverStarted',
            f"Solving for {len(unknowns)} unknowns with {algorithm.value}",
            variables=tuple(unknowns),
        ))

        x0 = self.initial_guess(unknowns)
        if algorithm is SolverAlgorithm.DERIVATIVE_FREE_SIMPLEX:
            x, iterations, message = self._solve_simplex(equations, unknowns, x0, should_cancel)
        elif algorithm is SolverAlgorithm.GRADIENT_BASED:
            x, iterations, message = self._solve_gradient(equations, unknowns, x0, should_cancel)
        else:
            raise ValueError(f"Unsupported solver algorithm {algorithm!r}")

        residuals = self._penalized_residuals(equations, unknowns, x)
        objective = float(np.dot(residuals, residuals))
        self.sink.emit(Diagnostic(
            'SolverFinished',
            f"Objective {objective:.6g} after {iterations} iterations ({message})",
            variables=tuple(unknowns),
        ))

        converged = objective < self.settings.tolerance
        if not converged and reliable:
            raise ConvergenceFailureError(objective, iterations, unknowns, message)

        values = {name: float(value) for name, value in zip(unknowns, x)}
        if converged:
            for name, value in values.items():
                self.store.set(name, value, explicit=True, solved=True)

        return SolveResult(
            success=converged,
            unknowns=tuple(unknowns),
            values=values,
            objective=objective,
            iterations=iterations,
            algorithm=algorithm,
            reliable=reliable,
            message=message,
            residuals=tuple(float(r) for r in residuals),
        )

    # -- internals -----------------------------------------------------------

    def _check_functions(self, equations: Sequence[EquationRecord]) -> None:
        for record in equations:
            names = collect_functions(record.equation.lhs)
            collect_functions(record.equation.rhs, names)
            for name in names:
                if canonical_name(name) not in SPECIAL_FORMS and name not in self.functions:
                    raise UnknownFunctionError(name)

    def _check_consistency(self, equations: Sequence[EquationRecord]) -> SolveResult:
        threshold = np.sqrt(self.settings.tolerance)
        evaluator = ExpressionEvaluator(self.store, self.functions, units=self.units)
        residuals = []
        for record in equations:
            try:
                residual = evaluator.evaluate(record.equation.lhs) - evaluator.evaluate(record.equation.rhs)
            except EvaluationError:
                residual = float('inf')
            residuals.append(residual)

        violated = [(record.index, r) for record, r in zip(equations, residuals)
                    if not abs(r) <= threshold]
        if violated:
            indices, values = zip(*violated)
            raise InconsistentSystemError(indices, values)

        objective = float(sum(r * r for r in residuals))
        return SolveResult(success=True, objective=objective, residuals=tuple(residuals),
                           message='All equations satisfied by known values')

    def _penalized_residuals(self, equations: Sequence[EquationRecord],
                             unknowns: Sequence[str], x: np.ndarray) -> np.ndarray:
        overlay = self.store.overlay(dict(zip(unknowns, x)))
        try:
            return self.residuals(equations, overlay)
        except EvaluationError:
            # Steer the optimizer away from points where the equations are undefined
            return np.full(len(equations), PENALTY)

    def _scipy_bounds(self, unknowns: Sequence[str]):
        pairs = [self.settings.bounds_for(name) for name in unknowns]
        if all(lower is None and upper is None for lower, upper in pairs):
            return None
        return pairs

    def _solve_simplex(self, equations, unknowns, x0, should_cancel):
        iterations = [0]

        def objective(x):
            r = self._penalized_residuals(equations, unknowns, x)
            return float(np.dot(r, r))

        def callback(xk):
            iterations[0] += 1
            if should_cancel is not None and should_cancel():
                raise SolveCancelledError(iterations[0])

        result = minimize(
            objective,
            x0,
            method='Nelder-Mead',
            bounds=self._scipy_bounds(unknowns),
            callback=callback,
            options={
                'maxiter': self.settings.max_iterations,
                'xatol': 1e-10,
                'fatol': min(1e-14, self.settings.tolerance * 1e-8),
                'adaptive': len(unknowns) > 3,
            },
        )
        return result.x, int(result.nit), str(result.message)

    def _solve_gradient(self, equations, unknowns, x0, should_cancel):
        evaluations = [0]

        def residual_func(x):
            evaluations[0] += 1
            if should_cancel is not None and should_cancel():
                raise SolveCancelledError(evaluations[0])
            return self._penalized_residuals(equations, unknowns, x)

        pairs = self._scipy_bounds(unknowns)
        if pairs is None:
            method = 'lm'
            bounds = (-np.inf, np.inf)
        else:
            method = 'trf'
            bounds = (
                np.array([-np.inf if lower is None else lower for lower, _ in pairs]),
                np.array([np.inf if upper is None else upper for _, upper in pairs]),
            )

        result = least_squares(
            residual_func,
            x0,
            method=method,
            bounds=bounds,
            xtol=1e-12,
            ftol=1e-12,
            gtol=1e-12,
            max_nfev=self.settings.max_iterations * (len(unknowns) + 1),
        )
        return result.x, int(result.nfev), str(result.message)
