"""
OdeIntegrator: runs the INTEGRAL assignments collected by StatementExecutor.

``y = INTEGRAL(dydt, t, 0, 2)`` integrates the state ``y`` over ``t`` from 0
to 2 with scipy.integrate.solve_ivp, starting from the value ``y`` holds when
integration begins (0 if it has none). ``dydt`` is defined by the deferred
equations that reference it:

    explicit    dydt = -k * y            evaluated directly at each point
    implicit    dydt + 4*t*y = -2*t      solved for its unknowns at each point

Integrals run after every statement has executed and before the equation
solver. The derivative equations they use are removed from the solver's set,
and the state variable is written to the store as known.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.integrate import solve_ivp

from eqsolve.core.diagnostics import Diagnostic, DiagnosticSink, NullSink
from eqsolve.core.errors import EvaluationError, SolverError
from eqsolve.core.evaluator import ExpressionEvaluator, collect_variables
from eqsolve.core.executor import EquationRecord, ExecutionResult, IntegralRecord
from eqsolve.core.functions import FunctionRegistry
from eqsolve.core.nodes import Expression, Variable
from eqsolve.core.settings import SolverAlgorithm, SolverSettings
from eqsolve.core.solver import EquationSolver
from eqsolve.core.store import VariableStore
from eqsolve.core.variable import canonical_name
from eqsolve.units.pint_wrapper import UnitSystem


@dataclass(frozen=True)
class IntegralResult:
    """
    Trajectory of one integrated state variable.

    Attributes:
        target: State variable
        variable: Independent variable
        times: Independent variable values, lower to upper limit
        values: State value at each time
    """
    target: str
    variable: str
    times: Tuple[float, ...]
    values: Tuple[float, ...]

    @property
    def final_value(self) -> float:
        return self.values[-1]


class OdeIntegrator:
    """
    Integrates INTEGRAL assignments.

    Args:
        store: Variable table; read for limits and constants, written with
            each integral's final value
        functions: Function registry for the derivative equations
        sink: Diagnostic sink
        units: Unit system for CONVERT/CONVERTTEMP inside derivative equations
        rtol, atol: solve_ivp tolerances

    Raises (from run/integrate):
        EvaluationError: A derivative has no defining equation, its equations
            cannot be solved at some point, or solve_ivp fails
        UndefinedVariableError: A limit reads an unassigned variable

    Example:
        execution = StatementExecutor(store, functions).execute(ast)
        results = OdeIntegrator(store, functions).run(execution)
        results[0].final_value
    """

    def __init__(self,
                 store: VariableStore,
                 functions: FunctionRegistry,
                 sink: Optional[DiagnosticSink] = None,
                 units: Optional[UnitSystem] = None,
                 rtol: float = 1e-8,
                 atol: float = 1e-10):
        self.store = store
        self.functions = functions
        self.sink = sink if sink is not None else NullSink()
        self.units = units
        self.rtol = rtol
        self.atol = atol

    def run(self, execution: ExecutionResult) -> List[IntegralResult]:
        """Integrate every collected integral in source order and consume its equations"""
        results = []
        consumed = set()
        for integral in execution.integrals:
            equations = [record for record in execution.equations
                         if record.references(integral.derivative)]
            results.append(self.integrate(integral, equations))
            consumed.update(record.index for record in equations)
        if consumed:
            execution.equations = [record for record in execution.equations
                                   if record.index not in consumed]
        return results

    def integrate(self, integral: IntegralRecord,
                  equations: Sequence[EquationRecord]) -> IntegralResult:
        """Integrate one state variable and store its value at the upper limit"""
        if not equations:
            raise EvaluationError(
                f"Derivative '{integral.derivative}' used by INTEGRAL for "
                f"'{integral.target}' is not defined by any equation"
            )

        evaluator = ExpressionEvaluator(self.store, self.functions, units=self.units)
        lower = evaluator.evaluate(integral.lower)
        upper = evaluator.evaluate(integral.upper)
        step = evaluator.evaluate(integral.step) if integral.step is not None else 0.0
        y0 = self.store.get(integral.target) if self.store.has_value(integral.target) else 0.0

        if upper == lower:
            times, values = (lower,), (y0,)
        else:
            slope = self._slope_function(integral, equations)
            t_eval = None
            max_step = np.inf
            if step > 0:
                count = max(1, int(np.ceil(abs(upper - lower) / step)))
                t_eval = np.linspace(lower, upper, count + 1)
                max_step = step
            solution = solve_ivp(
                lambda t, y: [slope(t, y[0])],
                (lower, upper),
                [y0],
                method='RK45',
                t_eval=t_eval,
                rtol=self.rtol,
                atol=self.atol,
                max_step=max_step,
            )
            if not solution.success:
                raise EvaluationError(f"Integration of '{integral.target}' failed: {solution.message}")
            times = tuple(float(t) for t in solution.t)
            values = tuple(float(v) for v in solution.y[0])

        self.store.set(integral.target, values[-1], explicit=True, solved=True)
        self.sink.emit(Diagnostic(
            'IntegralEvaluated',
            f"{integral.target} = {values[-1]:.6g} at {integral.variable} = {upper:g} "
            f"({len(times)} points from {lower:g})",
            variables=(integral.target,),
        ))
        return IntegralResult(integral.target, integral.variable, times, values)

    def _slope_function(self, integral: IntegralRecord,
                        equations: Sequence[EquationRecord]) -> Callable[[float, float], float]:
        explicit = _explicit_definition(integral.derivative, equations)
        if explicit is not None:
            def slope(t, y):
                state = self.store.overlay({integral.variable: t, integral.target: y})
                evaluator = ExpressionEvaluator(state, self.functions, units=self.units)
                return evaluator.evaluate(explicit)
            return slope

        last = [0.0]

        def solved_slope(t, y):
            # Each point is solved in a scratch copy; the run's store only sees the result
            scratch = self.store.copy()
            scratch.set(integral.variable, t)
            scratch.set(integral.target, y)
            settings = SolverSettings(algorithm=SolverAlgorithm.GRADIENT_BASED,
                                      tolerance=1e-14,
                                      guesses={integral.derivative: last[0]})
            solver = EquationSolver(scratch, self.functions, settings, units=self.units)
            try:
                solver.solve(equations)
            except SolverError as e:
                raise EvaluationError(
                    f"Cannot solve for '{integral.derivative}' at "
                    f"{integral.variable} = {t:g}, {integral.target} = {y:g}: {e}"
                ) from e
            last[0] = scratch.get(integral.derivative)
            return last[0]
        return solved_slope


def _explicit_definition(derivative: str, equations: Sequence[EquationRecord]) -> Optional[Expression]:
    """Right side of a lone 'derivative = expr' equation that does not read the derivative"""
    if len(equations) != 1:
        return None
    equation = equations[0].equation
    key = canonical_name(derivative)
    if not (isinstance(equation.lhs, Variable) and canonical_name(equation.lhs.name) == key):
        return None
    if any(canonical_name(name) == key for name in collect_variables(equation.rhs)):
        return None
    return equation.rhs
