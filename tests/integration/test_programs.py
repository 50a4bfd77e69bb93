"""Integration tests: whole equation files through EquationProgram.run()."""

from pathlib import Path

import pytest
from eqsolve.core.diagnostics import DiagnosticLog
from eqsolve.core.errors import ParseError, UndefinedVariableError
from eqsolve.core.program import EquationProgram
from eqsolve.core.settings import SolverAlgorithm, SolverSettings


MODELS = Path(__file__).resolve().parents[2] / 'examples' / 'models'


def run_source(text, **settings):
    """Helper: parse and run source text"""
    return EquationProgram.from_source(text).run(SolverSettings(**settings))


# ============================================================================
# Example models
# ============================================================================

def test_two_equations_model():
    """The two-equation example solves to x = 6, y = 4"""
    result = EquationProgram.from_file(MODELS / 'two_equations.lse').run()

    assert result.success
    assert result.value('x') == pytest.approx(6.0, abs=1e-6)
    assert result.value('y') == pytest.approx(4.0, abs=1e-6)
    assert result.variable('x').source == 'solved'


@pytest.mark.parametrize("algorithm", list(SolverAlgorithm))
def test_pipe_heating_model(algorithm):
    """Assignments, conversions, units, equations, directives and plots together"""
    program = EquationProgram.from_file(MODELS / 'pipe_heating.lse')
    result = program.run(SolverSettings(algorithm=algorithm, tolerance=1e-10))

    assert result.success
    assert result.value('L') == pytest.approx(30 * 0.3048)
    assert result.value('T_in_K') == pytest.approx(293.15)
    assert result.value('T_out') == pytest.approx(20 + 84 / (0.5 * 4.18), abs=1e-4)
    assert result.value('q_per_length') == pytest.approx(84 / (30 * 0.3048), abs=1e-4)

    assert result.variable('c_p').unit == 'kJ/kg-K'
    assert result.variable('T_in').unit == 'C'
    assert result.variable('Q_dot').unit == 'kW'
    assert result.variable('L').unit == 'm'
    assert result.variable('T_out').unit is None

    assert [d.raw_text for d in result.directives] == ['$TABULAR on']
    assert [p.raw_text for p in result.plot_commands] == ['PLOT T_in, T_out']


def test_circle_line_with_bounds():
    """Bounds select the positive intersection"""
    program = EquationProgram.from_file(MODELS / 'circle_line.lse')
    settings = SolverSettings(algorithm=SolverAlgorithm.GRADIENT_BASED,
                              guesses={'x': -3.0}, bounds={'x': (0.0, None)})
    result = program.run(settings)

    assert result.success
    x = result.value('x')
    y = result.value('y')
    assert x > 0
    assert x ** 2 + y ** 2 == pytest.approx(4.0, abs=1e-6)
    assert y == pytest.approx(0.5 * x + 0.5, abs=1e-6)


# ============================================================================
# Run-level error policy
# ============================================================================

def test_parse_error_is_fatal():
    """Syntax errors surface from from_source, before any run"""
    with pytest.raises(ParseError):
        EquationProgram.from_source("x := 1\ny := (2")


def test_evaluation_error_is_fatal():
    """Undefined references abort the run"""
    program = EquationProgram.from_source("a := 1\nb := a + c\nx + a = 2")
    with pytest.raises(UndefinedVariableError):
        program.run()


def test_solver_failure_is_reported():
    """Under-determined systems give a failed result with assignment state kept"""
    result = run_source("a := 3\nb := a * 2\nx + y = a")

    assert not result.success
    assert result.solve is None
    assert result.error.kind == 'UnderdeterminedSystemError'
    assert result.error.variables == ('x', 'y')
    assert result.value('b') == 6.0
    assert result.variable('x') is None
    assert result.error in result.diagnostics


def test_convergence_failure_is_reported():
    """Impossible equations fail cleanly"""
    result = run_source("x * x + 1 = 0", max_iterations=200)

    assert not result.success
    assert result.error.kind == 'ConvergenceFailureError'
    assert result.variable('x') is None
    assert "ConvergenceFailureError" in result.format_table()


def test_cancellation_is_reported():
    """A cancelled solve is a failed run, not an exception"""
    program = EquationProgram.from_source("x + y = 10\nx - y = 2")
    result = program.run(should_cancel=lambda: True)

    assert not result.success
    assert result.error.kind == 'SolveCancelledError'


# ============================================================================
# Behaviour details
# ============================================================================

def test_case_insensitive_identifiers():
    """Different spellings address the same variable"""
    result = run_source("T_Hot := 350\nt_hot - T_cold = 40")

    assert result.success
    assert result.value('T_COLD') == pytest.approx(310.0, abs=1e-6)
    assert result.variable('t_hot').display_name == 'T_Hot'


def test_self_referential_assignment():
    """x = x + 1 updates x once rather than posing an unsolvable equation"""
    result = run_source("x := 1\nx = x + 1")
    assert result.success
    assert result.value('x') == 2.0


def test_units_apply_before_execution():
    """Unit mismatches between annotated variables are warned during execution"""
    log = DiagnosticLog()
    program = EquationProgram.from_source("d := 5 [m]\nt := 2 [s]\nbad := d + t")
    result = program.run(sink=log)

    assert result.success
    assert result.value('bad') == 7.0
    assert [w.kind for w in log.warnings()] == ['UnitMismatch']


def test_overdetermined_run_is_unreliable():
    """Consistent extra equations still solve but are flagged"""
    result = run_source("2 * x = 4\nx + x = 4")
    assert result.success
    assert not result.solve.reliable
    assert any(d.kind == 'OverdeterminedSystemError' for d in result.diagnostics)


def test_runs_are_independent():
    """Each run starts from a fresh variable store"""
    program = EquationProgram.from_source("x + y = 10\nx - y = 2")
    first = program.run()
    second = program.run(SolverSettings(algorithm='gradient'))
    assert first.value('x') == pytest.approx(second.value('x'), abs=1e-6)
    assert second.solve.algorithm is SolverAlgorithm.GRADIENT_BASED


def test_format_table():
    """Variables render as name = value [unit] (source)"""
    result = run_source("P := 101.3 [kPa]\n2 * x = P")
    lines = result.format_table().splitlines()
    assert lines[0] == 'P = 101.3 [kPa] (explicit)'
    assert lines[1].startswith('x = 50.65')
    assert lines[1].endswith('(solved)')


def test_custom_function():
    """Functions registered on the program's registry are usable in equations"""
    program = EquationProgram.from_source("cube(x) = 27")
    program.functions.register('cube', 1, 1, lambda v: v ** 3)
    result = program.run(SolverSettings(guesses={'x': 2.0}))
    assert result.value('x') == pytest.approx(3.0, abs=1e-5)


def test_inconsistent_overdetermined_run_keeps_fit():
    """The best fit of an inconsistent system is reported with a failed run"""
    result = run_source("(x) = 1\n2 * x = 3")

    assert not result.success
    assert result.solve is not None
    assert not result.solve.reliable
    assert result.solve.values['x'] == pytest.approx(1.4, abs=1e-4)
    assert result.variable('x') is None
    assert result.error.kind == 'LeastSquaresFit'
    assert result.error.variables == ('x',)
    assert [d.kind for d in result.diagnostics if d.severity != 'info'] == [
        'OverdeterminedSystemError', 'LeastSquaresFit',
    ]


# ============================================================================
# Statements on consecutive lines
# ============================================================================

def test_line_starting_with_unary_minus():
    """-b + a = 0 on its own line is a separate equation"""
    result = run_source("a := 3\n-b + a = 0")
    assert result.success
    assert result.value('b') == pytest.approx(3.0, abs=1e-6)


def test_equations_starting_with_minus():
    """x + y = 10 and -x + y = 2 give x = 4, y = 6"""
    result = run_source("x + y = 10\n-x + y = 2")
    assert result.success
    assert result.value('x') == pytest.approx(4.0, abs=1e-6)
    assert result.value('y') == pytest.approx(6.0, abs=1e-6)


def test_line_starting_with_parenthesis():
    """(c) = ... after an assignment ending in a name is an equation, not a call"""
    result = run_source("b := 2\na := b\n(c) = a + 1")
    assert result.success
    assert result.value('a') == 2.0
    assert result.value('c') == pytest.approx(3.0, abs=1e-6)


def test_tank_draining_model():
    """INTEGRAL fixes the final level, the solver then finds the volume"""
    result = EquationProgram.from_file(MODELS / 'tank_draining.lse').run()

    assert result.success
    # h(t) = (2 - 0.25 t)^2 from h(0) = 4
    assert result.value('h') == pytest.approx(1.0, abs=1e-6)
    assert result.value('V') == pytest.approx(2.0, abs=1e-5)
    assert result.variable('h').unit == 'm'

    integral = result.integrals[0]
    assert integral.target == 'h'
    assert integral.times == pytest.approx(tuple(0.5 * i for i in range(9)))
    assert integral.values[4] == pytest.approx(2.25, abs=1e-6)
    assert result.solve.unknowns == ('V',)
    assert 'IntegralEvaluated' in [d.kind for d in result.diagnostics]
