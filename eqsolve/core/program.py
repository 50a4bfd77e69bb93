"""
EquationProgram: one end-to-end run of an equation file.

The run pipeline is:
  1. parse the source into a File AST (ParseError is fatal)
  2. extract unit annotations and merge them into a fresh VariableStore
  3. execute statements in order, then integrate INTEGRAL assignments
     (evaluation errors are fatal)
  4. solve the deferred equations (SolverError, or a least-squares fit that
     misses the tolerance, becomes a failed RunResult)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from eqsolve.core.diagnostics import Diagnostic, DiagnosticLog, DiagnosticSink
from eqsolve.core.errors import SolverError
from eqsolve.core.executor import StatementExecutor
from eqsolve.core.functions import FunctionRegistry
from eqsolve.core.integrator import IntegralResult, OdeIntegrator
from eqsolve.core.nodes import Directive, File, PlotCommand
from eqsolve.core.settings import SolverSettings
from eqsolve.core.solver import EquationSolver, SolveResult
from eqsolve.core.store import VariableStore
from eqsolve.core.variable import VariableRecord, canonical_name
from eqsolve.parsing.builder import AstBuilder
from eqsolve.parsing.parser import parse as parse_tree
from eqsolve.units.extractor import UnitExtractor
from eqsolve.units.pint_wrapper import UnitSystem


@dataclass(frozen=True)
class RunResult:
    """
    Output of EquationProgram.run().

    Attributes:
        variables: Every variable touched by the run, sorted by name
        success: True if every deferred equation was solved (or none existed)
        solve: SolveResult of the solver phase, None if it raised; an
               unconverged least-squares fit is kept here with success=False
        diagnostics: All diagnostics emitted during the run, in order
        directives: $-directive lines, in source order
        plot_commands: PLOT lines, in source order
        integrals: Trajectory of every INTEGRAL assignment, in source order
        error: Diagnostic describing the solver failure, if any
    """
    variables: Tuple[VariableRecord, ...]
    success: bool
    solve: Optional[SolveResult] = None
    diagnostics: Tuple[Diagnostic, ...] = ()
    directives: Tuple[Directive, ...] = ()
    plot_commands: Tuple[PlotCommand, ...] = ()
    integrals: Tuple[IntegralResult, ...] = ()
    error: Optional[Diagnostic] = None

    def variable(self, name: str) -> Optional[VariableRecord]:
        """Record for a variable (case-insensitive), or None"""
        key = canonical_name(name)
        for record in self.variables:
            if record.name == key:
                return record
        return None

    def value(self, name: str) -> Optional[float]:
        record = self.variable(name)
        return record.value if record else None

    def format_table(self) -> str:
        """Plain-text listing: one 'name = value [unit] (source)' line per variable"""
        lines = []
        for record in self.variables:
            value = '(unset)' if record.value is None else f"{record.value:.6g}"
            unit = f" [{record.unit}]" if record.unit else ''
            lines.append(f"{record.display_name} = {value}{unit} ({record.source})")
        if self.error is not None:
            lines.append(f"{self.error.kind}: {self.error.message}")
        return '\n'.join(lines)


class EquationProgram:
    """
    A parsed equation file ready to run.

    Each run() uses a fresh VariableStore, so one program can be run
    repeatedly (or concurrently) with different settings.

    Usage:
        program = EquationProgram.from_source('''
            x + y = 10
            x - y = 2
        ''')
        result = program.run()
        result.value('x')   # 6.0

    Args:
        source: Source text
        functions: Function registry (builtins if omitted)
        units: Unit system for CONVERT/CONVERTTEMP and unit checks

    Raises:
        ParseError: If the source does not parse
    """

    def __init__(self,
                 source: str,
                 functions: Optional[FunctionRegistry] = None,
                 units: Optional[UnitSystem] = None):
        self.source = source
        self.functions = functions if functions is not None else FunctionRegistry()
        self.units = units
        self.ast: File = AstBuilder().build(parse_tree(source))
        self.unit_annotations = UnitExtractor().extract(source)

    @classmethod
    def from_source(cls, source: str, **kwargs) -> 'EquationProgram':
        return cls(source, **kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> 'EquationProgram':
        """Load a UTF-8 equation file (.lse)"""
        return cls(Path(path).read_text(encoding='utf-8'), **kwargs)

    def run(self,
            settings: Optional[SolverSettings] = None,
            sink: Optional[DiagnosticSink] = None,
            should_cancel: Optional[Callable[[], bool]] = None,
            on_directive: Optional[Callable[[Directive], None]] = None,
            on_plot: Optional[Callable[[PlotCommand], None]] = None) -> RunResult:
        """
        Execute the program and solve its equations.

        Args:
            settings: Solver options
            sink: Extra sink receiving diagnostics as they are emitted
            should_cancel: Cooperative cancellation check for the solver
            on_directive: Callback for $-directive lines
            on_plot: Callback for PLOT lines

        Returns:
            RunResult; success is False when the solver phase failed

        Raises:
            UndefinedVariableError, EvaluationError, UnknownFunctionError,
            FunctionArgumentError, UnitNotRecognizedError: fatal errors
        """
        log = DiagnosticLog()
        emit = _Tee(log, sink)
        store = VariableStore()
        store.apply_units(self.unit_annotations)

        executor = StatementExecutor(store, self.functions, sink=emit,
                                     on_directive=on_directive, on_plot=on_plot,
                                     units=self.units)
        execution = executor.execute(self.ast)
        integrals = OdeIntegrator(store, self.functions, sink=emit, units=self.units).run(execution)

        solver = EquationSolver(store, self.functions, settings, sink=emit, units=self.units)
        solve = None
        error = None
        try:
            solve = solver.solve(execution.equations, should_cancel=should_cancel)
        except SolverError as e:
            error = Diagnostic.from_error(e)
            emit.emit(error)
        if solve is not None and not solve.success:
            error = Diagnostic(
                'LeastSquaresFit',
                f"Best least-squares fit leaves objective {solve.objective:.6g} above "
                f"tolerance; fitted values are reported but not stored",
                'error',
                variables=solve.unknowns,
            )
            emit.emit(error)

        return RunResult(
            variables=tuple(store.records()),
            success=error is None,
            solve=solve,
            diagnostics=tuple(log.records),
            directives=tuple(execution.directives),
            plot_commands=tuple(execution.plot_commands),
            integrals=tuple(integrals),
            error=error,
        )


class _Tee:
    """Forwards diagnostics to the run log and an optional caller sink"""

    def __init__(self, log: DiagnosticLog, extra: Optional[DiagnosticSink]):
        self.log = log
        self.extra = extra

    def emit(self, diagnostic: Diagnostic) -> None:
        self.log.emit(diagnostic)
        if self.extra is not None:
            self.extra.emit(diagnostic)
