"""eqsolve: parse, execute and solve engineering equation files."""

from eqsolve.core import EquationProgram, RunResult, SolverAlgorithm, SolverSettings

__version__ = '0.1.0'

__all__ = ['EquationProgram', 'RunResult', 'SolverAlgorithm', 'SolverSettings']
