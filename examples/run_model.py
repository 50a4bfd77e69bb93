"""
Run an equation file and print the resulting variable table.

Usage:
    python examples/run_model.py examples/models/pipe_heating.lse [simplex|gradient]
"""

import sys
from pathlib import Path

from eqsolve.core.diagnostics import DiagnosticLog
from eqsolve.core.program import EquationProgram
from eqsolve.core.settings import SolverAlgorithm, SolverSettings

MODELS = Path(__file__).parent / 'models'


def main(argv):
    path = Path(argv[1]) if len(argv) > 1 else MODELS / 'two_equations.lse'
    algorithm = SolverAlgorithm.from_name(argv[2]) if len(argv) > 2 else SolverAlgorithm.DERIVATIVE_FREE_SIMPLEX

    print("=" * 60)
    print(f"RUNNING {path.name}")
    print("=" * 60)

    program = EquationProgram.from_file(path)
    log = DiagnosticLog()
    result = program.run(SolverSettings(algorithm=algorithm), sink=log)

    print("\nDiagnostics:")
    for diagnostic in log:
        print(f"  {diagnostic}")

    print("\nVariables:")
    for line in result.format_table().splitlines():
        print(f"  {line}")

    if result.solve is not None and result.solve.unknowns:
        print(f"\nSolved {len(result.solve.unknowns)} unknowns in "
              f"{result.solve.iterations} iterations (objective {result.solve.objective:.3e})")
        if not result.solve.reliable:
            print("  Warning: over-determined system, least-squares result")

    for integral in result.integrals:
        print(f"\nIntegral of {integral.target} over {integral.variable}:")
        for time, value in zip(integral.times, integral.values):
            print(f"  {integral.variable} = {time:<10.4g} {integral.target} = {value:.6g}")

    for command in result.plot_commands:
        print(f"\nPlot request (not rendered): {command.raw_text}")

    print("\n" + "=" * 60)
    print("SUCCESS" if result.success else "SOLVE FAILED")
    print("=" * 60)
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv))
