"""
Solve the same model with both algorithms and with bounds on the unknowns.

The circle/line model has two intersections; an initial guess plus a lower
bound on x selects the one with positive x.
"""

from pathlib import Path

from eqsolve.core.program import EquationProgram
from eqsolve.core.settings import SolverAlgorithm, SolverSettings

MODEL = Path(__file__).parent / 'models' / 'circle_line.lse'


def main():
    program = EquationProgram.from_file(MODEL)

    print("=" * 60)
    print("SOLVER COMPARISON: circle_line.lse")
    print("=" * 60)

    for algorithm in SolverAlgorithm:
        for bounded in (False, True):
            settings = SolverSettings(algorithm=algorithm, tolerance=1e-10)
            if bounded:
                settings = settings.with_options(
                    guesses={'x': 1.0},
                    bounds={'x': (0.0, None)},
                )
            result = program.run(settings)
            label = f"{algorithm.value}{' (x >= 0)' if bounded else ''}"
            if result.success:
                print(f"\n{label}: x = {result.value('x'):.6f}, y = {result.value('y'):.6f}, "
                      f"{result.solve.iterations} iterations")
            else:
                print(f"\n{label}: failed - {result.error.message}")


if __name__ == "__main__":
    main()
