"""
Solver configuration.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple

from eqsolve.core.variable import canonical_name


class SolverAlgorithm(Enum):
    """Optimizer used for the deferred equation system"""
    DERIVATIVE_FREE_SIMPLEX = 'nelder-mead'
    GRADIENT_BASED = 'levenberg-marquardt'

    @classmethod
    def from_name(cls, name: str) -> 'SolverAlgorithm':
        """
        Look up an algorithm by a user-facing name.

        Accepts 'simplex', 'nelder-mead', 'gradient', 'levenberg-marquardt',
        'lm' and the enum member names, case-insensitively.

        Raises:
            ValueError: If the name is not recognized
        """
        key = name.strip().lower().replace('_', '-')
        aliases = {
            'simplex': cls.DERIVATIVE_FREE_SIMPLEX,
            'nelder-mead': cls.DERIVATIVE_FREE_SIMPLEX,
            'derivative-free-simplex': cls.DERIVATIVE_FREE_SIMPLEX,
            'gradient': cls.GRADIENT_BASED,
            'gradient-based': cls.GRADIENT_BASED,
            'levenberg-marquardt': cls.GRADIENT_BASED,
            'lm': cls.GRADIENT_BASED,
        }
        if key not in aliases:
            raise ValueError(
                f"Unknown solver algorithm '{name}'. Choose 'simplex' or 'gradient'"
            )
        return aliases[key]


Bounds = Tuple[Optional[float], Optional[float]]


@dataclass(frozen=True)
class SolverSettings:
    """
    Options for EquationSolver.

    Attributes:
        algorithm: Optimizer to use
        tolerance: Convergence threshold on the sum of squared residuals
        max_iterations: Iteration limit for the optimizer
        guesses: Initial guess per variable (case-insensitive names)
        bounds: (lower, upper) per variable, either side may be None
        fallback_guess: Start value for unknowns with neither a guess nor a stored value

    Example:
        settings = SolverSettings(tolerance=1e-8).with_options(
            algorithm=SolverAlgorithm.GRADIENT_BASED,
            guesses={'T_out': 300.0},
            bounds={'T_out': (0.0, None)},
        )
    """
    algorithm: SolverAlgorithm = SolverAlgorithm.DERIVATIVE_FREE_SIMPLEX
    tolerance: float = 1e-6
    max_iterations: int = 1000
    guesses: Dict[str, float] = field(default_factory=dict)
    bounds: Dict[str, Bounds] = field(default_factory=dict)
    fallback_guess: float = 1.0

    def __post_init__(self):
        if isinstance(self.algorithm, str):
            object.__setattr__(self, 'algorithm', SolverAlgorithm.from_name(self.algorithm))
        object.__setattr__(self, 'guesses',
                           {canonical_name(k): float(v) for k, v in self.guesses.items()})
        object.__setattr__(self, 'bounds',
                           {canonical_name(k): tuple(v) for k, v in self.bounds.items()})
        self.validate()

    def validate(self) -> None:
        """
        Check option values.

        Raises:
            ValueError: On non-positive tolerance or iteration limit, or inverted bounds
        """
        if not self.tolerance > 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")
        for name, (lower, upper) in self.bounds.items():
            if lower is not None and upper is not None and lower > upper:
                raise ValueError(f"Lower bound exceeds upper bound for '{name}': {lower} > {upper}")

    def guess_for(self, name: str) -> Optional[float]:
        return self.guesses.get(canonical_name(name))

    def bounds_for(self, name: str) -> Bounds:
        return self.bounds.get(canonical_name(name), (None, None))

    def with_options(self, **changes) -> 'SolverSettings':
        """Copy with some fields replaced"""
        return replace(self, **changes)
