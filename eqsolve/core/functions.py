"""
FunctionRegistry: name -> callable table used by expression evaluation.
"""

import warnings
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import numpy as np

from eqsolve.core.errors import FunctionArgumentError, UnknownFunctionError
from eqsolve.core.variable import canonical_name


@dataclass(frozen=True)
class FunctionInfo:
    """
    A registered function.

    Attributes:
        name: Canonical (lower-case) name
        min_args: Minimum argument count
        max_args: Maximum argument count, None for variadic
        implementation: Callable taking positional floats, returning a float
    """
    name: str
    min_args: int
    max_args: Optional[int]
    implementation: Callable[..., float]

    def check_arity(self, count: int) -> None:
        if count < self.min_args:
            raise FunctionArgumentError(
                f"Function '{self.name}' requires at least {self.min_args} arguments, "
                f"but {count} were provided"
            )
        if self.max_args is not None and count > self.max_args:
            raise FunctionArgumentError(
                f"Function '{self.name}' accepts at most {self.max_args} arguments, "
                f"but {count} were provided"
            )

    def __call__(self, *args: float) -> float:
        self.check_arity(len(args))
        return self.implementation(*args)


def _round(x, digits=0):
    return np.round(x, int(digits))


def _if(condition, when_true, when_false):
    return when_true if condition != 0 else when_false


# name, min_args, max_args, implementation
_BUILTINS = [
    # Trigonometric (radians)
    ('sin', 1, 1, np.sin),
    ('cos', 1, 1, np.cos),
    ('tan', 1, 1, np.tan),
    ('asin', 1, 1, np.arcsin),
    ('acos', 1, 1, np.arccos),
    ('atan', 1, 1, np.arctan),
    ('atan2', 2, 2, np.arctan2),
    # Hyperbolic
    ('sinh', 1, 1, np.sinh),
    ('cosh', 1, 1, np.cosh),
    ('tanh', 1, 1, np.tanh),
    # Exponential and logarithmic (log is natural log)
    ('exp', 1, 1, np.exp),
    ('log', 1, 1, np.log),
    ('ln', 1, 1, np.log),
    ('log10', 1, 1, np.log10),
    # Power
    ('sqrt', 1, 1, np.sqrt),
    ('pow', 2, 2, np.power),
    # Rounding
    ('abs', 1, 1, np.abs),
    ('ceil', 1, 1, np.ceil),
    ('floor', 1, 1, np.floor),
    ('round', 1, 2, _round),
    # Selection
    ('min', 2, None, lambda *args: min(args)),
    ('max', 2, None, lambda *args: max(args)),
    ('if', 3, 3, _if),
    # Constants
    ('pi', 0, 0, lambda: np.pi),
]


class FunctionRegistry:
    """
    Case-insensitive registry of numeric functions.

    A fresh registry is pre-populated with the builtin math functions.
    Registries carry no state beyond their table, so one instance can be
    shared by concurrent runs once registration is finished.

    Usage:
        registry = FunctionRegistry()
        registry.resolve('SIN')(0.5)
        registry.register('cube', 1, 1, lambda x: x ** 3)
    """

    def __init__(self, include_builtins: bool = True):
        self._functions: Dict[str, FunctionInfo] = {}
        self._builtin_names = set()
        if include_builtins:
            for name, min_args, max_args, implementation in _BUILTINS:
                self._functions[name] = FunctionInfo(name, min_args, max_args, implementation)
                self._builtin_names.add(name)

    def register(self,
                 name: str,
                 min_args: int,
                 max_args: Optional[int],
                 implementation: Callable[..., float]) -> None:
        """
        Register (or replace) a function.

        Args:
            name: Function name as written in source (case-insensitive)
            min_args: Minimum number of arguments
            max_args: Maximum number of arguments, None for variadic
            implementation: Callable receiving the evaluated arguments

        Raises:
            ValueError: If the argument bounds are inconsistent
        """
        if min_args < 0 or (max_args is not None and max_args < min_args):
            raise ValueError(f"Invalid argument bounds for '{name}': {min_args}..{max_args}")
        key = canonical_name(name)
        if key in self._builtin_names:
            warnings.warn(f"Overriding builtin function '{key}'")
            self._builtin_names.discard(key)
        self._functions[key] = FunctionInfo(key, min_args, max_args, implementation)

    def resolve(self, name: str) -> FunctionInfo:
        """
        Look up a function.

        Raises:
            UnknownFunctionError: If no function has this name
        """
        info = self._functions.get(canonical_name(name))
        if info is None:
            raise UnknownFunctionError(name)
        return info

    def has(self, name: str) -> bool:
        return canonical_name(name) in self._functions

    def names(self) -> List[str]:
        return sorted(self._functions)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __repr__(self) -> str:
        return f"FunctionRegistry({len(self._functions)} functions)"
