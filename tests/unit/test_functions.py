"""Unit tests for the function registry."""

import math

import pytest
from eqsolve.core.errors import FunctionArgumentError, UnknownFunctionError
from eqsolve.core.functions import FunctionRegistry


@pytest.fixture
def registry():
    return FunctionRegistry()


def test_builtins_present(registry):
    """Common math functions are registered"""
    for name in ('sin', 'cos', 'exp', 'ln', 'log10', 'sqrt', 'abs', 'min', 'max', 'pi'):
        assert name in registry


def test_lookup_is_case_insensitive(registry):
    """SIN, Sin and sin are the same function"""
    assert registry.resolve('SIN') is registry.resolve('sin')
    assert registry.resolve('Sqrt')(16.0) == pytest.approx(4.0)


def test_builtin_values(registry):
    """Spot-check builtin results"""
    assert registry.resolve('pi')() == pytest.approx(math.pi)
    assert registry.resolve('atan2')(1.0, 1.0) == pytest.approx(math.pi / 4)
    assert registry.resolve('round')(2.567, 2) == pytest.approx(2.57)
    assert registry.resolve('max')(1.0, 5.0, 3.0) == 5.0
    assert registry.resolve('if')(0.0, 1.0, 2.0) == 2.0
    assert registry.resolve('if')(1.0, 1.0, 2.0) == 1.0


def test_unknown_function(registry):
    """Missing names raise UnknownFunctionError"""
    with pytest.raises(UnknownFunctionError, match="enthalpy"):
        registry.resolve('enthalpy')


def test_arity_checked(registry):
    """Calling with the wrong number of arguments fails"""
    with pytest.raises(FunctionArgumentError, match="at least 1"):
        registry.resolve('sin')()
    with pytest.raises(FunctionArgumentError, match="at most 1"):
        registry.resolve('sin')(1.0, 2.0)
    with pytest.raises(FunctionArgumentError, match="at least 2"):
        registry.resolve('min')(1.0)


def test_register_custom(registry):
    """User functions can be added"""
    registry.register('Cube', 1, 1, lambda x: x ** 3)
    assert registry.resolve('cube')(2.0) == 8.0
    assert 'cube' in registry.names()


def test_register_invalid_bounds(registry):
    """Inconsistent argument bounds are rejected"""
    with pytest.raises(ValueError, match="Invalid argument bounds"):
        registry.register('bad', 2, 1, lambda *a: 0.0)


def test_override_builtin_warns(registry):
    """Replacing a builtin emits a warning"""
    with pytest.warns(UserWarning, match="Overriding builtin"):
        registry.register('sin', 1, 1, lambda x: 0.0)
    assert registry.resolve('sin')(1.0) == 0.0


def test_empty_registry():
    """Builtins can be left out"""
    registry = FunctionRegistry(include_builtins=False)
    assert registry.names() == []
