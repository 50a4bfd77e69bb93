"""Unit annotations: extraction from source text and resolution via pint."""

from eqsolve.units.extractor import UnitExtractor
from eqsolve.units.pint_wrapper import ResolvedUnit, UnitSystem, default_unit_system, normalize_unit

__all__ = [
    'UnitExtractor',
    'ResolvedUnit',
    'UnitSystem',
    'default_unit_system',
    'normalize_unit',
]
