"""
Wrapper around pint with caching for unit resolution and conversion.

pint is the de facto Python unit library. This wrapper translates the
engineering unit spelling used in equation files (``kJ/kg-K``, ``W/m^2-K``,
``C`` for Celsius) into pint expressions and caches the results.
"""

import re
from dataclasses import dataclass
from functools import lru_cache

import pint

from eqsolve.core.errors import UnitNotRecognizedError


# Single-symbol spellings whose pint meaning differs from engineering use
_ALIASES = {
    'C': 'degC',
    'F': 'degF',
    'R': 'degR',
    'deltaC': 'delta_degC',
    'deltaF': 'delta_degF',
    '-': '',
    '': '',
}

_KIND_UNITS = {
    'Length': 'm',
    'Mass': 'kg',
    'Time': 's',
    'Temperature': 'K',
    'AmountOfSubstance': 'mol',
    'ElectricCurrent': 'A',
    'Area': 'm**2',
    'Volume': 'm**3',
    'Speed': 'm/s',
    'Acceleration': 'm/s**2',
    'Density': 'kg/m**3',
    'MassFlow': 'kg/s',
    'VolumeFlow': 'm**3/s',
    'SpecificVolume': 'm**3/kg',
    'Force': 'N',
    'Pressure': 'Pa',
    'Energy': 'J',
    'Power': 'W',
    'SpecificEnergy': 'J/kg',
    'SpecificEntropy': 'J/(kg*K)',
    'HeatTransferCoefficient': 'W/(m**2*K)',
    'ThermalConductivity': 'W/(m*K)',
    'HeatFlux': 'W/m**2',
    'DynamicViscosity': 'Pa*s',
    'KinematicViscosity': 'm**2/s',
    'Frequency': 'Hz',
}

_FACTOR_SEPARATORS = re.compile(r'\s*(?:(?<!\*)-|·)\s*')


@dataclass(frozen=True)
class ResolvedUnit:
    """
    Result of resolving a unit string.

    Attributes:
        kind: Quantity kind ('Temperature', 'Pressure', ...) or the pint
              dimensionality string when no name is known
        unit: Normalized pint unit expression
    """
    kind: str
    unit: str


def normalize_unit(raw: str) -> str:
    """
    Rewrite an engineering unit string into pint syntax.

    Rules:
        - '^' becomes '**'
        - '-' and '·' between factors mean multiplication
        - everything after the first '/' is the denominator, so
          'W/m^2-K' means W/(m**2*K)
        - single symbols in _ALIASES are replaced ('C' -> 'degC')

    Example:
        normalize_unit('kJ/kg-K')   # 'kJ/(kg*K)'
        normalize_unit('W/m^2-K')   # 'W/(m**2*K)'
    """
    text = raw.strip()
    if text.startswith('[') and text.endswith(']'):
        text = text[1:-1].strip()
    if text in _ALIASES:
        return _ALIASES[text]
    text = text.replace('^', '**')

    def join_factors(part: str) -> str:
        factors = [f for f in _FACTOR_SEPARATORS.split(part.strip()) if f]
        return '*'.join(_ALIASES.get(f, f) for f in factors)

    numerator, slash, denominator = text.partition('/')
    result = join_factors(numerator) or '1'
    if slash:
        denominator = denominator.replace('/', '-')
        den = join_factors(denominator)
        result = f"{result}/({den})" if '*' in den else f"{result}/{den}"
    return result


class UnitSystem:
    """
    Interface to unit resolution and conversion via pint.

    Example:
        units = UnitSystem()
        units.resolve('kPa')                  # ResolvedUnit('Pressure', 'kPa')
        units.conversion_factor('ft', 'm')    # 0.3048
        units.convert_temperature(20.0, 'C', 'K')  # 293.15
    """

    def __init__(self, registry: pint.UnitRegistry | None = None):
        """
        Args:
            registry: pint registry to use (a private one is created if omitted)
        """
        self.registry = registry if registry is not None else pint.UnitRegistry()
        self._kinds = {
            self.registry.parse_units(unit).dimensionality: kind
            for kind, unit in _KIND_UNITS.items()
        }

    @lru_cache(maxsize=1024)
    def _parse(self, raw: str) -> pint.Unit:
        normalized = normalize_unit(raw)
        if normalized == '':
            return self.registry.dimensionless
        try:
            return self.registry.parse_units(normalized)
        except pint.PintError as e:
            raise UnitNotRecognizedError(raw, str(e)) from e
        except Exception as e:
            # pint's expression parser raises tokenizer errors for malformed text
            raise UnitNotRecognizedError(raw, 'malformed unit expression') from e

    def resolve(self, raw: str) -> ResolvedUnit:
        """
        Resolve a raw unit string.

        Raises:
            UnitNotRecognizedError: If pint cannot interpret the unit
        """
        unit = self._parse(raw)
        dimensionality = unit.dimensionality
        if not dimensionality:
            kind = 'Dimensionless'
        else:
            kind = self._kinds.get(dimensionality, str(dimensionality))
        return ResolvedUnit(kind=kind, unit=normalize_unit(raw))

    def compatible(self, unit_a: str, unit_b: str) -> bool:
        """True if both units have the same dimensionality"""
        return self._parse(unit_a).dimensionality == self._parse(unit_b).dimensionality

    def is_offset(self, raw: str) -> bool:
        """True for units with an offset zero point (degC, degF)"""
        unit = self._parse(raw)
        try:
            return self.registry.Quantity(0.0, unit).to_base_units().magnitude != 0.0
        except pint.OffsetUnitCalculusError:
            return True

    def conversion_factor(self, from_unit: str, to_unit: str) -> float:
        """
        Multiplicative factor from one unit to another.

        Raises:
            UnitNotRecognizedError: Unknown unit
            ValueError: Incompatible kinds, or offset temperature units
        """
        source = self._parse(from_unit)
        target = self._parse(to_unit)
        if source.dimensionality != target.dimensionality:
            raise ValueError(
                f"Units are not compatible for conversion: '{from_unit}' "
                f"({self.resolve(from_unit).kind}) and '{to_unit}' ({self.resolve(to_unit).kind})"
            )
        if self.is_offset(from_unit) or self.is_offset(to_unit):
            raise ValueError(
                f"'{from_unit}' -> '{to_unit}' has an offset zero point; use CONVERTTEMP"
            )
        return float(self.registry.Quantity(1.0, source).to(target).magnitude)

    def convert_temperature(self, value: float, from_unit: str, to_unit: str) -> float:
        """Convert a temperature value, honoring offsets"""
        source = self._parse(from_unit)
        target = self._parse(to_unit)
        if self.resolve(from_unit).kind != 'Temperature' or self.resolve(to_unit).kind != 'Temperature':
            raise ValueError(
                f"CONVERTTEMP needs temperature units, got '{from_unit}' and '{to_unit}'"
            )
        return float(self.registry.Quantity(value, source).to(target).magnitude)


_default_system: UnitSystem | None = None


def default_unit_system() -> UnitSystem:
    """Process-wide UnitSystem, created on first use (pint registries are slow to build)"""
    global _default_system
    if _default_system is None:
        _default_system = UnitSystem()
    return _default_system
