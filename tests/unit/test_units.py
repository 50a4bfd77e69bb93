"""Unit tests for unit extraction, normalization and pint-backed resolution."""

import pytest
from eqsolve.core.errors import UnitNotRecognizedError
from eqsolve.units.extractor import UnitExtractor
from eqsolve.units.pint_wrapper import UnitSystem, normalize_unit


@pytest.fixture
def extractor():
    return UnitExtractor()


@pytest.fixture(scope='module')
def units():
    return UnitSystem()


# ============================================================================
# UnitExtractor
# ============================================================================

def test_unit_in_quote_comment(extractor):
    """T := 20 "[C]" maps T to C"""
    assert extractor.extract('T := 20 "[C]"') == {'T': 'C'}


def test_bare_unit_preferred_over_comment(extractor):
    """A bare [unit] wins over one inside a comment on the same line"""
    assert extractor.extract('P = 101.3 [kPa] // was [psi]') == {'P': 'kPa'}


def test_all_comment_forms(extractor):
    """Units are found inside brace, quote and slash comments"""
    text = 'a := 1 {[m]}\nb := 2 "[kg]"\nc := 3 // [s]'
    assert extractor.extract(text) == {'a': 'm', 'b': 'kg', 'c': 's'}


def test_unit_on_following_comment_line(extractor):
    """A comment-only line right after the assignment can carry the unit"""
    assert extractor.extract('h := 2500\n  "[kJ/kg]"') == {'h': 'kJ/kg'}


def test_blank_line_keeps_pending(extractor):
    """Blank lines do not clear the pending variable"""
    assert extractor.extract('h := 2500\n\n// [kJ/kg]') == {'h': 'kJ/kg'}


def test_unrelated_line_clears_pending(extractor):
    """A non-comment, non-assignment line ends the association"""
    text = 'x := 1\nx + y = 3\n// [m]'
    assert extractor.extract(text) == {}


def test_equation_lines_do_not_start_associations(extractor):
    """Units after equations are not attributed to anything"""
    assert extractor.extract('x + y = 3 [m]') == {}


def test_later_annotation_overwrites(extractor):
    """The last unit seen for a name wins, keyed by its first spelling"""
    text = 'T := 20 [C]\nt := 293.15 [K]'
    assert extractor.extract(text) == {'T': 'K'}


def test_multiline_brace_comment(extractor):
    """Assignments inside a multi-line comment are ignored"""
    text = '{\nx := 1 [m]\n}\ny := 2 [s]'
    assert extractor.extract(text) == {'y': 's'}


def test_brackets_inside_strings_are_code(extractor):
    """Comment characters inside string literals are not comments"""
    assert extractor.extract("s$ := 'a{b' [-]") == {'s$': '-'}


# ============================================================================
# normalize_unit
# ============================================================================

@pytest.mark.parametrize("raw, expected", [
    ('kJ/kg-K', 'kJ/(kg*K)'),
    ('W/m^2-K', 'W/(m**2*K)'),
    ('m^3/kg', 'm**3/kg'),
    ('kg*m**2', 'kg*m**2'),
    ('[kPa]', 'kPa'),
    ('C', 'degC'),
    ('F', 'degF'),
    ('-', ''),
])
def test_normalize_unit(raw, expected):
    """Engineering unit spellings are rewritten into pint syntax"""
    assert normalize_unit(raw) == expected


# ============================================================================
# UnitSystem
# ============================================================================

def test_resolve_kinds(units):
    """Common units resolve to readable quantity kinds"""
    assert units.resolve('C').kind == 'Temperature'
    assert units.resolve('ft').kind == 'Length'
    assert units.resolve('kPa').kind == 'Pressure'
    assert units.resolve('kJ/kg-K').kind == 'SpecificEntropy'
    assert units.resolve('-').kind == 'Dimensionless'


def test_unknown_unit(units):
    """Unknown units raise UnitNotRecognizedError"""
    with pytest.raises(UnitNotRecognizedError, match="not recognized"):
        units.resolve('furlongz')


def test_conversion_factor(units):
    """Multiplicative conversion factors"""
    assert units.conversion_factor('ft', 'm') == pytest.approx(0.3048)
    assert units.conversion_factor('kJ', 'J') == pytest.approx(1000.0)
    assert units.conversion_factor('kJ/kg-K', 'J/kg-K') == pytest.approx(1000.0)


def test_conversion_factor_rejects_incompatible(units):
    """Different kinds cannot be converted"""
    with pytest.raises(ValueError, match="not compatible"):
        units.conversion_factor('m', 's')


def test_conversion_factor_rejects_offset_units(units):
    """Offset temperatures need CONVERTTEMP"""
    with pytest.raises(ValueError, match="CONVERTTEMP"):
        units.conversion_factor('C', 'K')


def test_convert_temperature(units):
    """Temperature conversion honors offsets"""
    assert units.convert_temperature(20.0, 'C', 'K') == pytest.approx(293.15)
    assert units.convert_temperature(212.0, 'F', 'C') == pytest.approx(100.0)


def test_convert_temperature_requires_temperatures(units):
    """CONVERTTEMP only accepts temperature units"""
    with pytest.raises(ValueError, match="temperature units"):
        units.convert_temperature(1.0, 'm', 'K')


def test_compatible(units):
    """Dimensional compatibility check"""
    assert units.compatible('kPa', 'bar')
    assert not units.compatible('kPa', 'm')
