"""Unit tests for VariableStore and VariableRecord."""

import pytest
from eqsolve.core.errors import UndefinedVariableError
from eqsolve.core.store import VariableStore


@pytest.fixture
def store():
    return VariableStore()


def test_empty_store(store):
    """A new store has no variables"""
    assert len(store) == 0
    assert store.all_names() == set()


def test_set_and_get(store):
    """Values round-trip through set/get"""
    store.set('x', 3.0)
    assert store.get('x') == 3.0
    assert store.is_explicit('x')


def test_last_assignment_wins(store):
    """A later set replaces the value"""
    for value in (1.0, 2.5, -7.0):
        store.set('x', value)
    assert store.get('x') == -7.0


def test_case_insensitive(store):
    """Names are canonicalized at every boundary"""
    store.set('T_Hot', 350.0)
    assert store.get('t_hot') == 350.0
    assert store.get('T_HOT') == 350.0
    assert store.all_names() == {'t_hot'}
    assert 'T_hot' in store


def test_first_spelling_is_kept(store):
    """Display names use the first spelling seen"""
    store.set('T_Hot', 1.0)
    store.set('t_hot', 2.0)
    assert store.record('T_HOT').display_name == 'T_Hot'


def test_get_missing_raises(store):
    """Reading an unknown name raises UndefinedVariableError"""
    with pytest.raises(UndefinedVariableError, match="'y'"):
        store.get('y')


def test_get_unit_only_raises(store):
    """A record with only a unit has no value yet"""
    store.set_unit('P', 'kPa')
    assert 'P' in store
    assert not store.has_value('P')
    with pytest.raises(UndefinedVariableError):
        store.get('P')


def test_units_do_not_touch_values(store):
    """set_unit keeps the value and explicit flag"""
    store.set('P', 101.3)
    store.set_unit('p', 'kPa')
    record = store.record('P')
    assert record.value == 101.3
    assert record.unit == 'kPa'
    assert record.explicit


def test_blank_unit_ignored(store):
    """Blank unit strings are not recorded"""
    store.set_unit('x', '   ')
    assert 'x' not in store


def test_non_explicit_value(store):
    """Values can be stored as guesses"""
    store.set('x', 5.0, explicit=False)
    assert store.has_value('x')
    assert not store.is_explicit('x')
    assert store.record('x').source == 'guess'


def test_solved_source(store):
    """Solver writes are flagged as solved"""
    store.set('x', 6.0, explicit=True, solved=True)
    assert store.record('x').source == 'solved'


def test_apply_units(store):
    """apply_units merges a name -> unit mapping"""
    store.apply_units({'T': 'C', 'P': 'kPa'})
    assert store.unit_of('t') == 'C'
    assert store.unit_of('p') == 'kPa'


def test_records_sorted(store):
    """records() is sorted by canonical name"""
    for name in ('b', 'C', 'a'):
        store.set(name, 1.0)
    assert [r.name for r in store.records()] == ['a', 'b', 'c']


def test_snapshot_is_independent(store):
    """Later writes do not change a snapshot"""
    store.set('x', 1.0)
    snapshot = store.snapshot()
    store.set('x', 2.0)
    assert snapshot['x'].value == 1.0


def test_overlay_reads_through(store):
    """Overlay values shadow the store without writing to it"""
    store.set('a', 1.0)
    store.set('b', 2.0)
    store.set_unit('b', 'm')
    overlay = store.overlay({'B': 10.0, 'c': 3.0})
    assert overlay.get('a') == 1.0
    assert overlay.get('b') == 10.0
    assert overlay.get('C') == 3.0
    assert overlay.unit_of('b') == 'm'
    assert store.get('b') == 2.0
    assert 'c' not in store
