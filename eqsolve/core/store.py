"""
VariableStore: the mutable name -> (value, unit, explicit) table of one run.
"""

from dataclasses import replace
from typing import Dict, Iterator, List, Mapping, Optional, Set

from eqsolve.core.errors import UndefinedVariableError
from eqsolve.core.variable import VariableRecord, canonical_name


class VariableStore:
    """
    Variable table for a single file-execution run.

    Records are created on first write and never removed. Names are
    canonicalized with canonical_name() on every call, so lookups are
    case-insensitive. Use one store per run; stores are not shared.

    Usage:
        store = VariableStore()
        store.set('T_in', 293.15, explicit=True)
        store.set_unit('T_in', 'K')
        store.get('t_in')   # 293.15
    """

    def __init__(self):
        self._records: Dict[str, VariableRecord] = {}

    def _record(self, name: str) -> VariableRecord:
        key = canonical_name(name)
        record = self._records.get(key)
        if record is None:
            record = VariableRecord(name=key, spelling=name)
        return record

    def get(self, name: str) -> float:
        """
        Current value of a variable.

        Raises:
            UndefinedVariableError: If the variable has no value
        """
        record = self._records.get(canonical_name(name))
        if record is None or record.value is None:
            raise UndefinedVariableError(name)
        return record.value

    def set(self, name: str, value: float, explicit: bool = True, solved: bool = False) -> None:
        """Write a value, creating the record if needed"""
        record = self._record(name)
        self._records[record.name] = replace(
            record, value=float(value), explicit=explicit, solved=solved
        )

    def set_unit(self, name: str, unit: str) -> None:
        """Attach unit metadata without touching the value"""
        if not unit or not unit.strip():
            return
        record = self._record(name)
        self._records[record.name] = replace(record, unit=unit.strip())

    def is_explicit(self, name: str) -> bool:
        record = self._records.get(canonical_name(name))
        return record is not None and record.explicit

    def has_value(self, name: str) -> bool:
        record = self._records.get(canonical_name(name))
        return record is not None and record.value is not None

    def unit_of(self, name: str) -> Optional[str]:
        record = self._records.get(canonical_name(name))
        return record.unit if record else None

    def record(self, name: str) -> Optional[VariableRecord]:
        return self._records.get(canonical_name(name))

    def all_names(self) -> Set[str]:
        return set(self._records)

    def records(self) -> List[VariableRecord]:
        """All records sorted by canonical name"""
        return [self._records[key] for key in sorted(self._records)]

    def apply_units(self, units: Mapping[str, str]) -> None:
        """Merge a name -> unit mapping (as produced by UnitExtractor)"""
        for name, unit in units.items():
            self.set_unit(name, unit)

    def snapshot(self) -> Dict[str, VariableRecord]:
        """Copy of the current table; records are immutable so a shallow copy suffices"""
        return dict(self._records)

    def copy(self) -> 'VariableStore':
        """Independent store starting from the same records"""
        clone = VariableStore()
        clone._records = dict(self._records)
        return clone

    def overlay(self, values: Mapping[str, float]) -> 'StoreOverlay':
        """Read-only view with some values transiently replaced"""
        return StoreOverlay(self, values)

    def __contains__(self, name: str) -> bool:
        return canonical_name(name) in self._records

    def __iter__(self) -> Iterator[VariableRecord]:
        return iter(self.records())

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"VariableStore({len(self._records)} variables)"


class StoreOverlay:
    """
    Read-only view over a VariableStore with candidate values layered on top.

    The solver evaluates residuals through an overlay, so trial points never
    reach the underlying store.
    """

    def __init__(self, store: VariableStore, values: Mapping[str, float]):
        self._store = store
        self._values = {canonical_name(name): float(value) for name, value in values.items()}

    def get(self, name: str) -> float:
        key = canonical_name(name)
        if key in self._values:
            return self._values[key]
        return self._store.get(name)

    def unit_of(self, name: str) -> Optional[str]:
        return self._store.unit_of(name)
