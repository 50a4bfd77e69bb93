"""
Variable metadata held by the VariableStore.
"""

from dataclasses import dataclass
from typing import Optional


def canonical_name(name: str) -> str:
    """
    Canonical key for a variable name.

    Identifiers are case-insensitive: 'T_hot', 't_hot' and 'T_HOT' are the
    same variable. Every store boundary goes through this function.
    """
    return name.lower()


@dataclass(frozen=True)
class VariableRecord:
    """
    One entry in the variable table.

    Attributes:
        name: Canonical (lower-case) identifier
        value: Current numeric value, None while only a unit is known
        unit: Unit annotation from source (e.g. 'kPa', 'kJ/kg-K'), not enforced
        explicit: True once set by an assignment or a successful solve
        spelling: Identifier as first written, for display
        solved: True if the value came from the equation solver
    """
    name: str
    value: Optional[float] = None
    unit: Optional[str] = None
    explicit: bool = False
    spelling: str = ""
    solved: bool = False

    @property
    def display_name(self) -> str:
        return self.spelling or self.name

    @property
    def source(self) -> str:
        """'solved', 'explicit', 'guess' (value without explicit flag) or 'unset'"""
        if self.solved:
            return 'solved'
        if self.explicit:
            return 'explicit'
        if self.value is not None:
            return 'guess'
        return 'unset'

    def __repr__(self) -> str:
        unit = f" [{self.unit}]" if self.unit else ""
        return f"VariableRecord({self.display_name} = {self.value}{unit}, {self.source})"
