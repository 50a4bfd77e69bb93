"""
Structured diagnostics passed explicitly through the executor and solver.

The core never prints. Components receive a sink and emit Diagnostic records;
front ends decide how to render them.
"""

from dataclasses import dataclass
from typing import List, Literal, Protocol, Tuple


Severity = Literal['info', 'warning', 'error']


@dataclass(frozen=True)
class Diagnostic:
    """
    One event or failure report.

    Attributes:
        kind: Error class name (e.g. 'UnderdeterminedSystemError') or event name
        message: Human-readable description
        severity: 'info', 'warning' or 'error'
        variables: Names of the variables involved
        equations: Source-order indices of the equations involved
    """
    kind: str
    message: str
    severity: Severity = 'info'
    variables: Tuple[str, ...] = ()
    equations: Tuple[int, ...] = ()

    @classmethod
    def from_error(cls, error: Exception, severity: Severity = 'error') -> 'Diagnostic':
        """Build an error record from an exception, keeping any affected names"""
        variables = getattr(error, 'unknowns', None)
        if variables is None:
            name = getattr(error, 'name', None)
            variables = (name,) if name else ()
        equations = getattr(error, 'equations', ())
        return cls(
            kind=type(error).__name__,
            message=str(error),
            severity=severity,
            variables=tuple(variables),
            equations=tuple(equations),
        )

    def __str__(self) -> str:
        return f"[{self.severity}] {self.kind}: {self.message}"


class DiagnosticSink(Protocol):
    """Anything that accepts diagnostics"""

    def emit(self, diagnostic: Diagnostic) -> None:
        ...


class DiagnosticLog:
    """Default sink: keeps every diagnostic in emission order"""

    def __init__(self):
        self.records: List[Diagnostic] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        self.records.append(diagnostic)

    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.records if d.severity == 'warning']

    def errors(self) -> List[Diagnostic]:
        return [d for d in self.records if d.severity == 'error']

    def kinds(self) -> List[str]:
        return [d.kind for d in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


class NullSink:
    """Sink that discards everything"""

    def emit(self, diagnostic: Diagnostic) -> None:
        pass
