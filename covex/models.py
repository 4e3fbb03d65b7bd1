"""
Data model
==========

Every record COVEX works with is an immutable dataclass (`frozen=True`):
- records are derived fresh from the input files on every run, and
- the pipeline filters and joins them, it never edits them.

The population field of the metadata file comes in several shapes, so it is
modelled as a small tagged union (`PopulationField`). Each variant carries a
`kind` tag that `covex.population.resolve_population` dispatches on.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

@dataclass(frozen=True)
class CaseRecord:
    """One day of case counts for one location."""
    location: str
    date: date
    new_cases: Optional[int] = None
    # cumulative, may be missing for early or unreported days
    total_cases: Optional[int] = None

# -----------------------------
# Population field (tagged union)
# -----------------------------

@dataclass(frozen=True)
class ScalarPopulation:
    """Population stored as a plain number."""
    kind: ClassVar[str] = "scalar"
    value: float

@dataclass(frozen=True)
class SequencePopulation:
    """Population stored as a list; the first element is the current value."""
    kind: ClassVar[str] = "sequence"
    values: Tuple[Any, ...]

@dataclass(frozen=True)
class TablePopulation:
    """Population stored as a nested table with a `total` column."""
    kind: ClassVar[str] = "table"
    columns: Dict[str, Tuple[Any, ...]] = field(hash=False)

@dataclass(frozen=True)
class MissingPopulation:
    """Anything else: empty cells, unparseable text, unexpected objects."""
    kind: ClassVar[str] = "missing"
    raw: Any = field(default=None, hash=False)

PopulationField = Union[ScalarPopulation, SequencePopulation, TablePopulation, MissingPopulation]

@dataclass(frozen=True)
class CountryMetadata:
    """One metadata row: a location and its (unresolved) population field."""
    location: str
    population: PopulationField

@dataclass(frozen=True)
class ScatterRow:
    """Final joined row used by the population / cases charts."""
    location: str
    population: float
    total_cases: float

    def cases_per_100k(self) -> float:
        return self.total_cases / self.population * 100_000
