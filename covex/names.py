"""
Country-name reconciliation
===========================

The case file, the metadata file and the world boundary file all spell some
countries differently. Before any join, every location is mapped to the
spelling used by the world boundary file (Natural Earth `name` column).

- `NameMap` is a read-only lookup table. Unknown names pass through unchanged.
- Targets may not themselves be remapped, so reconciling twice is the same as
  reconciling once.
- `unmatched_names` is the anti-join used to report names the map still
  misses. It only reports; it never corrects or fails the run.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional
import logging

import pandas as pd

log = logging.getLogger(__name__)

class NameMap:
    """Immutable source-spelling -> reference-spelling table."""

    def __init__(self, mapping: Optional[Mapping[str, str]] = None) -> None:
        table = dict(mapping or {})
        chained = sorted(v for k, v in table.items() if v in table and table[v] != v)
        if chained:
            raise ValueError(f"Name map targets are remapped again: {chained}")
        self._table = MappingProxyType(table)

    def __getitem__(self, name: str) -> str:
        return self._table[name]

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"NameMap({dict(self._table)!r})"

    @property
    def table(self) -> Mapping[str, str]:
        return self._table

    def get(self, name: str) -> str:
        return self._table.get(name, name)

# Source spelling (OWID / study list) -> Natural Earth spelling
DEFAULT_NAME_MAP = NameMap({
    "England": "United Kingdom",
    "United States": "United States of America",
    "Bosnia and Herzegovina": "Bosnia and Herz.",
    "Central African Republic": "Central African Rep.",
    "Cote d'Ivoire": "Côte d'Ivoire",
    "Democratic Republic of Congo": "Dem. Rep. Congo",
    "Dominican Republic": "Dominican Rep.",
    "Equatorial Guinea": "Eq. Guinea",
    "Eswatini": "eSwatini",
    "Falkland Islands": "Falkland Is.",
    "Northern Cyprus": "N. Cyprus",
    "Solomon Islands": "Solomon Is.",
    "South Sudan": "S. Sudan",
    "Western Sahara": "W. Sahara",
})

# Countries under study, as written by the analysts (not yet reconciled)
STUDY_COUNTRIES = (
    "Ireland",
    "England",
    "Germany",
    "France",
    "Italy",
    "Spain",
    "Portugal",
    "Netherlands",
    "Belgium",
    "Denmark",
    "Sweden",
    "Norway",
    "United States",
)

def reconcile(name: str, name_map: NameMap = DEFAULT_NAME_MAP) -> str:
    """Return the reference spelling for `name` (identity when unmapped)."""
    return name_map.get(name)

def reconcile_names(names: Iterable[str], name_map: NameMap = DEFAULT_NAME_MAP) -> List[str]:
    return [reconcile(n, name_map) for n in names]

def reconcile_column(df: pd.DataFrame, name_map: NameMap = DEFAULT_NAME_MAP,
                     column: str = "location") -> pd.DataFrame:
    """Return a copy of `df` with `column` mapped through `name_map`."""
    out = df.copy()
    out[column] = out[column].map(lambda n: reconcile(n, name_map) if isinstance(n, str) else n)
    return out

def unmatched_names(df: pd.DataFrame, reference_names: Iterable[str],
                    column: str = "location") -> pd.DataFrame:
    """Anti-join: rows of `df` whose `column` is absent from the reference names."""
    ref = set(reference_names)
    out = df.loc[~df[column].isin(ref)].copy()
    if not out.empty:
        log.warning("%d location(s) not found in the world reference: %s",
                    len(out), ", ".join(map(str, out[column].tolist())))
    return out.reset_index(drop=True)
