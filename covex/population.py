"""
Population normalizer
=====================

Metadata providers store population in different shapes:

- a plain number:            67886004
- a list (newest first):     [5000000, 4990000]
- a nested table by year:    {"year": [2021, 2020], "total": [5000000, 4990000]}

`parse_population` turns a raw cell into one of the `PopulationField`
variants, and `resolve_population` picks the single value we want. Neither
function raises: anything unexpected resolves to `None`.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Optional
import json
import math
import numbers

import numpy as np
import pandas as pd

from .models import (
    MissingPopulation,
    PopulationField,
    ScalarPopulation,
    SequencePopulation,
    TablePopulation,
)

_VARIANTS = (ScalarPopulation, SequencePopulation, TablePopulation, MissingPopulation)

def _as_number(x: Any) -> Optional[float]:
    """Finite real number -> float, anything else -> None."""
    if isinstance(x, bool) or not isinstance(x, numbers.Real):
        return None
    fx = float(x)
    return fx if math.isfinite(fx) else None

_ARRAYS = (list, tuple, np.ndarray, pd.Series, pd.Index)

def _as_values(v: Any) -> tuple:
    """List, tuple, numpy array or pandas Series -> flat tuple of values."""
    if isinstance(v, (np.ndarray, pd.Series, pd.Index)):
        return tuple(np.asarray(v, dtype=object).ravel().tolist())
    return tuple(v)

def parse_population(raw: Any) -> PopulationField:
    """Classify a raw metadata cell into a `PopulationField` variant."""
    if isinstance(raw, _VARIANTS):
        return raw
    if raw is None:
        return MissingPopulation(raw)
    if isinstance(raw, pd.DataFrame):
        return TablePopulation({str(c): tuple(raw[c].tolist()) for c in raw.columns})
    if isinstance(raw, dict):
        cols = {}
        for k, v in raw.items():
            cols[str(k)] = _as_values(v) if isinstance(v, _ARRAYS) else (v,)
        return TablePopulation(cols)
    if isinstance(raw, np.ndarray) and raw.ndim == 0:
        return parse_population(raw.item())
    if isinstance(raw, _ARRAYS):
        return SequencePopulation(_as_values(raw))
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return MissingPopulation(raw)
        try:
            return parse_population(float(text))
        except ValueError:
            pass
        try:
            decoded = json.loads(text)
        except ValueError:
            return MissingPopulation(raw)
        if isinstance(decoded, str):
            return MissingPopulation(raw)
        return parse_population(decoded)
    value = _as_number(raw)
    if value is None:
        return MissingPopulation(raw)
    return ScalarPopulation(value)

def _resolve_scalar(f: ScalarPopulation) -> Optional[float]:
    return _as_number(f.value)

def _resolve_sequence(f: SequencePopulation) -> Optional[float]:
    if not f.values:
        return None
    return _as_number(f.values[0])

def _resolve_table(f: TablePopulation) -> Optional[float]:
    total = f.columns.get("total")
    if not total:
        return None
    return _as_number(total[0])

_RESOLVERS: Dict[str, Callable[[Any], Optional[float]]] = {
    ScalarPopulation.kind: _resolve_scalar,
    SequencePopulation.kind: _resolve_sequence,
    TablePopulation.kind: _resolve_table,
    MissingPopulation.kind: lambda f: None,
}

def resolve_population(field: PopulationField) -> Optional[float]:
    """Return the population number for a field, or None when unresolvable."""
    return _RESOLVERS[field.kind](field)
