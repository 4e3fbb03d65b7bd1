"""
Dataset loader (CSV / Excel -> DataFrames)
==========================================

This module reads the two input tables and the world boundary file.

Key ideas:
- We try several possible column names because exports vary
  (`location` / `country` / `Country`, `date` / `Date`, ...).
- Numeric cells go through small conversion helpers so blanks become missing.
- Population cells are kept unresolved (`PopulationField`); resolving them is
  the normalizer's job.
- The loader never writes to the input files.
"""

from __future__ import annotations
from pathlib import Path
from typing import Iterable, List, Optional, Union
import logging
import re

import pandas as pd

from .models import CaseRecord, CountryMetadata
from .population import parse_population

log = logging.getLogger(__name__)

PathLike = Union[str, Path]

CASE_COLUMNS = ["location", "date", "new_cases", "total_cases"]

def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())

def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise KeyError(f"Missing required column. Tried={names}. Available={cols}")

def _read_table(path: PathLike) -> pd.DataFrame:
    """Read CSV, or Excel for .xlsx/.xls files."""
    p = Path(path)
    if p.suffix.lower() in (".xlsx", ".xls"):
        df = pd.read_excel(p, engine="openpyxl")
    else:
        df = pd.read_csv(p)
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    return df

def _to_count(s: pd.Series) -> pd.Series:
    """Numeric column with blanks/garbage as <NA> (nullable Int64)."""
    return pd.to_numeric(s, errors="coerce").round().astype("Int64")

def prepare_cases(raw: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw case table to `location, date, new_cases, total_cases`."""
    loc_col = _col(raw, "location", "country", "Country", "Country/Region", "entity")
    date_col = _col(raw, "date", "Date", "day")
    new_col = _col(raw, "new_cases", "New Cases", "new_confirmed")
    total_col = _col(raw, "total_cases", "Total Cases", "cumulative_cases", "confirmed")

    df = pd.DataFrame({
        "location": raw[loc_col].astype("string").str.strip(),
        "date": pd.to_datetime(raw[date_col], errors="coerce"),
        "new_cases": _to_count(raw[new_col]),
        "total_cases": _to_count(raw[total_col]),
    })
    bad = df["location"].isna() | df["date"].isna()
    if bad.any():
        log.info("Dropping %d case row(s) without location or date", int(bad.sum()))
        df = df.loc[~bad].copy()
    df["location"] = df["location"].astype(object)
    return df.reset_index(drop=True)

def load_cases(path: PathLike) -> pd.DataFrame:
    """Load the daily per-country case file."""
    df = prepare_cases(_read_table(path))
    log.info("Loaded %d case rows for %d locations from %s",
             len(df), df["location"].nunique(), path)
    return df

def cases_frame(records: Iterable[CaseRecord]) -> pd.DataFrame:
    """Build a case table from `CaseRecord` objects."""
    rows = [(r.location, r.date, r.new_cases, r.total_cases) for r in records]
    raw = pd.DataFrame(rows, columns=CASE_COLUMNS)
    return prepare_cases(raw)

def prepare_metadata(raw: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw metadata table to `location, population` (unresolved)."""
    loc_col = _col(raw, "location", "country", "Country", "name")
    pop_col = _col(raw, "population", "Population", "pop")
    records = metadata_records(raw[loc_col], raw[pop_col])
    return pd.DataFrame({
        "location": [m.location for m in records],
        "population": pd.Series([m.population for m in records], dtype=object),
    })

def metadata_records(locations: Iterable, populations: Iterable) -> List[CountryMetadata]:
    out: List[CountryMetadata] = []
    for loc, pop in zip(locations, populations):
        if not isinstance(loc, str) or not loc.strip():
            continue
        out.append(CountryMetadata(location=loc.strip(), population=parse_population(pop)))
    return out

def load_metadata(path: PathLike) -> pd.DataFrame:
    """Load the per-country metadata file."""
    df = prepare_metadata(_read_table(path))
    log.info("Loaded metadata for %d locations from %s", len(df), path)
    return df

def load_world(path: PathLike, name_column: str = "name"):
    """Load world boundary polygons; returns a GeoDataFrame with a `name` column."""
    try:
        import geopandas as gpd
    except ImportError as e:
        raise ImportError(
            "Missing dependency: geopandas.\n"
            "Install it with: python -m pip install geopandas"
        ) from e

    world = gpd.read_file(path)
    col = _col(world, name_column, "name", "NAME", "ADMIN", "admin")
    if col != "name":
        world = world.rename(columns={col: "name"})
    log.info("Loaded %d boundary shapes from %s", len(world), path)
    return world

def reference_names(world) -> Optional[List[str]]:
    if world is None:
        return None
    return [str(n) for n in world["name"].dropna().tolist()]
