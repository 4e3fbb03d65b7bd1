"""
Cleaning / reconciliation pipeline
==================================

This is the heart of COVEX. It runs once, top to bottom:

1) Aggregate   -> max cumulative cases per location
2) Normalize   -> one population number per location
3) Reconcile   -> map every location to the world-reference spelling
4) Join/filter -> keep locations present in metadata, cases AND the study list
5) Diagnose    -> list locations the world reference does not know

Missing values are never errors here: rows that cannot be resolved are dropped
by `drop_unresolved`, which every step shares.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Union
import logging

import pandas as pd

from .loader import cases_frame
from .models import CaseRecord, ScatterRow
from .names import (
    DEFAULT_NAME_MAP,
    STUDY_COUNTRIES,
    NameMap,
    reconcile_column,
    reconcile_names,
    unmatched_names,
)
from .population import parse_population, resolve_population

log = logging.getLogger(__name__)

@dataclass
class PipelineConfig:
    """Fixed tables the pipeline runs with."""
    name_map: NameMap = DEFAULT_NAME_MAP
    study_countries: Sequence[str] = STUDY_COUNTRIES

@dataclass
class PipelineResult:
    """Everything the report needs; all frames are reconciled."""
    cases: pd.DataFrame
    aggregated: pd.DataFrame
    metadata: pd.DataFrame
    scatter: pd.DataFrame
    timeseries: pd.DataFrame
    study_countries: List[str] = field(default_factory=list)
    # None when no world reference was given
    unmatched: Optional[pd.DataFrame] = None
    unmatched_study: Optional[List[str]] = None

    @property
    def scatter_empty(self) -> bool:
        return self.scatter.empty

    def scatter_rows(self) -> List[ScatterRow]:
        return [
            ScatterRow(location=r.location, population=float(r.population),
                       total_cases=float(r.total_cases))
            for r in self.scatter.itertuples(index=False)
        ]

    def export_csv(self, path: str) -> None:
        import csv
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["location", "population", "total_cases", "cases_per_100k"])
            for r in self.scatter_rows():
                w.writerow([r.location, r.population, r.total_cases, r.cases_per_100k()])

    def export_json(self, path: str) -> None:
        """Export the scatter data; JSON keeps the field names for programs."""
        import json
        payload = [
            {
                "location": r.location,
                "population": r.population,
                "total_cases": r.total_cases,
                "cases_per_100k": r.cases_per_100k(),
            }
            for r in self.scatter_rows()
        ]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)

# ---------------- Shared filter ----------------
def drop_unresolved(df: pd.DataFrame, columns: Sequence[str], *, label: str = "rows") -> pd.DataFrame:
    """Drop rows with a missing value in any of `columns`."""
    keep = df[list(columns)].notna().all(axis=1)
    dropped = int((~keep).sum())
    if dropped:
        log.debug("Dropped %d unresolved %s (missing %s)", dropped, label, ", ".join(columns))
    return df.loc[keep].reset_index(drop=True)

# ---------------- Steps ----------------
def aggregate_cases(records: Union[pd.DataFrame, Iterable[CaseRecord]]) -> pd.DataFrame:
    """Max cumulative `total_cases` per location; all-missing locations dropped."""
    df = records if isinstance(records, pd.DataFrame) else cases_frame(records)
    totals = pd.to_numeric(df["total_cases"], errors="coerce")
    agg = (
        totals.groupby(df["location"], sort=True)
        .max()
        .rename("total_cases")
        .rename_axis("location")
        .reset_index()
    )
    return drop_unresolved(agg, ["total_cases"], label="locations")

def normalize_metadata(metadata: pd.DataFrame, name_map: Optional[NameMap] = None) -> pd.DataFrame:
    """Resolve the population field to a number; unresolvable rows dropped.

    With `name_map`, locations are reconciled first so that two spellings of
    one country count as duplicates.
    """
    pops = [resolve_population(parse_population(p)) for p in metadata["population"]]
    out = pd.DataFrame({
        "location": metadata["location"].tolist(),
        "population": pd.to_numeric(pd.Series(pops, dtype=object), errors="coerce"),
    })
    if name_map is not None:
        out = reconcile_column(out, name_map)
    out = drop_unresolved(out, ["population"], label="metadata rows")
    dupes = out["location"].duplicated()
    if dupes.any():
        log.warning("Duplicate metadata for %s; keeping the first row",
                    ", ".join(out.loc[dupes, "location"].unique()))
        out = out.loc[~dupes].reset_index(drop=True)
    return out

def join_scatter(aggregated: pd.DataFrame, metadata: pd.DataFrame,
                 study_countries: Iterable[str]) -> pd.DataFrame:
    """Inner join of cases and metadata on the three-way location intersection.

    All inputs must already be reconciled; keys match exactly.
    """
    valid = set(metadata["location"]) & set(aggregated["location"]) & set(study_countries)
    meta = metadata.loc[metadata["location"].isin(valid)]
    out = meta.merge(aggregated, on="location", how="inner")
    out = drop_unresolved(out, ["population", "total_cases"], label="scatter rows")
    out = out.loc[out["population"] > 0]
    out = out[["location", "population", "total_cases"]]
    return out.sort_values(["total_cases", "location"], ascending=[False, True]).reset_index(drop=True)

def run_pipeline(cases: pd.DataFrame, metadata: pd.DataFrame,
                 config: Optional[PipelineConfig] = None,
                 reference_names: Optional[Iterable[str]] = None) -> PipelineResult:
    """Run aggregate -> normalize -> reconcile -> join once.

    `reference_names` are the country names of the world boundary file; when
    given, aggregated locations missing from it are reported in `unmatched`.
    """
    config = config or PipelineConfig()
    nm = config.name_map

    aggregated = reconcile_column(aggregate_cases(cases), nm)
    # two source spellings may land on the same reference name
    aggregated = (aggregated.groupby("location", sort=True)["total_cases"].max()
                  .reset_index())
    normalized = normalize_metadata(metadata, nm)
    study = list(dict.fromkeys(reconcile_names(config.study_countries, nm)))

    scatter = join_scatter(aggregated, normalized, study)
    if scatter.empty:
        log.warning("No location survived the join; scatter data is empty")
    else:
        log.info("Scatter data: %d of %d study locations", len(scatter), len(study))

    survivors = set(scatter["location"])
    reconciled_cases = reconcile_column(cases, nm)
    timeseries = (reconciled_cases.loc[reconciled_cases["location"].isin(survivors)]
                  .sort_values(["location", "date"])
                  .reset_index(drop=True))

    unmatched = unmatched_study = None
    if reference_names is not None:
        reference_names = list(reference_names)
        unmatched = unmatched_names(aggregated, reference_names)
        unmatched_study = unmatched_names(pd.DataFrame({"location": study}),
                                          reference_names)["location"].tolist()

    return PipelineResult(
        cases=reconciled_cases,
        aggregated=aggregated,
        metadata=normalized,
        scatter=scatter,
        timeseries=timeseries,
        study_countries=study,
        unmatched=unmatched,
        unmatched_study=unmatched_study,
    )
