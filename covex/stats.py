"""
Small statistics helpers used by the report charts.

- `loglog_fit`: least-squares line in log10-log10 space (population vs cases).
- `smooth_series`: LOWESS smoothing of a daily series (statsmodels).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd
from statsmodels.nonparametric.smoothers_lowess import lowess

@dataclass(frozen=True)
class LogLogFit:
    """log10(y) = intercept + slope * log10(x)"""
    slope: float
    intercept: float
    n: int

    def predict(self, x: Sequence[float]) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        return 10 ** (self.intercept + self.slope * np.log10(x))

def loglog_fit(x: Sequence[float], y: Sequence[float]) -> LogLogFit:
    """Fit a power law through strictly positive points.

    Raises ValueError with fewer than two usable points or a single distinct x.
    """
    xa = np.asarray(x, dtype=float)
    ya = np.asarray(y, dtype=float)
    ok = np.isfinite(xa) & np.isfinite(ya) & (xa > 0) & (ya > 0)
    xa, ya = xa[ok], ya[ok]
    if len(xa) < 2 or np.unique(xa).size < 2:
        raise ValueError("Need at least two points with distinct positive x to fit")
    slope, intercept = np.polyfit(np.log10(xa), np.log10(ya), 1)
    return LogLogFit(slope=float(slope), intercept=float(intercept), n=int(len(xa)))

def smooth_series(dates: pd.Series, values: pd.Series, frac: float = 0.1) -> Tuple[pd.Series, np.ndarray]:
    """LOWESS-smooth `values` over `dates`; missing values are skipped.

    Returns the dates used and the smoothed values (same length).
    """
    df = pd.DataFrame({"date": pd.to_datetime(dates), "value": pd.to_numeric(values, errors="coerce")})
    df = df.dropna().sort_values("date")
    if len(df) < 3:
        return df["date"], df["value"].to_numpy(dtype=float)
    # at least three points per local fit
    frac = min(1.0, max(frac, 3.0 / len(df)))
    # days since first observation as the regressor
    x = (df["date"] - df["date"].iloc[0]).dt.days.to_numpy(dtype=float)
    fitted = lowess(df["value"].to_numpy(dtype=float), x, frac=frac, return_sorted=False)
    return df["date"], fitted
