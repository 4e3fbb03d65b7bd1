import json

import numpy as np
import pandas as pd
import pytest

from covex.loader import prepare_cases, prepare_metadata

DAYS = 30

def _country(location, daily):
    dates = pd.date_range("2021-01-01", periods=len(daily), freq="D")
    return pd.DataFrame({
        "location": location,
        "date": dates.strftime("%Y-%m-%d"),
        "new_cases": daily,
        "total_cases": np.cumsum(daily),
    })

@pytest.fixture
def raw_cases() -> pd.DataFrame:
    """OWID-like daily table: two study countries, one all-missing, one unknown."""
    t = np.arange(DAYS)
    ireland = _country("Ireland", (20 + 10 * np.sin(t / 4)).round().astype(int))
    england = _country("England", (200 + 80 * np.sin(t / 5)).round().astype(int))
    germany = _country("Germany", np.full(DAYS, 50))
    germany["total_cases"] = np.nan
    atlantis = _country("Atlantis", np.array([1, 2, 3]))
    return pd.concat([ireland, england, germany, atlantis], ignore_index=True)

@pytest.fixture
def raw_metadata() -> pd.DataFrame:
    return pd.DataFrame({
        "location": ["Ireland", "England", "Germany", "France", "Atlantis"],
        "population": [
            5000000,
            json.dumps({"year": [2021, 2020], "total": [56000000, 55900000]}),
            json.dumps([83000000, 82900000]),
            "unknown",
            1000,
        ],
    })

@pytest.fixture
def cases(raw_cases) -> pd.DataFrame:
    return prepare_cases(raw_cases)

@pytest.fixture
def metadata(raw_metadata) -> pd.DataFrame:
    return prepare_metadata(raw_metadata)

@pytest.fixture
def world_names():
    return ["Ireland", "United Kingdom", "Germany", "France"]
