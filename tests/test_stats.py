import numpy as np
import pandas as pd
import pytest

from covex.stats import loglog_fit, smooth_series

def test_loglog_fit_recovers_power_law():
    x = np.array([1e5, 1e6, 1e7, 1e8])
    y = 2 * x ** 0.5
    fit = loglog_fit(x, y)
    assert fit.slope == pytest.approx(0.5)
    assert fit.intercept == pytest.approx(np.log10(2))
    assert fit.n == 4
    assert fit.predict([1e6])[0] == pytest.approx(2000)

def test_loglog_fit_skips_non_positive_points():
    fit = loglog_fit([0, 10, 100, 1000], [5, 10, 100, 1000])
    assert fit.n == 3
    assert fit.slope == pytest.approx(1.0)

@pytest.mark.parametrize("x,y", [([10], [10]), ([10, 10], [1, 2]), ([], [])])
def test_loglog_fit_needs_two_distinct_points(x, y):
    with pytest.raises(ValueError):
        loglog_fit(x, y)

def test_smooth_series_follows_trend():
    dates = pd.date_range("2021-01-01", periods=60, freq="D")
    trend = 10.0 * np.arange(60) + 100
    noisy = trend + np.where(np.arange(60) % 2 == 0, 3.0, -3.0)
    out_dates, smoothed = smooth_series(pd.Series(dates), pd.Series(noisy), frac=0.3)
    assert len(out_dates) == len(smoothed) == 60
    assert np.max(np.abs(smoothed - trend)) < 3.0

def test_smooth_series_skips_missing_values():
    dates = pd.Series(pd.date_range("2021-01-01", periods=10, freq="D"))
    values = pd.Series([1, 2, None, 4, 5, 6, None, 8, 9, 10], dtype="Int64")
    out_dates, smoothed = smooth_series(dates, values)
    assert len(out_dates) == len(smoothed) == 8

def test_smooth_series_short_input_returned_as_is():
    dates = pd.Series(pd.to_datetime(["2021-01-02", "2021-01-01"]))
    out_dates, values = smooth_series(dates, pd.Series([5, 3]))
    assert values.tolist() == [3.0, 5.0]
    assert out_dates.iloc[0] == pd.Timestamp("2021-01-01")
