"""
Unit tests for factors.py: the daily factor frame, lagged correlation,
the correlation matrix and residual outliers.
"""

import pandas as pd
import pytest

from weighbridge_dashboard.config import FACTOR_METRICS
from weighbridge_dashboard.factors import (
    apply_lag,
    build_factor_correlation,
    build_factor_frame,
    correlation_matrix,
    fit_factor,
)
from weighbridge_dashboard.models import WeatherLog
from weighbridge_dashboard.transforms import build_fact_ticket


def _days(start, rainfall, net_weights, make_ticket):
    """One ticket and one weather record per day."""
    dates = [d.strftime("%Y-%m-%d") for d in pd.date_range(start, periods=len(rainfall))]
    fact = build_fact_ticket([
        make_ticket(id=f"T{i}", date=d, net_weight=w, bunch_count=50)
        for i, (d, w) in enumerate(zip(dates, net_weights))
    ])
    logs = [WeatherLog(d, float(mm), "clear") for d, mm in zip(dates, rainfall)]
    return fact, logs


class TestBuildFactorFrame:
    def test_daily_rollup_with_weather(self, make_fact):
        fact = make_fact(
            {"id": "T1", "date": "2024-03-01", "net_weight": 1000, "bunch_count": 50,
             "time_in": "08:00", "time_out": "08:30"},
            {"id": "T2", "date": "2024-03-01", "net_weight": 500, "bunch_count": 25,
             "time_in": "09:00", "time_out": "09:50"},
            {"id": "T3", "date": "2024-03-02", "net_weight": 900, "bunch_count": 0,
             "time_in": "08:00", "time_out": "08:00"},
        )
        logs = [
            WeatherLog("2024-03-01", 12.0, "light_rain"),
            WeatherLog("2024-03-03", 35.0, "heavy_rain"),
            WeatherLog("2024-03-04", 0.0, "clear"),
        ]
        daily = build_factor_frame(fact, logs)

        assert daily["date"].tolist() == list(pd.to_datetime(["2024-03-01", "2024-03-02", "2024-03-03"]))
        first = daily.iloc[0]
        assert first["trip_count"] == 2
        assert first["net_weight"] == 1500
        assert first["ratio"] == pytest.approx(20.0)
        assert first["dwell_minutes"] == pytest.approx(40.0)
        assert first["rainfall_mm"] == 12.0
        # zero bunches and no valid dwell degrade to 0
        assert daily.iloc[1]["ratio"] == 0.0
        assert daily.iloc[1]["dwell_minutes"] == 0.0
        # rain-only day is kept with no intake
        assert daily.iloc[2]["net_weight"] == 0.0
        assert daily.iloc[2]["rainfall_mm"] == 35.0

    def test_empty_inputs(self):
        daily = build_factor_frame(build_fact_ticket([]), None)
        assert daily.empty
        assert list(daily.columns) == ["date", "trip_count", *FACTOR_METRICS]


class TestFactorCorrelation:
    def test_exact_negative_relationship(self, make_ticket):
        rain = [0, 10, 20, 30, 40]
        fact, logs = _days("2024-03-01", rain, [10_000 - 100 * mm for mm in rain], make_ticket)

        result = build_factor_correlation(fact, logs)

        fit = result["fit"]
        assert fit["r"] == pytest.approx(-1.0)
        assert fit["slope"] == pytest.approx(-100.0)
        assert fit["intercept"] == pytest.approx(10_000.0)
        assert not fit["points"]["is_outlier"].any()
        assert result["matrix"].loc["rainfall_mm", "net_weight"] == pytest.approx(-1.0)

    def test_lag_pairs_yesterdays_rain_with_todays_intake(self, make_ticket):
        rain = [30, 10, 50, 20, 40, 0]
        # each day's intake follows the previous day's rain
        intake = [7500] + [10_000 - 100 * mm for mm in rain[:-1]]
        fact, logs = _days("2024-03-01", rain, intake, make_ticket)

        same_day = build_factor_correlation(fact, logs, lag_days=0)
        lagged = build_factor_correlation(fact, logs, lag_days=1)

        assert same_day["fit"]["r"] > 0
        assert lagged["fit"]["r"] == pytest.approx(-1.0)
        # the first date has no previous day to pair with
        assert len(lagged["daily"]) == 5
        assert lagged["daily"]["rainfall_mm"].tolist() == [30, 10, 50, 20, 40]
        assert lagged["lag_days"] == 1

    def test_unknown_metric(self):
        with pytest.raises(ValueError):
            build_factor_correlation(build_fact_ticket([]), None, x="price")


class TestApplyLag:
    def test_zero_lag_is_a_copy(self):
        daily = pd.DataFrame({"date": pd.to_datetime(["2024-03-01"]), "rainfall_mm": [5.0]})
        lagged = apply_lag(daily, "rainfall_mm", 0)
        assert lagged.equals(daily)
        assert lagged is not daily

    def test_gap_in_dates_drops_the_row(self):
        daily = pd.DataFrame({
            "date": pd.to_datetime(["2024-03-01", "2024-03-02", "2024-03-05"]),
            "rainfall_mm": [1.0, 2.0, 3.0],
        })
        lagged = apply_lag(daily, "rainfall_mm", 1)
        assert lagged["date"].tolist() == [pd.Timestamp("2024-03-02")]
        assert lagged["rainfall_mm"].tolist() == [1.0]


class TestFitFactor:
    def test_single_far_point_is_an_outlier(self):
        xs = list(range(10))
        ys = [float(x) for x in xs]
        ys[5] = 50.0
        daily = pd.DataFrame({
            "date": pd.date_range("2024-03-01", periods=10),
            "rainfall_mm": xs,
            "net_weight": ys,
        })
        fit = fit_factor(daily, "rainfall_mm", "net_weight")
        assert fit["points"]["is_outlier"].tolist() == [i == 5 for i in range(10)]

    def test_too_few_points(self):
        daily = pd.DataFrame({
            "date": pd.to_datetime(["2024-03-01"]),
            "rainfall_mm": [3.0],
            "net_weight": [100.0],
        })
        fit = fit_factor(daily, "rainfall_mm", "net_weight")
        assert fit["r"] == 0.0
        assert fit["slope"] == 0.0


class TestCorrelationMatrix:
    def test_shape_and_symmetry(self, make_ticket):
        fact, logs = _days("2024-03-01", [0, 5, 2, 8], [900, 700, 1000, 400], make_ticket)
        matrix = correlation_matrix(build_factor_frame(fact, logs))

        assert list(matrix.index) == list(FACTOR_METRICS)
        assert list(matrix.columns) == list(FACTOR_METRICS)
        pd.testing.assert_frame_equal(matrix, matrix.T)
        assert matrix.loc["net_weight", "net_weight"] == pytest.approx(1.0)
        # every ticket has the same dwell, so it has no variance
        assert matrix.loc["dwell_minutes", "net_weight"] == 0.0
