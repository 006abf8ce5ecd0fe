"""
Unit tests for weather.py: rainfall classification, the gap-tolerant
join, and the insight context window.
"""

import pandas as pd
import pytest

from weighbridge_dashboard.forecast import build_forecast
from weighbridge_dashboard.models import WeatherLog
from weighbridge_dashboard.transforms import build_fact_ticket
from weighbridge_dashboard.weather import (
    build_insight_context,
    build_weather_frame,
    classify_rainfall,
    join_weather,
)


class TestClassifyRainfall:
    @pytest.mark.parametrize("mm, condition", [
        (None, "clear"),
        (0, "clear"),
        (5, "light_rain"),
        (30, "light_rain"),
        (30.1, "heavy_rain"),
    ])
    def test_thresholds(self, mm, condition):
        assert classify_rainfall(mm) == condition


class TestWeatherFrame:
    def test_unknown_condition_is_derived_from_rainfall(self):
        frame = build_weather_frame([
            {"date": "2024-03-02", "rainfall_mm": 45, "condition": "storm"},
            {"date": "2024-03-03"},
        ])
        assert frame["condition"].tolist() == ["heavy_rain", "clear"]

    def test_duplicate_date_keeps_last(self):
        frame = build_weather_frame([
            WeatherLog("2024-03-02", 0.0, "clear"),
            WeatherLog("2024-03-02", 12.0, "light_rain"),
        ])
        assert len(frame) == 1
        assert frame["condition"].iloc[0] == "light_rain"

    def test_mixed_date_formats(self):
        frame = build_weather_frame([
            {"date": "2024-03-01", "rainfall_mm": 1.0, "condition": "light_rain"},
            {"date": "2024-03-02T06:00:00", "rainfall_mm": 0.0, "condition": "clear"},
            {"date": "3/3/2024", "rainfall_mm": 0.0, "condition": "cloudy"},
        ])
        assert frame["date"].tolist() == list(pd.to_datetime(["2024-03-01", "2024-03-02", "2024-03-03"]))


class TestJoinWeather:
    def test_missing_dates_get_neutral_values(self):
        chart = pd.DataFrame({
            "date": pd.to_datetime(["2024-03-01", "2024-03-02", "2024-03-03"]),
            "actual": [1.0, 2.0, 3.0],
        })
        logs = [
            WeatherLog("2024-03-01", 0.0, "clear"),
            WeatherLog("2024-03-03", 40.0, "heavy_rain"),
        ]
        joined = join_weather(chart, logs)
        assert joined["condition"].tolist() == ["clear", "unknown", "heavy_rain"]
        assert joined["rainfall_mm"].tolist() == [0.0, 0.0, 40.0]
        assert joined["actual"].tolist() == [1.0, 2.0, 3.0]

    def test_no_weather_at_all(self):
        chart = pd.DataFrame({"date": pd.to_datetime(["2024-03-01"]), "actual": [1.0]})
        joined = join_weather(chart, None)
        assert joined["condition"].tolist() == ["unknown"]


class TestInsightContext:
    def test_context_contents(self, make_ticket):
        tickets = [
            make_ticket(id=f"T{i}", date=day.strftime("%Y-%m-%d"), net_weight=1000 * (i + 1))
            for i, day in enumerate(pd.date_range("2024-03-01", periods=10))
        ]
        forecast = build_forecast(build_fact_ticket(tickets))
        logs = [
            WeatherLog(day.strftime("%Y-%m-%d"), 0.0, "clear")
            for day in pd.date_range("2024-03-01", "2024-03-20")
        ]
        kpis = {"total_net_weight": 55_000}

        context = build_insight_context(kpis, forecast, logs, today="2024-03-10")

        assert context["kpis"] == kpis
        assert [p["date"] for p in context["recent_trend"]] == [
            f"2024-03-{d:02d}" for d in range(4, 11)
        ]
        assert context["recent_trend"][-1]["actual"] == 10_000
        weather_dates = [w["date"] for w in context["weather"]]
        assert weather_dates[0] == "2024-03-03"
        assert weather_dates[-1] == "2024-03-13"
        assert len(weather_dates) == 11
        assert context["total_projected"] == forecast["total_projected"]
