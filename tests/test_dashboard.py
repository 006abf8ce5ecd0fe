"""
Integration tests for dashboard.py over simulated tickets, plus the
simulator itself.
"""

import pandas as pd
import pytest

from weighbridge_dashboard.config import WEATHER_CONDITIONS
from weighbridge_dashboard.dashboard import (
    get_available_locations,
    get_dashboard_overview,
    get_location_filter_options,
)
from weighbridge_dashboard.simulator import generate_tickets, generate_weather_logs
from weighbridge_dashboard.transforms import build_fact_ticket

END = "2026-02-14"


@pytest.fixture(scope="module")
def tickets():
    return generate_tickets(end_date=END, days=30)


@pytest.fixture(scope="module")
def weather():
    return generate_weather_logs(end_date=END, days=30)


class TestSimulator:
    def test_same_seed_same_tickets(self):
        assert generate_tickets(end_date=END, days=5) == generate_tickets(end_date=END, days=5)

    def test_ids_are_unique(self, tickets):
        ids = [t.id for t in tickets]
        assert len(ids) == len(set(ids))

    def test_dates_within_range(self, tickets):
        dates = sorted({t.date for t in tickets})
        assert dates[-1] == END
        assert len(dates) == 30

    def test_weather_covers_look_ahead(self, weather):
        assert len(weather) == 33
        assert weather[-1].date == "2026-02-17"
        assert {w.condition for w in weather} <= set(WEATHER_CONDITIONS)


class TestDashboardOverview:
    def test_month_window(self, tickets, weather):
        overview = get_dashboard_overview(tickets, "month", now=END, weather_logs=weather)

        assert overview["total_tickets"] == len(tickets)
        assert 0 < overview["filtered_tickets"] <= overview["total_tickets"]
        assert overview["trend"]["total"].sum() == pytest.approx(overview["kpis"]["total_net_weight"])
        assert overview["vehicles"]["trip_count"].sum() == overview["filtered_tickets"]
        assert sum(overview["quality"]["grade_counts"].values()) == overview["filtered_tickets"]
        assert overview["kpis"]["current_target"] == 28 * 40_000
        assert overview["comparison"] is not None
        assert overview["location"] is None
        assert {"condition", "rainfall_mm"} <= set(overview["forecast"]["chart"].columns)

        factor_dates = overview["factors"]["daily"]["date"]
        assert not factor_dates.empty
        assert (factor_dates >= pd.Timestamp("2026-02-01")).all()
        assert (factor_dates <= pd.Timestamp(END)).all()
        assert overview["factors"]["lag_days"] == 0

    def test_all_window_has_no_comparison(self, tickets):
        overview = get_dashboard_overview(tickets, "all", now=END)
        assert overview["comparison"] is None
        assert overview["filtered_tickets"] == overview["total_tickets"]

    def test_selected_location(self, tickets):
        overview = get_dashboard_overview(tickets, "today", now=END, selected_location="AFD A")
        assert overview["location"]["name"] == "AFD A"

    def test_repeated_calls_agree(self, tickets):
        first = get_dashboard_overview(tickets, "week", now=END)
        second = get_dashboard_overview(tickets, "week", now=END)
        assert first["kpis"] == second["kpis"]
        pd.testing.assert_frame_equal(first["forecast"]["chart"], second["forecast"]["chart"])

    def test_empty_ticket_feed(self):
        overview = get_dashboard_overview([], "today", now=END)
        assert overview["total_tickets"] == 0
        assert overview["kpis"]["trip_count"] == 0
        assert overview["vehicles"].empty
        assert overview["forecast"]["total_projected"] == 0


class TestLocationOptions:
    def test_available_locations(self, make_fact):
        fact = make_fact(
            {"id": "T1", "location": "AFD B"},
            {"id": "T2", "location": "AFD A"},
            {"id": "T3", "location": "AFD B"},
            {"id": "T4", "location": ""},
        )
        assert get_available_locations(fact) == ["AFD A", "AFD B"]

    def test_filter_options(self, make_fact):
        fact = make_fact({"id": "T1", "location": "AFD G"})
        assert get_location_filter_options(fact) == ["ALL", "NASAL", "BINTUHAN", "AFD G"]

    def test_empty(self):
        assert get_available_locations(build_fact_ticket([])) == []
