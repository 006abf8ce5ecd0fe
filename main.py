"""
Weighbridge Dashboard — End-to-end analytics pipeline.

Runs the full data pipeline from a ticket export (or simulated tickets when
no export is present) to dashboard-ready outputs and prints smoke-test
summaries.

Usage:
    python main.py
"""

import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from weighbridge_dashboard.config import MILL_NAME, TICKETS_CSV_FILE, TICKETS_EXCEL_FILE
from weighbridge_dashboard.dashboard import get_available_locations, get_dashboard_overview
from weighbridge_dashboard.exporters import tickets_to_csv
from weighbridge_dashboard.kpis import calc_dwell_minutes, compute_kpis
from weighbridge_dashboard.loaders import load_tickets_csv, load_tickets_excel, parse_tickets_csv
from weighbridge_dashboard.models import Ticket
from weighbridge_dashboard.quality import grade_ratio
from weighbridge_dashboard.simulator import generate_tickets, generate_weather_logs
from weighbridge_dashboard.transforms import build_fact_ticket

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

SIMULATION_END = "2026-02-14"


def main() -> None:
    """Run the full analytics pipeline and print smoke-test outputs."""

    print("=" * 70)
    print(f"  {MILL_NAME.upper()} — Intake Analytics Dashboard")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)
    print()

    # ------------------------------------------------------------------
    # 1. Load source data
    # ------------------------------------------------------------------
    print("[ 1 ] LOADING SOURCE DATA")
    print("-" * 40)

    if TICKETS_CSV_FILE.exists():
        result = load_tickets_csv(str(TICKETS_CSV_FILE))
        tickets = result.tickets
        print(f"\nTicket export: {result.valid} tickets loaded, {result.skipped} rows skipped")
        now = None
    elif TICKETS_EXCEL_FILE.exists():
        result = load_tickets_excel(str(TICKETS_EXCEL_FILE))
        tickets = result.tickets
        print(f"\nTicket workbook: {result.valid} tickets loaded, {result.skipped} rows skipped")
        now = None
    else:
        logger.warning("No ticket export found, using simulated tickets")
        tickets = generate_tickets(end_date=SIMULATION_END)
        print(f"\nSimulated tickets: {len(tickets)} generated")
        now = SIMULATION_END

    weather_logs = generate_weather_logs(end_date=SIMULATION_END)
    print(f"Weather logs: {len(weather_logs)} days")

    # ------------------------------------------------------------------
    # 2. Build fact table
    # ------------------------------------------------------------------
    print("\n")
    print("[ 2 ] BUILDING FACT TABLE")
    print("-" * 40)

    fact = build_fact_ticket(tickets)
    print(f"\nfact_ticket: {len(fact)} rows")
    print(fact.head(10).to_string(index=False))
    print(f"\nLocations: {get_available_locations(fact)}")

    # ------------------------------------------------------------------
    # 3. Dashboard outputs
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] DASHBOARD OUTPUTS")
    print("-" * 40)

    locations = get_available_locations(fact)
    overview = get_dashboard_overview(
        fact,
        window="month",
        now=now,
        selected_location=locations[0] if locations else None,
        weather_logs=weather_logs,
    )

    print("\nHeadline KPIs (this month):")
    for name, value in overview["kpis"].items():
        print(f"  {name:20s} | {value:,.2f}")

    if overview["comparison"] is not None:
        print("\nPeriod comparison (this month vs last month):")
        print(overview["comparison"].to_string(index=False))

    print("\nQuality grades:", overview["quality"]["grade_counts"])
    print("\nLocation quality leaderboard:")
    print(overview["quality"]["location_leaderboard"].to_string(index=False))

    print("\nVehicle leaderboard (top 10):")
    print(overview["vehicles"].drop(columns=["tickets"]).head(10).to_string(index=False))

    print("\nLocation benchmark:")
    print(overview["benchmark"].round(2).to_string(index=False))

    loc = overview["location"]
    if loc is not None:
        print(f"\nLocation drill-down — {loc['name']}: {loc['trip_count']} trips, "
              f"{loc['total_net_weight']:,.0f} kg, {loc['avg_ratio']:.2f} kg/bunch")

    print("\nPeak hours:")
    print(overview["peak_hours"].to_string(index=False))

    forecast = overview["forecast"]
    print(f"\nForecast: baseline {forecast['baseline']:,.0f} kg/day, "
          f"{forecast['total_projected']:,} kg projected")
    print(forecast["chart"].to_string(index=False))

    factors = overview["factors"]
    print(f"\nFactor analysis: rainfall vs netto r = {factors['fit']['r']:.2f} "
          f"over {len(factors['daily'])} days, "
          f"{int(factors['fit']['points']['is_outlier'].sum())} outlier days")
    print(factors["matrix"].round(2).to_string())

    # ------------------------------------------------------------------
    # 4. Acceptance criteria verification
    # ------------------------------------------------------------------
    print("\n")
    print("[ 4 ] ACCEPTANCE CRITERIA CHECKS")
    print("-" * 40)

    # Check 1: end-to-end KPIs on two tickets
    sample = build_fact_ticket([
        Ticket("T1", "2024-03-01", "08:00", "08:30", "BD 1", "AFD A", 1000, 40),
        Ticket("T2", "2024-03-01", "09:00", "09:45", "BD 2", "AFD B", 500, 30),
    ])
    kpis = compute_kpis(sample, "today", now="2024-03-01")
    check1 = (
        kpis["total_net_weight"] == 1500
        and kpis["total_bunch_count"] == 70
        and abs(kpis["avg_ratio"] - 21.43) < 0.01
        and kpis["trip_count"] == 2
    )
    print(f"\n  [{'PASS' if check1 else 'FAIL'}] T1/T2 KPIs: {kpis['total_net_weight']:.0f} kg, "
          f"{kpis['total_bunch_count']:.0f} bunches, {kpis['avg_ratio']:.2f} kg/bunch")

    # Check 2: grade boundaries
    check2 = [grade_ratio(r) for r in (19.999, 20.0, 9.999, 10.0)] == ["B", "A", "C", "B"]
    print(f"  [{'PASS' if check2 else 'FAIL'}] Grade boundaries at 20 and 10 kg/bunch")

    # Check 3: dwell across midnight
    dwell = calc_dwell_minutes("23:50", "00:10")
    check3 = dwell == 20
    print(f"  [{'PASS' if check3 else 'FAIL'}] Dwell 23:50 -> 00:10 = {dwell} min")

    # Check 4: trend sums to the window total
    trend_total = overview["trend"]["total"].sum()
    check4 = abs(trend_total - overview["kpis"]["total_net_weight"]) < 1e-6
    print(f"  [{'PASS' if check4 else 'FAIL'}] Daily trend sums to {trend_total:,.0f} kg")

    # Check 5: CSV export survives re-import
    reimported = parse_tickets_csv(tickets_to_csv(fact))
    check5 = reimported.valid == len(fact)
    print(f"  [{'PASS' if check5 else 'FAIL'}] CSV round-trip: {reimported.valid} of {len(fact)} tickets")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
