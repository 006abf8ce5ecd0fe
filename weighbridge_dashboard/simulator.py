"""
Simulated data generator for the weighbridge dashboard.

Generates realistic ticket and weather data based on typical palm-oil mill
intake parameters. All values are synthetic, no real operational data is
used.
"""

import numpy as np
import pandas as pd

from .config import WEATHER_CONDITIONS
from .models import Ticket, WeatherLog
from .weather import classify_rainfall

# ---------------------------------------------------------------------------
# Typical intake parameters (realistic ranges)
# ---------------------------------------------------------------------------
_LOCATIONS = [
    # (location, share of trucks, mean kg per bunch)
    ("AFD A", 0.18, 21.0),
    ("AFD B", 0.16, 18.5),
    ("AFD C", 0.14, 16.0),
    ("AFD D", 0.12, 22.5),
    ("AFD E", 0.10, 14.0),
    ("AFD F", 0.16, 19.5),
    ("AFD G", 0.14, 11.5),
]

_FLEET_SIZE = 24
_NET_WEIGHT_RANGE = (3_500, 9_000)  # kg per truck
_ARRIVAL_HOURS = (7, 21)
_DWELL_MINUTES = (8, 55)

_RAINFALL_BY_CONDITION = {
    "clear": (0.0, 0.0),
    "cloudy": (0.0, 2.0),
    "light_rain": (2.0, 30.0),
    "heavy_rain": (30.0, 80.0),
}


def _fleet(rng: np.random.Generator) -> list[str]:
    """Bengkulu-style plates, e.g. 'BD 8123 AK'."""
    letters = "ABCDEFGHJKLMNPRSTUVWXYZ"
    plates = []
    while len(plates) < _FLEET_SIZE:
        number = int(rng.integers(1000, 9999))
        suffix = "".join(rng.choice(list(letters), size=2))
        plate = f"BD {number} {suffix}"
        if plate not in plates:
            plates.append(plate)
    return plates


def generate_tickets(
    end_date: str = "2026-02-14",
    days: int = 45,
    trucks_per_day: tuple[int, int] = (8, 18),
    seed: int = 42,
) -> list[Ticket]:
    """Generate simulated weighbridge tickets for ``days`` days up to end_date.

    A handful of core trucks deliver every working day so the leaderboard
    shows real streaks and tiers; the rest of the fleet comes and goes.
    Sundays run at roughly half volume.
    """
    rng = np.random.default_rng(seed)
    plates = _fleet(rng)
    core = plates[:4]
    others = plates[4:]

    names = [loc for loc, _, _ in _LOCATIONS]
    shares = np.array([s for _, s, _ in _LOCATIONS])
    shares = shares / shares.sum()
    ratios = {loc: r for loc, _, r in _LOCATIONS}

    dates = pd.date_range(end=end_date, periods=days, freq="D")
    tickets = []
    seq = 1

    for day in dates:
        low, high = trucks_per_day
        n_trucks = int(rng.integers(low, high + 1))
        if day.dayofweek == 6:
            n_trucks = max(n_trucks // 2, 1)
            day_plates = list(rng.choice(others, size=n_trucks, replace=True))
        else:
            extra = max(n_trucks - len(core), 0)
            day_plates = core + list(rng.choice(others, size=extra, replace=True))

        for plate in day_plates:
            location = str(rng.choice(names, p=shares))
            net_weight = int(rng.integers(*_NET_WEIGHT_RANGE))
            ratio = max(rng.normal(ratios[location], 2.5), 6.0)
            bunch_count = max(int(round(net_weight / ratio)), 1)

            arrival = int(rng.integers(_ARRIVAL_HOURS[0] * 60, _ARRIVAL_HOURS[1] * 60))
            departure = arrival + int(rng.integers(*_DWELL_MINUTES))

            tickets.append(Ticket(
                id=f"TKT-{day.strftime('%Y%m%d')}-{seq:04d}",
                date=day.strftime("%Y-%m-%d"),
                time_in=f"{arrival // 60:02d}:{arrival % 60:02d}",
                time_out=f"{departure // 60 % 24:02d}:{departure % 60:02d}",
                plate_number=str(plate),
                location=location,
                net_weight=float(net_weight),
                bunch_count=float(bunch_count),
            ))
            seq += 1

    return tickets


def generate_weather_logs(
    end_date: str = "2026-02-14",
    days: int = 45,
    days_ahead: int = 3,
    seed: int = 42,
) -> list[WeatherLog]:
    """Generate simulated daily weather, including a short look-ahead."""
    rng = np.random.default_rng(seed + 1)
    end = pd.Timestamp(end_date) + pd.Timedelta(days=days_ahead)
    dates = pd.date_range(end=end, periods=days + days_ahead, freq="D")

    logs = []
    for day in dates:
        condition = str(rng.choice(WEATHER_CONDITIONS, p=[0.4, 0.3, 0.2, 0.1]))
        low, high = _RAINFALL_BY_CONDITION[condition]
        rainfall = round(float(rng.uniform(low, high)), 1) if high > 0 else 0.0
        if condition != "cloudy":
            condition = classify_rainfall(rainfall)
        logs.append(WeatherLog(date=day.strftime("%Y-%m-%d"), rainfall_mm=rainfall, condition=condition))

    return logs
