"""
Configuration: KPI registry, thresholds, file paths, constants.

KPI_REGISTRY maps each comparison KPI to its evaluation direction,
display unit, and amber-band tolerance (percentage points).
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# File paths, adjust these if source files move
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent

TICKETS_CSV_FILE = DATA_DIR / "tickets.csv"
TICKETS_EXCEL_FILE = DATA_DIR / "tickets.xlsx"

# ---------------------------------------------------------------------------
# Mill identity
# ---------------------------------------------------------------------------
MILL_NAME = "PKS Weighbridge"

# ---------------------------------------------------------------------------
# Ticket schema
# ---------------------------------------------------------------------------
TICKET_COLUMNS = [
    "id",
    "date",
    "time_in",
    "time_out",
    "plate_number",
    "location",
    "net_weight",
    "bunch_count",
]

# Column labels written by the weighbridge export (and the backup file).
# Import is positional, so only the order matters when reading.
CSV_HEADER_LABELS = [
    "ID",
    "Tanggal",
    "Jam Masuk",
    "Jam Keluar",
    "No Polisi",
    "Netto",
    "Janjang",
    "Lokasi",
]

# fact_ticket column under each CSV position
CSV_COLUMNS = [
    "id",
    "date",
    "time_in",
    "time_out",
    "plate_number",
    "net_weight",
    "bunch_count",
    "location",
]

# Keys accepted from upstream feeds that still use the source field names
TICKET_FIELD_ALIASES: dict[str, str] = {
    "tanggal": "date",
    "jam_masuk": "time_in",
    "jam_keluar": "time_out",
    "nopol": "plate_number",
    "lokasi": "location",
    "netto": "net_weight",
    "janjang": "bunch_count",
    "timeIn": "time_in",
    "timeOut": "time_out",
    "plateNumber": "plate_number",
    "netWeight": "net_weight",
    "bunchCount": "bunch_count",
}

CSV_MIN_FIELDS = 8
DEFAULT_TIME = "00:00"
DEFAULT_LOCATION = "N/A"

# ---------------------------------------------------------------------------
# Targets and windows
# ---------------------------------------------------------------------------
BASE_DAILY_TARGET_KG = 40_000  # 40 t per working day
WORK_DAYS_PER_WEEK = 6

TIME_WINDOWS = ("today", "week", "month", "custom", "all")
SEARCH_CATEGORIES = ("all", "ticket", "plate", "location")

# ---------------------------------------------------------------------------
# Dwell time
# ---------------------------------------------------------------------------
MINUTES_PER_DAY = 24 * 60
MAX_VALID_DWELL_MINUTES = 300  # anything at or above is a sensor/entry error

# ---------------------------------------------------------------------------
# Quality grading (ratio = net weight / bunch count, kg per bunch)
# ---------------------------------------------------------------------------
GRADE_A_MIN_RATIO = 20.0
GRADE_B_MIN_RATIO = 10.0
GRADES = ("A", "B", "C")
QUALITY_LEADERBOARD_SIZE = 5

# ---------------------------------------------------------------------------
# Vehicle tiers (lifetime ticket count)
# ---------------------------------------------------------------------------
TIER_LEGEND_MIN_TRIPS = 20
TIER_PRO_MIN_TRIPS = 8

# ---------------------------------------------------------------------------
# Trends and forecast
# ---------------------------------------------------------------------------
TREND_HISTORY_DAYS = 14
FORECAST_BASELINE_DAYS = 7
FORECAST_HORIZON_DAYS = 7
SPARKLINE_DAYS = 7

# Multiplier applied to the projected baseline, keyed by date.weekday()
WEEKDAY_MODIFIERS: dict[int, float] = {
    0: 1.0,
    1: 1.0,
    2: 1.0,
    3: 1.0,
    4: 1.0,
    5: 1.0,
    6: 0.5,  # Sunday
}

PEAK_HOUR_RANGE = range(7, 23)  # 07:00 - 22:00 inclusive

# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------
# Estate groups: filter name -> division labels matched by substring
LOCATION_GROUPS: dict[str, list[str]] = {
    "NASAL": ["AFD A", "AFD B", "AFD C", "AFD D", "AFD E"],
    "BINTUHAN": ["AFD F", "AFD G"],
}

# Benchmark composite score: each component is worth up to 25 points
BENCHMARK_VOLUME_FULL_SCORE_KG = 100_000
BENCHMARK_RATIO_FULL_SCORE = 25.0
BENCHMARK_COMPONENT_POINTS = 25.0

# ---------------------------------------------------------------------------
# Weather
# ---------------------------------------------------------------------------
WEATHER_CONDITIONS = ("clear", "cloudy", "light_rain", "heavy_rain")
WEATHER_NEUTRAL_CONDITION = "unknown"
HEAVY_RAIN_MIN_MM = 30.0
INSIGHT_WEATHER_DAYS_BEFORE = 7
INSIGHT_WEATHER_DAYS_AFTER = 3

# ---------------------------------------------------------------------------
# Factor analysis (daily metrics correlated against each other)
# ---------------------------------------------------------------------------
FACTOR_METRICS = {
    "net_weight": "Netto (kg)",
    "bunch_count": "Janjang",
    "ratio": "BJR (kg/bunch)",
    "dwell_minutes": "Dwell (min)",
    "rainfall_mm": "Rainfall (mm)",
}
# A day is an outlier when its regression residual exceeds this many std devs
FACTOR_OUTLIER_SIGMA = 1.5

# ---------------------------------------------------------------------------
# KPI Registry (period comparison)
# ---------------------------------------------------------------------------
# direction: "higher_is_better" or "lower_is_better"
# unit: display unit string
# amber_band: percentage-point tolerance for amber classification
KPI_REGISTRY: dict[str, dict] = {
    "total_net_weight": {
        "direction": "higher_is_better",
        "unit": "kg",
        "amber_band": 5.0,
    },
    "total_bunch_count": {
        "direction": "higher_is_better",
        "unit": "bunches",
        "amber_band": 5.0,
    },
    "avg_ratio": {
        "direction": "higher_is_better",
        "unit": "kg/bunch",
        "amber_band": 3.0,
    },
    "trip_count": {
        "direction": "higher_is_better",
        "unit": "trucks",
        "amber_band": 5.0,
    },
    "avg_dwell_minutes": {
        "direction": "lower_is_better",
        "unit": "min",
        "amber_band": 10.0,
    },
}
