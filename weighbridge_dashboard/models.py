"""
Record types shared by the loaders and the analytics functions.

Analytics work on the ``fact_ticket`` DataFrame (see
transforms.build_fact_ticket); these records are the row-level shapes that
cross the import/export and weather boundaries.
"""

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class Ticket:
    """One weighbridge transaction. ``id`` is the durable identity."""

    id: str
    date: str  # "YYYY-MM-DD"
    time_in: str  # "HH:MM"
    time_out: str  # "HH:MM"
    plate_number: str
    location: str
    net_weight: float
    bunch_count: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class WeatherLog:
    date: str  # "YYYY-MM-DD"
    rainfall_mm: float
    condition: str  # one of config.WEATHER_CONDITIONS


@dataclass
class ImportResult:
    """Valid tickets from one import batch plus the count of dropped rows."""

    tickets: list[Ticket] = field(default_factory=list)
    skipped: int = 0

    @property
    def valid(self) -> int:
        return len(self.tickets)
