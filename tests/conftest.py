"""Shared fixtures: a fixed reference clock and a ticket factory."""

from datetime import datetime

import pytest

from weighbridge_dashboard.models import Ticket
from weighbridge_dashboard.transforms import build_fact_ticket


def _make_ticket(
    id="T1",
    date="2024-03-15",
    time_in="08:00",
    time_out="08:30",
    plate_number="BD 1234 AB",
    location="AFD A",
    net_weight=1000.0,
    bunch_count=50.0,
):
    return Ticket(
        id=id,
        date=date,
        time_in=time_in,
        time_out=time_out,
        plate_number=plate_number,
        location=location,
        net_weight=net_weight,
        bunch_count=bunch_count,
    )


@pytest.fixture
def now():
    """Friday 15 March 2024, mid-morning."""
    return datetime(2024, 3, 15, 10, 0)


@pytest.fixture
def make_ticket():
    return _make_ticket


@pytest.fixture
def make_fact():
    """Build a fact_ticket frame from ticket keyword dicts."""
    def _build(*overrides):
        return build_fact_ticket([_make_ticket(**o) for o in overrides])
    return _build
