"""Heuristic queueing time at a station."""
from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from .models import Station

PEAK_HOURS = ((7, 10), (16, 19))
PEAK_MULTIPLIER = 1.5


def base_wait_minutes(availability_ratio: float) -> int:
    if availability_ratio < 0.2:
        return 45
    if availability_ratio < 0.5:
        return 20
    if availability_ratio < 0.8:
        return 10
    return 0


def is_peak_hour(hour: int) -> bool:
    return any(start <= hour < end for start, end in PEAK_HOURS)


def estimate_wait(station: Station, now: Optional[datetime] = None) -> int:
    """Expected minutes before a connector frees up at ``station``.

    Driven only by connector availability and the local hour of ``now``.
    """
    total_connectors = sum(conn.quantity for conn in station.connections)
    if total_connectors == 0:
        return 0
    available_connectors = sum(conn.quantity for conn in station.connections if conn.is_available)

    wait = base_wait_minutes(available_connectors / total_connectors)
    now = now or datetime.now()
    if is_peak_hour(now.hour):
        wait = math.ceil(wait * PEAK_MULTIPLIER)
    return wait
