"""
Day-grid geometry for the planner board.

Converts between organization-local wall-clock time and vertical pixel
offsets on the board, snaps to the slot granularity and derives the visible
board window for a day. All functions are pure.

Board arithmetic works on organization-local datetimes that share the same
ZoneInfo, so differences are wall-clock minutes.
"""

import math
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from core.constants import (
    FALLBACK_WINDOW_END_MINUTES,
    FALLBACK_WINDOW_START_MINUTES,
    MAX_WINDOW_END_MINUTES,
    MIN_WINDOW_START_MINUTES,
    PIXELS_PER_MINUTE,
    SLOT_MINUTES,
)
from shared_types.planner import BoardWindow, PlannerAppointment
from utils.datetime_utils import local_midnight, to_org_local_time


def snap_minutes(minutes: float) -> int:
    """
    Round minutes to the nearest slot multiple.

    Ties round half up (7.5 -> 15, 22.5 -> 30, -7.5 -> 0).
    """
    return int(math.floor(minutes / SLOT_MINUTES + 0.5)) * SLOT_MINUTES


def minutes_to_pixels(minutes: float) -> float:
    return minutes * PIXELS_PER_MINUTE


def pixels_to_minutes(pixels: float) -> float:
    return pixels / PIXELS_PER_MINUTE


def time_to_pixels(instant: datetime, window_start: datetime) -> float:
    """
    Pixel offset of an instant below the window start.

    Times before the window start clamp to 0.
    """
    local = to_org_local_time(instant)
    start = to_org_local_time(window_start)
    minutes = (local - start).total_seconds() / 60
    return max(0.0, minutes_to_pixels(minutes))


def pixels_to_time(
    pixels: float,
    window_start: datetime,
    window_end: Optional[datetime] = None,
) -> datetime:
    """
    Convert a pixel offset to a snapped organization-local datetime.

    Negative offsets clamp to the window start; when window_end is given the
    result never passes it.
    """
    minutes = snap_minutes(pixels_to_minutes(max(0.0, pixels)))
    start = to_org_local_time(window_start)
    result = start + timedelta(minutes=minutes)
    if window_end is not None:
        result = min(result, to_org_local_time(window_end))
    return result


def clamp_datetime(value: datetime, lower: datetime, upper: datetime) -> datetime:
    """Clamp value into [lower, upper]; lower wins when the bounds cross."""
    return max(lower, min(value, upper))


def get_board_window(day: date | datetime, appointments: Iterable[PlannerAppointment]) -> BoardWindow:
    """
    Compute the visible time range of the day grid.

    Without appointments this is the fallback 08:00-18:00. Otherwise the
    fallback range is widened to cover every appointment, padded by one slot on
    each side, snapped, and clamped to 06:00-20:00. The end is never earlier
    than start plus one slot.

    Args:
        day: Organization-local calendar day (or an instant on it)
        appointments: Appointments shown on that day

    Returns:
        BoardWindow with organization-local start and end
    """
    midnight = local_midnight(day)
    earliest = FALLBACK_WINDOW_START_MINUTES
    latest = FALLBACK_WINDOW_END_MINUTES
    has_appointments = False

    for appointment in appointments:
        has_appointments = True
        start_offset = (to_org_local_time(appointment.starts_at) - midnight).total_seconds() / 60
        end_offset = (to_org_local_time(appointment.ends_at) - midnight).total_seconds() / 60
        earliest = min(earliest, start_offset)
        latest = max(latest, end_offset)

    if not has_appointments:
        return BoardWindow(
            start=midnight + timedelta(minutes=FALLBACK_WINDOW_START_MINUTES),
            end=midnight + timedelta(minutes=FALLBACK_WINDOW_END_MINUTES),
        )

    start_minutes = max(MIN_WINDOW_START_MINUTES, snap_minutes(earliest) - SLOT_MINUTES)
    end_minutes = min(MAX_WINDOW_END_MINUTES, snap_minutes(latest) + SLOT_MINUTES)
    end_minutes = max(start_minutes + SLOT_MINUTES, end_minutes)

    return BoardWindow(
        start=midnight + timedelta(minutes=start_minutes),
        end=midnight + timedelta(minutes=end_minutes),
    )
