"""
Property-based tests for the board geometry, resize gestures and the
appointment reducer.

These tests verify invariants that must hold for any input, using Hypothesis
to generate minutes, pointer positions and appointment lists on the test day.
"""

import asyncio
from collections import Counter
from datetime import date, datetime, timedelta

from hypothesis import HealthCheck, given, settings, strategies as st

from core.constants import SLOT_MINUTES
from services.planner_board import PlannerBoardController, ResizeEdge
from services.planner_reducer import apply_removal, restore_appointment, sort_appointments
from services.planner_store import PlannerAppointmentStore
from tests.helpers import FakePlannerBackend, make_appointment, make_technician
from utils.board_geometry import get_board_window, pixels_to_time, snap_minutes, time_to_pixels
from utils.datetime_utils import ORG_TZ, local_midnight

DAY = date(2026, 6, 15)
BOARD_START = datetime(2026, 6, 15, 7, 45, tzinfo=ORG_TZ)

# Tables are created per test by an autouse fixture; these tests never touch them
relaxed = settings(suppress_health_check=[HealthCheck.function_scoped_fixture])


def appointment_strategy():
    """An appointment starting on a slot between 06:00 and 19:45 local time."""
    return st.builds(
        lambda index, hour, minute, minutes: make_appointment(
            f"apt-{index}", start=(hour, minute), minutes=minutes
        ),
        st.integers(min_value=0, max_value=10_000),
        st.integers(min_value=6, max_value=19),
        st.sampled_from([0, 15, 30, 45]),
        st.integers(min_value=15, max_value=180),
    )


appointment_lists = st.lists(appointment_strategy(), max_size=12, unique_by=lambda a: a.id)


def minutes_after_midnight(instant: datetime) -> float:
    return (instant - local_midnight(DAY)).total_seconds() / 60


def board_for(appointment) -> PlannerBoardController:
    store = PlannerAppointmentStore(FakePlannerBackend([appointment]), "org-test", DAY)
    asyncio.run(store.list_appointments())
    board = PlannerBoardController(store, [make_technician("tech-1", "Jonas")])
    board.register_lane("tech-1", 0)
    return board


class TestSnapProperties:
    @relaxed
    @given(minutes=st.floats(min_value=-2000, max_value=2000, allow_nan=False))
    def test_snap_lands_on_nearest_slot(self, minutes):
        snapped = snap_minutes(minutes)

        assert snapped % 15 == 0
        assert abs(snapped - minutes) <= 7.5 + 1e-9

    @relaxed
    @given(slot=st.integers(min_value=-100, max_value=100))
    def test_slot_boundaries_are_fixed_points(self, slot):
        assert snap_minutes(slot * 15) == slot * 15

    @relaxed
    @given(seconds=st.integers(min_value=0, max_value=12 * 3600))
    def test_pixel_round_trip_snaps_to_nearest_slot(self, seconds):
        instant = BOARD_START + timedelta(seconds=seconds)

        result = pixels_to_time(time_to_pixels(instant, BOARD_START), BOARD_START)

        assert result == BOARD_START + timedelta(minutes=snap_minutes(seconds / 60))


class TestBoardWindowProperties:
    @relaxed
    @given(appointments=appointment_lists)
    def test_window_covers_business_hours_and_appointments(self, appointments):
        window = get_board_window(DAY, appointments)
        start = minutes_after_midnight(window.start)
        end = minutes_after_midnight(window.end)

        assert 6 * 60 <= start <= 8 * 60
        assert 18 * 60 <= end <= 20 * 60
        assert start % 15 == 0 and end % 15 == 0
        for appointment in appointments:
            assert window.start <= appointment.starts_at

    @relaxed
    @given(appointments=appointment_lists)
    def test_window_stays_on_the_day(self, appointments):
        window = get_board_window(DAY, appointments)

        assert window.start.astimezone(ORG_TZ).date() == DAY
        assert window.end.astimezone(ORG_TZ).date() == DAY
        assert window.start < window.end <= datetime(2026, 6, 15, 20, 0, tzinfo=ORG_TZ)


class TestReducerProperties:
    @relaxed
    @given(appointments=appointment_lists)
    def test_sort_is_an_ordered_copy(self, appointments):
        before = list(appointments)

        result = sort_appointments(appointments)

        assert appointments == before
        assert Counter(a.id for a in result) == Counter(a.id for a in appointments)
        assert all(first.starts_at <= second.starts_at for first, second in zip(result, result[1:]))
        assert all(item is not original for item in result for original in appointments)

    @relaxed
    @given(appointments=appointment_lists, data=st.data())
    def test_removal_then_restore_round_trips(self, appointments, data):
        current = sort_appointments(appointments)
        ids = [a.id for a in current] + ["missing"]
        appointment_id = data.draw(st.sampled_from(ids))

        removed = apply_removal(current, appointment_id)
        restored = restore_appointment(removed, current, appointment_id)

        assert all(a.id != appointment_id for a in removed)
        assert sorted(a.id for a in restored) == sorted(a.id for a in current)
        assert current == sort_appointments(appointments)


class TestResizeProperties:
    @relaxed
    @given(
        hour=st.integers(min_value=8, max_value=15),
        minute=st.sampled_from([0, 15, 30, 45]),
        minutes=st.integers(min_value=15, max_value=180),
        edge=st.sampled_from([ResizeEdge.START, ResizeEdge.END]),
        pointer_ys=st.lists(st.floats(min_value=-300, max_value=1600, allow_nan=False), min_size=1, max_size=20),
    )
    def test_resize_never_shrinks_below_one_slot(self, hour, minute, minutes, edge, pointer_ys):
        appointment = make_appointment("a", start=(hour, minute), minutes=minutes, technician_id="tech-1")
        board = board_for(appointment)
        window = board.window
        board.on_gesture_start("a", pointer_ys[0], edge=edge)

        for pointer_y in pointer_ys:
            override = board.on_gesture_update(pointer_y)

            assert override.end - override.start >= timedelta(minutes=SLOT_MINUTES)
            assert window.start <= override.start and override.end <= window.end
