"""
Scheduling board interaction controller.

PlannerBoardController owns the pointer gestures of the day board (drag to
move, drag a handle to resize, click empty lane space to create) without
depending on any UI toolkit. A view feeds it pointer coordinates and lane
geometry and re-renders on the events it publishes.

Gesture lifecycle:

    idle -> dragging -> committing | cancelled -> idle
    idle -> resizing -> committing | cancelled -> idle

While a gesture is active its candidate position lives in an optimistic
override that only drives rendering. On release the controller asks the
availability check; a refusal yields the nearest free slot as a suggestion,
an approval commits through the appointment store. The override is cleared
on every settlement, but only by the gesture that created it.

Every gesture has a keyboard equivalent (open_appointment,
move_appointment_to, resize_appointment_to, request_create) that runs the
same validation and commit path.
"""

import itertools
import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from core.constants import (
    DEFAULT_APPOINTMENT_MINUTES,
    PIXELS_PER_MINUTE,
    SLOT_MINUTES,
    TECHNICIAN_COLORS,
    UNASSIGNED_LANE_ID,
)
from core.exceptions import FriendlyError, PlannerMutationError
from services.planner_store import PlannerAppointmentStore
from shared_types.planner import (
    BoardWindow,
    CanScheduleInput,
    MovePayload,
    OptimisticOverride,
    PlannerAppointment,
    PlannerTechnician,
    ResizePayload,
)
from utils.board_geometry import (
    clamp_datetime,
    get_board_window,
    minutes_to_pixels,
    pixels_to_minutes,
    pixels_to_time,
    snap_minutes,
    time_to_pixels,
)
from utils.datetime_utils import ensure_utc, local_day, minutes_between, org_now, to_org_local_time
from utils.error_messages import map_error_to_friendly_message

logger = logging.getLogger(__name__)


class GestureKind(str, Enum):
    DRAG = "drag"
    RESIZE = "resize"


class GestureState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    COMMITTING = "committing"
    CANCELLED = "cancelled"


class ResizeEdge(str, Enum):
    START = "start"
    END = "end"


class OutcomeStatus(str, Enum):
    COMMITTED = "committed"
    CONFLICT = "conflict"
    FAILED = "failed"
    UNCHANGED = "unchanged"
    CANCELLED = "cancelled"


class BoardEventKind(str, Enum):
    CANDIDATE_CHANGED = "candidate_changed"
    GESTURE_CANCELLED = "gesture_cancelled"
    GESTURE_SETTLED = "gesture_settled"


@dataclass
class GestureSession:
    """
    State of the one active gesture on the board.

    origin_offset is the distance between the pointer and the top edge of the
    grabbed card, so the card does not jump under the pointer.
    """
    active_gesture_id: str
    kind: GestureKind
    origin_offset: float
    pointer_y: Optional[float]
    destination_lane_id: str
    token: int
    state: GestureState
    edge: Optional[ResizeEdge] = None


@dataclass(frozen=True)
class SlotSuggestion:
    """Nearest free position found after a refused commit (UTC instants)."""
    technician_id: Optional[str]
    starts_at: datetime
    ends_at: datetime


@dataclass(frozen=True)
class GestureOutcome:
    status: OutcomeStatus
    appointment_id: Optional[str] = None
    appointment: Optional[PlannerAppointment] = None
    suggestion: Optional[SlotSuggestion] = None
    error: Optional[FriendlyError] = None


@dataclass(frozen=True)
class CreateDefaults:
    """Prefilled values handed to the create flow (UTC instants)."""
    technician_id: Optional[str]
    bay_id: Optional[str]
    starts_at: datetime
    ends_at: datetime


@dataclass(frozen=True)
class BoardEvent:
    kind: BoardEventKind
    appointment_id: str
    override: Optional[OptimisticOverride] = None
    outcome: Optional[GestureOutcome] = None


@dataclass(frozen=True)
class LaneItem:
    """An appointment card positioned in a lane."""
    appointment: PlannerAppointment
    top: float
    height: float
    is_active: bool = False
    has_conflict: bool = False


@dataclass(frozen=True)
class BoardLane:
    lane_id: str
    name: str
    color: str
    technician: Optional[PlannerTechnician] = None
    items: List[LaneItem] = field(default_factory=list)


@dataclass(frozen=True)
class GridLine:
    top: float
    label: Optional[str]
    is_hour: bool


BoardListener = Callable[[BoardEvent], None]


def ranges_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    return start1 < end2 and end1 > start2


def appointments_conflict(first: PlannerAppointment, second: PlannerAppointment) -> bool:
    """
    Advisory client-side conflict check.

    Two appointments conflict when their time ranges overlap and they share a
    technician or a bay. The unassigned lane is not a resource.
    """
    if first.id == second.id:
        return False
    if not ranges_overlap(first.starts_at, first.ends_at, second.starts_at, second.ends_at):
        return False
    same_technician = first.technician_id is not None and first.technician_id == second.technician_id
    same_bay = first.bay_id is not None and first.bay_id == second.bay_id
    return same_technician or same_bay


def _lane_of(technician_id: Optional[str]) -> str:
    return technician_id or UNASSIGNED_LANE_ID


def _technician_of(lane_id: Optional[str]) -> Optional[str]:
    return None if not lane_id or lane_id == UNASSIGNED_LANE_ID else lane_id


def _as_utc(value: datetime) -> datetime:
    result = ensure_utc(value)
    assert result is not None
    return result


class PlannerBoardController:
    """
    Gesture controller of one board view.

    Args:
        store: Appointment store of the view (its day and bay filter define the board)
        technicians: Lanes, in display order
        on_create_requested: Called with CreateDefaults when a create flow should open
        on_open_requested: Called with the appointment when its editor should open
        clock: Current time source, used for the "now" marker
    """

    def __init__(
        self,
        store: PlannerAppointmentStore,
        technicians: Sequence[PlannerTechnician] = (),
        on_create_requested: Optional[Callable[[CreateDefaults], None]] = None,
        on_open_requested: Optional[Callable[[PlannerAppointment], None]] = None,
        clock: Callable[[], datetime] = org_now,
    ):
        self.store = store
        self.technicians: List[PlannerTechnician] = list(technicians)
        self.on_create_requested = on_create_requested
        self.on_open_requested = on_open_requested
        self.clock = clock
        self._lane_tops: Dict[str, float] = {}
        self._session: Optional[GestureSession] = None
        self._overrides: Dict[str, Tuple[int, OptimisticOverride]] = {}
        self._committing: Dict[str, int] = {}
        self._tokens = itertools.count(1)
        self._listeners: List[BoardListener] = []

    # Board geometry

    @property
    def appointments(self) -> List[PlannerAppointment]:
        return self.store.appointments

    @property
    def window(self) -> BoardWindow:
        return get_board_window(self.store.day, self.appointments)

    @property
    def total_minutes(self) -> float:
        return self.window.total_minutes

    @property
    def total_pixels(self) -> float:
        return minutes_to_pixels(self.total_minutes)

    def register_lane(self, lane_id: str, top: float) -> None:
        """Record where a lane's grid begins, in pointer coordinates."""
        self._lane_tops[lane_id] = top

    def set_technicians(self, technicians: Iterable[PlannerTechnician]) -> None:
        self.technicians = list(technicians)

    # Session state

    @property
    def state(self) -> GestureState:
        return self._session.state if self._session else GestureState.IDLE

    @property
    def session(self) -> Optional[GestureSession]:
        return replace(self._session) if self._session else None

    def override_for(self, appointment_id: str) -> Optional[OptimisticOverride]:
        entry = self._overrides.get(appointment_id)
        return entry[1] if entry else None

    def subscribe(self, listener: BoardListener) -> Callable[[], None]:
        """Register for board events. Returns a function that unsubscribes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: BoardEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Board listener failed on {event.kind.value}")

    def _find(self, appointment_id: str) -> Optional[PlannerAppointment]:
        return self.store.find(appointment_id)

    def _is_busy(self, appointment_id: str) -> bool:
        return appointment_id in self._committing or self.store.is_in_flight(appointment_id)

    def _set_override(self, token: int, appointment_id: str, override: OptimisticOverride) -> None:
        self._overrides[appointment_id] = (token, override)
        self._emit(BoardEvent(BoardEventKind.CANDIDATE_CHANGED, appointment_id, override=override))

    def _clear_override(self, token: int, appointment_id: str) -> None:
        entry = self._overrides.get(appointment_id)
        if entry and entry[0] == token:
            del self._overrides[appointment_id]

    def _duration_minutes(self, appointment: PlannerAppointment) -> float:
        local_start = to_org_local_time(appointment.starts_at)
        local_end = to_org_local_time(appointment.ends_at)
        return max(SLOT_MINUTES, minutes_between(local_start, local_end))

    # Pointer gestures

    def on_gesture_start(
        self,
        appointment_id: str,
        pointer_y: float,
        lane_id: Optional[str] = None,
        edge: Optional[ResizeEdge] = None,
        origin_offset: Optional[float] = None,
    ) -> Optional[GestureSession]:
        """
        Begin dragging (no edge) or resizing (edge given) an appointment.

        Refused (returns None) while another gesture is active or while the
        appointment has a change in flight.
        """
        if self.state in (GestureState.DRAGGING, GestureState.RESIZING):
            logger.debug(f"Ignoring gesture on {appointment_id}: another gesture is active")
            return None
        appointment = self._find(appointment_id)
        if appointment is None or self._is_busy(appointment_id):
            logger.debug(f"Ignoring gesture on {appointment_id}: unknown or busy")
            return None

        lane = lane_id or _lane_of(appointment.technician_id)
        window = self.window
        local_start = to_org_local_time(appointment.starts_at)
        local_end = to_org_local_time(appointment.ends_at)
        if origin_offset is None:
            lane_top = self._lane_tops.get(lane)
            card_top = time_to_pixels(local_start, window.start)
            origin_offset = pointer_y - lane_top - card_top if lane_top is not None else 0.0

        kind = GestureKind.RESIZE if edge else GestureKind.DRAG
        self._session = GestureSession(
            active_gesture_id=appointment_id,
            kind=kind,
            origin_offset=origin_offset,
            pointer_y=pointer_y,
            destination_lane_id=lane,
            token=next(self._tokens),
            state=GestureState.RESIZING if edge else GestureState.DRAGGING,
            edge=edge,
        )
        logger.debug(f"Gesture {self._session.token} started: {kind.value} {appointment_id}")
        self._set_override(
            self._session.token,
            appointment_id,
            OptimisticOverride(start=local_start, end=local_end, technician_id=appointment.technician_id),
        )
        return self.session

    def on_gesture_update(self, pointer_y: float, lane_id: Optional[str] = None) -> Optional[OptimisticOverride]:
        """Recompute the candidate for a pointer move; returns the new override."""
        session = self._session
        if session is None or session.state not in (GestureState.DRAGGING, GestureState.RESIZING):
            return None
        appointment = self._find(session.active_gesture_id)
        if appointment is None:
            self.cancel_gesture()
            return None

        session.pointer_y = pointer_y
        if lane_id and session.kind == GestureKind.DRAG:
            session.destination_lane_id = lane_id

        override = self._candidate(session, appointment)
        self._set_override(session.token, appointment.id, override)
        return override

    def _candidate(self, session: GestureSession, appointment: PlannerAppointment) -> OptimisticOverride:
        if session.kind == GestureKind.DRAG:
            return self._drag_candidate(session, appointment)
        return self._resize_candidate(session, appointment)

    def _drag_candidate(self, session: GestureSession, appointment: PlannerAppointment) -> OptimisticOverride:
        window = self.window
        technician_id = _technician_of(session.destination_lane_id)
        current = self.override_for(appointment.id)
        lane_top = self._lane_tops.get(session.destination_lane_id)

        if lane_top is None or session.pointer_y is None:
            start = current.start if current else to_org_local_time(appointment.starts_at)
            end = current.end if current else to_org_local_time(appointment.ends_at)
            return OptimisticOverride(start=start, end=end, technician_id=technician_id)

        duration = self._duration_minutes(appointment)
        raw_minutes = pixels_to_minutes(session.pointer_y - lane_top - session.origin_offset)
        snapped = snap_minutes(raw_minutes)
        limited = min(max(0, snapped), max(0, self.total_minutes - duration))
        start = window.start + timedelta(minutes=limited)
        return OptimisticOverride(
            start=start,
            end=start + timedelta(minutes=duration),
            technician_id=technician_id,
        )

    def _resize_candidate(self, session: GestureSession, appointment: PlannerAppointment) -> OptimisticOverride:
        window = self.window
        current = self.override_for(appointment.id) or OptimisticOverride(
            start=to_org_local_time(appointment.starts_at),
            end=to_org_local_time(appointment.ends_at),
            technician_id=appointment.technician_id,
        )
        lane_top = self._lane_tops.get(session.destination_lane_id)
        if lane_top is None or session.pointer_y is None:
            return current

        normalized = max(0.0, min(session.pointer_y - lane_top, self.total_pixels))
        candidate = pixels_to_time(normalized, window.start)
        slot = timedelta(minutes=SLOT_MINUTES)
        if session.edge == ResizeEdge.START:
            start = min(max(candidate, window.start), current.end - slot)
            return replace(current, start=start)
        end = max(min(candidate, window.end), current.start + slot)
        return replace(current, end=end)

    def cancel_gesture(self) -> bool:
        """
        Abandon the active drag or resize without persisting anything.

        A commit already in flight cannot be cancelled.
        """
        session = self._session
        if session is None or session.state not in (GestureState.DRAGGING, GestureState.RESIZING):
            return False
        session.state = GestureState.CANCELLED
        self._clear_override(session.token, session.active_gesture_id)
        self._session = None
        logger.debug(f"Gesture {session.token} cancelled")
        self._emit(BoardEvent(BoardEventKind.GESTURE_CANCELLED, session.active_gesture_id))
        return True

    def handle_key(self, key: str) -> bool:
        """Keyboard shortcuts during a gesture. Returns True when the key was handled."""
        if key == "Escape":
            return self.cancel_gesture()
        return False

    async def on_gesture_end(self) -> GestureOutcome:
        """
        Release the pointer: validate the candidate and commit it.

        Returns:
            GestureOutcome; CONFLICT outcomes carry the nearest free slot (if
            any) and nothing is written
        """
        session = self._session
        if session is None or session.state not in (GestureState.DRAGGING, GestureState.RESIZING):
            return GestureOutcome(OutcomeStatus.CANCELLED)

        appointment = self._find(session.active_gesture_id)
        if appointment is None:
            self.cancel_gesture()
            return GestureOutcome(OutcomeStatus.CANCELLED, session.active_gesture_id)

        candidate = self._candidate(session, appointment)
        self._set_override(session.token, appointment.id, candidate)
        session.state = GestureState.COMMITTING
        logger.debug(f"Gesture {session.token} committing")
        return await self._commit(
            session.token,
            session.kind,
            appointment,
            candidate.technician_id if session.kind == GestureKind.DRAG else appointment.technician_id,
            candidate.start,
            candidate.end,
        )

    async def _commit(
        self,
        token: int,
        kind: GestureKind,
        appointment: PlannerAppointment,
        technician_id: Optional[str],
        start: datetime,
        end: datetime,
    ) -> GestureOutcome:
        starts_at = _as_utc(start)
        ends_at = _as_utc(end)
        self._committing[appointment.id] = token
        try:
            if (
                starts_at == appointment.starts_at
                and ends_at == appointment.ends_at
                and technician_id == appointment.technician_id
            ):
                outcome = GestureOutcome(OutcomeStatus.UNCHANGED, appointment.id)
            else:
                outcome = await self._validate_and_write(kind, appointment, technician_id, starts_at, ends_at)
        finally:
            if self._committing.get(appointment.id) == token:
                del self._committing[appointment.id]
            self._clear_override(token, appointment.id)
            if self._session is not None and self._session.token == token:
                self._session = None

        logger.debug(f"Gesture {token} settled: {outcome.status.value}")
        self._emit(BoardEvent(BoardEventKind.GESTURE_SETTLED, appointment.id, outcome=outcome))
        return outcome

    async def _validate_and_write(
        self,
        kind: GestureKind,
        appointment: PlannerAppointment,
        technician_id: Optional[str],
        starts_at: datetime,
        ends_at: datetime,
    ) -> GestureOutcome:
        action = "moving the appointment" if kind == GestureKind.DRAG else "resizing the appointment"
        request = CanScheduleInput(
            technician_id=technician_id,
            bay_id=appointment.bay_id,
            starts_at=starts_at,
            ends_at=ends_at,
            appointment_id=appointment.id,
        )
        try:
            allowed = await self.store.can_schedule(request)
        except Exception as e:
            logger.warning(f"Availability check failed for {appointment.id}: {type(e).__name__}: {e}")
            return GestureOutcome(
                OutcomeStatus.FAILED,
                appointment.id,
                error=map_error_to_friendly_message(e, "checking availability"),
            )

        if not allowed:
            candidate = replace(appointment, technician_id=technician_id, starts_at=starts_at, ends_at=ends_at)
            return GestureOutcome(
                OutcomeStatus.CONFLICT,
                appointment.id,
                suggestion=self.find_nearest_slot(candidate),
                error=FriendlyError(
                    "Cannot move appointment" if kind == GestureKind.DRAG else "Cannot resize appointment",
                    "This slot conflicts with another appointment.",
                ),
            )

        try:
            if kind == GestureKind.DRAG:
                saved = await self.store.move_appointment(MovePayload(
                    id=appointment.id,
                    technician_id=technician_id,
                    bay_id=appointment.bay_id,
                    starts_at=starts_at,
                    ends_at=ends_at,
                ))
            else:
                saved = await self.store.resize_appointment(ResizePayload(
                    id=appointment.id,
                    starts_at=starts_at,
                    ends_at=ends_at,
                ))
        except PlannerMutationError as e:
            logger.warning(f"Failed {action} {appointment.id}: {e.friendly.title}")
            return GestureOutcome(OutcomeStatus.FAILED, appointment.id, error=e.friendly)
        return GestureOutcome(OutcomeStatus.COMMITTED, appointment.id, appointment=saved)

    # Local conflicts and slot search

    def has_local_conflict(self, candidate: PlannerAppointment) -> bool:
        return any(appointments_conflict(candidate, other) for other in self.appointments)

    def active_conflicts(self) -> List[str]:
        """Ids of appointments the active gesture's candidate currently collides with."""
        session = self._session
        if session is None:
            return []
        appointment = self._find(session.active_gesture_id)
        override = self.override_for(session.active_gesture_id)
        if appointment is None or override is None:
            return []
        candidate = replace(
            appointment,
            technician_id=override.technician_id,
            starts_at=_as_utc(override.start),
            ends_at=_as_utc(override.end),
        )
        return [other.id for other in self.appointments if appointments_conflict(candidate, other)]

    def find_nearest_slot(self, candidate: PlannerAppointment) -> Optional[SlotSuggestion]:
        """
        Linear forward search for the first free position in the same lane.

        Starts one slot after the refused start and stops at the latest start
        that still fits the board window.
        """
        window = self.window
        local_start = to_org_local_time(candidate.starts_at)
        duration = timedelta(minutes=self._duration_minutes(candidate))
        latest_start = window.end - duration
        step = timedelta(minutes=SLOT_MINUTES)

        probe = local_start + step
        while probe <= latest_start:
            moved = replace(candidate, starts_at=_as_utc(probe), ends_at=_as_utc(probe + duration))
            if not self.has_local_conflict(moved):
                return SlotSuggestion(
                    technician_id=candidate.technician_id,
                    starts_at=moved.starts_at,
                    ends_at=moved.ends_at,
                )
            probe += step
        return None

    # Click to create

    def _snap_to_grid(self, instant: datetime) -> datetime:
        window = self.window
        offset = minutes_between(window.start, to_org_local_time(instant))
        return window.start + timedelta(minutes=snap_minutes(offset))

    def _create_start(self, local_start: datetime) -> datetime:
        """Keep a new appointment's first slot inside the grid."""
        window = self.window
        return clamp_datetime(local_start, window.start, window.end - timedelta(minutes=SLOT_MINUTES))

    def _create_defaults(self, lane_id: str, local_start: datetime) -> CreateDefaults:
        defaults = CreateDefaults(
            technician_id=_technician_of(lane_id),
            bay_id=self.store.bay_filter,
            starts_at=_as_utc(local_start),
            ends_at=_as_utc(local_start + timedelta(minutes=DEFAULT_APPOINTMENT_MINUTES)),
        )
        if self.on_create_requested:
            self.on_create_requested(defaults)
        return defaults

    def on_lane_click(self, lane_id: str, pointer_y: float) -> Optional[CreateDefaults]:
        """
        Click on a lane: open the create flow at the snapped time.

        Clicks on an existing card, outside the grid, or during a gesture do
        nothing. No appointment is created here.
        """
        if self.state in (GestureState.DRAGGING, GestureState.RESIZING):
            return None
        lane_top = self._lane_tops.get(lane_id)
        if lane_top is None:
            return None
        offset = pointer_y - lane_top
        if offset < 0 or offset > self.total_pixels:
            return None

        window = self.window
        for item in self._lane_items(lane_id):
            if item.top <= offset < item.top + item.height:
                return None

        start = pixels_to_time(offset, window.start, window.end)
        return self._create_defaults(lane_id, self._create_start(start))

    # Keyboard equivalents

    def open_appointment(self, appointment_id: str) -> Optional[PlannerAppointment]:
        appointment = self._find(appointment_id)
        if appointment and self.on_open_requested:
            self.on_open_requested(appointment)
        return appointment

    def request_create(self, lane_id: str, starts_at: datetime) -> CreateDefaults:
        """Keyboard equivalent of clicking empty lane space."""
        return self._create_defaults(lane_id, self._create_start(self._snap_to_grid(starts_at)))

    async def move_appointment_to(
        self,
        appointment_id: str,
        technician_id: Optional[str],
        starts_at: datetime,
    ) -> GestureOutcome:
        """Keyboard equivalent of a drag: same snapping, clamping and checks."""
        appointment = self._find(appointment_id)
        if appointment is None or self._is_busy(appointment_id) or self.override_for(appointment_id):
            return GestureOutcome(OutcomeStatus.CANCELLED, appointment_id)

        window = self.window
        duration = self._duration_minutes(appointment)
        offset = snap_minutes(minutes_between(window.start, to_org_local_time(starts_at)))
        limited = min(max(0, offset), max(0, self.total_minutes - duration))
        start = window.start + timedelta(minutes=limited)
        return await self._commit(
            next(self._tokens),
            GestureKind.DRAG,
            appointment,
            technician_id,
            start,
            start + timedelta(minutes=duration),
        )

    async def resize_appointment_to(
        self,
        appointment_id: str,
        starts_at: datetime,
        ends_at: datetime,
    ) -> GestureOutcome:
        """Keyboard equivalent of a resize: same snapping, minimum duration and window bounds."""
        appointment = self._find(appointment_id)
        if appointment is None or self._is_busy(appointment_id) or self.override_for(appointment_id):
            return GestureOutcome(OutcomeStatus.CANCELLED, appointment_id)

        window = self.window
        slot = timedelta(minutes=SLOT_MINUTES)
        start = min(max(self._snap_to_grid(starts_at), window.start), window.end - slot)
        end = max(min(self._snap_to_grid(ends_at), window.end), start + slot)
        return await self._commit(
            next(self._tokens),
            GestureKind.RESIZE,
            appointment,
            appointment.technician_id,
            start,
            end,
        )

    # Render model

    def _placement(self, appointment: PlannerAppointment) -> Tuple[str, datetime, datetime]:
        override = self.override_for(appointment.id)
        if override is not None:
            return _lane_of(override.technician_id), override.start, override.end
        return (
            _lane_of(appointment.technician_id),
            to_org_local_time(appointment.starts_at),
            to_org_local_time(appointment.ends_at),
        )

    def _lane_items(self, lane_id: str) -> List[LaneItem]:
        return next((lane.items for lane in self.lanes() if lane.lane_id == lane_id), [])

    def lanes(self) -> List[BoardLane]:
        """
        Lanes with their positioned cards: unassigned first, then one per technician.

        Each appointment appears in exactly one lane; an active override
        decides the lane, and unknown technicians fall back to unassigned.
        """
        window = self.window
        known = {technician.id for technician in self.technicians}
        active_id = self._session.active_gesture_id if self._session else None
        conflicts = set(self.active_conflicts())
        buckets: Dict[str, List[LaneItem]] = {UNASSIGNED_LANE_ID: []}
        for technician in self.technicians:
            buckets[technician.id] = []

        for appointment in self.appointments:
            lane_id, start, end = self._placement(appointment)
            if lane_id not in known:
                lane_id = UNASSIGNED_LANE_ID
            top = time_to_pixels(start, window.start)
            height = max(minutes_to_pixels(SLOT_MINUTES), time_to_pixels(end, window.start) - top)
            buckets[lane_id].append(LaneItem(
                appointment=appointment,
                top=top,
                height=height,
                is_active=appointment.id == active_id,
                has_conflict=appointment.id in conflicts or (appointment.id == active_id and bool(conflicts)),
            ))

        lanes = [BoardLane(
            lane_id=UNASSIGNED_LANE_ID,
            name="Unassigned",
            color=TECHNICIAN_COLORS[0],
            items=buckets[UNASSIGNED_LANE_ID],
        )]
        for index, technician in enumerate(self.technicians):
            lanes.append(BoardLane(
                lane_id=technician.id,
                name=technician.name,
                color=technician.color or TECHNICIAN_COLORS[index % len(TECHNICIAN_COLORS)],
                technician=technician,
                items=buckets[technician.id],
            ))
        return lanes

    def grid_lines(self) -> List[GridLine]:
        """One line per slot; full hours carry an HH:MM label."""
        window = self.window
        total_slots = math.ceil(self.total_minutes / SLOT_MINUTES)
        lines: List[GridLine] = []
        for index in range(total_slots + 1):
            current = window.start + timedelta(minutes=index * SLOT_MINUTES)
            is_hour = current.minute == 0
            lines.append(GridLine(
                top=index * SLOT_MINUTES * PIXELS_PER_MINUTE,
                label=current.strftime("%H:%M") if is_hour else None,
                is_hour=is_hour,
            ))
        return lines

    def now_offset(self, now: Optional[datetime] = None) -> Optional[float]:
        """Pixel offset of the current time, or None when it is off the board."""
        current = to_org_local_time(now or self.clock())
        if local_day(current) != local_day(self.store.day):
            return None
        window = self.window
        minutes = minutes_between(window.start, current)
        if minutes < 0 or minutes > self.total_minutes:
            return None
        return minutes_to_pixels(minutes)
