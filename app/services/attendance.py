# Attendance state machine for one (activity, user) pair.
# NOT_ATTENDING -> ATTENDING   (join: new non-host membership)
# ATTENDING     -> NOT_ATTENDING (leave: membership removed)
# HOST          -> HOST        (host cannot leave; the activity's cancelled flag is inverted instead)

from enum import Enum
from typing import Optional, Tuple


class AttendanceState(str, Enum):
    NOT_ATTENDING = "NOT_ATTENDING"
    ATTENDING = "ATTENDING"
    HOST = "HOST"


class AttendanceAction(str, Enum):
    JOIN = "JOIN"
    LEAVE = "LEAVE"
    TOGGLE_CANCELLED = "TOGGLE_CANCELLED"


# The single action "attend" maps each state to exactly one effect and next state.
TRANSITIONS: dict[AttendanceState, Tuple[AttendanceAction, AttendanceState]] = {
    AttendanceState.NOT_ATTENDING: (AttendanceAction.JOIN, AttendanceState.ATTENDING),
    AttendanceState.ATTENDING: (AttendanceAction.LEAVE, AttendanceState.NOT_ATTENDING),
    AttendanceState.HOST: (AttendanceAction.TOGGLE_CANCELLED, AttendanceState.HOST),
}


def attendance_state(is_host: Optional[bool]) -> AttendanceState:
    """
    Current state from the membership row's host flag.
    None means there is no membership row at all.
    """
    if is_host is None:
        return AttendanceState.NOT_ATTENDING
    return AttendanceState.HOST if is_host else AttendanceState.ATTENDING


def next_transition(state: AttendanceState) -> Tuple[AttendanceAction, AttendanceState]:
    return TRANSITIONS[state]
