# src/common/queue/lifecycle.py
"""Token lifecycle: the token record, priority bands and the transition table.

Every status change in the engine goes through ``check_transition``; an
action that is not listed for the token's current status is rejected before
anything is touched.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, FrozenSet, Optional, Tuple

from src.models.models import TokenPriority, TokenStatus

from .errors import InvalidTransitionError, ValidationError

logger = logging.getLogger(__name__)


# PREGNANT and SENIOR_CITIZEN share a band
PRIORITY_RANK: Dict[TokenPriority, int] = {
    TokenPriority.EMERGENCY: 2,
    TokenPriority.PREGNANT: 1,
    TokenPriority.SENIOR_CITIZEN: 1,
    TokenPriority.NORMAL: 0,
}

ACTIVE_STATUSES = frozenset({TokenStatus.CALLED, TokenStatus.IN_CONSULTATION})
TERMINAL_STATUSES = frozenset({TokenStatus.COMPLETED, TokenStatus.CANCELLED, TokenStatus.NO_SHOW})


class Action(str, enum.Enum):
    CALL = "call"
    START = "start"
    END = "end"
    CANCEL_CONSULTATION = "cancel_consultation"
    NO_SHOW = "no_show"
    SKIP = "skip"
    CANCEL_WAITING = "cancel_waiting"
    ESCALATE = "escalate"


# action -> (allowed source statuses, resulting status)
TRANSITIONS: Dict[Action, Tuple[FrozenSet[TokenStatus], TokenStatus]] = {
    Action.CALL: (frozenset({TokenStatus.WAITING}), TokenStatus.CALLED),
    Action.START: (frozenset({TokenStatus.CALLED}), TokenStatus.IN_CONSULTATION),
    Action.END: (frozenset({TokenStatus.IN_CONSULTATION}), TokenStatus.COMPLETED),
    Action.CANCEL_CONSULTATION: (ACTIVE_STATUSES, TokenStatus.CANCELLED),
    Action.NO_SHOW: (frozenset({TokenStatus.CALLED}), TokenStatus.NO_SHOW),
    Action.SKIP: (frozenset({TokenStatus.CALLED, TokenStatus.WAITING}), TokenStatus.WAITING),
    Action.CANCEL_WAITING: (frozenset({TokenStatus.WAITING}), TokenStatus.CANCELLED),
    Action.ESCALATE: (frozenset({TokenStatus.WAITING}), TokenStatus.WAITING),
}

_REJECTIONS = {
    Action.CALL: "Only waiting tokens can be called",
    Action.START: "Patient must be called before starting consultation",
    Action.END: "No consultation in progress to end",
    Action.CANCEL_CONSULTATION: "No active consultation to cancel",
    Action.NO_SHOW: "Only called patients can be marked as no-show",
    Action.SKIP: "Only waiting or called patients can be skipped",
    Action.CANCEL_WAITING: "Only waiting tokens can be cancelled",
    Action.ESCALATE: "Only waiting tokens can have priority changed",
}


def check_transition(current: TokenStatus, action: Action) -> TokenStatus:
    """Return the status ``action`` leads to from ``current`` or raise."""
    allowed, target = TRANSITIONS[action]
    if current not in allowed:
        logger.warning("Rejected %s on a %s token", action.value, current.value)
        raise InvalidTransitionError(f"{_REJECTIONS[action]} (token is {current.value})")
    return target


@dataclass(frozen=True)
class QueueToken:
    """Immutable snapshot of a token; the engine swaps whole snapshots on change."""
    id: int
    token_number: str
    token_date: date
    patient_id: int
    department_id: int
    doctor_id: Optional[int]
    priority: TokenPriority
    status: TokenStatus
    generated_at: datetime
    queued_at: datetime
    called_at: Optional[datetime] = None
    consultation_started_at: Optional[datetime] = None
    consultation_ended_at: Optional[datetime] = None
    requeue_serial: int = 0
    skip_count: int = 0
    notes: Optional[str] = None

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self.priority]

    @property
    def queue_key(self) -> tuple:
        """Sort key: higher band first, then arrival, then token number.

        ``queued_at`` equals ``generated_at`` until the token is skipped.
        ``requeue_serial`` is drawn from one engine-wide counter on every
        (re)queue, so tokens queued at the same instant keep queueing order.
        """
        return (-self.rank, self.queued_at, self.requeue_serial, self.token_number)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def consultation_minutes(self) -> Optional[float]:
        if self.consultation_started_at and self.consultation_ended_at:
            return (self.consultation_ended_at - self.consultation_started_at).total_seconds() / 60
        return None


def parse_priority(value) -> TokenPriority:
    """Parse a client-supplied priority name; unknown names are a ValidationError."""
    if isinstance(value, TokenPriority):
        return value
    try:
        return TokenPriority[str(value).strip().upper()]
    except KeyError:
        raise ValidationError(f"Invalid priority: {value}") from None


def derive_priority(
    requested: Optional[str] = None,
    is_pregnant: bool = False,
    is_senior_citizen: bool = False,
) -> TokenPriority:
    """Pick a token's priority at registration.

    An explicit EMERGENCY always wins, then the patient's own flags, then
    whatever the desk asked for.
    """
    requested_priority = parse_priority(requested) if requested else None
    if requested_priority == TokenPriority.EMERGENCY:
        return TokenPriority.EMERGENCY
    if is_pregnant:
        return TokenPriority.PREGNANT
    if is_senior_citizen:
        return TokenPriority.SENIOR_CITIZEN
    return requested_priority or TokenPriority.NORMAL


def format_token_number(department_code: str, token_date: date, sequence: int) -> str:
    return f"{department_code}-{token_date.strftime('%Y%m%d')}-{sequence:04d}"
