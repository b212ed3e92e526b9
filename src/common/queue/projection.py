# src/common/queue/projection.py
"""Read-only views over the queue engine: queue snapshots, live board and dashboard stats."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from src.models.models import TokenStatus

from .engine import QueueEngine
from .lifecycle import QueueToken


@dataclass(frozen=True)
class DoctorQueueSnapshot:
    doctor_id: Optional[int]
    department_id: int
    current_token: Optional[QueueToken]
    waiting_tokens: Tuple[QueueToken, ...]
    average_wait_time_minutes: int
    last_updated: datetime

    @property
    def total_waiting(self) -> int:
        return len(self.waiting_tokens)


@dataclass(frozen=True)
class QueueStats:
    total_patients_today: int = 0
    total_waiting: int = 0
    total_in_consultation: int = 0
    total_completed: int = 0
    total_cancelled: int = 0
    average_wait_time: int = 0
    department_wise_count: Dict[int, int] = field(default_factory=dict)
    status_wise_count: Dict[str, int] = field(default_factory=dict)


def doctor_queue(engine: QueueEngine, doctor_id: int, include_pool: bool = True) -> DoctorQueueSnapshot:
    """The doctor's serving order; ``include_pool=False`` keeps only tokens registered for the doctor."""
    waiting = engine.waiting_list(doctor_id) if include_pool else engine.assigned_waiting_list(doctor_id)
    return DoctorQueueSnapshot(
        doctor_id=doctor_id,
        department_id=engine.doctor_department(doctor_id),
        current_token=engine.active_token(doctor_id),
        waiting_tokens=tuple(waiting),
        average_wait_time_minutes=int(engine.average_consultation_minutes(doctor_id)),
        last_updated=engine.now(),
    )


def department_pool(engine: QueueEngine, department_id: int) -> DoctorQueueSnapshot:
    """Tokens waiting for any doctor of the department."""
    return DoctorQueueSnapshot(
        doctor_id=None,
        department_id=department_id,
        current_token=None,
        waiting_tokens=tuple(engine.pool_waiting_list(department_id)),
        average_wait_time_minutes=int(engine.average_consultation_minutes(None)),
        last_updated=engine.now(),
    )


def department_queues(engine: QueueEngine, department_id: int) -> List[DoctorQueueSnapshot]:
    """One snapshot per doctor of the department; pooled tokens are left to ``department_pool``."""
    return [
        doctor_queue(engine, doctor_id, include_pool=False)
        for doctor_id in engine.doctor_ids()
        if engine.doctor_department(doctor_id) == department_id
    ]


def all_queues(engine: QueueEngine) -> List[DoctorQueueSnapshot]:
    """Doctors with someone waiting or in the room, plus non-empty department pools.

    Each token appears once: doctor snapshots leave pooled tokens to their pool.
    """
    snapshots = [doctor_queue(engine, doctor_id, include_pool=False) for doctor_id in engine.doctor_ids()]
    snapshots += [department_pool(engine, department_id) for department_id in engine.department_ids()]
    return [
        snapshot for snapshot in snapshots
        if snapshot.current_token is not None or snapshot.waiting_tokens
    ]


def doctor_board(engine: QueueEngine, doctor_id: int) -> List[QueueToken]:
    """Active token first, then the waiting order."""
    snapshot = doctor_queue(engine, doctor_id)
    head = [snapshot.current_token] if snapshot.current_token is not None else []
    return head + list(snapshot.waiting_tokens)


def tokens_for_day(engine: QueueEngine, day: Optional[date] = None) -> List[QueueToken]:
    day = day or engine.today()
    return sorted(
        (token for token in engine.tokens() if token.token_date == day),
        key=lambda token: token.id,
    )


def patient_tokens(engine: QueueEngine, patient_id: int, day: Optional[date] = None) -> List[QueueToken]:
    return [token for token in tokens_for_day(engine, day) if token.patient_id == patient_id]


def active_consultations(engine: QueueEngine) -> List[QueueToken]:
    tokens = (engine.active_token(doctor_id) for doctor_id in engine.doctor_ids())
    return [token for token in tokens if token is not None]


def live_board(engine: QueueEngine) -> List[QueueToken]:
    """Today's tokens still in play: active ones first, then every queue in waiting order."""
    board = active_consultations(engine)
    for doctor_id in engine.doctor_ids():
        board.extend(engine.assigned_waiting_list(doctor_id))
    for department_id in engine.department_ids():
        board.extend(engine.pool_waiting_list(department_id))
    return board


def dashboard_stats(
    engine: QueueEngine,
    doctor_id: Optional[int] = None,
    day: Optional[date] = None,
) -> QueueStats:
    """Today's totals by status, across every doctor or scoped to one."""
    tokens = tokens_for_day(engine, day)
    if doctor_id is not None:
        engine.doctor_department(doctor_id)  # unknown doctor -> NotFoundError
        tokens = [token for token in tokens if token.doctor_id == doctor_id]

    by_status = Counter(token.status.value for token in tokens)
    by_department = Counter(token.department_id for token in tokens)

    doctor_ids = [doctor_id] if doctor_id is not None else engine.doctor_ids()
    averages = [engine.average_consultation_minutes(doctor) for doctor in doctor_ids]
    average_wait = (
        sum(averages) / len(averages) if averages
        else engine.average_consultation_minutes(None)
    )

    return QueueStats(
        total_patients_today=len(tokens),
        total_waiting=by_status[TokenStatus.WAITING.value],
        total_in_consultation=by_status[TokenStatus.IN_CONSULTATION.value],
        total_completed=by_status[TokenStatus.COMPLETED.value],
        total_cancelled=by_status[TokenStatus.CANCELLED.value] + by_status[TokenStatus.NO_SHOW.value],
        average_wait_time=int(round(average_wait)),
        department_wise_count=dict(by_department),
        status_wise_count=dict(by_status),
    )
