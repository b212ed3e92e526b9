# src/common/queue/engine.py
"""Queue/token scheduling engine.

One ``DoctorQueue`` per doctor (waiting set + active slot) and one
``DepartmentPool`` per department (tokens registered without a doctor).
Every mutation of a queue runs under that queue's ``asyncio.Lock``; when a
doctor lock and a pool lock are both needed the doctor lock is taken first.
Mutations build a new ``QueueToken`` snapshot, persist it, and only then
swap it into the live state, so a failed write changes nothing.

Live queues hold today's tokens only. The first call after midnight drops
previous-day WAITING tokens from every queue and prunes old snapshots.
"""

import asyncio
import heapq
import itertools
import logging
from collections import Counter
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from src.common.config import settings
from src.models.models import TokenPriority, TokenStatus

from .errors import (
    CapacityExceededError, DoctorBusyError, EmptyQueueError, InvalidStateError,
    InvalidTransitionError, NotFoundError, ValidationError,
)
from .estimation import DurationTracker, UNRANKED, WaitEstimate, estimate_wait
from .lifecycle import Action, QueueToken, check_transition, format_token_number, parse_priority
from .store import MemoryTokenStore, TokenStore
from .waiting_set import WaitingSet

logger = logging.getLogger(__name__)

# Completed consultations older than this do not feed the rolling averages
DURATION_LOOKBACK_DAYS = 30


class DoctorQueue:
    def __init__(
        self,
        doctor_id: int,
        department_id: int,
        tracker: DurationTracker,
        max_patients_per_day: int,
        is_available: bool = True,
    ):
        self.doctor_id = doctor_id
        self.department_id = department_id
        self.tracker = tracker
        self.max_patients_per_day = max_patients_per_day
        self.is_available = is_available
        self.lock = asyncio.Lock()
        self.waiting = WaitingSet(f"doctor {doctor_id} queue")
        self.active_token_id: Optional[int] = None


class DepartmentPool:
    def __init__(self, department_id: int, code: Optional[str] = None):
        self.department_id = department_id
        self.code = code
        self.lock = asyncio.Lock()
        self.waiting = WaitingSet(f"department {department_id} pool")
        self.sequences: Dict[date, int] = {}


class WaitingListView:
    """Lazy, restartable view over one or more waiting sets.

    Each iteration merges the sets' current order, so a doctor's view lists
    pooled tokens exactly where ``call_next`` would reach them.
    """

    def __init__(self, engine: "QueueEngine", *waiting: WaitingSet):
        self._engine = engine
        self._waiting = waiting

    def __iter__(self) -> Iterator[QueueToken]:
        for _, token_id in heapq.merge(*(waiting.entries() for waiting in self._waiting)):
            token = self._engine.get(token_id)
            if token.status == TokenStatus.WAITING:
                yield token

    def __len__(self) -> int:
        return sum(len(waiting) for waiting in self._waiting)


class QueueEngine:
    def __init__(
        self,
        store: Optional[TokenStore] = None,
        clock: Callable[[], datetime] = datetime.now,
        default_consultation_minutes: Optional[int] = None,
        rolling_window: Optional[int] = None,
        min_samples: Optional[int] = None,
        max_patients_per_day: Optional[int] = None,
        retention_days: Optional[int] = None,
    ):
        self._store = store if store is not None else MemoryTokenStore()
        self._clock = clock
        self.default_consultation_minutes = (
            default_consultation_minutes or settings.DEFAULT_CONSULTATION_MINUTES
        )
        self.rolling_window = rolling_window or settings.ROLLING_AVERAGE_WINDOW
        self.min_samples = settings.MIN_DURATION_SAMPLES if min_samples is None else min_samples
        self.max_patients_per_day = max_patients_per_day or settings.MAX_PATIENTS_PER_DAY_DEFAULT
        self.retention_days = settings.RETENTION_DAYS if retention_days is None else retention_days

        self._tokens: Dict[int, QueueToken] = {}
        self._by_number: Dict[str, int] = {}
        self._doctors: Dict[int, DoctorQueue] = {}
        self._departments: Dict[int, DepartmentPool] = {}
        self._issued: Counter = Counter()  # (doctor_id, date) -> tokens issued
        self._ids = itertools.count(1)
        self._queue_serials = itertools.count(1)
        self._current_day = self.today()
        self.notifier = None  # QueueNotifier, attached when e-mail is enabled

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self._clock().date()

    def register_department(self, department_id: int, code: Optional[str] = None) -> DepartmentPool:
        pool = self._departments.get(department_id)
        if pool is None:
            pool = self._departments[department_id] = DepartmentPool(department_id, code)
        elif code:
            pool.code = code
        return pool

    def register_doctor(
        self,
        doctor_id: int,
        department_id: int,
        consultation_minutes: Optional[int] = None,
        max_patients_per_day: Optional[int] = None,
        is_available: bool = True,
    ) -> DoctorQueue:
        """Create or refresh a doctor's queue. Queue contents are kept on refresh."""
        default_minutes = consultation_minutes or self.default_consultation_minutes
        capacity = max_patients_per_day or self.max_patients_per_day
        doctor = self._doctors.get(doctor_id)
        if doctor is None:
            tracker = DurationTracker(self.rolling_window, self.min_samples, default_minutes)
            doctor = self._doctors[doctor_id] = DoctorQueue(
                doctor_id, department_id, tracker, capacity, is_available
            )
        else:
            doctor.department_id = department_id
            doctor.tracker.default_minutes = default_minutes
            doctor.max_patients_per_day = capacity
            doctor.is_available = is_available
        self.register_department(department_id)
        return doctor

    def has_doctor(self, doctor_id: int) -> bool:
        return doctor_id in self._doctors

    def doctor_ids(self) -> List[int]:
        return sorted(self._doctors)

    def department_ids(self) -> List[int]:
        return sorted(self._departments)

    def doctor_department(self, doctor_id: int) -> int:
        return self._doctor(doctor_id).department_id

    def _doctor(self, doctor_id: int) -> DoctorQueue:
        doctor = self._doctors.get(doctor_id)
        if doctor is None:
            raise NotFoundError("Doctor", "id", doctor_id)
        return doctor

    def _pool(self, department_id: int) -> DepartmentPool:
        pool = self._departments.get(department_id)
        if pool is None:
            raise NotFoundError("Department", "id", department_id)
        return pool

    # ------------------------------------------------------------------
    # Token reads
    # ------------------------------------------------------------------

    def get(self, token_id: int) -> QueueToken:
        token = self._tokens.get(token_id)
        if token is None:
            raise NotFoundError("Token", "id", token_id)
        return token

    def tokens(self) -> List[QueueToken]:
        self._roll_over()
        return list(self._tokens.values())

    def find_by_number(self, token_number: str) -> QueueToken:
        """Token by its human-facing number, limited to the retention window."""
        self._roll_over()
        token_id = self._by_number.get(token_number)
        if token_id is None:
            raise NotFoundError("Token", "tokenNumber", token_number)
        token = self._tokens[token_id]
        cutoff = self.today() - timedelta(days=self.retention_days)
        if token.token_date < cutoff:
            raise NotFoundError("Token", "tokenNumber", token_number)
        return token

    def _waiting_set_for(self, token: QueueToken) -> WaitingSet:
        if token.doctor_id is not None:
            return self._doctor(token.doctor_id).waiting
        return self._pool(token.department_id).waiting

    def _lock_for(self, token: QueueToken) -> asyncio.Lock:
        if token.doctor_id is not None:
            return self._doctor(token.doctor_id).lock
        return self._pool(token.department_id).lock

    @asynccontextmanager
    async def _guard(self, token_id: int):
        """Hold the lock of the queue that owns ``token_id`` and yield its current snapshot.

        A pooled token can be claimed by a doctor while we wait for the pool
        lock; in that case the owner changed and we retry with the doctor's lock.
        """
        self._roll_over()
        while True:
            lock = self._lock_for(self.get(token_id))
            async with lock:
                token = self.get(token_id)
                if self._lock_for(token) is lock:
                    yield token
                    return

    # ------------------------------------------------------------------
    # Priority queue operations
    # ------------------------------------------------------------------

    def position(self, token_id: int) -> Optional[int]:
        """1-based rank; ``None`` means unranked.

        A doctor's token is ranked in the doctor's merged sequence (own queue
        plus department pool), a pooled token within the pool.
        """
        self._roll_over()
        token = self.get(token_id)
        if token.status != TokenStatus.WAITING:
            return None
        rank = self._waiting_set_for(token).position(token_id)
        if rank is None or token.doctor_id is None:
            return rank
        pool = self._departments.get(self._doctor(token.doctor_id).department_id)
        if pool is not None:
            rank += pool.waiting.count_ahead(token.queue_key, token_id)
        return rank

    def waiting_list(self, doctor_id: int) -> WaitingListView:
        """Everything ``call_next(doctor_id)`` would serve, in serving order."""
        self._roll_over()
        return WaitingListView(self, *self._sources(self._doctor(doctor_id)))

    def assigned_waiting_list(self, doctor_id: int) -> WaitingListView:
        """Only the tokens registered for this doctor."""
        self._roll_over()
        return WaitingListView(self, self._doctor(doctor_id).waiting)

    def pool_waiting_list(self, department_id: int) -> WaitingListView:
        self._roll_over()
        return WaitingListView(self, self._pool(department_id).waiting)

    def _sources(self, doctor: DoctorQueue) -> List[WaitingSet]:
        pool = self._departments.get(doctor.department_id)
        return [doctor.waiting] + ([pool.waiting] if pool is not None else [])

    def _band_tail(self, token: QueueToken) -> Optional[datetime]:
        """Latest ``queued_at`` in the token's band across the sequence it is served from."""
        if token.doctor_id is None:
            sources = [self._pool(token.department_id).waiting]
        else:
            sources = self._sources(self._doctor(token.doctor_id))
        tails = [tail for tail in (waiting.tail_queued_at(token.rank) for waiting in sources) if tail is not None]
        return max(tails) if tails else None

    def _next_candidate(self, doctor: DoctorQueue) -> Tuple[WaitingSet, int]:
        """Best head across the doctor's own queue and its department pool."""
        best = None
        for waiting in self._sources(doctor):
            key = waiting.head_key()
            if key is not None and (best is None or key < best[0]):
                best = (key, waiting)
        if best is None:
            raise EmptyQueueError(f"No patients waiting for doctor {doctor.doctor_id}")
        waiting = best[1]
        return waiting, waiting.peek()

    def dequeue_next(self, doctor_id: int) -> QueueToken:
        """Highest-priority waiting token for the doctor, left in its queue."""
        self._roll_over()
        _, token_id = self._next_candidate(self._doctor(doctor_id))
        return self.get(token_id)

    def active_token(self, doctor_id: int) -> Optional[QueueToken]:
        token_id = self._doctor(doctor_id).active_token_id
        return self._tokens[token_id] if token_id is not None else None

    # ------------------------------------------------------------------
    # Estimation
    # ------------------------------------------------------------------

    def average_consultation_minutes(self, doctor_id: Optional[int]) -> float:
        if doctor_id is None or doctor_id not in self._doctors:
            return float(self.default_consultation_minutes)
        return self._doctors[doctor_id].tracker.average()

    def estimate(self, token_id: int) -> WaitEstimate:
        token = self.get(token_id)
        position = self.position(token_id)
        if position is None:
            return UNRANKED
        return estimate_wait(position, self.average_consultation_minutes(token.doctor_id), self.now())

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def create_token(
        self,
        patient_id: int,
        department_id: int,
        department_code: str,
        doctor_id: Optional[int] = None,
        priority=TokenPriority.NORMAL,
        notes: Optional[str] = None,
    ) -> QueueToken:
        """Issue a WAITING token and queue it with the doctor or the department pool."""
        self._roll_over()
        priority = parse_priority(priority)
        if not department_code:
            raise ValidationError("Department code is required to number tokens")
        pool = self.register_department(department_id, department_code)

        if doctor_id is None:
            async with pool.lock:
                token = await self._issue(pool, patient_id, None, priority, notes)
                pool.waiting.enqueue(token)
            await self._notify("create", token)
            return token

        doctor = self._doctor(doctor_id)
        if doctor.department_id != department_id:
            raise ValidationError(f"Doctor {doctor_id} does not belong to department {department_id}")
        if not doctor.is_available:
            raise ValidationError(f"Doctor {doctor_id} is not available")
        async with doctor.lock:
            today = self.today()
            if self._issued[(doctor_id, today)] >= doctor.max_patients_per_day:
                raise CapacityExceededError("Doctor has reached maximum patients for today")
            async with pool.lock:
                token = await self._issue(pool, patient_id, doctor_id, priority, notes)
            doctor.waiting.enqueue(token)
            self._issued[(doctor_id, today)] += 1
        await self._notify("create", token)
        return token

    async def _issue(
        self,
        pool: DepartmentPool,
        patient_id: int,
        doctor_id: Optional[int],
        priority: TokenPriority,
        notes: Optional[str],
    ) -> QueueToken:
        # Caller holds pool.lock
        now = self.now()
        sequence = pool.sequences.get(now.date(), 0) + 1
        token = QueueToken(
            id=next(self._ids),
            token_number=format_token_number(pool.code, now.date(), sequence),
            token_date=now.date(),
            patient_id=patient_id,
            department_id=pool.department_id,
            doctor_id=doctor_id,
            priority=priority,
            status=TokenStatus.WAITING,
            generated_at=now,
            queued_at=now,
            requeue_serial=next(self._queue_serials),
            notes=notes,
        )
        await self._persist(token, "create")
        pool.sequences[now.date()] = sequence
        self._commit(token)
        logger.info(
            "Token %s issued (priority=%s, doctor=%s, department=%s)",
            token.token_number, priority.value, doctor_id, pool.department_id,
        )
        return token

    # ------------------------------------------------------------------
    # Consultation coordinator
    # ------------------------------------------------------------------

    async def call_next(self, doctor_id: int) -> QueueToken:
        self._roll_over()
        doctor = self._doctor(doctor_id)
        async with doctor.lock:
            if doctor.active_token_id is not None:
                active = self._tokens[doctor.active_token_id]
                logger.warning("Doctor %s busy with %s, call-next refused", doctor_id, active.token_number)
                raise DoctorBusyError("Please end current consultation before calling next patient")
            pool = self.register_department(doctor.department_id)
            async with pool.lock:
                waiting, token_id = self._next_candidate(doctor)
                token = self._tokens[token_id]
                status = check_transition(token.status, Action.CALL)
                called = replace(token, status=status, doctor_id=doctor_id, called_at=self._stamp(token))
                await self._persist(called, Action.CALL.value)
                waiting.remove(token_id)
                doctor.active_token_id = token_id
                self._commit(called)
        self._log_transition(called, Action.CALL)
        await self._notify(Action.CALL.value, called)
        return called

    async def start_consultation(self, token_id: int) -> QueueToken:
        async with self._guard(token_id) as token:
            status = check_transition(token.status, Action.START)
            updated = replace(token, status=status, consultation_started_at=self._stamp(token))
            await self._persist(updated, Action.START.value)
            self._commit(updated)
        self._log_transition(updated, Action.START)
        return updated

    async def end_consultation(self, token_id: int) -> QueueToken:
        async with self._guard(token_id) as token:
            status = check_transition(token.status, Action.END)
            updated = replace(token, status=status, consultation_ended_at=self._stamp(token))
            await self._persist(updated, Action.END.value)
            doctor = self._release_slot(updated)
            doctor.tracker.record(updated.consultation_minutes)
            self._commit(updated)
        self._log_transition(updated, Action.END)
        await self._notify(Action.END.value, updated)
        return updated

    async def cancel_consultation(self, token_id: int) -> QueueToken:
        async with self._guard(token_id) as token:
            status = check_transition(token.status, Action.CANCEL_CONSULTATION)
            updated = replace(token, status=status, consultation_ended_at=self._stamp(token))
            await self._persist(updated, Action.CANCEL_CONSULTATION.value)
            self._release_slot(updated)
            self._commit(updated)
        self._log_transition(updated, Action.CANCEL_CONSULTATION)
        await self._notify(Action.CANCEL_CONSULTATION.value, updated)
        return updated

    async def mark_no_show(self, token_id: int) -> QueueToken:
        async with self._guard(token_id) as token:
            status = check_transition(token.status, Action.NO_SHOW)
            updated = replace(token, status=status)
            await self._persist(updated, Action.NO_SHOW.value)
            self._release_slot(updated)
            self._commit(updated)
        self._log_transition(updated, Action.NO_SHOW)
        await self._notify(Action.NO_SHOW.value, updated)
        return updated

    async def skip(self, token_id: int) -> QueueToken:
        """Send a token to the tail of its priority band as a fresh WAITING entry."""
        async with self._guard(token_id) as token:
            status = check_transition(token.status, Action.SKIP)
            self._check_requeue(token)
            waiting = self._waiting_set_for(token)
            now = self._stamp(token)
            tail = self._band_tail(token)
            updated = replace(
                token,
                status=status,
                called_at=None,
                queued_at=max(now, tail) if tail is not None else now,
                requeue_serial=next(self._queue_serials),
                skip_count=token.skip_count + 1,
            )
            await self._persist(updated, Action.SKIP.value)
            if token.status == TokenStatus.WAITING:
                waiting.remove(token_id)
            else:
                self._release_slot(token)
            self._commit(updated)
            waiting.enqueue(updated)
        self._log_transition(updated, Action.SKIP)
        await self._notify(Action.SKIP.value, updated)
        return updated

    async def cancel_waiting_token(self, token_id: int) -> QueueToken:
        """Patient self-service cancel of a token that has not been called."""
        async with self._guard(token_id) as token:
            status = check_transition(token.status, Action.CANCEL_WAITING)
            updated = replace(token, status=status)
            await self._persist(updated, Action.CANCEL_WAITING.value)
            if not self._waiting_set_for(token).remove(token_id):
                logger.info("Token %s was already out of its queue", token.token_number)
            self._commit(updated)
        self._log_transition(updated, Action.CANCEL_WAITING)
        await self._notify(Action.CANCEL_WAITING.value, updated)
        return updated

    async def escalate_priority(self, token_id: int, priority) -> QueueToken:
        """Change a waiting token's priority; its arrival time is kept."""
        priority = parse_priority(priority)
        async with self._guard(token_id) as token:
            check_transition(token.status, Action.ESCALATE)
            self._check_requeue(token)
            updated = replace(token, priority=priority)
            await self._persist(updated, Action.ESCALATE.value)
            waiting = self._waiting_set_for(token)
            waiting.remove(token_id)
            self._commit(updated)
            waiting.enqueue(updated)
        logger.info("Token %s priority %s -> %s", token.token_number, token.priority.value, priority.value)
        await self._notify(Action.ESCALATE.value, updated)
        return updated

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _stamp(self, token: QueueToken) -> datetime:
        """Current time, never earlier than the token's latest timestamp."""
        stamps = [
            stamp for stamp in (
                token.generated_at, token.queued_at, token.called_at,
                token.consultation_started_at, token.consultation_ended_at,
            )
            if stamp is not None
        ]
        return max([self.now()] + stamps)

    def _release_slot(self, token: QueueToken) -> DoctorQueue:
        doctor = self._doctor(token.doctor_id)
        if doctor.active_token_id != token.id:
            raise InvalidStateError(
                f"Token {token.token_number} is {token.status.value} but does not hold doctor {token.doctor_id}'s slot"
            )
        doctor.active_token_id = None
        return doctor

    def _commit(self, token: QueueToken) -> None:
        self._tokens[token.id] = token
        self._by_number[token.token_number] = token.id

    async def _persist(self, token: QueueToken, action: str) -> None:
        try:
            await self._store.save(token)
        except Exception:
            logger.error("Persisting %s for token %s failed, change discarded", action, token.token_number, exc_info=True)
            raise

    def _log_transition(self, token: QueueToken, action: Action) -> None:
        logger.info(
            "Token %s %s -> %s (doctor=%s)",
            token.token_number, action.value, token.status.value, token.doctor_id,
        )

    def _roll_over(self) -> date:
        """Start a new queue day when the clock has passed midnight."""
        today = self.today()
        if today != self._current_day:
            self._start_day(today)
        return today

    def _start_day(self, today: date) -> None:
        # Synchronous: no other coroutine can observe a half-cleared queue
        stale = [
            token for token in self._tokens.values()
            if token.status == TokenStatus.WAITING and token.token_date < today
        ]
        for token in stale:
            self._waiting_set_for(token).remove(token.id)

        cutoff = today - timedelta(days=max(self.retention_days, DURATION_LOOKBACK_DAYS))
        expired = [
            token for token in self._tokens.values()
            if token.token_date < cutoff and not token.is_active
        ]
        for token in expired:
            del self._tokens[token.id]
            self._by_number.pop(token.token_number, None)

        for key in [key for key in self._issued if key[1] != today]:
            del self._issued[key]
        for pool in self._departments.values():
            for day in [day for day in pool.sequences if day < today]:
                del pool.sequences[day]

        self._current_day = today
        logger.info(
            "Queue day %s started: %d stale waiting tokens dropped, %d old tokens pruned",
            today.isoformat(), len(stale), len(expired),
        )

    def _check_requeue(self, token: QueueToken) -> None:
        if token.token_date != self._current_day:
            raise InvalidTransitionError(
                f"Token {token.token_number} is from {token.token_date.isoformat()} and can no longer be queued"
            )

    async def _notify(self, event: str, token: QueueToken) -> None:
        # Called after the queue lock is released
        if self.notifier is not None:
            await self.notifier.on_transition(event, token)

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def restore(self, tokens: Iterable[QueueToken]) -> None:
        """Rebuild live state from persisted snapshots (startup only, no concurrency)."""
        today = self.today()
        self._current_day = today
        ordered = sorted(tokens, key=lambda token: token.id)
        completed: Dict[int, List[QueueToken]] = {}
        max_id = max_serial = 0
        for token in ordered:
            self._commit(token)
            max_id = max(max_id, token.id)
            max_serial = max(max_serial, token.requeue_serial)

            code, _, sequence = token.token_number.rsplit("-", 2)
            pool = self.register_department(token.department_id, code)
            pool.sequences[token.token_date] = max(pool.sequences.get(token.token_date, 0), int(sequence))

            doctor = None
            if token.doctor_id is not None:
                doctor = self._doctors.get(token.doctor_id) or self.register_doctor(
                    token.doctor_id, token.department_id
                )
                if token.token_date == today:
                    self._issued[(token.doctor_id, today)] += 1

            if token.status == TokenStatus.COMPLETED and doctor is not None:
                completed.setdefault(doctor.doctor_id, []).append(token)
            elif token.status == TokenStatus.WAITING and token.token_date == today:
                self._waiting_set_for(token).enqueue(token)
            elif token.is_active:
                # A consultation left open on an earlier day still holds the slot until staff close it
                if doctor is None:
                    raise InvalidStateError(f"Active token {token.token_number} has no doctor")
                if doctor.active_token_id is not None:
                    raise InvalidStateError(
                        f"Doctor {doctor.doctor_id} has more than one active token "
                        f"({self._tokens[doctor.active_token_id].token_number}, {token.token_number})"
                    )
                doctor.active_token_id = token.id

        for doctor_id, finished in completed.items():
            finished.sort(key=lambda token: token.consultation_ended_at or token.generated_at)
            self._doctors[doctor_id].tracker.seed(token.consultation_minutes for token in finished)

        self._ids = itertools.count(max_id + 1)
        self._queue_serials = itertools.count(max_serial + 1)
        logger.info("Queue engine restored %d tokens across %d doctors", len(ordered), len(self._doctors))
