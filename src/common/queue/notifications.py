# src/common/queue/notifications.py
"""Patient e-mail notices driven by queue transitions.

The engine calls ``on_transition`` after it has released the queue lock.
Every waiting token's rank is compared with the last rank its patient was
told about, so a notice goes out only when a position actually changes.
A failed lookup or send is logged; the transition itself has already been
committed and is never rolled back for it.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from src.common.config import settings
from src.common.utils import email_service
from src.models.models import TokenStatus

from .engine import QueueEngine
from .lifecycle import Action, QueueToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatientContact:
    name: str
    email: Optional[str]


ContactLookup = Callable[[int], Awaitable[Optional[PatientContact]]]

# Shown to patients who were pushed back by the event
MOVED_BACK_REASONS = {
    "create": "A priority case has been added to the queue ahead of you as per the hospital's queue policy.",
    Action.ESCALATE.value: "Queue order has been adjusted based on priority updates.",
    Action.SKIP.value: "A patient who missed their call has been placed back in the queue.",
}


class QueueNotifier:
    def __init__(self, engine: QueueEngine, contacts: ContactLookup, approaching_position: Optional[int] = None):
        self.engine = engine
        self.contacts = contacts
        self.approaching_position = approaching_position or settings.APPROACHING_TURN_POSITION
        self._notified: Dict[int, Tuple[int, int]] = {}  # token id -> (department id, last notified position)

    def last_notified_position(self, token_id: int) -> Optional[int]:
        entry = self._notified.get(token_id)
        return entry[1] if entry else None

    async def on_transition(self, event: str, token: QueueToken) -> None:
        if token.status != TokenStatus.WAITING:
            self._notified.pop(token.id, None)
        moves = self._track(token.department_id)

        if event == "create":
            estimate = self.engine.estimate(token.id)
            await self._mail(
                token, email_service.send_token_confirmation_email,
                priority=token.priority.value,
                position=estimate.queue_position,
                estimated_wait_minutes=estimate.estimated_wait_minutes,
            )
        elif event == Action.CALL.value:
            await self._mail(token, email_service.send_turn_email)
        elif event == Action.END.value:
            await self._mail(token, email_service.send_consultation_completed_email)

        for moved, position, previous in moves:
            moved_back = position > previous
            await self._mail(
                moved, email_service.send_queue_update_email,
                position=position,
                estimated_wait_minutes=self.engine.estimate(moved.id).estimated_wait_minutes,
                previous_position=previous if moved_back else None,
                reason=MOVED_BACK_REASONS.get(event) if moved_back else None,
                approaching=position <= self.approaching_position,
            )

    def _track(self, department_id: int) -> List[Tuple[QueueToken, int, int]]:
        """Record current ranks in the department; return ``(token, position, previous)`` for each move."""
        views = [
            self.engine.assigned_waiting_list(doctor_id)
            for doctor_id in self.engine.doctor_ids()
            if self.engine.doctor_department(doctor_id) == department_id
        ]
        views.append(self.engine.pool_waiting_list(department_id))

        current = {}
        for view in views:
            for queued in view:
                position = self.engine.position(queued.id)
                if position is not None:
                    current[queued.id] = (queued, position)

        gone = [
            token_id for token_id, (department, _) in self._notified.items()
            if department == department_id and token_id not in current
        ]
        for token_id in gone:
            del self._notified[token_id]

        moves = []
        for token_id, (queued, position) in current.items():
            previous = self.last_notified_position(token_id)
            self._notified[token_id] = (department_id, position)
            if previous is not None and previous != position:
                moves.append((queued, position, previous))
        return moves

    async def _mail(self, token: QueueToken, send, **details) -> bool:
        try:
            contact = await self.contacts(token.patient_id)
            if contact is None or not contact.email:
                logger.debug("No e-mail on file for patient %s, notice for %s skipped", token.patient_id, token.token_number)
                return False
            await send(contact.email, contact.name, token.token_number, **details)
        except Exception:
            logger.error("E-mail notice for token %s failed", token.token_number, exc_info=True)
            return False
        logger.info("E-mail notice sent to patient %s for token %s", token.patient_id, token.token_number)
        return True
