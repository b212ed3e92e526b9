# src/common/queue/store.py
"""Where the engine writes token snapshots.

The engine awaits ``save`` inside a queue's critical section and only makes
the change visible once it returns, so a failed write leaves the live queue
untouched.
"""

from datetime import date
from typing import Dict, List, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.models.models import Token

from .lifecycle import QueueToken

_FIELDS = (
    "id", "token_number", "token_date", "patient_id", "department_id", "doctor_id",
    "priority", "status", "generated_at", "queued_at", "called_at",
    "consultation_started_at", "consultation_ended_at", "requeue_serial",
    "skip_count", "notes",
)


def to_row(token: QueueToken) -> Token:
    return Token(**{name: getattr(token, name) for name in _FIELDS})


def from_row(row: Token) -> QueueToken:
    return QueueToken(**{name: getattr(row, name) for name in _FIELDS})


class TokenStore(Protocol):
    async def save(self, token: QueueToken) -> None: ...

    async def load_since(self, since: date) -> List[QueueToken]: ...


class MemoryTokenStore:
    """Keeps snapshots in a dict; for tests and database-less development."""

    def __init__(self):
        self.rows: Dict[int, QueueToken] = {}
        self.writes = 0

    async def save(self, token: QueueToken) -> None:
        self.rows[token.id] = token
        self.writes += 1

    async def load_since(self, since: date) -> List[QueueToken]:
        return sorted(
            (token for token in self.rows.values() if token.token_date >= since),
            key=lambda token: token.id,
        )


class SqlTokenStore:
    """Upserts token rows through its own short-lived sessions."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def save(self, token: QueueToken) -> None:
        async with self._session_factory() as session:
            try:
                await session.merge(to_row(token))
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def load_since(self, since: date) -> List[QueueToken]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Token).where(Token.token_date >= since).order_by(Token.id)
            )
            return [from_row(row) for row in result.scalars().all()]
