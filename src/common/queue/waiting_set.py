# src/common/queue/waiting_set.py
"""Ordered set of WAITING tokens for one doctor or one department pool."""

from bisect import bisect_left, insort
from typing import Dict, Iterator, List, Optional

from src.models.models import TokenStatus

from .errors import EmptyQueueError, InvalidStateError
from .lifecycle import QueueToken


class WaitingSet:
    """Tokens kept sorted by ``QueueToken.queue_key``.

    Holds ids and keys only; token snapshots live in the engine. Not
    synchronized, callers hold the owning queue's lock for writes.
    """

    def __init__(self, owner: str):
        self.owner = owner
        self._entries: List[tuple] = []  # (queue_key, token_id)
        self._keys: Dict[int, tuple] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token_id: int) -> bool:
        return token_id in self._keys

    def __iter__(self) -> Iterator[int]:
        # Iterate over a copy so a concurrent change never breaks a reader
        return iter([token_id for _, token_id in self.entries()])

    def entries(self) -> List[tuple]:
        """Copy of the sorted ``(queue_key, token_id)`` pairs."""
        return list(self._entries)

    def enqueue(self, token: QueueToken) -> int:
        """Insert ``token`` at its sorted position and return its 1-based rank."""
        if token.status != TokenStatus.WAITING:
            raise InvalidStateError(
                f"Token {token.token_number} is {token.status.value}, only WAITING tokens can be queued"
            )
        if token.id in self._keys:
            raise InvalidStateError(f"Token {token.token_number} is already queued in {self.owner}")
        entry = (token.queue_key, token.id)
        insort(self._entries, entry)
        self._keys[token.id] = token.queue_key
        return self._entries.index(entry) + 1

    def peek(self) -> int:
        """Id of the head token, left in place."""
        if not self._entries:
            raise EmptyQueueError(f"No patients waiting in {self.owner}")
        return self._entries[0][1]

    def head_key(self) -> Optional[tuple]:
        return self._entries[0][0] if self._entries else None

    def remove(self, token_id: int) -> bool:
        """Drop a token; ``False`` when it was not queued (already removed)."""
        key = self._keys.pop(token_id, None)
        if key is None:
            return False
        index = bisect_left(self._entries, (key, token_id))
        del self._entries[index]
        return True

    def position(self, token_id: int) -> Optional[int]:
        """1-based rank, or ``None`` when the token is not queued here."""
        key = self._keys.get(token_id)
        if key is None:
            return None
        return bisect_left(self._entries, (key, token_id)) + 1

    def count_ahead(self, queue_key: tuple, token_id: int) -> int:
        """How many queued tokens sort before ``(queue_key, token_id)``."""
        return bisect_left(self._entries, (queue_key, token_id))

    def tail_queued_at(self, rank: int):
        """Latest ``queued_at`` among queued tokens in band ``rank``."""
        latest = None
        for key, _ in self._entries:
            if -key[0] == rank and (latest is None or key[1] > latest):
                latest = key[1]
        return latest
