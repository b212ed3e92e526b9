# src/common/queue/__init__.py
from .engine import QueueEngine
from .errors import (
    QueueError, InvalidTransitionError, DoctorBusyError, EmptyQueueError,
    NotFoundError, InvalidStateError, ValidationError, CapacityExceededError,
)
from .estimation import WaitEstimate
from .lifecycle import QueueToken, derive_priority, parse_priority
from .notifications import PatientContact, QueueNotifier
from .store import MemoryTokenStore, SqlTokenStore, TokenStore

__all__ = [
    "QueueEngine",
    "QueueToken",
    "WaitEstimate",
    "TokenStore",
    "MemoryTokenStore",
    "SqlTokenStore",
    "QueueNotifier",
    "PatientContact",
    "derive_priority",
    "parse_priority",
    "QueueError",
    "InvalidTransitionError",
    "DoctorBusyError",
    "EmptyQueueError",
    "NotFoundError",
    "InvalidStateError",
    "ValidationError",
    "CapacityExceededError",
]
