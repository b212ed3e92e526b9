# src/common/queue/errors.py
"""Typed failures raised by the queue engine.

Each error carries the HTTP status the API layer answers with, so controllers
never have to translate them one by one.
"""


class QueueError(Exception):
    """Base class for every queue engine failure."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransitionError(QueueError):
    """A token was asked to move along an edge the lifecycle does not allow."""

    status_code = 409


class DoctorBusyError(QueueError):
    """The doctor already holds a CALLED or IN_CONSULTATION token."""

    status_code = 409


class EmptyQueueError(QueueError):
    status_code = 404


class NotFoundError(QueueError):
    status_code = 404

    def __init__(self, resource: str, field: str, value):
        super().__init__(f"{resource} not found with {field}: {value}")
        self.resource = resource
        self.field = field
        self.value = value


class InvalidStateError(QueueError):
    """Internal consistency violation. Seeing one means a bug, not bad input."""

    status_code = 500


class ValidationError(QueueError):
    status_code = 422


class CapacityExceededError(ValidationError):
    status_code = 409
