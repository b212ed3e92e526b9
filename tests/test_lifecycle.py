"""
Tests for the transition table, priority parsing/derivation and the waiting set.
"""
from datetime import date, datetime

import pytest

from src.common.queue import InvalidTransitionError, ValidationError, derive_priority, parse_priority
from src.common.queue.errors import EmptyQueueError, InvalidStateError
from src.common.queue.lifecycle import Action, QueueToken, check_transition, format_token_number
from src.common.queue.waiting_set import WaitingSet
from src.models.models import TokenPriority, TokenStatus


def make_token(token_id, priority=TokenPriority.NORMAL, minute=0, status=TokenStatus.WAITING, serial=0):
    at = datetime(2026, 10, 19, 9, minute)
    return QueueToken(
        id=token_id,
        token_number=format_token_number("OPD", at.date(), token_id),
        token_date=at.date(),
        patient_id=token_id,
        department_id=1,
        doctor_id=10,
        priority=priority,
        status=status,
        generated_at=at,
        queued_at=at,
        requeue_serial=serial,
    )


# ============================================================================
# Transitions
# ============================================================================

@pytest.mark.parametrize("current, action, expected", [
    (TokenStatus.WAITING, Action.CALL, TokenStatus.CALLED),
    (TokenStatus.CALLED, Action.START, TokenStatus.IN_CONSULTATION),
    (TokenStatus.IN_CONSULTATION, Action.END, TokenStatus.COMPLETED),
    (TokenStatus.CALLED, Action.CANCEL_CONSULTATION, TokenStatus.CANCELLED),
    (TokenStatus.IN_CONSULTATION, Action.CANCEL_CONSULTATION, TokenStatus.CANCELLED),
    (TokenStatus.CALLED, Action.NO_SHOW, TokenStatus.NO_SHOW),
    (TokenStatus.CALLED, Action.SKIP, TokenStatus.WAITING),
    (TokenStatus.WAITING, Action.SKIP, TokenStatus.WAITING),
    (TokenStatus.WAITING, Action.CANCEL_WAITING, TokenStatus.CANCELLED),
])
def test_allowed_transitions(current, action, expected):
    assert check_transition(current, action) == expected


@pytest.mark.parametrize("current, action", [
    (TokenStatus.CALLED, Action.CALL),
    (TokenStatus.WAITING, Action.START),
    (TokenStatus.CALLED, Action.END),
    (TokenStatus.WAITING, Action.CANCEL_CONSULTATION),
    (TokenStatus.IN_CONSULTATION, Action.NO_SHOW),
    (TokenStatus.IN_CONSULTATION, Action.SKIP),
    (TokenStatus.CALLED, Action.CANCEL_WAITING),
    (TokenStatus.CALLED, Action.ESCALATE),
])
def test_rejected_transitions(current, action):
    with pytest.raises(InvalidTransitionError):
        check_transition(current, action)


@pytest.mark.parametrize("terminal", [TokenStatus.COMPLETED, TokenStatus.CANCELLED, TokenStatus.NO_SHOW])
def test_terminal_states_have_no_exits(terminal):
    for action in Action:
        with pytest.raises(InvalidTransitionError):
            check_transition(terminal, action)


# ============================================================================
# Priorities
# ============================================================================

def test_parse_priority_accepts_names_case_insensitively():
    assert parse_priority("senior_citizen") == TokenPriority.SENIOR_CITIZEN
    assert parse_priority(TokenPriority.PREGNANT) == TokenPriority.PREGNANT

    with pytest.raises(ValidationError):
        parse_priority("VIP")


@pytest.mark.parametrize("requested, pregnant, senior, expected", [
    (None, False, False, TokenPriority.NORMAL),
    ("EMERGENCY", True, True, TokenPriority.EMERGENCY),
    ("NORMAL", True, False, TokenPriority.PREGNANT),
    (None, False, True, TokenPriority.SENIOR_CITIZEN),
    (None, True, True, TokenPriority.PREGNANT),
    ("SENIOR_CITIZEN", False, False, TokenPriority.SENIOR_CITIZEN),
])
def test_derive_priority(requested, pregnant, senior, expected):
    assert derive_priority(requested, is_pregnant=pregnant, is_senior_citizen=senior) == expected


def test_format_token_number():
    assert format_token_number("CARD", date(2026, 1, 5), 7) == "CARD-20260105-0007"


# ============================================================================
# Waiting set
# ============================================================================

def test_enqueue_returns_rank_and_keeps_order():
    waiting = WaitingSet("doctor 10 queue")

    assert waiting.enqueue(make_token(1, minute=0)) == 1
    assert waiting.enqueue(make_token(2, minute=5)) == 2
    assert waiting.enqueue(make_token(3, TokenPriority.EMERGENCY, minute=9)) == 1
    assert waiting.enqueue(make_token(4, TokenPriority.PREGNANT, minute=1)) == 2

    assert list(waiting) == [3, 4, 1, 2]
    assert [waiting.position(token_id) for token_id in (3, 4, 1, 2)] == [1, 2, 3, 4]


def test_enqueue_rejects_non_waiting_and_duplicates():
    waiting = WaitingSet("doctor 10 queue")
    token = make_token(1)
    waiting.enqueue(token)

    with pytest.raises(InvalidStateError):
        waiting.enqueue(token)
    with pytest.raises(InvalidStateError):
        waiting.enqueue(make_token(2, status=TokenStatus.CALLED))


def test_remove_is_idempotent():
    waiting = WaitingSet("doctor 10 queue")
    waiting.enqueue(make_token(1))
    waiting.enqueue(make_token(2, minute=1))

    assert waiting.remove(1) is True
    assert waiting.remove(1) is False
    assert 1 not in waiting
    assert waiting.position(2) == 1


def test_peek_on_empty_set():
    waiting = WaitingSet("department 1 pool")

    with pytest.raises(EmptyQueueError, match="department 1 pool"):
        waiting.peek()
    assert waiting.head_key() is None


def test_tail_of_band():
    waiting = WaitingSet("doctor 10 queue")
    waiting.enqueue(make_token(1, minute=0))
    waiting.enqueue(make_token(2, TokenPriority.SENIOR_CITIZEN, minute=3))
    waiting.enqueue(make_token(3, minute=7))

    assert waiting.tail_queued_at(0) == datetime(2026, 10, 19, 9, 7)
    assert waiting.tail_queued_at(1) == datetime(2026, 10, 19, 9, 3)
    assert waiting.tail_queued_at(2) is None


def test_requeue_serial_orders_same_instant():
    waiting = WaitingSet("doctor 10 queue")
    waiting.enqueue(make_token(1, minute=0, serial=2))
    waiting.enqueue(make_token(2, minute=0, serial=1))

    assert list(waiting) == [2, 1]
