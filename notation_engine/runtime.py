"""
notation_engine.runtime
=======================
Pure state-transition logic over a FlowInstance.

    not-started ──start()──▶ active(state) ──submit_answer()──▶ … ──▶ completed
         ▲                                                              │
         └──────────────────────────── restart() ───────────────────────┘

The engine never retries and never recovers: every misuse or data drift
surfaces as a FlowRuntimeError for the caller to act on.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from notation_engine.errors import AlreadyCompleted, InvalidState, NoMatchingTransition, NotStarted
from notation_engine.models import (
    BEGIN,
    AnswerRecord,
    AnswerValue,
    AnyCondition,
    ChoiceAnswer,
    ChoiceCondition,
    Condition,
    Destination,
    EndDestination,
    FlowInstance,
    FlowKind,
    MetadataAnswer,
    MultiChoiceAnswer,
    Node,
    PayloadAnswer,
    StateDestination,
    StateID,
    StateMachine,
    StringAnswer,
)

log = logging.getLogger(__name__)


def active_machine(instance: FlowInstance) -> StateMachine:
    """Machine driving *instance*; alignment falls back to flow when absent."""
    notation = instance.notation
    if instance.kind is FlowKind.CLIENT:
        return notation.flow
    if instance.kind is FlowKind.ALIGNMENT:
        return notation.alignment if notation.alignment is not None else notation.flow
    raise TypeError(f"unhandled flow kind {instance.kind!r}")


# ────────────────────────── matching ───────────────────────────────────
def matches(condition: Condition, answer: AnswerValue) -> bool:
    if isinstance(condition, AnyCondition):
        return True
    if not isinstance(condition, ChoiceCondition):
        raise TypeError(f"unhandled condition {condition!r}")

    if isinstance(answer, (ChoiceAnswer, StringAnswer)):
        return answer.value == condition.expected
    if isinstance(answer, MultiChoiceAnswer):
        return condition.expected in answer.values
    if isinstance(answer, (PayloadAnswer, MetadataAnswer)):
        return False
    raise TypeError(f"unhandled answer {answer!r}")


def resolve_destination(node: Node, answer: AnswerValue) -> Destination:
    """First transition (declaration order) whose condition matches."""
    for transition in node.transitions:
        if matches(transition.condition, answer):
            return transition.destination
    raise NoMatchingTransition(node.id)


# ────────────────────────── lifecycle ──────────────────────────────────
def start(instance: FlowInstance) -> StateID:
    if instance.completed:
        raise AlreadyCompleted()

    destination = active_machine(instance).start
    if isinstance(destination, StateDestination):
        instance.current_state = destination.state
        log.debug("Flow %s (%s) started at %s",
                  instance.notation.code, instance.kind.value, destination.state)
        return destination.state
    if isinstance(destination, EndDestination):
        # completing before a single question is a notation defect
        instance.completed = True
        instance.current_state = None
        raise NoMatchingTransition(BEGIN)
    raise TypeError(f"unhandled destination {destination!r}")


def submit_answer(
    instance: FlowInstance,
    value: AnswerValue,
    timestamp: Optional[datetime] = None,
) -> Optional[StateID]:
    """
    Record *value* against the current state and advance.

    Returns the next StateID, or None when the flow reached END.
    """
    if instance.completed:
        raise AlreadyCompleted()
    state = instance.current_state
    if state is None:
        raise NotStarted()

    node = active_machine(instance).nodes.get(state)
    if node is None:
        raise InvalidState(state)

    # resubmitting a state overwrites its previous record
    instance.answer_log[state] = AnswerRecord(
        value=value,
        timestamp=timestamp or datetime.now(timezone.utc),
    )

    destination = resolve_destination(node, value)
    if isinstance(destination, StateDestination):
        instance.current_state = destination.state
        log.debug("Flow %s: %s → %s", instance.notation.code, state, destination.state)
        return destination.state
    if isinstance(destination, EndDestination):
        instance.current_state = None
        instance.completed = True
        log.debug("Flow %s: %s → END", instance.notation.code, state)
        return None
    raise TypeError(f"unhandled destination {destination!r}")


def restart(instance: FlowInstance) -> None:
    instance.current_state = None
    instance.completed = False
    instance.answer_log.clear()


__all__ = [
    "active_machine",
    "matches",
    "resolve_destination",
    "start",
    "submit_answer",
    "restart",
]
