"""
notation_engine.validator
=========================
Second-pass checks of a built Notation against the question catalog.

Problems are collected across both machines and raised once as
ValidationFailed, so an author can fix everything in one pass.

Problem codes
-------------
empty_flow        machine starts at END
missing_node      a reachable state has no node
unknown_question  question code absent from the catalog (once per code)
missing_choices   choice transitions on a choice type with no choices
no_end            state cannot reach END (only when implicit ends are off)
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

from notation_engine.errors import ValidationFailed
from notation_engine.models import (
    ChoiceCondition,
    EndDestination,
    Node,
    Notation,
    StateDestination,
    StateID,
    StateMachine,
    ValidationProblem,
)
from notation_engine.parser import shadowed_transitions
from notation_engine.questions import QuestionDefinition

log = logging.getLogger(__name__)


class Configuration(BaseModel):
    questions:                 Dict[str, QuestionDefinition] = Field(default_factory=dict)
    allow_implicit_end_states: bool = True

    @classmethod
    def from_definitions(
        cls,
        definitions: Iterable[QuestionDefinition],
        *,
        allow_implicit_end_states: bool = True,
    ) -> "Configuration":
        return cls(
            questions={d.code: d for d in definitions},
            allow_implicit_end_states=allow_implicit_end_states,
        )


# ────────────────────────── graph walks ────────────────────────────────
def _walk(machine: StateMachine) -> Iterator[Tuple[StateID, Optional[Node]]]:
    """
    Depth-first from the start edge, each state once.  Explicit stack +
    visited set: cycles are legal and depth is unbounded.
    """
    if not isinstance(machine.start, StateDestination):
        return
    visited: Set[StateID] = set()
    stack: List[StateID] = [machine.start.state]
    while stack:
        state = stack.pop()
        if state in visited:
            continue
        visited.add(state)
        node = machine.nodes.get(state)
        yield state, node
        if node is None:
            continue
        # reversed so the first declared transition is explored first
        for transition in reversed(node.transitions):
            dest = transition.destination
            if isinstance(dest, StateDestination) and dest.state not in visited:
                stack.append(dest.state)


def reachable_states(machine: StateMachine) -> Set[StateID]:
    """Every node id reachable from the machine's start edge."""
    return {state for state, node in _walk(machine) if node is not None}


def _states_reaching_end(machine: StateMachine) -> Set[StateID]:
    predecessors: Dict[StateID, Set[StateID]] = {}
    queue: deque = deque()
    for node in machine.nodes.values():
        for transition in node.transitions:
            dest = transition.destination
            if isinstance(dest, EndDestination):
                queue.append(node.id)
            elif isinstance(dest, StateDestination):
                predecessors.setdefault(dest.state, set()).add(node.id)
            else:
                raise TypeError(f"unhandled destination {dest!r}")

    reaching: Set[StateID] = set()
    while queue:
        state = queue.popleft()
        if state in reaching:
            continue
        reaching.add(state)
        queue.extend(predecessors.get(state, ()))
    return reaching


# ────────────────────────── per-machine checks ─────────────────────────
def _validate_machine(
    machine: StateMachine,
    context: str,
    configuration: Configuration,
    problems: List[ValidationProblem],
) -> None:
    if isinstance(machine.start, EndDestination):
        problems.append(ValidationProblem(
            code="empty_flow",
            message=f"{context.capitalize()} cannot start at END",
        ))

    unknown: Set[str] = set()
    choiceless: Set[str] = set()

    for state, node in _walk(machine):
        if node is None:
            problems.append(ValidationProblem(
                code="missing_node",
                message=f"State {state} referenced in {context} but not defined",
            ))
            continue

        if shadowed_transitions(node):
            log.warning("State %s in %s has transitions shadowed by '_'", state, context)

        code = node.question.code
        definition = configuration.questions.get(code)
        if definition is None:
            if code not in unknown:
                unknown.add(code)
                problems.append(ValidationProblem(
                    code="unknown_question",
                    message=f"Question code '{code}' referenced by state {state} is missing from catalogue",
                ))
            continue

        has_choice_branch = any(isinstance(t.condition, ChoiceCondition) for t in node.transitions)
        if (has_choice_branch and definition.type.requires_choices
                and not definition.choices and code not in choiceless):
            choiceless.add(code)
            problems.append(ValidationProblem(
                code="missing_choices",
                message=f"Question '{code}' requires choices but none were provided",
            ))

    if not configuration.allow_implicit_end_states:
        reaching = _states_reaching_end(machine)
        for state in machine.nodes:
            if state not in reaching:
                problems.append(ValidationProblem(
                    code="no_end",
                    message=f"State {state} in {context} does not lead to END",
                ))


# ────────────────────────── public API ─────────────────────────────────
def validate(notation: Notation, configuration: Configuration) -> None:
    """Raise ValidationFailed with every problem found, else return None."""
    problems: List[ValidationProblem] = []

    _validate_machine(notation.flow, "flow", configuration, problems)
    if notation.alignment is not None:
        _validate_machine(notation.alignment, "alignment", configuration, problems)

    if problems:
        log.info("Notation %s failed validation with %s problem(s)", notation.code, len(problems))
        raise ValidationFailed(problems)
    log.debug("Notation %s validated", notation.code)


__all__ = ["Configuration", "validate", "reachable_states"]
