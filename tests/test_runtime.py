import textwrap
from datetime import datetime, timezone

import pytest

from notation_engine import runtime
from notation_engine.errors import AlreadyCompleted, InvalidState, NoMatchingTransition, NotStarted
from notation_engine.models import (
    AnyCondition,
    ChoiceAnswer,
    ChoiceCondition,
    DataHash,
    EndDestination,
    FlowInstance,
    FlowKind,
    MetadataAnswer,
    MultiChoiceAnswer,
    Node,
    PayloadAnswer,
    QuestionReference,
    StateDestination,
    StringAnswer,
    Transition,
)
from notation_engine.parser import parse
from notation_engine.validator import reachable_states

TS = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _notation(flow: str):
    source = "code: demo\ntitle: Demo\nflow:\n" + textwrap.indent(textwrap.dedent(flow).lstrip(), "  ")
    return parse(source)


def _node(*transitions):
    return Node(id="n", question=QuestionReference(code="n"), transitions=list(transitions))


# ── concrete scenarios ─────────────────────────────────────────────────
def test_single_question_flow(simple_source):
    instance = FlowInstance(notation=parse(simple_source))
    assert instance.current_state is None and not instance.completed

    assert instance.start() == "entity_name"
    assert instance.submit_answer(StringAnswer(value="Acme LLC"), TS) is None

    assert instance.completed
    assert instance.current_state is None
    record = instance.answer_log["entity_name"]
    assert record.value == StringAnswer(value="Acme LLC")
    assert record.timestamp == TS


def test_choice_branch_to_context_state(llc_notation):
    instance = FlowInstance(notation=llc_notation)
    assert runtime.start(instance) == "annual_or_amended"

    nxt = runtime.submit_answer(instance, ChoiceAnswer(value="original"))
    assert nxt == "entity_name__new_llc"

    node = llc_notation.flow.nodes[nxt]
    assert node.question.code == "entity_name"
    assert node.question.context_tokens == ["new_llc"]


def test_unrecognized_choice_without_fallback(llc_notation):
    instance = FlowInstance(notation=llc_notation)
    instance.start()
    with pytest.raises(NoMatchingTransition) as exc:
        instance.submit_answer(ChoiceAnswer(value="unrecognized"))
    assert exc.value.state == "annual_or_amended"
    # the answer is still logged, the cursor does not move
    assert instance.current_state == "annual_or_amended"
    assert "annual_or_amended" in instance.answer_log


def test_full_walk_visits_only_reachable_states(llc_notation):
    instance = FlowInstance(notation=llc_notation)
    reachable = reachable_states(llc_notation.flow)
    visited = [instance.start()]
    for answer in (ChoiceAnswer(value="amendment"), StringAnswer(value="Acme"),
                   ChoiceAnswer(value="no"), ChoiceAnswer(value="yes"),
                   PayloadAnswer(hash=DataHash(algorithm="sha256", value="abc"))):
        nxt = instance.submit_answer(answer)
        if nxt is not None:
            visited.append(nxt)
    assert instance.completed
    assert set(visited) <= reachable
    assert visited == [
        "annual_or_amended", "org__existing_entity", "registered_agent",
        "registered_agent", "signature__organizer",
    ]


def test_resubmission_overwrites_log(llc_notation):
    instance = FlowInstance(notation=llc_notation)
    instance.start()
    instance.submit_answer(ChoiceAnswer(value="original"))
    instance.submit_answer(StringAnswer(value="Acme"))
    instance.submit_answer(ChoiceAnswer(value="no"), TS)
    later = datetime(2026, 1, 1, tzinfo=timezone.utc)
    instance.submit_answer(ChoiceAnswer(value="yes"), later)
    assert instance.answer_log["registered_agent"].value == ChoiceAnswer(value="yes")
    assert instance.answer_log["registered_agent"].timestamp == later


# ── lifecycle errors ───────────────────────────────────────────────────
def test_submit_before_start(simple_source):
    with pytest.raises(NotStarted):
        FlowInstance(notation=parse(simple_source)).submit_answer(StringAnswer(value="x"))


def test_calls_after_completion(simple_source):
    instance = FlowInstance(notation=parse(simple_source))
    instance.start()
    instance.submit_answer(StringAnswer(value="x"))
    with pytest.raises(AlreadyCompleted):
        instance.submit_answer(StringAnswer(value="y"))
    with pytest.raises(AlreadyCompleted):
        instance.start()


def test_start_at_end_completes_and_raises():
    instance = FlowInstance(notation=_notation("BEGIN:\n  _: END\n"))
    with pytest.raises(NoMatchingTransition) as exc:
        instance.start()
    assert exc.value.state == "BEGIN"
    assert instance.completed and instance.current_state is None


def test_invalid_state_on_drift(simple_source):
    instance = FlowInstance(notation=parse(simple_source), current_state="vanished")
    with pytest.raises(InvalidState) as exc:
        instance.submit_answer(StringAnswer(value="x"))
    assert exc.value.state == "vanished"
    assert instance.answer_log == {}


# ── restart ────────────────────────────────────────────────────────────
@pytest.mark.parametrize("steps", [0, 1, 2])
def test_restart_matches_fresh_instance(llc_notation, steps):
    fresh = FlowInstance(notation=llc_notation)
    instance = FlowInstance(notation=llc_notation)
    instance.start()
    answers = [ChoiceAnswer(value="original"), StringAnswer(value="Acme")]
    for answer in answers[:steps]:
        instance.submit_answer(answer)

    instance.restart()
    assert instance.current_state is None and not instance.completed
    assert instance.answer_log == {}
    assert instance.start() == fresh.start()
    assert instance.current_state == fresh.current_state


def test_restart_after_completion(simple_source):
    instance = FlowInstance(notation=parse(simple_source))
    instance.start()
    instance.submit_answer(StringAnswer(value="x"))
    runtime.restart(instance)
    assert runtime.start(instance) == "entity_name"


# ── machine selection ──────────────────────────────────────────────────
def test_alignment_kind_uses_alignment_machine(llc_notation):
    instance = FlowInstance(notation=llc_notation, kind=FlowKind.ALIGNMENT)
    assert instance.start() == "review__filing"
    assert instance.submit_answer(ChoiceAnswer(value="revise")) == "review__filing"
    assert instance.submit_answer(ChoiceAnswer(value="approve")) is None
    assert instance.completed


def test_alignment_kind_falls_back_to_flow(simple_source):
    instance = FlowInstance(notation=parse(simple_source), kind="alignment")
    assert runtime.active_machine(instance) is instance.notation.flow
    assert instance.start() == "entity_name"


# ── matching rules ─────────────────────────────────────────────────────
A = StateDestination(state="a")
B = StateDestination(state="b")


def test_declared_order_wins():
    choice_first = _node(Transition(condition=ChoiceCondition(expected="a"), destination=A),
                         Transition(condition=AnyCondition(), destination=B))
    any_first = _node(Transition(condition=AnyCondition(), destination=B),
                      Transition(condition=ChoiceCondition(expected="a"), destination=A))
    answer = ChoiceAnswer(value="a")
    assert runtime.resolve_destination(choice_first, answer) == A
    assert runtime.resolve_destination(any_first, answer) == B


@pytest.mark.parametrize("answer, expected", [
    (ChoiceAnswer(value="a"), True),
    (StringAnswer(value="a"), True),
    (StringAnswer(value="A"), False),
    (MultiChoiceAnswer(values=["x", "a"]), True),
    (MultiChoiceAnswer(values=[]), False),
    (PayloadAnswer(hash=DataHash(algorithm="sha256", value="a")), False),
    (MetadataAnswer(values={"a": "a"}), False),
])
def test_choice_condition_matching(answer, expected):
    assert runtime.matches(ChoiceCondition(expected="a"), answer) is expected
    assert runtime.matches(AnyCondition(), answer) is True


def test_no_transitions_means_no_match():
    with pytest.raises(NoMatchingTransition):
        runtime.resolve_destination(_node(), StringAnswer(value="x"))


def test_end_destination_from_any():
    node = _node(Transition(condition=AnyCondition(), destination=EndDestination()))
    assert runtime.resolve_destination(node, MetadataAnswer()) == EndDestination()
