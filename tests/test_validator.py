import textwrap

import pytest

from notation_engine.errors import ValidationFailed
from notation_engine.models import EndDestination, Node, QuestionReference, StateDestination, StateMachine
from notation_engine.parser import parse
from notation_engine.questions import Choice, QuestionDefinition, QuestionType
from notation_engine.validator import Configuration, reachable_states, validate


def _notation(flow: str, alignment: str = ""):
    source = "code: demo\ntitle: Demo\nflow:\n" + textwrap.indent(textwrap.dedent(flow).lstrip(), "  ")
    if alignment:
        source += "alignment:\n" + textwrap.indent(textwrap.dedent(alignment).lstrip(), "  ")
    return parse(source)


def _q(code, qtype=QuestionType.STRING, choices=None):
    return QuestionDefinition(code=code, type=qtype, prompt=code, choices=choices or [])


def test_valid_notation_passes(llc_notation, configuration):
    validate(llc_notation, configuration)


def test_strict_mode_passes_when_every_state_reaches_end(llc_notation, questions):
    validate(llc_notation, Configuration(questions=questions, allow_implicit_end_states=False))


def test_unknown_question_once_per_code():
    notation = _notation(
        """
        BEGIN:
          _: person__first
        person__first:
          _: person__second
        person__second:
          _: entity_name
        entity_name:
          _: END
        """
    )
    config = Configuration.from_definitions([_q("entity_name")])
    with pytest.raises(ValidationFailed) as exc:
        validate(notation, config)
    assert exc.value.codes == ["unknown_question"]
    assert "person" in exc.value.problems[0].message


def test_problems_are_aggregated():
    notation = _notation(
        """
        BEGIN:
          _: color
        color:
          red: shade
          _: END
        shade:
          _: END
        """
    )
    config = Configuration.from_definitions([_q("color", QuestionType.RADIO)])
    with pytest.raises(ValidationFailed) as exc:
        validate(notation, config)
    assert sorted(exc.value.codes) == ["missing_choices", "unknown_question"]
    assert "Notation validation failed" in str(exc.value)


def test_choice_type_with_choices_is_fine():
    notation = _notation(
        """
        BEGIN:
          _: color
        color:
          red: END
        """
    )
    config = Configuration.from_definitions([
        _q("color", QuestionType.SELECT, [Choice(value="red", label="Red")]),
    ])
    validate(notation, config)


def test_any_only_transition_does_not_need_choices():
    notation = _notation(
        """
        BEGIN:
          _: color
        color:
          _: END
        """
    )
    validate(notation, Configuration.from_definitions([_q("color", QuestionType.MULTI_SELECT)]))


def test_empty_flow():
    notation = _notation("BEGIN:\n  _: END\n")
    with pytest.raises(ValidationFailed) as exc:
        validate(notation, Configuration())
    assert exc.value.codes == ["empty_flow"]


def test_missing_node_from_drifted_machine():
    machine = StateMachine(
        start=StateDestination(state="a"),
        nodes={
            "a": Node(
                id="a",
                question=QuestionReference(code="a"),
                transitions=[{"condition": {"kind": "any"}, "destination": {"kind": "state", "state": "gone"}}],
            ),
        },
    )
    notation = _notation("BEGIN:\n  _: END\n").model_copy(update={"flow": machine})
    with pytest.raises(ValidationFailed) as exc:
        validate(notation, Configuration.from_definitions([_q("a")]))
    assert exc.value.codes == ["missing_node"]


def test_cycles_are_legal():
    notation = _notation(
        """
        BEGIN:
          _: review
        review:
          again: review
          done: END
        """
    )
    validate(notation, Configuration.from_definitions([_q("review")], allow_implicit_end_states=False))


def test_dead_end_flagged_only_when_strict():
    notation = _notation(
        """
        BEGIN:
          _: start
        start:
          a: loop
          b: END
        loop:
          _: loop
        stuck:
        """
    )
    config = [_q("start"), _q("loop"), _q("stuck")]
    validate(notation, Configuration.from_definitions(config))

    with pytest.raises(ValidationFailed) as exc:
        validate(notation, Configuration.from_definitions(config, allow_implicit_end_states=False))
    assert exc.value.codes == ["no_end", "no_end"]
    messages = " ".join(p.message for p in exc.value.problems)
    assert "loop" in messages and "stuck" in messages


def test_alignment_validated_independently():
    notation = _notation(
        "BEGIN:\n  _: entity_name\nentity_name:\n  _: END\n",
        "BEGIN:\n  _: review\nreview:\n  _: END\n",
    )
    with pytest.raises(ValidationFailed) as exc:
        validate(notation, Configuration.from_definitions([_q("entity_name")]))
    assert exc.value.codes == ["unknown_question"]
    assert "review" in exc.value.problems[0].message


def test_reachable_states_skips_orphans():
    notation = _notation(
        """
        BEGIN:
          _: a
        a:
          x: b
          _: a
        b:
          _: END
        orphan:
          _: END
        """
    )
    assert reachable_states(notation.flow) == {"a", "b"}


def test_reachable_states_of_empty_flow():
    machine = StateMachine(start=EndDestination(), nodes={})
    assert reachable_states(machine) == set()


def test_deep_chain_does_not_recurse():
    depth = 3000
    lines = ["BEGIN:", "  _: s0"]
    for i in range(depth):
        nxt = f"s{i + 1}" if i + 1 < depth else "END"
        lines += [f"s{i}:", f"  _: {nxt}"]
    notation = _notation("\n".join(lines) + "\n")
    assert len(reachable_states(notation.flow)) == depth
