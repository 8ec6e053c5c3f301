"""
notation_engine.models
======================
Pydantic models that define the **only valid shape** for:

• Notation      – one parsed workflow definition (metadata, document, machines)
• StateMachine  – BEGIN edge + question nodes + guarded transitions
• FlowInstance  – runtime cursor over one of a notation's machines

Closed variants (Condition, Destination, AnswerValue) are tagged unions
discriminated on `kind`; every consumer matches every variant.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, NewType, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

StateID = NewType("StateID", str)

BEGIN = "BEGIN"
END = "END"
ANY_CONDITION_KEY = "_"
CONTEXT_DELIMITER = "__"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ────────────────────────── 1 · metadata & document ────────────────────
class RespondentType(str, Enum):
    ORG = "org"
    ORG_AND_PERSON = "org_and_person"


class DocumentType(str, Enum):
    PDF = "pdf"
    MARKDOWN = "markdown"


class Metadata(_Frozen):
    code:            str
    title:           str
    description:     Optional[str] = None
    respondent_type: RespondentType = RespondentType.ORG


class Point(_Frozen):
    x: float
    y: float


class Quad(_Frozen):
    """Placement region; y grows downward from the page's upper edge."""
    upper_left:  Point
    lower_left:  Point
    upper_right: Point
    lower_right: Point


class DocumentMapping(_Frozen):
    field: str
    page:  Optional[int] = None        # 1-based
    quad:  Optional[Quad] = None


class Document(_Frozen):
    url:      Optional[str] = None
    type:     DocumentType = DocumentType.PDF
    mappings: Dict[str, DocumentMapping] = Field(default_factory=dict)


# ────────────────────────── 2 · state machine ──────────────────────────
class AnyCondition(_Frozen):
    kind: Literal["any"] = "any"


class ChoiceCondition(_Frozen):
    kind:     Literal["choice"] = "choice"
    expected: str


Condition = Annotated[Union[AnyCondition, ChoiceCondition], Field(discriminator="kind")]


class StateDestination(_Frozen):
    kind:  Literal["state"] = "state"
    state: StateID


class EndDestination(_Frozen):
    kind: Literal["end"] = "end"


Destination = Annotated[Union[StateDestination, EndDestination], Field(discriminator="kind")]


class Transition(_Frozen):
    condition:   Condition
    destination: Destination


class QuestionReference(_Frozen):
    """A question code plus the context tokens that scope it."""
    code:           str
    context_tokens: List[str] = Field(default_factory=list)

    @classmethod
    def from_state_id(cls, state_id: str) -> "QuestionReference":
        # `registered_agent__for_company` → code + ["for_company"]
        parts = [p for p in state_id.split(CONTEXT_DELIMITER) if p]
        if not parts:
            return cls(code=state_id)
        return cls(code=parts[0], context_tokens=parts[1:])

    def resolved_label(self, default_label: Optional[str] = None) -> Optional[str]:
        """Human label from the context tokens, e.g. `new_llc` → `New Llc`."""
        if not self.context_tokens:
            return default_label
        return " → ".join(
            " ".join(word.capitalize() for word in t.replace("_", " ").split())
            for t in self.context_tokens
        )


class Node(_Frozen):
    id:          StateID
    question:    QuestionReference
    transitions: List[Transition] = Field(default_factory=list)


class StateMachine(_Frozen):
    start: Destination
    nodes: Dict[StateID, Node] = Field(default_factory=dict)

    def node(self, state_id: str) -> Optional[Node]:
        return self.nodes.get(StateID(state_id))


class Notation(_Frozen):
    metadata:  Metadata
    document:  Optional[Document] = None
    flow:      StateMachine
    alignment: Optional[StateMachine] = None

    @property
    def code(self) -> str:
        return self.metadata.code


# ────────────────────────── 3 · answers ────────────────────────────────
class DataHash(_Frozen):
    algorithm: str
    value:     str


class StringAnswer(_Frozen):
    kind:  Literal["string"] = "string"
    value: str


class ChoiceAnswer(_Frozen):
    kind:  Literal["choice"] = "choice"
    value: str


class MultiChoiceAnswer(_Frozen):
    kind:   Literal["multi_choice"] = "multi_choice"
    values: List[str] = Field(default_factory=list)


class PayloadAnswer(_Frozen):
    kind: Literal["payload"] = "payload"
    hash: DataHash


class MetadataAnswer(_Frozen):
    kind:   Literal["metadata"] = "metadata"
    values: Dict[str, str] = Field(default_factory=dict)


AnswerValue = Annotated[
    Union[StringAnswer, ChoiceAnswer, MultiChoiceAnswer, PayloadAnswer, MetadataAnswer],
    Field(discriminator="kind"),
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnswerRecord(_Frozen):
    value:     AnswerValue
    timestamp: datetime = Field(default_factory=_utcnow)


# ────────────────────────── 4 · runtime instance ───────────────────────
class FlowKind(str, Enum):
    CLIENT = "client"
    ALIGNMENT = "alignment"


class FlowInstance(BaseModel):
    """
    Runtime cursor over a notation.  Single owner, no internal locking.

    • current_state=None, completed=False  → not started
    • current_state=<id>                   → active
    • current_state=None, completed=True   → completed
    """
    notation:      Notation
    kind:          FlowKind = FlowKind.CLIENT
    current_state: Optional[StateID] = None
    completed:     bool = False
    answer_log:    Dict[StateID, AnswerRecord] = Field(default_factory=dict)

    # thin wrappers so callers can drive an instance directly
    def start(self) -> StateID:
        from notation_engine.runtime import start
        return start(self)

    def submit_answer(self, value: AnswerValue, timestamp: Optional[datetime] = None) -> Optional[StateID]:
        from notation_engine.runtime import submit_answer
        return submit_answer(self, value, timestamp)

    def restart(self) -> None:
        from notation_engine.runtime import restart
        restart(self)


# ────────────────────────── 5 · validation problems ────────────────────
class ValidationProblem(_Frozen):
    code:    str
    message: str


__all__ = [
    "StateID", "BEGIN", "END", "ANY_CONDITION_KEY", "CONTEXT_DELIMITER",
    "RespondentType", "DocumentType", "Metadata", "Point", "Quad",
    "DocumentMapping", "Document",
    "AnyCondition", "ChoiceCondition", "Condition",
    "StateDestination", "EndDestination", "Destination",
    "Transition", "QuestionReference", "Node", "StateMachine", "Notation",
    "DataHash", "StringAnswer", "ChoiceAnswer", "MultiChoiceAnswer",
    "PayloadAnswer", "MetadataAnswer", "AnswerValue", "AnswerRecord",
    "FlowKind", "FlowInstance", "ValidationProblem",
]
