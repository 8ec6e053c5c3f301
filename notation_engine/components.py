"""
notation_engine.components
==========================
QuestionReference + QuestionDefinition → UI-agnostic step descriptor.

Presentation layers (native apps, web forms) render a `Component` however
they like; this module only decides *which* control and the final text.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from notation_engine.models import FlowInstance, FlowKind, Notation, QuestionReference
from notation_engine.questions import Choice, QuestionDefinition, QuestionType
from notation_engine.runtime import active_machine

PLACEHOLDERS = ("{{for_label}}", "{{parent_label}}", "{{label}}")


class ComponentKind(str, Enum):
    SINGLE_LINE_TEXT = "single_line_text"
    MULTI_LINE_TEXT = "multi_line_text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    TOGGLE = "toggle"
    RADIO = "radio"
    PICKER = "picker"
    MULTI_SELECT = "multi_select"
    DATE = "date"
    DATE_TIME = "date_time"
    SECRET = "secret"
    PHONE = "phone"
    EMAIL = "email"
    SSN = "ssn"
    EIN = "ein"
    FILE_UPLOAD = "file_upload"
    PERSON_LOOKUP = "person_lookup"
    ADDRESS_ENTRY = "address_entry"
    ORGANIZATION_LOOKUP = "organization_lookup"
    REGISTERED_AGENT = "registered_agent"
    SIGNATURE_REQUEST = "signature_request"
    NOTARIZATION_REQUEST = "notarization_request"
    DOCUMENT_UPLOAD = "document_upload"
    ISSUANCE_LOOKUP = "issuance_lookup"
    MAILBOX_SELECT = "mailbox_select"


_COMPONENTS: Dict[QuestionType, ComponentKind] = {
    QuestionType.STRING:           ComponentKind.SINGLE_LINE_TEXT,
    QuestionType.TEXT:             ComponentKind.MULTI_LINE_TEXT,
    QuestionType.DATE:             ComponentKind.DATE,
    QuestionType.DATETIME:         ComponentKind.DATE_TIME,
    QuestionType.NUMBER:           ComponentKind.DECIMAL,
    QuestionType.YES_NO:           ComponentKind.TOGGLE,
    QuestionType.RADIO:            ComponentKind.RADIO,
    QuestionType.SELECT:           ComponentKind.PICKER,
    QuestionType.MULTI_SELECT:     ComponentKind.MULTI_SELECT,
    QuestionType.SECRET:           ComponentKind.SECRET,
    QuestionType.PHONE:            ComponentKind.PHONE,
    QuestionType.EMAIL:            ComponentKind.EMAIL,
    QuestionType.SSN:              ComponentKind.SSN,
    QuestionType.EIN:              ComponentKind.EIN,
    QuestionType.FILE:             ComponentKind.FILE_UPLOAD,
    QuestionType.PERSON:           ComponentKind.PERSON_LOOKUP,
    QuestionType.ADDRESS:          ComponentKind.ADDRESS_ENTRY,
    QuestionType.ORG:              ComponentKind.ORGANIZATION_LOOKUP,
    QuestionType.REGISTERED_AGENT: ComponentKind.REGISTERED_AGENT,
    QuestionType.SIGNATURE:        ComponentKind.SIGNATURE_REQUEST,
    QuestionType.NOTARIZATION:     ComponentKind.NOTARIZATION_REQUEST,
    QuestionType.DOCUMENT:         ComponentKind.DOCUMENT_UPLOAD,
    QuestionType.ISSUANCE:         ComponentKind.ISSUANCE_LOOKUP,
    QuestionType.MAILBOX:          ComponentKind.MAILBOX_SELECT,
}

# a new QuestionType must be given a component before anything imports us
_unmapped = set(QuestionType) - set(_COMPONENTS)
if _unmapped:
    raise RuntimeError(f"QuestionType(s) without a component: {sorted(t.value for t in _unmapped)}")

_CHOICE_COMPONENTS = frozenset({ComponentKind.RADIO, ComponentKind.PICKER, ComponentKind.MULTI_SELECT})


class Component(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind:    ComponentKind
    choices: List[Choice] = Field(default_factory=list)   # radio / picker / multi_select only


class QuestionStepDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference:      QuestionReference
    definition:     QuestionDefinition
    display_prompt: str
    display_help:   Optional[str] = None
    component:      Component


# ────────────────────────── helpers ────────────────────────────────────
def component_for(qtype: QuestionType, choices: List[Choice]) -> Component:
    kind = _COMPONENTS[qtype]
    return Component(kind=kind, choices=list(choices) if kind in _CHOICE_COMPONENTS else [])


def infer_default_label(code: str) -> str:
    """Fallback label when a state carries no context tokens."""
    if "entity" in code or "org" in code:
        return "this entity"
    if "person" in code or "individual" in code:
        return "this person"
    if "agent" in code:
        return "this LLC"
    if "application" in code or "annual" in code:
        return "this application"
    return "this entity"


def expand_placeholders(text: str, label: Optional[str]) -> str:
    if label is None:
        return text
    for marker in PLACEHOLDERS:
        text = text.replace(marker, label)
    return text


# ────────────────────────── public API ─────────────────────────────────
def make_descriptor(reference: QuestionReference, definition: QuestionDefinition) -> QuestionStepDescriptor:
    label = reference.resolved_label(default_label=infer_default_label(reference.code))
    return QuestionStepDescriptor(
        reference=reference,
        definition=definition,
        display_prompt=expand_placeholders(definition.prompt, label),
        display_help=(
            expand_placeholders(definition.help_text, label)
            if definition.help_text is not None else None
        ),
        component=component_for(definition.type, definition.choices),
    )


def descriptor_for_state(
    notation: Notation,
    state_id: str,
    questions: Mapping[str, QuestionDefinition],
    kind: FlowKind = FlowKind.CLIENT,
) -> Optional[QuestionStepDescriptor]:
    """Descriptor for one state of *notation*, or None if node/definition is absent."""
    machine = active_machine(FlowInstance(notation=notation, kind=kind))
    node = machine.nodes.get(state_id)
    if node is None:
        return None
    definition = questions.get(node.question.code)
    if definition is None:
        return None
    return make_descriptor(node.question, definition)


__all__ = [
    "PLACEHOLDERS",
    "ComponentKind",
    "Component",
    "QuestionStepDescriptor",
    "component_for",
    "infer_default_label",
    "expand_placeholders",
    "make_descriptor",
    "descriptor_for_state",
]
