"""
notation_engine.parser
======================
YAML notation text → Notation.

Parsing happens in two phases per machine: collect every declared state
key, then build transitions and check each target against that set.  A
broken source raises a ParseError subclass; no partial Notation escapes.
"""
from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import yaml

from notation_engine.errors import (
    DuplicateState,
    InvalidSource,
    InvalidValue,
    MissingField,
    UnknownStateReference,
)
from notation_engine.models import (
    ANY_CONDITION_KEY,
    BEGIN,
    END,
    AnyCondition,
    ChoiceCondition,
    Document,
    DocumentMapping,
    DocumentType,
    EndDestination,
    Metadata,
    Node,
    Notation,
    Point,
    Quad,
    QuestionReference,
    RespondentType,
    StateDestination,
    StateID,
    StateMachine,
    Transition,
)
from notation_engine.sources import Pairs, decode, read_source

log = logging.getLogger(__name__)

_DOCUMENT_KEYS = ("document_url", "document_type", "document_mappings")
_QUAD_CORNERS = ("upper_left", "lower_left", "upper_right", "lower_right")


# ────────────────────────── public API ─────────────────────────────────
def parse(source: str) -> Notation:
    """Parse notation YAML into a Notation or raise a ParseError."""
    try:
        raw = decode(source)
    except yaml.YAMLError as exc:
        raise InvalidSource(str(exc)) from exc

    if not isinstance(raw, Pairs):
        raise InvalidSource("top level must be a mapping")
    top = _as_dict(raw, "notation")

    code = _optional_text(top, "code")
    if not code or not code.strip():
        raise MissingField("code")
    title = _optional_text(top, "title")
    if not title or not title.strip():
        raise MissingField("title")

    metadata = Metadata(
        code=code,
        title=title,
        description=_optional_text(top, "description"),
        respondent_type=_respondent_type(_optional_text(top, "respondent_type")),
    )

    if _blank(top.get("flow")):
        raise MissingField("flow")
    flow = _build_machine(top["flow"], "flow")
    alignment = None if _blank(top.get("alignment")) else _build_machine(top["alignment"], "alignment")

    notation = Notation(
        metadata=metadata,
        document=_build_document(top),
        flow=flow,
        alignment=alignment,
    )
    log.debug("Parsed notation %s (%s flow states)", notation.code, len(flow.nodes))
    return notation


def parse_file(path: Path | str) -> Notation:
    """Read *path* through the source registry and parse it."""
    return parse(read_source(Path(path)))


def shadowed_transitions(node: Node) -> List[Transition]:
    """Transitions that can never fire because an earlier `_` catches all."""
    for idx, transition in enumerate(node.transitions):
        if isinstance(transition.condition, AnyCondition):
            return list(node.transitions[idx + 1:])
    return []


# ────────────────────────── helpers: generic shapes ────────────────────
def _blank(value: Any) -> bool:
    return value is None or value == ""


def _as_dict(pairs: Pairs, where: str) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in pairs:
        if not isinstance(key, str):
            raise InvalidSource(f"keys in {where} must be strings")
        if key in out:
            raise InvalidSource(f"duplicate key '{key}' in {where}")
        out[key] = value
    return out


def _optional_text(mapping: Dict[str, Any], name: str) -> Optional[str]:
    value = mapping.get(name)
    if _blank(value):
        return None
    if not isinstance(value, str):
        raise InvalidSource(f"'{name}' must be a string")
    return value


def _respondent_type(raw: Optional[str]) -> RespondentType:
    if raw is None:
        return RespondentType.ORG
    try:
        return RespondentType(raw)
    except ValueError:
        raise InvalidValue("respondent_type", f"Unsupported value '{raw}'") from None


# ────────────────────────── helpers: state machine ─────────────────────
def _build_machine(raw: Any, section: str) -> StateMachine:
    if not isinstance(raw, Pairs):
        raise InvalidSource(f"'{section}' must be a mapping of states")

    # phase 1 – every declared key
    states: Dict[str, Any] = {}
    for key, value in raw:
        if not isinstance(key, str):
            raise InvalidSource(f"state keys in {section} must be strings")
        if key in states:
            raise DuplicateState(key)
        states[key] = value
    declared: Set[str] = {k for k in states if k not in (BEGIN, END)}

    # phase 2 – BEGIN edge, then nodes in declaration order
    begin = _transition_pairs(states.get(BEGIN), f"{section}.{BEGIN}")
    if not begin:
        raise MissingField(f"{section}.{BEGIN}")
    if len(begin) != 1:
        raise InvalidValue(f"{section}.{BEGIN}", "Must contain exactly one transition")
    start = _destination(begin[0][1], declared)

    nodes: Dict[StateID, Node] = {}
    for key, value in states.items():
        if key in (BEGIN, END):
            continue
        transitions = [
            Transition(condition=_condition(cond), destination=_destination(dest, declared))
            for cond, dest in _transition_pairs(value, f"{section}.{key}")
        ]
        node = Node(id=StateID(key), question=QuestionReference.from_state_id(key), transitions=transitions)
        shadowed = shadowed_transitions(node)
        if shadowed:
            log.warning(
                "State %s in %s: catch-all '_' shadows %s later transition(s)",
                key, section, len(shadowed),
            )
        nodes[node.id] = node

    return StateMachine(start=start, nodes=nodes)


def _transition_pairs(raw: Any, where: str) -> List[Tuple[str, str]]:
    if _blank(raw):
        return []
    if not isinstance(raw, Pairs):
        raise InvalidSource(f"'{where}' must be a transition map")

    seen: Set[str] = set()
    out: List[Tuple[str, str]] = []
    for cond, dest in raw:
        if not isinstance(cond, str) or not isinstance(dest, str):
            raise InvalidSource(f"transitions in {where} must map strings to strings")
        if cond in seen:
            raise InvalidSource(f"duplicate condition '{cond}' in {where}")
        seen.add(cond)
        out.append((cond, dest))
    return out


def _condition(raw: str):
    if raw == ANY_CONDITION_KEY:
        return AnyCondition()
    return ChoiceCondition(expected=raw)


def _destination(raw: str, declared: Set[str]):
    if raw == END:
        return EndDestination()
    if raw not in declared:
        raise UnknownStateReference(raw)
    return StateDestination(state=StateID(raw))


# ────────────────────────── helpers: document ──────────────────────────
def _build_document(top: Dict[str, Any]) -> Optional[Document]:
    if all(_blank(top.get(k)) for k in _DOCUMENT_KEYS):
        return None

    type_name = _optional_text(top, "document_type") or DocumentType.PDF.value
    try:
        doc_type = DocumentType(type_name)
    except ValueError:
        raise InvalidValue("document_type", f"Unsupported value '{type_name}'") from None

    raw_mappings = top.get("document_mappings")
    mappings: Dict[str, DocumentMapping] = {}
    if not _blank(raw_mappings):
        if not isinstance(raw_mappings, Pairs):
            raise InvalidSource("'document_mappings' must be a mapping")
        for field, entry in _as_dict(raw_mappings, "document_mappings").items():
            mappings[field] = _document_mapping(field, entry)

    return Document(url=_optional_text(top, "document_url"), type=doc_type, mappings=mappings)


def _document_mapping(field: str, raw: Any) -> DocumentMapping:
    where = f"document_mappings.{field}"
    if _blank(raw):
        entry: Dict[str, Any] = {}
    elif isinstance(raw, Pairs):
        entry = _as_dict(raw, where)
    else:
        raise InvalidSource(f"'{where}' must be a mapping")

    return DocumentMapping(
        field=field,
        page=_page(entry.get("page"), f"{where}.page"),
        quad=_quad(entry, where),
    )


def _page(raw: Any, where: str) -> Optional[int]:
    if _blank(raw):
        return None
    try:
        page = int(raw)
    except (TypeError, ValueError):
        raise InvalidValue(where, f"'{raw}' is not an integer") from None
    if page < 1:
        raise InvalidValue(where, "pages are 1-based")
    return page


def _point(raw: Any, where: str) -> Optional[Point]:
    if isinstance(raw, Pairs) or not isinstance(raw, list) or len(raw) != 2:
        return None
    try:
        x, y = (float(v) for v in raw)
    except (TypeError, ValueError):
        raise InvalidValue(where, "coordinates must be numeric") from None
    if not (math.isfinite(x) and math.isfinite(y)):
        raise InvalidValue(where, "coordinates must be finite")
    return Point(x=x, y=y)


def _quad(entry: Dict[str, Any], where: str) -> Optional[Quad]:
    corners = {name: _point(entry.get(name), f"{where}.{name}") for name in _QUAD_CORNERS}
    # all four corners or nothing
    if any(p is None for p in corners.values()):
        return None
    return Quad(**corners)


__all__ = ["parse", "parse_file", "shadowed_transitions"]
