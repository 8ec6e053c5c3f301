"""
notation_engine.questions
=========================
Question vocabulary shared by the validator and the descriptor factory.

• QuestionType        – closed list of input kinds a notation step may use
• QuestionDefinition  – one catalog row (code, type, prompt, help, choices)

The catalog itself lives outside the engine; `definition_from_record` and
`load_question_catalog` turn persistence-style rows or a YAML export into
QuestionDefinitions.
"""
from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)


# ────────────────────────── 1 · question types ─────────────────────────
class QuestionType(str, Enum):
    STRING = "string"                        # one line of text
    TEXT = "text"                            # multi-line text
    DATE = "date"
    DATETIME = "datetime"
    NUMBER = "number"
    YES_NO = "yes_no"
    RADIO = "radio"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    SECRET = "secret"
    PHONE = "phone"                          # may trigger OTP validation
    EMAIL = "email"                          # may trigger OTP validation
    SSN = "ssn"
    EIN = "ein"
    FILE = "file"
    PERSON = "person"                        # directory-backed person lookup
    ADDRESS = "address"
    ORG = "org"
    REGISTERED_AGENT = "registered_agent"
    SIGNATURE = "signature"                  # workflow trigger
    NOTARIZATION = "notarization"            # workflow trigger
    DOCUMENT = "document"                    # certified-mail receipt upload
    ISSUANCE = "issuance"                    # equity issuance selector
    MAILBOX = "mailbox"

    @property
    def requires_choices(self) -> bool:
        """True when the definition must carry a choice list."""
        return self in _CHOICE_TYPES

    @property
    def is_action(self) -> bool:
        """Trigger-style steps that kick off a downstream workflow."""
        return self in _ACTION_TYPES


_CHOICE_TYPES = frozenset({QuestionType.RADIO, QuestionType.SELECT, QuestionType.MULTI_SELECT})
_ACTION_TYPES = frozenset({QuestionType.SIGNATURE, QuestionType.NOTARIZATION, QuestionType.DOCUMENT})


# ────────────────────────── 2 · definitions ────────────────────────────
class Choice(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class QuestionDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    code:      str
    type:      QuestionType
    prompt:    str
    help_text: Optional[str] = None
    choices:   List[Choice] = Field(default_factory=list)

    @property
    def requires_choices(self) -> bool:
        return self.type.requires_choices

    @property
    def is_action(self) -> bool:
        return self.type.is_action


# ────────────────────────── 3 · catalog rows ───────────────────────────
def _choices(raw: Any) -> List[Choice]:
    if not raw:
        return []
    # persistence stores choices as {value: label}; order by value
    if isinstance(raw, Mapping):
        return [Choice(value=str(k), label=str(v)) for k, v in sorted(raw.items(), key=lambda kv: str(kv[0]))]
    out: List[Choice] = []
    for item in raw:
        if isinstance(item, Mapping):
            out.append(Choice(value=str(item["value"]), label=str(item.get("label", item["value"]))))
        else:
            out.append(Choice(value=str(item), label=str(item)))
    return out


def definition_from_record(row: Mapping[str, Any]) -> QuestionDefinition:
    """
    Convert one question row into a QuestionDefinition.

    Accepts either `question_type` (the column name) or `type`.  Raises
    ValueError when the type is not one of QuestionType.
    """
    raw_type = row.get("question_type", row.get("type"))
    try:
        qtype = QuestionType(raw_type)
    except ValueError as exc:
        raise ValueError(f"Question '{row.get('code')}' has unsupported type '{raw_type}'") from exc

    return QuestionDefinition(
        code=row["code"],
        type=qtype,
        prompt=row.get("prompt") or "",
        help_text=row.get("help_text") or None,
        choices=_choices(row.get("choices")),
    )


def load_question_catalog(path: Path | str) -> Dict[str, QuestionDefinition]:
    """
    Read a YAML export of the question table.

    The file is either a bare list of rows or a mapping with a `questions`
    list.  Returns {code: QuestionDefinition}.
    """
    path = Path(path)
    # BaseLoader keeps `yes`/`no` choice values as strings
    data = yaml.load(path.read_text(encoding="utf-8"), Loader=yaml.BaseLoader) or []
    rows = data.get("questions", []) if isinstance(data, Mapping) else data

    catalog: Dict[str, QuestionDefinition] = {}
    for row in rows:
        definition = definition_from_record(row)
        catalog[definition.code] = definition
    log.debug("Loaded %s question definitions from %s", len(catalog), path)
    return catalog


__all__ = [
    "QuestionType",
    "Choice",
    "QuestionDefinition",
    "definition_from_record",
    "load_question_catalog",
]
