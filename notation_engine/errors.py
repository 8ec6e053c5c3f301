"""
notation_engine.errors
======================
Every failure the engine raises.  Three families, never mixed:

• ParseError        – the source text is structurally broken
• ValidationFailed  – a built notation disagrees with the question catalog
• FlowRuntimeError  – a FlowInstance was driven the wrong way

All of them derive from NotationError so callers can catch the lot.
"""
from __future__ import annotations

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from notation_engine.models import ValidationProblem


class NotationError(Exception):
    """Root of every error surfaced by the engine."""


# ─────────────────────────── 1 · parse errors ───────────────────────────
class ParseError(NotationError):
    pass


class InvalidSource(ParseError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Invalid notation source: {message}")


class MissingField(ParseError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Required field '{field}' is missing")


class InvalidValue(ParseError):
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Field '{field}' is invalid: {reason}")


class DuplicateState(ParseError):
    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Duplicate state definition detected: {state}")


class UnknownStateReference(ParseError):
    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"State references unknown destination '{reference}'")


# ─────────────────────────── 2 · validation ─────────────────────────────
class ValidationFailed(NotationError):
    """Raised once, carrying every problem the validator found."""

    def __init__(self, problems: List["ValidationProblem"]):
        self.problems = list(problems)
        joined = "\n".join(f"• {p.message}" for p in self.problems)
        super().__init__(f"Notation validation failed:\n{joined}")

    @property
    def codes(self) -> List[str]:
        return [p.code for p in self.problems]


# ─────────────────────────── 3 · runtime errors ─────────────────────────
class FlowRuntimeError(NotationError):
    pass


class AlreadyCompleted(FlowRuntimeError):
    def __init__(self):
        super().__init__("Flow has already been completed")


class NotStarted(FlowRuntimeError):
    def __init__(self):
        super().__init__("Flow has not been started")


class InvalidState(FlowRuntimeError):
    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Invalid state referenced: {state}")


class NoMatchingTransition(FlowRuntimeError):
    def __init__(self, state: str):
        self.state = state
        super().__init__(f"No matching transition found for state {state}")


__all__ = [
    "NotationError",
    "ParseError",
    "InvalidSource",
    "MissingField",
    "InvalidValue",
    "DuplicateState",
    "UnknownStateReference",
    "ValidationFailed",
    "FlowRuntimeError",
    "AlreadyCompleted",
    "NotStarted",
    "InvalidState",
    "NoMatchingTransition",
]
