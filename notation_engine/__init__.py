# notation_engine/__init__.py
"""
Package marker + explicit export of the engine's entry points so callers
can `from notation_engine import parse, validate, NotationCatalog`.
"""
from notation_engine.catalog import NotationCatalog  # noqa: F401
from notation_engine.components import make_descriptor  # noqa: F401
from notation_engine.models import FlowInstance, FlowKind, Notation  # noqa: F401
from notation_engine.parser import parse, parse_file  # noqa: F401
from notation_engine.questions import QuestionDefinition, QuestionType  # noqa: F401
from notation_engine.validator import Configuration, validate  # noqa: F401
