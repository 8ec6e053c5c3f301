"""
Shared fixtures
───────────────
• `llc_source` / `llc_notation` – the new-LLC registration notation on disk
• `questions`                   – the matching question catalog
• `simple_source`               – BEGIN → entity_name → END
"""
import textwrap
from pathlib import Path

import pytest

from notation_engine.parser import parse
from notation_engine.questions import load_question_catalog
from notation_engine.validator import Configuration

FIXTURES = Path(__file__).parent / "fixtures"


def dedent(text: str) -> str:
    return textwrap.dedent(text).lstrip()


@pytest.fixture
def llc_source() -> str:
    return (FIXTURES / "new_llc_registration.yaml").read_text(encoding="utf-8")


@pytest.fixture
def llc_notation(llc_source):
    return parse(llc_source)


@pytest.fixture
def questions():
    return load_question_catalog(FIXTURES / "questions.yaml")


@pytest.fixture
def configuration(questions):
    return Configuration(questions=questions)


@pytest.fixture
def simple_source() -> str:
    return dedent("""
        code: simple
        title: Simple
        flow:
          BEGIN:
            _: entity_name
          entity_name:
            _: END
    """)
