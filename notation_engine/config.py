"""
notation_engine.config
----------------------
Settings read from the environment (a local `.env` is honoured).

Environment
-----------
NOTATION_DIR                        directory of notation YAML files
NOTATION_RECURSIVE=true             descend into sub-directories
NOTATION_LOAD_WORKERS=4             parallel file reads during a load
NOTATION_ALLOW_IMPLICIT_END_STATES  false → validator flags dead ends
QUESTION_CATALOG                    optional YAML export of the question table
LOG_LEVEL=INFO
"""
from dotenv import load_dotenv
load_dotenv()

import os


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


NOTATION_DIR       = os.getenv("NOTATION_DIR", "notations")
NOTATION_RECURSIVE = _flag("NOTATION_RECURSIVE", True)
LOAD_WORKERS       = int(os.getenv("NOTATION_LOAD_WORKERS", "4"))
ALLOW_IMPLICIT_END_STATES = _flag("NOTATION_ALLOW_IMPLICIT_END_STATES", True)
QUESTION_CATALOG   = os.getenv("QUESTION_CATALOG") or None
LOG_LEVEL          = os.getenv("LOG_LEVEL", "INFO")
