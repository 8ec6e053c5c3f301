"""
Notation catalog.

• Notations are registered in memory (`add_notation`) or loaded from a
  directory of source files (`load_directory`).
• Every read and write goes through one lock, so a lookup sees either the
  pre-load or the fully committed post-load state – never half of a load.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from notation_engine import config
from notation_engine.errors import ParseError
from notation_engine.models import Notation
from notation_engine.parser import parse
from notation_engine.sources import is_source, read_source

log = logging.getLogger(__name__)


def _source_files(root: Path, recursive: bool) -> List[Path]:
    candidates: Iterator[Path] = root.rglob("*") if recursive else root.iterdir()
    return sorted(p for p in candidates if is_source(p))


def _load_one(path: Path) -> Tuple[Path, str, Notation]:
    try:
        text = read_source(path)
        notation = parse(text)
    except ParseError as exc:
        exc.add_note(f"while parsing {path}")
        raise
    log.debug("Parsed %s → %s", path, notation.code)
    return path, text, notation


class NotationCatalog:
    """Thread-safe code → Notation store."""

    def __init__(self, max_workers: Optional[int] = None):
        self._lock = threading.RLock()
        self._notations: Dict[str, Notation] = {}
        self._raw: Dict[str, str] = {}
        self._max_workers = max_workers or config.LOAD_WORKERS

    # ── loading ─────────────────────────────────────────────────────────
    def load_directory(self, path: Path | str, recursive: bool = True) -> List[Notation]:
        """
        Parse every registered source file under *path* and index it by code.

        Files are read and parsed concurrently, then committed in a single
        locked step.  Any parse error aborts the whole call before commit.
        """
        root = Path(path)
        if not root.is_dir():
            log.warning("Notation directory %s does not exist", root)
            return []

        files = _source_files(root, recursive)
        if not files:
            return []

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            results = list(pool.map(_load_one, files))

        with self._lock:
            for _, text, notation in results:
                self._notations[notation.code] = notation
                self._raw[notation.code] = text

        log.info("Loaded %s notation(s) from %s", len(results), root)
        return [notation for _, _, notation in results]

    def add_notation(self, notation: Notation, raw_source: Optional[str] = None) -> None:
        with self._lock:
            self._notations[notation.code] = notation
            if raw_source is not None:
                self._raw[notation.code] = raw_source
            else:
                self._raw.pop(notation.code, None)

    # ── lookups ─────────────────────────────────────────────────────────
    def notation(self, code: str) -> Optional[Notation]:
        with self._lock:
            return self._notations.get(code)

    def all_notations(self) -> List[Notation]:
        with self._lock:
            return [self._notations[c] for c in sorted(self._notations)]

    def raw_source(self, code: str) -> Optional[str]:
        with self._lock:
            return self._raw.get(code)

    def codes(self) -> List[str]:
        with self._lock:
            return sorted(self._notations)

    def __contains__(self, code: object) -> bool:
        with self._lock:
            return code in self._notations

    def __len__(self) -> int:
        with self._lock:
            return len(self._notations)


def default_catalog() -> NotationCatalog:
    """Catalog pre-loaded from NOTATION_DIR."""
    catalog = NotationCatalog()
    catalog.load_directory(config.NOTATION_DIR, recursive=config.NOTATION_RECURSIVE)
    return catalog


__all__ = ["NotationCatalog", "default_catalog"]
