"""
notation_engine.sources
-----------------------
Registry of notation-source readers plus the YAML decoder the parser
builds on.

Supported out-of-the-box:
    • .yaml / .yml – UTF-8 text

Add new readers by decorating with `@register(".ext")`; the catalog only
picks up files whose suffix is registered here.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Callable, Dict

import yaml

from notation_engine.errors import InvalidSource

REGISTRY: Dict[str, Callable[[Path], str]] = {}


# ----------------------------------------------------------------------
# Registration decorator
# ----------------------------------------------------------------------
def register(ext: str):
    """Register a new reader for *ext* (dot-prefixed)."""
    def _wrap(fn: Callable[[Path], str]):
        REGISTRY[ext.lower()] = fn
        return fn
    return _wrap


@register(".yaml")
@register(".yml")
def _read_yaml(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def is_source(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in REGISTRY


def read_source(path: Path) -> str:
    """Return the raw text of *path* using the registered reader."""
    ext = path.suffix.lower()
    if ext not in REGISTRY:
        raise ValueError(f"Unsupported notation file type: {ext}")
    try:
        return REGISTRY[ext](path)
    except UnicodeDecodeError as exc:
        raise InvalidSource(f"{path.name} is not valid UTF-8 ({exc.reason} at byte {exc.start})") from exc


# ----------------------------------------------------------------------
# YAML decoding
# ----------------------------------------------------------------------
class Pairs(list):
    """A YAML mapping as ordered (key, value) pairs, duplicates kept."""


_NULL = re.compile(r"~|null|Null|NULL|")


class _NotationLoader(yaml.BaseLoader):
    """
    BaseLoader never resolves implicit scalars, so answer keys such as
    `yes`, `no`, `on` or `01` stay verbatim strings.  The one exception is
    a plain null (`~`, `null`, empty), which decodes to None.  Mappings are
    kept as Pairs so declaration order and duplicate keys survive decoding.
    """

    def construct_scalar(self, node):
        if node.style is None and _NULL.fullmatch(node.value):
            return None
        return super().construct_scalar(node)

    def construct_mapping(self, node, deep=False):
        if not isinstance(node, yaml.MappingNode):
            raise yaml.constructor.ConstructorError(
                None, None, f"expected a mapping node, but found {node.id}", node.start_mark
            )
        return Pairs(
            (self.construct_object(key_node, deep=deep), self.construct_object(value_node, deep=deep))
            for key_node, value_node in node.value
        )


def decode(text: str) -> Any:
    """Decode *text* into strings, lists and Pairs.  Raises yaml.YAMLError."""
    return yaml.load(text, Loader=_NotationLoader)


__all__ = ["REGISTRY", "register", "is_source", "read_source", "Pairs", "decode"]
