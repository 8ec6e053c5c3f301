#!/usr/bin/env python3
"""
Notation tooling.

    python -m notation_engine.cli check notations/ --questions questions.yaml --strict
    python -m notation_engine.cli list  notations/
    python -m notation_engine.cli walk  notations/new_llc.yaml original "Acme LLC"

`check` exits 1 when any notation fails to parse or validate.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from notation_engine import config
from notation_engine.catalog import NotationCatalog
from notation_engine.errors import NotationError, ValidationFailed
from notation_engine.models import FlowInstance, StringAnswer
from notation_engine.parser import parse_file, shadowed_transitions
from notation_engine.questions import load_question_catalog
from notation_engine.runtime import active_machine
from notation_engine.validator import Configuration, validate

log = logging.getLogger("notation_engine.cli")


# ── commands ────────────────────────────────────────────────────────────
def cmd_check(args: argparse.Namespace) -> int:
    catalog = NotationCatalog()
    try:
        notations = catalog.load_directory(args.directory, recursive=not args.no_recursive)
    except NotationError as exc:
        print(f"✗ {exc}")
        for note in getattr(exc, "__notes__", []):
            print(f"  {note}")
        return 1

    questions_path = args.questions or config.QUESTION_CATALOG
    configuration = None
    if questions_path:
        configuration = Configuration(
            questions=load_question_catalog(questions_path),
            allow_implicit_end_states=not args.strict and config.ALLOW_IMPLICIT_END_STATES,
        )

    failed = 0
    for notation in notations:
        machines = [("flow", notation.flow)]
        if notation.alignment is not None:
            machines.append(("alignment", notation.alignment))
        for context, machine in machines:
            for node in machine.nodes.values():
                if shadowed_transitions(node):
                    print(f"! {notation.code}: {context}.{node.id} has transitions after '_'")

        if configuration is None:
            print(f"✔ {notation.code}")
            continue
        try:
            validate(notation, configuration)
            print(f"✔ {notation.code}")
        except ValidationFailed as exc:
            failed += 1
            print(f"✗ {notation.code}")
            for problem in exc.problems:
                print(f"  [{problem.code}] {problem.message}")

    print(f"{len(notations)} notation(s) checked, {failed} failed")
    return 1 if failed else 0


def cmd_list(args: argparse.Namespace) -> int:
    catalog = NotationCatalog()
    catalog.load_directory(args.directory, recursive=not args.no_recursive)
    for notation in catalog.all_notations():
        print(f"{notation.code}\t{notation.metadata.title}")
    return 0


def cmd_walk(args: argparse.Namespace) -> int:
    """Drive the client flow with plain string answers."""
    instance = FlowInstance(notation=parse_file(args.file))
    state = instance.start()
    answers = list(args.answers)
    while state is not None:
        node = active_machine(instance).nodes[state]
        print(f"→ {state} ({node.question.code})")
        if not answers:
            print("… waiting for an answer")
            return 0
        state = instance.submit_answer(StringAnswer(value=answers.pop(0)))
    print("✔ END")
    return 0


# ── entry point ─────────────────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="notation", description=__doc__.splitlines()[1])
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="parse and validate every notation in a directory")
    check.add_argument("directory", nargs="?", default=config.NOTATION_DIR)
    check.add_argument("--questions", help="YAML export of the question catalog")
    check.add_argument("--strict", action="store_true", help="flag states that cannot reach END")
    check.add_argument("--no-recursive", action="store_true")
    check.set_defaults(func=cmd_check)

    lst = sub.add_parser("list", help="print code and title of every notation")
    lst.add_argument("directory", nargs="?", default=config.NOTATION_DIR)
    lst.add_argument("--no-recursive", action="store_true")
    lst.set_defaults(func=cmd_list)

    walk = sub.add_parser("walk", help="run one notation's client flow with string answers")
    walk.add_argument("file")
    walk.add_argument("answers", nargs="*")
    walk.set_defaults(func=cmd_walk)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL,
                        format="%(asctime)s %(levelname)-8s %(message)s")
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except NotationError as exc:
        log.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
