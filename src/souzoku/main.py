"""
Command-line entry point.

    souzoku diagnose input.json           heirs, tax and diagnosis for a wizard state
    souzoku tree graph.json --focus ID    generations, validation and heirs of a graph
    souzoku save input.json --user U      store a profile in SQLite
    souzoku load PROFILE_ID --user U      print a stored profile

`input.json` holds {"familyData": ..., "assetData": ...} in the camelCase
shape; `graph.json` holds the output of `souzoku.graph.graph_to_dict`.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

from souzoku.assets import assets_from_dict
from souzoku.dashboard import build_dashboard, diagnose
from souzoku.database import (
    EstateProfile,
    ProfileNotFoundError,
    create_database,
    load_profile,
    save_profile,
)
from souzoku.generations import generation_buckets
from souzoku.graph import graph_from_dict
from souzoku.heirs import classify_family, classify_graph
from souzoku.models import FamilyData
from souzoku.plotting import write_chart
from souzoku.validation import validate_graph

DEFAULT_DB = Path("souzoku.db")
MAX_WARNINGS = 10


class InvalidInputError(ValueError):
    """Well-formed JSON whose content does not fit the expected shape."""


def _read_json(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _load_input(path: Path, parse: Callable[[Any], Any]) -> Any:
    data = _read_json(path)
    try:
        return parse(data)
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise InvalidInputError(f"{path}: {e!r}") from e


def _dump(data: Any, pretty: bool) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2 if pretty else None)


def cmd_diagnose(args: argparse.Namespace) -> int:
    family, assets = _load_input(
        args.input,
        lambda data: (
            FamilyData.from_dict(data.get("familyData")),
            assets_from_dict(data.get("assetData")),
        ),
    )
    calculation, result = diagnose(family, assets)
    print(
        _dump(
            {
                "classification": classify_family(family).to_dict(),
                "taxCalculation": calculation.to_dict(),
                "diagnosisResult": result.to_dict(),
            },
            args.pretty,
        )
    )
    return 0


def cmd_tree(args: argparse.Namespace) -> int:
    graph = _load_input(args.graph, graph_from_dict)
    if args.focus not in graph.persons:
        print(f"Unknown focus person: {args.focus}", file=sys.stderr)
        return 1
    print(f"Loaded {len(graph.persons)} persons")

    print("Validating graph...")
    violations = validate_graph(graph)
    if violations:
        print(f"  Found {len(violations)} validation warnings:")
        for v in violations[:MAX_WARNINGS]:
            print(f"    - {v.message}")
        if len(violations) > MAX_WARNINGS:
            print(f"    ... and {len(violations) - MAX_WARNINGS} more")
    else:
        print("  No validation issues found")

    print("Generations:")
    for generation, ids in generation_buckets(graph, args.focus).items():
        names = ", ".join(graph.persons[pid].name for pid in ids)
        print(f"  {generation:+d}: {names}")

    classification = classify_graph(graph, args.focus)
    print(f"Statutory heirs (counted for deduction: {classification.heir_count}):")
    for heir in classification.heirs:
        marker = "" if heir.included_in_tax_count else " (not counted)"
        print(f"  {heir.name}: {heir.numerator}/{heir.denominator}{marker}")

    if args.chart:
        write_chart(graph, args.focus, args.chart)
        print(f"Chart saved to {args.chart}")
    return 0


def cmd_save(args: argparse.Namespace) -> int:
    profile, has_asset_data = _load_input(
        args.input, lambda data: (EstateProfile.from_dict(data), bool(data.get("assetData")))
    )
    calculation, _ = diagnose(profile.family_data, profile.asset_data)
    profile = replace(
        profile,
        dashboard_data=build_dashboard(profile.family_data, profile.asset_data, has_asset_data),
        tax_calculation=calculation,
    )
    conn = create_database(args.db)
    try:
        result = save_profile(conn, args.user, profile)
    finally:
        conn.close()
    print(_dump({"id": result.id, "created": result.created}, args.pretty))
    return 0


def cmd_load(args: argparse.Namespace) -> int:
    conn = create_database(args.db)
    try:
        profile = load_profile(conn, args.user, args.profile_id)
    finally:
        conn.close()
    print(_dump(profile.to_dict(), args.pretty))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="souzoku",
        description="Statutory heirs and inheritance tax estimate (Japan)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("diagnose", help="classify heirs and estimate tax from wizard data")
    p.add_argument("input", type=Path)
    p.add_argument("--pretty", action="store_true")
    p.set_defaults(func=cmd_diagnose)

    p = sub.add_parser("tree", help="inspect a family graph")
    p.add_argument("graph", type=Path)
    p.add_argument("--focus", required=True, help="id of the deceased person")
    p.add_argument("--chart", type=Path, help="write a chart (.dot, .png, .svg or .pdf)")
    p.set_defaults(func=cmd_tree)

    p = sub.add_parser("save", help="store a profile")
    p.add_argument("input", type=Path)
    p.add_argument("--user", required=True)
    p.add_argument("--db", type=Path, default=DEFAULT_DB)
    p.add_argument("--pretty", action="store_true")
    p.set_defaults(func=cmd_save)

    p = sub.add_parser("load", help="print a stored profile")
    p.add_argument("profile_id")
    p.add_argument("--user", required=True)
    p.add_argument("--db", type=Path, default=DEFAULT_DB)
    p.add_argument("--pretty", action="store_true")
    p.set_defaults(func=cmd_load)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except FileNotFoundError as e:
        print(f"File not found: {e.filename}", file=sys.stderr)
    except json.JSONDecodeError as e:
        print(f"Invalid JSON: {e}", file=sys.stderr)
    except InvalidInputError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
    except ProfileNotFoundError as e:
        print(str(e), file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
