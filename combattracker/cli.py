"""Command-line entry point: serve the API, roll dice, import and export encounters."""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path

from combattracker.backend.codec import InvalidEncounterError, export_encounter
from combattracker.backend.config import load_settings
from combattracker.backend.dice import DiceExpressionError, roll_dice_expression
from combattracker.backend.logging_config import setup_logging
from combattracker.backend.session import EncounterSession
from combattracker.backend.store import create_stores

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="combattracker", description="Combat tracker")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    roll = commands.add_parser("roll", help="roll a dice expression such as 2d6+3")
    roll.add_argument("expression")
    roll.add_argument("--seed", type=int, default=None)
    roll.add_argument("--json", action="store_true", help="print every die, not just the total")

    export = commands.add_parser("export", help="write the saved encounter as JSON")
    export.add_argument("--output", type=Path, default=None)

    import_ = commands.add_parser("import", help="replace the saved encounter with a JSON file")
    import_.add_argument("path", type=Path)

    return parser.parse_args(argv)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "combattracker.backend.api:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )
    return 0


def _roll(args: argparse.Namespace) -> int:
    rng = random.Random(args.seed).random
    try:
        result = roll_dice_expression(args.expression, rng)
    except DiceExpressionError as exc:
        print(f"Invalid expression: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(result.to_dict(), indent=2) if args.json else result.total)
    return 0


def _export(args: argparse.Namespace) -> int:
    encounter_store, _ = create_stores(load_settings())
    document = export_encounter(EncounterSession(store=encounter_store).encounter)
    if args.output is None:
        print(document)
    else:
        args.output.write_text(document, encoding="utf-8")
        logger.info("Exported encounter to %s", args.output)
    return 0


def _import(args: argparse.Namespace) -> int:
    encounter_store, _ = create_stores(load_settings())
    session = EncounterSession(store=encounter_store)
    try:
        raw = args.path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Could not read {args.path}: {exc}", file=sys.stderr)
        return 1
    try:
        encounter = session.import_document(raw)
    except InvalidEncounterError as exc:
        print(f"Invalid encounter: {exc}", file=sys.stderr)
        return 1
    print(f"Imported '{encounter['name']}' with {len(encounter['combatants'])} combatants")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(load_settings().log_level)
    commands = {"serve": _serve, "roll": _roll, "export": _export, "import": _import}
    return commands[args.command](args)


if __name__ == "__main__":
    raise SystemExit(main())
