from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from rosterdash.app import (
    apply_override,
    authenticate,
    build_context,
    clear_overrides,
    group_by_circle,
    list_entities,
)
from rosterdash.config import ConfigurationError, RosterMode, configure_logging, get_roster_config
from rosterdash.domain.errors import ReconciliationUnavailableError
from rosterdash.domain.model.enums import House
from rosterdash.domain.reconciliation.normalize import house_display_name
from rosterdash.domain.roster import ALL_HOUSES, SortKey

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from rosterdash.domain.model.roster import CanonicalEntity
    from rosterdash.domain.roster import AuthResult, Circle

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile and inspect the accelerator roster")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in RosterMode],
        help="Source mode (defaults to ROSTER_MODE, then demo)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List reconciled entities")
    list_parser.add_argument(
        "--house",
        choices=[ALL_HOUSES, *(house.value for house in House)],
        help="Only show entities from this house",
    )
    list_parser.add_argument(
        "--sort",
        choices=[key.value for key in SortKey],
        help="Sort by progress (descending) or organization name",
    )

    subparsers.add_parser("circles", help="Show entities grouped by circle")

    login = subparsers.add_parser("login", help="Check a login code")
    login.add_argument("code", type=str, help="Login code to verify")

    override = subparsers.add_parser("override", help="Record a local edit for an entity")
    override.add_argument("identity", type=str, help="Identity key of the entity")
    override.add_argument(
        "--set",
        dest="assignments",
        action="append",
        required=True,
        metavar="KEY=VALUE",
        help="Field to set; VALUE is parsed as JSON when possible (repeatable)",
    )

    clear = subparsers.add_parser("clear-overrides", help="Drop local edits")
    clear.add_argument("identity", nargs="?", help="Only clear this identity")

    return parser.parse_args(list(argv))


def _parse_assignment(raw: str) -> tuple[str, object]:
    key, sep, value = raw.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Expected KEY=VALUE, got {raw!r}")
    try:
        return key, json.loads(value)
    except json.JSONDecodeError:
        return key, value


def _entity_payload(entity: CanonicalEntity) -> dict[str, object]:
    payload = asdict(entity)
    payload["house_name"] = house_display_name(entity.house)
    payload["check_ins"] = list(entity.check_ins)
    return payload


def _circle_payload(circle: Circle) -> dict[str, object]:
    return asdict(circle)


def _auth_payload(result: AuthResult) -> dict[str, object]:
    return {
        "matched": result.matched,
        "reason": result.reason,
        "identity": result.entity.identity if result.entity else None,
    }


def _emit(payload: object) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, default=str))
    sys.stdout.write("\n")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        assignments = (
            dict(_parse_assignment(raw) for raw in parsed_args.assignments)
            if parsed_args.command == "override"
            else {}
        )
        mode = RosterMode(parsed_args.mode) if parsed_args.mode else None
        context = build_context(get_roster_config(mode=mode))
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "list":
            entities = list_entities(context, house=parsed_args.house, sort=parsed_args.sort)
            _emit([_entity_payload(entity) for entity in entities])
        elif parsed_args.command == "circles":
            _emit([_circle_payload(circle) for circle in group_by_circle(context)])
        elif parsed_args.command == "login":
            _emit(_auth_payload(authenticate(context, parsed_args.code)))
        elif parsed_args.command == "override":
            entity = apply_override(context, parsed_args.identity, assignments)
            _emit(_entity_payload(entity))
        elif parsed_args.command == "clear-overrides":
            clear_overrides(context, parsed_args.identity)
            _emit({"cleared": parsed_args.identity or "all"})
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ReconciliationUnavailableError:
        log.exception("No roster source available")
        sys.exit(1)
    except ValueError:
        log.exception("Invalid request")
        sys.exit(2)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
