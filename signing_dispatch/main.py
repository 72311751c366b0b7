"""
Command-line entry point.

    python -m signing_dispatch route --order order.json --vendors roster.json
    python -m signing_dispatch states --phase 1

``route`` prints the RoutingDecision as JSON. Unmatched is a normal outcome
and exits 0; malformed input exits 2, configuration problems exit 1.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .config import RouterConfig, get_settings, normalize_log_level
from .exceptions import ConfigurationError, ValidationError, get_error_response
from .routing.signing_router import SigningRouter
from .routing.state_eligibility import EligibilityMatrix

logger = logging.getLogger("signing_dispatch")

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_INVALID_INPUT = 2


def _read_json(source: str) -> Any:
    if source == "-":
        try:
            return json.load(sys.stdin)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON on stdin: {e}", field=source) from e
    path = Path(source)
    if not path.exists():
        raise ValidationError(f"Input file not found: {path}", field=source)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {path}: {e}", field=source) from e


def _load_matrix(path: Optional[str], default_path: Optional[str]) -> EligibilityMatrix:
    source = path or default_path
    if source:
        return EligibilityMatrix.from_yaml(source)
    return EligibilityMatrix.default()


def _cmd_route(args: argparse.Namespace) -> int:
    settings = get_settings()
    matrix = _load_matrix(args.matrix, settings.state_matrix_path)
    router = SigningRouter(matrix, RouterConfig.from_settings(settings))

    order = _read_json(args.order)
    vendors: List[Any] = _read_json(args.vendors) if args.vendors else []
    if isinstance(vendors, dict):
        vendors = vendors.get("vendors", [])
    if not isinstance(vendors, list):
        raise ValidationError("Vendor roster must be a JSON list", field="vendors")

    decision = router.route(order, vendors)
    print(json.dumps(decision.to_dict(), indent=2))
    return EXIT_OK


def _cmd_states(args: argparse.Namespace) -> int:
    settings = get_settings()
    matrix = _load_matrix(args.matrix, settings.state_matrix_path)
    configs = matrix.states_by_phase(args.phase) if args.phase else matrix.active_states()
    rows = [
        {
            "state": c.state,
            "name": c.display_name,
            "ron_allowed": c.ron_allowed,
            "in_person_allowed": c.in_person_allowed,
            "launch_phase": c.launch_phase,
        }
        for c in sorted(configs, key=lambda c: ((c.launch_phase or 0), c.state))
    ]
    print(json.dumps(rows, indent=2))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="signing-dispatch",
        description="Route notary signing orders to eligible vendors",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)",
    )
    parser.add_argument(
        "--matrix",
        default=None,
        help="Path to a state eligibility YAML (defaults to STATE_MATRIX_PATH or the packaged file)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    route = subparsers.add_parser("route", help="Route one order and print the decision as JSON")
    route.add_argument("--order", required=True, help="Order JSON file, or '-' for stdin")
    route.add_argument("--vendors", default=None, help="Vendor roster JSON file (list of vendors)")
    route.set_defaults(func=_cmd_route)

    states = subparsers.add_parser("states", help="List active states")
    states.add_argument("--phase", type=int, default=0, help="Only states launched in this phase")
    states.set_defaults(func=_cmd_states)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
        log_level = normalize_log_level(args.log_level) if args.log_level else settings.log_level
    except ValueError as e:
        # pydantic's ValidationError subclasses ValueError
        print(json.dumps({"error": "ConfigurationError", "message": str(e), "details": {}}), file=sys.stderr)
        return EXIT_CONFIG_ERROR

    logging.basicConfig(level=log_level, stream=sys.stderr)

    try:
        return args.func(args)
    except ValidationError as e:
        logger.error(f"Invalid input: {e.message}")
        print(json.dumps(get_error_response(e)), file=sys.stderr)
        return EXIT_INVALID_INPUT
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        print(json.dumps(get_error_response(e)), file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
