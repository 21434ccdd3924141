from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from pydantic import ValidationError

from contactlink.app import identify_query
from contactlink.config import ConfigurationError, configure_logging
from contactlink.domain.resolution import ContactLinkError
from contactlink.ui.schema import IdentifyRequest, IdentifyResponse

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_SERVER_ERROR = 1
EXIT_CLIENT_ERROR = 2


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile contact identities")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log resolution steps at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    identify = subparsers.add_parser(
        "identify",
        help="Resolve an email and/or phone number into its contact group",
    )
    identify.add_argument("--email", type=str, help="Email address to reconcile")
    identify.add_argument("--phone", type=str, help="Phone number to reconcile")
    identify.add_argument(
        "--json",
        type=str,
        dest="payload",
        help='Request payload such as \'{"email": "a@x.com", "phoneNumber": "123"}\' '
        "('-' reads standard input)",
    )
    identify.add_argument(
        "--indent",
        type=int,
        default=None,
        help="Indent the JSON response by this many spaces",
    )

    return parser.parse_args(list(argv))


def _build_request(args: argparse.Namespace) -> IdentifyRequest:
    if args.payload is not None:
        if args.email is not None or args.phone is not None:
            raise ValueError("--json cannot be combined with --email/--phone")
        raw = sys.stdin.read() if args.payload == "-" else args.payload
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON payload: {exc.msg}") from exc
        if not isinstance(document, dict):
            raise ValueError("JSON payload must be an object")
        return IdentifyRequest.model_validate(document)
    return IdentifyRequest(email=args.email, phone_number=args.phone)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        query = _build_request(parsed_args).to_query()
    except (ValueError, ValidationError, ContactLinkError):
        log.exception("Invalid request")
        sys.exit(EXIT_CLIENT_ERROR)

    try:
        view = identify_query(query)
    except ContactLinkError as exc:
        log.exception("Identity resolution failed")
        sys.exit(EXIT_CLIENT_ERROR if exc.client_error else EXIT_SERVER_ERROR)
    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(EXIT_SERVER_ERROR)

    sys.stdout.write(IdentifyResponse.from_view(view).to_json(indent=parsed_args.indent) + "\n")


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
