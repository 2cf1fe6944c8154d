#!/usr/bin/env python3
# main.py
"""
Command-Line Interface for the WasteWealth pickup request store.

Works on the same persisted store the dashboard uses, so requests added
here show up in the dashboard and vice versa.

Usage:
    python main.py list                           # Available (pending) requests
    python main.py list --urgency high -q plastic # Filtered
    python main.py history --status completed     # Requests by status
    python main.py add --name "Asha" --address "12 MG Road" --waste Plastic:10:kg --amount 80
    python main.py accept <request_id> --worker worker_9
    python main.py status <request_id> completed --notes "Collected"
    python main.py stats                          # Worker statistics
    python main.py activity                       # Recent activity feed
    python main.py remote                         # Available requests from the backend

Exit Codes:
    0: Success
    1: Request not found or operation refused
    2: Invalid input or illegal status transition
    3: Backend error
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

# Ensure the package is importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from wastewealth import config
from wastewealth.api import ApiClient, ApiError, AuthenticationError
from wastewealth.lifecycle import InvalidTransitionError
from wastewealth.models import PickupRequest, RequestStatus, WasteItem
from wastewealth.storage import JsonFileStorage
from wastewealth.store import RequestStore, search_requests
from wastewealth.utils import calculate_waste_value, format_currency, format_distance, format_weight

logger = logging.getLogger("wastewealth.cli")

EXIT_OK = 0
EXIT_REFUSED = 1
EXIT_INVALID = 2
EXIT_BACKEND = 3


def print_header(title: str) -> None:
    print("\n" + "=" * 72)
    print(f"  WASTEWEALTH - {title}")
    print("=" * 72 + "\n")


def print_requests_table(requests: List[PickupRequest]) -> None:
    """
    Print requests as a fixed-width table.

    Args:
        requests: Requests in display order
    """
    if not requests:
        print("  (no requests)")
        return

    header = f"| {'ID':<30} | {'Requester':<16} | {'Urgency':^7} | {'Status':^11} | {'Amount':>11} | {'Dist':>7} |"
    print(header)
    print("|" + "-" * (len(header) - 2) + "|")
    for req in requests:
        print(
            f"| {req.request_id:<30.30} | {req.user_name:<16.16} | {req.urgency.value:^7} "
            f"| {req.status.value:^11} | {format_currency(req.total_amount, config.CURRENCY_SYMBOL):>11} "
            f"| {format_distance(req.distance):>7} |"
        )
    print()


def parse_waste_item(value: str) -> WasteItem:
    """
    Parse a NAME:QUANTITY[:UNIT] argument.

    Raises:
        argparse.ArgumentTypeError: If the value is malformed
    """
    parts = value.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"Expected NAME:QUANTITY[:UNIT], got '{value}'")
    try:
        quantity = float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid quantity in '{value}'")
    unit = parts[2] if len(parts) == 3 else "kg"
    if unit not in ("kg", "liters", "items"):
        raise argparse.ArgumentTypeError(f"Unit must be kg, liters or items, got '{unit}'")
    return WasteItem(name=parts[0], quantity=quantity, unit=unit)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="WasteWealth pickup request store CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py list --urgency high
  python main.py add --name "Asha" --address "12 MG Road" --waste Plastic:10:kg --amount 80
  python main.py status req_1760866200000_k3j9x0a1b in-progress
        """
    )
    parser.add_argument(
        "--storage-dir",
        default=config.STORAGE_DIR,
        help=f"Directory holding the persisted store (default: {config.STORAGE_DIR})"
    )
    parser.add_argument(
        "--legacy-transitions",
        action="store_true",
        help="Apply every status update unconditionally instead of enforcing the lifecycle"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List available (pending) requests")
    p_list.add_argument("--urgency", "-u", default="all", choices=["all", "low", "medium", "high"])
    p_list.add_argument("--query", "-q", default="", help="Search requester, address or material")

    p_history = sub.add_parser("history", help="List requests by status, most recently updated first")
    p_history.add_argument(
        "--status", "-s", default="all",
        choices=["all"] + [s.value for s in RequestStatus],
    )

    p_add = sub.add_parser("add", help="Create a new pickup request")
    p_add.add_argument("--user-id", default="user_cli")
    p_add.add_argument("--name", required=True, help="Requester name")
    p_add.add_argument("--address", required=True)
    p_add.add_argument(
        "--waste", "-w", type=parse_waste_item, action="append", required=True,
        help="Waste line as NAME:QUANTITY[:UNIT]; repeat for several lines"
    )
    amount = p_add.add_mutually_exclusive_group(required=True)
    amount.add_argument("--amount", type=float, help="Total payout")
    amount.add_argument("--price-per-kg", type=float, help="Derive the payout from the waste lines")
    p_add.add_argument("--urgency", default="medium", choices=["low", "medium", "high"])
    p_add.add_argument("--pickup-type", default="instant", choices=["instant", "scheduled", "daily"])
    p_add.add_argument("--distance", type=float, default=0.0, help="Distance in km")
    p_add.add_argument("--weight", type=float, help="Estimated total weight in kg")
    p_add.add_argument("--notes")

    p_accept = sub.add_parser("accept", help="Accept a pending request")
    p_accept.add_argument("request_id")
    p_accept.add_argument("--worker", default=config.DEFAULT_WORKER_ID)

    p_status = sub.add_parser("status", help="Move a request to a new status")
    p_status.add_argument("request_id")
    p_status.add_argument("status", choices=[s.value for s in RequestStatus])
    p_status.add_argument("--notes")

    p_remove = sub.add_parser("remove", help="Delete a request")
    p_remove.add_argument("request_id")

    sub.add_parser("clear", help="Delete every request")
    sub.add_parser("stats", help="Show worker statistics")
    sub.add_parser("activity", help="Show the recent activity feed")

    p_login = sub.add_parser("login", help="Log in to the backend and store the token")
    p_login.add_argument("--email", required=True)
    p_login.add_argument("--password", required=True)
    p_login.add_argument("--api-url", default=config.API_BASE_URL)

    p_remote = sub.add_parser("remote", help="List available requests from the backend")
    p_remote.add_argument("--api-url", default=config.API_BASE_URL)

    return parser


def cmd_list(store: RequestStore, args: argparse.Namespace) -> int:
    print_header("Available Requests")
    print_requests_table(search_requests(store.get_available_requests(), args.urgency, args.query))
    return EXIT_OK


def cmd_history(store: RequestStore, args: argparse.Namespace) -> int:
    print_header(f"Requests ({args.status})")
    print_requests_table(store.get_requests_by_status(args.status))
    return EXIT_OK


def cmd_add(store: RequestStore, args: argparse.Namespace) -> int:
    if args.price_per_kg is not None:
        total = sum(
            calculate_waste_value(item.name, args.price_per_kg, item.quantity, item.unit)
            for item in args.waste
        )
    else:
        total = args.amount

    request = store.add_request(
        user_id=args.user_id,
        user_name=args.name,
        waste_types=args.waste,
        total_amount=round(total, 2),
        address=args.address,
        distance=args.distance,
        urgency=args.urgency,
        pickup_type=args.pickup_type,
        estimated_weight=args.weight,
        notes=args.notes,
    )
    print(f"Created {request.request_id}")
    for item in request.waste_types:
        print(f"  - {item.name}: {format_weight(item.quantity, item.unit)}")
    print(f"  Total: {format_currency(request.total_amount, config.CURRENCY_SYMBOL)}")
    return EXIT_OK


def cmd_accept(store: RequestStore, args: argparse.Namespace) -> int:
    if not store.accept_request(args.request_id, args.worker):
        print(f"ERROR: Request '{args.request_id}' not found or no longer pending")
        return EXIT_REFUSED
    print(f"Accepted {args.request_id} as {args.worker}")
    return EXIT_OK


def cmd_status(store: RequestStore, args: argparse.Namespace) -> int:
    try:
        updated = store.update_request_status(args.request_id, args.status, args.notes)
    except InvalidTransitionError as e:
        print(f"ERROR: {e}")
        return EXIT_INVALID
    if not updated:
        print(f"ERROR: Request '{args.request_id}' not found")
        return EXIT_REFUSED
    print(f"Request {args.request_id} is now {args.status}")
    return EXIT_OK


def cmd_remove(store: RequestStore, args: argparse.Namespace) -> int:
    if not store.remove_request(args.request_id):
        print(f"ERROR: Request '{args.request_id}' not found")
        return EXIT_REFUSED
    print(f"Removed {args.request_id}")
    return EXIT_OK


def cmd_clear(store: RequestStore, args: argparse.Namespace) -> int:
    count = len(store)
    store.clear_all_requests()
    print(f"Removed {count} requests")
    return EXIT_OK


def cmd_stats(store: RequestStore, args: argparse.Namespace) -> int:
    stats = store.get_worker_stats()
    print_header("Worker Statistics")
    rows = [
        ("Today's Requests", stats.today_requests),
        ("Completed Today", stats.completed_today),
        ("Today's Earnings", format_currency(stats.earnings, config.CURRENCY_SYMBOL)),
        ("Monthly Earnings", format_currency(stats.monthly_earnings, config.CURRENCY_SYMBOL)),
        ("Active Requests", stats.active_requests),
        ("Completed Pickups", stats.completed_pickups),
        ("Waste Processed", format_weight(stats.waste_processed, "kg")),
        ("Rating", f"{stats.rating:.1f}"),
        ("Efficiency", f"{stats.efficiency:.0f}%"),
    ]
    for label, value in rows:
        print(f"  {label:<20} {value}")
    print()
    return EXIT_OK


def cmd_activity(store: RequestStore, args: argparse.Namespace) -> int:
    print_header("Recent Activity")
    activities = store.get_recent_activity()
    if not activities:
        print("  (no recent activity)")
    for entry in activities:
        print(f"  [{entry.time:>14}] {entry.action}")
    print()
    return EXIT_OK


def cmd_login(credentials: JsonFileStorage, args: argparse.Namespace) -> int:
    client = ApiClient(credentials, base_url=args.api_url)
    try:
        response = client.auth.login(args.email, args.password) or {}
    except ApiError as e:
        print(f"ERROR: Login failed: {e}")
        return EXIT_BACKEND
    token = response.get("token") or response.get("access_token")
    if not token:
        print("ERROR: Backend did not return a token")
        return EXIT_BACKEND
    credentials.set_item(config.AUTH_TOKEN_KEY, token)
    print("Logged in")
    return EXIT_OK


def cmd_remote(credentials: JsonFileStorage, args: argparse.Namespace) -> int:
    client = ApiClient(credentials, base_url=args.api_url)
    try:
        response = client.worker.get_available_requests() or {}
    except AuthenticationError:
        print("ERROR: Session expired, log in again")
        return EXIT_BACKEND
    except ApiError as e:
        print(f"ERROR: {e}")
        return EXIT_BACKEND

    raw = (response.get("data") or {}).get("requests") or []
    requests = []
    for item in raw:
        try:
            requests.append(PickupRequest.from_dict(item))
        except (ValueError, TypeError) as e:
            logger.warning(f"Skipping malformed request from backend: {e}")
    print_header("Available Requests (backend)")
    print_requests_table(requests)
    return EXIT_OK


STORE_COMMANDS = {
    "list": cmd_list,
    "history": cmd_history,
    "add": cmd_add,
    "accept": cmd_accept,
    "status": cmd_status,
    "remove": cmd_remove,
    "clear": cmd_clear,
    "stats": cmd_stats,
    "activity": cmd_activity,
}

BACKEND_COMMANDS = {
    "login": cmd_login,
    "remote": cmd_remote,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command in BACKEND_COMMANDS:
        credentials = JsonFileStorage(os.path.join(args.storage_dir, "credentials"))
        return BACKEND_COMMANDS[args.command](credentials, args)

    store = RequestStore(
        JsonFileStorage(args.storage_dir),
        strict_transitions=False if args.legacy_transitions else None,
    )
    try:
        return STORE_COMMANDS[args.command](store, args)
    except ValueError as e:
        print(f"ERROR: {e}")
        return EXIT_INVALID


if __name__ == "__main__":
    sys.exit(main())
