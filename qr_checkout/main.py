"""Entry point for the qr-checkout Textual app."""

from __future__ import annotations

import argparse
import logging

from qr_checkout.checkout_app import CheckoutApp
from qr_checkout.config import API_BASE_URL, DB_PATH, DEBUG_LOG_PATH, MAX_POLL_ATTEMPTS, POLL_INTERVAL_SECONDS
from qr_checkout.gateway import OrderGateway
from qr_checkout.logs import configure_logging
from qr_checkout.persistence import CartStore

logger = logging.getLogger(__name__)


def parse_cart_entry(value: str) -> tuple[int, int]:
    """Parse MENU_ID or MENU_ID:QTY."""
    menu_item_id, _, quantity = value.partition(":")
    try:
        parsed_id = int(menu_item_id)
        parsed_quantity = int(quantity) if quantity else 1
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected MENU_ID[:QTY], got {value!r}")
    if parsed_quantity < 1:
        raise argparse.ArgumentTypeError("quantity must be at least 1")
    return (parsed_id, parsed_quantity)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Restaurant delivery checkout with QR payment")
    parser.add_argument("--api-url", default=API_BASE_URL, help="Backend base URL")
    parser.add_argument("--db", default=DB_PATH, help="SQLite file for the cart and order history")
    parser.add_argument("--log", default=DEBUG_LOG_PATH, help="Debug log file")
    parser.add_argument(
        "--add",
        action="append",
        type=parse_cart_entry,
        default=[],
        metavar="MENU_ID[:QTY]",
        help="Add a menu item to the cart before starting (repeatable)",
    )
    parser.add_argument("--clear-cart", action="store_true", help="Empty the cart before starting")
    parser.add_argument("--poll-interval", type=float, default=POLL_INTERVAL_SECONDS, help="Seconds between status checks")
    parser.add_argument("--max-attempts", type=int, default=MAX_POLL_ATTEMPTS, help="Status checks before giving up")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Run the Textual application."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log)

    cart = CartStore(args.db)
    if args.clear_cart:
        cart.reset()
    for menu_item_id, quantity in args.add:
        cart.add(menu_item_id, quantity)
    logger.info("app_start api_url=%s cart_items=%s", args.api_url, cart.total_items())

    app = CheckoutApp(
        OrderGateway(base_url=args.api_url),
        cart,
        poll_interval=args.poll_interval,
        max_attempts=args.max_attempts,
    )
    try:
        app.run()
    finally:
        app.view_model.close()


if __name__ == "__main__":
    main()
