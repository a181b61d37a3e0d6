"""SQLite persistence for the cart, the pending payment and local order history."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from qr_checkout.config import DB_PATH
from qr_checkout.models import Order, Payment, to_decimal


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _connect(db_path: str | None = None) -> sqlite3.Connection:
    db_file = Path(db_path or DB_PATH)
    db_file.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_file)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def bootstrap_schema(db_path: str | None = None) -> None:
    """Create persistence schema if it does not already exist."""
    with _connect(db_path) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS cart_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                menu_item_id INTEGER NOT NULL UNIQUE,
                quantity INTEGER NOT NULL,
                added_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS orders (
                id TEXT PRIMARY KEY,
                order_code TEXT NOT NULL,
                payment_method TEXT NOT NULL,
                total TEXT,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS pending_payments (
                slot INTEGER PRIMARY KEY CHECK (slot = 1),
                order_id TEXT NOT NULL,
                order_code TEXT NOT NULL,
                payment_method TEXT NOT NULL,
                total TEXT,
                payment_json TEXT NOT NULL,
                saved_at TEXT NOT NULL
            );
            """
        )


class CartStore:
    """Menu item quantities that survive restarts."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = db_path
        bootstrap_schema(db_path)

    def quantities(self) -> dict[int, int]:
        with _connect(self.db_path) as conn:
            rows = conn.execute("SELECT menu_item_id, quantity FROM cart_items ORDER BY id").fetchall()
        return {int(menu_item_id): int(quantity) for menu_item_id, quantity in rows}

    def set_quantity(self, menu_item_id: int, quantity: int) -> None:
        """Set a line quantity; zero or less removes the line."""
        with _connect(self.db_path) as conn:
            with conn:
                if quantity <= 0:
                    conn.execute("DELETE FROM cart_items WHERE menu_item_id = ?", (menu_item_id,))
                    return
                updated = conn.execute(
                    "UPDATE cart_items SET quantity = ? WHERE menu_item_id = ?",
                    (quantity, menu_item_id),
                ).rowcount
                if not updated:
                    conn.execute(
                        "INSERT INTO cart_items (menu_item_id, quantity, added_at) VALUES (?, ?, ?)",
                        (menu_item_id, quantity, _utc_now_iso()),
                    )

    def add(self, menu_item_id: int, quantity: int = 1) -> None:
        current = self.quantities().get(menu_item_id, 0)
        self.set_quantity(menu_item_id, current + quantity)

    def reset(self) -> None:
        with _connect(self.db_path) as conn:
            with conn:
                conn.execute("DELETE FROM cart_items")

    def total_items(self) -> int:
        return sum(self.quantities().values())


def _payment_record(payment: Payment) -> dict[str, object]:
    return {
        "id": payment.payment_id,
        "paymentCode": payment.payment_code,
        "method": payment.method,
        "status": payment.status,
        "amount": str(payment.amount) if payment.amount is not None else None,
        "qrCodeData": payment.qr_code_data,
        "bankCode": payment.bank_code,
        "accountNumber": payment.account_number,
        "accountName": payment.account_name,
        "transferContent": payment.transfer_content,
    }


def save_pending_payment(order: Order, db_path: str | None = None) -> None:
    """Remember the order awaiting payment so polling can resume after a restart."""
    if order.payment is None:
        raise ValueError("order has no payment to remember")
    with _connect(db_path) as conn:
        with conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO pending_payments
                    (slot, order_id, order_code, payment_method, total, payment_json, saved_at)
                VALUES (1, ?, ?, ?, ?, ?, ?)
                """,
                (
                    order.order_id,
                    order.order_code,
                    order.payment_method,
                    str(order.total_amount) if order.total_amount is not None else None,
                    json.dumps(_payment_record(order.payment)),
                    _utc_now_iso(),
                ),
            )


def load_pending_payment(db_path: str | None = None) -> Order | None:
    with _connect(db_path) as conn:
        row = conn.execute(
            "SELECT order_id, order_code, payment_method, total, payment_json FROM pending_payments WHERE slot = 1"
        ).fetchone()
    if row is None:
        return None

    order_id, order_code, payment_method, total, payment_json = row
    try:
        payment = Payment.from_api(json.loads(payment_json))
    except (TypeError, ValueError):
        payment = None
    if payment is None:
        return None
    return Order(
        order_id=order_id,
        order_code=order_code,
        total_amount=to_decimal(total),
        payment_method=payment_method,
        payment=payment,
    )


def clear_pending_payment(db_path: str | None = None) -> None:
    with _connect(db_path) as conn:
        with conn:
            conn.execute("DELETE FROM pending_payments")


def record_order(order: Order, status: str, db_path: str | None = None) -> None:
    """Insert or refresh the local history row for a created order."""
    now = _utc_now_iso()
    with _connect(db_path) as conn:
        with conn:
            conn.execute(
                """
                INSERT INTO orders (id, order_code, payment_method, total, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET status = excluded.status, updated_at = excluded.updated_at
                """,
                (
                    order.order_id,
                    order.order_code,
                    order.payment_method,
                    str(order.total_amount) if order.total_amount is not None else None,
                    status,
                    now,
                    now,
                ),
            )


def update_order_status(order_id: str, status: str, db_path: str | None = None) -> None:
    """Update status for a locally recorded order."""
    with _connect(db_path) as conn:
        with conn:
            conn.execute(
                "UPDATE orders SET status = ?, updated_at = ? WHERE id = ?",
                (status, _utc_now_iso(), order_id),
            )


def order_status(order_id: str, db_path: str | None = None) -> str | None:
    with _connect(db_path) as conn:
        row = conn.execute("SELECT status FROM orders WHERE id = ?", (order_id,)).fetchone()
    return row[0] if row else None
