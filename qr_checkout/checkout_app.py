"""Main Textual app class."""

from __future__ import annotations

import logging
from dataclasses import replace

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widgets import Header, Input, Static

from qr_checkout.cart import cart_totals, load_cart_items
from qr_checkout.checkout import CheckoutView, CheckoutViewModel
from qr_checkout.config import MAX_POLL_ATTEMPTS, POLL_INTERVAL_SECONDS
from qr_checkout.constant import MESSAGES, PAYMENT_METHOD_BANK_TRANSFER, PAYMENT_METHOD_CASH
from qr_checkout.gateway import OrderGateway
from qr_checkout.models import CartItem, DeliveryForm
from qr_checkout.payment_modal import PaymentModal
from qr_checkout.persistence import CartStore
from qr_checkout.rendering import format_amount, format_cart_line, format_payment_method

logger = logging.getLogger(__name__)

FORM_FIELDS: tuple[tuple[str, str], ...] = (
    ("full_name", "Full name *"),
    ("phone", "Phone *"),
    ("email", "Email (optional)"),
    ("address", "Street address *"),
    ("ward", "Ward *"),
    ("district", "District *"),
    ("city", "City *"),
    ("notes", "Notes (optional)"),
)

_MODAL_VIEWS = frozenset(
    {
        CheckoutView.AWAITING_PAYMENT,
        CheckoutView.CANCELLING,
        CheckoutView.PAYMENT_CONFIRMED,
        CheckoutView.PAYMENT_FAILED,
        CheckoutView.PAYMENT_TIMED_OUT,
    }
)


class CheckoutApp(App):
    """A Textual app for checking out a delivery order with cash or QR payment."""

    TITLE = "QR Checkout"
    SUB_TITLE = "Delivery order"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #form-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #cart-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #status-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #cart-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #cart-totals {
        margin-top: 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+s", "submit", "Place order", priority=True),
        Binding("f2", "toggle_payment_method", "Payment method", priority=True),
        Binding("f3", "move_cart_selection(-1)", "Previous item", priority=True),
        Binding("f4", "move_cart_selection(1)", "Next item", priority=True),
        Binding("f5", "change_quantity(-1)", "One less", priority=True),
        Binding("f6", "change_quantity(1)", "One more", priority=True),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        gateway: OrderGateway,
        cart: CartStore,
        *,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
    ) -> None:
        super().__init__()
        self.gateway = gateway
        self.cart = cart
        self.cart_items: list[CartItem] = []
        self.cart_selected_index: int | None = None
        self.payment_method = PAYMENT_METHOD_CASH
        self.system_status = ""
        self._payment_modal: PaymentModal | None = None
        self.view_model = CheckoutViewModel(
            gateway,
            self,
            cart,
            poll_interval=poll_interval,
            max_attempts=max_attempts,
            on_change=self._on_checkout_change,
            on_finished=self._on_checkout_finished,
        )

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="form-pane"):
                yield Static("Delivery Information", classes="pane-title")
                for field_id, placeholder in FORM_FIELDS:
                    yield Input(placeholder=placeholder, id=field_id)
            with Vertical(id="cart-pane"):
                yield Static(id="status-bar")
                yield Static("Your Order", classes="pane-title")
                yield Static("(cart is empty)", id="cart-list")
                yield Static(id="cart-totals")
                yield Static(id="payment-method")

    async def on_mount(self) -> None:
        self._refresh_all()
        self.run_worker(self._load_cart(), group="cart")
        if self.view_model.resume():
            self.system_status = "Resumed a payment still awaiting confirmation."

    async def on_unmount(self) -> None:
        self.view_model.close()
        await self.gateway.aclose()

    async def _load_cart(self) -> None:
        try:
            self.cart_items = await load_cart_items(self.cart, self.gateway)
        except Exception:
            logger.exception("cart_load_failed")
            self.cart_items = []
            self.system_status = MESSAGES["cart_load_failed"]
        self.cart_selected_index = 0 if self.cart_items else None
        self._refresh_all()

    def action_submit(self) -> None:
        if self.view_model.view != CheckoutView.FORM:
            return
        form = self._read_form()
        self.run_worker(self.view_model.submit(form, list(self.cart_items), self.payment_method), group="submit")

    def action_toggle_payment_method(self) -> None:
        if self.view_model.view != CheckoutView.FORM:
            return
        if self.payment_method == PAYMENT_METHOD_CASH:
            self.payment_method = PAYMENT_METHOD_BANK_TRANSFER
        else:
            self.payment_method = PAYMENT_METHOD_CASH
        self._refresh_cart()

    def action_move_cart_selection(self, delta: int) -> None:
        if not self.cart_items:
            return
        if self.cart_selected_index is None:
            self.cart_selected_index = 0 if delta > 0 else len(self.cart_items) - 1
        else:
            self.cart_selected_index = (self.cart_selected_index + delta) % len(self.cart_items)
        self._refresh_cart()

    def action_change_quantity(self, delta: int) -> None:
        if self.view_model.view != CheckoutView.FORM:
            return
        idx = self.cart_selected_index
        if idx is None or not (0 <= idx < len(self.cart_items)):
            return

        item = self.cart_items[idx]
        quantity = item.quantity + delta
        self.cart.set_quantity(item.menu_item_id, quantity)
        if quantity <= 0:
            del self.cart_items[idx]
            self.cart_selected_index = min(idx, len(self.cart_items) - 1) if self.cart_items else None
        else:
            self.cart_items[idx] = replace(item, quantity=quantity)
        self._refresh_cart()

    def _read_form(self) -> DeliveryForm:
        values = {field_id: self.query_one(f"#{field_id}", Input).value for field_id, _ in FORM_FIELDS}
        return DeliveryForm(**values)

    def _clear_form(self) -> None:
        for field_id, _ in FORM_FIELDS:
            self.query_one(f"#{field_id}", Input).value = ""

    def _on_checkout_change(self) -> None:
        snapshot = self.view_model.snapshot()
        if snapshot.view in _MODAL_VIEWS:
            if self._payment_modal is None:
                self._payment_modal = PaymentModal(self.view_model)
                self.push_screen(self._payment_modal)
            else:
                self._payment_modal.refresh_content()
            return

        if self._payment_modal is not None:
            modal, self._payment_modal = self._payment_modal, None
            if self.screen is modal:
                self.pop_screen()

        if snapshot.view == CheckoutView.ORDER_PLACED:
            self.cart_items = []
            self.cart_selected_index = None
        self.system_status = snapshot.error or snapshot.message or ""
        self._refresh_all()

    def _on_checkout_finished(self) -> None:
        self.view_model.retry_or_restart()
        self._clear_form()
        self.system_status = ""
        self.run_worker(self._load_cart(), group="cart")

    def _refresh_all(self) -> None:
        self._refresh_status()
        self._refresh_cart()

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        help_line = "Ctrl+S place order. F2 payment method. F3/F4 select item, F5/F6 quantity."
        if self.view_model.snapshot().submitting:
            bar.update(f"{help_line}\nPlacing order...")
            return
        bar.update(f"{help_line}\n{self.system_status or 'Ready'}")

    def _refresh_cart(self) -> None:
        try:
            cart_widget = self.query_one("#cart-list", Static)
            totals_widget = self.query_one("#cart-totals", Static)
            method_widget = self.query_one("#payment-method", Static)
        except NoMatches:
            return

        method_widget.update(format_payment_method(self.payment_method))
        if not self.cart_items:
            self.cart_selected_index = None
            cart_widget.update("(cart is empty)")
            totals_widget.update("")
            return

        if self.cart_selected_index is not None and self.cart_selected_index >= len(self.cart_items):
            self.cart_selected_index = len(self.cart_items) - 1

        lines = Text()
        for idx, item in enumerate(self.cart_items):
            if idx > 0:
                lines.append("\n")
            lines.append_text(format_cart_line(idx, item, idx == self.cart_selected_index))
        cart_widget.update(lines)

        subtotal, delivery_fee, total = cart_totals(self.cart_items)
        totals = Text()
        totals.append(f"Subtotal: {format_amount(subtotal)}\n")
        totals.append(f"Delivery: {format_amount(delivery_fee)}\n")
        totals.append(f"Total: {format_amount(total)}", style="bold")
        totals_widget.update(totals)
