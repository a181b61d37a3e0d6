"""QR payment modal screen."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.css.query import NoMatches
from textual.screen import ModalScreen
from textual.widgets import Static

from qr_checkout.checkout import CheckoutView, CheckoutViewModel
from qr_checkout.rendering import format_payment_display, format_poll_status

_TITLES: dict[CheckoutView, str] = {
    CheckoutView.AWAITING_PAYMENT: "Scan to pay",
    CheckoutView.CANCELLING: "Cancelling payment...",
    CheckoutView.PAYMENT_CONFIRMED: "Payment confirmed",
    CheckoutView.PAYMENT_FAILED: "Payment failed",
    CheckoutView.PAYMENT_TIMED_OUT: "Payment timed out",
}

_HELP: dict[CheckoutView, str] = {
    CheckoutView.AWAITING_PAYMENT: "Open your banking app and scan the QR code. Esc/c cancel payment.",
    CheckoutView.CANCELLING: "Releasing your order...",
    CheckoutView.PAYMENT_CONFIRMED: "Thank you! Finishing your order...",
    CheckoutView.PAYMENT_FAILED: "R return to the form.",
    CheckoutView.PAYMENT_TIMED_OUT: "R return to the form.",
}


class PaymentModal(ModalScreen[None]):
    """Shows payment details while the checkout waits for confirmation."""

    BINDINGS = [
        ("escape", "cancel_payment", "Cancel payment"),
        ("c", "cancel_payment", "Cancel payment"),
        ("r", "restart", "Back to form"),
    ]

    CSS = """
    PaymentModal {
        align: center middle;
        background: $background 60%;
    }

    #payment-dialog {
        width: 72;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #payment-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #payment-body {
        color: white;
        margin-bottom: 1;
    }

    #payment-status {
        margin-bottom: 1;
    }

    #payment-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #payment-help {
        color: #dddddd;
    }
    """

    def __init__(self, view_model: CheckoutViewModel) -> None:
        super().__init__()
        self.view_model = view_model

    def compose(self) -> ComposeResult:
        with Container(id="payment-dialog"):
            yield Static(id="payment-title")
            yield Static(id="payment-body")
            yield Static(id="payment-status")
            yield Static(id="payment-error")
            yield Static(id="payment-help")

    def on_mount(self) -> None:
        self.refresh_content()

    def action_cancel_payment(self) -> None:
        if self.view_model.view != CheckoutView.AWAITING_PAYMENT:
            return
        self.app.run_worker(self.view_model.cancel(), group="payment-cancel")

    def action_restart(self) -> None:
        if self.view_model.view not in (CheckoutView.PAYMENT_FAILED, CheckoutView.PAYMENT_TIMED_OUT):
            return
        self.view_model.retry_or_restart()

    def refresh_content(self) -> None:
        try:
            title_widget = self.query_one("#payment-title", Static)
            body_widget = self.query_one("#payment-body", Static)
            status_widget = self.query_one("#payment-status", Static)
            error_widget = self.query_one("#payment-error", Static)
            help_widget = self.query_one("#payment-help", Static)
        except NoMatches:
            return

        snapshot = self.view_model.snapshot()
        title_widget.update(_TITLES.get(snapshot.view, "Payment"))
        if snapshot.payment_display is not None:
            body_widget.update(format_payment_display(snapshot.payment_display))
        status_widget.update(format_poll_status(snapshot.client_status, snapshot.attempts_used, snapshot.max_attempts))
        error_widget.update(snapshot.error or "")
        help_widget.update(_HELP.get(snapshot.view, ""))
