"""Rendering helpers for cart lines and the payment screen."""

from __future__ import annotations

from decimal import Decimal
from urllib.parse import quote, urlencode

from rich.text import Text

from qr_checkout.config import VIETQR_ACCOUNT_NAME, VIETQR_ACCOUNT_NO, VIETQR_BANK_ID, VIETQR_TEMPLATE
from qr_checkout.constant import PAYMENT_METHOD_LABELS
from qr_checkout.models import CartItem
from qr_checkout.payment_session import PaymentDisplay


def status_style(client_status: str) -> str:
    """Return a consistent badge style for a client payment status."""
    if client_status == "confirmed":
        return "bold #0b1f0f on #5fbf72"
    if client_status == "failed":
        return "bold #ffffff on #b23a48"
    if client_status == "checking":
        return "bold #ffffff on #2f6db5"
    return "bold #1f1a0b on #d4af37"


def format_amount(amount: Decimal | None) -> str:
    if amount is None:
        return "-"
    return f"${amount:.2f}"


def vietqr_image_url(
    amount: Decimal | None,
    memo: str,
    bank_id: str = VIETQR_BANK_ID,
    account_no: str = VIETQR_ACCOUNT_NO,
    account_name: str = VIETQR_ACCOUNT_NAME,
    template: str = VIETQR_TEMPLATE,
) -> str:
    """Build a VietQR image URL for a bank transfer."""
    params = {"addInfo": memo, "accountName": account_name}
    if amount is not None:
        params = {"amount": str(amount), **params}
    path = f"{quote(bank_id, safe='')}-{quote(account_no, safe='')}-{quote(template, safe='')}.png"
    return f"https://img.vietqr.io/image/{path}?{urlencode(params, quote_via=quote)}"


def format_cart_line(index: int, item: CartItem, selected: bool) -> Text:
    text = Text()
    text.append("➤ " if selected else "  ")
    text.append(f"{index + 1}. {item.name}")
    text.append(f"  x{item.quantity}", style="bold")
    text.append(f"  {format_amount(item.line_total)}", style="dim")
    return text


def format_payment_method(payment_method: str) -> Text:
    text = Text()
    text.append(" PAY ", style=status_style("pending"))
    text.append(f" {PAYMENT_METHOD_LABELS.get(payment_method, payment_method)}")
    return text


def format_payment_display(display: PaymentDisplay) -> Text:
    """Render amount, QR payload and bank transfer details."""
    text = Text()
    text.append("Total to pay: ", style="bold")
    text.append(format_amount(display.amount), style="bold #d4af37")
    text.append(f"\nOrder: {display.order_code}")
    text.append(f"\nPayment code: {display.payment_code}")

    text.append("\n\nQR: ", style="bold")
    if display.qr_code_data:
        text.append(display.qr_code_data)
    elif display.bank_code and display.account_number:
        text.append(
            vietqr_image_url(
                display.amount,
                display.transfer_memo,
                bank_id=display.bank_code,
                account_no=display.account_number,
                account_name=display.account_name or VIETQR_ACCOUNT_NAME,
            )
        )
    else:
        text.append(vietqr_image_url(display.amount, display.transfer_memo))

    if display.bank_code or display.account_number:
        text.append("\n\nBank: ", style="bold")
        text.append(display.bank_code or "-")
        text.append(f"\nAccount: {display.account_number or '-'}")
        if display.account_name:
            text.append(f"\nAccount name: {display.account_name}")
    text.append("\nTransfer memo: ", style="bold")
    text.append(display.transfer_memo)
    return text


def format_poll_status(client_status: str, attempts_used: int, max_attempts: int) -> Text:
    text = Text()
    text.append(f" {client_status.upper()} ", style=status_style(client_status))
    text.append(f"  check {attempts_used}/{max_attempts}", style="dim")
    return text
