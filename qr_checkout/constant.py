"""Editable status vocabulary and user-facing copy."""

from __future__ import annotations

PAYMENT_METHOD_CASH = "CASH"
PAYMENT_METHOD_BANK_TRANSFER = "BANK_TRANSFER"
PAYMENT_METHODS = (PAYMENT_METHOD_CASH, PAYMENT_METHOD_BANK_TRANSFER)

PAYMENT_METHOD_LABELS: dict[str, str] = {
    PAYMENT_METHOD_CASH: "Cash on delivery",
    PAYMENT_METHOD_BANK_TRANSFER: "QR / bank transfer",
}

# Server-side payment status values.
CONFIRMED_PAYMENT_STATUSES = frozenset({"PAID", "COMPLETED"})
FAILED_PAYMENT_STATUSES = frozenset({"FAILED", "CANCELLED", "EXPIRED"})

ORDER_TYPE_DELIVERY = "DELIVERY"

# paymentStatus sent with a new order, per payment method.
INITIAL_PAYMENT_STATUS: dict[str, str] = {
    PAYMENT_METHOD_CASH: "PENDING",
    PAYMENT_METHOD_BANK_TRANSFER: "AWAITING_PAYMENT",
}

CANCEL_REASON_USER_ABANDONED = "QR payment canceled by user"

MESSAGES: dict[str, str] = {
    "missing_full_name": "Please enter your full name.",
    "missing_phone": "Please enter your phone number.",
    "missing_address": "Please enter a delivery address.",
    "incomplete_region": "Please fill in ward, district and city.",
    "empty_cart": "Your cart is empty. Please add some dishes.",
    "unknown_payment_method": "Please choose a payment method.",
    "create_failed": "Could not create the order. Please try again.",
    "missing_payment": "The order was created but no payment details were returned. Please contact support.",
    "payment_failed": "Payment was not completed. Press R to try again or contact support.",
    "payment_timed_out": "Timed out waiting for payment confirmation. Please contact support.",
    "payment_confirmed": "Payment confirmed.",
    "order_placed": "Order placed. Thank you! We will contact you shortly.",
    "cart_load_failed": "Could not load the cart. Please try again.",
}
