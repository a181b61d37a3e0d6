"""Order payload assembly and checkout form validation."""

from __future__ import annotations

from typing import Sequence

from qr_checkout.constant import INITIAL_PAYMENT_STATUS, MESSAGES, ORDER_TYPE_DELIVERY, PAYMENT_METHODS
from qr_checkout.models import CartItem, DeliveryForm, OrderLine, OrderPayload


def validate_form(form: DeliveryForm, cart_items: Sequence[CartItem]) -> str | None:
    """Return the first validation message for the form, or None when valid."""
    if not form.full_name.strip():
        return MESSAGES["missing_full_name"]
    if not form.phone.strip():
        return MESSAGES["missing_phone"]
    if not form.address.strip():
        return MESSAGES["missing_address"]
    if not form.ward.strip() or not form.district.strip() or not form.city.strip():
        return MESSAGES["incomplete_region"]
    if not cart_items:
        return MESSAGES["empty_cart"]
    return None


def format_delivery_address(form: DeliveryForm) -> str:
    parts = (form.address, form.ward, form.district, form.city)
    return ", ".join(part.strip() for part in parts)


def build_order_payload(
    form: DeliveryForm,
    cart_items: Sequence[CartItem],
    payment_method: str,
) -> tuple[OrderPayload | None, str | None]:
    """
    Build the order creation payload from form state and cart lines.

    Returns (payload, None) on success and (None, message) on a validation
    failure. Every cart line is carried over in order; lines are never
    dropped here.
    """
    if payment_method not in PAYMENT_METHODS:
        return (None, MESSAGES["unknown_payment_method"])

    error = validate_form(form, cart_items)
    if error is not None:
        return (None, error)

    payload = OrderPayload(
        customer_name=form.full_name.strip(),
        customer_phone=form.phone.strip(),
        customer_email=form.email.strip() or None,
        delivery_address=format_delivery_address(form),
        notes=form.notes.strip() or None,
        order_type=ORDER_TYPE_DELIVERY,
        payment_method=payment_method,
        payment_status=INITIAL_PAYMENT_STATUS[payment_method],
        items=tuple(OrderLine(menu_item_id=item.menu_item_id, quantity=item.quantity) for item in cart_items),
    )
    return (payload, None)
