from dataclasses import replace

import pytest

from qr_checkout.constant import MESSAGES
from qr_checkout.order_request import build_order_payload, format_delivery_address, validate_form


def test_builds_bank_transfer_payload(form, cart_items):
    payload, error = build_order_payload(form, cart_items, "BANK_TRANSFER")

    assert error is None
    body = payload.to_json()
    assert body["deliveryAddress"] == "12 Le Loi, Ben Nghe, District 1, Ho Chi Minh City"
    assert body["items"] == [
        {"menuItemId": 1, "quantity": 2, "notes": None},
        {"menuItemId": 2, "quantity": 1, "notes": None},
    ]
    assert body["paymentMethod"] == "BANK_TRANSFER"
    assert body["paymentStatus"] == "AWAITING_PAYMENT"
    assert body["orderType"] == "DELIVERY"
    assert body["customerEmail"] is None
    assert body["notes"] is None


def test_cash_payload_is_pending(form, cart_items):
    payload, error = build_order_payload(replace(form, notes=" ring twice "), cart_items, "CASH")

    assert error is None
    assert payload.payment_status == "PENDING"
    assert payload.notes == "ring twice"


def test_same_input_gives_same_payload(form, cart_items):
    first, _ = build_order_payload(form, cart_items, "CASH")
    second, _ = build_order_payload(form, cart_items, "CASH")
    assert first == second


def test_empty_cart_is_rejected(form, make_gateway):
    gateway = make_gateway()

    payload, error = build_order_payload(form, [], "BANK_TRANSFER")

    assert payload is None
    assert error == MESSAGES["empty_cart"]
    assert gateway.create_calls == []
    assert gateway.status_calls == []


@pytest.mark.parametrize(
    "field, message_key",
    [
        ("full_name", "missing_full_name"),
        ("phone", "missing_phone"),
        ("address", "missing_address"),
        ("ward", "incomplete_region"),
        ("district", "incomplete_region"),
        ("city", "incomplete_region"),
    ],
)
def test_blank_required_field_is_rejected(form, cart_items, field, message_key):
    payload, error = build_order_payload(replace(form, **{field: "   "}), cart_items, "CASH")

    assert payload is None
    assert error == MESSAGES[message_key]


def test_unknown_payment_method_is_rejected(form, cart_items):
    payload, error = build_order_payload(form, cart_items, "CRYPTO")

    assert payload is None
    assert error == MESSAGES["unknown_payment_method"]


def test_first_missing_field_wins(form, cart_items):
    blank = replace(form, full_name=" ", phone="", city="")

    assert validate_form(blank, cart_items) == MESSAGES["missing_full_name"]
    assert validate_form(replace(blank, full_name="A"), cart_items) == MESSAGES["missing_phone"]


def test_delivery_address_trims_parts(form):
    padded = replace(form, address=" 12 Le Loi ", ward="Ben Nghe ")

    assert format_delivery_address(padded) == "12 Le Loi, Ben Nghe, District 1, Ho Chi Minh City"
