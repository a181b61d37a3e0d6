import asyncio

from textual.widgets import Input

from qr_checkout.checkout import CheckoutView
from qr_checkout.checkout_app import CheckoutApp
from qr_checkout.constant import MESSAGES
from qr_checkout.payment_modal import PaymentModal

from conftest import qr_order_data

MENU = {
    1: {"id": 1, "name": "Pho Bo", "price": 3.99},
    2: {"id": 2, "name": "Banh Mi", "price": 5.00},
}

FORM_VALUES = {
    "full_name": "Nguyen Van A",
    "phone": "0912345678",
    "address": "12 Le Loi",
    "ward": "Ben Nghe",
    "district": "District 1",
    "city": "Ho Chi Minh City",
}


def test_empty_form_shows_validation_error(cart, make_gateway):
    gateway = make_gateway(create_data=qr_order_data(), menu=MENU)
    app = CheckoutApp(gateway, cart, poll_interval=60)

    async def scenario():
        async with app.run_test() as pilot:
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert len(app.cart_items) == 2

            await pilot.press("ctrl+s")
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert app.system_status == MESSAGES["missing_full_name"]

    asyncio.run(scenario())
    assert gateway.create_calls == []


def test_qr_payment_opens_modal_and_cancel_returns_to_form(cart, make_gateway):
    gateway = make_gateway(create_data=qr_order_data(), menu=MENU)
    app = CheckoutApp(gateway, cart, poll_interval=60)

    async def scenario():
        async with app.run_test() as pilot:
            await app.workers.wait_for_complete()
            await pilot.pause()
            for field_id, value in FORM_VALUES.items():
                app.query_one(f"#{field_id}", Input).value = value

            await pilot.press("f2")
            assert app.payment_method == "BANK_TRANSFER"

            await pilot.press("ctrl+s")
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert isinstance(app.screen, PaymentModal)
            assert app.view_model.view == CheckoutView.AWAITING_PAYMENT

            await pilot.press("c")
            await app.workers.wait_for_complete()
            await pilot.pause()
            assert not isinstance(app.screen, PaymentModal)
            assert app.view_model.view == CheckoutView.FORM
            assert not app.view_model.polling.is_active

    asyncio.run(scenario())
    assert gateway.cancel_calls == [("42", "QR payment canceled by user")]
    assert gateway.closed
