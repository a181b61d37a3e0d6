from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from qr_checkout.errors import GatewayError
from qr_checkout.gateway import GatewayResult
from qr_checkout.models import CartItem, DeliveryForm
from qr_checkout.persistence import CartStore


class FakeTimer:
    def __init__(self, delay: float, callback, repeat: bool) -> None:
        self.delay = delay
        self.callback = callback
        self.repeat = repeat
        self.active = True

    def stop(self) -> None:
        self.active = False


class FakeScheduler:
    """Manual clock: nothing fires until the test says so."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def set_interval(self, interval, callback):
        timer = FakeTimer(interval, callback, repeat=True)
        self.timers.append(timer)
        return timer

    def set_timer(self, delay, callback):
        timer = FakeTimer(delay, callback, repeat=False)
        self.timers.append(timer)
        return timer

    def active_intervals(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if timer.repeat and timer.active]

    def active_timers(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.repeat and timer.active]

    def tick(self) -> None:
        for timer in self.active_intervals():
            if timer.active:
                timer.callback()

    def run_timers(self) -> None:
        for timer in self.active_timers():
            if timer.active:
                timer.active = False
                timer.callback()


class FakeGateway:
    """
    Scripted gateway.

    status_responses items are a status string, an exception to raise, or a
    GatewayResult returned as is. Once exhausted every query answers PENDING.
    """

    def __init__(self, create_data=None, status_responses=None, menu=None) -> None:
        self.create_data = create_data
        self.create_error: Exception | None = None
        self.status_responses = list(status_responses or [])
        self.menu = dict(menu or {})
        self.create_calls = []
        self.status_calls: list[str] = []
        self.cancel_calls: list[tuple[str, str]] = []
        self.status_calls_at_cancel: int | None = None
        self.cancel_error: Exception | None = None
        self.cancel_gate: asyncio.Event | None = None
        self.closed = False

    async def create_order(self, payload):
        self.create_calls.append(payload)
        if self.create_error is not None:
            raise self.create_error
        return GatewayResult(True, self.create_data, "Order created successfully")

    async def query_payment_status(self, payment_code):
        self.status_calls.append(payment_code)
        response = self.status_responses.pop(0) if self.status_responses else "PENDING"
        if isinstance(response, Exception):
            raise response
        if isinstance(response, GatewayResult):
            return response
        return GatewayResult(True, {"paymentCode": payment_code, "status": response}, "Payment status retrieved")

    async def cancel_order(self, order_id, reason=""):
        self.status_calls_at_cancel = len(self.status_calls)
        self.cancel_calls.append((order_id, reason))
        if self.cancel_gate is not None:
            await self.cancel_gate.wait()
        if self.cancel_error is not None:
            raise self.cancel_error
        return GatewayResult(True, None, "Order canceled")

    async def get_menu_item(self, menu_item_id):
        if menu_item_id not in self.menu:
            raise GatewayError(404, "Menu item not found")
        return GatewayResult(True, self.menu[menu_item_id], "Menu item fetched")

    async def aclose(self):
        self.closed = True


def qr_order_data(payment_code: str = "PAY123", status: str = "PENDING") -> dict:
    return {
        "id": 42,
        "orderNumber": "ORD-0042",
        "totalAmount": 12.98,
        "paymentMethod": "BANK_TRANSFER",
        "payment": {
            "id": 7,
            "paymentCode": payment_code,
            "method": "BANK_TRANSFER",
            "status": status,
            "amount": 12.98,
            "qrCodeData": "00020101021238570010A000000727",
            "bankCode": "MB",
            "accountNumber": "0909630904",
            "accountName": "NGUYEN PHUC DIEN",
        },
    }


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(create_data=qr_order_data())


@pytest.fixture
def make_gateway():
    return FakeGateway


@pytest.fixture
def cart(tmp_path) -> CartStore:
    store = CartStore(str(tmp_path / "checkout.db"))
    store.set_quantity(1, 2)
    store.set_quantity(2, 1)
    return store


@pytest.fixture
def cart_items() -> list[CartItem]:
    return [
        CartItem(menu_item_id=1, name="Pho Bo", price=Decimal("3.99"), quantity=2),
        CartItem(menu_item_id=2, name="Banh Mi", price=Decimal("5.00"), quantity=1),
    ]


@pytest.fixture
def form() -> DeliveryForm:
    return DeliveryForm(
        full_name="Nguyen Van A",
        phone="0912345678",
        email="",
        address="12 Le Loi",
        ward="Ben Nghe",
        district="District 1",
        city="Ho Chi Minh City",
        notes="",
    )
