"""Domain models for qr-checkout."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class DeliveryForm:
    """Editable checkout form state."""

    full_name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    ward: str = ""
    district: str = ""
    city: str = ""
    notes: str = ""


@dataclass(frozen=True)
class CartItem:
    """A resolved cart line."""

    menu_item_id: int
    name: str
    price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class OrderLine:
    menu_item_id: int
    quantity: int
    notes: str | None = None

    def to_json(self) -> dict[str, Any]:
        return {"menuItemId": self.menu_item_id, "quantity": self.quantity, "notes": self.notes}


@dataclass(frozen=True)
class OrderPayload:
    """Request body for order creation."""

    customer_name: str
    customer_phone: str
    customer_email: str | None
    delivery_address: str
    notes: str | None
    order_type: str
    payment_method: str
    payment_status: str
    items: tuple[OrderLine, ...]

    def to_json(self) -> dict[str, Any]:
        return {
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerEmail": self.customer_email,
            "deliveryAddress": self.delivery_address,
            "notes": self.notes,
            "orderType": self.order_type,
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "items": [line.to_json() for line in self.items],
        }


@dataclass(frozen=True)
class Payment:
    """Payment record embedded in a non-cash order."""

    payment_id: str | None
    payment_code: str
    method: str | None
    status: str
    amount: Decimal | None = None
    qr_code_data: str | None = None
    bank_code: str | None = None
    account_number: str | None = None
    account_name: str | None = None
    transfer_content: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Payment | None:
        """Parse the API shape; returns None when no usable payment code is present."""
        payment_code = _optional_str(data.get("paymentCode"))
        if payment_code is None:
            return None
        return cls(
            payment_id=_optional_str(data.get("id")),
            payment_code=payment_code,
            method=_optional_str(data.get("method")),
            status=(_optional_str(data.get("status")) or "PENDING").upper(),
            amount=to_decimal(data.get("amount")),
            qr_code_data=_optional_str(data.get("qrCodeData")),
            bank_code=_optional_str(data.get("bankCode")),
            account_number=_optional_str(data.get("accountNumber")),
            account_name=_optional_str(data.get("accountName")),
            transfer_content=_optional_str(data.get("transferContent")),
        )


@dataclass(frozen=True)
class Order:
    """Immutable snapshot of a created order."""

    order_id: str
    order_code: str
    total_amount: Decimal | None
    payment_method: str
    payment: Payment | None = None
    items: tuple[OrderLine, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, data: dict[str, Any], payload: OrderPayload) -> Order:
        order_id = _optional_str(data.get("id")) or _optional_str(data.get("orderId"))
        if order_id is None:
            raise ValueError("order response has no id")
        order_code = (
            _optional_str(data.get("orderNumber"))
            or _optional_str(data.get("orderCode"))
            or f"ORD{int(time.time() * 1000)}"
        )
        raw_payment = data.get("payment")
        payment = Payment.from_api(raw_payment) if isinstance(raw_payment, dict) else None
        return cls(
            order_id=order_id,
            order_code=order_code,
            total_amount=to_decimal(data.get("totalAmount")),
            payment_method=_optional_str(data.get("paymentMethod")) or payload.payment_method,
            payment=payment,
            items=payload.items,
        )
