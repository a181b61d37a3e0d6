"""Cart resolution against the menu API."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Sequence

from qr_checkout.config import DELIVERY_FEE
from qr_checkout.errors import GatewayError
from qr_checkout.gateway import OrderGatewayPort
from qr_checkout.models import CartItem, to_decimal
from qr_checkout.persistence import CartStore

logger = logging.getLogger(__name__)


async def _resolve_line(gateway: OrderGatewayPort, menu_item_id: int, quantity: int) -> CartItem | None:
    try:
        result = await gateway.get_menu_item(menu_item_id)
    except GatewayError as exc:
        logger.warning("cart_item_unresolved menu_item_id=%s status=%s error=%s", menu_item_id, exc.status, exc.message)
        return None

    data = result.data if result.success and isinstance(result.data, dict) else None
    price = to_decimal(data.get("price")) if data else None
    if data is None or price is None:
        logger.warning("cart_item_unresolved menu_item_id=%s reason=bad_response", menu_item_id)
        return None

    return CartItem(
        menu_item_id=menu_item_id,
        name=str(data.get("name") or f"Item {menu_item_id}"),
        price=price,
        quantity=quantity,
    )


async def load_cart_items(store: CartStore, gateway: OrderGatewayPort) -> list[CartItem]:
    """
    Resolve stored quantities into priced cart lines.

    Lookups run concurrently. Items that fail to resolve are logged and left
    out here, so the order payload never has to drop lines later.
    """
    quantities = store.quantities()
    if not quantities:
        return []

    resolved = await asyncio.gather(
        *(_resolve_line(gateway, menu_item_id, quantity) for menu_item_id, quantity in quantities.items())
    )
    items = [item for item in resolved if item is not None]
    logger.info("cart_loaded stored=%s resolved=%s", len(quantities), len(items))
    return items


def cart_totals(items: Sequence[CartItem], delivery_fee: Decimal = DELIVERY_FEE) -> tuple[Decimal, Decimal, Decimal]:
    """Return (subtotal, delivery_fee, total)."""
    subtotal = sum((item.line_total for item in items), Decimal("0"))
    return (subtotal, delivery_fee, subtotal + delivery_fee)
