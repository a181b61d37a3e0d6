"""Payment session value object and its state machine."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from qr_checkout.constant import CONFIRMED_PAYMENT_STATUSES, FAILED_PAYMENT_STATUSES
from qr_checkout.models import Order, Payment


class SessionState(str, Enum):
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    CANCELLED = "CANCELLED"


class PaymentEvent(str, Enum):
    CONFIRM = "CONFIRM"
    FAIL = "FAIL"
    TIME_OUT = "TIME_OUT"
    CANCEL = "CANCEL"


TERMINAL_STATES = frozenset(
    {SessionState.CONFIRMED, SessionState.FAILED, SessionState.TIMED_OUT, SessionState.CANCELLED}
)

_EVENT_TARGETS: dict[PaymentEvent, SessionState] = {
    PaymentEvent.CONFIRM: SessionState.CONFIRMED,
    PaymentEvent.FAIL: SessionState.FAILED,
    PaymentEvent.TIME_OUT: SessionState.TIMED_OUT,
    PaymentEvent.CANCEL: SessionState.CANCELLED,
}


def transition(state: SessionState, event: PaymentEvent) -> SessionState:
    """
    Pure state transition.

    Terminal states absorb every event, so a late or duplicate signal is a
    no-op rather than an error.
    """
    if state in TERMINAL_STATES:
        return state
    return _EVENT_TARGETS[event]


def classify_status(status: str | None) -> PaymentEvent | None:
    """Map a server payment status to an event; None means keep polling."""
    if not status:
        return None
    normalized = str(status).strip().upper()
    if normalized in CONFIRMED_PAYMENT_STATUSES:
        return PaymentEvent.CONFIRM
    if normalized in FAILED_PAYMENT_STATUSES:
        return PaymentEvent.FAIL
    return None


@dataclass(frozen=True)
class PaymentDisplay:
    """What the payment screen shows the customer."""

    order_code: str
    payment_code: str
    amount: Decimal | None
    qr_code_data: str | None
    bank_code: str | None
    account_number: str | None
    account_name: str | None
    transfer_memo: str


@dataclass(frozen=True)
class PaymentSession:
    """An issued payment reference plus its client-observed lifecycle state."""

    order: Order
    payment: Payment
    state: SessionState = SessionState.AWAITING_PAYMENT

    @property
    def payment_code(self) -> str:
        return self.payment.payment_code

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def display(self) -> PaymentDisplay:
        return PaymentDisplay(
            order_code=self.order.order_code,
            payment_code=self.payment.payment_code,
            amount=self.payment.amount if self.payment.amount is not None else self.order.total_amount,
            qr_code_data=self.payment.qr_code_data,
            bank_code=self.payment.bank_code,
            account_number=self.payment.account_number,
            account_name=self.payment.account_name,
            transfer_memo=self.payment.transfer_content or self.order.order_code,
        )

    def advance(self, event: PaymentEvent) -> PaymentSession:
        """Return the session after applying event (self when nothing changes)."""
        next_state = transition(self.state, event)
        if next_state == self.state:
            return self
        return replace(self, state=next_state)


def client_status(state: SessionState | None, checking: bool) -> str:
    """Derive the coarse status shown next to the QR code."""
    if state == SessionState.CONFIRMED:
        return "confirmed"
    if state in (SessionState.FAILED, SessionState.TIMED_OUT):
        return "failed"
    if state == SessionState.AWAITING_PAYMENT and checking:
        return "checking"
    return "pending"
