"""Checkout orchestration shared by every presentation layer."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from qr_checkout import persistence
from qr_checkout.config import (
    MAX_POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    REDIRECT_DELAY_SECONDS,
    SUCCESS_DISPLAY_DELAY_SECONDS,
)
from qr_checkout.constant import CANCEL_REASON_USER_ABANDONED, MESSAGES, PAYMENT_METHOD_CASH
from qr_checkout.errors import GatewayError
from qr_checkout.gateway import OrderGatewayPort
from qr_checkout.models import CartItem, DeliveryForm, Order
from qr_checkout.order_request import build_order_payload
from qr_checkout.payment_session import (
    TERMINAL_STATES,
    PaymentDisplay,
    PaymentEvent,
    PaymentSession,
    SessionState,
    client_status,
)
from qr_checkout.persistence import CartStore
from qr_checkout.polling import PollingController
from qr_checkout.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class CheckoutView(str, Enum):
    FORM = "FORM"
    SUBMITTING = "SUBMITTING"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    CANCELLING = "CANCELLING"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_TIMED_OUT = "PAYMENT_TIMED_OUT"
    ORDER_PLACED = "ORDER_PLACED"


_RESTARTABLE_VIEWS = frozenset(
    {
        CheckoutView.FORM,
        CheckoutView.PAYMENT_CONFIRMED,
        CheckoutView.PAYMENT_FAILED,
        CheckoutView.PAYMENT_TIMED_OUT,
        CheckoutView.ORDER_PLACED,
    }
)


@dataclass(frozen=True)
class CheckoutSnapshot:
    """Read-only view state for rendering."""

    view: CheckoutView
    client_status: str
    attempts_used: int
    max_attempts: int
    payment_display: PaymentDisplay | None
    error: str | None
    message: str | None
    payment_method: str | None

    @property
    def submitting(self) -> bool:
        return self.view == CheckoutView.SUBMITTING


class CheckoutViewModel:
    """
    Drives one checkout from submit to a terminal outcome.

    Cash orders finish as soon as the order exists. Bank transfer orders
    hand their payment code to a PollingController and wait for a terminal
    event. The view model owns the controller and every display timer it
    schedules; close() releases all of them.
    """

    def __init__(
        self,
        gateway: OrderGatewayPort,
        scheduler: Scheduler,
        cart: CartStore,
        *,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        success_delay: float = SUCCESS_DISPLAY_DELAY_SECONDS,
        redirect_delay: float = REDIRECT_DELAY_SECONDS,
        on_change: Callable[[], None] | None = None,
        on_finished: Callable[[], None] | None = None,
    ) -> None:
        self._gateway = gateway
        self._scheduler = scheduler
        self._cart = cart
        self._success_delay = success_delay
        self._redirect_delay = redirect_delay
        self.on_change = on_change
        self.on_finished = on_finished
        self.polling = PollingController(
            gateway,
            scheduler,
            interval=poll_interval,
            max_attempts=max_attempts,
            on_progress=self._notify,
        )
        self._view = CheckoutView.FORM
        self._session: PaymentSession | None = None
        self._payment_method: str | None = None
        self._error: str | None = None
        self._message: str | None = None
        self._display_timers: list[TimerHandle] = []
        self._closed = False

    @property
    def view(self) -> CheckoutView:
        return self._view

    @property
    def session(self) -> PaymentSession | None:
        return self._session

    @property
    def _db_path(self) -> str | None:
        return self._cart.db_path

    def snapshot(self) -> CheckoutSnapshot:
        session = self._session
        return CheckoutSnapshot(
            view=self._view,
            client_status=client_status(session.state if session else None, self.polling.in_flight),
            attempts_used=self.polling.attempts_used,
            max_attempts=self.polling.max_attempts,
            payment_display=session.display if session else None,
            error=self._error,
            message=self._message,
            payment_method=self._payment_method,
        )

    async def submit(self, form: DeliveryForm, cart_items: Sequence[CartItem], payment_method: str) -> bool:
        """Validate, create the order and start the matching payment flow."""
        if self._closed or self._view != CheckoutView.FORM:
            logger.debug("submit_ignored view=%s closed=%s", self._view.value, self._closed)
            return False

        payload, error = build_order_payload(form, cart_items, payment_method)
        if payload is None:
            self._error = error
            self._message = None
            logger.info("submit_invalid reason=%r", error)
            self._notify()
            return False

        self._payment_method = payment_method
        self._view = CheckoutView.SUBMITTING
        self._error = None
        self._message = None
        self._notify()

        try:
            result = await self._gateway.create_order(payload)
        except GatewayError as exc:
            logger.warning("create_order_failed status=%s error=%s", exc.status, exc.message)
            return self._back_to_form(exc.message or MESSAGES["create_failed"])
        except Exception:
            logger.exception("create_order_failed")
            return self._back_to_form(MESSAGES["create_failed"])

        if not result.success or not isinstance(result.data, dict):
            logger.warning("create_order_rejected message=%r", result.message)
            return self._back_to_form(result.message or MESSAGES["create_failed"])

        try:
            order = Order.from_api(result.data, payload)
        except ValueError as exc:
            logger.warning("create_order_unparsed error=%s", exc)
            return self._back_to_form(MESSAGES["create_failed"])

        logger.info("order_created order_id=%s order_code=%s method=%s", order.order_id, order.order_code, payment_method)
        if self._closed:
            logger.warning("order_created_after_close order_id=%s", order.order_id)
            return False

        if payment_method == PAYMENT_METHOD_CASH:
            self._place_cash_order(order)
            return True
        return self._await_payment(order)

    async def cancel(self) -> None:
        """Abandon the pending payment and release the order server-side."""
        session = self._session
        if session is None or self._view != CheckoutView.AWAITING_PAYMENT:
            return

        # Stop first so no in-flight poll can act on a session being cancelled.
        self.polling.stop()
        self._session = session.advance(PaymentEvent.CANCEL)
        self._view = CheckoutView.CANCELLING
        self._record_outcome(session.order.order_id, SessionState.CANCELLED)
        self._notify()

        try:
            await self._gateway.cancel_order(session.order.order_id, CANCEL_REASON_USER_ABANDONED)
        except GatewayError as exc:
            logger.warning(
                "cancel_order_failed order_id=%s status=%s error=%s", session.order.order_id, exc.status, exc.message
            )
        except Exception:
            logger.exception("cancel_order_failed order_id=%s", session.order.order_id)
        else:
            logger.info("order_cancelled order_id=%s", session.order.order_id)

        self._session = None
        self._view = CheckoutView.FORM
        self._error = None
        self._message = None
        self._notify()

    def retry_or_restart(self) -> None:
        """Return to the editable form from a finished or failed checkout."""
        if self._view not in _RESTARTABLE_VIEWS:
            return
        self.polling.stop()
        self._stop_display_timers()
        self._session = None
        self._view = CheckoutView.FORM
        self._error = None
        self._message = None
        self._notify()

    def resume(self) -> bool:
        """Pick up a payment left awaiting by a previous run."""
        if self._closed or self._view != CheckoutView.FORM:
            return False
        order = persistence.load_pending_payment(self._db_path)
        if order is None or order.payment is None:
            return False
        recorded = persistence.order_status(order.order_id, self._db_path)
        if recorded in {state.value for state in TERMINAL_STATES}:
            # Outcome was recorded but the pending row outlived it.
            logger.info("pending_payment_stale order_id=%s status=%s", order.order_id, recorded)
            persistence.clear_pending_payment(self._db_path)
            return False
        logger.info("payment_resumed order_id=%s payment_code=%s", order.order_id, order.payment.payment_code)
        self._payment_method = order.payment_method
        return self._await_payment(order)

    def close(self) -> None:
        """Release the polling timer and display timers. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.polling.stop()
        self._stop_display_timers()
        logger.info("checkout_closed view=%s", self._view.value)

    def _await_payment(self, order: Order) -> bool:
        if order.payment is None:
            logger.warning("order_missing_payment order_id=%s", order.order_id)
            persistence.record_order(order, "PAYMENT_MISSING", self._db_path)
            return self._back_to_form(MESSAGES["missing_payment"])

        self._session = PaymentSession(order=order, payment=order.payment)
        persistence.save_pending_payment(order, self._db_path)
        persistence.record_order(order, SessionState.AWAITING_PAYMENT.value, self._db_path)
        self._view = CheckoutView.AWAITING_PAYMENT
        self._error = None
        self.polling.start(order.payment.payment_code, self._on_payment_event)
        self._notify()
        return True

    def _on_payment_event(self, event: PaymentEvent) -> None:
        session = self._session
        if session is None:
            return
        if session.is_terminal:
            logger.debug("payment_event_ignored event=%s state=%s", event.value, session.state.value)
            return
        updated = session.advance(event)
        self._session = updated
        self.polling.stop()
        self._record_outcome(updated.order.order_id, updated.state)
        logger.info("payment_%s order_id=%s", updated.state.value.lower(), updated.order.order_id)

        if updated.state == SessionState.CONFIRMED:
            self._cart.reset()
            self._view = CheckoutView.PAYMENT_CONFIRMED
            self._error = None
            self._message = MESSAGES["payment_confirmed"]
            self._schedule(self._success_delay, self._show_order_placed)
        elif updated.state == SessionState.FAILED:
            self._view = CheckoutView.PAYMENT_FAILED
            self._error = MESSAGES["payment_failed"]
        elif updated.state == SessionState.TIMED_OUT:
            self._view = CheckoutView.PAYMENT_TIMED_OUT
            self._error = MESSAGES["payment_timed_out"]
        self._notify()

    def _place_cash_order(self, order: Order) -> None:
        persistence.record_order(order, "PLACED", self._db_path)
        self._cart.reset()
        self._show_order_placed()

    def _show_order_placed(self) -> None:
        self._view = CheckoutView.ORDER_PLACED
        self._error = None
        self._message = MESSAGES["order_placed"]
        self._schedule(self._redirect_delay, self._finish)
        self._notify()

    def _finish(self) -> None:
        logger.info("checkout_finished")
        if self.on_finished is not None:
            self.on_finished()
        else:
            self.retry_or_restart()

    def _record_outcome(self, order_id: str, state: SessionState) -> None:
        # History first: resume() discards a pending row whose outcome is recorded.
        try:
            persistence.update_order_status(order_id, state.value, self._db_path)
            persistence.clear_pending_payment(self._db_path)
        except sqlite3.Error:
            logger.exception("record_outcome_failed order_id=%s state=%s", order_id, state.value)

    def _back_to_form(self, error: str) -> bool:
        self._session = None
        self._view = CheckoutView.FORM
        self._error = error
        self._notify()
        return False

    def _schedule(self, delay: float, callback: Callable[[], None]) -> None:
        if self._closed:
            return
        self._display_timers.append(self._scheduler.set_timer(delay, callback))

    def _stop_display_timers(self) -> None:
        timers, self._display_timers = self._display_timers, []
        for timer in timers:
            timer.stop()

    def _notify(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change()
        except Exception:
            logger.exception("change_callback_failed")
