import asyncio

import pytest

from qr_checkout.errors import GatewayError
from qr_checkout.gateway import GatewayResult
from qr_checkout.payment_session import PaymentEvent
from qr_checkout.polling import PollingController


async def _tick(scheduler, controller):
    scheduler.tick()
    await controller.wait_idle()


def test_times_out_after_max_attempts_without_extra_query(scheduler, make_gateway):
    gateway = make_gateway(status_responses=["PENDING"] * 10)
    events = []

    async def scenario():
        controller = PollingController(gateway, scheduler, interval=5, max_attempts=3)
        controller.start("PAY123", events.append)
        for _ in range(3):
            await _tick(scheduler, controller)
        assert events == [PaymentEvent.TIME_OUT]
        assert not controller.is_active
        assert scheduler.active_intervals() == []

        await _tick(scheduler, controller)
        return controller

    controller = asyncio.run(scenario())
    assert events == [PaymentEvent.TIME_OUT]
    assert controller.attempts_used == 3
    assert len(gateway.status_calls) == 2


def test_transport_error_is_inconclusive(scheduler, make_gateway):
    gateway = make_gateway(status_responses=[GatewayError(500, "Network error"), "PAID"])
    events = []

    async def scenario():
        controller = PollingController(gateway, scheduler, max_attempts=60)
        controller.start("PAY123", events.append)
        await _tick(scheduler, controller)
        assert events == []
        assert controller.is_active
        await _tick(scheduler, controller)
        return controller

    controller = asyncio.run(scenario())
    assert events == [PaymentEvent.CONFIRM]
    assert controller.attempts_used == 2
    assert gateway.status_calls == ["PAY123", "PAY123"]
    assert scheduler.active_intervals() == []


def test_unexpected_exception_and_bad_body_are_inconclusive(scheduler, make_gateway):
    gateway = make_gateway(
        status_responses=[
            RuntimeError("boom"),
            GatewayResult(False, None, "Unexpected payment status response"),
            GatewayResult(True, {"paymentCode": "PAY123"}, "no status"),
            "EXPIRED",
        ]
    )
    events = []

    async def scenario():
        controller = PollingController(gateway, scheduler, max_attempts=60)
        controller.start("PAY123", events.append)
        for _ in range(4):
            await _tick(scheduler, controller)

    asyncio.run(scenario())
    assert events == [PaymentEvent.FAIL]
    assert len(gateway.status_calls) == 4


def test_payment_status_field_name_is_accepted(scheduler, make_gateway):
    gateway = make_gateway(status_responses=[GatewayResult(True, {"paymentStatus": "COMPLETED"}, "ok")])
    events = []

    async def scenario():
        controller = PollingController(gateway, scheduler)
        controller.start("PAY123", events.append)
        await _tick(scheduler, controller)

    asyncio.run(scenario())
    assert events == [PaymentEvent.CONFIRM]


def test_start_twice_keeps_one_timer(scheduler, make_gateway):
    gateway = make_gateway()

    async def scenario():
        controller = PollingController(gateway, scheduler, max_attempts=60)
        controller.start("PAY123", lambda event: None)
        controller.start("PAY456", lambda event: None)
        assert len(scheduler.active_intervals()) == 1

        for _ in range(3):
            await _tick(scheduler, controller)
        return controller

    controller = asyncio.run(scenario())
    assert controller.attempts_used == 3
    assert gateway.status_calls == ["PAY456"] * 3


def test_stop_is_idempotent_and_safe_when_idle(scheduler, make_gateway):
    controller = PollingController(make_gateway(), scheduler)
    controller.stop()
    controller.stop()
    assert not controller.is_active


def test_context_manager_exit_stops_timer(scheduler, make_gateway):
    async def scenario():
        with PollingController(make_gateway(), scheduler) as controller:
            controller.start("PAY123", lambda event: None)
            assert controller.is_active
        return controller

    controller = asyncio.run(scenario())
    assert not controller.is_active
    assert scheduler.active_intervals() == []


def test_empty_payment_code_is_rejected(scheduler, make_gateway):
    controller = PollingController(make_gateway(), scheduler)
    with pytest.raises(ValueError):
        controller.start("", lambda event: None)
    assert scheduler.timers == []


def test_first_terminal_result_wins_when_queries_overlap(scheduler):
    gates = []
    events = []

    class SlowGateway:
        async def query_payment_status(self, payment_code):
            future = asyncio.get_running_loop().create_future()
            gates.append(future)
            status = await future
            return GatewayResult(True, {"status": status}, "ok")

    async def scenario():
        controller = PollingController(SlowGateway(), scheduler)
        controller.start("PAY123", events.append)
        scheduler.tick()
        scheduler.tick()
        await asyncio.sleep(0)
        assert len(gates) == 2
        assert controller.in_flight

        gates[1].set_result("PAID")
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        if not gates[0].done():
            gates[0].set_result("FAILED")
        await controller.wait_idle()
        return controller

    controller = asyncio.run(scenario())
    assert events == [PaymentEvent.CONFIRM]
    assert not controller.in_flight


def test_stop_discards_late_response(scheduler):
    gates = []
    events = []

    class SlowGateway:
        async def query_payment_status(self, payment_code):
            future = asyncio.get_running_loop().create_future()
            gates.append(future)
            return GatewayResult(True, {"status": await future}, "ok")

    async def scenario():
        controller = PollingController(SlowGateway(), scheduler)
        controller.start("PAY123", events.append)
        scheduler.tick()
        await asyncio.sleep(0)
        controller.stop()
        if not gates[0].done():
            gates[0].set_result("PAID")
        await controller.wait_idle()

    asyncio.run(scenario())
    assert events == []


def test_callback_errors_do_not_escape_tick(scheduler, make_gateway):
    gateway = make_gateway(status_responses=["PAID"])

    def explode(event):
        raise RuntimeError("listener failed")

    async def scenario():
        controller = PollingController(gateway, scheduler)
        controller.start("PAY123", explode)
        await _tick(scheduler, controller)
        return controller

    controller = asyncio.run(scenario())
    assert not controller.is_active
