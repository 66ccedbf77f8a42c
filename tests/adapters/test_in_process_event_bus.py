from __future__ import annotations

from datetime import date
from decimal import Decimal

from foliotrack.adapters.eventbus.in_process import InProcessEventBus
from foliotrack.core.valuation.events import PrecomputeFailed, PrecomputeFinished, PrecomputeStarted


def test_handlers_receive_matching_events_only() -> None:
    bus = InProcessEventBus()
    started: list[PrecomputeStarted] = []
    everything: list[object] = []
    bus.subscribe(PrecomputeStarted, started.append)
    bus.subscribe(object, everything.append)

    bus.publish(PrecomputeStarted.now(1))
    bus.publish(PrecomputeFailed.now(1, "boom"))

    assert [event.run_id for event in started] == [1]
    assert [type(event) for event in everything] == [PrecomputeStarted, PrecomputeFailed]


def test_unsubscribe_stops_delivery() -> None:
    bus = InProcessEventBus()
    seen: list[object] = []
    unsubscribe = bus.subscribe(PrecomputeStarted, seen.append)

    unsubscribe()
    unsubscribe()
    bus.publish(PrecomputeStarted.now(2))

    assert seen == []


def test_failing_handler_does_not_block_others(caplog) -> None:
    bus = InProcessEventBus()
    seen: list[object] = []

    def _explode(event: object) -> None:
        raise RuntimeError("handler broke")

    bus.subscribe(PrecomputeFinished, _explode)
    bus.subscribe(PrecomputeFinished, seen.append)

    event = PrecomputeFinished.now(
        3,
        tickers=1,
        days=2,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 2),
        current_value=Decimal("1"),
    )
    bus.publish(event)

    assert seen == [event]
    assert "_explode" in caplog.text
