import logging

from album_orders.events.bus import CHECKOUT_COMPLETED, PAYMENT_FAILED, InProcessEventBus, RecordingEventSink


def test_subscribers_receive_matching_events():
    bus = InProcessEventBus()
    received = []
    bus.subscribe(CHECKOUT_COMPLETED, lambda name, payload: received.append(("exact", name, payload)))
    bus.subscribe("*", lambda name, payload: received.append(("all", name, payload)))

    bus.emit(CHECKOUT_COMPLETED, {"order_ids": ["a"]})
    bus.emit(PAYMENT_FAILED, {"order_ids": ["b"]})

    assert received == [
        ("exact", CHECKOUT_COMPLETED, {"order_ids": ["a"]}),
        ("all", CHECKOUT_COMPLETED, {"order_ids": ["a"]}),
        ("all", PAYMENT_FAILED, {"order_ids": ["b"]}),
    ]


def test_failing_subscriber_is_logged_and_others_still_run(caplog):
    bus = InProcessEventBus()
    received = []

    def _broken(name, payload):
        raise RuntimeError("smtp down")

    bus.subscribe(CHECKOUT_COMPLETED, _broken)
    bus.subscribe(CHECKOUT_COMPLETED, lambda name, payload: received.append(name))

    with caplog.at_level(logging.ERROR, logger="album_orders.events.bus"):
        bus.emit(CHECKOUT_COMPLETED, {})

    assert received == [CHECKOUT_COMPLETED]
    assert "handler failed" in caplog.text


def test_recording_sink_copies_payloads():
    sink = RecordingEventSink()
    payload = {"order_ids": ["a"]}
    sink.emit(CHECKOUT_COMPLETED, payload)
    payload["order_ids"] = []
    assert sink.events == [(CHECKOUT_COMPLETED, {"order_ids": ["a"]})]
    assert sink.names() == [CHECKOUT_COMPLETED]
