"""
Test Subscription Registry and Update Throttle
==============================================

Usage:
    pytest test_registry.py
"""

import pytest

from canyon_control import SubscriptionRegistry, TopicNotAvailableError
from canyon_zone import UpdateThrottle


def test_publish_reaches_subscribers():
    registry = SubscriptionRegistry()
    registry.register("statistics", "Visit counters changed")
    received = []

    unsubscribe = registry.subscribe("statistics", received.append)
    assert registry.publish("statistics", 1) == 1

    unsubscribe()
    unsubscribe()
    assert registry.publish("statistics", 2) == 0
    assert received == [1]


def test_failing_subscriber_does_not_block_others():
    registry = SubscriptionRegistry()
    registry.register("mode", "User mode changed")
    received = []

    def broken(_payload):
        raise RuntimeError("boom")

    registry.subscribe("mode", broken)
    registry.subscribe("mode", received.append)

    assert registry.publish("mode", "adventure") == 1
    assert received == ["adventure"]


def test_unknown_and_duplicate_topics():
    registry = SubscriptionRegistry()
    registry.register("mode", "User mode changed")

    with pytest.raises(ValueError):
        registry.register("mode", "again")
    with pytest.raises(TopicNotAvailableError):
        registry.publish("missing", None)

    assert registry.is_available("mode")
    assert registry.available_topics == {"mode"}
    assert registry.get_help() == {"mode": "User mode changed"}
    assert registry.subscriber_count("mode") == 0


class Ticker:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_throttle_drops_inside_interval():
    clock = Ticker()
    throttle = UpdateThrottle(1.0, clock=clock)

    assert throttle.accept()
    clock.now = 0.5
    assert not throttle.accept()
    clock.now = 1.0
    assert throttle.accept()
    # Watermark is the last accepted update, not the last attempt
    clock.now = 1.9
    assert not throttle.accept()
    clock.now = 2.0
    assert throttle.accept()

    assert throttle.accepted_count == 3
    assert throttle.dropped_count == 2


def test_throttle_interval_change_and_reset():
    clock = Ticker()
    throttle = UpdateThrottle(1.0, clock=clock)
    throttle.accept()

    throttle.interval_s = 60.0
    clock.now = 30.0
    assert not throttle.accept()

    throttle.reset()
    assert throttle.accept()

    with pytest.raises(ValueError):
        throttle.interval_s = -1
