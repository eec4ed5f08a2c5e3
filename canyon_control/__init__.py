"""
canyon_control - Tracking control for the visit engine

Bounded Context: Location acquisition and change notification
Responsibilities:
  - Decide how hard to listen for position updates (state machine)
  - Talk to the platform location provider (permissions, updates)
  - Publish state changes to subscribers

Architecture:
  - LocationProvider: Abstract platform boundary (+ simulated provider)
  - TrackingStateMachine: INACTIVE / FOREGROUND_ONLY / BACKGROUND
  - SubscriptionRegistry: Explicit observable topics

Design Philosophy:
  - Non-blocking (permission results are events, not awaits)
  - Idempotent side effects (no duplicate start/stop/request)
  - Explicit registration (fail-fast on unknown topics)
"""

from .provider import (
    LocationProvider,
    SimulatedLocationProvider,
    PermissionKind,
    PermissionStatus,
)
from .registry import SubscriptionRegistry, TopicNotAvailableError
from .tracking import TrackingStateMachine, TrackingState, TrackingSnapshot

__all__ = [
    "LocationProvider",
    "SimulatedLocationProvider",
    "PermissionKind",
    "PermissionStatus",
    "SubscriptionRegistry",
    "TopicNotAvailableError",
    "TrackingStateMachine",
    "TrackingState",
    "TrackingSnapshot",
]
