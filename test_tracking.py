"""
Test Tracking State Machine
===========================

Drives TrackingStateMachine with the simulated provider and checks the
calls it makes (permission requests, start/stop of updates).

Usage:
    pytest test_tracking.py
"""

from canyon_control import (
    PermissionKind,
    PermissionStatus,
    SimulatedLocationProvider,
    TrackingState,
    TrackingStateMachine,
)
from canyon_zone import Mode, ProximityTier


def make_machine(**provider_kwargs):
    provider = SimulatedLocationProvider(**provider_kwargs)
    snapshots = []
    machine = TrackingStateMachine(provider, listener=snapshots.append)
    provider.set_permission_listener(machine.on_permission_result)
    return machine, provider, snapshots


def test_starts_inactive():
    machine, provider, _ = make_machine()
    assert machine.state == TrackingState.INACTIVE
    assert machine.mode == Mode.INITIAL
    assert machine.tier is None
    assert provider.calls == []


def test_adventure_asks_foreground_then_starts_updates():
    machine, provider, snapshots = make_machine()

    machine.set_mode(Mode.ADVENTURE)
    assert machine.state == TrackingState.FOREGROUND_ONLY
    assert provider.calls == [("request_permission", "foreground")]
    assert provider.updating is None
    assert machine.snapshot().pending == frozenset({PermissionKind.FOREGROUND})

    provider.respond(PermissionKind.FOREGROUND, True)
    assert provider.updating == "foreground"
    assert machine.snapshot().acquiring == "foreground"
    assert snapshots[-1].state == TrackingState.FOREGROUND_ONLY


def test_already_granted_skips_request():
    machine, provider, _ = make_machine(status=PermissionStatus.BACKGROUND)

    machine.set_mode(Mode.ADVENTURE)
    machine.on_tier(ProximityTier.INSIDE)

    assert machine.state == TrackingState.BACKGROUND
    assert provider.count("request_permission") == 0
    assert provider.calls == [("start_updates", "foreground"), ("start_updates", "background")]


def test_requests_interval_per_state():
    provider = SimulatedLocationProvider(status=PermissionStatus.BACKGROUND)
    machine = TrackingStateMachine(provider, foreground_interval_s=2.0, background_interval_s=30.0)

    machine.set_mode(Mode.ADVENTURE)
    assert provider.interval_s == 2.0

    machine.on_tier(ProximityTier.INSIDE)
    assert provider.updating == "background"
    assert provider.interval_s == 30.0

    machine.set_mode(Mode.VIRTUAL_TOUR)
    assert provider.updating is None
    assert provider.interval_s is None


def test_escalates_near_the_canyon_and_coalesces_requests():
    machine, provider, _ = make_machine()
    machine.set_mode(Mode.ADVENTURE)
    provider.respond(PermissionKind.FOREGROUND, True)

    machine.on_tier(ProximityTier.APPROACHING)
    machine.on_tier(ProximityTier.INSIDE)
    machine.on_tier(ProximityTier.INSIDE)

    # Foreground + one background request, still waiting for the answer
    assert provider.count("request_permission") == 2
    assert machine.state == TrackingState.FOREGROUND_ONLY

    provider.respond(PermissionKind.BACKGROUND, True)
    assert machine.state == TrackingState.BACKGROUND
    assert provider.updating == "background"


def test_far_drops_back_to_foreground():
    machine, provider, _ = make_machine(auto_grant=True)
    machine.set_mode(Mode.ADVENTURE)
    machine.on_tier(ProximityTier.APPROACHING)
    assert machine.state == TrackingState.BACKGROUND

    machine.on_tier(ProximityTier.FAR)
    assert machine.state == TrackingState.FOREGROUND_ONLY
    assert provider.updating == "foreground"

    # Background already granted: no new request on the way back in
    requests = provider.count("request_permission")
    machine.on_tier(ProximityTier.INSIDE)
    assert machine.state == TrackingState.BACKGROUND
    assert provider.count("request_permission") == requests


def test_declined_background_stays_foreground():
    machine, provider, snapshots = make_machine()
    machine.set_mode(Mode.ADVENTURE)
    provider.respond(PermissionKind.FOREGROUND, True)
    machine.on_tier(ProximityTier.INSIDE)

    provider.respond(PermissionKind.BACKGROUND, False)
    assert machine.state == TrackingState.FOREGROUND_ONLY
    assert snapshots[-1].background_declined
    assert not machine.permission_denied

    machine.on_tier(ProximityTier.APPROACHING)
    assert provider.count("request_permission") == 2


def test_denied_foreground_goes_inactive():
    machine, provider, _ = make_machine(auto_grant=False)

    machine.set_mode(Mode.ADVENTURE)

    assert machine.state == TrackingState.INACTIVE
    assert machine.permission_denied
    assert provider.count("start_updates") == 0

    # Fixes while denied change nothing
    machine.on_tier(ProximityTier.INSIDE)
    assert machine.state == TrackingState.INACTIVE

    # Choosing adventure again retries the permission flow
    machine.set_mode(Mode.ADVENTURE)
    assert provider.count("request_permission") == 2


def test_leaving_adventure_stops_updates_once():
    machine, provider, _ = make_machine(auto_grant=True)
    machine.set_mode(Mode.ADVENTURE)

    machine.set_mode(Mode.VIRTUAL_TOUR)
    machine.set_mode(Mode.VIRTUAL_TOUR)
    machine.set_mode(Mode.INITIAL)

    assert machine.state == TrackingState.INACTIVE
    assert provider.count("stop_updates") == 1
    assert provider.updating is None


def test_late_grant_outside_adventure_is_ignored():
    machine, provider, _ = make_machine()
    machine.set_mode(Mode.ADVENTURE)
    machine.set_mode(Mode.VIRTUAL_TOUR)

    provider.respond(PermissionKind.FOREGROUND, True)

    assert machine.state == TrackingState.INACTIVE
    assert provider.count("start_updates") == 0
    assert machine.snapshot().pending == frozenset()


def test_revoked_permission():
    machine, provider, snapshots = make_machine(auto_grant=True)
    machine.set_mode(Mode.ADVENTURE)
    machine.on_tier(ProximityTier.INSIDE)

    provider.revoke()
    machine.on_permission_revoked()

    assert machine.state == TrackingState.INACTIVE
    assert machine.permission_denied
    assert provider.updating is None
    assert snapshots[-1].permission_denied


def test_no_fix_keeps_tier():
    machine, _, _ = make_machine(auto_grant=True)
    machine.set_mode(Mode.ADVENTURE)
    machine.on_tier(ProximityTier.APPROACHING)

    machine.on_tier(None)

    assert machine.tier == ProximityTier.APPROACHING
    assert machine.state == TrackingState.BACKGROUND
