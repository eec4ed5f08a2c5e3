"""
Tracking State Machine
======================

Bounded Context: How hard the device listens for position updates.

States:
  INACTIVE         no acquisition
  FOREGROUND_ONLY  updates while the app is open
  BACKGROUND       updates continue with the app closed

Transitions:
  INACTIVE        --mode ADVENTURE-->        FOREGROUND_ONLY (ask foreground)
  FOREGROUND_ONLY --tier APPROACHING/INSIDE--> BACKGROUND (ask background,
                                               stays put if declined)
  BACKGROUND      --tier FAR-->              FOREGROUND_ONLY
  any             --mode VIRTUAL_TOUR/INITIAL--> INACTIVE
  any             --permission denied/revoked--> INACTIVE

Design:
  - Never blocks: permission results arrive via on_permission_result()
  - Requests of a kind already in flight are not re-issued
  - start/stop of acquisition is idempotent
  - Provider side effects run last in each transition so a provider that
    answers synchronously sees consistent state

Threading: NOT thread-safe on its own (the engine holds its lock around
every call).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Optional, Set

from canyon_zone import Mode, ProximityTier
from canyon_control.provider import LocationProvider, PermissionKind, PermissionStatus

logger = logging.getLogger(__name__)

NEAR_TIERS = (ProximityTier.APPROACHING, ProximityTier.INSIDE)


class TrackingState(str, Enum):
    """Acquisition intensity."""

    INACTIVE = "inactive"
    FOREGROUND_ONLY = "foreground_only"
    BACKGROUND = "background"


@dataclass(frozen=True)
class TrackingSnapshot:
    """
    Immutable view of the state machine.

    Attributes:
        state: Current tracking state
        mode: Current user mode
        tier: Last known proximity tier (None before the first fix)
        permission_denied: Foreground permission refused or revoked
        background_declined: Background escalation refused this session
        acquiring: "foreground", "background" or None
        pending: Permission kinds awaiting an answer
    """

    state: TrackingState
    mode: Mode
    tier: Optional[ProximityTier]
    permission_denied: bool
    background_declined: bool
    acquiring: Optional[str]
    pending: FrozenSet[PermissionKind]


class TrackingStateMachine:
    """
    Drives the LocationProvider from mode, tier and permission events.

    Usage:
        machine = TrackingStateMachine(provider, listener=on_change)
        machine.set_mode(Mode.ADVENTURE)
        machine.on_tier(ProximityTier.APPROACHING)
        machine.on_permission_result(PermissionKind.BACKGROUND, True)
    """

    def __init__(
        self,
        provider: LocationProvider,
        listener: Optional[Callable[[TrackingSnapshot], None]] = None,
        foreground_interval_s: float = 1.0,
        background_interval_s: float = 60.0,
    ):
        """
        Args:
            provider: Location source to drive
            listener: Called with a snapshot whenever the state or the
                permission flags change
            foreground_interval_s: Update interval requested in foreground
            background_interval_s: Coarser interval requested in background
        """
        self._provider = provider
        self._listener = listener
        self._intervals = {False: foreground_interval_s, True: background_interval_s}

        self._state = TrackingState.INACTIVE
        self._mode = Mode.INITIAL
        self._tier: Optional[ProximityTier] = None
        self._permission_denied = False
        self._background_declined = False
        self._acquiring: Optional[str] = None
        self._pending: Set[PermissionKind] = set()

    def __repr__(self) -> str:
        return f"TrackingStateMachine(state={self._state.value}, mode={self._mode.value})"

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def tier(self) -> Optional[ProximityTier]:
        return self._tier

    @property
    def permission_denied(self) -> bool:
        return self._permission_denied

    @property
    def is_active(self) -> bool:
        return self._state != TrackingState.INACTIVE

    def snapshot(self) -> TrackingSnapshot:
        return TrackingSnapshot(
            state=self._state,
            mode=self._mode,
            tier=self._tier,
            permission_denied=self._permission_denied,
            background_declined=self._background_declined,
            acquiring=self._acquiring,
            pending=frozenset(self._pending),
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def set_mode(self, mode: Mode) -> None:
        """
        User switched mode.

        Re-selecting ADVENTURE while inactive (e.g. after a denial)
        re-attempts the permission flow.
        """
        if mode == self._mode and (mode != Mode.ADVENTURE or self.is_active):
            return

        self._mode = mode
        if mode != Mode.ADVENTURE:
            self._background_declined = False
            self._change_state(TrackingState.INACTIVE)
            self._release()
            return

        self._permission_denied = False
        self._background_declined = False
        self._change_state(TrackingState.FOREGROUND_ONLY, force_notify=True)

        if self._has_foreground_permission():
            self._acquire(background=False)
            self._maybe_escalate()
        else:
            self._request(PermissionKind.FOREGROUND)

    def on_tier(self, tier: Optional[ProximityTier]) -> None:
        """
        Latest proximity tier from the classifier.

        None (no fix) leaves the state untouched.
        """
        if tier is None:
            return
        self._tier = tier
        if self._mode != Mode.ADVENTURE or not self.is_active:
            return

        if self._state == TrackingState.BACKGROUND and tier == ProximityTier.FAR:
            logger.info("📉 Left background range, dropping to foreground tracking")
            self._change_state(TrackingState.FOREGROUND_ONLY)
            self._acquire(background=False)
        elif self._state == TrackingState.FOREGROUND_ONLY and tier in NEAR_TIERS:
            self._maybe_escalate()

    def on_permission_result(self, kind: PermissionKind, granted: bool) -> None:
        """Answer to an earlier permission request."""
        self._pending.discard(kind)

        if self._mode != Mode.ADVENTURE:
            logger.debug(f"Ignoring {kind.value} permission result outside adventure mode")
            return

        if kind == PermissionKind.FOREGROUND:
            if not granted:
                logger.warning("🚫 Foreground location permission denied")
                self._deny()
                return
            if self._state == TrackingState.FOREGROUND_ONLY:
                self._acquire(background=False)
                self._maybe_escalate()
            return

        # Background result
        if not granted:
            logger.info("Background permission declined, staying in foreground")
            self._background_declined = True
            self._notify()
            return
        if self._state == TrackingState.FOREGROUND_ONLY and self._tier in NEAR_TIERS:
            self._enter_background()

    def on_permission_revoked(self) -> None:
        """User withdrew permission outside the app."""
        logger.warning("🚫 Location permission revoked")
        self._deny()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _has_foreground_permission(self) -> bool:
        return self._provider.permission_status in (
            PermissionStatus.FOREGROUND, PermissionStatus.BACKGROUND
        )

    def _maybe_escalate(self) -> None:
        if self._state != TrackingState.FOREGROUND_ONLY or self._acquiring is None:
            return
        if self._tier not in NEAR_TIERS or self._background_declined:
            return
        if self._provider.permission_status == PermissionStatus.BACKGROUND:
            self._enter_background()
        else:
            self._request(PermissionKind.BACKGROUND)

    def _enter_background(self) -> None:
        logger.info("📈 Entering background tracking")
        self._change_state(TrackingState.BACKGROUND)
        self._acquire(background=True)

    def _deny(self) -> None:
        self._permission_denied = True
        self._change_state(TrackingState.INACTIVE, force_notify=True)
        self._release()

    def _request(self, kind: PermissionKind) -> None:
        if kind in self._pending:
            logger.debug(f"{kind.value} permission request already in flight")
            return
        self._pending.add(kind)
        if kind == PermissionKind.FOREGROUND:
            self._provider.request_foreground_permission()
        else:
            self._provider.request_background_permission()

    def _acquire(self, background: bool) -> None:
        intensity = "background" if background else "foreground"
        if self._acquiring == intensity:
            return
        self._acquiring = intensity
        self._provider.start_updates(background=background, interval_s=self._intervals[background])

    def _release(self) -> None:
        if self._acquiring is None:
            return
        self._acquiring = None
        self._provider.stop_updates()

    def _change_state(self, new_state: TrackingState, force_notify: bool = False) -> None:
        if new_state == self._state and not force_notify:
            return
        old_state = self._state
        self._state = new_state
        if old_state != new_state:
            logger.info(f"Tracking state {old_state.value} -> {new_state.value}")
        self._notify()

    def _notify(self) -> None:
        if self._listener is not None:
            self._listener(self.snapshot())
