"""
Location Provider Contract
==========================

Bounded Context: Platform location services (GPS, permissions).

Responsibilities:
  - Report the current fix
  - Start/stop continuous updates (foreground or background intensity)
  - Ask for foreground / background permission

Design:
  - Abstract base class, one concrete in-process simulation
  - Permission requests never block: results come back through the
    listener installed with set_permission_listener()
  - Fixes are pushed by the host into VisitTrackingEngine.handle_fix()
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional, Tuple

from canyon_zone import Coordinate

logger = logging.getLogger(__name__)


class PermissionKind(str, Enum):
    """Permission levels the engine may ask for."""

    FOREGROUND = "foreground"
    BACKGROUND = "background"


class PermissionStatus(str, Enum):
    """What the platform has currently granted."""

    NOT_DETERMINED = "not_determined"
    FOREGROUND = "foreground"
    BACKGROUND = "background"
    DENIED = "denied"


PermissionListener = Callable[[PermissionKind, bool], None]


class LocationProvider(ABC):
    """
    Abstract location source.

    Implementations wrap a platform API. The engine only talks to this
    interface.
    """

    def __init__(self):
        self._permission_listener: Optional[PermissionListener] = None

    def set_permission_listener(self, listener: Optional[PermissionListener]) -> None:
        """Install the callback that receives permission results."""
        self._permission_listener = listener

    def _deliver_permission(self, kind: PermissionKind, granted: bool) -> None:
        if self._permission_listener is None:
            logger.warning(f"Permission result for {kind.value} dropped: no listener")
            return
        self._permission_listener(kind, granted)

    @property
    @abstractmethod
    def permission_status(self) -> PermissionStatus:
        """Currently granted permission level."""
        raise NotImplementedError

    @abstractmethod
    def current_fix(self) -> Optional[Coordinate]:
        """Latest known position, None when unavailable."""
        raise NotImplementedError

    @abstractmethod
    def start_updates(self, background: bool, interval_s: Optional[float] = None) -> None:
        """
        Begin (or switch) continuous updates.

        Args:
            background: Keep delivering while the app is not in front
            interval_s: Delivery interval to ask the platform for (a hint,
                fixes may still arrive faster)
        """
        raise NotImplementedError

    @abstractmethod
    def stop_updates(self) -> None:
        """Stop all updates."""
        raise NotImplementedError

    @abstractmethod
    def request_foreground_permission(self) -> None:
        """Ask for when-in-use permission (result via listener)."""
        raise NotImplementedError

    @abstractmethod
    def request_background_permission(self) -> None:
        """Ask for always permission (result via listener)."""
        raise NotImplementedError


class SimulatedLocationProvider(LocationProvider):
    """
    In-process provider for replays and tests.

    Records every call. Permission requests are either answered right
    away (auto_grant set) or held until respond() is called.

    Example:
        >>> provider = SimulatedLocationProvider(auto_grant=True)
        >>> provider.request_foreground_permission()
        >>> provider.permission_status
        <PermissionStatus.FOREGROUND: 'foreground'>
    """

    def __init__(
        self,
        auto_grant: Optional[bool] = None,
        status: PermissionStatus = PermissionStatus.NOT_DETERMINED,
    ):
        """
        Args:
            auto_grant: True/False answers requests immediately, None defers
            status: Initial permission status
        """
        super().__init__()
        self.auto_grant = auto_grant
        self._status = status
        self._fix: Optional[Coordinate] = None
        self.calls: List[Tuple[str, ...]] = []
        self.pending: List[PermissionKind] = []
        self.updating: Optional[str] = None
        self.interval_s: Optional[float] = None

    @property
    def permission_status(self) -> PermissionStatus:
        return self._status

    def set_fix(self, fix: Optional[Coordinate]) -> None:
        self._fix = fix

    def current_fix(self) -> Optional[Coordinate]:
        return self._fix

    def start_updates(self, background: bool, interval_s: Optional[float] = None) -> None:
        self.interval_s = interval_s
        self.calls.append(("start_updates", "background" if background else "foreground"))
        self.updating = "background" if background else "foreground"

    def stop_updates(self) -> None:
        self.calls.append(("stop_updates",))
        self.updating = None
        self.interval_s = None

    def request_foreground_permission(self) -> None:
        self.calls.append(("request_permission", PermissionKind.FOREGROUND.value))
        self._request(PermissionKind.FOREGROUND)

    def request_background_permission(self) -> None:
        self.calls.append(("request_permission", PermissionKind.BACKGROUND.value))
        self._request(PermissionKind.BACKGROUND)

    def _request(self, kind: PermissionKind) -> None:
        if self.auto_grant is None:
            self.pending.append(kind)
        else:
            self._answer(kind, self.auto_grant)

    def respond(self, kind: PermissionKind, granted: bool) -> None:
        """
        Answer a held request.

        Raises:
            ValueError: If no request of that kind is pending
        """
        if kind not in self.pending:
            raise ValueError(f"No pending {kind.value} permission request")
        self.pending.remove(kind)
        self._answer(kind, granted)

    def revoke(self) -> None:
        """Simulate the user revoking permission in system settings."""
        self._status = PermissionStatus.DENIED

    def _answer(self, kind: PermissionKind, granted: bool) -> None:
        if granted:
            if kind == PermissionKind.BACKGROUND:
                self._status = PermissionStatus.BACKGROUND
            elif self._status != PermissionStatus.BACKGROUND:
                self._status = PermissionStatus.FOREGROUND
        elif kind == PermissionKind.FOREGROUND:
            self._status = PermissionStatus.DENIED
        self._deliver_permission(kind, granted)

    def count(self, name: str) -> int:
        """Number of recorded calls with this name."""
        return sum(1 for call in self.calls if call[0] == name)
