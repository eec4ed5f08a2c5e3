"""
Visit Tracking Engine - composition root of the location pipeline.

This module provides the VisitTrackingEngine class which turns a stream
of position fixes into tracking state, nearest-landmark resolutions,
recorded visits and persisted progress.

Pipeline (per fix):
    rate limit → classify tier → state machine → resolve nearest point
    → record visit (adventure mode, inside the safe zone, within the
      visit radius) → persist → notify subscribers

Threading Model:
- Host thread(s): deliver fixes and permission results (serialized by
  one re-entrant lock, so a provider may answer synchronously)
- Publisher thread (ours): drains the location-log queue to MQTT
"""

import logging
import queue
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional

from canyon_control import (
    LocationProvider,
    PermissionKind,
    SubscriptionRegistry,
    TrackingSnapshot,
    TrackingState,
    TrackingStateMachine,
)
from canyon_engine.config import EngineConfig, IntervalConfig
from canyon_engine.dataset import Dataset, DatasetLoader
from canyon_engine.errors import EmptyLandmarkSetError, NoFixError, PermissionDeniedError
from canyon_engine.storage import FileStorage, KeyValueStorage, MemoryStorage
from canyon_engine.store import DataStore, LoadedState
from canyon_mqtt import SCHEMA_VERSION, Timestamp, VisitLogMessage
from canyon_zone import (
    Coordinate,
    LandmarkPoint,
    LocationMessage,
    Mode,
    NON_LANDMARK,
    NearestLandmarkResolver,
    ProximityTier,
    Region,
    Resolution,
    SortState,
    Structure,
    UpdateThrottle,
    VisitLedger,
    VisitStatistics,
    ZoneClassifier,
)

logger = logging.getLogger(__name__)

TOPICS: Dict[str, str] = {
    "tracking_state": "Tracking state or permission flags changed (TrackingSnapshot)",
    "proximity_tier": "Proximity tier changed (ProximityTier)",
    "mode": "User mode changed (Mode)",
    "structures": "Structure progress changed (list of Structure)",
    "statistics": "Visit counters changed (VisitStatistics)",
    "last_visited": "Most recent visit changed (Structure or None)",
    "location_message": "Map status message changed (LocationMessage)",
}


@dataclass(frozen=True)
class EngineSnapshot:
    """
    Immutable view of the engine for UI layers.

    Attributes:
        mode: Current user mode
        tracking_state: Acquisition intensity
        tier: Last proximity tier (None before the first accepted fix)
        last_fix: Last accepted position
        permission_denied: Location permission refused or revoked
        location_message: Map status message
        statistics: Visit counters
        last_visited: Most recent visit awaiting dismissal
    """

    mode: Mode
    tracking_state: TrackingState
    tier: Optional[ProximityTier]
    last_fix: Optional[Coordinate]
    permission_denied: bool
    location_message: LocationMessage
    statistics: VisitStatistics
    last_visited: Optional[Structure]


class VisitTrackingEngine:
    """
    Location-aware visit tracking.

    Usage:
        provider = SimulatedLocationProvider(auto_grant=True)
        engine = VisitTrackingEngine.from_config(config, provider)
        engine.start()

        engine.set_mode(Mode.ADVENTURE)
        engine.handle_fix(Coordinate(35.3139, -120.6527))
        print(engine.statistics())

        engine.stop()

    Thread Safety:
    - Every public method takes self._lock (re-entrant)
    - publish_queue: Thread-safe queue.Queue
    - Subscribers are called with the lock held and may call back in
    """

    def __init__(
        self,
        region: Region,
        dataset: Dataset,
        provider: LocationProvider,
        store: Optional[DataStore] = None,
        visit_publisher=None,  # VisitPublisher
        intervals: IntervalConfig = IntervalConfig(),
        publish_queue_size: int = 256,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Args:
            region: Safe zone and radii
            dataset: Bundled structures and map points
            provider: Platform location source
            store: Persistence (None keeps progress in memory only)
            visit_publisher: Remote location logging (optional)
            intervals: Drop interval (foreground_s, in every state) and the
                update intervals requested from the provider
            publish_queue_size: Max location logs waiting for the publisher
            clock: Monotonic seconds source (rate limiting)
            today: Local calendar date source (day counting)
            now: Wall clock for location log timestamps
        """
        self.region = region
        self.dataset = dataset
        self.provider = provider
        self.store = store
        self.visit_publisher = visit_publisher
        self.intervals = intervals
        self._today = today
        self._now = now

        self._lock = threading.RLock()

        self.subscriptions = SubscriptionRegistry()
        for topic, description in TOPICS.items():
            self.subscriptions.register(topic, description)

        self.throttle = UpdateThrottle(intervals.foreground_s, clock=clock)
        self._last_fix: Optional[Coordinate] = None
        self._last_logged_index: Optional[int] = None
        self._location_message = LocationMessage.NONE
        self._almost_there = False
        self._memory_user_id: Optional[str] = None

        self._install(store.load() if store is not None else self._fresh_state())

        self.machine = TrackingStateMachine(
            provider,
            listener=self._on_tracking_change,
            foreground_interval_s=intervals.foreground_s,
            background_interval_s=intervals.background_s,
        )
        provider.set_permission_listener(self.on_permission_result)

        # Location log publishing
        self.publish_queue: "queue.Queue[VisitLogMessage]" = queue.Queue(maxsize=publish_queue_size)
        self.publisher_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()

        logger.info(
            f"VisitTrackingEngine initialized: {len(self.ledger)} structures, "
            f"{len(self.resolver)} map points"
        )

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        provider: LocationProvider,
        visit_publisher=None,
        storage: Optional[KeyValueStorage] = None,
        loader: Optional[DatasetLoader] = None,
        **kwargs,
    ) -> "VisitTrackingEngine":
        """
        Build an engine from configuration.

        Args:
            config: Validated engine configuration
            provider: Platform location source
            visit_publisher: Remote location logging (optional)
            storage: Override the configured storage backend
            loader: Dataset loader (shared cache)
        """
        dataset = (loader or DatasetLoader()).load(config.dataset_path)
        if storage is None:
            if config.storage.backend == "memory":
                storage = MemoryStorage()
            else:
                storage = FileStorage(config.storage.directory)

        return cls(
            region=config.region.to_region(),
            dataset=dataset,
            provider=provider,
            store=DataStore(storage, dataset),
            visit_publisher=visit_publisher,
            intervals=config.intervals,
            publish_queue_size=config.publish_queue_size,
            **kwargs,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Connect the location-log publisher and start its thread."""
        if self.visit_publisher is None:
            return
        if self.publisher_thread is not None:
            logger.warning("Engine already started")
            return

        if not self.visit_publisher.connect():
            logger.warning("Location-log broker unavailable, location logs will be dropped")

        self.stop_event.clear()
        self.publisher_thread = threading.Thread(
            target=self._publish_loop,
            name="VisitPublisherThread",
            daemon=True
        )
        self.publisher_thread.start()
        logger.info("Location-log publisher thread started")

    def stop(self) -> None:
        """Stop tracking, drain the publisher, retry pending writes."""
        with self._lock:
            if self.machine.mode == Mode.ADVENTURE:
                self.machine.set_mode(Mode.INITIAL)

        if self.publisher_thread is not None:
            self.stop_event.set()
            self.publisher_thread.join(timeout=5.0)
            self.publisher_thread = None
            self.visit_publisher.disconnect()
            logger.info("Location-log publisher thread stopped")

        if self.store is not None and not self.store.flush():
            logger.warning(f"Unsaved progress on shutdown: {self.store.dirty_keys}")

    def _publish_loop(self) -> None:
        """Drain the queue to MQTT. Exits once stopped and empty."""
        while True:
            try:
                message = self.publish_queue.get(timeout=0.1)
            except queue.Empty:
                if self.stop_event.is_set():
                    break
                continue

            try:
                self.visit_publisher.publish_visit_log(message)
            except Exception as e:
                logger.error(f"Error publishing location log: {e}", exc_info=True)

    # ─────────────────────────────────────────────────────────────────────
    # Events from the host / provider
    # ─────────────────────────────────────────────────────────────────────

    def set_mode(self, mode: Mode) -> None:
        """Switch between virtual tour and adventure."""
        with self._lock:
            previous = self.machine.mode
            self.machine.set_mode(mode)
            if mode != Mode.ADVENTURE:
                self.throttle.reset()
            if mode != previous:
                logger.info(f"Mode {previous.value} -> {mode.value}")
                self.subscriptions.publish("mode", mode)
            self._refresh_location_message()

    def on_permission_result(self, kind: PermissionKind, granted: bool) -> None:
        """Permission answer from the provider."""
        with self._lock:
            self.machine.on_permission_result(kind, granted)
            self._refresh_location_message()

    def on_permission_revoked(self) -> None:
        with self._lock:
            self.machine.on_permission_revoked()
            self._refresh_location_message()

    def handle_fix(self, fix: Optional[Coordinate]) -> Optional[Structure]:
        """
        Process one position update.

        Args:
            fix: New position, None when the provider has no fix

        Returns:
            Structure recorded as visited by this fix, or None
        """
        with self._lock:
            if fix is None:
                logger.debug("No fix, proximity indeterminate")
                return None
            if not self.machine.is_active:
                logger.debug("Tracking inactive, ignoring fix")
                return None
            if not self.throttle.accept():
                return None

            self._last_fix = fix
            tier = ZoneClassifier.classify(self.region, fix)
            self._almost_there = ZoneClassifier.is_almost_there(self.region, fix)
            previous_tier = self.machine.tier
            self.machine.on_tier(tier)
            if tier != previous_tier:
                self.subscriptions.publish("proximity_tier", tier)
            self._refresh_location_message()

            if self.machine.mode != Mode.ADVENTURE or tier != ProximityTier.INSIDE:
                return None

            hit = self.resolver.nearest(fix)
            if hit is None:
                return None

            self._log_location(hit)

            if hit.structure == NON_LANDMARK or hit.distance_m > self.region.visit_radius_m:
                return None

            structure = self.ledger.record_visit(hit.structure)
            if structure is not None:
                self._after_progress_change(last_visited=True)
            return structure

    # ─────────────────────────────────────────────────────────────────────
    # Ledger operations
    # ─────────────────────────────────────────────────────────────────────

    def mark_opened(self, number: int) -> bool:
        with self._lock:
            changed = self.ledger.mark_opened(number)
            if changed:
                self.subscriptions.publish("structures", self.ledger.structures())
            return changed

    def toggle_liked(self, number: int) -> Optional[bool]:
        with self._lock:
            liked = self.ledger.toggle_liked(number)
            if liked is not None:
                self.subscriptions.publish("structures", self.ledger.structures())
            return liked

    def reset_visits(self) -> None:
        with self._lock:
            self.ledger.reset_visits()
            self._after_progress_change(last_visited=True)

    def reset_likes(self) -> None:
        with self._lock:
            self.ledger.reset_likes()
            self.subscriptions.publish("structures", self.ledger.structures())

    def full_reset(self) -> None:
        """Wipe all progress (including the lifetime completion count)."""
        with self._lock:
            if self.store is not None:
                self._install(self.store.full_reset())
            else:
                self._install(self._fresh_state())
            self._last_logged_index = None
            self._after_progress_change(last_visited=True)

    def dismiss_last_visited(self) -> None:
        with self._lock:
            self.ledger.dismiss_last_visited()
            self.subscriptions.publish("last_visited", None)

    # ─────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────

    @property
    def mode(self) -> Mode:
        return self.machine.mode

    @property
    def tracking_state(self) -> TrackingState:
        return self.machine.state

    @property
    def location_message(self) -> LocationMessage:
        return self._location_message

    @property
    def last_fix(self) -> Optional[Coordinate]:
        return self._last_fix

    @property
    def last_visited(self) -> Optional[Structure]:
        with self._lock:
            number = self.ledger.last_visited
            return self.ledger.structure(number) if number is not None else None

    def subscribe(self, topic: str, handler) -> Callable[[], None]:
        """Attach a handler to a topic (see TOPICS)."""
        return self.subscriptions.subscribe(topic, handler)

    def statistics(self) -> VisitStatistics:
        with self._lock:
            return self.ledger.statistics()

    def structures(self) -> List[Structure]:
        with self._lock:
            return self.ledger.structures()

    def structure(self, number: int) -> Optional[Structure]:
        with self._lock:
            return self.ledger.structure(number)

    def points(self) -> List[LandmarkPoint]:
        with self._lock:
            return self.ledger.points()

    def recently_visited(self, limit: int = 3) -> List[Structure]:
        with self._lock:
            return self.ledger.recently_visited(limit)

    def recently_unopened(self, limit: int = 3) -> List[Structure]:
        with self._lock:
            return self.ledger.recently_unopened(limit)

    def filter_structures(self, search: str = "", sort: SortState = SortState.ALL) -> List[Structure]:
        with self._lock:
            return self.ledger.filter_structures(search, sort)

    def current_position(self) -> Coordinate:
        """
        Best known position.

        Raises:
            PermissionDeniedError: Location permission refused or revoked
            NoFixError: No position received yet
        """
        if self.machine.permission_denied:
            raise PermissionDeniedError("Location permission denied")
        fix = self._last_fix or self.provider.current_fix()
        if fix is None:
            raise NoFixError("No position available yet")
        return fix

    def nearest_landmark(self, point: Optional[Coordinate] = None) -> Resolution:
        """
        Closest map point to `point` (default: current position).

        Raises:
            EmptyLandmarkSetError: Dataset has no map points
            NoFixError / PermissionDeniedError: No position to resolve
        """
        if self.resolver.is_empty:
            raise EmptyLandmarkSetError("Dataset has no map points")
        return self.resolver.nearest(point or self.current_position())

    def closest_structures(self, point: Optional[Coordinate] = None, limit: int = 3) -> List[int]:
        """Up to `limit` distinct structure numbers, nearest first."""
        return self.resolver.closest_structures(point or self.current_position(), limit)

    def nearby_unvisited(self, limit: int = 3, point: Optional[Coordinate] = None) -> List[Structure]:
        """Unvisited structures ordered by distance from `point`."""
        origin = point or self.current_position()
        with self._lock:
            unvisited = [s for s in self.ledger.structures() if not s.visited]
        unvisited.sort(key=lambda s: self.resolver.distance_to_structure(origin, s.number))
        return unvisited[:limit]

    def distance_to(self, number: int, point: Optional[Coordinate] = None) -> float:
        """Meters to a structure's closest point (infinity if unplaced)."""
        return self.resolver.distance_to_structure(point or self.current_position(), number)

    def point_for_structure(self, number: int) -> Optional[LandmarkPoint]:
        """Map point used to place a structure in virtual tour mode."""
        return self.resolver.point_for_structure(number)

    def recommend_mode(self, point: Optional[Coordinate] = None) -> Mode:
        """Onboarding suggestion for `point` (default: provider's current fix)."""
        if point is None:
            point = self.provider.current_fix()
        return ZoneClassifier.recommend_mode(self.region, point)

    def user_id(self) -> str:
        """Per-install identifier attached to location logs."""
        if self.store is not None:
            return self.store.user_id()
        if self._memory_user_id is None:
            self._memory_user_id = str(uuid.uuid4())
        return self._memory_user_id

    def snapshot(self) -> EngineSnapshot:
        with self._lock:
            return EngineSnapshot(
                mode=self.machine.mode,
                tracking_state=self.machine.state,
                tier=self.machine.tier,
                last_fix=self._last_fix,
                permission_denied=self.machine.permission_denied,
                location_message=self._location_message,
                statistics=self.ledger.statistics(),
                last_visited=self.last_visited,
            )

    # ─────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────

    def _fresh_state(self) -> LoadedState:
        return LoadedState(
            structures=self.dataset.fresh_structures(),
            points=self.dataset.fresh_points(),
            statistics=VisitStatistics(),
            source="fresh",
        )

    def _install(self, state: LoadedState) -> None:
        self.ledger = VisitLedger(
            state.structures,
            state.points,
            statistics=state.statistics,
            store=self.store if state.persist else None,
            today=self._today,
        )
        if not state.persist:
            logger.warning("⚠️ Progress will not be saved this session")
        self.resolver = NearestLandmarkResolver(state.points)
        if self.resolver.is_empty:
            logger.warning("⚠️ Dataset has no map points, visit detection disabled")

    def _after_progress_change(self, last_visited: bool = False) -> None:
        self.resolver.update_points(self.ledger.points())
        self.subscriptions.publish("structures", self.ledger.structures())
        self.subscriptions.publish("statistics", self.ledger.statistics())
        if last_visited:
            self.subscriptions.publish("last_visited", self.last_visited)

    def _on_tracking_change(self, snapshot: TrackingSnapshot) -> None:
        self.subscriptions.publish("tracking_state", snapshot)

    def _refresh_location_message(self) -> None:
        message = ZoneClassifier.location_message(
            self.machine.permission_denied,
            self.machine.mode,
            self.machine.tier,
            almost_there=self._almost_there,
        )
        if message != self._location_message:
            self._location_message = message
            self.subscriptions.publish("location_message", message)

    def _log_location(self, hit: Resolution) -> None:
        """Queue a location log when the nearest map point changed."""
        if self.visit_publisher is None or self.publisher_thread is None:
            return
        if hit.index == self._last_logged_index:
            return

        coordinate = hit.point.coordinate
        message = VisitLogMessage(
            schema_version=SCHEMA_VERSION,
            timestamp=Timestamp.from_datetime(self._now()),
            user_id=self.user_id(),
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            point=hit.point.number,
            structure=hit.structure if hit.structure != NON_LANDMARK else None,
        )
        try:
            self.publish_queue.put_nowait(message)
            self._last_logged_index = hit.index
        except queue.Full:
            logger.warning("Location-log queue full, dropping message")
