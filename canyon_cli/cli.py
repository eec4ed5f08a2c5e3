"""
Canyon CLI - Main entry point.

Replays recorded walks through the visit tracking engine and manages the
persisted progress (statistics, resets, lookups).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from canyon_control import SimulatedLocationProvider
from canyon_engine import EngineConfig, VisitTrackingEngine
from canyon_mqtt import VisitPublisher, create_logger
from canyon_zone import Coordinate, Mode, SortState

from .replay import ReplayClock, read_track

DEFAULT_CONFIG = "config/engine.yaml"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Configure root logging (console + optional file).

    Args:
        verbose: DEBUG instead of INFO
        log_file: Optional path to log file
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr),
            *([logging.FileHandler(log_file)] if log_file else [])
        ]
    )


def load_config(config_path: Optional[str]) -> EngineConfig:
    """
    Load engine configuration, falling back to defaults.

    Raises:
        ConfigError: If the file exists but is invalid, or an explicit
            path does not exist
    """
    if config_path is None:
        default = Path(DEFAULT_CONFIG)
        return EngineConfig.from_yaml(default) if default.exists() else EngineConfig()
    return EngineConfig.from_yaml(Path(config_path))


def build_publisher(config: EngineConfig) -> Optional[VisitPublisher]:
    """Location-log publisher when a broker is configured."""
    if config.mqtt is None:
        return None
    return VisitPublisher(
        broker_host=config.mqtt.broker,
        broker_port=config.mqtt.port,
        topic=config.mqtt.topic,
        logger=create_logger(component="visit_publisher"),
        client_id=config.mqtt.client_id,
        username=config.mqtt.username,
        password=config.mqtt.password,
        qos=config.mqtt.qos,
    )


def format_structure(structure) -> str:
    flags = "".join([
        "V" if structure.visited else "-",
        "O" if structure.opened else "-",
        "♥" if structure.liked else "-",
    ])
    order = f"#{structure.visit_order}" if structure.visit_order >= 0 else ""
    return f"  [{flags}] {structure.number:>3} {structure.title} {order}".rstrip()


def print_statistics(engine: VisitTrackingEngine) -> None:
    stats = engine.statistics()
    print(f"📊 Visited:     {stats.total_visited_count}/{len(engine.structures())}")
    print(f"   Days:        {stats.distinct_day_count}")
    print(f"   Completions: {stats.all_structures_visited_count}")
    if stats.last_visit_date:
        print(f"   Last visit:  {stats.last_visit_date.isoformat()}")


def run_replay(config: EngineConfig, args) -> int:
    """Drive the engine in adventure mode with a recorded track."""
    track = read_track(Path(args.track))
    clock = ReplayClock(step_s=args.step)
    provider = SimulatedLocationProvider(auto_grant=not args.deny_permission)

    engine = VisitTrackingEngine.from_config(
        config,
        provider,
        visit_publisher=None if args.no_publish else build_publisher(config),
        clock=clock.monotonic,
        today=clock.today,
    )
    engine.start()
    try:
        engine.set_mode(Mode.ADVENTURE)
        for point in track:
            clock.advance(point.timestamp)
            provider.set_fix(point.coordinate)
            structure = engine.handle_fix(point.coordinate)
            if structure is not None:
                print(f"✅ Visited {structure.number}: {structure.title}")
    finally:
        engine.stop()

    snapshot = engine.snapshot()
    print(f"🧭 Tracking: {snapshot.tracking_state.value}, message: {snapshot.location_message.value}")
    print(
        f"   Fixes accepted: {engine.throttle.accepted_count}, "
        f"dropped: {engine.throttle.dropped_count}"
    )
    print_statistics(engine)
    return 0


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Canyon CLI - Visit tracking engine tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay a recorded walk
  canyon-cli replay tracks/morning_walk.csv

  # Progress
  canyon-cli stats
  canyon-cli visited
  canyon-cli list --search bridge --filter unvisited

  # Resets
  canyon-cli reset-visits
  canyon-cli reset-likes
  canyon-cli reset-all

  # Lookups
  canyon-cli recommend 35.3146 -120.6524
  canyon-cli nearest 35.3139 -120.6527
"""
    )

    # Global arguments
    parser.add_argument(
        "--config",
        default=None,
        help=f"Engine config YAML (default: {DEFAULT_CONFIG} if present)"
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # replay command
    replay = subparsers.add_parser('replay', help='Replay a recorded track in adventure mode')
    replay.add_argument('track', help='CSV or JSON-lines track file')
    replay.add_argument('--step', type=float, default=1.0, help='Seconds between fixes without timestamps')
    replay.add_argument('--no-publish', action='store_true', help='Skip remote location logging')
    replay.add_argument('--deny-permission', action='store_true', help='Simulate refused permissions')

    # progress commands
    subparsers.add_parser('stats', help='Show visit statistics')
    subparsers.add_parser('visited', help='List visited structures, latest first')
    list_cmd = subparsers.add_parser('list', help='List structures')
    list_cmd.add_argument('--search', default="", help='Title or number fragment')
    list_cmd.add_argument(
        '--filter',
        choices=[s.value for s in SortState],
        default=SortState.ALL.value,
        help='Structure filter'
    )

    # reset commands
    subparsers.add_parser('reset-visits', help='Clear visits (likes and completions kept)')
    subparsers.add_parser('reset-likes', help='Clear likes')
    subparsers.add_parser('reset-all', help='Remove all persisted progress')

    # lookup commands
    recommend = subparsers.add_parser('recommend', help='Suggest a mode for a position')
    recommend.add_argument('latitude', type=float)
    recommend.add_argument('longitude', type=float)

    nearest = subparsers.add_parser('nearest', help='Nearest map point and closest structures')
    nearest.add_argument('latitude', type=float)
    nearest.add_argument('longitude', type=float)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.log_file)

    try:
        config = load_config(args.config)

        if args.command == 'replay':
            return run_replay(config, args)

        engine = VisitTrackingEngine.from_config(config, SimulatedLocationProvider())

        if args.command == 'stats':
            print_statistics(engine)

        elif args.command == 'visited':
            for structure in engine.ledger.visited_structures():
                print(format_structure(structure))

        elif args.command == 'list':
            for structure in engine.filter_structures(args.search, SortState(args.filter)):
                print(format_structure(structure))

        elif args.command == 'reset-visits':
            engine.reset_visits()
            print("🔄 Visits reset")

        elif args.command == 'reset-likes':
            engine.reset_likes()
            print("🔄 Likes reset")

        elif args.command == 'reset-all':
            engine.full_reset()
            print("🗑️ All progress removed")

        elif args.command == 'recommend':
            mode = engine.recommend_mode(Coordinate(args.latitude, args.longitude))
            print(f"💡 Recommended mode: {mode.value}")

        elif args.command == 'nearest':
            here = Coordinate(args.latitude, args.longitude)
            hit = engine.nearest_landmark(here)
            label = f"structure {hit.structure}" if hit.point.is_landmark else "path point"
            print(f"📍 Map point {hit.point.number} ({label}) at {hit.distance_m:.1f} m")
            print(f"   Closest structures: {engine.closest_structures(here)}")

        engine.stop()

    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
