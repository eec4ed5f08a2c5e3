"""
Configuration schema for the visit tracking engine.

This module defines the configuration structure: the safe zone and its
radii, update intervals, dataset location, storage backend, and the
optional MQTT broker used for remote location logging.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from canyon_engine.errors import ConfigError
from canyon_zone import Coordinate, Region


@dataclass(frozen=True)
class RegionConfig:
    """Safe zone corners, center and radii (defaults: Poly Canyon)."""

    bottom_left: Tuple[float, float] = (35.31214, -120.65529)
    top_right: Tuple[float, float] = (35.31813, -120.65110)
    center: Tuple[float, float] = (35.31461, -120.65238)
    background_radius_m: float = 500.34
    recommendation_radius_m: float = 28280.0
    almost_there_radius_m: float = 370.0
    visit_radius_m: float = 20.0

    def __post_init__(self):
        """Validate region configuration."""
        for name in ('bottom_left', 'top_right', 'center'):
            value = getattr(self, name)
            if len(value) != 2:
                raise ValueError(f"{name} must be [latitude, longitude], got {value}")

        if self.visit_radius_m >= self.background_radius_m:
            raise ValueError(
                f"visit_radius_m ({self.visit_radius_m}) must be smaller than "
                f"background_radius_m ({self.background_radius_m})"
            )

    def to_region(self) -> Region:
        """Build the geometry object (corners normalized)."""
        return Region.from_corners(
            Coordinate(*self.bottom_left),
            Coordinate(*self.top_right),
            center=Coordinate(*self.center),
            background_radius_m=self.background_radius_m,
            recommendation_radius_m=self.recommendation_radius_m,
            almost_there_radius_m=self.almost_there_radius_m,
            visit_radius_m=self.visit_radius_m,
        )


@dataclass(frozen=True)
class IntervalConfig:
    """
    Update intervals in seconds.

    foreground_s is the drop interval for processed fixes in every
    tracking state. background_s is only requested from the provider
    while tracking in the background.
    """

    foreground_s: float = 1.0
    background_s: float = 60.0

    def __post_init__(self):
        """Validate intervals."""
        if self.foreground_s < 0 or self.background_s < 0:
            raise ValueError(
                f"Intervals must be >= 0, got foreground={self.foreground_s}, "
                f"background={self.background_s}"
            )


@dataclass(frozen=True)
class StorageConfig:
    """Where progress is persisted."""

    backend: str = "file"  # "file" or "memory"
    directory: Path = Path("~/.canyon")

    def __post_init__(self):
        """Validate storage configuration."""
        valid_backends = {"file", "memory"}
        if self.backend not in valid_backends:
            raise ValueError(
                f"Invalid storage backend: {self.backend}. "
                f"Must be one of {valid_backends}"
            )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration for location logs."""

    broker: str
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 0
    topic: str = "canyon/data/user_locations"
    client_id: str = "canyon_visit_publisher"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )


@dataclass(frozen=True)
class EngineConfig:
    """
    Main configuration for VisitTrackingEngine.

    Loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    dataset_path: Path = Path("data/dataset.json")
    region: RegionConfig = field(default_factory=RegionConfig)
    intervals: IntervalConfig = field(default_factory=IntervalConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    mqtt: Optional[MQTTConfig] = None
    publish_queue_size: int = 256

    def __post_init__(self):
        """Validate engine configuration."""
        if self.publish_queue_size < 1:
            raise ValueError(
                f"publish_queue_size must be >= 1, got {self.publish_queue_size}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "EngineConfig":
        """
        Build from a parsed YAML mapping.

        Relative paths are resolved against base_dir when given.

        Raises:
            ConfigError: On unknown keys or invalid values
        """
        data = data or {}
        try:
            region = RegionConfig(**{
                key: tuple(value) if key in ('bottom_left', 'top_right', 'center') else value
                for key, value in (data.get("region") or {}).items()
            })
            intervals = IntervalConfig(**(data.get("intervals") or {}))

            storage_data = dict(data.get("storage") or {})
            if "directory" in storage_data:
                storage_data["directory"] = _resolve(Path(storage_data["directory"]), base_dir)
            storage = StorageConfig(**storage_data)

            mqtt_data = data.get("mqtt")
            mqtt = MQTTConfig(**mqtt_data) if mqtt_data else None

            dataset_path = _resolve(Path(data.get("dataset_path", "data/dataset.json")), base_dir)

            return cls(
                dataset_path=dataset_path,
                region=region,
                intervals=intervals,
                storage=storage,
                mqtt=mqtt,
                publish_queue_size=data.get("publish_queue_size", 256),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"Invalid engine configuration: {e}") from e

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "EngineConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            dataset_path: "data/dataset.json"

            region:
              bottom_left: [35.31214, -120.65529]
              top_right: [35.31813, -120.65110]
              center: [35.31461, -120.65238]
              background_radius_m: 500.34
              recommendation_radius_m: 28280
              visit_radius_m: 20

            intervals:
              foreground_s: 1.0
              background_s: 60.0

            storage:
              backend: "file"
              directory: "~/.canyon"

            mqtt:
              broker: "localhost"
              port: 1883
              topic: "canyon/data/user_locations"
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise ConfigError(f"Config file not found: {yaml_path}")

        try:
            with open(yaml_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {yaml_path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"Top level of {yaml_path} must be a mapping")

        return cls.from_dict(data or {}, base_dir=yaml_path.parent)


def _resolve(path: Path, base_dir: Optional[Path]) -> Path:
    path = path.expanduser()
    if base_dir is not None and not path.is_absolute():
        return base_dir / path
    return path
