"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Typed event names for the remote visit-logging path.

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, visit, error
    category: connected, publish, log
    action: success, failed, serialized

Example Log Query (CloudWatch Insights):
    fields @timestamp, event, message, metadata.topic
    | filter event = "mqtt.publish.failed"
    | stats count() by bin(1h)
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: MQTT broker interactions
    - visit.*: Visit logging pipeline
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost or closed."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message handed to the broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication refused (not connected, bad rc)."""

    # ========== Visit Events ==========
    VISIT_LOG_SERIALIZED = "visit.log.serialized"
    """Location log message serialized to JSON."""

    # ========== Error Events ==========
    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize message to JSON."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""


# Event categories for filtering
MQTT_EVENTS = {
    LogEvent.MQTT_CONNECTED,
    LogEvent.MQTT_DISCONNECTED,
    LogEvent.MQTT_PUBLISH_SUCCESS,
    LogEvent.MQTT_PUBLISH_FAILED,
}

VISIT_EVENTS = {
    LogEvent.VISIT_LOG_SERIALIZED,
}

ERROR_EVENTS = {
    LogEvent.SERIALIZATION_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
    LogEvent.MQTT_PUBLISH_ERROR,
}
