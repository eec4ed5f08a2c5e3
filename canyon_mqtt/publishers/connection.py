"""
Broker Connection
=================

Bounded Context: MQTT Infrastructure

One paho-mqtt client plus its counters. Publishers compose a
BrokerConnection instead of subclassing it: the connection knows nothing
about message types, the publisher knows nothing about sockets.

Rules:
- open() blocks until CONNACK or timeout, never raises
- send() never raises; every attempt lands in exactly one counter
- counters are read under a lock (paho calls back from its own thread)
"""

import json
import threading
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from ..logging import LogEvent, StructuredLogger


@dataclass
class SendCounters:
    sent: int = 0
    failed: int = 0


class BrokerConnection:
    """
    Connection to a single broker/topic pair.

    Attributes:
        host, port: Broker address
        topic: Destination topic for every send()
        qos: 0 (fire-and-forget) unless configured
    """

    def __init__(
        self,
        host: str,
        port: int,
        topic: str,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0,
    ):
        if qos not in (0, 1, 2):
            raise ValueError(f"qos must be 0, 1 or 2, got {qos}")

        self.host = host
        self.port = port
        self.topic = topic
        self.client_id = client_id
        self.qos = qos
        self.logger = logger.bind(broker=f"{host}:{port}")

        self._client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self._client.username_pw_set(username, password)
        self._client.on_connect = self._handle_connack
        self._client.on_disconnect = self._handle_disconnect

        self._online = threading.Event()
        self._counters = SendCounters()
        self._lock = threading.Lock()

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def online(self) -> bool:
        return self._online.is_set()

    def _handle_connack(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Broker refused connection ({reason_code})",
            )
            return
        self._online.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker",
            metadata={'client_id': self.client_id, 'topic': self.topic},
        )

    def _handle_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._online.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Lost connection to MQTT broker",
            metadata={'reason_code': str(reason_code)},
        )

    def open(self, timeout: float = 10.0) -> bool:
        """Connect and start paho's network thread. False on refusal or timeout."""
        try:
            self._client.connect(self.host, self.port)
        except (OSError, ValueError) as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Could not reach broker",
                exc_info=e,
            )
            return False

        self._client.loop_start()
        if self._online.wait(timeout=timeout):
            return True

        self.logger.error(
            event=LogEvent.MQTT_CONNECTION_ERROR,
            message="Timed out waiting for CONNACK",
            metadata={'timeout': timeout},
        )
        self._client.loop_stop()
        return False

    def close(self) -> None:
        self._client.loop_stop()
        self._client.disconnect()
        self._online.clear()
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from broker",
            metadata=self.counters(),
        )

    def _count(self, ok: bool) -> int:
        with self._lock:
            if ok:
                self._counters.sent += 1
                return self._counters.sent
            self._counters.failed += 1
            return self._counters.failed

    def send(self, payload: Dict[str, Any], retain: bool = False) -> bool:
        """Publish one JSON payload on the topic. False (and counted) on any failure."""
        if not self.online:
            self._count(False)
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Not connected, message dropped",
                metadata={'topic': self.topic},
            )
            return False

        try:
            info = self._client.publish(self.topic, json.dumps(payload), qos=self.qos, retain=retain)
        except (TypeError, ValueError, RuntimeError) as e:
            self._count(False)
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing message",
                exc_info=e,
                metadata={'topic': self.topic},
            )
            return False

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._count(False)
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Publish rejected (rc={info.rc})",
                metadata={'topic': self.topic},
            )
            return False

        sent = self._count(True)
        self.logger.debug(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message="Published message",
            metadata={'topic': self.topic, 'sent': sent, 'qos': self.qos},
        )
        return True

    def counters(self) -> Dict[str, int]:
        with self._lock:
            return asdict(self._counters)
