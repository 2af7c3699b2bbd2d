"""
Real-time event fan-out.

An EventBroadcaster is constructed once per process (see CoreConfig.ready)
and handed to the components that publish, instead of being looked up
through a module-level global.

Event levels control which events are published (cumulative):
- NONE: nothing is published
- CRITICAL: failures that need attention
- SYSTEM: CRITICAL + process lifecycle
- FULL: SYSTEM + all viewer activity

Configuration priority:
1. MATCHSTREAM_EVENT_LEVEL environment variable
2. Default: FULL
"""
import json
import logging
import os
import re
import threading

logger = logging.getLogger(__name__)

# =============================================================================
# EVENT LEVEL CONFIGURATION
# =============================================================================
# Every event must appear in exactly one of these sets.

CRITICAL_EVENTS = {
    "stream.reported",
}

SYSTEM_EVENTS = {
    "system.startup",
    "system.shutdown",
}

FULL_EVENTS = {
    "match.watched",
}

DISABLED_EVENTS = set()

EVENT_LEVEL_NONE = 0
EVENT_LEVEL_CRITICAL = 10
EVENT_LEVEL_SYSTEM = 20
EVENT_LEVEL_FULL = 30

EVENT_LEVELS = {
    "NONE": EVENT_LEVEL_NONE,
    "CRITICAL": EVENT_LEVEL_CRITICAL,
    "SYSTEM": EVENT_LEVEL_SYSTEM,
    "FULL": EVENT_LEVEL_FULL,
}


def _build_event_level_map():
    """Build the event-to-level mapping from the configuration sets."""
    level_map = {}
    for event in CRITICAL_EVENTS:
        level_map[event] = EVENT_LEVEL_CRITICAL
    for event in SYSTEM_EVENTS:
        level_map[event] = EVENT_LEVEL_SYSTEM
    for event in FULL_EVENTS:
        level_map[event] = EVENT_LEVEL_FULL
    return level_map


EVENT_LEVEL_MAP = _build_event_level_map()


def get_event_level():
    env_level = os.environ.get("MATCHSTREAM_EVENT_LEVEL", "").upper()
    if env_level in EVENT_LEVELS:
        return EVENT_LEVELS[env_level]
    return EVENT_LEVEL_FULL


def should_emit_event(event_name: str, configured_level: int) -> bool:
    """
    Check if an event should be published at the configured level.

    Unknown events are never published (fail closed).
    """
    if event_name in DISABLED_EVENTS:
        return False

    if configured_level == EVENT_LEVEL_NONE:
        return False

    event_level = EVENT_LEVEL_MAP.get(event_name)
    if event_level is None:
        logger.warning(f"Unknown event '{event_name}' - not configured in any level set")
        return False

    return event_level <= configured_level


def validate_event_configuration():
    """
    Validate that no event is configured in more than one level set.

    Raises:
        ValueError: If an event appears in multiple sets.
    """
    sets_to_check = [
        ("CRITICAL_EVENTS", CRITICAL_EVENTS),
        ("SYSTEM_EVENTS", SYSTEM_EVENTS),
        ("FULL_EVENTS", FULL_EVENTS),
        ("DISABLED_EVENTS", DISABLED_EVENTS),
    ]

    for i, (name1, set1) in enumerate(sets_to_check):
        for name2, set2 in sets_to_check[i + 1:]:
            overlap = set1 & set2
            if overlap:
                raise ValueError(
                    f"Events appear in multiple level sets ({name1} and {name2}): {overlap}"
                )

    logger.info(
        f"Event configuration validated: {len(CRITICAL_EVENTS)} critical, "
        f"{len(SYSTEM_EVENTS)} system, {len(FULL_EVENTS)} full, "
        f"{len(DISABLED_EVENTS)} disabled"
    )


def sanitize_error_message(error: str, max_length: int = 500) -> str:
    """Strip URL credentials and truncate long error text before publishing."""
    if not error:
        return error

    error = str(error)
    error = re.sub(
        r'(https?://)[^:/@\s]+:[^@/\s]+@',
        r'\1[CREDENTIALS]@',
        error
    )

    if len(error) > max_length:
        error = error[:max_length] + "... [truncated]"

    return error


# =============================================================================
# BROADCASTERS
# =============================================================================

class EventBroadcaster:
    """
    In-process broadcaster.

    Subscribers are plain callables taking (event_name, payload). A failing
    subscriber is logged and does not stop delivery to the others.
    """

    def __init__(self, level=None):
        self.level = get_event_level() if level is None else level
        self._subscribers = []
        self._lock = threading.Lock()
        self.running = False

    def start(self):
        self.running = True
        logger.debug(f"{type(self).__name__} started")

    def stop(self):
        self.running = False
        with self._lock:
            self._subscribers.clear()
        logger.debug(f"{type(self).__name__} stopped")

    def subscribe(self, callback):
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback):
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, event_name, payload=None):
        """Publish an event. Returns True if it was delivered."""
        if not self.running:
            logger.debug(f"Broadcaster not running, dropping '{event_name}'")
            return False

        if not should_emit_event(event_name, self.level):
            return False

        payload = dict(payload or {})
        if "error" in payload:
            payload["error"] = sanitize_error_message(payload["error"])

        self._deliver(event_name, payload)
        return True

    def _deliver(self, event_name, payload):
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event_name, payload)
            except Exception as e:
                logger.error(f"Event subscriber failed for '{event_name}': {e}")


class RedisEventBroadcaster(EventBroadcaster):
    """Publishes events as JSON to a Redis pub/sub channel, then to local subscribers."""

    def __init__(self, redis_client, channel, level=None):
        super().__init__(level=level)
        self.redis_client = redis_client
        self.channel = channel

    def stop(self):
        super().stop()
        try:
            self.redis_client.close()
        except Exception as e:
            logger.debug(f"Error closing Redis client: {e}")

    def _deliver(self, event_name, payload):
        message = json.dumps({"event": event_name, "data": payload}, default=str)
        try:
            self.redis_client.publish(self.channel, message)
        except Exception as e:
            logger.warning(f"Failed to publish '{event_name}' to Redis: {e}")
        super()._deliver(event_name, payload)


def build_broadcaster(settings):
    """Construct the process broadcaster from Django settings."""
    backend = getattr(settings, "MATCHSTREAM_BROADCAST_BACKEND", "memory")

    if backend == "redis":
        import redis

        client = redis.Redis(
            host=getattr(settings, "REDIS_HOST", "localhost"),
            port=int(getattr(settings, "REDIS_PORT", 6379)),
            db=int(getattr(settings, "REDIS_DB", 0)),
            password=getattr(settings, "REDIS_PASSWORD", "") or None,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        channel = getattr(settings, "MATCHSTREAM_BROADCAST_CHANNEL", "matchstream:events")
        return RedisEventBroadcaster(client, channel)

    if backend != "memory":
        logger.warning(f"Unknown broadcast backend '{backend}', using in-process broadcaster")

    return EventBroadcaster()
