"""
Key-value flag storage for small UI preferences ("used motion emoji",
"seen transition tip"). Injected into the pipeline instead of read from a
global store.
"""

from typing import Dict, Optional, Protocol

import redis
import structlog

logger = structlog.get_logger()

SEEN_TRANSITION_TIP = "seen_transition_tip"
USED_MOTION_EMOJI = "used_motion_emoji"


class PreferenceStore(Protocol):
    def get_flag(self, key: str) -> bool: ...

    def set_flag(self, key: str, value: bool = True) -> None: ...

    def clear(self, key: str) -> None: ...


class InMemoryPreferenceStore:
    """Process-local flags. Default for tests and one-off runs."""

    def __init__(self, initial: Optional[Dict[str, bool]] = None):
        self._flags: Dict[str, bool] = dict(initial or {})

    def get_flag(self, key: str) -> bool:
        return self._flags.get(key, False)

    def set_flag(self, key: str, value: bool = True) -> None:
        self._flags[key] = value

    def clear(self, key: str) -> None:
        self._flags.pop(key, None)


class RedisPreferenceStore:
    """Flags persisted in Redis under a common prefix."""

    def __init__(self, connection: redis.Redis, prefix: str = "booth:prefs"):
        self.connection = connection
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get_flag(self, key: str) -> bool:
        value = self.connection.get(self._key(key))
        return value in ("1", b"1", "true", b"true")

    def set_flag(self, key: str, value: bool = True) -> None:
        self.connection.set(self._key(key), "1" if value else "0")
        logger.debug("Preference stored", key=key, value=value)

    def clear(self, key: str) -> None:
        self.connection.delete(self._key(key))
