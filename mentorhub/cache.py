"""Process-local TTL cache.

Stands in for a shared cache in single-process deployments. Keys are plain
strings; ``invalidate_prefix`` drops every key under a namespace.
"""
import logging
import time

logger = logging.getLogger(__name__)

CACHE_TTL = {
    "admin_mentor_messages": 30,
}


class TTLCache:
    def __init__(self, enabled=True, clock=time.monotonic):
        self.enabled = enabled
        self._clock = clock
        self._items = {}

    def get(self, key):
        if not self.enabled:
            return None
        item = self._items.get(key)
        if item is None:
            return None
        value, expires = item
        if expires is not None and self._clock() > expires:
            del self._items[key]
            return None
        return value

    def set(self, key, value, ttl=None):
        if not self.enabled:
            return False
        expires = self._clock() + ttl if ttl else None
        self._items[key] = (value, expires)
        return True

    def delete(self, *keys):
        for key in keys:
            self._items.pop(key, None)

    def invalidate_prefix(self, prefix):
        stale = [k for k in self._items if k.startswith(prefix)]
        for key in stale:
            del self._items[key]
        if stale:
            logger.debug("Invalidated %d cache keys under %s", len(stale), prefix)
        return len(stale)

    def clear(self):
        self._items.clear()


class cache_keys:
    ADMIN_MENTOR_MESSAGES = "cache:admin-mentor-messages:"

    @staticmethod
    def admin_mentor_messages():
        return f"{cache_keys.ADMIN_MENTOR_MESSAGES}all"


cache = TTLCache()


def invalidate_admin_mentor_messages():
    return cache.invalidate_prefix(cache_keys.ADMIN_MENTOR_MESSAGES)


def init_cache(app):
    cache.enabled = app.config.get("CACHE_ENABLED", True)
    cache.clear()
    app.extensions["mentorhub_cache"] = cache
    logger.info("Response cache %s", "enabled" if cache.enabled else "disabled")
