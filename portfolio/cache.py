import threading
import time


class TTLCache:
    """Small in-process cache with per-entry expiry.

    ``clock`` returns seconds as a float and defaults to ``time.monotonic``;
    a ``ttl_seconds`` of zero disables caching entirely.
    """

    def __init__(self, ttl_seconds, clock=None):
        self.ttl_seconds = max(0.0, float(ttl_seconds or 0))
        self.clock = clock or time.monotonic
        self._entries = {}
        self._lock = threading.Lock()

    @property
    def enabled(self):
        return self.ttl_seconds > 0

    def get(self, key, default=None):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return default
            return value

    def set(self, key, value):
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = (self.clock() + self.ttl_seconds, value)

    def invalidate(self, key=None):
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self):
        with self._lock:
            return len(self._entries)
