import time
import threading

from guestguide.concierge import ConciergeSession


class ConciergeSessionCache:
    """
    In-memory concierge sessions keyed by session id with:
    - sliding TTL (expires ttl_seconds after last touch)
    - thread-safe operations

    Sessions are never persisted; a restart or expiry means a fresh chat.
    """

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        # session_id -> {"session": ConciergeSession, "expires_at": float}
        self._items: dict[str, dict[str, object]] = {}

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, v in self._items.items() if float(v["expires_at"]) <= now]
        for k in expired:
            del self._items[k]
        return len(expired)

    def put(self, session: ConciergeSession) -> str:
        now = time.time()
        with self._lock:
            # chats nobody reopens are dropped on the next put
            self._sweep_locked(now)
            self._items[session.session_id] = {
                "session": session,
                "expires_at": now + self.ttl_seconds,
            }
        return session.session_id

    def get(self, session_id: str) -> ConciergeSession | None:
        now = time.time()
        with self._lock:
            item = self._items.get(str(session_id))
            if item is None:
                return None
            if float(item["expires_at"]) <= now:
                del self._items[str(session_id)]
                return None
            item["expires_at"] = now + self.ttl_seconds
            return item["session"]  # type: ignore[return-value]

    def drop(self, session_id: str) -> None:
        with self._lock:
            self._items.pop(str(session_id), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def sweep_expired(self) -> int:
        """
        Delete expired sessions. Returns how many entries were removed.
        """
        with self._lock:
            return self._sweep_locked(time.time())


GLOBAL_CONCIERGE_SESSIONS = ConciergeSessionCache(ttl_seconds=6 * 3600)
