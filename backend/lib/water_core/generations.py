# backend/lib/water_core/generations.py
"""
Stale-result guard for callers that keep view state across requests, such
as a dashboard client that fires a new lookup before the previous one has
answered. The HTTP API itself is stateless per request and does not use it.
"""
import threading
from typing import Any, Dict, Optional


class ViewState:
    """
    Holds the latest result per view. Every request takes a token from
    begin(); apply() only stores a result whose token is still the newest
    one issued for that view, so a slow superseded request cannot overwrite
    a newer result.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._issued: Dict[str, int] = {}
        self._results: Dict[str, Any] = {}

    def begin(self, view: str) -> int:
        with self._lock:
            token = self._issued.get(view, 0) + 1
            self._issued[view] = token
            return token

    def is_current(self, view: str, token: int) -> bool:
        with self._lock:
            return self._issued.get(view) == token

    def apply(self, view: str, token: int, result: Any) -> bool:
        """Store result if token is current. Returns whether it was stored."""
        with self._lock:
            if self._issued.get(view) != token:
                return False
            self._results[view] = result
            return True

    def get(self, view: str) -> Optional[Any]:
        with self._lock:
            return self._results.get(view)
