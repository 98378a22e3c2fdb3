from __future__ import annotations
import threading
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from app.analytics.risk_scorer import RiskVerdict

@dataclass
class SessionSnapshot:
    user_id: Optional[str] = None
    logged_in: bool = False
    login_method: str = "email"
    verdict: Optional[RiskVerdict] = None
    profile: Dict[str, Any] = field(default_factory=dict)

class AuthSession:
    """Explicit per-window session; handed to the login flow, never global."""
    def __init__(self):
        self._lock = threading.RLock()
        self._current = SessionSnapshot()

    def sign_in(self, user_id: str, profile: Dict[str, Any], verdict: Optional[RiskVerdict], login_method: str) -> None:
        with self._lock:
            self._current = SessionSnapshot(
                user_id=user_id, logged_in=True, login_method=login_method,
                verdict=verdict, profile=dict(profile),
            )

    def sign_out(self) -> None:
        with self._lock:
            self._current = SessionSnapshot()

    def get_current(self) -> SessionSnapshot:
        with self._lock:
            return self._current

    @property
    def logged_in(self) -> bool:
        return self.get_current().logged_in
