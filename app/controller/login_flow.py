# app/controller/login_flow.py
from __future__ import annotations
import os
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Dict, Tuple
import structlog

from app.analytics.signal_collector import SignalCollector
from app.analytics.risk_scorer import RiskScorer, RiskVerdict
from app.analytics.features import FeatureVector, resolve_baseline
from app.controller.session_state import AuthSession
from app.profile.store import ProfileStore, ProfileStoreError

log = structlog.get_logger()

ERR_CREDENTIALS = "Invalid credentials"
ERR_MFA = "Invalid MFA code"
ERR_UNEXPECTED = "Unexpected error"
ERR_SIGNUP = "Username and password are required"
ERR_TAKEN = "Username already exists"

@dataclass(frozen=True)
class LoginConfig:
    debug: bool = False

    @classmethod
    def from_env(cls) -> "LoginConfig":
        return cls(debug=os.environ.get("GUARD_DEBUG", "0").lower() in ("1", "true", "yes"))

@dataclass(frozen=True)
class LoginResult:
    success: bool
    error: Optional[str] = None
    verdict: Optional[RiskVerdict] = None
    user_id: Optional[str] = None
    features: Optional[FeatureVector] = None
    baseline: Optional[FeatureVector] = None

class CredentialChecker:
    """Stand-in for the auth provider. Returns a user id on success."""
    def check(self, username: str, password: str) -> Optional[str]:
        raise NotImplementedError

    def check_mfa(self, user_id: str, code: str) -> bool:
        raise NotImplementedError

    def register(self, username: str, password: str) -> Optional[str]:
        """New user id, or None when the username is taken."""
        raise NotImplementedError

    def role_for(self, user_id: str) -> str:
        return "new_user"

class StaticCredentialChecker(CredentialChecker):
    """Demo accounts held in memory; one fixed MFA code for everyone."""
    def __init__(self, accounts: Optional[Dict[str, Tuple[str, str]]] = None, mfa_code: str = "123456",
                 admins: Tuple[str, ...] = ("admin",)):
        # username -> (password, user_id)
        self._accounts: Dict[str, Tuple[str, str]] = dict(accounts) if accounts is not None else {
            "admin@syncbridge.com": ("SecurePass123!", "admin"),
        }
        self.mfa_code = mfa_code
        self.admins = set(admins)

    def check(self, username: str, password: str) -> Optional[str]:
        entry = self._accounts.get(username)
        if entry is None or entry[0] != password:
            return None
        return entry[1]

    def check_mfa(self, user_id: str, code: str) -> bool:
        return code == self.mfa_code

    def register(self, username: str, password: str) -> Optional[str]:
        if username in self._accounts:
            return None
        user_id = f"user_{uuid.uuid4().hex[:12]}"
        self._accounts[username] = (password, user_id)
        return user_id

    def role_for(self, user_id: str) -> str:
        return "admin" if user_id in self.admins else "new_user"

class LoginFlow:
    """
    Credentials -> MFA -> behavioural scoring -> profile update.
    The collector is reset after every attempt, successful or not,
    so samples never leak into the next one.
    """
    def __init__(self, checker: CredentialChecker, store: ProfileStore, session: AuthSession,
                 scorer: Optional[RiskScorer] = None):
        self.checker = checker
        self.store = store
        self.session = session
        self.scorer = scorer or RiskScorer()

    def login(self, username: str, password: str, mfa_code: str, collector: SignalCollector,
              login_method: str = "email") -> LoginResult:
        t0 = time.perf_counter()
        try:
            user_id = self.checker.check(username, password)
            if user_id is None:
                log.info("login.denied", reason="credentials")
                return LoginResult(False, ERR_CREDENTIALS)
            if not self.checker.check_mfa(user_id, mfa_code):
                log.info("login.denied", reason="mfa", user_id=user_id)
                return LoginResult(False, ERR_MFA)

            current = collector.derive_feature_vector()

            if self.store.get_profile(user_id) is None:
                # first sight of this account: score against defaults
                self.store.create_profile(user_id, username, login_method=login_method,
                                          role=self.checker.role_for(user_id))
            baseline = resolve_baseline(self.store.fetch_baseline(user_id))

            verdict = self.scorer.score(current, baseline)
            profile = self.store.persist_verdict(user_id, verdict, current, login_method=login_method)
            self.session.sign_in(user_id, profile, verdict, login_method)
            log.info("login.success", user_id=user_id, score=verdict.level.label,
                     factors=verdict.risk_factors, ms=round((time.perf_counter() - t0) * 1000, 1))
            return LoginResult(True, verdict=verdict, user_id=user_id, features=current, baseline=baseline)
        except ProfileStoreError as e:
            log.error("login.error", err=str(e), kind=type(e).__name__)
            return LoginResult(False, ERR_UNEXPECTED)
        finally:
            collector.reset()

    def signup(self, username: str, password: str, login_method: str = "email") -> LoginResult:
        if not username or not password:
            return LoginResult(False, ERR_SIGNUP)
        try:
            user_id = self.checker.register(username, password)
            if user_id is None:
                log.info("signup.denied", reason="username taken")
                return LoginResult(False, ERR_TAKEN)
            profile = self.store.create_profile(user_id, username, login_method=login_method)
        except ProfileStoreError as e:
            log.error("signup.error", err=str(e), kind=type(e).__name__)
            return LoginResult(False, ERR_UNEXPECTED)
        self.session.sign_in(user_id, profile, None, login_method)
        log.info("signup.success", user_id=user_id)
        return LoginResult(True, user_id=user_id)

    def logout(self) -> None:
        user_id = self.session.get_current().user_id
        self.session.sign_out()
        log.info("logout", user_id=user_id)
