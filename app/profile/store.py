# app/profile/store.py
from __future__ import annotations
import os, json, time, sqlite3, threading
from dataclasses import dataclass
from typing import Optional, Dict, Any
import structlog

from app.analytics.features import FeatureVector, DEFAULT_BASELINE
from app.analytics.risk_scorer import RiskVerdict
from core.crypto.aead import SUITE_CHACHA20P, SealError, suite_for
from core.crypto.key_manager import MasterKeyManager, DEFAULT_SECRETS_DIR, derive_profile_key
from core.hooks.events import utc_iso

log = structlog.get_logger()

DB_FILE = os.path.join(os.path.abspath("."), "guard_profiles.sqlite3")

INITIAL_SCORE = {
    "score": "Low Risk",
    "details": "Initial assessment based on default baseline. No recent anomalies.",
}

class ProfileStoreError(Exception):
    pass

class ProfileNotFound(ProfileStoreError):
    pass

class ProfileCorrupted(ProfileStoreError):
    pass

@dataclass(frozen=True)
class StoreConfig:
    db_path: str = DB_FILE
    secrets_dir: str = DEFAULT_SECRETS_DIR

    @classmethod
    def from_env(cls) -> "StoreConfig":
        return cls(
            db_path=os.environ.get("GUARD_DB_PATH", DB_FILE),
            secrets_dir=os.environ.get("GUARD_SECRETS_DIR", DEFAULT_SECRETS_DIR),
        )

def new_profile(username: str, login_method: str = "email", role: str = "new_user") -> Dict[str, Any]:
    now = utc_iso()
    return {
        "username": username,
        "role": role,
        "createdAt": now,
        "lastLogin": now,
        "behavioralBaseline": DEFAULT_BASELINE.to_record(),
        "securityScore": dict(INITIAL_SCORE),
        "loginMethod": login_method,
    }

class ProfileStore:
    """
    Per-user profile documents keyed by user id.
    The store is the only writer of the persisted baseline.
    Subclasses provide raw document load/save.
    """
    def _load(self, user_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def _save(self, user_id: str, doc: Dict[str, Any]) -> None:
        raise NotImplementedError

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._load(user_id)

    def create_profile(self, user_id: str, username: str, login_method: str = "email", role: str = "new_user") -> Dict[str, Any]:
        doc = new_profile(username, login_method=login_method, role=role)
        self._save(user_id, doc)
        log.info("profile.create", user_id=user_id, login_method=login_method)
        return doc

    def fetch_baseline(self, user_id: str) -> Optional[FeatureVector]:
        doc = self._load(user_id)
        if doc is None or not doc.get("behavioralBaseline"):
            return None
        return FeatureVector.from_record(doc["behavioralBaseline"])

    def persist_verdict(self, user_id: str, verdict: RiskVerdict, new_baseline: FeatureVector,
                        login_method: str = "email") -> Dict[str, Any]:
        doc = self._load(user_id)
        if doc is None:
            raise ProfileNotFound(user_id)
        doc.update({
            "lastLogin": utc_iso(),
            "behavioralBaseline": new_baseline.to_record(),
            "securityScore": verdict.to_record(),
            "loginMethod": login_method,
        })
        self._save(user_id, doc)
        log.info("profile.persist", user_id=user_id, score=verdict.level.label)
        return doc

class MemoryProfileStore(ProfileStore):
    def __init__(self):
        self._lock = threading.RLock()
        self._docs: Dict[str, str] = {}

    def _load(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            raw = self._docs.get(user_id)
        # stored as JSON so callers never share a live dict with the store
        return json.loads(raw) if raw is not None else None

    def _save(self, user_id: str, doc: Dict[str, Any]) -> None:
        with self._lock:
            self._docs[user_id] = json.dumps(doc)

class SqliteProfileStore(ProfileStore):
    """
    Profile documents as JSON, sealed at rest:
    - ChaCha20-Poly1305 per document, fresh nonce on every write
    - per-profile key derived from the master key (HKDF over user id)
    - header (version, suite, user id) bound as AAD, so rows cannot be swapped
    """
    def __init__(self, config: Optional[StoreConfig] = None):
        self.cfg = config or StoreConfig()
        self._master = MasterKeyManager(self.cfg.secrets_dir).load_or_create_master()
        self._init_db()

    def _init_db(self):
        conn = sqlite3.connect(self.cfg.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS profiles(
                  user_id TEXT PRIMARY KEY,
                  ts_utc INTEGER NOT NULL,
                  header BLOB NOT NULL,
                  body BLOB NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _aad(user_id: str, suite_id: str) -> bytes:
        return json.dumps({"ver": 1, "suite": suite_id, "user_id": user_id}, separators=(",", ":"), sort_keys=True).encode("utf-8")

    def _load(self, user_id: str) -> Optional[Dict[str, Any]]:
        conn = sqlite3.connect(self.cfg.db_path)
        try:
            row = conn.execute("SELECT header, body FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        header_b, body = row
        try:
            header = json.loads(bytes(header_b).decode("utf-8"))
            suite = suite_for(header["suite"])
            key = derive_profile_key(self._master, user_id, suite.key_len)
            plain = suite.decrypt(key, bytes(body), self._aad(user_id, suite.suite_id), header)
            return json.loads(plain.decode("utf-8"))
        except (SealError, KeyError, ValueError) as e:
            log.warning("profile.corrupted", user_id=user_id, err=str(e))
            raise ProfileCorrupted(user_id) from e

    def _save(self, user_id: str, doc: Dict[str, Any]) -> None:
        suite = suite_for(SUITE_CHACHA20P)
        key = derive_profile_key(self._master, user_id, suite.key_len)
        raw = json.dumps(doc, separators=(",", ":")).encode("utf-8")
        ct, params = suite.encrypt(key, raw, self._aad(user_id, suite.suite_id))
        header = {"ver": 1, "suite": suite.suite_id}
        header.update(params)
        conn = sqlite3.connect(self.cfg.db_path)
        try:
            conn.execute(
                "INSERT OR REPLACE INTO profiles(user_id, ts_utc, header, body) VALUES (?,?,?,?)",
                (user_id, int(time.time() * 1000), json.dumps(header).encode("utf-8"), ct),
            )
            conn.commit()
        finally:
            conn.close()
