from __future__ import annotations
import os

from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives import hashes

DEFAULT_SECRETS_DIR = os.path.join(os.path.abspath("."), "secrets")
MASTER_KEY_NAME = "profiles.key"

def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)
    try:
        os.chmod(path, 0o700)
    except OSError:
        pass

class MasterKeyManager:
    """
    Dev-friendly sealed file fallback:
      - 32-byte master key stored in <secrets_dir>/profiles.key with 0600 perms
    Swap this for OS keystore later (DPAPI/Keychain).
    """
    def __init__(self, secrets_dir: str = DEFAULT_SECRETS_DIR):
        self.secrets_dir = secrets_dir
        self.key_path = os.path.join(secrets_dir, MASTER_KEY_NAME)
        _ensure_dir(secrets_dir)

    def load_or_create_master(self) -> bytes:
        if os.path.exists(self.key_path):
            with open(self.key_path, "rb") as f:
                return f.read()
        key = os.urandom(32)
        with open(self.key_path, "wb") as f:
            f.write(key)
        try:
            os.chmod(self.key_path, 0o600)
        except OSError:
            pass
        return key

def derive_profile_key(master: bytes, user_id: str, length: int = 32) -> bytes:
    """Per-profile key: HKDF(master) with the user id bound into info."""
    hkdf = HKDF(algorithm=hashes.SHA256(), length=length, salt=None, info=f"profile-key:{user_id}".encode("utf-8"))
    return hkdf.derive(master)
