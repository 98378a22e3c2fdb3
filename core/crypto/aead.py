from __future__ import annotations
import os
from typing import Tuple, Dict, Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

# Suite ID written into each sealed document header
SUITE_CHACHA20P = "CHACHA20P"

class SealError(Exception):
    """Ciphertext failed authentication (wrong key, wrong AAD or tampered)."""

class ChaCha20PSuite:
    suite_id = SUITE_CHACHA20P
    key_len = 32

    def encrypt(self, key: bytes, plaintext: bytes, aad: bytes) -> Tuple[bytes, Dict[str, Any]]:
        nonce = os.urandom(12)
        aead = ChaCha20Poly1305(key)
        ct = aead.encrypt(nonce, plaintext, aad)
        return ct, {"nonce": nonce.hex()}

    def decrypt(self, key: bytes, ciphertext: bytes, aad: bytes, params: Dict[str, Any]) -> bytes:
        nonce = bytes.fromhex(params["nonce"])
        aead = ChaCha20Poly1305(key)
        try:
            return aead.decrypt(nonce, ciphertext, aad)
        except InvalidTag as e:
            raise SealError("authentication failed") from e

def suite_for(suite_id: str) -> ChaCha20PSuite:
    if suite_id != SUITE_CHACHA20P:
        raise SealError(f"unknown suite {suite_id!r}")
    return ChaCha20PSuite()
