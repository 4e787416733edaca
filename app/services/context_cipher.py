"""Symmetric encryption for flow context kept at rest."""

from __future__ import annotations

import base64
import hashlib
import json
from typing import Any, Dict

from cryptography.fernet import Fernet, InvalidToken


class ContextCipher:
    """Encrypt JSON documents using a Fernet key derived from a secret."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Flow context secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, document: Dict[str, Any]) -> str:
        serialized = json.dumps(document, separators=(",", ":"), sort_keys=True)
        return self._fernet.encrypt(serialized.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> Dict[str, Any]:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError("Failed to decrypt flow context; invalid ciphertext.") from exc
        return json.loads(plaintext)


__all__ = ["ContextCipher"]
