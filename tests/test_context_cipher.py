from __future__ import annotations

import pytest

from app.services.context_cipher import ContextCipher


def test_encrypt_and_decrypt_document() -> None:
    cipher = ContextCipher(secret="super-secret")
    document = {"client_id": "abc", "scope": None}

    ciphertext = cipher.encrypt(document)

    assert ciphertext != str(document)
    assert cipher.decrypt(ciphertext) == document


def test_decrypt_with_wrong_secret_fails() -> None:
    ciphertext = ContextCipher(secret="one").encrypt({"a": 1})

    with pytest.raises(ValueError):
        ContextCipher(secret="two").decrypt(ciphertext)


def test_empty_secret_is_rejected() -> None:
    with pytest.raises(ValueError):
        ContextCipher(secret="")
