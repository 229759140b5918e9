"""Chunk encryption for connect-package blob uploads."""

from __future__ import annotations

import os
from typing import Protocol, runtime_checkable

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

AES_BLOCK_BYTES = 16
_AES_KEY_SIZES = (16, 24, 32)


@runtime_checkable
class ChunkCipher(Protocol):
    """Encrypts each upload chunk independently."""

    def encrypt(self, chunk: bytes) -> bytes:
        """Return the ciphertext of one complete chunk."""
        ...

    def encrypted_size(self, plaintext_size: int) -> int:
        """Return the ciphertext length for a chunk of ``plaintext_size`` bytes."""
        ...


class AesCbcChunkCipher:
    """AES-CBC with PKCS7 padding, one independent encryption per chunk."""

    def __init__(self, key: bytes, iv: bytes) -> None:
        """Initialize with an AES key (16, 24 or 32 bytes) and a 16-byte IV."""
        if len(key) not in _AES_KEY_SIZES:
            msg = f"AES key must be 16, 24 or 32 bytes, got {len(key)}."
            raise ValueError(msg)
        if len(iv) != AES_BLOCK_BYTES:
            msg = f"AES IV must be {AES_BLOCK_BYTES} bytes, got {len(iv)}."
            raise ValueError(msg)
        self._key = bytes(key)
        self._iv = bytes(iv)

    @classmethod
    def generate(cls, key_size: int = 32) -> AesCbcChunkCipher:
        """Create a cipher with a fresh random key and IV."""
        return cls(os.urandom(key_size), os.urandom(AES_BLOCK_BYTES))

    @property
    def key(self) -> bytes:
        """Raw key bytes, shared with the package recipient."""
        return self._key

    @property
    def iv(self) -> bytes:
        """Initialization vector used for every chunk."""
        return self._iv

    def encrypted_size(self, plaintext_size: int) -> int:
        """PKCS7 always adds between 1 and 16 bytes."""
        return plaintext_size + AES_BLOCK_BYTES - (plaintext_size % AES_BLOCK_BYTES)

    def encrypt(self, chunk: bytes) -> bytes:
        """Pad and encrypt one chunk."""
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(chunk) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(self._iv)).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, chunk: bytes) -> bytes:
        """Decrypt and unpad one chunk produced by ``encrypt``."""
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(self._iv)).decryptor()
        padded = decryptor.update(chunk) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
