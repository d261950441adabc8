"""Symmetric cipher transforms for client-side file encryption."""

import os
from dataclasses import dataclass
from typing import Callable, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from filebin.exceptions import CipherConfigError

BLOCK_SIZE_BYTES = 16
DEFAULT_ALGORITHM = "aes-256-cbc"


@dataclass(frozen=True)
class CipherAlgorithm:
    """
    A supported algorithm identifier and how to build it.
    """
    name: str
    key_size: int
    mode: Callable[[bytes], modes.Mode]
    padded: bool
    iv_size: int = BLOCK_SIZE_BYTES


SUPPORTED_ALGORITHMS = {
    "aes-128-cbc": CipherAlgorithm("aes-128-cbc", 16, modes.CBC, padded=True),
    "aes-192-cbc": CipherAlgorithm("aes-192-cbc", 24, modes.CBC, padded=True),
    "aes-256-cbc": CipherAlgorithm("aes-256-cbc", 32, modes.CBC, padded=True),
    "aes-128-ctr": CipherAlgorithm("aes-128-ctr", 16, modes.CTR, padded=False),
    "aes-256-ctr": CipherAlgorithm("aes-256-ctr", 32, modes.CTR, padded=False),
}


def resolve_algorithm(name: str) -> CipherAlgorithm:
    """
    Look up an algorithm identifier such as "aes-256-cbc".

    Raises:
        CipherConfigError: If the identifier is not supported
    """
    try:
        return SUPPORTED_ALGORITHMS[name.lower()]
    except KeyError:
        supported = ", ".join(sorted(SUPPORTED_ALGORITHMS))
        raise CipherConfigError(f"Unsupported cipher algorithm '{name}' (supported: {supported})") from None


def generate_key_material(algorithm: str = DEFAULT_ALGORITHM) -> tuple[bytes, bytes]:
    """
    Generate a fresh random key and IV, independently, for one operation.

    Returns:
        Tuple of (key, iv)
    """
    alg = resolve_algorithm(algorithm)
    return os.urandom(alg.key_size), os.urandom(alg.iv_size)


def _validate(alg: CipherAlgorithm, key: bytes, iv: bytes) -> None:
    if len(key) != alg.key_size:
        raise CipherConfigError(f"{alg.name} needs a {alg.key_size}-byte key, got {len(key)} bytes")
    if len(iv) != alg.iv_size:
        raise CipherConfigError(f"{alg.name} needs a {alg.iv_size}-byte IV, got {len(iv)} bytes")


class CipherTransform:
    """
    Pipeline transform that encrypts or decrypts a byte stream piece by piece.

    Padded modes apply PKCS7, so ciphertext is up to one block longer than
    the plaintext.
    """

    def __init__(self, algorithm: str, key: bytes, iv: bytes, encrypt: bool):
        alg = resolve_algorithm(algorithm)
        _validate(alg, key, iv)
        cipher = Cipher(algorithms.AES(key), alg.mode(iv))
        self.algorithm = alg.name
        self.encrypt = encrypt
        self._context = cipher.encryptor() if encrypt else cipher.decryptor()
        self._padding: Optional[padding.PaddingContext] = None
        if alg.padded:
            pkcs7 = padding.PKCS7(BLOCK_SIZE_BYTES * 8)
            self._padding = pkcs7.padder() if encrypt else pkcs7.unpadder()
        self.closed = False

    def update(self, data: bytes) -> bytes:
        if self._padding is None:
            return self._context.update(data)
        if self.encrypt:
            return self._context.update(self._padding.update(data))
        return self._padding.update(self._context.update(data))

    def finalize(self) -> bytes:
        if self._padding is None:
            return self._context.finalize()
        if self.encrypt:
            return self._context.update(self._padding.finalize()) + self._context.finalize()
        return self._padding.update(self._context.finalize()) + self._padding.finalize()

    def close(self) -> None:
        self.closed = True


def encryptor(key: bytes, iv: bytes, algorithm: str = DEFAULT_ALGORITHM) -> CipherTransform:
    """Build an encrypting transform."""
    return CipherTransform(algorithm, key, iv, encrypt=True)


def decryptor(key: bytes, iv: bytes, algorithm: str = DEFAULT_ALGORITHM) -> CipherTransform:
    """Build a decrypting transform."""
    return CipherTransform(algorithm, key, iv, encrypt=False)


def encrypt_bytes(data: bytes, key: bytes, iv: bytes, algorithm: str = DEFAULT_ALGORITHM) -> bytes:
    """Encrypt a complete byte string in one call."""
    transform = encryptor(key, iv, algorithm)
    return transform.update(data) + transform.finalize()


def decrypt_bytes(data: bytes, key: bytes, iv: bytes, algorithm: str = DEFAULT_ALGORITHM) -> bytes:
    """
    Decrypt a complete byte string in one call.

    Raises:
        ValueError: If padding is invalid (wrong key, IV or corrupted data)
    """
    transform = decryptor(key, iv, algorithm)
    return transform.update(data) + transform.finalize()
