"""Fernet encryption for wallet private keys at rest."""

from cryptography.fernet import Fernet

from src.configuration.config import settings


def _get_fernet(secret_key: str | None = None) -> Fernet:
    """Create Fernet instance from ENCRYPTION_KEY (must be 32-byte url-safe base64)."""
    key = secret_key or settings.ENCRYPTION_KEY
    if not key:
        raise ValueError("ENCRYPTION_KEY is not configured")
    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt_secret(plaintext: str, secret_key: str | None = None) -> str:
    return _get_fernet(secret_key).encrypt(plaintext.encode()).decode()


def decrypt_secret(ciphertext: str, secret_key: str | None = None) -> str:
    """Raises cryptography.fernet.InvalidToken if the key does not match."""
    return _get_fernet(secret_key).decrypt(ciphertext.encode()).decode()
