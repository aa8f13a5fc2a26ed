"""ed25519 wallet keys in the Solana layout (base58, 64-byte secret = seed + public key)."""

import base58
from nacl.signing import SigningKey


def generate_keypair() -> tuple[str, str]:
    """Returns (address, secret) both base58-encoded."""
    signing_key = SigningKey.generate()
    public_key = bytes(signing_key.verify_key)
    secret = bytes(signing_key) + public_key
    return base58.b58encode(public_key).decode(), base58.b58encode(secret).decode()


def _signing_key(secret: str) -> SigningKey:
    raw = base58.b58decode(secret)
    if len(raw) not in (32, 64):
        raise ValueError("Wallet secret must be 32 or 64 bytes")
    return SigningKey(raw[:32])


def address_from_secret(secret: str) -> str:
    return base58.b58encode(bytes(_signing_key(secret).verify_key)).decode()


def sign_message(secret: str, message: bytes) -> str:
    """Detached ed25519 signature, base58-encoded."""
    return base58.b58encode(_signing_key(secret).sign(message).signature).decode()


def is_valid_address(address: str) -> bool:
    """A base58 string that decodes to a 32-byte public key."""
    try:
        return len(base58.b58decode(address.strip())) == 32
    except ValueError:
        return False
