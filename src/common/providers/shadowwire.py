import json
import logging
from decimal import Decimal

from src.common.providers.base import TransferResult
from src.common.providers.http_client import HttpProvider
from src.common.wallet import address_from_secret, sign_message
from src.configuration.config import settings

logger = logging.getLogger(__name__)


def signed_payload(secret: str, payload: dict) -> dict:
    """Attach the owner's ed25519 signature over the canonical JSON payload."""
    message = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()
    return {**payload, "signature": sign_message(secret, message)}


class ShadowWireTransferProvider(HttpProvider):
    """Private transfers: the amount is hidden on-chain."""

    name = "shadowwire"

    def __init__(self, base_url: str | None = None, api_key: str | None = None):
        super().__init__(base_url or settings.SHADOWWIRE_API_URL, api_key or settings.SHADOWWIRE_API_KEY)

    async def transfer(
        self, sender_secret: str, recipient_address: str, amount: Decimal, token: str
    ) -> TransferResult:
        if not self.configured:
            return TransferResult(success=False, error="Private transfer provider not configured")

        payload = signed_payload(
            sender_secret,
            {
                "sender": address_from_secret(sender_secret),
                "recipient": recipient_address,
                "amount": f"{amount:f}",
                "token": token.upper(),
            },
        )
        data = await self._request("POST", "/v1/transfer", json=payload)

        tx_reference = data.get("signature") or data.get("txSignature")
        if not tx_reference:
            return TransferResult(success=False, error=data.get("message") or "Transfer failed")

        logger.info(f"Private transfer submitted: {tx_reference[:16]}...")
        return TransferResult(success=True, tx_reference=tx_reference, amount_hidden=True)
