import logging
from decimal import Decimal

from src.common.providers.base import TransferResult
from src.common.providers.http_client import HttpProvider
from src.common.providers.shadowwire import signed_payload
from src.common.wallet import address_from_secret
from src.configuration.config import settings

logger = logging.getLogger(__name__)

SUPPORTED_CHAINS = {"ethereum", "base", "arbitrum", "optimism", "polygon", "bsc", "avalanche"}


class BridgeClient(HttpProvider):
    """Cross-chain private sends from Solana to EVM chains."""

    name = "bridge"

    def __init__(self, base_url: str | None = None, api_key: str | None = None):
        super().__init__(base_url or settings.BRIDGE_API_URL, api_key or settings.BRIDGE_API_KEY)

    async def send(
        self,
        sender_secret: str,
        amount: Decimal,
        token: str,
        destination_chain: str,
        destination_address: str,
    ) -> TransferResult:
        chain = destination_chain.lower()
        if chain not in SUPPORTED_CHAINS:
            return TransferResult(success=False, error=f"Unsupported destination chain: {destination_chain}")
        if not self.configured:
            return TransferResult(success=False, error="Bridge provider not configured")

        payload = signed_payload(
            sender_secret,
            {
                "sender": address_from_secret(sender_secret),
                "amount": f"{amount:f}",
                "token": token.upper(),
                "destinationChain": chain,
                "destinationAddress": destination_address,
            },
        )
        data = await self._request("POST", "/v1/orders", json=payload)

        order_id = data.get("orderId") or data.get("id")
        if not order_id:
            return TransferResult(success=False, error=data.get("message") or "Bridge order failed")

        logger.info(f"Bridge order {order_id} created to {chain}")
        return TransferResult(success=True, tx_reference=str(order_id), amount_hidden=True)
