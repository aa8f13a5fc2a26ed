import logging
from decimal import Decimal

from src.common.exceptions import ProviderError
from src.common.providers.base import TransferResult
from src.common.providers.http_client import HttpProvider
from src.common.providers.shadowwire import signed_payload
from src.common.resilience import retry_with_backoff
from src.common.wallet import address_from_secret
from src.configuration.config import settings

logger = logging.getLogger(__name__)

MAINNET_ONLY_ERROR = "Private pool only available on mainnet. Switch to mainnet to use this feature."


class PrivacyPoolClient(HttpProvider):
    """
    Shielded pool: deposit from the public wallet, withdraw to any address.
    An anonymous send is a withdrawal to somebody else's address.
    """

    name = "privacy_pool"

    def __init__(
        self, base_url: str | None = None, api_key: str | None = None, rpc_url: str | None = None
    ):
        super().__init__(base_url or settings.PRIVACY_POOL_API_URL, api_key or settings.PRIVACY_POOL_API_KEY)
        self.rpc_url = rpc_url or settings.SOLANA_RPC_URL

    @property
    def available(self) -> bool:
        return "devnet" not in self.rpc_url

    async def deposit(self, owner_secret: str, amount: Decimal, token: str) -> TransferResult:
        if not self.available:
            return TransferResult(success=False, error=MAINNET_ONLY_ERROR)

        payload = signed_payload(
            owner_secret,
            {"owner": address_from_secret(owner_secret), "amount": f"{amount:f}", "token": token.upper()},
        )
        data = await self._request("POST", "/v1/deposit", json=payload)
        return self._result(data, "Deposit failed")

    async def withdraw(
        self, owner_secret: str, amount: Decimal, recipient_address: str, token: str
    ) -> TransferResult:
        if not self.available:
            return TransferResult(success=False, error=MAINNET_ONLY_ERROR)

        payload = signed_payload(
            owner_secret,
            {
                "owner": address_from_secret(owner_secret),
                "recipient": recipient_address,
                "amount": f"{amount:f}",
                "token": token.upper(),
            },
        )
        data = await self._request("POST", "/v1/withdraw", json=payload)
        return self._result(data, "Withdraw failed")

    @retry_with_backoff(max_attempts=3, initial_wait=0.5, max_wait=4.0, retry_exceptions=(ProviderError,))
    async def get_private_balance(self, owner_secret: str, token: str) -> Decimal:
        if not self.available:
            return Decimal("0")

        data = await self._request(
            "GET",
            f"/v1/balance/{address_from_secret(owner_secret)}",
            params={"token": token.upper()},
        )
        return Decimal(str(data.get("balance", "0")))

    @staticmethod
    def _result(data: dict, default_error: str) -> TransferResult:
        tx_reference = data.get("tx") or data.get("signature")
        if not tx_reference:
            return TransferResult(success=False, error=data.get("message") or default_error)
        return TransferResult(success=True, tx_reference=tx_reference)
