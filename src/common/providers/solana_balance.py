from decimal import Decimal

from src.common.exceptions import ProviderError
from src.common.providers.http_client import HttpProvider
from src.common.resilience import retry_with_backoff
from src.configuration.config import settings

LAMPORTS_PER_SOL = Decimal(1_000_000_000)


class SolanaBalanceProvider(HttpProvider):
    """Public wallet balances over Solana JSON-RPC."""

    name = "solana_rpc"

    def __init__(self, rpc_url: str | None = None, token_mints: dict[str, str] | None = None):
        super().__init__(rpc_url or settings.SOLANA_RPC_URL)
        self.token_mints = {k.upper(): v for k, v in (token_mints or settings.TOKEN_MINTS).items()}

    async def _rpc(self, method: str, params: list) -> dict:
        data = await self._request("POST", "", json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params})
        if "error" in data:
            raise ProviderError(str(data["error"].get("message", "RPC error")), provider=self.name)
        return data.get("result") or {}

    @retry_with_backoff(max_attempts=3, initial_wait=0.5, max_wait=4.0, retry_exceptions=(ProviderError,))
    async def get_balance(self, address: str, token: str) -> Decimal:
        token = token.upper()
        if token == settings.NATIVE_TOKEN:
            result = await self._rpc("getBalance", [address])
            return Decimal(result.get("value", 0)) / LAMPORTS_PER_SOL

        mint = self.token_mints.get(token)
        if not mint:
            return Decimal("0")

        result = await self._rpc(
            "getTokenAccountsByOwner", [address, {"mint": mint}, {"encoding": "jsonParsed"}]
        )
        total = Decimal("0")
        for account in result.get("value", []):
            info = account["account"]["data"]["parsed"]["info"]
            total += Decimal(info["tokenAmount"]["uiAmountString"])
        return total
