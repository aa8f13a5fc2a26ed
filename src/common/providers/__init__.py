from dataclasses import dataclass

from src.common.providers.base import (
    BalanceProvider,
    BridgeProvider,
    ComplianceScreener,
    Notifier,
    PriceFeed,
    PrivacyPoolProvider,
    ScreeningResult,
    TransferProvider,
    TransferResult,
    WalletRegistrar,
)


@dataclass
class Providers:
    """The external collaborators of the payment core, wired once per process."""

    transfer: TransferProvider
    privacy_pool: PrivacyPoolProvider
    bridge: BridgeProvider
    compliance: ComplianceScreener
    balance: BalanceProvider
    notifier: Notifier
    price_feed: PriceFeed
    wallet_registrar: WalletRegistrar


_providers: Providers | None = None


def build_default_providers() -> Providers:
    from src.common.providers.bridge import BridgeClient
    from src.common.providers.coingecko import CoinGeckoPriceFeed
    from src.common.providers.helius import HeliusWalletRegistrar
    from src.common.providers.privacy_pool import PrivacyPoolClient
    from src.common.providers.range_screener import RangeComplianceScreener
    from src.common.providers.shadowwire import ShadowWireTransferProvider
    from src.common.providers.solana_balance import SolanaBalanceProvider
    from src.common.providers.twilio_notifier import TwilioNotifier

    return Providers(
        transfer=ShadowWireTransferProvider(),
        privacy_pool=PrivacyPoolClient(),
        bridge=BridgeClient(),
        compliance=RangeComplianceScreener(),
        balance=SolanaBalanceProvider(),
        notifier=TwilioNotifier(),
        price_feed=CoinGeckoPriceFeed(),
        wallet_registrar=HeliusWalletRegistrar(),
    )


def get_providers() -> Providers:
    global _providers
    if _providers is None:
        _providers = build_default_providers()
    return _providers


def set_providers(providers: Providers | None) -> None:
    global _providers
    _providers = providers


__all__ = [
    "BalanceProvider",
    "BridgeProvider",
    "ComplianceScreener",
    "Notifier",
    "PriceFeed",
    "PrivacyPoolProvider",
    "Providers",
    "ScreeningResult",
    "TransferProvider",
    "TransferResult",
    "WalletRegistrar",
    "build_default_providers",
    "get_providers",
    "set_providers",
]
