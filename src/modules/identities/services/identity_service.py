import asyncio
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.common.crypto import decrypt_secret, encrypt_secret
from src.common.exceptions import HushPayError
from src.common.providers import WalletRegistrar
from src.common.wallet import generate_keypair
from src.modules.identities.entities import User
from src.modules.identities.repositories import UserRepository
from src.modules.identities.services.phone import (
    SUPPORTED_LANGUAGES,
    detect_language,
    mask_phone,
    normalize_phone,
)

logger = logging.getLogger(__name__)

# Strong references to in-flight registrations so they are not collected mid-run
_background_tasks: set[asyncio.Task] = set()


class IdentityService:
    def __init__(self, db: Session, wallet_registrar: WalletRegistrar | None = None):
        self.db = db
        self.repository = UserRepository(db)
        self.wallet_registrar = wallet_registrar

    def get(self, phone: str) -> User | None:
        return self.repository.get_by_phone(normalize_phone(phone))

    def get_by_wallet(self, wallet_address: str) -> User | None:
        return self.repository.get_by_wallet(wallet_address)

    def get_or_create(self, raw_phone: str) -> tuple[User, bool]:
        """
        Look up the identity for a phone number, creating it on first contact.

        A new identity gets a freshly generated wallet whose secret is stored
        encrypted; the wallet is never rotated afterwards.

        Returns:
            (user, is_new)

        Raises:
            InvalidIdentifier: The phone number is not in international format.
        """
        phone = normalize_phone(raw_phone)
        existing = self.repository.get_by_phone(phone)
        if existing:
            return existing, False

        wallet_address, secret = generate_keypair()
        try:
            user = self.repository.create_user(
                phone=phone,
                wallet_address=wallet_address,
                encrypted_private_key=encrypt_secret(secret),
                preferred_language=detect_language(phone),
            )
            self.db.commit()
        except IntegrityError:
            # Another worker created it first
            self.db.rollback()
            return self.repository.get_by_phone(phone), False

        logger.info(f"Identity created for {mask_phone(phone)} with wallet {wallet_address[:8]}...")
        self._register_wallet(wallet_address)
        return user, True

    def _register_wallet(self, wallet_address: str) -> None:
        if self.wallet_registrar is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; wallet notification registration skipped")
            return
        task = loop.create_task(self._register_wallet_best_effort(wallet_address))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    async def _register_wallet_best_effort(self, wallet_address: str) -> None:
        try:
            await self.wallet_registrar.register(wallet_address)
        except Exception as e:
            logger.warning(f"Wallet notification registration failed for {wallet_address[:8]}...: {e}")

    def set_language(self, user: User, language: str) -> str:
        code = language.strip().lower()[:2]
        if code not in SUPPORTED_LANGUAGES:
            raise HushPayError(f"Supported languages: {', '.join(SUPPORTED_LANGUAGES)}.")
        self.repository.update(user, {"preferred_language": code})
        self.db.commit()
        return code

    @staticmethod
    def decrypt_private_key(user: User) -> str:
        """Base58 wallet secret. Raises ValueError when ENCRYPTION_KEY is missing."""
        return decrypt_secret(user.encrypted_private_key)
