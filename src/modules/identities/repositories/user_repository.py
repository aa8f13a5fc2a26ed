from src.common.repositories import BaseRepository
from src.common.resilience import retry_db_operation
from src.modules.identities.entities import User


class UserRepository(BaseRepository[User]):
    model = User

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def get_by_phone(self, phone: str) -> User | None:
        return self.session.query(User).filter(User.phone == phone).first()

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def get_by_wallet(self, wallet_address: str) -> User | None:
        return self.session.query(User).filter(User.wallet_address == wallet_address).first()

    def create_user(
        self, phone: str, wallet_address: str, encrypted_private_key: str, preferred_language: str = "en"
    ) -> User:
        db_user = User(
            phone=phone,
            wallet_address=wallet_address,
            encrypted_private_key=encrypted_private_key,
            preferred_language=preferred_language,
            pin_failed_attempts=0,
        )
        return super().create(db_user)
