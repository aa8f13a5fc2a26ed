from src.common.repositories import BaseRepository
from src.common.resilience import retry_db_operation
from src.modules.identities.entities import Contact


class ContactRepository(BaseRepository[Contact]):
    model = Contact

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def get_by_name(self, owner_phone: str, name_key: str) -> Contact | None:
        return (
            self.session.query(Contact)
            .filter(Contact.owner_phone == owner_phone, Contact.name_key == name_key)
            .first()
        )

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def list_by_owner(self, owner_phone: str) -> list[Contact]:
        return (
            self.session.query(Contact)
            .filter(Contact.owner_phone == owner_phone)
            .order_by(Contact.display_name.asc())
            .all()
        )
