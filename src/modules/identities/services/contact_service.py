import logging

from sqlalchemy.orm import Session

from src.modules.identities.entities import Contact
from src.modules.identities.repositories import ContactRepository
from src.modules.identities.services.phone import looks_like_phone, normalize_phone

logger = logging.getLogger(__name__)


class ContactService:
    """Named phone numbers per owner. Names are unique per owner, case-insensitively."""

    def __init__(self, db: Session):
        self.db = db
        self.repository = ContactRepository(db)

    @staticmethod
    def _key(name: str) -> str:
        return " ".join(name.split()).lower()

    def save(self, owner_phone: str, name: str, phone: str) -> Contact:
        target_phone = normalize_phone(phone)
        display_name = " ".join(name.split())
        existing = self.repository.get_by_name(owner_phone, self._key(name))
        if existing:
            contact = self.repository.update(
                existing, {"display_name": display_name, "target_phone": target_phone}
            )
        else:
            contact = self.repository.create(
                Contact(
                    owner_phone=owner_phone,
                    name_key=self._key(name),
                    display_name=display_name,
                    target_phone=target_phone,
                )
            )
        self.db.commit()
        return contact

    def delete(self, owner_phone: str, name: str) -> bool:
        existing = self.repository.get_by_name(owner_phone, self._key(name))
        if existing is None:
            return False
        self.repository.delete(existing)
        self.db.commit()
        return True

    def list(self, owner_phone: str) -> list[Contact]:
        return self.repository.list_by_owner(owner_phone)

    def resolve(self, owner_phone: str, name_or_phone: str) -> str | None:
        """Phone number for a contact name or a raw phone number; None if neither."""
        if looks_like_phone(name_or_phone):
            return normalize_phone(name_or_phone)
        contact = self.repository.get_by_name(owner_phone, self._key(name_or_phone))
        return contact.target_phone if contact else None
