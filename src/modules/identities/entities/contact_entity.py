from sqlalchemy import Column, Integer, String, UniqueConstraint

from src.common.entities.base import BaseEntity


class ContactEntity(BaseEntity):
    __tablename__ = "contacts"
    __table_args__ = (UniqueConstraint("owner_phone", "name_key", name="uq_contacts_owner_name"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_phone = Column(String(20), nullable=False, index=True)
    name_key = Column(String(100), nullable=False)  # lower-cased display name
    display_name = Column(String(100), nullable=False)
    target_phone = Column(String(20), nullable=False)

    def __repr__(self):
        return f"<Contact(id={self.id}, name='{self.display_name}', phone='...{self.target_phone[-4:]}')>"
