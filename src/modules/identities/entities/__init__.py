from src.modules.identities.entities.contact_entity import ContactEntity
from src.modules.identities.entities.user_entity import UserEntity

User = UserEntity
Contact = ContactEntity

__all__ = ["Contact", "ContactEntity", "User", "UserEntity"]
