from src.modules.identities.repositories.contact_repository import ContactRepository
from src.modules.identities.repositories.user_repository import UserRepository

__all__ = ["ContactRepository", "UserRepository"]
