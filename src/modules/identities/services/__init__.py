from src.modules.identities.services.contact_service import ContactService
from src.modules.identities.services.identity_service import IdentityService
from src.modules.identities.services.phone import normalize_phone
from src.modules.identities.services.pin_service import PinService

__all__ = ["ContactService", "IdentityService", "PinService", "normalize_phone"]
