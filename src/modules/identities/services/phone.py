import re

from src.common.exceptions import InvalidIdentifier

PHONE_PATTERN = re.compile(r"^\+\d{10,15}$")
_SEPARATORS = re.compile(r"[\s\-().]")

SUPPORTED_LANGUAGES = ("en", "es", "fr", "pt")

# Calling code -> language, longest prefixes first
_LANGUAGE_BY_CALLING_CODE = [
    ("+351", "pt"), ("+244", "pt"), ("+258", "pt"),
    ("+34", "es"), ("+52", "es"), ("+54", "es"), ("+57", "es"), ("+56", "es"), ("+51", "es"), ("+58", "es"),
    ("+33", "fr"), ("+32", "fr"), ("+41", "fr"),
    ("+55", "pt"),
]


def normalize_phone(raw: str) -> str:
    """Normalize to ``+<10-15 digits>`` or raise InvalidIdentifier."""
    if raw is None:
        raise InvalidIdentifier()
    phone = raw.strip()
    if phone.lower().startswith("whatsapp:"):
        phone = phone[len("whatsapp:"):]
    phone = _SEPARATORS.sub("", phone)
    if not phone.startswith("+"):
        phone = f"+{phone}"
    if not PHONE_PATTERN.match(phone):
        raise InvalidIdentifier()
    return phone


def looks_like_phone(value: str) -> bool:
    return bool(re.fullmatch(r"\+?[\d\s\-().]{10,20}", value.strip()))


def detect_language(phone: str) -> str:
    for prefix, language in _LANGUAGE_BY_CALLING_CODE:
        if phone.startswith(prefix):
            return language
    return "en"


def mask_phone(phone: str) -> str:
    return f"...{phone[-4:]}"
