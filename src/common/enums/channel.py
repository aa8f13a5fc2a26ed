import enum


class Channel(str, enum.Enum):
    SMS = "sms"
    WHATSAPP = "whatsapp"
