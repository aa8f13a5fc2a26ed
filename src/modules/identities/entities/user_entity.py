from sqlalchemy import Column, Integer, String

from src.common.entities.base import BaseEntity
from src.common.entities.types import UTCDateTime


class UserEntity(BaseEntity):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String(20), unique=True, nullable=False, index=True)
    wallet_address = Column(String(64), unique=True, nullable=False, index=True)
    encrypted_private_key = Column(String(512), nullable=False)
    preferred_language = Column(String(5), nullable=False, default="en")
    pin_hash = Column(String(255), nullable=True)
    pin_failed_attempts = Column(Integer, nullable=False, default=0)
    pin_locked_until = Column(UTCDateTime(), nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, phone='...{self.phone[-4:]}', wallet='{self.wallet_address[:8]}...')>"
