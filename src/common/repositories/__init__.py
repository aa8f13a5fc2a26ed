from src.configuration.config import (
    Base,
    get_db,
    get_session,
)

from .base_repository import (
    BaseRepository,
    ModelType,
)

__all__ = [
    "Base",
    "get_db",
    "get_session",
    "BaseRepository",
    "ModelType",
]
