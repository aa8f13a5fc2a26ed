from src.common.repositories import BaseRepository
from src.common.resilience import retry_db_operation
from src.modules.conversations.entities import Message


class MessageRepository(BaseRepository[Message]):
    model = Message

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def get_recent(self, phone: str, limit: int = 10) -> list[Message]:
        """The last ``limit`` messages for a phone, oldest first."""
        recent = (
            self.session.query(Message)
            .filter(Message.phone == phone)
            .order_by(Message.id.desc())
            .limit(limit)
            .all()
        )
        return list(reversed(recent))

    def create_message(self, phone: str, role: str, content: str) -> Message:
        db_message = Message(phone=phone, role=role, content=content)
        return super().create(db_message)
