from src.modules.conversations.entities.message_entity import MessageEntity

Message = MessageEntity

__all__ = ["Message", "MessageEntity"]
