"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List


@dataclass
class ChatMessage:
    """Role-tagged message as sent to the completion provider."""
    role: str  # "system", "user" or "assistant"
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class Turn:
    """Represents a single turn in a conversation."""
    query: str
    response: str
    timestamp: datetime

    def to_messages(self) -> List[ChatMessage]:
        return [
            ChatMessage(role="user", content=self.query),
            ChatMessage(role="assistant", content=self.response),
        ]


@dataclass
class Conversation:
    """Represents a multi-turn conversation."""
    conversation_id: str
    turns: List[Turn] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
