"""Conversation manager for multi-turn chat support."""
import logging
import threading
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from models.conversation import ChatMessage, Conversation, Turn
from config import HISTORY_MAX_MESSAGES

logger = logging.getLogger(__name__)


class ConversationManager:
    """
    Keeps conversations in process memory.

    Conversations live as long as the process; restarting the server
    forgets them.
    """

    def __init__(self, max_conversations: int = 1000):
        """
        Initialize the conversation manager.

        Args:
            max_conversations: Oldest conversations are evicted beyond this count
        """
        self.max_conversations = max_conversations
        self._conversations: Dict[str, Conversation] = {}
        self._lock = threading.Lock()
        logger.info("ConversationManager initialized")

    def get_or_create_conversation(self, conversation_id: Optional[str] = None) -> Conversation:
        """
        Get existing conversation or create new one.

        Args:
            conversation_id: Optional existing conversation ID

        Returns:
            Conversation object with ID and turns
        """
        with self._lock:
            if conversation_id:
                conversation = self._conversations.get(conversation_id)
                if conversation is not None:
                    logger.info(
                        f"Retrieved existing conversation: {conversation_id} with {len(conversation.turns)} turns"
                    )
                    return conversation
                logger.warning(f"Conversation {conversation_id} not found, creating new one")

            conversation = Conversation(conversation_id=self._generate_conversation_id())
            self._conversations[conversation.conversation_id] = conversation
            self._evict()

        logger.info(f"Created new conversation: {conversation.conversation_id}")
        return conversation

    def add_turn(self, conversation_id: str, query: str, response: str) -> None:
        """
        Add query-response pair to conversation history.

        Raises:
            KeyError: If the conversation does not exist
        """
        with self._lock:
            conversation = self._conversations[conversation_id]
            conversation.turns.append(Turn(query=query, response=response, timestamp=datetime.now()))
        logger.info(f"Added turn to conversation {conversation_id}")

    def get_history(self, conversation_id: str, max_messages: int = HISTORY_MAX_MESSAGES) -> List[ChatMessage]:
        """
        Most recent messages of a conversation, oldest first.

        Args:
            conversation_id: ID of the conversation
            max_messages: Maximum number of user/assistant messages to return

        Returns:
            Messages, empty for unknown conversations
        """
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            turns = list(conversation.turns) if conversation else []

        messages = [message for turn in turns for message in turn.to_messages()]
        return messages[-max_messages:] if max_messages > 0 else []

    def _evict(self) -> None:
        while len(self._conversations) > self.max_conversations:
            oldest = min(self._conversations.values(), key=lambda c: c.created_at)
            del self._conversations[oldest.conversation_id]
            logger.debug(f"Evicted conversation {oldest.conversation_id}")

    def _generate_conversation_id(self) -> str:
        return f"conv_{uuid.uuid4().hex[:12]}"
