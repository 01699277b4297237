"""Retrieval-augmented chat over the indexed codebase."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import tiktoken

from models.chunk import ScoredRecord
from models.conversation import ChatMessage
from services.llm_client import LLMClient, MessageLike, to_messages
from services.retrieval_engine import RetrievalEngine
from config import (
    RETRIEVAL_TOP_K,
    RETRIEVAL_MAX_CONTEXT_TOKENS,
    HISTORY_MAX_MESSAGES,
    COMPLETION_TEMPERATURE,
    COMPLETION_MAX_TOKENS,
)

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"

SYSTEM_PROMPT_TEMPLATE = """You are an expert assistant for this software project.
Use the codebase context below to give accurate, useful answers.

Codebase context:
{context}

Conversation so far:
{history}

Guidelines:
- Be concrete and practical
- Format code examples properly
- Follow the structure and conventions of the project
- If the context does not contain the answer, say that you don't know"""


@dataclass
class ChatAnswer:
    """Completion text plus the chunks that were placed in the prompt."""
    text: str
    sources: List[ScoredRecord] = field(default_factory=list)


class ChatService:
    """Assemble retrieval context and history into a prompt and ask the completion provider."""

    def __init__(
        self,
        retrieval_engine: RetrievalEngine,
        llm_client: LLMClient,
        top_k: int = RETRIEVAL_TOP_K,
        max_history_messages: int = HISTORY_MAX_MESSAGES,
        max_context_tokens: int = RETRIEVAL_MAX_CONTEXT_TOKENS,
        encoder=None
    ):
        """
        Initialize the chat service.

        Args:
            retrieval_engine: Source of ranked chunks
            llm_client: Completion provider client
            top_k: Chunks retrieved per question
            max_history_messages: Most recent history messages kept in the prompt
            max_context_tokens: Token budget for the retrieved context
            encoder: Object with ``encode(str) -> list``; tiktoken cl100k_base when omitted
        """
        self.retrieval_engine = retrieval_engine
        self.llm_client = llm_client
        self.top_k = top_k
        self.max_history_messages = max_history_messages
        self.max_context_tokens = max_context_tokens
        self._encoder = encoder

    @property
    def encoder(self):
        if self._encoder is None:
            self._encoder = tiktoken.get_encoding("cl100k_base")
        return self._encoder

    def answer(self, question: str, history: Sequence[MessageLike] = ()) -> str:
        """Answer a question about the codebase."""
        return self.answer_with_sources(question, history).text

    def answer_with_sources(self, question: str, history: Sequence[MessageLike] = ()) -> ChatAnswer:
        """
        Retrieve context, build the prompt and call the completion provider.

        Raises:
            NotIndexedError: If the store has not been written
            EmbeddingProviderError: If the question cannot be embedded
            LLMClientError: If the completion call fails
        """
        results = self.retrieval_engine.search(question, top_k=self.top_k)
        sources = self.select_context(results)
        messages = self.build_messages(question, sources, history)

        response = self.llm_client.complete(
            messages,
            temperature=COMPLETION_TEMPERATURE,
            max_tokens=COMPLETION_MAX_TOKENS
        )
        logger.info(f"Answered question with {len(sources)} context chunks")
        return ChatAnswer(text=response.text, sources=sources)

    def select_context(self, results: Sequence[ScoredRecord]) -> List[ScoredRecord]:
        """
        Keep ranked results in order until the token budget is spent.

        The top result is always kept.
        """
        selected: List[ScoredRecord] = []
        used = 0
        for result in results:
            cost = len(self.encoder.encode(self.format_chunk(result)))
            if selected and used + cost > self.max_context_tokens:
                logger.debug(f"Context budget reached after {len(selected)} chunks ({used} tokens)")
                break
            selected.append(result)
            used += cost
        return selected

    @staticmethod
    def format_chunk(result: ScoredRecord) -> str:
        return f"File: {result.metadata.file_path}\n{result.content}"

    def build_messages(
        self,
        question: str,
        sources: Sequence[ScoredRecord],
        history: Sequence[MessageLike] = ()
    ) -> List[ChatMessage]:
        """System prompt with context and recent history, then the question."""
        context = CONTEXT_SEPARATOR.join(self.format_chunk(result) for result in sources)

        recent = to_messages(history)
        recent = recent[-self.max_history_messages:] if self.max_history_messages > 0 else []
        history_text = "\n".join(f"{m.role}: {m.content}" for m in recent)

        system_prompt = SYSTEM_PROMPT_TEMPLATE.format(
            context=context or "(no relevant code found)",
            history=history_text or "(none)"
        )
        return [
            ChatMessage(role="system", content=system_prompt),
            ChatMessage(role="user", content=question),
        ]
