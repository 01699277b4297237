"""
Interactive chat over the indexed codebase.

Usage:
    python chat.py

Type a question, or one of the ``:`` commands listed by ``:help``.
"""
import logging
import sys
from datetime import datetime
from typing import Callable, List, Optional

from logger import configure_from_settings
from models.conversation import ChatMessage
from services.chat_service import ChatService
from services.code_assistant import CodeAssistant
from services.embedding_model import EmbeddingModel, EmbeddingProviderError
from services.indexer import CodebaseIndexer, build_default_indexer
from services.llm_client import LLMClient, LLMClientError
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore, NotIndexedError, IndexLockError
from search_codebase import PREVIEW_CHARS
from config import HISTORY_MAX_MESSAGES

logger = logging.getLogger(__name__)

HELP_TEXT = """
Commands:
  :help               Show this help
  :quit, :exit        Leave the chat
  :clear              Forget the conversation history
  :stats              Show index statistics

Search and analysis:
  :search <query>     Run a semantic search
  :analyze <file>     Analyze an indexed file
  :reindex            Re-index the codebase and reload it

Anything else is answered as a question about the codebase.
"""


class InteractiveChat:
    """Line-oriented chat session; ``handle_line`` returns False when the session should end."""

    def __init__(
        self,
        retrieval_engine: RetrievalEngine,
        chat_service: ChatService,
        code_assistant: CodeAssistant,
        indexer_factory: Callable[[], CodebaseIndexer],
        output: Callable[[str], None] = print
    ):
        self.retrieval_engine = retrieval_engine
        self.chat_service = chat_service
        self.code_assistant = code_assistant
        self.indexer_factory = indexer_factory
        self.output = output
        self.history: List[ChatMessage] = []

    def start(self) -> None:
        """Load the store, indexing first when none exists."""
        if not self.retrieval_engine.vector_store.exists():
            self.output("First run: indexing the codebase...")
            self.reindex()
        else:
            self.retrieval_engine.reload()
        self.output(f"{len(self.retrieval_engine.snapshot)} code chunks available")
        self.output("Ask a question (:help for help, :quit to exit)")

    def reindex(self) -> None:
        result = self.indexer_factory().index_codebase()
        self.retrieval_engine.reload()
        self.output(f"Indexed {result.file_count} files into {result.chunk_count} chunks")

    def handle_line(self, line: str) -> bool:
        command = line.strip()

        if not command:
            return True
        if command in (":quit", ":exit"):
            self.output("Goodbye!")
            return False
        if command == ":help":
            self.output(HELP_TEXT)
        elif command == ":stats":
            self.show_stats()
        elif command == ":clear":
            self.history = []
            self.output("Conversation history cleared")
        elif command.startswith(":search "):
            self.perform_search(command[len(":search "):].strip())
        elif command.startswith(":analyze "):
            self.analyze_file(command[len(":analyze "):].strip())
        elif command == ":reindex":
            self.output("Re-indexing the codebase...")
            try:
                self.reindex()
            except (IndexLockError, EmbeddingProviderError) as e:
                self.output(f"Re-index failed: {e}")
        else:
            self.handle_question(command)
        return True

    def show_stats(self) -> None:
        metadata = self.retrieval_engine.snapshot.metadata
        if metadata is None:
            self.output("No statistics available")
            return

        indexed_at = datetime.fromisoformat(metadata.indexed_at.replace("Z", "+00:00"))
        lines = [
            "Index statistics:",
            f"  Last indexed: {indexed_at.strftime('%Y-%m-%d %H:%M:%S %Z')}",
            f"  Files: {metadata.total_files}",
            f"  Chunks: {metadata.total_chunks}",
            f"  History messages: {len(self.history)}",
            "",
            "Files by type:",
        ]
        lines.extend(f"  {file_type}: {count}" for file_type, count in sorted(metadata.file_types.items()))
        self.output("\n".join(lines))

    def perform_search(self, query: str) -> None:
        self.output(f'Searching: "{query}"')
        try:
            results = self.retrieval_engine.search(query, top_k=5)
        except EmbeddingProviderError as e:
            self.output(f"Search failed: {e}")
            return
        except ValueError as e:
            self.output(f"Search failed: {e}. Run :reindex to rebuild the index.")
            return

        self.output(f"{len(results)} results:")
        for rank, result in enumerate(results, start=1):
            preview = result.content[:PREVIEW_CHARS].replace("\n", " ")
            self.output(
                f"{rank}. {result.metadata.file_path} (similarity: {result.similarity * 100:.1f}%)\n"
                f"   Type: {result.metadata.file_type}\n"
                f"   Content: {preview}..."
            )

    def analyze_file(self, path_fragment: str) -> None:
        records = self.retrieval_engine.find_by_path(path_fragment)
        if not records:
            self.output("File not found in the index")
            return

        self.output(f"{path_fragment}: {len(records)} chunks, type {records[0].metadata.file_type}")
        try:
            analysis = self.code_assistant.analyze_file(path_fragment)
        except LLMClientError as e:
            self.output(f"Analysis failed: {e}")
            return
        self.output(f"Analysis:\n{analysis}")

    def handle_question(self, question: str) -> None:
        self.output("Thinking...")
        try:
            result = self.chat_service.answer_with_sources(question, list(self.history))
        except (EmbeddingProviderError, LLMClientError) as e:
            self.output(f"Could not answer: {e}")
            return
        except ValueError as e:
            # Query and store embeddings disagree on dimension
            self.output(f"Could not answer: {e}. Run :reindex to rebuild the index.")
            return

        self.history.extend([
            ChatMessage(role="user", content=question),
            ChatMessage(role="assistant", content=result.text),
        ])
        # Only the tail is ever sent, keep the buffer bounded too
        self.history = self.history[-HISTORY_MAX_MESSAGES * 2:]

        self.output(f"\nAnswer:\n{result.text}\n")
        if result.sources:
            self.output("Sources:")
            for rank, source in enumerate(result.sources, start=1):
                self.output(f"  {rank}. {source.metadata.file_path} ({source.similarity * 100:.1f}%)")


def main(argv: Optional[List[str]] = None) -> int:
    configure_from_settings()

    try:
        retrieval_engine = RetrievalEngine(VectorStore(), EmbeddingModel())
        llm_client = LLMClient()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    session = InteractiveChat(
        retrieval_engine=retrieval_engine,
        chat_service=ChatService(retrieval_engine, llm_client),
        code_assistant=CodeAssistant(llm_client, retrieval_engine),
        indexer_factory=build_default_indexer,
    )

    print("Codebase RAG Chat")
    print("=" * 28)
    try:
        session.start()
    except (NotIndexedError, IndexLockError, EmbeddingProviderError) as e:
        print(f"Startup failed: {e}", file=sys.stderr)
        print("Run rag-index manually and try again.", file=sys.stderr)
        return 1

    while True:
        try:
            line = input("rag> ")
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        if not session.handle_line(line):
            return 0


if __name__ == "__main__":
    sys.exit(main())
