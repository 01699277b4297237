"""Tests for the command-line tools: indexing, search and interactive chat."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, PropertyMock, patch
import chat
import index_codebase
import search_codebase
from chat import InteractiveChat, HELP_TEXT
from models.chunk import ChunkMetadata, IndexResult, ScoredRecord, VectorRecord
from models.conversation import ChatMessage
from models.index_metadata import IndexMetadata
from services.chat_service import ChatAnswer
from services.embedding_model import EmbeddingProviderError
from services.llm_client import LLMClientError, LLMError
from services.vector_store import IndexLockError, NotIndexedError


def make_result(path="src/auth.ts", content="export function login() {}", similarity=0.875):
    record = VectorRecord(
        id="chunk_0",
        embedding=[1.0],
        metadata=ChunkMetadata(file_path=path, file_type="typescript", chunk_index=0, lines=1),
        content=content,
    )
    return ScoredRecord(record=record, similarity=similarity)


class TestFormatResult:
    """Search result rendering."""

    def test_percentage_and_preview(self):
        """Test similarity percentage and content preview."""
        text = search_codebase.format_result(1, make_result(content="line one\nline two"))

        assert "1. src/auth.ts" in text
        assert "Similarity: 87.5%" in text
        assert "Type: typescript" in text
        assert "Content: line one line two..." in text

    def test_preview_is_cut(self):
        """Test that long content is cut in the preview."""
        text = search_codebase.format_result(2, make_result(content="z" * 500))

        assert "z" * search_codebase.PREVIEW_CHARS + "..." in text
        assert "z" * (search_codebase.PREVIEW_CHARS + 1) not in text


class TestSearchMain:
    """rag-search entry point."""

    @patch("search_codebase.EmbeddingModel")
    @patch("search_codebase.VectorStore")
    @patch("search_codebase.RetrievalEngine")
    def test_prints_results(self, mock_engine_class, mock_store_class, mock_model_class, capsys):
        """Test that search results are printed."""
        engine = mock_engine_class.return_value
        engine.snapshot = [1, 2, 3]
        engine.search.return_value = [make_result()]

        code = search_codebase.main(["how does login work", "--top-k", "3", "--type", "typescript"])

        assert code == 0
        engine.search.assert_called_once_with("how does login work", top_k=3, file_type="typescript")
        out = capsys.readouterr().out
        assert "Searching 3 chunks" in out
        assert "1. src/auth.ts" in out

    @patch("search_codebase.EmbeddingModel")
    @patch("search_codebase.VectorStore")
    @patch("search_codebase.RetrievalEngine")
    def test_not_indexed(self, mock_engine_class, mock_store_class, mock_model_class, capsys):
        """Test the message shown before indexing."""
        type(mock_engine_class.return_value).snapshot = PropertyMock(side_effect=NotIndexedError("missing"))

        assert search_codebase.main(["query"]) == 1
        assert "Run rag-index first" in capsys.readouterr().err


class TestIndexMain:
    """rag-index exit codes."""

    @patch("index_codebase.build_default_indexer")
    def test_success(self, mock_build):
        """Test a successful indexing run."""
        mock_build.return_value.index_codebase.return_value = IndexResult(file_count=3, chunk_count=2)

        assert index_codebase.main(["--root", "/tmp/project", "--data-dir", "/tmp/data"]) == 0
        mock_build.assert_called_once_with(project_root=Path("/tmp/project"), data_dir=Path("/tmp/data"))

    @patch("index_codebase.build_default_indexer")
    def test_lock_held(self, mock_build):
        """Test the exit code when another run holds the lock."""
        mock_build.return_value.index_codebase.side_effect = IndexLockError("locked")
        assert index_codebase.main([]) == 2

    @patch("index_codebase.build_default_indexer")
    def test_embedding_failure(self, mock_build):
        """Test the exit code on embedding failure."""
        mock_build.return_value.index_codebase.side_effect = EmbeddingProviderError("down")
        assert index_codebase.main([]) == 1

    @patch("index_codebase.build_default_indexer")
    def test_missing_credentials(self, mock_build):
        """Test that a missing API key exits with status 1."""
        mock_build.side_effect = ValueError("EMBEDDING_API_KEY (or OPENAI_API_KEY) environment variable is required")
        assert index_codebase.main([]) == 1


class TestInteractiveChat:
    """Commands of the chat session."""

    @pytest.fixture
    def parts(self):
        retrieval_engine = Mock()
        retrieval_engine.snapshot = [1, 2]
        chat_service = Mock()
        code_assistant = Mock()
        indexer = Mock()
        indexer.index_codebase.return_value = IndexResult(file_count=4, chunk_count=9)
        output = []
        session = InteractiveChat(
            retrieval_engine=retrieval_engine,
            chat_service=chat_service,
            code_assistant=code_assistant,
            indexer_factory=lambda: indexer,
            output=output.append,
        )
        return session, retrieval_engine, chat_service, code_assistant, indexer, output

    def test_start_with_existing_store(self, parts):
        """Test startup with an existing store."""
        session, retrieval_engine, _, _, indexer, output = parts
        retrieval_engine.vector_store.exists.return_value = True

        session.start()

        retrieval_engine.reload.assert_called_once()
        indexer.index_codebase.assert_not_called()
        assert "2 code chunks available" in output

    def test_start_indexes_on_first_run(self, parts):
        """Test that the first start indexes the codebase."""
        session, retrieval_engine, _, _, indexer, output = parts
        retrieval_engine.vector_store.exists.return_value = False

        session.start()

        indexer.index_codebase.assert_called_once()
        assert "Indexed 4 files into 9 chunks" in output

    def test_quit_and_exit(self, parts):
        """Test that quit and exit end the session."""
        session = parts[0]
        assert session.handle_line(":quit") is False
        assert session.handle_line(":exit") is False
        assert session.handle_line("") is True

    def test_help(self, parts):
        """Test the help command."""
        session, output = parts[0], parts[5]
        session.handle_line(":help")
        assert output == [HELP_TEXT]

    def test_question_updates_history(self, parts):
        """Test that an answered question is added to history."""
        session, _, chat_service, _, _, output = parts
        chat_service.answer_with_sources.return_value = ChatAnswer(text="In src/auth.ts.", sources=[make_result()])

        assert session.handle_line("Where is login?") is True

        chat_service.answer_with_sources.assert_called_once_with("Where is login?", [])
        assert session.history == [
            ChatMessage(role="user", content="Where is login?"),
            ChatMessage(role="assistant", content="In src/auth.ts."),
        ]
        assert any("In src/auth.ts." in line for line in output)
        assert any("1. src/auth.ts (87.5%)" in line for line in output)

    def test_history_is_bounded(self, parts):
        """Test that history keeps only the recent messages."""
        session, _, chat_service, _, _, _ = parts
        chat_service.answer_with_sources.return_value = ChatAnswer(text="ok")

        for i in range(10):
            session.handle_line(f"question {i}")

        assert len(session.history) == 12
        assert session.history[0].content == "question 4"

    def test_clear(self, parts):
        """Test that clear empties the history."""
        session, _, chat_service, _, _, _ = parts
        chat_service.answer_with_sources.return_value = ChatAnswer(text="ok")
        session.handle_line("question")

        session.handle_line(":clear")

        assert session.history == []

    def test_question_failure_is_reported(self, parts):
        """Test that a failed answer is reported without touching history."""
        session, _, chat_service, _, _, output = parts
        chat_service.answer_with_sources.side_effect = LLMClientError(
            LLMError(code="API_ERROR", message="Groq API error: boom", details={})
        )

        assert session.handle_line("Where is login?") is True
        assert "Could not answer: Groq API error: boom" in output
        assert session.history == []

    def test_question_dimension_mismatch_is_reported(self, parts):
        """Test that a dimension mismatch while answering asks for a re-index."""
        session, _, chat_service, _, _, output = parts
        chat_service.answer_with_sources.side_effect = ValueError("Query embedding has dimension 3, store has 2")

        assert session.handle_line("Where is login?") is True
        assert any("Run :reindex" in line for line in output)
        assert session.history == []

    def test_search_command(self, parts):
        """Test the search command."""
        session, retrieval_engine, _, _, _, output = parts
        retrieval_engine.search.return_value = [make_result()]

        session.handle_line(":search login flow")

        retrieval_engine.search.assert_called_once_with("login flow", top_k=5)
        assert "1 results:" in output

    def test_search_dimension_mismatch_is_reported(self, parts):
        """Test that a dimension mismatch while searching asks for a re-index."""
        session, retrieval_engine, _, _, _, output = parts
        retrieval_engine.search.side_effect = ValueError("Query embedding has dimension 3, store has 2")

        assert session.handle_line(":search login") is True
        assert "Search failed: Query embedding has dimension 3, store has 2. Run :reindex to rebuild the index." in output

    def test_analyze_command(self, parts):
        """Test the analyze command."""
        session, retrieval_engine, _, code_assistant, _, output = parts
        retrieval_engine.find_by_path.return_value = [make_result().record]
        code_assistant.analyze_file.return_value = "Handles login."

        session.handle_line(":analyze auth.ts")

        code_assistant.analyze_file.assert_called_once_with("auth.ts")
        assert "Analysis:\nHandles login." in output

    def test_analyze_unknown_file(self, parts):
        """Test analyze on a file that is not indexed."""
        session, retrieval_engine, _, code_assistant, _, output = parts
        retrieval_engine.find_by_path.return_value = []

        session.handle_line(":analyze nope.ts")

        assert "File not found in the index" in output
        code_assistant.analyze_file.assert_not_called()

    def test_stats(self, parts):
        """Test the stats command."""
        session, retrieval_engine, _, _, _, output = parts
        retrieval_engine.snapshot = Mock(metadata=IndexMetadata(
            indexed_at="2024-03-01T10:00:00Z",
            total_files=3,
            total_chunks=2,
            file_types={"typescript": 1, "markdown": 1, "text": 1},
        ))

        session.handle_line(":stats")

        text = output[-1]
        assert "Last indexed: 2024-03-01 10:00:00 UTC" in text
        assert "Files: 3" in text
        assert "Chunks: 2" in text
        assert "  markdown: 1" in text

    def test_reindex_failure_is_reported(self, parts):
        """Test that a failed re-index is reported."""
        session, retrieval_engine, _, _, indexer, output = parts
        indexer.index_codebase.side_effect = IndexLockError("locked")

        assert session.handle_line(":reindex") is True
        assert "Re-index failed: locked" in output
        retrieval_engine.reload.assert_not_called()


class TestChatMain:
    """rag-chat entry point."""

    @patch("chat.EmbeddingModel")
    def test_missing_credentials(self, mock_model_class, capsys):
        """Test that a missing API key exits with status 1."""
        mock_model_class.side_effect = ValueError("EMBEDDING_API_KEY (or OPENAI_API_KEY) environment variable is required")

        assert chat.main() == 1
        assert "Configuration error" in capsys.readouterr().err
