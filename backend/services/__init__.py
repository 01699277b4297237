"""Services for the codebase RAG assistant."""
from .chunking_engine import ChunkingEngine, get_file_type
from .source_loader import SourceLoader
from .embedding_model import EmbeddingModel, EmbeddingProviderError
from .vector_store import VectorStore, NotIndexedError, IndexLockError
from .indexer import CodebaseIndexer
from .retrieval_engine import RetrievalEngine, StoreSnapshot, cosine_similarity
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .conversation_manager import ConversationManager
from .chat_service import ChatService, ChatAnswer
from .code_assistant import CodeAssistant

__all__ = ['ChunkingEngine', 'get_file_type', 'SourceLoader', 'EmbeddingModel', 'EmbeddingProviderError', 'VectorStore', 'NotIndexedError', 'IndexLockError', 'CodebaseIndexer', 'RetrievalEngine', 'StoreSnapshot', 'cosine_similarity', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'ConversationManager', 'ChatService', 'ChatAnswer', 'CodeAssistant']
