"""HTTP API for codebase search and retrieval-augmented chat."""
import logging
import math
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import PORT, CORS_ORIGINS
from logger import configure_from_settings
from models.api import (
    SearchRequest,
    SearchResponse,
    ChatRequest,
    ChatResponse,
    Source,
    InfoResponse,
    AnalyzeCodeRequest,
    GenerateCodeRequest,
    DebugCodeRequest,
    GenerateDocsRequest,
    GenerateTestsRequest,
)
from services.embedding_model import EmbeddingModel, EmbeddingProviderError
from services.vector_store import VectorStore, NotIndexedError
from services.retrieval_engine import RetrievalEngine
from services.llm_client import LLMClient, LLMClientError
from services.conversation_manager import ConversationManager
from services.chat_service import ChatService
from services.code_assistant import CodeAssistant

# Initialize logging
configure_from_settings()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Codebase RAG Assistant",
    description="Semantic search and question answering over an indexed codebase",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
vector_store: VectorStore = None
retrieval_engine: RetrievalEngine = None
chat_service: ChatService = None
code_assistant: CodeAssistant = None
conversation_manager: ConversationManager = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global vector_store, retrieval_engine, chat_service, code_assistant, conversation_manager

    logger.info("Initializing codebase RAG services...")

    try:
        embedding_model = EmbeddingModel()
        vector_store = VectorStore()
        retrieval_engine = RetrievalEngine(vector_store, embedding_model)

        llm_client = LLMClient()
        chat_service = ChatService(retrieval_engine, llm_client)
        code_assistant = CodeAssistant(llm_client, retrieval_engine)
        conversation_manager = ConversationManager()

        if not embedding_model.warmup():
            logger.warning("Embedding provider is not reachable; search will fail until it is")

        if vector_store.exists():
            retrieval_engine.reload()
        else:
            logger.warning("No vector store yet; search will fail until rag-index has run")

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def _not_indexed(e: NotIndexedError) -> HTTPException:
    logger.warning(str(e))
    return HTTPException(
        status_code=503,
        detail={"error": {"code": "NOT_INDEXED", "message": "Codebase is not indexed yet. Run rag-index first."}}
    )


def _llm_failure(e: LLMClientError) -> HTTPException:
    logger.error(f"LLM client error: {e.error.message}")
    return HTTPException(
        status_code=503,
        detail={
            "error": {
                "code": e.error.code,
                "message": e.error.message,
                "details": e.error.details
            }
        }
    )


def _embedding_failure(e: EmbeddingProviderError) -> HTTPException:
    logger.error(f"Embedding provider error: {e}")
    return HTTPException(
        status_code=502,
        detail={"error": {"code": "EMBEDDING_PROVIDER_ERROR", "message": str(e)}}
    )


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "indexLoaded": bool(retrieval_engine is not None and retrieval_engine.is_loaded),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/api/info", response_model=InfoResponse)
def info() -> InfoResponse:
    """Index summary and number of loaded vectors."""
    metadata = vector_store.load_metadata()
    try:
        vector_count = len(retrieval_engine.snapshot)
        status = "ready"
    except NotIndexedError:
        vector_count = 0
        status = "not_indexed"

    return InfoResponse(
        metadata=metadata.to_dict() if metadata else None,
        vectorCount=vector_count,
        status=status
    )


@app.post("/api/search", response_model=SearchResponse)
def search(request: SearchRequest) -> SearchResponse:
    """Semantic search over the indexed chunks."""
    try:
        results = retrieval_engine.search(request.query, top_k=request.topK, file_type=request.fileType)
    except NotIndexedError as e:
        raise _not_indexed(e)
    except EmbeddingProviderError as e:
        raise _embedding_failure(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SearchResponse(
        results=[result.to_dict() for result in results],
        query=request.query,
        topK=request.topK
    )


@app.post("/api/chat", response_model=ChatResponse)
def chat(request: ChatRequest) -> ChatResponse:
    """
    Answer a question with retrieved codebase context.

    History comes from ``context`` when the caller sends it, otherwise
    from the server-side conversation named by ``conversation_id``.
    """
    conversation = conversation_manager.get_or_create_conversation(request.conversation_id)
    conversation_id = conversation.conversation_id

    if request.context:
        history = [{"role": m.role, "content": m.content} for m in request.context]
    else:
        history = conversation_manager.get_history(conversation_id)

    try:
        result = chat_service.answer_with_sources(request.message, history)
    except NotIndexedError as e:
        raise _not_indexed(e)
    except EmbeddingProviderError as e:
        raise _embedding_failure(e)
    except LLMClientError as e:
        raise _llm_failure(e)

    conversation_manager.add_turn(conversation_id, request.message, result.text)

    return ChatResponse(
        response=result.text,
        conversation_id=conversation_id,
        sources=[
            Source(
                filePath=source.metadata.file_path,
                type=source.metadata.file_type,
                similarity=None if math.isnan(source.similarity) else source.similarity
            )
            for source in result.sources
        ],
        timestamp=datetime.now(timezone.utc).isoformat()
    )


@app.post("/api/reload")
def reload_store():
    """Pick up a store written by a newer indexing run."""
    try:
        snapshot = retrieval_engine.reload()
    except NotIndexedError as e:
        raise _not_indexed(e)
    return {"status": "reloaded", "vectorCount": len(snapshot)}


def _run_assistant(task, *args) -> str:
    try:
        return task(*args)
    except LLMClientError as e:
        raise _llm_failure(e)


@app.post("/api/analyze-code")
def analyze_code(request: AnalyzeCodeRequest):
    analysis = _run_assistant(code_assistant.analyze_code, request.code, request.filePath, request.analysisType)
    return {"analysis": analysis, "filePath": request.filePath, "analysisType": request.analysisType}


@app.post("/api/generate-code")
def generate_code(request: GenerateCodeRequest):
    code = _run_assistant(code_assistant.generate_code, request.prompt, request.language, request.context)
    return {"code": code, "prompt": request.prompt, "language": request.language}


@app.post("/api/debug-code")
def debug_code(request: DebugCodeRequest):
    suggestions = _run_assistant(code_assistant.debug_code, request.code, request.error, request.filePath)
    return {"suggestions": suggestions, "code": request.code, "error": request.error}


@app.post("/api/generate-docs")
def generate_docs(request: GenerateDocsRequest):
    documentation = _run_assistant(code_assistant.generate_docs, request.code, request.filePath, request.docType)
    return {"documentation": documentation, "filePath": request.filePath, "docType": request.docType}


@app.post("/api/generate-tests")
def generate_tests(request: GenerateTestsRequest):
    tests = _run_assistant(code_assistant.generate_tests, request.code, request.filePath, request.testFramework)
    return {"tests": tests, "filePath": request.filePath, "testFramework": request.testFramework}


def serve(port: Optional[int] = None) -> None:
    """Console entry point: run the API with uvicorn."""
    import uvicorn
    port = port or PORT
    logger.info(f"Starting codebase RAG API on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    serve()
