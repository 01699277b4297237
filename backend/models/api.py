"""Request and response schemas for the HTTP API."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    topK: int = Field(5, ge=1)
    fileType: Optional[str] = None


class SearchResponse(BaseModel):
    results: List[Dict[str, Any]]
    query: str
    topK: int


class HistoryMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    context: List[HistoryMessage] = Field(default_factory=list)
    conversation_id: Optional[str] = None


class Source(BaseModel):
    filePath: str
    type: str
    similarity: Optional[float] = None


class ChatResponse(BaseModel):
    response: str
    conversation_id: Optional[str] = None
    sources: List[Source] = Field(default_factory=list)
    timestamp: str


class InfoResponse(BaseModel):
    metadata: Optional[Dict[str, Any]] = None
    vectorCount: int
    status: str


class AnalyzeCodeRequest(BaseModel):
    code: str = Field(..., min_length=1)
    filePath: str = "unknown"
    analysisType: str = "general"


class GenerateCodeRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    language: str = "typescript"
    context: List[str] = Field(default_factory=list)


class DebugCodeRequest(BaseModel):
    code: str = Field(..., min_length=1)
    error: Optional[str] = None
    filePath: str = "unknown"


class GenerateDocsRequest(BaseModel):
    code: str = Field(..., min_length=1)
    filePath: str = "unknown"
    docType: str = "jsdoc"


class GenerateTestsRequest(BaseModel):
    code: str = Field(..., min_length=1)
    filePath: str = "unknown"
    testFramework: str = "jest"
