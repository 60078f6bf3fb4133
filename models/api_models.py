"""
Pydantic data models for API requests and responses.
"""
from typing import Any, List, Optional
from pydantic import BaseModel, Field
from config import Config


class ChatRequest(BaseModel):
    """Chat request model with client-held conversation history."""
    message: str = Field(..., min_length=1, max_length=Config.MAX_MESSAGE_LENGTH)
    temperature: Optional[float] = Field(Config.DEFAULT_TEMPERATURE, ge=0.0, le=1.0)
    # Entries are validated leniently by the assembler; malformed ones are skipped there.
    conversation_history: Optional[List[Any]] = None


class ChatResponse(BaseModel):
    """Buffered chat response."""
    success: bool = True
    message: str
    thinking_process: Optional[str] = None
    model_used: str
    tokens_used: Optional[dict] = None


class ErrorResponse(BaseModel):
    """Structured failure body for buffered endpoints."""
    success: bool = False
    error: str
    details: str


class ModelStatusResponse(BaseModel):
    """Upstream availability report."""
    success: bool
    status: str
    models: Optional[Any] = None
    error: Optional[str] = None
