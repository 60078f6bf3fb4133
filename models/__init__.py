"""
Models package exports.
"""
from models.api_models import ChatRequest, ChatResponse, ErrorResponse, ModelStatusResponse
from models.chat_models import (
    ChatMessage,
    CompletionRequest,
    CompletionResult,
    ContentDelta,
    Done,
    Error,
    StreamEvent,
    ProcessedResponse,
    RelayState,
    RelayStats
)

__all__ = [
    'ChatRequest',
    'ChatResponse',
    'ErrorResponse',
    'ModelStatusResponse',
    'ChatMessage',
    'CompletionRequest',
    'CompletionResult',
    'ContentDelta',
    'Done',
    'Error',
    'StreamEvent',
    'ProcessedResponse',
    'RelayState',
    'RelayStats'
]
