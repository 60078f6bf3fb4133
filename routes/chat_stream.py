"""
Route handlers for streaming chat operations.
Handles the /chat/send-stream endpoint for EventSource (GET) and fetch (POST) clients.
"""
import json
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from config import Config
from models.api_models import ChatRequest
from services.stream_service import StreamService
from services.upstream_client import UpstreamClient, get_upstream_client
from utils.logger import app_logger

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "Access-Control-Allow-Origin": "*"
}


def decode_history_param(raw: Optional[str]) -> list[Any]:
    """Decode a JSON-encoded history query parameter; anything unusable becomes an empty history."""
    if not raw:
        return []
    try:
        history = json.loads(raw)
    except json.JSONDecodeError:
        app_logger.warning("Ignoring undecodable conversation_history parameter")
        return []
    if not isinstance(history, list):
        app_logger.warning("Ignoring conversation_history parameter that is not an array")
        return []
    return history


def stream_response(request: ChatRequest, client: UpstreamClient) -> StreamingResponse:
    """Wrap the relay for one turn in an SSE response."""
    return StreamingResponse(
        StreamService.stream_chat(request, client),
        media_type="text/event-stream",
        headers=SSE_HEADERS
    )


@router.get("/chat/send-stream")
async def send_stream_get(
    message: str = Query(..., min_length=1, max_length=Config.MAX_MESSAGE_LENGTH),
    temperature: float = Query(Config.DEFAULT_TEMPERATURE, ge=0.0, le=1.0),
    conversation_history: Optional[str] = Query(None),
    client: UpstreamClient = Depends(get_upstream_client)
):
    """
    Streaming chat endpoint for EventSource clients; inputs arrive as query parameters.
    """
    request = ChatRequest(
        message=message,
        temperature=temperature,
        conversation_history=decode_history_param(conversation_history)
    )
    return stream_response(request, client)


@router.post("/chat/send-stream")
async def send_stream_post(request: ChatRequest, client: UpstreamClient = Depends(get_upstream_client)):
    """
    Streaming chat endpoint for clients posting a JSON body.
    """
    return stream_response(request, client)
