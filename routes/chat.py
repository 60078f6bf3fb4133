"""
Route handlers for standard chat operations.
Handles the /chat/send endpoint (non-streaming).
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from models.api_models import ChatRequest, ChatResponse, ErrorResponse
from services.message_assembler import MessageAssembler
from services.response_processor import ResponseProcessor
from services.upstream_client import UpstreamClient, get_upstream_client
from utils.exceptions import UpstreamError
from utils.logger import app_logger

router = APIRouter()


def send_error(error: str, details: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> JSONResponse:
    """Send a structured failure body."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, details=details).model_dump()
    )


@router.post("/chat/send")
async def send_message(request: ChatRequest, client: UpstreamClient = Depends(get_upstream_client)):
    """
    Buffered chat endpoint: one upstream completion, returned as a single JSON object.
    """
    try:
        completion_request = MessageAssembler.build_request(
            message=request.message,
            temperature=request.temperature,
            history=request.conversation_history,
            settings=client.settings,
            stream=False
        )
        app_logger.info(f"Buffered turn: {len(completion_request.messages)} messages")

        result = await client.send_buffered(completion_request)
        processed = ResponseProcessor.process(result.content)
        app_logger.info(
            f"Buffered turn completed: {len(processed.final_answer)} characters"
            f"{' (thinking separated)' if processed.thinking else ''}"
        )

        return ChatResponse(
            message=processed.final_answer,
            thinking_process=processed.thinking,
            model_used=client.settings.model,
            tokens_used=result.usage
        ).model_dump()

    except UpstreamError as e:
        app_logger.error(f"Upstream error ({e.reason}): {e}")
        return send_error("Failed to connect to AI model", getattr(e, "body", "") or e.message)
    except Exception as e:
        app_logger.error(f"Chat error: {str(e)}")
        return send_error("An error occurred while processing your request", str(e))
