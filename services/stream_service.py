"""
Streaming service containing per-turn streaming orchestration.
Handles the probe-then-commit upstream policy, fallback and SSE formatting.
"""
import json
from contextlib import aclosing
from typing import AsyncIterator

from models.api_models import ChatRequest
from models.chat_models import ContentDelta, Done, Error, StreamEvent
from services.fallback_responder import FallbackResponder
from services.message_assembler import MessageAssembler
from services.stream_relay import StreamRelay
from services.upstream_client import UpstreamClient
from utils.constants import SSE_DONE_TOKEN
from utils.exceptions import UpstreamError, UpstreamTimeout, UpstreamUnreachable
from utils.logger import app_logger


class StreamService:
    """Service for handling streaming chat operations."""

    @staticmethod
    def send_sse_event(data: dict | str) -> str:
        """Format data as a Server-Sent Events (SSE) data frame."""
        if isinstance(data, str):
            return f"data: {data}\n\n"
        return f"data: {json.dumps(data, ensure_ascii=False, separators=(',', ':'))}\n\n"

    @staticmethod
    def format_event(event: StreamEvent) -> str:
        """Encode a relay event for the browser client."""
        if isinstance(event, Done):
            return StreamService.send_sse_event(SSE_DONE_TOKEN)
        if isinstance(event, Error):
            return StreamService.send_sse_event({"content": event.message, "error": True})
        if isinstance(event, ContentDelta) and event.informational:
            return StreamService.send_sse_event({"status": "connecting", "message": event.text})
        return StreamService.send_sse_event({"content": event.text})

    @staticmethod
    async def stream_events(request: ChatRequest, client: UpstreamClient) -> AsyncIterator[StreamEvent]:
        """Relay one chat turn as StreamEvents.

        The upstream gets a short probe to send headers and its first chunk. If it is
        unreachable or too slow, the fallback responder takes over (when enabled);
        otherwise the session commits to the real stream with the long timeout.

        Args:
            request: Validated chat request
            client: Upstream client bound to the relay settings

        Yields:
            ContentDelta, Error and Done events; always ends with exactly one Done
        """
        settings = client.settings
        relay = StreamRelay(connecting_notice=settings.connecting_notice)

        for event in relay.announce():
            yield event

        completion_request = MessageAssembler.build_request(
            message=request.message,
            temperature=request.temperature,
            history=request.conversation_history,
            settings=settings,
            stream=True
        )
        app_logger.info(
            f"Streaming turn: {len(completion_request.messages)} messages, "
            f"temperature={completion_request.temperature}"
        )

        try:
            upstream = await client.open_stream(completion_request, probe_timeout=settings.probe_timeout)
        except (UpstreamUnreachable, UpstreamTimeout) as e:
            if settings.fallback_enabled:
                app_logger.warning(f"Upstream {e.reason} within probe timeout, using fallback reply")
                async for event in FallbackResponder(settings.fallback_word_delay).stream(request.message):
                    yield event
                return
            for event in relay.fail(e):
                yield event
            return
        except UpstreamError as e:
            for event in relay.fail(e):
                yield event
            return

        try:
            async with aclosing(relay.run(upstream.iter_bytes())) as events:
                async for event in events:
                    yield event
        finally:
            await upstream.aclose()

    @staticmethod
    async def stream_chat(request: ChatRequest, client: UpstreamClient) -> AsyncIterator[str]:
        """Relay one chat turn as SSE frames, guaranteeing a terminating [DONE] frame.

        A failure after answer text was sent ends the turn with [DONE] only, so the
        partial answer is not followed by an error message.
        """
        done_sent = False
        error_sent = False
        content_sent = False

        try:
            async with aclosing(StreamService.stream_events(request, client)) as events:
                async for event in events:
                    if isinstance(event, Error):
                        error_sent = True
                    elif isinstance(event, ContentDelta) and not event.informational:
                        content_sent = True
                    yield StreamService.format_event(event)
                    if isinstance(event, Done):
                        done_sent = True
                        break
        except Exception as e:
            app_logger.error(f"Streaming chat error: {str(e)}")
            if not error_sent and not content_sent:
                yield StreamService.format_event(Error(message=f"An error occurred while processing your request: {e}"))

        if not done_sent:
            yield StreamService.format_event(Done())
