"""
Upstream client for the OpenAI-compatible inference server.
Handles buffered completions with retries, committed streaming sessions and model listing.
"""
import asyncio
import json
from typing import AsyncIterator, Optional

import httpx

from config import Config, RelaySettings
from models.chat_models import CompletionRequest, CompletionResult
from utils.constants import DEFAULT_EMPTY_COMPLETION
from utils.exceptions import (
    UpstreamError,
    UpstreamHttpError,
    UpstreamMalformedResponse,
    UpstreamTimeout,
    UpstreamUnreachable
)
from utils.http_client import build_timeout, create_upstream_client
from utils.logger import app_logger


def map_transport_error(exc: Exception) -> UpstreamError:
    """Translate an httpx/asyncio failure into the upstream error taxonomy."""
    if isinstance(exc, UpstreamError):
        return exc
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return UpstreamTimeout(f"Inference server timed out: {str(exc) or type(exc).__name__}")
    return UpstreamUnreachable(f"Inference server unreachable: {str(exc) or type(exc).__name__}")


class UpstreamStream:
    """
    A committed streaming session: response headers and the first body chunk have arrived.
    Owns its httpx client and response until closed.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response):
        self._client = client
        self._response = response
        self._chunks = response.aiter_bytes()
        self._first_chunk = b""
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def prime(self, timeout: float) -> None:
        """
        Wait up to `timeout` seconds for the first non-empty body chunk.

        Servers often send headers at once and only then load the model or read
        the prompt, so headers alone do not prove the upstream is responsive.

        Raises:
            UpstreamTimeout, UpstreamUnreachable (the stream is closed first)
        """
        try:
            self._first_chunk = await asyncio.wait_for(self._next_chunk(), timeout=timeout)
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            await self.aclose()
            raise map_transport_error(e) from e
        except BaseException:
            await self.aclose()
            raise

    async def _next_chunk(self) -> bytes:
        async for chunk in self._chunks:
            if chunk:
                return chunk
        return b""

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield raw response bytes as they arrive; closing the iterator closes the connection."""
        try:
            first, self._first_chunk = self._first_chunk, b""
            if first:
                yield first
            async for chunk in self._chunks:
                if chunk:
                    yield chunk
        except httpx.HTTPError as e:
            raise map_transport_error(e) from e
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Release the response and its client. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


class UpstreamClient:
    """Client for the inference server's chat-completion and model endpoints."""

    def __init__(self, settings: RelaySettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            settings: Immutable relay settings (endpoint, model, timeouts, retries)
            transport: Optional httpx transport override (used by tests)
        """
        self.settings = settings
        self._transport = transport

    async def send_buffered(self, request: CompletionRequest) -> CompletionResult:
        """
        Send a non-streaming completion request, retrying transient failures.

        Args:
            request: Completion request to send

        Returns:
            Parsed CompletionResult

        Raises:
            UpstreamUnreachable, UpstreamTimeout, UpstreamHttpError, UpstreamMalformedResponse
        """
        attempts = self.settings.max_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                return await self._post_buffered(request)
            except (UpstreamUnreachable, UpstreamTimeout, UpstreamHttpError) as e:
                transient = not isinstance(e, UpstreamHttpError) or e.is_transient
                if not transient or attempt >= attempts:
                    app_logger.error(f"Upstream call failed ({e.reason}) after {attempt} attempt(s): {e}")
                    raise

                app_logger.warning(
                    f"Upstream call attempt {attempt}/{attempts} failed ({e.reason}), "
                    f"retrying in {self.settings.retry_backoff}s"
                )
                await asyncio.sleep(self.settings.retry_backoff)

        raise UpstreamUnreachable("Inference server unreachable")

    async def _post_buffered(self, request: CompletionRequest) -> CompletionResult:
        timeout = build_timeout(self.settings.buffered_timeout)

        async with create_upstream_client(timeout, self._transport) as client:
            try:
                response = await client.post(self.settings.completions_url, json=request.to_payload())
            except httpx.HTTPError as e:
                raise map_transport_error(e) from e

        if not response.is_success:
            raise UpstreamHttpError(response.status_code, response.text)

        return self.parse_completion(response.text, request.model)

    @staticmethod
    def parse_completion(body: str, model: str) -> CompletionResult:
        """Parse a buffered chat completion body."""
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise UpstreamMalformedResponse(f"Completion body is not valid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("choices"), list) or not data["choices"]:
            raise UpstreamMalformedResponse("Completion body has no choices")

        choice = data["choices"][0]
        message = choice.get("message") if isinstance(choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None

        if not isinstance(content, str) or not content:
            content = DEFAULT_EMPTY_COMPLETION

        usage = data.get("usage")
        return CompletionResult(
            content=content,
            model=data.get("model") or model,
            usage=usage if isinstance(usage, dict) else None
        )

    async def open_stream(self, request: CompletionRequest, probe_timeout: Optional[float] = None) -> UpstreamStream:
        """
        Open a streaming completion and wait for headers and the first body chunk.

        Args:
            request: Completion request (sent with stream=true)
            probe_timeout: Maximum seconds to wait for headers plus first chunk before giving up

        Returns:
            A committed UpstreamStream; reads are bounded by the long stream timeout

        Raises:
            UpstreamUnreachable, UpstreamTimeout, UpstreamHttpError
        """
        probe = probe_timeout if probe_timeout is not None else self.settings.probe_timeout
        timeout = build_timeout(self.settings.stream_timeout, connect=probe)
        client = create_upstream_client(timeout, self._transport)

        payload = request.to_payload()
        payload["stream"] = True
        http_request = client.build_request(
            "POST",
            self.settings.completions_url,
            json=payload,
            headers={"Accept": "text/event-stream"}
        )

        loop = asyncio.get_running_loop()
        deadline = loop.time() + probe

        try:
            response = await asyncio.wait_for(client.send(http_request, stream=True), timeout=probe)
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            await client.aclose()
            raise map_transport_error(e) from e
        except BaseException:
            await client.aclose()
            raise

        if not response.is_success:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError:
                body = ""
            finally:
                await response.aclose()
                await client.aclose()
            raise UpstreamHttpError(response.status_code, body)

        upstream = UpstreamStream(client, response)
        await upstream.prime(max(deadline - loop.time(), 0.0))

        app_logger.info(f"Upstream stream committed (HTTP {response.status_code})")
        return upstream

    async def stream(self, request: CompletionRequest) -> AsyncIterator[bytes]:
        """Byte-chunk producer for a streaming completion; stop iterating to cancel."""
        upstream = await self.open_stream(request)
        try:
            async for chunk in upstream.iter_bytes():
                yield chunk
        finally:
            await upstream.aclose()

    async def list_models(self) -> dict:
        """Fetch the inference server's model list."""
        timeout = build_timeout(self.settings.status_timeout)

        async with create_upstream_client(timeout, self._transport) as client:
            try:
                response = await client.get(self.settings.models_url)
            except httpx.HTTPError as e:
                raise map_transport_error(e) from e

        if not response.is_success:
            raise UpstreamHttpError(response.status_code, response.text)

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise UpstreamMalformedResponse(f"Model list is not valid JSON: {e}") from e


def get_upstream_client() -> UpstreamClient:
    """FastAPI dependency providing a client bound to the current configuration."""
    return UpstreamClient(Config.relay_settings())
