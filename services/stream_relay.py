"""
Stream relay for upstream server-sent events.
Turns the inference server's raw byte feed into ContentDelta / Error / Done events.
"""
import codecs
import json
from typing import AsyncIterator, Optional

import httpx

from models.chat_models import ContentDelta, Done, Error, RelayState, RelayStats, StreamEvent
from utils.constants import SSE_DONE_TOKEN
from utils.exceptions import UpstreamError
from utils.logger import app_logger


class StreamRelay:
    """Relays one upstream streaming session.

    States run CONNECTING -> STREAMING -> TERMINATED. Exactly one Done is
    emitted per session and nothing is emitted after it.

    The byte feed is not aligned with SSE lines: incomplete trailing lines
    are buffered and prefixed to the next chunk.
    """

    DATA_PREFIX = "data:"

    def __init__(self, connecting_notice: Optional[str] = None):
        self.connecting_notice = connecting_notice
        self.state = RelayState.CONNECTING
        self.stats = RelayStats()
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._announced = False

    @property
    def terminated(self) -> bool:
        return self.state is RelayState.TERMINATED

    def announce(self) -> list[StreamEvent]:
        """Emit the informational connecting notice once, before any upstream byte."""
        if self._announced or self.terminated:
            return []
        self._announced = True
        if not self.connecting_notice:
            return []
        return [ContentDelta(text=self.connecting_notice, informational=True)]

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Process a chunk of upstream bytes and return the events it completes."""
        if self.terminated:
            return []

        self.state = RelayState.STREAMING
        self.stats.chunks += 1
        self._buffer += self._decoder.decode(chunk)

        *lines, self._buffer = self._buffer.split("\n")
        return self._process_lines(lines)

    def finish(self) -> list[StreamEvent]:
        """The byte feed ended: process any buffered line, then close the session."""
        if self.terminated:
            return []

        self._buffer += self._decoder.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""
        events = self._process_lines(remaining.split("\n")) if remaining else []

        if not self.terminated:
            app_logger.info("Upstream stream closed without terminator, ending session")
            events.extend(self._terminate())
        return events

    def fail(self, exc: BaseException) -> list[StreamEvent]:
        """
        Close the session after an upstream or I/O failure.

        Partial content already delivered is kept as the final answer, so the
        session ends with a plain Done. With nothing delivered yet, the cause is
        reported once before Done.
        """
        if self.terminated:
            return []

        self._buffer = ""
        if self.stats.deltas > 0:
            app_logger.warning(f"Upstream failed after {self.stats.deltas} deltas, keeping partial answer: {exc}")
            return self._terminate()

        app_logger.error(f"Upstream failed before any content: {exc}")
        return [Error(message=self.describe_failure(exc)), *self._terminate()]

    @staticmethod
    def describe_failure(exc: BaseException) -> str:
        """Human-readable cause for an Error event."""
        if isinstance(exc, UpstreamError):
            return f"Sorry, the AI model is unavailable right now ({exc.reason}): {exc.message}"
        return f"Sorry, there was an error with the streaming connection: {exc}"

    async def run(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[StreamEvent]:
        """
        Drive the relay over a byte-chunk producer.

        Yields each event as soon as it is parsed. Stops pulling once the session
        terminates, and always closes the producer, including when the consumer
        stops early.
        """
        for event in self.announce():
            yield event

        try:
            try:
                async for chunk in chunks:
                    for event in self.feed(chunk):
                        yield event
                    if self.terminated:
                        break
            except (UpstreamError, httpx.HTTPError, OSError) as e:
                for event in self.fail(e):
                    yield event
                return

            for event in self.finish():
                yield event
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()
            app_logger.debug(
                f"Relay session ended: {self.stats.chunks} chunks, {self.stats.lines} lines, "
                f"{self.stats.deltas} deltas, {self.stats.discarded} discarded"
            )

    def _process_lines(self, lines: list[str]) -> list[StreamEvent]:
        events = []
        for line in lines:
            if self.terminated:
                break
            events.extend(self._process_line(line))
        return events

    def _process_line(self, raw_line: str) -> list[StreamEvent]:
        line = raw_line.strip()
        if not line:
            return []

        self.stats.lines += 1

        # Comments, keep-alives and other SSE fields carry no content.
        if not line.startswith(self.DATA_PREFIX):
            self.stats.discarded += 1
            return []

        payload = line[len(self.DATA_PREFIX):].strip()
        if payload == SSE_DONE_TOKEN:
            return self._terminate()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            self.stats.discarded += 1
            app_logger.debug(f"Discarding unparsable stream line: {payload[:80]}")
            return []

        if not isinstance(data, dict):
            self.stats.discarded += 1
            return []

        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            return self.fail(UpstreamError(message or "Inference server reported an error"))

        content, finish_reason = self._extract_choice(data)

        events = []
        if content:
            self.stats.deltas += 1
            events.append(ContentDelta(text=content))
        if finish_reason:
            app_logger.info(f"Upstream finished: {finish_reason}")
            events.extend(self._terminate())
        return events

    @staticmethod
    def _extract_choice(data: dict) -> tuple[Optional[str], Optional[str]]:
        """Pull delta content and finish reason from the first choice."""
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None, None

        choice = choices[0]
        delta = choice.get("delta")
        content = delta.get("content") if isinstance(delta, dict) else None
        if not isinstance(content, str):
            content = None

        finish_reason = choice.get("finish_reason")
        return content, finish_reason if isinstance(finish_reason, str) else None

    def _terminate(self) -> list[StreamEvent]:
        if self.terminated:
            return []
        self.state = RelayState.TERMINATED
        return [Done()]
