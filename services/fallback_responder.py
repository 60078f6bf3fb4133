"""
Fallback responder used when the inference server cannot be reached in time.
Synthesizes a templated reply and delivers it word by word like a real stream.
"""
import asyncio
import re
from typing import AsyncIterator

from models.chat_models import ContentDelta, Done, StreamEvent
from utils.constants import FALLBACK_RESPONSES, GENERIC_RESPONSE
from utils.logger import app_logger


class FallbackResponder:
    """Keyword-matched local replies with simulated incremental delivery."""

    WORD_PATTERN = re.compile(r'\s*\S+\s*')

    def __init__(self, word_delay: float = 0.15):
        self.word_delay = word_delay

    @staticmethod
    def synthesize(message: str) -> str:
        """Pick the first template whose keywords appear in the message, else the generic reply."""
        text = (message or "").lower()

        for keywords, template in FALLBACK_RESPONSES:
            for keyword in keywords:
                if re.search(rf'\b{re.escape(keyword)}\b', text):
                    app_logger.info(f"Fallback matched keyword '{keyword}'")
                    return template

        return GENERIC_RESPONSE

    @classmethod
    def split_words(cls, text: str) -> list[str]:
        """Split into whitespace-delimited words that keep their surrounding whitespace.

        Joining the result reproduces the input exactly.
        """
        words = cls.WORD_PATTERN.findall(text)
        if not words:
            return [text] if text else []
        return words

    async def stream(self, message: str) -> AsyncIterator[StreamEvent]:
        """Emit the synthesized reply one word per event, then Done."""
        reply = self.synthesize(message)
        words = self.split_words(reply)
        app_logger.info(f"Streaming fallback reply ({len(words)} words)")

        for index, word in enumerate(words):
            if index and self.word_delay > 0:
                await asyncio.sleep(self.word_delay)
            yield ContentDelta(text=word)

        yield Done()
