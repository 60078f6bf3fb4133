"""
Message assembly for upstream chat completion requests.
Builds the ordered system / history / user message list for a single turn.
"""
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from config import Config, RelaySettings
from models.chat_models import ChatMessage, CompletionRequest
from utils.constants import SYSTEM_PROMPT, Role
from utils.logger import app_logger


class MessageAssembler:
    """Pure transformations from client input to a CompletionRequest."""

    @staticmethod
    def clamp_temperature(value: Any) -> float:
        """Clamp temperature into [0, 1], defaulting when missing or not numeric."""
        if value is None or isinstance(value, bool):
            return Config.DEFAULT_TEMPERATURE
        try:
            temperature = float(value)
        except (TypeError, ValueError):
            return Config.DEFAULT_TEMPERATURE
        if temperature != temperature:  # NaN
            return Config.DEFAULT_TEMPERATURE
        return min(1.0, max(0.0, temperature))

    @staticmethod
    def parse_history_entry(entry: Any) -> Optional[ChatMessage]:
        """Convert one client history entry to a ChatMessage, or None when it is unusable."""
        if not isinstance(entry, Mapping):
            return None

        role = entry.get("role")
        content = entry.get("content")

        if not isinstance(role, str) or role not in Role.ALL:
            return None
        if not isinstance(content, str):
            return None

        return ChatMessage(role=role, content=content)

    @staticmethod
    def truncate_history(history: list, limit: int) -> list:
        """Keep only the most recent `limit` entries, preserving order."""
        if limit <= 0:
            return []
        return list(history[-limit:])

    @staticmethod
    def build_messages(
        message: str,
        history: Optional[Iterable[Any]] = None,
        system_prompt: str = SYSTEM_PROMPT,
        history_limit: int = Config.MAX_HISTORY_MESSAGES
    ) -> list[ChatMessage]:
        """Build messages list with system prompt, history, and user message.

        Args:
            message: Current user message
            history: Client-held conversation history (may be empty or malformed)
            system_prompt: System prompt placed first
            history_limit: Maximum number of valid history entries to forward

        Returns:
            Ordered list of ChatMessage ready for the upstream request
        """
        messages = [ChatMessage(role=Role.SYSTEM, content=system_prompt)]

        valid_history = []
        skipped = 0
        for entry in history or []:
            parsed = MessageAssembler.parse_history_entry(entry)
            if parsed is None:
                skipped += 1
                continue
            valid_history.append(parsed)

        if skipped:
            app_logger.debug(f"Skipped {skipped} malformed history entries")

        truncated = MessageAssembler.truncate_history(valid_history, history_limit)
        if len(truncated) < len(valid_history):
            app_logger.debug(f"History truncated from {len(valid_history)} to {len(truncated)} entries")

        messages.extend(truncated)
        messages.append(ChatMessage(role=Role.USER, content=message))
        return messages

    @staticmethod
    def build_request(
        message: str,
        temperature: Any,
        history: Optional[Iterable[Any]],
        settings: RelaySettings,
        stream: bool = False
    ) -> CompletionRequest:
        """Build the CompletionRequest for one chat turn."""
        messages = MessageAssembler.build_messages(
            message=message,
            history=history,
            history_limit=settings.history_limit
        )

        return CompletionRequest(
            model=settings.model,
            messages=tuple(messages),
            temperature=MessageAssembler.clamp_temperature(temperature),
            max_tokens=settings.max_tokens,
            stream=stream
        )
