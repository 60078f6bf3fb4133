"""
Data models for chat processing.
Contains chat messages, upstream request/result objects and relay stream events.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True)
class ChatMessage:
    """A single role-tagged message sent to the model."""
    role: str
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class CompletionRequest:
    """
    OpenAI-compatible chat completion request.
    Built fresh for every turn and never mutated after it is sent.
    """
    model: str
    messages: tuple[ChatMessage, ...]
    temperature: float
    max_tokens: int = -1
    stream: bool = False

    def to_payload(self) -> dict:
        """Serialize to the wire format expected by /v1/chat/completions."""
        return {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": self.stream,
        }


@dataclass
class CompletionResult:
    """Parsed buffered completion."""
    content: str
    model: str
    usage: Optional[dict] = None


@dataclass(frozen=True)
class ContentDelta:
    """Incremental text fragment. Informational deltas are status notices, not answer text."""
    text: str
    informational: bool = False


@dataclass(frozen=True)
class Done:
    """Terminal marker closing a relay session."""


@dataclass(frozen=True)
class Error:
    """Human-readable failure surfaced to the client before Done."""
    message: str


StreamEvent = Union[ContentDelta, Done, Error]


@dataclass
class ProcessedResponse:
    """Buffered completion split into an optional reasoning segment and the final answer."""
    final_answer: str
    thinking: Optional[str] = None


class RelayState(Enum):
    """Lifecycle of a single stream relay session."""
    CONNECTING = "connecting"
    STREAMING = "streaming"
    TERMINATED = "terminated"


@dataclass
class RelayStats:
    """Counters kept by the relay for logging and termination decisions."""
    chunks: int = 0
    lines: int = 0
    deltas: int = 0
    discarded: int = 0
