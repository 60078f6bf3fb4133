"""
Post-processing for buffered completions.
Separates a leading reasoning ("thinking") segment from the user-facing answer.

The line classifier is a best-effort heuristic. It is known to be imprecise and
never raises; at worst the whole text is returned as the answer.
"""
import re
from typing import Optional

from models.chat_models import ProcessedResponse
from utils.constants import Patterns
from utils.logger import app_logger


class ResponseProcessor:
    """Splits raw model output into thinking and final answer."""

    THINKING, ANSWER = "thinking", "answer"

    _think_block = re.compile(Patterns.THINK_BLOCK, re.DOTALL | re.IGNORECASE)
    _thinking_start = re.compile(Patterns.THINKING_START, re.IGNORECASE)
    _answer_start = re.compile(Patterns.ANSWER_START, re.IGNORECASE)
    _reasoning_verbs = re.compile(Patterns.REASONING_VERBS, re.IGNORECASE)

    @classmethod
    def process(cls, raw: Optional[str]) -> ProcessedResponse:
        """Split a raw completion into ProcessedResponse(final_answer, thinking)."""
        text = raw or ""
        try:
            tagged = cls._split_think_tags(text)
            if tagged is not None:
                return tagged
            return cls._split_by_lines(text)
        except Exception as e:
            app_logger.warning(f"Thinking segmentation failed, returning raw text: {e}")
            return ProcessedResponse(final_answer=text, thinking=None)

    @classmethod
    def _split_think_tags(cls, text: str) -> Optional[ProcessedResponse]:
        """Handle explicit <think>...</think> blocks emitted by reasoning models."""
        if "</think>" not in text.lower():
            return None

        thoughts = [block.strip() for block in cls._think_block.findall(text)]
        if not thoughts:
            # Opening tag missing: everything before the closing tag is reasoning.
            head, _, tail = text.partition("</think>")
            thoughts = [head.replace("<think>", "").strip()]
            answer = tail
        else:
            answer = cls._think_block.sub("", text)

        thinking = "\n\n".join(thought for thought in thoughts if thought)
        answer = answer.strip()
        if not answer:
            return ProcessedResponse(final_answer=thinking or text.strip(), thinking=None)
        return ProcessedResponse(final_answer=answer, thinking=thinking or None)

    @classmethod
    def _split_by_lines(cls, text: str) -> ProcessedResponse:
        mode = None
        thinking_lines = []
        answer_lines = []

        for line in text.split("\n"):
            stripped = line.strip()

            if stripped:
                if mode is None:
                    if cls.is_thinking_line(stripped):
                        mode = cls.THINKING
                    elif cls.is_answer_line(stripped):
                        mode = cls.ANSWER
                elif mode == cls.THINKING and (
                    cls.is_answer_line(stripped) or cls.is_conclusive_sentence(stripped)
                ):
                    mode = cls.ANSWER

            if mode == cls.THINKING:
                thinking_lines.append(line)
            else:
                answer_lines.append(line)

        if not thinking_lines:
            return ProcessedResponse(final_answer=text, thinking=None)

        final_answer = "\n".join(answer_lines).strip()
        if not final_answer:
            # Nothing looked like an answer; do not hide the whole reply as reasoning.
            return ProcessedResponse(final_answer=text, thinking=None)

        return ProcessedResponse(
            final_answer=final_answer,
            thinking="\n".join(thinking_lines).strip() or None
        )

    @classmethod
    def is_thinking_line(cls, line: str) -> bool:
        return bool(cls._thinking_start.match(line))

    @classmethod
    def is_answer_line(cls, line: str) -> bool:
        return bool(cls._answer_start.match(line))

    @classmethod
    def is_conclusive_sentence(cls, line: str) -> bool:
        """Capitalized, ends with terminal punctuation, and reads as a statement rather than reasoning."""
        if not line[0].isupper() or not line.endswith(Patterns.TERMINAL_PUNCTUATION):
            return False
        if cls.is_thinking_line(line):
            return False
        return not cls._reasoning_verbs.search(line)
