import pytest

from models.chat_models import ChatMessage
from services.message_assembler import MessageAssembler
from utils.constants import SYSTEM_PROMPT


def test_build_messages_with_empty_history():
    """Given no history, messages should be the system prompt followed by the user message."""
    messages = MessageAssembler.build_messages("I have a fever", [])
    assert messages == [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content="I have a fever"),
    ]


def test_build_messages_skips_malformed_history_entries():
    """Given entries missing role or content, they are dropped and order of the rest is kept."""
    history = [
        {"role": "user", "content": "first"},
        {"content": "no role"},
        {"role": "assistant"},
        "not a dict",
        None,
        {"role": "assistant", "content": "second"},
        {"role": "wizard", "content": "unknown role"},
        {"role": "user", "content": 42},
        {"role": "user", "content": "third", "extra": "ignored"},
    ]

    messages = MessageAssembler.build_messages("now", history)

    assert messages[0].role == "system"
    assert [m.content for m in messages[1:-1]] == ["first", "second", "third"]
    assert messages[-1] == ChatMessage(role="user", content="now")


def test_build_messages_tolerates_non_list_history():
    messages = MessageAssembler.build_messages("hello", None)
    assert len(messages) == 2


def test_build_messages_truncates_to_most_recent_entries():
    """Given more history than the limit, only the most recent entries are forwarded in order."""
    history = [{"role": "user" if i % 2 == 0 else "assistant", "content": f"m{i}"} for i in range(15)]

    messages = MessageAssembler.build_messages("latest", history, history_limit=10)

    assert [m.content for m in messages[1:-1]] == [f"m{i}" for i in range(5, 15)]
    assert messages[0].role == "system"
    assert messages[-1].content == "latest"


@pytest.mark.parametrize("size, limit", [(0, 10), (3, 10), (10, 10), (25, 10), (7, 3), (5, 0)])
def test_truncate_history_is_idempotent(size, limit):
    history = list(range(size))
    once = MessageAssembler.truncate_history(history, limit)
    assert MessageAssembler.truncate_history(once, limit) == once
    assert once == history[len(history) - len(once):]
    assert len(once) == min(size, max(limit, 0))


@pytest.mark.parametrize("value, expected", [
    (None, 0.7),
    (0.3, 0.3),
    (-1, 0.0),
    (1.5, 1.0),
    ("0.2", 0.2),
    ("hot", 0.7),
    (True, 0.7),
    (float("nan"), 0.7),
])
def test_clamp_temperature(value, expected):
    assert MessageAssembler.clamp_temperature(value) == pytest.approx(expected)


def test_build_request_uses_settings(relay_settings):
    """Given relay settings, the request carries the configured model and max_tokens."""
    request = MessageAssembler.build_request("Hi", 0.4, [{"role": "assistant", "content": "Hello"}], relay_settings, stream=True)

    assert request.model == "test-model"
    assert request.max_tokens == -1
    assert request.stream is True
    assert request.temperature == pytest.approx(0.4)

    payload = request.to_payload()
    assert payload["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "assistant", "content": "Hello"},
        {"role": "user", "content": "Hi"},
    ]
    assert payload["stream"] is True
