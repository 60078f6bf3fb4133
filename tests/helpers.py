import json

from models.chat_models import ContentDelta, Done, Error


def parse_sse_body(body):
    """Split an SSE body into decoded data payloads ("[DONE]" stays a string)."""
    payloads = []
    for frame in body.split("\n\n"):
        frame = frame.strip()
        if not frame.startswith("data:"):
            continue
        data = frame[len("data:"):].strip()
        payloads.append(data if data == "[DONE]" else json.loads(data))
    return payloads


def content_text(payloads):
    """Concatenate answer content, skipping status notices and errors."""
    return "".join(
        p["content"] for p in payloads
        if isinstance(p, dict) and "content" in p and not p.get("error")
    )


def assert_terminated_once(payloads):
    """Assert exactly one [DONE] frame and that it is the last one."""
    assert payloads.count("[DONE]") == 1, f"Expected exactly one [DONE] in {payloads}"
    assert payloads[-1] == "[DONE]", f"[DONE] is not the last frame in {payloads}"


def delta_texts(events):
    return [e.text for e in events if isinstance(e, ContentDelta) and not e.informational]


def assert_single_terminal(events):
    """Assert exactly one Done, last, optionally preceded by one Error."""
    done_positions = [i for i, e in enumerate(events) if isinstance(e, Done)]
    assert len(done_positions) == 1, f"Expected exactly one Done in {events}"
    assert done_positions[0] == len(events) - 1, f"Events emitted after Done: {events}"
    errors = [e for e in events if isinstance(e, Error)]
    assert len(errors) <= 1
    if errors:
        assert events[-2] == errors[0]
