import json

from tests.fixtures.responses import (
    BUFFERED_COMPLETION,
    BUFFERED_COMPLETION_WITH_THINKING,
    HI_THERE_STREAM,
    MODEL_LIST
)
from tests.helpers import assert_terminated_once, content_text, parse_sse_body
from utils.constants import FEVER_RESPONSE


def test_root_endpoint_reports_running(configured_app):
    response = configured_app.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "OnlineCare Chat Relay is running"}


def test_send_returns_buffered_completion(configured_app, transport_builder):
    """Given a reachable upstream, when /chat/send is called, it should return the answer as JSON."""
    transport_builder.json(BUFFERED_COMPLETION)

    response = configured_app.post("/chat/send", json={"message": "Hi", "temperature": 0.5})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Hello! Stay hydrated and rest.",
        "thinking_process": None,
        "model_used": "test-model",
        "tokens_used": {"prompt_tokens": 42, "completion_tokens": 7, "total_tokens": 49},
    }
    payload = json.loads(transport_builder.requests[0].content)
    assert payload["temperature"] == 0.5
    assert payload["stream"] is False


def test_send_separates_thinking_from_answer(configured_app, transport_builder):
    transport_builder.json(BUFFERED_COMPLETION_WITH_THINKING)

    response = configured_app.post("/chat/send", json={"message": "My head hurts"})

    body = response.json()
    assert response.status_code == 200
    assert body["message"] == "Try resting in a dark room."
    assert body["thinking_process"] == "The user reports a headache."
    assert body["tokens_used"] is None


def test_send_forwards_valid_history_only(configured_app, transport_builder):
    transport_builder.json(BUFFERED_COMPLETION)
    history = [
        {"role": "user", "content": "I have a cough"},
        {"role": "assistant", "content": "How long have you had it?"},
        {"role": "robot", "content": "skip me"},
        {"content": "no role"},
    ]

    configured_app.post("/chat/send", json={"message": "Two days", "conversation_history": history})

    messages = json.loads(transport_builder.requests[0].content)["messages"]
    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert messages[-1]["content"] == "Two days"


def test_send_unreachable_upstream_returns_500(configured_app, transport_builder):
    """Given the upstream refuses every attempt, /chat/send should return a structured 500."""
    response = configured_app.post("/chat/send", json={"message": "Hi"})

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Failed to connect to AI model"
    assert "unreachable" in body["details"]
    assert len(transport_builder.requests) == 3


def test_send_upstream_http_error_details_carry_body(configured_app, transport_builder):
    transport_builder.text("No models loaded", 404)

    response = configured_app.post("/chat/send", json={"message": "Hi"})

    assert response.status_code == 500
    assert response.json()["details"] == "No models loaded"
    assert len(transport_builder.requests) == 1


def test_send_empty_message_is_rejected(configured_app, transport_builder):
    response = configured_app.post("/chat/send", json={"message": ""})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert transport_builder.requests == []


def test_send_overlong_message_is_rejected(configured_app):
    response = configured_app.post("/chat/send", json={"message": "a" * 1001})

    assert response.status_code == 400
    assert "exceeds maximum length of 1000" in response.json()["details"]


def test_send_out_of_range_temperature_is_rejected(configured_app):
    response = configured_app.post("/chat/send", json={"message": "Hi", "temperature": 1.5})
    assert response.status_code == 400


def test_stream_get_relays_upstream_deltas(configured_app, transport_builder):
    """Given a reachable upstream, GET /chat/send-stream should relay deltas and end with [DONE]."""
    transport_builder.stream([HI_THERE_STREAM[:25], HI_THERE_STREAM[25:]])

    with configured_app.stream("GET", "/chat/send-stream", params={"message": "Hello"}) as response:
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"
        body = "".join(chunk for chunk in response.iter_text())

    payloads = parse_sse_body(body)
    assert payloads[0]["status"] == "connecting"
    assert content_text(payloads) == "Hi there"
    assert_terminated_once(payloads)


def test_stream_get_decodes_history_parameter(configured_app, transport_builder):
    transport_builder.stream([HI_THERE_STREAM])
    history = [{"role": "user", "content": "I feel dizzy"}, {"role": "assistant", "content": "Since when?"}]

    response = configured_app.get(
        "/chat/send-stream",
        params={"message": "Since this morning", "temperature": 0.3, "conversation_history": json.dumps(history)}
    )

    assert response.status_code == 200
    payload = json.loads(transport_builder.requests[0].content)
    assert [m["content"] for m in payload["messages"][1:]] == ["I feel dizzy", "Since when?", "Since this morning"]
    assert payload["temperature"] == 0.3


def test_stream_get_ignores_undecodable_history(configured_app, transport_builder):
    transport_builder.stream([HI_THERE_STREAM])

    response = configured_app.get("/chat/send-stream", params={"message": "Hi", "conversation_history": "not json"})

    assert response.status_code == 200
    payload = json.loads(transport_builder.requests[0].content)
    assert len(payload["messages"]) == 2


def test_stream_get_missing_message_is_rejected(configured_app):
    response = configured_app.get("/chat/send-stream")
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_stream_post_falls_back_when_upstream_unreachable(configured_app):
    """Given no upstream, POST /chat/send-stream should stream the fever reply and end with [DONE]."""
    response = configured_app.post("/chat/send-stream", json={"message": "I have a fever"})

    assert response.status_code == 200
    payloads = parse_sse_body(response.text)
    assert content_text(payloads) == FEVER_RESPONSE
    assert not any(isinstance(p, dict) and p.get("error") for p in payloads)
    assert_terminated_once(payloads)


def test_stream_post_reports_upstream_http_error(configured_app, transport_builder):
    transport_builder.stream([b'{"error":"model crashed"}'], status_code=500)

    response = configured_app.post("/chat/send-stream", json={"message": "Hi"})

    payloads = parse_sse_body(response.text)
    errors = [p for p in payloads if isinstance(p, dict) and p.get("error")]
    assert len(errors) == 1
    assert content_text(payloads) == ""
    assert_terminated_once(payloads)


def test_model_status_connected(configured_app, transport_builder):
    transport_builder.models(MODEL_LIST)

    response = configured_app.get("/chat/model-status")

    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "connected", "models": MODEL_LIST}


def test_model_status_disconnected(configured_app, transport_builder):
    transport_builder.models(refuse=True)

    response = configured_app.get("/chat/model-status")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["status"] == "disconnected"
    assert "unreachable" in body["error"]
