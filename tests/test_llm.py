from __future__ import annotations

import httpx
import pytest

from agent_chat.errors import EmptyResponseError, EncodingError, TransportError, ValidationError
from agent_chat.llm import DEFAULT_SYSTEM_PROMPT, CompletionClient, CompletionConfig, create_from_config
from agent_chat.models import Message, Role

from conftest import RecordingEndpoint, make_client


def test_no_duplicate_when_history_ends_with_message(endpoint: RecordingEndpoint):
    client = make_client(endpoint)
    context = [Message(Role.ASSISTANT, "earlier"), Message(Role.USER, "hello")]

    assert client.converse("hello", context) == "ok"
    assert endpoint.last_messages == [
        {"role": "assistant", "content": "earlier"},
        {"role": "user", "content": "hello"},
    ]


def test_appends_user_turn_and_legacy_prompt(endpoint: RecordingEndpoint):
    client = make_client(endpoint)
    client.converse("hello", [Message(Role.ASSISTANT, "hi there")])

    sent = endpoint.last_messages
    assert sent[0] == {"role": "assistant", "content": "hi there"}
    assert sent[1] == {"role": "user", "content": "hello"}
    assert sent[2] == {"role": "user", "content": DEFAULT_SYSTEM_PROMPT}
    assert [m for m in sent if m["content"] == "hello"] == [{"role": "user", "content": "hello"}]


def test_same_text_from_assistant_is_not_a_duplicate():
    client = CompletionClient("k")
    built = client.build_messages("hello", [Message(Role.ASSISTANT, "hello")])
    assert built[-2] == Message(Role.USER, "hello")


def test_empty_context_gets_user_turn():
    client = CompletionClient("k")
    assert client.build_messages("hi", []) == [
        Message(Role.USER, "hi"),
        Message(Role.USER, DEFAULT_SYSTEM_PROMPT),
    ]


def test_system_mode_single_leading_system_message():
    client = CompletionClient("k", CompletionConfig(system_prompt_mode="system"))

    built = client.build_messages("hi", [Message(Role.ASSISTANT, "yo")])
    assert built == [
        Message(Role.SYSTEM, DEFAULT_SYSTEM_PROMPT),
        Message(Role.ASSISTANT, "yo"),
        Message(Role.USER, "hi"),
    ]

    persona_ctx = [Message(Role.SYSTEM, "persona"), Message(Role.USER, "hi")]
    assert client.build_messages("hi", persona_ctx) == persona_ctx


def test_build_messages_does_not_mutate_input():
    client = CompletionClient("k")
    context = [Message(Role.ASSISTANT, "yo")]
    client.build_messages("hi", context)
    assert context == [Message(Role.ASSISTANT, "yo")]


def test_request_shape_and_credential(endpoint: RecordingEndpoint):
    client = make_client(endpoint, api_key="sk-abc", model="test-model")
    client.converse("hello", [])
    assert endpoint.requests[-1]["model"] == "test-model"
    assert endpoint.headers[-1]["authorization"] == "Bearer sk-abc"


def test_http_500_surfaces_body():
    endpoint = RecordingEndpoint(status_code=500, body="rate limited")
    client = make_client(endpoint)
    with pytest.raises(TransportError) as info:
        client.converse("hello", [])
    assert "rate limited" in str(info.value)
    assert info.value.status_code == 500
    assert info.value.body == "rate limited"
    # single attempt, no retries
    assert len(endpoint.requests) == 1


def test_network_error_is_transport_error():
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = make_client(boom)
    with pytest.raises(TransportError):
        client.converse("hello", [])


def test_empty_choices():
    client = make_client(RecordingEndpoint(body='{"choices": []}'))
    with pytest.raises(EmptyResponseError):
        client.converse("hello", [])


@pytest.mark.parametrize(
    "body",
    ["not json", "[]", '{"nothing": 1}', '{"choices": [{"text": "x"}]}', '{"choices": [{"message": {"content": 3}}]}'],
)
def test_malformed_response_is_encoding_error(body: str):
    client = make_client(RecordingEndpoint(body=body))
    with pytest.raises(EncodingError):
        client.converse("hello", [])


def test_validation_before_any_request(endpoint: RecordingEndpoint):
    with pytest.raises(ValidationError):
        make_client(endpoint).converse("   ", [])
    with pytest.raises(ValidationError):
        make_client(endpoint, api_key="").converse("hello", [])
    assert endpoint.requests == []


def test_config_validation():
    with pytest.raises(ValueError):
        CompletionClient("k", CompletionConfig(system_prompt_mode="sometimes"))
    with pytest.raises(ValueError):
        CompletionClient("k", CompletionConfig(timeout=0))


def test_create_from_config():
    client = create_from_config(
        {"completion": {"model": "m-1", "timeout": 5, "system_prompt_mode": "system"}}, "k"
    )
    assert client.config.model == "m-1"
    assert client.config.timeout == 5.0
    assert client.config.system_prompt_mode == "system"
    client.close()
