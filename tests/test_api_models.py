"""
Unit tests for api_requests.py, api_responses.py and error_utils.py modules.
"""

import pytest
from pydantic import ValidationError

from ollama_sidecar.entities.api_requests import (
    ChatMessage,
    ChatRequestData,
    GenerateRequestData,
    Options,
    PullModelRequestData,
)
from ollama_sidecar.entities.api_responses import ChatResponse, ModelPullResponse, ModelResponse
from ollama_sidecar.shared.error_utils import ErrorUtils


class TestRequests:
    """Test request bodies."""

    def test_chat_payload_omits_unset_fields(self):
        data = ChatRequestData(model="llama3", messages=[ChatMessage(role="user", content="hi")])

        assert data.to_payload() == {
            "model": "llama3",
            "messages": [{"role": "user", "content": "hi"}],
            "stream": True,
        }

    def test_generate_payload_with_options(self):
        data = GenerateRequestData(model="llama3", prompt="Why?", options=Options(temperature=0.2, seed=7))

        payload = data.to_payload()
        assert payload["options"] == {"temperature": 0.2, "seed": 7}
        assert "context" not in payload

    def test_empty_model_rejected(self):
        with pytest.raises(ValidationError):
            ChatRequestData(model="", messages=[])

    def test_invalid_role_rejected(self):
        with pytest.raises(ValidationError):
            ChatMessage(role="tool-bot", content="x")

    def test_pull_payload(self):
        assert PullModelRequestData(name="llama3", insecure=True).to_payload() == {"name": "llama3", "insecure": True}


class TestResponses:
    """Test decoded response frames."""

    def test_chat_frame_ignores_unknown_keys(self):
        frame = ChatResponse.model_validate_json(
            b'{"model":"llama3","created_at":"2024-01-01T00:00:00Z",'
            b'"message":{"role":"assistant","content":"Hi"},"done":false,"brand_new_field":1}'
        )

        assert frame.message.content == "Hi"
        assert frame.done is False

    def test_final_chat_frame_without_message(self):
        frame = ChatResponse.model_validate_json(
            b'{"model":"llama3","created_at":"t","done":true,"eval_count":12}'
        )

        assert frame.message is None
        assert frame.eval_count == 12

    def test_frames_are_immutable(self):
        frame = ModelPullResponse(status="success")

        with pytest.raises(ValidationError):
            frame.status = "changed"

    def test_missing_required_field(self):
        with pytest.raises(ValidationError):
            ChatResponse.model_validate_json(b'{"model":"llama3"}')

    def test_model_list_defaults_to_empty(self):
        assert ModelResponse.model_validate_json(b"{}").models == []


class TestErrorUtils:
    """Test ErrorUtils.preview."""

    def test_short_input_is_unchanged(self):
        assert ErrorUtils.preview(b'{"a":1}') == '{"a":1}'

    def test_invalid_utf8_is_replaced(self):
        assert ErrorUtils.preview(b"ok\xff") == "ok�"

    def test_long_input_is_truncated(self):
        raw = b"x" * 600

        preview = ErrorUtils.preview(raw, limit=10)
        assert preview == "xxxxxxxxxx... [600 bytes]"
