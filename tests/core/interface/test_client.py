"""Tests for ModelClient — unit tests with mocked LiteLLM."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tests.conftest import make_mock_litellm_response, make_mock_tool_call
from tether.core.interface.client import CompletionBackend, ModelClient, to_openai_messages
from tether.core.interface.config import ModelConfig
from tether.core.interface.models import CanonicalMessage, ConversationHistory, ToolCall


class TestModelConfig:
    def test_provider_extraction(self) -> None:
        assert ModelConfig(model="openai/gpt-4o").provider == "openai"

    def test_provider_no_prefix(self) -> None:
        assert ModelConfig(model="gpt-4o").provider == "openai"

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TETHER_MODEL", "deepseek/deepseek-chat")
        monkeypatch.setenv("TETHER_API_KEY", "sk-test")
        config = ModelConfig.from_env()
        assert config.model == "deepseek/deepseek-chat"
        assert config.api_key == "sk-test"
        assert config.provider == "deepseek"

    def test_from_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TETHER_MODEL", "deepseek/deepseek-chat")
        assert ModelConfig.from_env(model="openai/gpt-4o-mini").model == "openai/gpt-4o-mini"
        assert ModelConfig.from_env(model=None).model == "deepseek/deepseek-chat"


class TestToOpenAIMessages:
    def test_roles_and_tool_turns(self) -> None:
        call = ToolCall(id="call_1", name="echo", arguments='{"text": "hi"}')
        history = ConversationHistory(
            messages=[
                CanonicalMessage.system("sys"),
                CanonicalMessage.user("call echo"),
                CanonicalMessage.assistant("", tool_calls=[call]),
                CanonicalMessage.tool("call_1", "hi"),
            ]
        )
        assert to_openai_messages(history) == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "call echo"},
            {
                "role": "assistant",
                "content": "",
                "tool_calls": [
                    {
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "echo", "arguments": '{"text": "hi"}'},
                    }
                ],
            },
            {"role": "tool", "content": "hi", "tool_call_id": "call_1"},
        ]


class TestModelClient:
    def test_satisfies_backend_protocol(self) -> None:
        assert isinstance(ModelClient(), CompletionBackend)

    @patch("tether.core.interface.client.litellm")
    async def test_text_response(self, mock_litellm: MagicMock) -> None:
        mock_litellm.acompletion = AsyncMock(return_value=make_mock_litellm_response("Hello!"))
        client = ModelClient(ModelConfig(model="openai/gpt-4o", api_key="sk-test"))

        result = await client.generate(ConversationHistory(messages=[CanonicalMessage.user("Hi")]))

        assert result.role == "assistant"
        assert result.content == "Hello!"
        assert result.tool_calls is None
        assert result.metadata["usage"]["total_tokens"] == 30
        assert result.metadata["finish_reason"] == "stop"

        kwargs = mock_litellm.acompletion.await_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o"
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 4096
        assert kwargs["api_key"] == "sk-test"
        assert "api_base" not in kwargs
        assert "tools" not in kwargs

    @patch("tether.core.interface.client.litellm")
    async def test_tool_call_arguments_kept_raw(self, mock_litellm: MagicMock) -> None:
        tool_calls = [
            make_mock_tool_call("call_1", "echo", {"text": "hi"}),
            make_mock_tool_call("call_2", "echo", "{not json"),
        ]
        mock_litellm.acompletion = AsyncMock(
            return_value=make_mock_litellm_response(tool_calls=tool_calls, finish_reason="tool_calls")
        )
        client = ModelClient()
        tools = [{"type": "function", "function": {"name": "echo", "description": "", "parameters": {}}}]

        result = await client.generate(
            ConversationHistory(messages=[CanonicalMessage.user("go")]), tools=tools
        )

        assert result.content == ""
        assert result.tool_calls is not None
        assert [tc.id for tc in result.tool_calls] == ["call_1", "call_2"]
        assert result.tool_calls[0].parse_arguments() == {"text": "hi"}
        assert result.tool_calls[1].arguments == "{not json"
        assert mock_litellm.acompletion.await_args.kwargs["tools"] == tools

    @patch("tether.core.interface.client.litellm")
    async def test_errors_propagate(self, mock_litellm: MagicMock) -> None:
        mock_litellm.acompletion = AsyncMock(side_effect=RuntimeError("API down"))
        with pytest.raises(RuntimeError, match="API down"):
            await ModelClient().generate(ConversationHistory(messages=[CanonicalMessage.user("Hi")]))
