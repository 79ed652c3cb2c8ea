"""Tests for the LLM service implementations and factory."""

import os
from unittest.mock import MagicMock, patch

import pytest

from docchat.errors import SinkClosedError
from docchat.llm import GeminiService, OllamaService, get_llm_service


class StreamRecorder:
    """StreamSink recording callbacks."""

    def __init__(self, close_after: int | None = None):
        self.fragments = []
        self.completed = []
        self.errors = []
        self.close_after = close_after

    def on_fragment(self, text):
        if self.close_after is not None and len(self.fragments) >= self.close_after:
            raise SinkClosedError("gone")
        self.fragments.append(text)

    def on_complete(self, final_text=None):
        self.completed.append(final_text)

    def on_error(self, cause):
        self.errors.append(cause)


def ollama_part(text):
    part = MagicMock()
    part.message.content = text
    return part


class TestOllamaService:
    """Tests for OllamaService class."""

    @pytest.mark.asyncio
    async def test_generate_response_success(self):
        """Test successful response generation."""
        service = OllamaService(host="http://test:11434", model="test-model")

        mock_response = MagicMock()
        mock_response.message.content = "Hello, world!"
        service.client.chat = MagicMock(return_value=mock_response)

        messages = [{"role": "user", "content": "Say hello"}]
        response = await service.generate_response(messages)

        assert response == "Hello, world!"
        service.client.chat.assert_called_once_with(model="test-model", messages=messages)

    @pytest.mark.asyncio
    async def test_generate_response_error_propagates(self):
        """Test that API errors are raised to the caller."""
        service = OllamaService(host="http://test:11434", model="test-model")
        service.client.chat = MagicMock(side_effect=ConnectionError("refused"))
        with pytest.raises(ConnectionError):
            await service.generate_response([{"role": "user", "content": "hi"}])

    def test_stream_response_forwards_fragments(self):
        """Test that streamed parts are forwarded and completion signalled."""
        service = OllamaService(host="http://test:11434", model="test-model")
        service.client.chat = MagicMock(
            return_value=iter([ollama_part("Hel"), ollama_part(""), ollama_part("lo")])
        )
        recorder = StreamRecorder()

        service.stream_response([{"role": "user", "content": "hi"}], recorder)

        assert recorder.fragments == ["Hel", "lo"]
        assert recorder.completed == [None]
        assert recorder.errors == []
        _, kwargs = service.client.chat.call_args
        assert kwargs["stream"] is True

    def test_stream_response_error(self):
        """Test that a mid-stream failure is reported through on_error."""
        service = OllamaService(host="http://test:11434", model="test-model")

        def broken_stream():
            yield ollama_part("A")
            raise ConnectionError("reset")

        service.client.chat = MagicMock(return_value=broken_stream())
        recorder = StreamRecorder()

        service.stream_response([], recorder)

        assert recorder.fragments == ["A"]
        assert recorder.completed == []
        assert isinstance(recorder.errors[0], ConnectionError)

    def test_stream_response_stops_when_receiver_closes(self):
        """Test that a closed receiver ends the stream quietly."""
        service = OllamaService(host="http://test:11434", model="test-model")
        service.client.chat = MagicMock(
            return_value=iter([ollama_part("A"), ollama_part("B"), ollama_part("C")])
        )
        recorder = StreamRecorder(close_after=1)

        service.stream_response([], recorder)

        assert recorder.fragments == ["A"]
        assert recorder.completed == []
        assert recorder.errors == []

    def test_generate_embeddings(self):
        """Test that each text is embedded with the configured model."""
        service = OllamaService(
            host="http://test:11434", model="test-model", embedding_model="embed-model"
        )
        service.client.embed = MagicMock(
            side_effect=[{"embeddings": [[0.1, 0.2]]}, {"embeddings": [[0.3, 0.4]]}]
        )

        embeddings = service.generate_embeddings(["one", "two"])

        assert embeddings == [[0.1, 0.2], [0.3, 0.4]]
        service.client.embed.assert_any_call(model="embed-model", input="one")

    def test_embed_single_text(self):
        service = OllamaService(host="http://test:11434", model="m", embedding_model="e")
        service.client.embed = MagicMock(return_value={"embeddings": [[1.0, 2.0]]})
        assert service.embed("text") == [1.0, 2.0]

    @pytest.mark.integration
    @pytest.mark.requires_ollama
    def test_generate_embeddings_real_ollama(self, ollama_service):
        """Test generating embeddings with real Ollama service."""
        embeddings = ollama_service.generate_embeddings(
            ["Python programming", "Cooking recipes"], "nomic-embed-text"
        )
        assert len(embeddings) == 2
        assert len(embeddings[0]) == len(embeddings[1]) > 0
        assert embeddings[0] != embeddings[1]


class TestGeminiService:
    """Tests for GeminiService class."""

    @pytest.fixture
    def service(self):
        with patch("docchat.llm.gemini.genai.Client") as mock_client_cls:
            mock_client_cls.return_value = MagicMock()
            yield GeminiService(model="gemini-test", embedding_model="embed-test")

    def test_build_request_maps_roles(self, service):
        """Test that system turns become the system instruction and assistant maps to model."""
        request = service._build_request(
            [
                {"role": "system", "content": "Use the context."},
                {"role": "user", "content": "Q1"},
                {"role": "assistant", "content": "A1"},
                {"role": "user", "content": "Q2"},
            ]
        )

        assert request["model"] == "gemini-test"
        assert [c.role for c in request["contents"]] == ["user", "model", "user"]
        assert request["contents"][1].parts[0].text == "A1"
        assert request["config"].system_instruction == "Use the context."

    @pytest.mark.asyncio
    async def test_generate_response(self, service):
        """Test successful response generation."""
        service.client.models.generate_content.return_value = MagicMock(text="Gemini says hi")
        response = await service.generate_response([{"role": "user", "content": "hi"}])
        assert response == "Gemini says hi"

    def test_stream_response(self, service):
        """Test that streamed chunks are forwarded."""
        service.client.models.generate_content_stream.return_value = iter(
            [MagicMock(text="Gem"), MagicMock(text=None), MagicMock(text="ini")]
        )
        recorder = StreamRecorder()

        service.stream_response([{"role": "user", "content": "hi"}], recorder)

        assert recorder.fragments == ["Gem", "ini"]
        assert recorder.completed == [None]

    def test_generate_embeddings(self, service):
        """Test that embedding values are read from the response."""
        embedding = MagicMock()
        embedding.values = [0.5, 0.6]
        service.client.models.embed_content.return_value = MagicMock(embeddings=[embedding])

        assert service.generate_embeddings(["text"]) == [[0.5, 0.6]]
        service.client.models.embed_content.assert_called_once_with(
            model="embed-test", contents=["text"]
        )


class TestGetLLMService:
    """Tests for the get_llm_service factory."""

    def test_ollama_from_config(self):
        service = get_llm_service(
            {"service": "ollama", "host": "http://h:1", "model": "m", "embedding_model": "e"}
        )
        assert isinstance(service, OllamaService)
        assert (service.host, service.model, service.embedding_model) == ("http://h:1", "m", "e")

    def test_gemini_from_environment(self):
        env = {"LLM_SERVICE": "gemini", "LLM_MODEL": "gemini-x"}
        with patch.dict(os.environ, env), patch("docchat.llm.gemini.genai.Client"):
            service = get_llm_service()
        assert isinstance(service, GeminiService)
        assert service.model == "gemini-x"

    def test_unknown_service(self):
        with pytest.raises(ValueError, match="Unsupported service type"):
            get_llm_service({"service": "nope"})
