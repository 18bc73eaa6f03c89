"""Tests for the OpenAI, Ollama, and Gemini embedding providers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from vaultsearch.exceptions import (
    EmbeddingError,
    MissingCredentialError,
    MissingEndpointError,
    ProviderError,
    RateLimitExceededError,
)
from vaultsearch.search.catalog import EmbeddingModelDescriptor, get_descriptor
from vaultsearch.search.protocols import EmbeddingProvider
from vaultsearch.search.providers.ollama import OllamaEmbedding
from vaultsearch.search.providers.openai import OpenAIEmbedding

_SMALL = EmbeddingModelDescriptor(
    model_id="openai/text-embedding-3-small",
    dimension=3,
    provider="openai",
    model="text-embedding-3-small",
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def _mock_response(vectors: list[list[float]]):
    """Build a mock CreateEmbeddingResponse."""
    mock_resp = MagicMock()
    mock_data = []
    for i, vec in enumerate(vectors):
        item = MagicMock()
        item.embedding = vec
        item.index = i
        mock_data.append(item)
    mock_resp.data = mock_data
    return mock_resp


def _mock_client(provider: OpenAIEmbedding, **create_kwargs) -> MagicMock:
    client = MagicMock()
    client.embeddings.create = AsyncMock(**create_kwargs)
    client.close = AsyncMock()
    provider._client = client
    return client


def _rate_limit_error(code: str | None) -> openai.RateLimitError:
    response = httpx.Response(429, request=_REQUEST)
    body = {"message": "slow down", "code": code} if code else None
    return openai.RateLimitError("slow down", response=response, body=body)


# ==================================================================
# OpenAI provider
# ==================================================================


class TestOpenAIEmbedding:
    def _make_provider(self, **kwargs) -> OpenAIEmbedding:
        kwargs.setdefault("api_key", "sk-test-key")
        return OpenAIEmbedding(_SMALL, **kwargs)

    @pytest.mark.asyncio
    async def test_embed_single_text(self):
        provider = self._make_provider()
        expected = [0.1, 0.2, 0.3]
        client = _mock_client(provider, return_value=_mock_response([expected]))

        result = await provider.embed("hello")

        assert result == expected
        client.embeddings.create.assert_called_once()
        call_kwargs = client.embeddings.create.call_args[1]
        assert call_kwargs["input"] == "hello"
        assert call_kwargs["model"] == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_result_is_list_of_floats(self):
        provider = self._make_provider()
        _mock_client(provider, return_value=_mock_response([[1, 2, 3]]))
        result = await provider.embed("ints")
        assert all(isinstance(x, float) for x in result)

    def test_properties(self):
        provider = self._make_provider()
        assert provider.dimensions == 3
        assert provider.model_id == "openai/text-embedding-3-small"
        assert provider.model_name == "text-embedding-3-small"

    def test_satisfies_protocol(self):
        assert isinstance(self._make_provider(), EmbeddingProvider)

    def test_missing_sdk_names_the_package(self):
        with patch("vaultsearch.search.providers.openai._HAS_OPENAI", False):
            with pytest.raises(ImportError, match="pip install openai$"):
                self._make_provider()

    @pytest.mark.asyncio
    async def test_missing_key_raises_before_request(self):
        provider = self._make_provider(api_key=None)
        with pytest.raises(MissingCredentialError, match="OpenAI API key is missing"):
            await provider.embed("hello")
        assert provider._client is None

    @pytest.mark.asyncio
    async def test_empty_key_counts_as_missing(self):
        provider = self._make_provider(api_key="")
        with pytest.raises(MissingCredentialError):
            await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_rate_limit_maps_to_rate_limit_exceeded(self):
        provider = self._make_provider()
        _mock_client(provider, side_effect=_rate_limit_error("rate_limit_exceeded"))

        with pytest.raises(RateLimitExceededError, match="rate limit exceeded") as excinfo:
            await provider.embed("hello")
        assert isinstance(excinfo.value.__cause__, openai.RateLimitError)

    @pytest.mark.asyncio
    async def test_rate_limit_without_code(self):
        provider = self._make_provider()
        _mock_client(provider, side_effect=_rate_limit_error(None))
        with pytest.raises(RateLimitExceededError):
            await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_insufficient_quota_is_provider_error(self):
        provider = self._make_provider()
        _mock_client(provider, side_effect=_rate_limit_error("insufficient_quota"))

        with pytest.raises(ProviderError, match="quota"):
            await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_connection_error_is_provider_error(self):
        provider = self._make_provider()
        _mock_client(provider, side_effect=openai.APIConnectionError(request=_REQUEST))

        with pytest.raises(ProviderError) as excinfo:
            await provider.embed("hello")
        assert isinstance(excinfo.value, EmbeddingError)
        assert not isinstance(excinfo.value, RateLimitExceededError)

    @pytest.mark.asyncio
    async def test_server_error_is_provider_error(self):
        provider = self._make_provider()
        error = openai.InternalServerError(
            "boom", response=httpx.Response(500, request=_REQUEST), body=None
        )
        _mock_client(provider, side_effect=error)

        with pytest.raises(ProviderError):
            await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_wrong_length_vector_is_provider_error(self):
        provider = self._make_provider()
        _mock_client(provider, return_value=_mock_response([[0.1, 0.2]]))

        with pytest.raises(ProviderError, match="returned 2 dimensions, expected 3"):
            await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_empty_data_is_provider_error(self):
        provider = self._make_provider()
        _mock_client(provider, return_value=_mock_response([]))

        with pytest.raises(ProviderError, match="empty response"):
            await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_client_created_lazily_without_retries(self):
        provider = self._make_provider()
        assert provider._client is None
        client = provider._get_client()
        assert client.max_retries == 0
        assert provider._get_client() is client
        await provider.close()
        assert provider._client is None

    @pytest.mark.asyncio
    async def test_close_closes_client(self):
        provider = self._make_provider()
        client = _mock_client(provider)
        await provider.close()
        client.close.assert_awaited_once()
        assert provider._client is None

    @pytest.mark.asyncio
    async def test_close_without_client_is_noop(self):
        await self._make_provider().close()


# ==================================================================
# Ollama provider
# ==================================================================


class TestOllamaEmbedding:
    def _descriptor(self) -> EmbeddingModelDescriptor:
        return get_descriptor("ollama/nomic-embed-text")

    @pytest.mark.asyncio
    async def test_missing_base_url_raises_before_request(self):
        provider = OllamaEmbedding(self._descriptor())
        with pytest.raises(MissingEndpointError, match="Ollama Address is missing"):
            await provider.embed("hello")
        assert provider._client is None

    @pytest.mark.asyncio
    async def test_base_url_gets_v1_suffix(self):
        provider = OllamaEmbedding(self._descriptor(), base_url="http://localhost:11434/")
        client = provider._get_client()
        assert str(client.base_url).rstrip("/") == "http://localhost:11434/v1"
        await provider.close()

    @pytest.mark.asyncio
    async def test_no_api_key_needed(self):
        provider = OllamaEmbedding(self._descriptor(), base_url="http://gpu-box:11434")
        vector = [0.5] * 768
        client = _mock_client(provider, return_value=_mock_response([vector]))

        result = await provider.embed("hello")

        assert result == vector
        assert client.embeddings.create.call_args[1]["model"] == "nomic-embed-text"

    @pytest.mark.asyncio
    async def test_connection_error_mentions_ollama(self):
        provider = OllamaEmbedding(self._descriptor(), base_url="http://localhost:11434")
        _mock_client(provider, side_effect=openai.APIConnectionError(request=_REQUEST))

        with pytest.raises(ProviderError, match="Ollama"):
            await provider.embed("hello")

    def test_properties(self):
        provider = OllamaEmbedding(self._descriptor(), base_url="http://localhost:11434")
        assert provider.dimensions == 768
        assert provider.model_id == "ollama/nomic-embed-text"
        assert isinstance(provider, EmbeddingProvider)


# ==================================================================
# Gemini provider
# ==================================================================


class TestGeminiEmbedding:
    @pytest.fixture(autouse=True)
    def _require_genai(self):
        pytest.importorskip("google.generativeai")

    def _make_provider(self, api_key: str | None = "gm-test-key"):
        from vaultsearch.search.providers.gemini import GeminiEmbedding

        return GeminiEmbedding(get_descriptor("gemini/text-embedding-004"), api_key=api_key)

    def test_missing_sdk_names_the_package(self):
        with patch("vaultsearch.search.providers.gemini._HAS_GENAI", False):
            with pytest.raises(ImportError, match="pip install google-generativeai$"):
                self._make_provider()

    @pytest.mark.asyncio
    async def test_embed_calls_sdk(self):
        provider = self._make_provider()
        vector = [0.25] * 768
        with patch("vaultsearch.search.providers.gemini.genai") as genai:
            genai.embed_content_async = AsyncMock(return_value={"embedding": vector})
            result = await provider.embed("hello")

        assert result == vector
        genai.configure.assert_called_once_with(api_key="gm-test-key")
        genai.embed_content_async.assert_awaited_once_with(
            model="models/text-embedding-004", content="hello"
        )

    @pytest.mark.asyncio
    async def test_missing_key_raises_before_request(self):
        provider = self._make_provider(api_key=None)
        with patch("vaultsearch.search.providers.gemini.genai") as genai:
            with pytest.raises(MissingCredentialError, match="Gemini API key is missing"):
                await provider.embed("hello")
        genai.embed_content_async.assert_not_called()

    @pytest.mark.asyncio
    async def test_resource_exhausted_is_rate_limit(self):
        from google.api_core import exceptions as google_exceptions

        provider = self._make_provider()
        with patch("vaultsearch.search.providers.gemini.genai") as genai:
            genai.embed_content_async = AsyncMock(
                side_effect=google_exceptions.ResourceExhausted("quota")
            )
            with pytest.raises(RateLimitExceededError):
                await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_api_error_is_provider_error(self):
        from google.api_core import exceptions as google_exceptions

        provider = self._make_provider()
        with patch("vaultsearch.search.providers.gemini.genai") as genai:
            genai.embed_content_async = AsyncMock(
                side_effect=google_exceptions.InternalServerError("down")
            )
            with pytest.raises(ProviderError):
                await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_missing_embedding_is_provider_error(self):
        provider = self._make_provider()
        with patch("vaultsearch.search.providers.gemini.genai") as genai:
            genai.embed_content_async = AsyncMock(return_value={})
            with pytest.raises(ProviderError, match="no embedding"):
                await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_wrong_length_is_provider_error(self):
        provider = self._make_provider()
        with patch("vaultsearch.search.providers.gemini.genai") as genai:
            genai.embed_content_async = AsyncMock(return_value={"embedding": [0.1] * 10})
            with pytest.raises(ProviderError, match="expected 768"):
                await provider.embed("hello")

    def test_satisfies_protocol(self):
        assert isinstance(self._make_provider(), EmbeddingProvider)
