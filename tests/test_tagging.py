"""Tests for tag parsing and the model-service client."""

import asyncio
import json

import httpx
import pytest

from photoseek.errors import ServiceError
from photoseek.settings import Settings
from photoseek.tagging import ModelServiceClient, parse_tags


def test_parse_tags_trims_and_drops_empty_pieces():
    assert parse_tags("a, b ,,c") == ["a", "b", "c"]


def test_parse_tags_keeps_order_case_and_duplicates():
    assert parse_tags("Beach, sunset, beach, Beach") == ["Beach", "sunset", "beach", "Beach"]


def test_parse_tags_handles_blank_input():
    assert parse_tags("") == []
    assert parse_tags(None) == []
    assert parse_tags(" , ,") == []


def _client(handler) -> ModelServiceClient:
    settings = Settings(lmstudio_base_url="http://models.test/v1/")
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ModelServiceClient(http, settings)


def _chat_reply(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def test_tag_image_sends_data_url_and_parses_reply():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return _chat_reply(" nature, landscape , trees ")

    tags = asyncio.run(_client(handler).tag_image("aGVsbG8=", "image/png"))

    assert tags == ["nature", "landscape", "trees"]
    assert seen["url"] == "http://models.test/v1/chat/completions"
    body = seen["body"]
    assert body["model"] == "qwen/qwen3-vl-4b"
    assert body["temperature"] == pytest.approx(0.2)
    image_part = body["messages"][1]["content"][1]
    assert image_part["image_url"]["url"] == "data:image/png;base64,aGVsbG8="


def test_tags_from_query_joins_text_parts():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["model"] == "llama2"
        assert body["messages"][1]["content"][0]["text"] == "dogs on the beach"
        return _chat_reply([
            {"type": "text", "text": " dogs,"},
            {"type": "text", "text": "  "},
            {"type": "reasoning"},
            {"type": "text", "text": "beach "},
        ])

    tags = asyncio.run(_client(handler).tags_from_query("dogs on the beach"))

    assert tags == ["dogs", "beach"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json={"choices": [{"message": {"content": [{"type": "text", "text": " "}]}}]}),
        httpx.Response(200, json={"choices": [{"message": {"content": None}}]}),
    ],
)
def test_tag_image_failures_raise_service_error(response):
    client = _client(lambda request: response)

    with pytest.raises(ServiceError):
        asyncio.run(client.tag_image("aGVsbG8=", "image/png"))


def test_transport_failure_raises_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ServiceError):
        asyncio.run(_client(handler).tags_from_query("anything"))


def test_embed_texts_orders_vectors_by_index():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.url.path == "/v1/embeddings"
        assert body["input"] == ["first", "second"]
        return httpx.Response(200, json={"data": [
            {"index": 1, "embedding": [0.0, 1.0]},
            {"index": 0, "embedding": [1.0, 0.0]},
        ]})

    vectors = asyncio.run(_client(handler).embed_texts(["first", "second"]))

    assert vectors == [[1.0, 0.0], [0.0, 1.0]]


def test_embed_texts_rejects_count_mismatch():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": [{"index": 0, "embedding": [1.0]}]})

    with pytest.raises(ServiceError, match="1 vectors for 2 inputs"):
        asyncio.run(_client(handler).embed_texts(["a", "b"]))


@pytest.mark.parametrize(
    "payload",
    [
        {"object": "list"},
        {"data": [{"index": 0}]},
        {"data": [{"index": 0, "embedding": ["x"]}]},
    ],
)
def test_embed_texts_rejects_malformed_payload(payload):
    client = _client(lambda request: httpx.Response(200, json=payload))

    with pytest.raises(ServiceError):
        asyncio.run(client.embed_texts(["a"]))
