"""Image tagging and text embedding against an OpenAI-compatible model service."""

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from photoseek.errors import ServiceError
from photoseek.settings import Settings


logger = logging.getLogger(__name__)

IMAGE_TAGGING_PROMPT = """
You are an image tagging assistant. Your task is to analyze the given image and generate a comma-separated list of relevant tags or keywords that can be used to categorize and search for similar images in a database.

When generating tags, please follow these guidelines:

1. Use concise, descriptive words or short phrases that accurately describe the content of the image.
2. Avoid using full sentences or unnecessary words in the tags.
3. Include tags that describe the main subject(s), objects, scenes, activities, emotions, colors, and any other relevant aspects of the image.
4. Use plural forms for nouns when appropriate (e.g., "trees" instead of "tree").
5. Separate each tag with a comma and a space (e.g., "nature, landscape, trees, mountain").
6. Do not include any additional text or explanations beyond the comma-separated list of tags.

Please analyze the provided image and generate a list of relevant tags following the guidelines above.
"""

SEARCH_TAGGING_PROMPT = (
    "You are a photo tagging assistant. Extract concise, comma-separated tags from the "
    "user's search query so they can be matched against stored photo metadata."
)


def parse_tags(text: Optional[str]) -> List[str]:
    """Split comma-separated text into trimmed, non-empty tags.

    Order is preserved. Case and duplicates are left alone.
    """
    return [piece.strip() for piece in str(text or "").split(",") if piece.strip()]


class TaggingService(Protocol):
    """Protocol for the tagging/embedding capability."""

    async def tag_image(self, image_base64: str, mime_type: str) -> List[str]:
        """Return tags describing a base64-encoded image."""
        ...

    async def tags_from_query(self, query: str) -> List[str]:
        """Return tags extracted from a free-text search query."""
        ...

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """Return one embedding per input text, in input order."""
        ...


def _message_text(content: Any) -> Optional[str]:
    """Flatten chat message content (plain string or list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        segments = []
        for part in content:
            if not isinstance(part, dict):
                continue
            text = part.get("text")
            if isinstance(text, str) and text.strip():
                segments.append(text.strip())
        return " ".join(segments) if segments else None
    return None


class ModelServiceClient:
    """Tagging/embedding capability backed by an LM Studio style HTTP API.

    The client is stateless apart from the shared ``httpx.AsyncClient`` and is
    safe to use from many concurrent requests. Nothing is retried; callers
    decide whether a failure is fatal or degradable.
    """

    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        self.http = http
        self.base_url = settings.lmstudio_base_url.rstrip("/")
        self.image_model = settings.lmstudio_image_model
        self.text_model = settings.lmstudio_text_model
        self.embedding_model = settings.lmstudio_embedding_model
        self.temperature = settings.lmstudio_temperature

    async def tag_image(self, image_base64: str, mime_type: str) -> List[str]:
        image_url = f"data:{mime_type};base64,{image_base64}"
        messages = [
            {
                "role": "system",
                "content": [{
                    "type": "text",
                    "text": f"{IMAGE_TAGGING_PROMPT.strip()} Respond only with comma-separated tags.",
                }],
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Analyze this image and return the tags."},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            },
        ]
        try:
            response = await self._chat_completion(self.image_model, messages)
        except ServiceError as exc:
            raise ServiceError(f"model service failed to tag image: {exc}") from exc

        tags = parse_tags(response)
        logger.info("Image tagged with %d tags", len(tags))
        return tags

    async def tags_from_query(self, query: str) -> List[str]:
        messages = [
            {
                "role": "system",
                "content": [{
                    "type": "text",
                    "text": f"{SEARCH_TAGGING_PROMPT} Only respond with comma-separated tags.",
                }],
            },
            {
                "role": "user",
                "content": [{"type": "text", "text": query}],
            },
        ]
        try:
            response = await self._chat_completion(self.text_model, messages)
        except ServiceError as exc:
            raise ServiceError(f"model service failed to process search query: {exc}") from exc

        tags = parse_tags(response)
        logger.debug("Tags to search: %s", tags)
        return tags

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        inputs = list(texts)
        if not inputs:
            return []

        payload = await self._post_json(
            "embeddings",
            {"model": self.embedding_model, "input": inputs},
        )

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise ServiceError("embedding response did not include a data list")
        if len(data) != len(inputs):
            raise ServiceError(
                f"embedding response returned {len(data)} vectors for {len(inputs)} inputs"
            )

        if all(isinstance(item, dict) and isinstance(item.get("index"), int) for item in data):
            data = sorted(data, key=lambda item: item["index"])

        vectors: List[List[float]] = []
        for item in data:
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(embedding, list) or not embedding:
                raise ServiceError("embedding response item did not include a vector")
            try:
                vectors.append([float(value) for value in embedding])
            except (TypeError, ValueError) as exc:
                raise ServiceError("embedding response contained non-numeric values") from exc
        return vectors

    async def _chat_completion(self, model: str, messages: List[Dict[str, Any]]) -> str:
        payload = await self._post_json(
            "chat/completions",
            {
                "model": model,
                "messages": messages,
                "temperature": self.temperature,
            },
        )

        choices = payload.get("choices") if isinstance(payload, dict) else None
        if not isinstance(choices, list) or not choices:
            raise ServiceError("response contained no choices")
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        text = _message_text(message.get("content") if isinstance(message, dict) else None)
        if text is None:
            raise ServiceError("response did not include textual content")
        return text.strip()

    async def _post_json(self, path: str, body: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            response = await self.http.post(url, json=body)
        except httpx.HTTPError as exc:
            raise ServiceError(f"failed to contact model service: {exc}") from exc

        if response.status_code >= 400:
            raise ServiceError(f"model service returned status {response.status_code}")

        try:
            return response.json()
        except ValueError as exc:
            raise ServiceError("model service response was not valid JSON") from exc
