"""OpenAI client wrapper: JSON-only completions and cached embeddings."""

import hashlib
import json
import math
import os
from pathlib import Path
from typing import Any

from openai import AsyncOpenAI, OpenAIError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.errors import ConfigurationError
from ..observability.logger import get_logger

logger = get_logger(__name__)

JSON_ONLY_INSTRUCTIONS = (
    "You are a careful career-data assistant. "
    "Return ONLY a valid JSON object that follows the structure requested in the prompt. "
    "Do not add markdown, code fences, or prose. "
    "If a field is unknown, set it to null or an empty list/object."
)


def is_test_mode() -> bool:
    """True when CAREERKB_TEST_MODE is set; no network calls are made then."""
    return bool(os.getenv("CAREERKB_TEST_MODE"))


class OpenAIClient:
    """Wrapper for the OpenAI Responses and Embeddings APIs.

    Completions are single round trips: the caller decides what a failure
    means, so ``complete`` never retries. Embeddings are retried with
    exponential backoff because they are idempotent and cheap.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-5.1",
        embedding_model: str = "text-embedding-3-small",
        embedding_dimensions: int | None = None,
        timeout: int = 120,
        max_output_tokens: int = 8192,
        cache_path: str | Path | None = "data/cache/embeddings_cache.json",
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Completion model
            embedding_model: Embedding model
            embedding_dimensions: Optional reduced embedding size (text-embedding-3 models)
            timeout: Request timeout in seconds
            max_output_tokens: Cap on generated tokens per completion
            cache_path: JSON file for the embedding cache; None disables caching
        """
        self.test_mode = is_test_mode()
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key and not self.test_mode:
            raise ConfigurationError("OpenAI API key must be provided or set in OPENAI_API_KEY env var")

        self.model = model
        self.embedding_model = embedding_model
        self.embedding_dimensions = embedding_dimensions
        self.max_output_tokens = max_output_tokens

        self.client: AsyncOpenAI | None = None
        if not self.test_mode:
            # The SDK's own transport retries are disabled; see class docstring
            self.client = AsyncOpenAI(api_key=self.api_key, timeout=timeout, max_retries=0)

        self._cache_path = Path(cache_path) if cache_path else None
        self._embedding_cache: dict[str, list[float]] = {}
        self._load_embedding_cache()

        logger.info(
            "openai_client_initialized",
            model=model,
            embedding_model=embedding_model,
            test_mode=self.test_mode,
        )

    async def complete(self, prompt: str) -> str:
        """Run one JSON-only completion and return the raw output text.

        Args:
            prompt: Full prompt text

        Returns:
            Model output text (may still carry code fences)

        Raises:
            OpenAIError: If the API call fails
            ValueError: If the response carries no text
        """
        if self.test_mode:
            return "{}"

        logger.info("completion_requested", model=self.model, prompt_chars=len(prompt))

        try:
            response = await self.client.responses.create(
                model=self.model,
                instructions=JSON_ONLY_INSTRUCTIONS,
                input=[{"role": "user", "content": prompt}],
                max_output_tokens=self.max_output_tokens,
                text={"format": {"type": "json_object"}},
            )
        except OpenAIError as e:
            logger.error("openai_error", error=str(e), model=self.model, exc_info=True)
            raise

        output_text = self._extract_text_from_response(response)
        if not output_text:
            raise ValueError("No text content returned from OpenAI response")

        usage = getattr(response, "usage", None)
        logger.info(
            "completion_received",
            response_id=getattr(response, "id", None),
            tokens_total=getattr(usage, "total_tokens", 0),
            output_chars=len(output_text),
        )
        return output_text

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(OpenAIError),
        reraise=True,
    )
    async def embed(self, text: str) -> list[float]:
        """Embed one text, consulting the on-disk cache first.

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            OpenAIError: If API call fails after retries
        """
        if self.test_mode:
            return self._hashed_embedding(text, self.embedding_dimensions or 64)

        cache_key = self._cache_key(text)
        cached = self._embedding_cache.get(cache_key)
        if cached is not None:
            return cached

        kwargs: dict[str, Any] = {"model": self.embedding_model, "input": text}
        if self.embedding_dimensions:
            kwargs["dimensions"] = self.embedding_dimensions

        try:
            response = await self.client.embeddings.create(**kwargs)
        except OpenAIError as e:
            logger.error("openai_embedding_error", error=str(e), model=self.embedding_model, exc_info=True)
            raise

        embedding = response.data[0].embedding
        self._embedding_cache[cache_key] = embedding
        self._persist_embedding_cache()

        logger.debug(
            "embedding_generated",
            tokens=getattr(response.usage, "total_tokens", 0),
            dimensions=len(embedding),
        )
        return embedding

    @staticmethod
    def _hashed_embedding(text: str, dimensions: int) -> list[float]:
        """Deterministic bag-of-words vector used in test mode."""
        vector = [0.0] * dimensions
        for token in text.lower().split():
            digest = hashlib.sha256(token.encode()).digest()
            vector[int.from_bytes(digest[:4], "big") % dimensions] += 1.0
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]

    @staticmethod
    def _extract_text_from_response(response: Any) -> str:
        """Extract concatenated text payload from a Responses API result."""
        if getattr(response, "output_text", None):
            return str(response.output_text).strip()

        texts: list[str] = []
        for item in getattr(response, "output", []) or []:
            for content in getattr(item, "content", []) or []:
                text_val = getattr(content, "text", None)
                if text_val:
                    texts.append(str(text_val))
        if not texts:
            logger.error(
                "empty_response_output",
                status=getattr(response, "status", None),
                output_preview=str(getattr(response, "output", None))[:500],
            )
        return "".join(texts).strip()

    def _cache_key(self, text: str) -> str:
        payload = json.dumps(
            {"text": text, "model": self.embedding_model, "dimensions": self.embedding_dimensions or "full"},
            sort_keys=True,
        )
        return hashlib.sha256(payload.encode()).hexdigest()

    def _load_embedding_cache(self) -> None:
        if self._cache_path is None or not self._cache_path.exists():
            return
        try:
            self._embedding_cache = json.loads(self._cache_path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("embedding_cache_load_failed", error=str(exc), path=str(self._cache_path))

    def _persist_embedding_cache(self) -> None:
        if self._cache_path is None:
            return
        try:
            self._cache_path.parent.mkdir(parents=True, exist_ok=True)
            self._cache_path.write_text(json.dumps(self._embedding_cache))
        except OSError as exc:
            logger.warning("embedding_cache_persist_failed", error=str(exc), path=str(self._cache_path))


def create_openai_client(config: dict[str, Any]) -> OpenAIClient:
    """Build a client from the ``openai`` section of the loaded config.

    Args:
        config: Merged configuration dictionary

    Returns:
        OpenAIClient instance
    """
    openai_config = config.get("openai", {}) or {}
    api_key_env = openai_config.get("api_key_env", "OPENAI_API_KEY")
    return OpenAIClient(
        api_key=os.getenv(api_key_env),
        model=openai_config.get("model", "gpt-5.1"),
        embedding_model=openai_config.get("embedding_model", "text-embedding-3-small"),
        embedding_dimensions=openai_config.get("embedding_dimensions") or None,
        timeout=openai_config.get("timeout", 120),
        max_output_tokens=openai_config.get("max_output_tokens", 8192),
        cache_path=openai_config.get("embedding_cache_path") or None,
    )
