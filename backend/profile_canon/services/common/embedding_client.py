# profile_canon/services/common/embedding_client.py
"""Embedding client for bullet vectors: OpenAI by default, Ollama (local) when EMBEDDING_MODEL is set.
Used to backfill missing bullet embeddings before clustering and persistence."""
from __future__ import annotations
import logging
import time
import random
import requests
from typing import List, Optional, Sequence

from openai import OpenAI, APIConnectionError, RateLimitError, BadRequestError
from profile_canon.core.config import settings

logger = logging.getLogger("ai.embed")

_client: Optional[OpenAI] = None


def _require_api_key() -> str:
    if not settings.OPENAI_API_KEY:
        raise ValueError("OPENAI_API_KEY is not set. Please add it to your environment or .env file.")
    return settings.OPENAI_API_KEY


def _get_openai_client() -> OpenAI:
    global _client
    if _client is None:
        _client = OpenAI(api_key=_require_api_key())
        logger.info("OpenAI embedding client initialized")
    return _client


class EmbeddingClient:
    """
    Satisfies the `Embedder` port: `embed(text) -> List[float]`.
    Vectors are requested at `settings.EMBEDDING_DIMENSIONS` so they fit the pgvector columns.
    """

    def __init__(self, model: Optional[str] = None, dimensions: Optional[int] = None):
        self.model = model or settings.EMBEDDING_MODEL or settings.OPENAI_EMBEDDING_MODEL
        self.dimensions = dimensions or settings.EMBEDDING_DIMENSIONS
        # EMBEDDING_MODEL set means a local Ollama model
        self.use_ollama = bool(settings.EMBEDDING_MODEL)

        if self.use_ollama:
            logger.info("EmbeddingClient using Ollama model %s at %s", self.model, settings.OLLAMA_BASE_URL)
        else:
            logger.info("EmbeddingClient using OpenAI model %s (dim=%d)", self.model, self.dimensions)

    def embed(self, text: str, timeout: int = 60, max_retries: int = 2, base_backoff_sec: float = 1.0) -> List[float]:
        """Embed one text; transient provider errors are retried with jittered backoff."""
        attempt = 0
        while True:
            try:
                if self.use_ollama:
                    return self._embed_ollama(text, timeout=timeout)
                return self._embed_openai(text, timeout=timeout)
            except (APIConnectionError, RateLimitError, requests.ConnectionError, requests.Timeout) as e:
                attempt += 1
                if attempt > max_retries:
                    logger.error("Embedding failed after %d retries: %s", max_retries, e)
                    raise
                sleep_for = base_backoff_sec * (2 ** (attempt - 1)) + random.uniform(0, 0.25)
                logger.warning("embed transient error: %s; retrying in %.2fs (attempt %d/%d)", e, sleep_for, attempt, max_retries)
                time.sleep(sleep_for)

    def embed_many(self, texts: Sequence[str], *, timeout: int = 90, batch_size: int = 64) -> List[List[float]]:
        """One vector per text, in input order. Any failure raises; callers decide how to degrade."""
        if not texts:
            return []

        if self.use_ollama:
            # /api/embeddings takes one prompt per call
            return [self._embed_ollama(t, timeout=timeout) for t in texts]

        client = _get_openai_client()
        vectors: List[List[float]] = []
        for i in range(0, len(texts), max(1, batch_size)):
            batch = list(texts[i : i + batch_size])
            resp = client.embeddings.create(
                model=self.model, input=batch, dimensions=self.dimensions, timeout=timeout
            )
            if len(resp.data) != len(batch):
                raise ValueError(f"Expected {len(batch)} embeddings, got {len(resp.data)}")
            vectors.extend(self._check_dim(d.embedding) for d in resp.data)
            logger.debug("Embedded batch of %d bullets", len(batch))
        return vectors

    def _check_dim(self, vec: List[float]) -> List[float]:
        # pgvector rejects any other width on insert
        if len(vec) != self.dimensions:
            raise ValueError(
                f"Embedding model {self.model} returned dim={len(vec)}, expected {self.dimensions}"
            )
        return vec

    def _embed_ollama(self, text: str, timeout: int) -> List[float]:
        if not settings.OLLAMA_BASE_URL:
            raise ValueError("OLLAMA_BASE_URL is not set but EMBEDDING_MODEL selects Ollama.")
        url = f"{settings.OLLAMA_BASE_URL.rstrip('/')}/api/embeddings"
        resp = requests.post(url, json={"model": self.model, "prompt": text}, timeout=timeout)
        resp.raise_for_status()
        vec = resp.json().get("embedding")
        if not vec:
            raise ValueError("No embedding returned from Ollama")
        return self._check_dim(vec)

    def _embed_openai(self, text: str, timeout: int) -> List[float]:
        client = _get_openai_client()
        try:
            resp = client.embeddings.create(
                model=self.model, input=text, dimensions=self.dimensions, timeout=timeout
            )
        except BadRequestError as e:
            logger.exception("OpenAI embed bad request: %s", e)
            raise
        vec = resp.data[0].embedding
        logger.debug("Generated embedding vector (dim=%d)", len(vec))
        return self._check_dim(vec)


default_embedding_client = EmbeddingClient()
