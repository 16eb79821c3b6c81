"""
Clients for the remote text-generation and embedding services.

Both speak the Ollama JSON API over requests. The blocking calls are
wrapped for async callers with a per-call timeout so no call outlives the
request that made it.
"""

import asyncio
import logging
from typing import List, Optional

import requests

from arbiter.errors import ServiceError
from services.config import EmbeddingConfig, GenerationConfig

logger = logging.getLogger(__name__)


def _post_json(session: requests.Session, url: str, body: dict,
               timeout: float) -> dict:
    try:
        resp = session.post(url, json=body, timeout=timeout)
    except requests.RequestException as e:
        raise ServiceError(f"POST {url} failed: {e}") from e
    if resp.status_code < 200 or resp.status_code >= 300:
        raise ServiceError(f"POST {url} returned HTTP {resp.status_code}")
    try:
        data = resp.json()
    except ValueError as e:
        raise ServiceError(f"POST {url} returned invalid JSON") from e
    if not isinstance(data, dict):
        raise ServiceError(f"POST {url} returned a non-object body")
    return data


async def _call_with_timeout(fn, arg, timeout: Optional[float]):
    if timeout is not None and timeout <= 0:
        raise ServiceError("Request deadline exceeded before call")
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, arg, timeout), timeout)
    except asyncio.TimeoutError as e:
        raise ServiceError(f"Call timed out after {timeout}s") from e


class GenerationClient:
    """Complete(prompt) -> text."""

    def __init__(self, config: GenerationConfig = None,
                 session: requests.Session = None):
        self.config = config or GenerationConfig()
        self.session = session or requests.Session()

    def complete(self, prompt: str, timeout: Optional[float] = None) -> str:
        data = _post_json(
            self.session,
            f"{self.config.base_url.rstrip('/')}/api/generate",
            {'model': self.config.model, 'prompt': prompt, 'stream': False},
            self.config.timeout if timeout is None else timeout,
        )
        response = data.get('response')
        if not isinstance(response, str):
            raise ServiceError("'response' field not found")
        logger.debug(f"Generation reply: {response[:80]!r}")
        return response

    async def acomplete(self, prompt: str, timeout: Optional[float] = None) -> str:
        if timeout is None:
            timeout = self.config.timeout
        return await _call_with_timeout(self.complete, prompt, timeout)


class EmbeddingClient:
    """Embed(text) -> fixed-length vector."""

    def __init__(self, config: EmbeddingConfig = None,
                 session: requests.Session = None):
        self.config = config or EmbeddingConfig()
        self.session = session or requests.Session()

    def embed(self, text: str, timeout: Optional[float] = None) -> List[float]:
        data = _post_json(
            self.session,
            f"{self.config.base_url.rstrip('/')}/api/embeddings",
            {'model': self.config.model, 'prompt': text},
            self.config.timeout if timeout is None else timeout,
        )
        embedding = data.get('embedding')
        if not isinstance(embedding, list) or not embedding:
            raise ServiceError("Invalid embedding response")
        try:
            return [float(v) for v in embedding]
        except (TypeError, ValueError) as e:
            raise ServiceError("Invalid embedding response") from e

    async def aembed(self, text: str, timeout: Optional[float] = None) -> List[float]:
        if timeout is None:
            timeout = self.config.timeout
        return await _call_with_timeout(self.embed, text, timeout)
