"""
Vector Memory Store

Small JSON documents keyed by id, searchable by vector similarity. Used
for semantic memory, the policy weight vector and the training log.

Two backends share one interface:
- LocalVectorStore: in-process, numpy cosine similarity
- QdrantVectorStore: Qdrant REST API over requests

Both are blocking; the async helpers run them in a worker thread so a
request can await them without stalling the event loop.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import requests

from arbiter.errors import StoreError

logger = logging.getLogger(__name__)


Point = Tuple[str, Dict[str, Any], Sequence[float]]


@dataclass
class StoreResult:
    """Outcome of a best-effort store call. Failures are values, not raises."""
    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> 'StoreResult':
        return cls(True)

    @classmethod
    def failure(cls, error: str) -> 'StoreResult':
        return cls(False, error)


class VectorStore:
    """
    Interface shared by every backend.

    ``timeout`` bounds one blocking call; in-process backends ignore it.
    """

    def upsert(self, collection: str, point_id: str,
               payload: Dict[str, Any], vector: Sequence[float],
               timeout: Optional[float] = None):
        self.upsert_many(collection, [(point_id, payload, vector)], timeout=timeout)

    def upsert_many(self, collection: str, points: List[Point],
                    timeout: Optional[float] = None):
        raise NotImplementedError

    def search(self, collection: str, vector: Sequence[float],
               k: int = 5, timeout: Optional[float] = None
               ) -> List[Tuple[Dict[str, Any], float]]:
        raise NotImplementedError

    def get(self, collection: str, point_id: str,
            timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    # ── async wrappers ────────────────────────────────────────────────

    async def aupsert(self, collection: str, point_id: str,
                      payload: Dict[str, Any], vector: Sequence[float],
                      timeout: Optional[float] = None):
        await _in_thread(timeout, self.upsert, collection, point_id,
                         payload, vector)

    async def aupsert_many(self, collection: str, points: List[Point],
                           timeout: Optional[float] = None):
        await _in_thread(timeout, self.upsert_many, collection, points)

    async def asearch(self, collection: str, vector: Sequence[float],
                      k: int = 5, timeout: Optional[float] = None):
        return await _in_thread(timeout, self.search, collection, vector, k)

    async def aget(self, collection: str, point_id: str,
                   timeout: Optional[float] = None):
        return await _in_thread(timeout, self.get, collection, point_id)


async def _in_thread(timeout: Optional[float], fn, *args):
    if timeout is not None and timeout <= 0:
        raise StoreError("Request deadline exceeded before store call")
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(fn, *args, timeout=timeout), timeout)
    except asyncio.TimeoutError as e:
        raise StoreError(f"Store call timed out after {timeout}s") from e


async def best_effort(what: str, coro) -> StoreResult:
    """Await a store coroutine, turning any store failure into a StoreResult."""
    try:
        await coro
    except StoreError as e:
        logger.warning(f"{what} failed: {e}")
        return StoreResult.failure(str(e))
    return StoreResult.success()


class LocalVectorStore(VectorStore):
    """In-process store. Thread-safe; contents live as long as the process."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Tuple[Dict[str, Any], np.ndarray]]] = {}
        self._lock = threading.Lock()

    def upsert_many(self, collection: str, points: List[Point],
                    timeout: Optional[float] = None):
        with self._lock:
            target = self._collections.setdefault(collection, {})
            for point_id, payload, vector in points:
                target[str(point_id)] = (dict(payload),
                                         np.asarray(vector, dtype=np.float64))

    def search(self, collection: str, vector: Sequence[float],
               k: int = 5, timeout: Optional[float] = None
               ) -> List[Tuple[Dict[str, Any], float]]:
        query = np.asarray(vector, dtype=np.float64)
        with self._lock:
            entries = list(self._collections.get(collection, {}).values())

        results = []
        q_norm = np.linalg.norm(query)
        for payload, stored in entries:
            if stored.shape != query.shape:
                continue
            denom = q_norm * np.linalg.norm(stored)
            similarity = float(np.dot(query, stored) / denom) if denom > 0 else 0.0
            results.append((dict(payload), similarity))

        results.sort(key=lambda x: x[1], reverse=True)
        return results[:k]

    def get(self, collection: str, point_id: str,
            timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._collections.get(collection, {}).get(str(point_id))
        return dict(entry[0]) if entry else None

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, {}))


class QdrantVectorStore(VectorStore):
    """
    Qdrant over its REST API.

    Collections are created on first write with cosine distance and the
    dimension of the first vector written to them.
    """

    def __init__(self, url: str, api_key: Optional[str] = None,
                 timeout: float = 5.0, session: requests.Session = None):
        self.url = url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers['api-key'] = api_key
        self._known_collections = set()

    def _request(self, method: str, path: str, body: Any = None,
                 allow_404: bool = False,
                 timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        if timeout is None or timeout > self.timeout:
            timeout = self.timeout
        try:
            resp = self.session.request(method, f"{self.url}{path}",
                                        json=body, timeout=timeout)
        except requests.RequestException as e:
            raise StoreError(f"Qdrant {method} {path} failed: {e}") from e
        if allow_404 and resp.status_code == 404:
            return None
        if resp.status_code < 200 or resp.status_code >= 300:
            raise StoreError(
                f"Qdrant {method} {path} returned HTTP {resp.status_code}: "
                f"{resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as e:
            raise StoreError(f"Qdrant {method} {path} returned invalid JSON") from e

    def ensure_collection(self, collection: str, size: int,
                          timeout: Optional[float] = None):
        if collection in self._known_collections:
            return
        existing = self._request('GET', f"/collections/{collection}",
                                 allow_404=True, timeout=timeout)
        if existing is None:
            self._request('PUT', f"/collections/{collection}", {
                'vectors': {'size': size, 'distance': 'Cosine'},
            }, timeout=timeout)
            logger.info(f"Created Qdrant collection {collection} (dim={size})")
        self._known_collections.add(collection)

    def upsert_many(self, collection: str, points: List[Point],
                    timeout: Optional[float] = None):
        if not points:
            return
        self.ensure_collection(collection, len(points[0][2]), timeout)
        body = {
            'points': [
                {
                    'id': str(point_id),
                    'payload': payload,
                    'vector': [float(v) for v in vector],
                }
                for point_id, payload, vector in points
            ]
        }
        self._request('PUT', f"/collections/{collection}/points?wait=true", body,
                      timeout=timeout)

    def search(self, collection: str, vector: Sequence[float],
               k: int = 5, timeout: Optional[float] = None
               ) -> List[Tuple[Dict[str, Any], float]]:
        response = self._request('POST', f"/collections/{collection}/points/search", {
            'vector': [float(v) for v in vector],
            'top': k,
            'with_payload': True,
        }, allow_404=True, timeout=timeout)
        if response is None:
            return []
        hits = response.get('result')
        if not isinstance(hits, list):
            raise StoreError("Qdrant search response has no result list")
        return [
            (hit.get('payload') or {}, float(hit.get('score', 0.0)))
            for hit in hits
            if isinstance(hit, dict)
        ]

    def get(self, collection: str, point_id: str,
            timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        response = self._request('GET', f"/collections/{collection}/points/{point_id}",
                                 allow_404=True, timeout=timeout)
        if response is None:
            return None
        result = response.get('result')
        if not isinstance(result, dict):
            return None
        payload = result.get('payload')
        return payload if isinstance(payload, dict) else None


def create_store(config) -> VectorStore:
    """Build the backend named by a VectorStoreConfig."""
    if config.backend == 'qdrant':
        return QdrantVectorStore(config.url, api_key=config.api_key,
                                 timeout=config.timeout)
    if config.backend == 'local':
        return LocalVectorStore()
    raise ValueError(f"Unknown vector store backend: {config.backend}. "
                     f"Options: ['local', 'qdrant']")
