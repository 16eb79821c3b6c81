"""
Online Learner — Adjusts the policy weights after every decision.

    w <- w + lr * features(selected)
    w <- w - (lr / 2) * features(m)    for the first N other legal moves

The weights themselves are owned by a WeightKeeper: one per policy id,
lazily loaded from the vector store, mutated only inside a transaction
that holds the policy's lock, and persisted best-effort after each
commit. Every scored candidate is also appended to the training log.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import List, Optional, Sequence

import numpy as np

from arbiter.errors import SchemaError, StoreError
from arbiter.features import NUM_FEATURES
from arbiter.policy import (
    PolicyWeights, ScoredCandidate, default_weight_vector, weights_are_usable
)
from services.schemas import (
    TrainingExampleDocument, WeightsDocument, weights_point_id
)
from services.storage import StoreResult, VectorStore, best_effort

logger = logging.getLogger(__name__)


class OnlineLearner:
    """Perceptron-style update toward the winner and away from a few losers."""

    def __init__(self, learning_rate: float = 0.01, negative_samples: int = 2):
        self.learning_rate = learning_rate
        self.negative_samples = negative_samples

    @property
    def negative_rate(self) -> float:
        return self.learning_rate / 2

    def negatives(self, selected: ScoredCandidate,
                  candidates: List[ScoredCandidate]) -> List[ScoredCandidate]:
        """First N non-selected candidates in enumeration order."""
        others = [c for c in candidates if c.move != selected.move]
        return others[:self.negative_samples]

    def ascend(self, weights: np.ndarray, features: np.ndarray) -> np.ndarray:
        updated = weights.copy()
        n = min(len(updated), len(features))
        updated[:n] += self.learning_rate * features[:n]
        return updated

    def penalize(self, weights: np.ndarray, features: np.ndarray) -> np.ndarray:
        updated = weights.copy()
        n = min(len(updated), len(features))
        updated[:n] -= self.negative_rate * features[:n]
        return updated

    def update(self, weights: np.ndarray, selected: ScoredCandidate,
               candidates: List[ScoredCandidate]) -> np.ndarray:
        """Return the updated vector; ``weights`` itself is not modified."""
        updated = self.ascend(weights, selected.features)
        for loser in self.negatives(selected, candidates):
            updated = self.penalize(updated, loser.features)
        return updated


class WeightsTransaction:
    """Exclusive view of a policy's weights for one decision."""

    def __init__(self, keeper: 'WeightKeeper', weights: PolicyWeights):
        self._keeper = keeper
        self.weights = weights
        self.result: Optional[StoreResult] = None

    async def commit(self, values: np.ndarray,
                     timeout: Optional[float] = None) -> StoreResult:
        self.result = await self._keeper._commit(values, timeout)
        self.weights = self._keeper.current
        return self.result


class WeightKeeper:
    """
    Sole owner of one policy's weight vector.

    Decisions that read, score, update and persist run inside
    ``transaction()``, which holds the per-policy lock for the duration,
    so concurrent requests in this process never lose an update.
    """

    def __init__(self, store: VectorStore, collection: str,
                 policy_id: str = "default",
                 default_weights: Optional[Sequence[float]] = None,
                 expected_length: int = NUM_FEATURES):
        self.store = store
        self.collection = collection
        self.policy_id = policy_id
        self.default_values = default_weight_vector(default_weights)
        self.expected_length = expected_length
        if not weights_are_usable(self.default_values, expected_length):
            raise ValueError(
                f"Default weights must be {expected_length} finite numbers")

        self._lock = asyncio.Lock()
        self._weights: Optional[PolicyWeights] = None
        self._loaded = False
        self._load_error: Optional[str] = None

    @property
    def current(self) -> PolicyWeights:
        if self._weights is None:
            return self._defaults()
        return self._weights.copy()

    def _defaults(self, version: int = 0) -> PolicyWeights:
        return PolicyWeights(self.policy_id, version, self.default_values.copy())

    async def _load(self, timeout: Optional[float] = None):
        if self._loaded:
            return
        try:
            payload = await self.store.aget(
                self.collection, weights_point_id(self.policy_id), timeout=timeout)
        except StoreError as e:
            # Stored weights may still exist; score with the in-memory copy
            # but never write over them until a load succeeds
            logger.warning(f"Loading weights for '{self.policy_id}' failed: {e}; "
                           f"using in-memory weights, not persisting")
            self._load_error = str(e)
            if self._weights is None:
                self._weights = self._defaults()
            return

        self._loaded = True
        self._load_error = None
        if payload is None:
            logger.info(f"No stored weights for '{self.policy_id}'; using defaults")
            self._weights = self._defaults()
            return

        try:
            doc = WeightsDocument.from_dict(payload)
        except SchemaError as e:
            logger.warning(f"Stored weights for '{self.policy_id}' are malformed "
                           f"({e}); reverting to defaults")
            self._weights = self._defaults()
            return

        if not weights_are_usable(doc.weights, self.expected_length):
            logger.warning(
                f"Stored weights for '{self.policy_id}' have length "
                f"{len(doc.weights)}, expected {self.expected_length}; "
                f"reverting to defaults")
            self._weights = self._defaults(doc.version)
            return

        self._weights = PolicyWeights(self.policy_id, doc.version,
                                      np.array(doc.weights, dtype=np.float64))
        logger.info(f"Loaded weights for '{self.policy_id}' v{doc.version}")

    @asynccontextmanager
    async def transaction(self, timeout: Optional[float] = None):
        async with self._lock:
            await self._load(timeout)
            yield WeightsTransaction(self, self.current)

    async def _commit(self, values: np.ndarray,
                      timeout: Optional[float] = None) -> StoreResult:
        version = (self._weights.version if self._weights else 0) + 1
        self._weights = PolicyWeights(self.policy_id, version,
                                      np.asarray(values, dtype=np.float64).copy())
        if not self._loaded:
            return StoreResult.failure(
                f"stored weights not loaded ({self._load_error}); not persisted")
        return await self._persist(timeout)

    async def _persist(self, timeout: Optional[float] = None) -> StoreResult:
        doc = WeightsDocument(self.policy_id, self._weights.version,
                              self._weights.to_list(), time.time())
        return await best_effort(
            f"Persisting weights for '{self.policy_id}'",
            self.store.aupsert(self.collection, doc.point_id, doc.to_dict(),
                               doc.weights, timeout=timeout))

    async def snapshot(self, timeout: Optional[float] = None) -> PolicyWeights:
        async with self._lock:
            await self._load(timeout)
            return self.current

    async def reset(self, timeout: Optional[float] = None) -> StoreResult:
        """Revert to the default vector (as a new version) and persist it."""
        async with self._lock:
            await self._load(timeout)
            return await self._commit(self.default_values, timeout)


class TrainingLog:
    """Append-only record of every scored candidate."""

    def __init__(self, store: VectorStore, collection: str):
        self.store = store
        self.collection = collection

    async def record(self, policy_id: str, position: str,
                     candidates: List[ScoredCandidate],
                     selected: ScoredCandidate,
                     suggested: Optional[ScoredCandidate] = None,
                     timeout: Optional[float] = None) -> StoreResult:
        now = time.time()
        docs = [
            TrainingExampleDocument(
                policy_id=policy_id,
                position=position,
                move=cand.uci,
                features=[float(v) for v in cand.features],
                score=cand.score,
                selected=cand.move == selected.move,
                suggested=suggested is not None and cand.move == suggested.move,
                timestamp=now,
            )
            for cand in candidates
        ]
        points = [(doc.id, doc.to_dict(), doc.features) for doc in docs]
        return await best_effort(
            "Training log", self.store.aupsert_many(self.collection, points,
                                                    timeout=timeout))
