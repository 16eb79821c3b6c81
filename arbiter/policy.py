"""
Linear Move Policy — Scores candidate moves with a dot product.

score(move) = weights · features(move)

No normalization and no softmax. When weight and feature lengths differ
the common prefix is used; a candidate with no overlap (or a non-finite
result) is unscoreable and yields None.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import chess
import numpy as np

from arbiter.features import NUM_FEATURES


# capture, centralization, promotion, castling, mover value, double push
DEFAULT_WEIGHTS = [1.0, 0.5, 0.9, 0.6, 0.05, 0.1]


@dataclass
class PolicyWeights:
    """A named, versioned weight vector."""
    policy_id: str
    version: int
    values: np.ndarray

    def copy(self) -> 'PolicyWeights':
        return PolicyWeights(self.policy_id, self.version, self.values.copy())

    def to_list(self) -> List[float]:
        return [float(v) for v in self.values]


@dataclass
class ScoredCandidate:
    move: chess.Move
    features: np.ndarray
    score: Optional[float]

    @property
    def uci(self) -> str:
        return self.move.uci()


def default_weight_vector(values: Optional[Sequence[float]] = None) -> np.ndarray:
    return np.array(values if values is not None else DEFAULT_WEIGHTS,
                    dtype=np.float64)


def weights_are_usable(values, expected_length: int = NUM_FEATURES) -> bool:
    """Load-time check: right length and every entry finite."""
    try:
        arr = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError):
        return False
    return arr.ndim == 1 and arr.shape[0] == expected_length \
        and bool(np.all(np.isfinite(arr)))


class LinearPolicy:
    """Scores feature vectors against a weight vector."""

    def score(self, weights: np.ndarray,
              features: np.ndarray) -> Optional[float]:
        n = min(len(weights), len(features))
        if n == 0:
            return None
        value = float(np.dot(weights[:n], features[:n]))
        if not np.isfinite(value):
            return None
        return value

    def score_all(self, weights: np.ndarray, moves: List[chess.Move],
                  features: List[np.ndarray]) -> List[ScoredCandidate]:
        return [
            ScoredCandidate(move, feats, self.score(weights, feats))
            for move, feats in zip(moves, features)
        ]

    @staticmethod
    def best(candidates: List[ScoredCandidate]) -> Optional[ScoredCandidate]:
        """Strictly greatest score wins; ties go to the first encountered."""
        best = None
        for cand in candidates:
            if cand.score is None:
                continue
            if best is None or cand.score > best.score:
                best = cand
        return best
