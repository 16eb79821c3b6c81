"""
Move Arbiter — Legal, validated chess moves from free-text AI suggestions.

A remote language model suggests a move in whatever words it likes; the
arbiter normalizes the text, checks it against the legal-move set, scores
every legal move with a small linear model and picks one. The model keeps
learning from each decision without any offline retraining:

- Move Codec: free text → canonical token (or nothing)
- Feature Extractor: (position, move) → 6 numbers
- Linear Policy: weights · features
- Fallback Selector: promotion > capture > check > first move
- Online Learner: nudge toward the winner, away from a few losers
"""

from arbiter.errors import (
    ArbiterError, InvalidPositionError, NoLegalMovesError, SchemaError,
    ServiceError, StoreError, AuthError
)
from arbiter.move_codec import normalize_move, is_canonical_move
from arbiter.rules import RulesEngine, validate_piece_list
from arbiter.features import MoveFeatureExtractor, NUM_FEATURES
from arbiter.policy import LinearPolicy, PolicyWeights, ScoredCandidate
from arbiter.fallback import FallbackSelector
from arbiter.learner import OnlineLearner, WeightKeeper, TrainingLog
from arbiter.deadline import Deadline
from arbiter.arbiter import MoveArbiter, MoveDecision, ValidationState

__all__ = [
    "ArbiterError",
    "InvalidPositionError",
    "NoLegalMovesError",
    "SchemaError",
    "ServiceError",
    "StoreError",
    "AuthError",
    "normalize_move",
    "is_canonical_move",
    "RulesEngine",
    "validate_piece_list",
    "MoveFeatureExtractor",
    "NUM_FEATURES",
    "LinearPolicy",
    "PolicyWeights",
    "ScoredCandidate",
    "FallbackSelector",
    "OnlineLearner",
    "WeightKeeper",
    "TrainingLog",
    "Deadline",
    "MoveArbiter",
    "MoveDecision",
    "ValidationState",
]
