"""Tests for the linear policy and the rule-ordered fallback."""

import sys
import os
import pytest
import chess
import numpy as np

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arbiter.fallback import FallbackSelector
from arbiter.policy import (
    DEFAULT_WEIGHTS, LinearPolicy, PolicyWeights, ScoredCandidate,
    default_weight_vector, weights_are_usable
)


def candidate(uci, score, features=None):
    feats = np.zeros(6) if features is None else np.asarray(features, dtype=float)
    return ScoredCandidate(chess.Move.from_uci(uci), feats, score)


# ── Scoring ───────────────────────────────────────────────────────────────

class TestLinearPolicy:
    def setup_method(self):
        self.policy = LinearPolicy()

    def test_dot_product(self):
        weights = np.array([1.0, 2.0, 0.0, 0.0, 0.0, 0.5])
        features = np.array([3.0, 0.5, 1.0, 1.0, 1.0, 2.0])
        assert self.policy.score(weights, features) == pytest.approx(5.0)

    def test_shorter_weights_use_common_prefix(self):
        weights = np.array([1.0, 1.0, 1.0])
        features = np.array([1.0, 2.0, 3.0, 100.0, 100.0, 100.0])
        assert self.policy.score(weights, features) == pytest.approx(6.0)

    def test_no_overlap_is_unscoreable(self):
        assert self.policy.score(np.array([]), np.ones(6)) is None

    def test_non_finite_is_unscoreable(self):
        weights = np.array([np.inf, 0, 0, 0, 0, 0])
        features = np.array([0.0, 1, 0, 0, 0, 0])
        # inf * 0 is nan
        assert self.policy.score(weights, features) is None

    def test_score_all_keeps_order(self):
        board = chess.Board()
        moves = list(board.legal_moves)[:3]
        feats = [np.full(6, i, dtype=float) for i in range(3)]
        scored = self.policy.score_all(np.ones(6), moves, feats)
        assert [c.move for c in scored] == moves
        assert [c.score for c in scored] == [0.0, 6.0, 12.0]

    def test_best_picks_highest(self):
        cands = [candidate("a2a3", 0.1), candidate("b2b3", 0.7), candidate("c2c3", 0.3)]
        assert LinearPolicy.best(cands).uci == "b2b3"

    def test_best_tie_goes_to_first(self):
        cands = [candidate("a2a3", 0.5), candidate("b2b3", 0.5)]
        assert LinearPolicy.best(cands).uci == "a2a3"

    def test_best_skips_unscoreable(self):
        cands = [candidate("a2a3", None), candidate("b2b3", -1.0)]
        assert LinearPolicy.best(cands).uci == "b2b3"

    def test_best_none_when_nothing_scoreable(self):
        assert LinearPolicy.best([candidate("a2a3", None)]) is None
        assert LinearPolicy.best([]) is None


class TestWeights:
    def test_default_vector(self):
        values = default_weight_vector()
        assert values.tolist() == DEFAULT_WEIGHTS

    def test_default_vector_is_a_copy(self):
        values = default_weight_vector()
        values[0] = 42.0
        assert DEFAULT_WEIGHTS[0] == 1.0

    def test_usable(self):
        assert weights_are_usable(DEFAULT_WEIGHTS)

    def test_wrong_length_unusable(self):
        assert not weights_are_usable([1.0, 2.0, 3.0])

    def test_non_finite_unusable(self):
        assert not weights_are_usable([1.0, 0.5, float('nan'), 0.6, 0.05, 0.1])

    def test_non_numeric_unusable(self):
        assert not weights_are_usable(["a", "b", "c", "d", "e", "f"])

    def test_policy_weights_copy_is_independent(self):
        weights = PolicyWeights("p", 3, np.ones(6))
        copy = weights.copy()
        copy.values[0] = 0.0
        assert weights.values[0] == 1.0
        assert copy.version == 3


# ── Fallback ──────────────────────────────────────────────────────────────

class TestFallbackSelector:
    def setup_method(self):
        self.selector = FallbackSelector()

    def choose(self, fen):
        board = chess.Board(fen)
        moves = list(board.legal_moves)
        return moves, self.selector.choose(board, moves)

    def test_promotion_first(self):
        """Promotion beats an available capture."""
        moves, chosen = self.choose("3r4/4P3/8/8/8/8/k7/4K3 w - - 0 1")
        assert chosen.promotion is not None
        assert chosen == next(m for m in moves if m.promotion)

    def test_capture_second(self):
        moves, chosen = self.choose(
            "rnbqkbnr/ppp1pppp/8/3p4/4P3/8/PPPP1PPP/RNBQKBNR w KQkq d6 0 2")
        assert chosen.uci() == "e4d5"

    def test_check_third(self):
        moves, chosen = self.choose("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
        assert chosen.uci() == "a1a8"

    def test_first_move_last(self):
        moves, chosen = self.choose(chess.STARTING_FEN)
        assert chosen == moves[0]

    def test_no_moves(self):
        assert self.selector.choose(chess.Board(), []) is None

    def test_result_is_always_in_the_list(self):
        board = chess.Board()
        for uci in ("e2e4", "d7d5", "e4d5", "d8d5", "b1c3"):
            board.push_uci(uci)
            moves = list(board.legal_moves)
            assert self.selector.choose(board, moves) in moves
