"""Tests for turning free text into canonical move tokens."""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arbiter.move_codec import (
    NO_MOVE, normalize_move, is_canonical_move, with_default_promotion
)


# ── Normalization ─────────────────────────────────────────────────────────

class TestNormalizeMove:
    def test_decorated_uppercase_move(self):
        """Case and punctuation are stripped away."""
        assert normalize_move("E2-E4!!") == "e2e4"

    def test_plain_move_unchanged(self):
        assert normalize_move("g1f3") == "g1f3"

    def test_promotion_letter_kept(self):
        assert normalize_move("e7e8Q") == "e7e8q"

    def test_four_character_promotion_push_left_alone(self):
        """Completing a promotion is the arbiter's job, not the codec's."""
        assert normalize_move("e7e8") == "e7e8"

    def test_off_board_squares_rejected(self):
        assert normalize_move("z9z9") == NO_MOVE

    def test_empty_and_none(self):
        assert normalize_move("") == NO_MOVE
        assert normalize_move(None) == NO_MOVE

    def test_non_string_input(self):
        assert normalize_move(1234) == NO_MOVE

    def test_san_is_not_understood(self):
        """Algebraic notation does not have the square-to-square shape."""
        assert normalize_move("Nf3") == NO_MOVE
        assert normalize_move("O-O") == NO_MOVE

    def test_truncated_to_five_characters(self):
        """Extra squares after the move spoil the promotion slot."""
        assert normalize_move("e2e4e5") == NO_MOVE
        assert normalize_move("a7a8qq") == "a7a8q"

    def test_surrounding_prose_pollutes_token(self):
        """Alphabet letters in leading prose end up in the token."""
        assert normalize_move("I play e2e4") == NO_MOVE

    def test_whitespace_and_newlines(self):
        assert normalize_move("  d2 d4\n") == "d2d4"

    def test_output_always_canonical_or_empty(self):
        """Whatever comes in, the result is a canonical token or empty."""
        samples = ["e2e4", "E7E8N", "xyz", "h7h8=Q+", "a1", "1234", "!!!",
                   "b1c3 is best", "Qxd5", "c7c8r"]
        for raw in samples:
            token = normalize_move(raw)
            assert token == NO_MOVE or is_canonical_move(token), raw

    def test_normalizing_is_idempotent(self):
        for raw in ("E2-E4!!", "e7e8Q", "z9z9", "h7h8=N", ""):
            once = normalize_move(raw)
            assert normalize_move(once) == once


# ── Strict checks ─────────────────────────────────────────────────────────

class TestCanonicalCheck:
    def test_canonical_tokens(self):
        assert is_canonical_move("e2e4")
        assert is_canonical_move("e7e8q")
        assert is_canonical_move("E2E4")

    def test_rejects_decorated_text(self):
        """The strict check does not strip anything."""
        assert not is_canonical_move("e2-e4")
        assert not is_canonical_move("e2e4!")

    def test_rejects_bad_promotion_piece(self):
        assert not is_canonical_move("e7e8k")

    def test_rejects_empty(self):
        assert not is_canonical_move("")
        assert not is_canonical_move(None)


class TestDefaultPromotion:
    def test_appends_queen(self):
        assert with_default_promotion("e7e8") == "e7e8q"

    def test_leaves_full_token(self):
        assert with_default_promotion("e7e8n") == "e7e8n"

