"""Tests for the rules engine and the piece-list board format."""

import sys
import os
import pytest
import chess

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arbiter.errors import InvalidPositionError, NoLegalMovesError
from arbiter.rules import RulesEngine, row_col_to_square, validate_piece_list


FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


def pieces_from_board(board):
    """Piece-list payload the web board would send for ``board``."""
    return [
        {
            'piece': {'type': chess.piece_name(piece.piece_type),
                      'color': 'white' if piece.color == chess.WHITE else 'black'},
            'row': 7 - chess.square_rank(square),
            'col': chess.square_file(square),
        }
        for square, piece in board.piece_map().items()
    ]


def kings_only():
    return [
        {'piece': {'type': 'king', 'color': 'white'}, 'row': 7, 'col': 4},
        {'piece': {'type': 'king', 'color': 'black'}, 'row': 0, 'col': 4},
    ]


# ── Positions ─────────────────────────────────────────────────────────────

class TestParsePosition:
    def setup_method(self):
        self.rules = RulesEngine()

    def test_startpos_keyword(self):
        board = self.rules.parse_position("startpos")
        assert board.fen() == chess.Board().fen()

    def test_fen(self):
        board = self.rules.parse_position(FOOLS_MATE)
        assert board.turn == chess.WHITE

    def test_garbage_rejected(self):
        with pytest.raises(InvalidPositionError):
            self.rules.parse_position("not a fen")

    def test_missing_rejected(self):
        with pytest.raises(InvalidPositionError):
            self.rules.parse_position("")

    def test_impossible_position_rejected(self):
        """Syntactically fine but no kings on the board."""
        with pytest.raises(InvalidPositionError):
            self.rules.parse_position("8/8/8/8/8/8/8/8 w - - 0 1")

    def test_invalid_position_is_value_error(self):
        """Callers that only know ValueError still catch it."""
        with pytest.raises(ValueError):
            self.rules.parse_position("nonsense")


class TestMoves:
    def setup_method(self):
        self.rules = RulesEngine()

    def test_start_has_twenty_moves(self):
        moves = self.rules.legal_moves(chess.Board())
        assert len(moves) == 20

    def test_enumeration_order_is_stable(self):
        board = chess.Board()
        assert self.rules.legal_moves(board) == self.rules.legal_moves(board)

    def test_checkmate_has_no_moves(self):
        board = chess.Board(FOOLS_MATE)
        with pytest.raises(NoLegalMovesError):
            self.rules.legal_moves(board)

    def test_apply_leaves_board_untouched(self):
        board = chess.Board()
        after = self.rules.apply(board, chess.Move.from_uci("e2e4"))
        assert board.fen() == chess.Board().fen()
        assert after.piece_at(chess.E4) == chess.Piece(chess.PAWN, chess.WHITE)

    def test_gives_check(self):
        board = chess.Board("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
        assert self.rules.gives_check(board, chess.Move.from_uci("a1a8"))
        assert not self.rules.gives_check(board, chess.Move.from_uci("a1a2"))


# ── Piece list ────────────────────────────────────────────────────────────

class TestPieceList:
    def setup_method(self):
        self.rules = RulesEngine()

    def test_row_col_mapping(self):
        """Row 0 is the eighth rank."""
        assert row_col_to_square(0, 0) == chess.A8
        assert row_col_to_square(7, 7) == chess.H1
        assert row_col_to_square(6, 4) == chess.E2

    def test_start_position_round_trip(self):
        board = self.rules.board_from_pieces(pieces_from_board(chess.Board()))
        assert board.board_fen() == chess.Board().board_fen()
        assert board.turn == chess.WHITE

    def test_castling_from_home_squares(self):
        board = self.rules.board_from_pieces(pieces_from_board(chess.Board()))
        assert board.has_kingside_castling_rights(chess.WHITE)
        assert board.has_queenside_castling_rights(chess.BLACK)

    def test_no_castling_when_king_moved(self):
        moved = chess.Board("r3k2r/8/8/8/8/8/8/R4K1R w - - 0 1")
        board = self.rules.board_from_pieces(pieces_from_board(moved))
        assert not board.has_castling_rights(chess.WHITE)
        assert board.has_castling_rights(chess.BLACK)

    def test_side_to_move_follows_last_move(self):
        played = chess.Board()
        played.push_uci("e2e4")
        board = self.rules.board_from_pieces(pieces_from_board(played),
                                             {'from': 'e2', 'to': 'e4'})
        assert board.turn == chess.BLACK

    def test_bad_last_move_square(self):
        with pytest.raises(InvalidPositionError):
            self.rules.board_from_pieces(kings_only(), {'from': 'e2', 'to': 'z9'})

    def test_adjacent_kings_rejected(self):
        pieces = [
            {'piece': {'type': 'king', 'color': 'white'}, 'row': 7, 'col': 4},
            {'piece': {'type': 'king', 'color': 'black'}, 'row': 6, 'col': 4},
        ]
        with pytest.raises(InvalidPositionError):
            self.rules.board_from_pieces(pieces)

    def test_invalid_list_rejected_with_reason(self):
        with pytest.raises(InvalidPositionError, match="exactly 1 white king"):
            self.rules.board_from_pieces(kings_only()[:1])


class TestValidatePieceList:
    def test_valid(self):
        assert validate_piece_list(kings_only()) is None

    def test_not_a_list(self):
        assert validate_piece_list({'piece': 1}) == "Invalid JSON format: expected an array."

    def test_missing_piece(self):
        state = kings_only() + [{'row': 3, 'col': 3}]
        assert validate_piece_list(state) == "Missing piece data."

    def test_unknown_type(self):
        state = kings_only() + [{'piece': {'type': 'wizard', 'color': 'white'},
                                 'row': 3, 'col': 3}]
        assert validate_piece_list(state) == "Invalid piece type or color."

    def test_off_board(self):
        state = kings_only() + [{'piece': {'type': 'pawn', 'color': 'white'},
                                 'row': 8, 'col': 0}]
        assert validate_piece_list(state) == "Invalid board position."

    def test_two_white_kings(self):
        state = kings_only() + [{'piece': {'type': 'king', 'color': 'white'},
                                 'row': 4, 'col': 0}]
        assert validate_piece_list(state) == \
            "Board must have exactly 1 white king and 1 black king."

    def test_no_kings(self):
        assert validate_piece_list([]) == \
            "Board must have exactly 1 white king and 1 black king."
