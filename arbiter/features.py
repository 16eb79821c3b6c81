"""
Move Feature Extractor — Converts a (position, candidate move) pair into
the feature vector scored by the linear policy.

Produces a 6-element vector:
- Capture value (0)         material of the piece on the destination square
- Centralization (1)        0..1, closeness of the destination to the centre
- Promotion (2)             1.0 if the move promotes
- Castling (3)              1.0 if a king moves two files
- Mover value (4)           material of the moving piece
- Double pawn push (5)      1.0 if a pawn leaves its start rank by two

Every feature is a pure function of the board and the move.
"""

import math
from typing import List

import chess
import numpy as np


# Standard piece values (in pawns). Kings carry no trade value.
PIECE_VALUES = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 0,
}

FEATURE_NAMES = [
    'capture_value',
    'centralization',
    'promotion',
    'castling',
    'mover_value',
    'double_pawn_push',
]

NUM_FEATURES = len(FEATURE_NAMES)

BOARD_CENTER = (3.5, 3.5)
MAX_CENTER_DISTANCE = math.hypot(3.5, 3.5)

# Ranks (0-based) pawns start from
PAWN_START_RANK = {chess.WHITE: 1, chess.BLACK: 6}


def piece_value(piece) -> float:
    if piece is None:
        return 0.0
    return float(PIECE_VALUES.get(piece.piece_type, 0))


def centralization(square: chess.Square) -> float:
    """1.0 at the centre of the board, falling to ~0 in the corners."""
    f = chess.square_file(square)
    r = chess.square_rank(square)
    dist = math.hypot(f - BOARD_CENTER[0], r - BOARD_CENTER[1])
    return 1.0 - min(dist / MAX_CENTER_DISTANCE, 1.0)


class MoveFeatureExtractor:
    """Encodes candidate moves as fixed-length numeric vectors."""

    num_features = NUM_FEATURES

    def encode_move(self, board: chess.Board, move: chess.Move) -> np.ndarray:
        """Encode one candidate move played from ``board``."""
        mover = board.piece_at(move.from_square)
        captured = board.piece_at(move.to_square)

        return np.array([
            piece_value(captured),
            centralization(move.to_square),
            1.0 if move.promotion else 0.0,
            self._castling_flag(mover, move),
            piece_value(mover),
            self._double_push_flag(mover, move),
        ], dtype=np.float64)

    def encode_moves(self, board: chess.Board,
                     moves: List[chess.Move]) -> List[np.ndarray]:
        return [self.encode_move(board, m) for m in moves]

    def _castling_flag(self, mover, move: chess.Move) -> float:
        if mover is None or mover.piece_type != chess.KING:
            return 0.0
        shift = abs(chess.square_file(move.to_square) -
                    chess.square_file(move.from_square))
        return 1.0 if shift == 2 else 0.0

    def _double_push_flag(self, mover, move: chess.Move) -> float:
        if mover is None or mover.piece_type != chess.PAWN:
            return 0.0
        from_rank = chess.square_rank(move.from_square)
        to_rank = chess.square_rank(move.to_square)
        if from_rank != PAWN_START_RANK[mover.color]:
            return 0.0
        return 1.0 if abs(to_rank - from_rank) == 2 else 0.0
