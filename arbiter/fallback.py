"""
Fallback Selector — Rule-ordered move choice that ignores the policy.

Used when scoring cannot produce a result. Priority, first match wins and
order within a class follows legal-move enumeration:

1. a promotion
2. a capture (destination occupied before the move)
3. a checking move
4. the first legal move
"""

from typing import List, Optional

import chess

from arbiter.rules import RulesEngine


class FallbackSelector:
    """Deterministic move choice independent of any learned weights."""

    def __init__(self, rules: RulesEngine = None):
        self.rules = rules or RulesEngine()

    def choose(self, board: chess.Board,
               moves: List[chess.Move]) -> Optional[chess.Move]:
        if not moves:
            return None

        for move in moves:
            if move.promotion:
                return move

        for move in moves:
            if self.rules.piece_at(board, move.to_square) is not None:
                return move

        for move in moves:
            if self.rules.gives_check(board, move):
                return move

        return moves[0]
