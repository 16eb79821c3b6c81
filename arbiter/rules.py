"""
Rules Engine — Thin adapter over python-chess.

The arbiter never derives legality itself; everything it knows about
which moves exist, what a move does and whether it gives check comes
through this class.

Positions arrive either as FEN text or as the piece-list payload sent by
the web board (``[{"piece": {"type", "color"}, "row", "col"}, ...]`` with
row 0 = rank 8). Both are turned into a ``chess.Board``.
"""

from typing import Any, Dict, List, Optional

import chess

from arbiter.errors import InvalidPositionError, NoLegalMovesError


PIECE_TYPES = {
    'pawn': chess.PAWN,
    'knight': chess.KNIGHT,
    'bishop': chess.BISHOP,
    'rook': chess.ROOK,
    'queen': chess.QUEEN,
    'king': chess.KING,
}

COLORS = {
    'white': chess.WHITE,
    'black': chess.BLACK,
}


def validate_piece_list(pieces: Any) -> Optional[str]:
    """
    Check a piece-list board state.

    Returns None when the state is acceptable, otherwise a human readable
    reason. Requires every entry to carry a known piece type and color,
    coordinates within 0..7 and exactly one king per side.
    """
    if not isinstance(pieces, list):
        return "Invalid JSON format: expected an array."

    kings = {chess.WHITE: 0, chess.BLACK: 0}
    for entry in pieces:
        if not isinstance(entry, dict):
            return "Invalid JSON format: expected an array of objects."
        piece = entry.get('piece')
        if not isinstance(piece, dict) or 'type' not in piece or 'color' not in piece:
            return "Missing piece data."
        if piece['type'] not in PIECE_TYPES or piece['color'] not in COLORS:
            return "Invalid piece type or color."
        row, col = entry.get('row'), entry.get('col')
        if not isinstance(row, int) or not isinstance(col, int) \
                or isinstance(row, bool) or isinstance(col, bool):
            return "Invalid board position."
        if row < 0 or row > 7 or col < 0 or col > 7:
            return "Invalid board position."
        if piece['type'] == 'king':
            kings[COLORS[piece['color']]] += 1

    if kings[chess.WHITE] != 1 or kings[chess.BLACK] != 1:
        return "Board must have exactly 1 white king and 1 black king."
    return None


def row_col_to_square(row: int, col: int) -> chess.Square:
    """Web-board coordinates (row 0 = rank 8) to a python-chess square."""
    return chess.square(col, 7 - row)


class RulesEngine:
    """Legal moves, move application and check detection."""

    def parse_position(self, fen: str) -> chess.Board:
        """Parse FEN text (or ``startpos``) into a validated board."""
        if not fen or not isinstance(fen, str):
            raise InvalidPositionError("Position is missing")
        text = fen.strip()
        if text == 'startpos':
            return chess.Board()
        try:
            board = chess.Board(text)
        except ValueError as e:
            raise InvalidPositionError(f"Invalid FEN: {e}") from e
        self._ensure_valid(board)
        return board

    def board_from_pieces(self, pieces: List[Dict[str, Any]],
                          last_move: Optional[Dict[str, str]] = None) -> chess.Board:
        """
        Build a board from the web piece list.

        Side to move is the opposite of whoever made ``last_move`` (white
        when there is none). Castling rights are granted wherever king and
        rook still stand on their home squares.
        """
        reason = validate_piece_list(pieces)
        if reason:
            raise InvalidPositionError(reason)

        board = chess.Board(None)
        for entry in pieces:
            piece = chess.Piece(PIECE_TYPES[entry['piece']['type']],
                                COLORS[entry['piece']['color']])
            board.set_piece_at(row_col_to_square(entry['row'], entry['col']), piece)

        board.turn = chess.WHITE
        if last_move and last_move.get('to'):
            try:
                moved_to = chess.parse_square(last_move['to'].lower())
            except ValueError as e:
                raise InvalidPositionError(
                    f"Invalid last move square: {last_move['to']}") from e
            mover = board.piece_at(moved_to)
            if mover is not None:
                board.turn = not mover.color

        board.castling_rights = chess.BB_CORNERS
        board.castling_rights = board.clean_castling_rights()
        self._ensure_valid(board)
        return board

    def _ensure_valid(self, board: chess.Board):
        status = board.status()
        if status != chess.STATUS_VALID:
            raise InvalidPositionError(f"Impossible position (status {int(status)})")

    def legal_moves(self, board: chess.Board) -> List[chess.Move]:
        """Every legal move, in python-chess enumeration order."""
        moves = list(board.legal_moves)
        if not moves:
            raise NoLegalMovesError(f"No legal moves in position {board.fen()}")
        return moves

    def apply(self, board: chess.Board, move: chess.Move) -> chess.Board:
        """Return the position after ``move``; ``board`` is left untouched."""
        after = board.copy(stack=False)
        after.push(move)
        return after

    def opponent_king_attacked(self, board: chess.Board) -> bool:
        """After a move has been applied, is the side now to move in check?"""
        return board.is_check()

    def gives_check(self, board: chess.Board, move: chess.Move) -> bool:
        return self.opponent_king_attacked(self.apply(board, move))

    def piece_at(self, board: chess.Board,
                 square: chess.Square) -> Optional[chess.Piece]:
        return board.piece_at(square)
