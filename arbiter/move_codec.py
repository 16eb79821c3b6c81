"""
Move Codec — Turns free text from the generation service into a canonical
move token.

Pure utility functions with no dependencies on the rest of the package.
A canonical token is origin square + destination square + optional
promotion letter, e.g. ``e2e4`` or ``e7e8q``. The empty string means
"no usable suggestion"; nothing in here raises.
"""

import re
from typing import Optional


# Characters that can appear in a canonical token
MOVE_ALPHABET = frozenset('abcdefgh12345678qrbn')

MAX_TOKEN_LENGTH = 5

NO_MOVE = ''

_MOVE_SHAPE = re.compile(r'^[a-h][1-8][a-h][1-8][qrbn]?$')

DEFAULT_PROMOTION = 'q'


def normalize_move(raw: Optional[str]) -> str:
    """
    Normalize raw text into a canonical move token.

    Lowercases, drops every character outside the move alphabet, keeps at
    most five characters and accepts the result only if it has the shape
    ``<file><rank><file><rank>[promo]``. Returns ``NO_MOVE`` otherwise.

        >>> normalize_move("E2-E4!!")
        'e2e4'
        >>> normalize_move("z9z9")
        ''
    """
    if not raw or not isinstance(raw, str):
        return NO_MOVE
    cleaned = ''.join(ch for ch in raw.lower() if ch in MOVE_ALPHABET)
    cleaned = cleaned[:MAX_TOKEN_LENGTH]
    if _MOVE_SHAPE.match(cleaned):
        return cleaned
    return NO_MOVE


def is_canonical_move(token: Optional[str]) -> bool:
    """Strict check: True only if ``token`` already is a canonical move."""
    if not token or not isinstance(token, str):
        return False
    return bool(_MOVE_SHAPE.match(token.lower()))


def with_default_promotion(token: str) -> str:
    """Append the default promotion piece to a four-character token."""
    if len(token) != 4:
        return token
    return token + DEFAULT_PROMOTION

