"""
Bearer-token authentication.

Token verification itself belongs to the identity provider; the service
only needs something that maps a token to verified claims. A verifier is
any object with ``verify(token) -> dict`` that raises AuthError on
rejection.
"""

import hmac
import logging
from typing import Dict, Iterable, Optional

from arbiter.errors import AuthError

logger = logging.getLogger(__name__)

ANONYMOUS_CLAIMS = {'sub': 'anonymous'}


def parse_bearer(header: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not header or not header.startswith("Bearer "):
        raise AuthError("Missing or invalid Authorization header")
    token = header[len("Bearer "):].strip()
    if not token:
        raise AuthError("Missing or invalid Authorization header")
    return token


class StaticTokenVerifier:
    """Accepts a fixed set of shared tokens."""

    def __init__(self, tokens: Iterable[str]):
        self.tokens = [t for t in tokens if t]

    def verify(self, token: str) -> Dict[str, str]:
        for i, known in enumerate(self.tokens):
            if hmac.compare_digest(token.encode(), known.encode()):
                return {'sub': f"token-{i}"}
        raise AuthError("Invalid token")


class Authenticator:
    """Turns an Authorization header into claims, or raises AuthError."""

    def __init__(self, verifier=None, enabled: bool = True):
        if enabled and verifier is None:
            raise ValueError("Authentication is enabled but no verifier was given")
        self.verifier = verifier
        self.enabled = enabled

    def claims(self, header: Optional[str]) -> Dict[str, str]:
        if not self.enabled:
            return dict(ANONYMOUS_CLAIMS)
        token = parse_bearer(header)
        try:
            return self.verifier.verify(token)
        except AuthError as e:
            logger.warning(f"Rejected bearer token: {e}")
            raise
