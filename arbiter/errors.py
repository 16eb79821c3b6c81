"""
Error types shared by the arbiter core and the service layer.

Only position problems and collaborator failures on essential paths reach
the caller. Everything else degrades locally.
"""


class ArbiterError(Exception):
    """Base class for all arbiter errors."""


class InvalidPositionError(ArbiterError, ValueError):
    """The supplied position cannot be parsed or is not a playable board."""


class NoLegalMovesError(ArbiterError):
    """The rules engine produced an empty legal-move set."""


class SchemaError(ArbiterError, ValueError):
    """A stored document failed validation at the store boundary."""


class ServiceError(ArbiterError):
    """A remote collaborator (generation, embedding, store) failed."""


class StoreError(ServiceError):
    """The vector store rejected or failed a request."""


class AuthError(ArbiterError):
    """A bearer token was missing or could not be verified."""
