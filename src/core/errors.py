"""Error taxonomy shared by the core and its adapters.

Transport failures are not wrapped: adapters let ``OSError`` (and its
``ConnectionError`` subclasses) through unchanged so callers can tell a dead
connection apart from a backend that answered with an error.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for photoscope errors."""


class VaultError(RelayError):
    """The credential vault could not produce a profile."""


class CryptoError(VaultError):
    """Key derivation or cipher setup failed."""


class AuthenticationFailure(VaultError):
    """The vault tag did not verify: wrong password, truncated or corrupted file."""


class ProtocolError(RelayError):
    """The chat backend reported a failure."""


class RecognitionError(RelayError):
    """The text recognizer could not process an image."""


class NotFound(RelayError):
    """An entity that should exist could not be resolved."""


class RetriesExhausted(RelayError):
    """A retry loop hit its configured attempt ceiling."""

    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(f"{operation} failed after {attempts} attempts")
        self.operation = operation
        self.attempts = attempts
