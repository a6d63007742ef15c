"""statementbot: log into a bank site and download statements.

The reusable pieces live here: an encrypted credential vault
(:class:`CredentialStore`) and a controller for one browser page
(:class:`BrowserSession`).
"""

__version__ = "0.1.0"

from .browser import BrowserSession, ElementText
from .crypto import Crypter
from .errors import (
    BadVaultError,
    DecryptionError,
    MatchCountError,
    NoInputError,
    SessionClosedError,
    StatementBotError,
    StateError,
)
from .store import CredentialStore

__all__ = [
    "BadVaultError",
    "BrowserSession",
    "CredentialStore",
    "Crypter",
    "DecryptionError",
    "ElementText",
    "MatchCountError",
    "NoInputError",
    "SessionClosedError",
    "StateError",
    "StatementBotError",
]
