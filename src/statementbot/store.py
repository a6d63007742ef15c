"""Encrypted credential vault backed by a SQLite file.

File layout
-----------
PRAGMA application_id   0x62D601B9, stamped when the file is created
PRAGMA user_version     1 (the only known schema version)

credentials(id, domain, data)   append-only; data is an encrypted envelope
settings(id, key, value)        holds the base64 "salt" used for key derivation
"""

from __future__ import annotations

import base64
import logging
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Union

from .crypto import Crypter, generate_salt
from .errors import BadVaultError, StateError

logger = logging.getLogger(__name__)

APPLICATION_ID = 0x62D601B9
SCHEMA_VERSION = 1


# ---------------------------------------------------------------------------
# Lifecycle states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _New:
    name: ClassVar[str] = "new"


@dataclass(frozen=True)
class _Opened:
    name: ClassVar[str] = "opened"
    db: sqlite3.Connection
    crypter: Crypter


@dataclass(frozen=True)
class _Closed:
    name: ClassVar[str] = "closed"


_State = Union[_New, _Opened, _Closed]


class CredentialStore:
    """Per-domain credential storage in an encrypted SQLite vault."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._state: _State = _New()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        return self._state.name

    def exists(self) -> bool:
        return self.path.exists()

    def open(self, password: str) -> None:
        """Open (creating if necessary) the vault and derive its key from *password*."""
        if not isinstance(self._state, _New):
            raise StateError("open()", _New.name, self._state.name)

        created = not self.path.exists()
        if created:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch()
            # Restrict permissions: owner read/write only
            os.chmod(self.path, 0o600)

        db = sqlite3.connect(self.path)
        try:
            _initialize(db)
            salt = _load_salt(db)
            crypter = Crypter.from_password_and_salt(password, salt)
        except sqlite3.DatabaseError as exc:
            db.close()
            raise BadVaultError(f"Not a valid statementbot vault file: {exc}") from exc
        except BaseException:
            db.close()
            raise

        if created:
            logger.info("Created credential vault %s", self.path)
        else:
            logger.info("Opened credential vault %s", self.path)

        self._state = _Opened(db=db, crypter=crypter)

    def insert_credentials_for_domain(self, domain: str, credentials: Any) -> None:
        """Append *credentials* for *domain*; existing entries are never replaced."""
        opened = self._require_opened("insert_credentials_for_domain()")
        data = opened.crypter.encrypt(credentials)
        with opened.db:
            opened.db.execute(
                "INSERT INTO credentials (domain, data) VALUES (?, ?)", (domain, data)
            )

    def get_credentials_for_domain(self, domain: str) -> list[Any]:
        """Return every entry stored for *domain*, decrypted, oldest first."""
        opened = self._require_opened("get_credentials_for_domain()")
        rows = opened.db.execute(
            "SELECT data FROM credentials WHERE domain = ? ORDER BY id", (domain,)
        ).fetchall()
        return [opened.crypter.decrypt(data) for (data,) in rows if isinstance(data, str)]

    def verify_password(self) -> bool:
        """Check the open key against the oldest stored entry.

        Raises :class:`DecryptionError` if that entry cannot be decrypted.
        Returns ``False`` when the vault holds no entries yet, so there is
        nothing to check against.
        """
        opened = self._require_opened("verify_password()")
        row = opened.db.execute(
            "SELECT data FROM credentials WHERE data IS NOT NULL ORDER BY id LIMIT 1"
        ).fetchone()
        if row is None:
            return False
        opened.crypter.decrypt(row[0])
        return True

    def close(self) -> None:
        """Release the database; safe to call in any state, any number of times."""
        old_state = self._state
        self._state = _Closed()
        if isinstance(old_state, _Opened):
            old_state.db.close()

    def __enter__(self) -> CredentialStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_opened(self, operation: str) -> _Opened:
        if not isinstance(self._state, _Opened):
            raise StateError(operation, _Opened.name, self._state.name)
        return self._state


# ---------------------------------------------------------------------------
# Schema helpers
# ---------------------------------------------------------------------------


def _initialize(db: sqlite3.Connection) -> None:
    _verify_or_set_application_id(db)
    db.execute("PRAGMA journal_mode = WAL")
    db.execute("PRAGMA foreign_keys = ON")
    _migrate(db)


def _pragma_int(db: sqlite3.Connection, pragma: str) -> int:
    row = db.execute(f"PRAGMA {pragma}").fetchone()
    return int(row[0]) if row and row[0] else 0


def _verify_or_set_application_id(db: sqlite3.Connection) -> None:
    found = _pragma_int(db, "application_id")
    if not found:
        db.execute(f"PRAGMA application_id = {APPLICATION_ID}")
    elif found != APPLICATION_ID:
        raise BadVaultError(
            f'incorrect "application_id" found in sqlite database: {found} '
            f"(expected: {APPLICATION_ID})"
        )


def _migrate(db: sqlite3.Connection) -> None:
    version = _pragma_int(db, "user_version")
    if not version:
        _create_tables(db)
        db.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    elif version != SCHEMA_VERSION:
        raise BadVaultError(
            f'unrecognized "user_version": {version} '
            f"(the only known value is {SCHEMA_VERSION})"
        )


def _create_tables(db: sqlite3.Connection) -> None:
    salt = base64.b64encode(generate_salt()).decode("ascii")
    with db:
        db.execute(
            """
            CREATE TABLE credentials (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                domain TEXT NOT NULL,
                data TEXT
            )
            """
        )
        db.execute(
            """
            CREATE TABLE settings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                key TEXT UNIQUE NOT NULL,
                value TEXT
            )
            """
        )
        db.execute("INSERT INTO settings (key, value) VALUES ('salt', ?)", (salt,))


def _load_salt(db: sqlite3.Connection) -> bytes:
    row = db.execute("SELECT value FROM settings WHERE key = 'salt'").fetchone()
    if row is None or not isinstance(row[0], str):
        raise BadVaultError(f'invalid "salt" loaded from database: {row[0] if row else None}')
    return base64.b64decode(row[0])
