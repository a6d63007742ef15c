"""Prompting the user for input, and password files."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Optional, Protocol

from rich.console import Console
from rich.prompt import Prompt

from .errors import NoInputError
from .models import AskOptions

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class UserAsker(Protocol):
    def ask(self, options: Optional[AskOptions] = None) -> str: ...


def validate_user_input(user_input: object, options: AskOptions) -> str:
    """Return *user_input* stripped; raise :class:`NoInputError` if nothing was given."""
    if isinstance(user_input, str):
        stripped = user_input.strip()
        if stripped:
            return stripped
    raise NoInputError(f"No input given for: {options.title}")


class RichUserAsker:
    """Asks questions on the terminal; sensitive answers are not echoed."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def ask(self, options: Optional[AskOptions] = None) -> str:
        options = options or AskOptions()
        user_input = Prompt.ask(
            f"[cyan]{options.prompt}[/cyan]",
            password=options.sensitive,
            default="",
            show_default=False,
            console=self.console,
        )
        logger.info('Got response for "%s"', options.prompt)
        return validate_user_input(user_input, options)


def load_password_from_file(path: Path) -> str:
    """Return the hex SHA-512 digest of the file at *path*, for use as a password."""
    digest = hashlib.sha512()
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
