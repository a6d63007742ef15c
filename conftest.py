"""pytest configuration: add src/ to sys.path and provide shared fixtures."""
import re
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent / "src"))

from statementbot.ask import validate_user_input  # noqa: E402
from statementbot.models import AskOptions  # noqa: E402


class StubUserAsker:
    """Answers prompts from canned responses registered by regular expression."""

    def __init__(self) -> None:
        self.responses: list[tuple[re.Pattern, str]] = []
        self.asked: list[AskOptions] = []

    def register(self, pattern: str, response: str) -> None:
        self.responses.append((re.compile(pattern, re.IGNORECASE), response))

    def ask(self, options=None) -> str:
        options = options or AskOptions()
        self.asked.append(options)
        for pattern, response in self.responses:
            if pattern.search(options.prompt):
                return validate_user_input(response, options)
        return validate_user_input("", options)


@pytest.fixture
def stub_asker() -> StubUserAsker:
    return StubUserAsker()


@pytest.fixture
def vault_path(tmp_path) -> Path:
    return tmp_path / "app_data.sqlite"
