"""Tests for statementbot.ask."""

import hashlib
from unittest.mock import patch

import pytest

from statementbot.ask import RichUserAsker, load_password_from_file, validate_user_input
from statementbot.errors import NoInputError
from statementbot.models import AskOptions


def test_validate_user_input_strips_whitespace():
    assert validate_user_input("  secret \n", AskOptions()) == "secret"


@pytest.mark.parametrize("value", ["", "   ", None, 42])
def test_validate_user_input_rejects_empty(value):
    with pytest.raises(NoInputError, match="Database Password"):
        validate_user_input(value, AskOptions(title="Database Password"))


def test_rich_asker_hides_sensitive_input():
    asker = RichUserAsker()
    with patch("statementbot.ask.Prompt.ask", return_value=" hunter2 ") as prompt:
        answer = asker.ask(AskOptions(prompt="Password:", sensitive=True))
    assert answer == "hunter2"
    assert prompt.call_args.kwargs["password"] is True


def test_rich_asker_raises_on_empty_answer():
    asker = RichUserAsker()
    with patch("statementbot.ask.Prompt.ask", return_value=""):
        with pytest.raises(NoInputError, match="user input"):
            asker.ask()


def test_load_password_from_file_is_sha512_hex(tmp_path):
    key_file = tmp_path / "key.bin"
    content = bytes(range(256)) * 1000
    key_file.write_bytes(content)

    password = load_password_from_file(key_file)

    assert password == hashlib.sha512(content).hexdigest()
    assert load_password_from_file(key_file) == password


def test_stub_asker_answers_by_pattern(stub_asker):
    stub_asker.register(r"password", "pwszd8ns5k")
    assert stub_asker.ask(AskOptions(prompt="Enter the PASSWORD:")) == "pwszd8ns5k"
    with pytest.raises(NoInputError):
        stub_asker.ask(AskOptions(prompt="Username:"))
