"""Data models for statementbot."""

from __future__ import annotations

import base64

from pydantic import BaseModel, ConfigDict, Field


class EncryptedEnvelope(BaseModel):
    """The self-contained unit produced by :class:`statementbot.crypto.Crypter`.

    Each field holds base64 text. On the wire the model is dumped as JSON with
    camelCase keys and the JSON itself is base64-encoded.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    cipher_text: str = Field(alias="cipherTextBase64")
    auth_tag: str = Field(alias="authTagBase64")
    initialization_vector: str = Field(alias="initializationVectorBase64")

    def to_string(self) -> str:
        raw = self.model_dump_json(by_alias=True).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    @classmethod
    def from_string(cls, data: str) -> EncryptedEnvelope:
        raw = base64.b64decode(data, validate=True)
        return cls.model_validate_json(raw)


class AskOptions(BaseModel):
    """Options for a single user prompt."""

    prompt: str = "Please enter some text:"
    title: str = "user input"
    sensitive: bool = False
