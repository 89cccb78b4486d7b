"""KEY=VALUE codec for entry bodies.

Native bodies are newline-separated `KEY=VALUE` lines kept in the notes
field. Legacy bodies are one custom field per key and are only ever decoded.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from bwenv.models.entry import EntryBody, LegacyBody, NativeBody

KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SecretMap = dict[str, str]


class CodecError(ValueError):
    """Raised when an entry body cannot be decoded or encoded."""


class MalformedLineError(CodecError):
    def __init__(self, line_number: int) -> None:
        super().__init__(f"malformed line {line_number}: expected KEY=VALUE")
        self.line_number = line_number


class MalformedFieldError(CodecError):
    def __init__(self, position: int) -> None:
        super().__init__(f"custom field {position} has no name")
        self.position = position


class InvalidKeyError(CodecError):
    def __init__(self, key: str) -> None:
        super().__init__(f"invalid key name: {key!r} (expected [A-Za-z_][A-Za-z0-9_]*)")
        self.key = key


class InvalidValueError(CodecError):
    def __init__(self, key: str) -> None:
        super().__init__(f"value for {key} must not contain line breaks or NUL")
        self.key = key


def validate_key(key: str) -> str:
    if not KEY_PATTERN.fullmatch(key):
        raise InvalidKeyError(key)
    return key


def validate_value(key: str, value: str) -> str:
    if "\n" in value or "\r" in value or "\x00" in value:
        raise InvalidValueError(key)
    return value


def decode_native(text: str) -> SecretMap:
    secrets: SecretMap = {}
    # Only \n (optionally preceded by \r) ends a line; other Unicode breaks are value text.
    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line[:-1] if raw_line.endswith("\r") else raw_line
        if not line.strip():
            continue
        key, sep, value = line.partition("=")
        if not sep or not KEY_PATTERN.fullmatch(key):
            raise MalformedLineError(line_number)
        secrets[key] = value
    return secrets


def decode_legacy(fields: Iterable[tuple[Optional[str], Optional[str]]]) -> SecretMap:
    secrets: SecretMap = {}
    for position, (name, value) in enumerate(fields, start=1):
        if not name:
            raise MalformedFieldError(position)
        if not KEY_PATTERN.fullmatch(name):
            raise InvalidKeyError(name)
        secrets[name] = value or ""
    return secrets


def decode(body: EntryBody) -> SecretMap:
    if isinstance(body, LegacyBody):
        return decode_legacy(body.fields)
    if isinstance(body, NativeBody):
        return decode_native(body.text)
    raise CodecError(f"unsupported entry body: {type(body).__name__}")


def encode(secrets: SecretMap) -> str:
    lines = []
    for key, value in secrets.items():
        validate_key(key)
        validate_value(key, value)
        lines.append(f"{key}={value}")
    return "\n".join(lines)
