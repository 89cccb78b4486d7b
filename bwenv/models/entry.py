"""Vault entry shapes.

`Entry` and its body variants are what the secret store works with.
The `Rbw*` models describe the JSON printed by `rbw list --raw` and
`rbw get --raw`; anything rbw adds beyond these fields is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SECURE_NOTE_TYPES = {"Note", "SecureNote"}


@dataclass(frozen=True)
class NativeBody:
    text: str


@dataclass(frozen=True)
class LegacyBody:
    fields: tuple[tuple[Optional[str], Optional[str]], ...]


EntryBody = Union[NativeBody, LegacyBody]


@dataclass(frozen=True)
class Entry:
    entry_id: str
    namespace: str
    folder: str
    body: EntryBody
    secure_note: bool = False

    @property
    def is_legacy(self) -> bool:
        return isinstance(self.body, LegacyBody)


class RbwListItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    folder: Optional[str] = None
    item_type: Optional[str] = Field(default=None, alias="type")


class RbwField(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    value: Optional[str] = None


class RbwItem(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    folder: Optional[str] = None
    item_type: Optional[str] = Field(default=None, alias="type")
    notes: Optional[str] = None
    custom_fields: list[RbwField] = Field(default_factory=list, alias="fields")

    @field_validator("custom_fields", mode="before")
    @classmethod
    def null_fields_as_empty(cls, value: object) -> object:
        if value is None:
            return []
        return value

    def body(self) -> EntryBody:
        """Native when notes carry text, legacy when only custom fields do."""
        notes = self.notes or ""
        if notes.strip() or not self.custom_fields:
            return NativeBody(text=notes)
        return LegacyBody(fields=tuple((f.name, f.value) for f in self.custom_fields))

    def to_entry(self, namespace: str, folder: str) -> Entry:
        return Entry(
            entry_id=self.id or namespace,
            namespace=self.name or namespace,
            folder=self.folder if self.folder is not None else folder,
            body=self.body(),
            secure_note=(self.item_type or "") in SECURE_NOTE_TYPES,
        )
