from typing import Optional

import pytest

from bwenv.models.entry import Entry, EntryBody, LegacyBody, NativeBody
from bwenv.vault.base import VaultClient, VaultError


class FakeVault(VaultClient):
    """In-memory vault that records every call."""

    def __init__(self) -> None:
        self.entries: dict[tuple[str, str], Entry] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_with: Optional[str] = None
        self._next_id = 1

    def add(self, folder: str, namespace: str, body: EntryBody) -> Entry:
        entry = Entry(entry_id=f"id-{self._next_id}", namespace=namespace, folder=folder, body=body)
        self._next_id += 1
        self.entries[(folder, namespace)] = entry
        return entry

    def writes(self) -> list[str]:
        return [op for op, _ in self.calls if op in {"create", "update", "delete"}]

    def _record(self, op: str, namespace: str) -> None:
        self.calls.append((op, namespace))
        if self.fail_with:
            raise VaultError(self.fail_with)

    def find(self, folder: str, namespace: str) -> Optional[Entry]:
        self._record("find", namespace)
        return self.entries.get((folder, namespace))

    def create(self, folder: str, namespace: str, body: str) -> None:
        self._record("create", namespace)
        self.add(folder, namespace, NativeBody(text=body))

    def update(self, entry: Entry, body: str) -> None:
        self._record("update", entry.namespace)
        self.entries[(entry.folder, entry.namespace)] = Entry(
            entry_id=entry.entry_id,
            namespace=entry.namespace,
            folder=entry.folder,
            body=NativeBody(text=body),
        )

    def delete(self, entry: Entry) -> None:
        self._record("delete", entry.namespace)
        del self.entries[(entry.folder, entry.namespace)]

    def list(self, folder: str) -> list[str]:
        self._record("list", folder)
        return [name for (f, name) in self.entries if f == folder]

    def notes(self, folder: str, namespace: str) -> str:
        body = self.entries[(folder, namespace)].body
        assert isinstance(body, NativeBody)
        return body.text


@pytest.fixture
def vault() -> FakeVault:
    return FakeVault()


@pytest.fixture
def legacy_body() -> LegacyBody:
    return LegacyBody(fields=(("X", "10"), ("Y", "20")))
