"""Vault client abstractions.

The secret store only talks to the vault through this interface, so the
backend can be swapped for an in-memory double in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from bwenv.models.entry import Entry


class VaultError(RuntimeError):
    """Raised when the vault backend fails (locked, sync error, missing CLI)."""


class VaultClient(ABC):
    """Query/mutate interface over vault entries grouped by folder."""

    @abstractmethod
    def find(self, folder: str, namespace: str) -> Optional[Entry]:
        """Return the entry named `namespace` in `folder`, or None."""

    @abstractmethod
    def create(self, folder: str, namespace: str, body: str) -> None:
        """Create a new entry whose notes are `body`."""

    @abstractmethod
    def update(self, entry: Entry, body: str) -> None:
        """Replace the notes of an entry previously returned by `find`."""

    @abstractmethod
    def delete(self, entry: Entry) -> None:
        """Remove an entry previously returned by `find`."""

    @abstractmethod
    def list(self, folder: str) -> list[str]:
        """Return the names of all entries in `folder`."""
