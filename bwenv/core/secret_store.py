"""Namespace-level secret store on top of a vault client.

Each namespace is one vault entry. A call loads the entry once, applies
every requested change to the decoded map and writes the result back at
most once: create when the first key appears, update while keys remain,
delete when the last key is removed.

There is no version check before writing, so two concurrent invocations
against the same namespace can overwrite each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from bwenv.codec.entry_codec import CodecError, SecretMap, decode, encode, validate_key, validate_value
from bwenv.models.entry import Entry
from bwenv.vault.base import VaultClient, VaultError

LOGGER = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Base class for secret store failures."""


class BackendError(StoreError):
    """Vault layer failure (locked vault, sync error, missing CLI)."""


class CorruptEntryError(StoreError):
    def __init__(self, namespace: str, cause: CodecError) -> None:
        super().__init__(f"namespace '{namespace}' is corrupt: {cause}")
        self.namespace = namespace


class KeyNotFoundError(StoreError):
    def __init__(self, namespace: str, key: str) -> None:
        super().__init__(f"key '{key}' not found in namespace '{namespace}'")
        self.namespace = namespace
        self.key = key


class LegacyEntryError(StoreError):
    def __init__(self, namespace: str) -> None:
        super().__init__(
            f"namespace '{namespace}' uses custom fields and is read-only; "
            "edit it in Bitwarden or move its keys into a new namespace"
        )
        self.namespace = namespace


class InvalidSecretError(StoreError):
    """Key or value cannot be stored in the KEY=VALUE notes format."""


@dataclass
class Changeset:
    """Ordered set/unset operations applied to one namespace in one round trip."""

    operations: list[tuple[str, str, Optional[str]]] = field(default_factory=list)

    def set(self, key: str, value: str) -> "Changeset":
        self.operations.append(("set", key, value))
        return self

    def unset(self, key: str) -> "Changeset":
        self.operations.append(("unset", key, None))
        return self

    def is_empty(self) -> bool:
        return not self.operations


@dataclass(frozen=True)
class ApplyResult:
    namespace: str
    action: str
    secrets: SecretMap
    missing_keys: list[str]


@dataclass(frozen=True)
class SecretListing:
    key: str
    value: Optional[str]


class SecretStore:
    def __init__(self, client: VaultClient, folder: str) -> None:
        self._client = client
        self.folder = folder

    def get(self, namespace: str) -> SecretMap:
        entry = self._load(namespace)
        if entry is None:
            return {}
        return self._decode(entry)

    def list_namespaces(self) -> list[str]:
        try:
            return self._client.list(self.folder)
        except VaultError as exc:
            raise BackendError(str(exc)) from exc

    def list_keys(self, namespace: str, reveal_values: bool = False) -> list[SecretListing]:
        secrets = self.get(namespace)
        return [
            SecretListing(key=key, value=value if reveal_values else None)
            for key, value in secrets.items()
        ]

    def set(self, namespace: str, key: str, value: str) -> ApplyResult:
        return self.apply(namespace, Changeset().set(key, value))

    def unset(self, namespace: str, key: str) -> ApplyResult:
        result = self.apply(namespace, Changeset().unset(key))
        if result.missing_keys:
            raise KeyNotFoundError(namespace, key)
        return result

    def apply(self, namespace: str, changeset: Changeset) -> ApplyResult:
        for op, key, value in changeset.operations:
            try:
                validate_key(key)
                if op == "set":
                    validate_value(key, value or "")
            except CodecError as exc:
                raise InvalidSecretError(str(exc)) from exc

        entry = self._load(namespace)
        if entry is not None and entry.is_legacy:
            raise LegacyEntryError(namespace)
        secrets = self._decode(entry) if entry is not None else {}

        wrote = False
        missing: list[str] = []
        for op, key, value in changeset.operations:
            if op == "set":
                secrets[key] = value or ""
                wrote = True
            elif key in secrets:
                del secrets[key]
                wrote = True
            else:
                missing.append(key)

        action = "unchanged"
        # An existing entry left without keys is removed even if nothing changed.
        if wrote or (entry is not None and not secrets and not changeset.is_empty()):
            action = self._write(namespace, entry, secrets)
        LOGGER.debug("namespace %s: %s (%d keys)", namespace, action, len(secrets))
        return ApplyResult(namespace=namespace, action=action, secrets=secrets, missing_keys=missing)

    def _write(self, namespace: str, entry: Optional[Entry], secrets: SecretMap) -> str:
        try:
            if entry is None:
                if not secrets:
                    return "unchanged"
                self._client.create(self.folder, namespace, encode(secrets))
                return "created"
            if not secrets:
                self._client.delete(entry)
                return "deleted"
            self._client.update(entry, encode(secrets))
            return "updated"
        except VaultError as exc:
            raise BackendError(str(exc)) from exc

    def _load(self, namespace: str) -> Optional[Entry]:
        try:
            return self._client.find(self.folder, namespace)
        except VaultError as exc:
            raise BackendError(str(exc)) from exc

    @staticmethod
    def _decode(entry: Entry) -> SecretMap:
        try:
            return decode(entry.body)
        except CodecError as exc:
            raise CorruptEntryError(entry.namespace, exc) from exc
