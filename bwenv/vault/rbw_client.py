"""rbw CLI adapter.

Unlock and login are handled by rbw itself; this adapter makes sure the
vault is unlocked up front, runs the command and turns failures into
VaultError. Writes pipe the new notes to rbw's stdin: when stdin is not a
terminal, `rbw add` / `rbw edit` read the editor content from it instead
of launching $EDITOR.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from bwenv.models.entry import Entry, RbwItem, RbwListItem
from bwenv.vault.base import VaultClient, VaultError

LOGGER = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("no entry found", "no items found", "Entry not found")
_LIST_ADAPTER = TypeAdapter(list[RbwListItem])


class RbwVaultClient(VaultClient):
    def __init__(self, command: str = "rbw") -> None:
        self._command = command

    def list(self, folder: str) -> list[str]:
        self.ensure_unlocked()
        LOGGER.info("Fetching namespaces from folder %s", folder)
        proc = self._run(["list", "--raw"])
        self._check_status("rbw list", proc)
        try:
            items = _LIST_ADAPTER.validate_python(json.loads(proc.stdout))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise VaultError("failed to parse `rbw list --raw` output") from exc
        return [item.name for item in items if (item.folder or "") == folder]

    def find(self, folder: str, namespace: str) -> Optional[Entry]:
        self.ensure_unlocked()
        LOGGER.info("Fetching '%s'", namespace)
        proc = self._run(["get", "--raw", "--folder", folder, namespace])
        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            if any(marker in stderr for marker in _NOT_FOUND_MARKERS):
                LOGGER.debug("no entry for '%s' in folder %s", namespace, folder)
                return None
            raise VaultError(f"`rbw get` failed (exit {proc.returncode}): {stderr}")
        try:
            item = RbwItem.model_validate_json(proc.stdout)
        except ValidationError as exc:
            raise VaultError("failed to parse `rbw get --raw` output") from exc
        return item.to_entry(namespace=namespace, folder=folder)

    def create(self, folder: str, namespace: str, body: str) -> None:
        # rbw add always creates a login entry: the first line is the
        # (empty) password, the rest becomes the notes.
        self._pipe(["add", "--folder", folder, namespace], f"\n{body}\n")

    def update(self, entry: Entry, body: str) -> None:
        # Secure notes have no password line; rbw prepends it itself.
        stdin_text = f"{body}\n" if entry.secure_note else f"\n{body}\n"
        self._pipe(["edit", "--folder", entry.folder, entry.namespace], stdin_text)

    def delete(self, entry: Entry) -> None:
        self.ensure_unlocked()
        LOGGER.info("Deleting '%s' from Bitwarden", entry.namespace)
        proc = self._run(["remove", "--folder", entry.folder, entry.namespace])
        self._check_status("rbw remove", proc)

    def ensure_unlocked(self) -> None:
        """Trigger `rbw unlock` (and pinentry) before any other rbw command runs."""
        proc = self._run(["unlocked"])
        if proc.returncode == 0:
            return
        LOGGER.info("vault is locked, running `rbw unlock`")
        status = self._run(["unlock"], interactive=True)
        if status.returncode != 0:
            raise VaultError(f"`rbw unlock` failed (exit {status.returncode})")

    def _pipe(self, args: list[str], stdin_text: str) -> None:
        self.ensure_unlocked()
        LOGGER.info("Saving to Bitwarden")
        proc = self._run(args, stdin_text=stdin_text)
        if proc.returncode != 0:
            raise VaultError(f"rbw {args[0]} exited with status {proc.returncode}")

    def _run(
        self,
        args: list[str],
        stdin_text: Optional[str] = None,
        interactive: bool = False,
    ) -> subprocess.CompletedProcess:
        cmd = [self._command, *args]
        # Piped writes and interactive unlock leave stdout/stderr to the terminal.
        capture = stdin_text is None and not interactive
        try:
            return subprocess.run(
                cmd,
                input=stdin_text,
                capture_output=capture,
                text=True,
                env=_rbw_environment(),
                check=False,
            )
        except FileNotFoundError as exc:
            raise VaultError(
                f"rbw CLI not found ({self._command}). Install rbw and run `rbw login`."
            ) from exc
        except OSError as exc:
            raise VaultError(f"failed to run `{self._command} {args[0]}`: {exc}") from exc

    @staticmethod
    def _check_status(label: str, proc: subprocess.CompletedProcess) -> None:
        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            raise VaultError(f"`{label}` failed (exit {proc.returncode}): {stderr}")


def _rbw_environment() -> dict[str, str]:
    env = dict(os.environ)
    tty = real_tty_path()
    if tty:
        env["RBW_TTY"] = tty
    return env


def real_tty_path() -> Optional[str]:
    """Device path of the controlling terminal, for the rbw agent's pinentry.

    The agent has no terminal of its own, so `/dev/tty` only works as a last
    resort; stderr is tried first because stdout may be piped.
    """
    for fd in ("2", "0"):
        try:
            target = os.readlink(f"/proc/self/fd/{fd}")
        except OSError:
            continue
        if target.startswith("/dev/"):
            return target
    if Path("/dev/tty").exists():
        return "/dev/tty"
    return None
