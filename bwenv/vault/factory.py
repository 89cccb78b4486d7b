"""Vault client factory."""

from __future__ import annotations

import shutil

from bwenv.config.settings import Settings
from bwenv.vault.base import VaultClient, VaultError
from bwenv.vault.rbw_client import RbwVaultClient


def create_vault_client(settings: Settings) -> VaultClient:
    command = settings.rbw_command
    if shutil.which(command) is None:
        raise VaultError(
            f"rbw CLI not found: {command} "
            "(install rbw or set rbw.command in the bwenv config)"
        )
    return RbwVaultClient(command=command)
