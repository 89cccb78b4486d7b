"""Run a command with a namespace's secrets in its environment."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from typing import Mapping, Optional

LOGGER = logging.getLogger(__name__)


class InjectionError(RuntimeError):
    """Raised when the child command cannot be started."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def build_environment(secrets: Mapping[str, str], base: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    env = dict(os.environ if base is None else base)
    env.update(secrets)
    return env


def run_with_secrets(
    command: str,
    args: list[str],
    secrets: Mapping[str, str],
    base_env: Optional[Mapping[str, str]] = None,
) -> int:
    """Spawn `command` with inherited stdio and return its exit status.

    Ctrl-C reaches the child through the terminal; the parent ignores it
    while waiting so the child decides how to exit. A child killed by a
    signal maps to 128 + signal number, as shells report it.
    """
    env = build_environment(secrets, base_env)
    LOGGER.debug("running %s with %d injected variables", command, len(secrets))
    try:
        child = subprocess.Popen([command, *args], env=env)
    except FileNotFoundError as exc:
        raise InjectionError(f"command not found: {command}", exit_code=127) from exc
    except PermissionError as exc:
        raise InjectionError(f"command is not executable: {command}", exit_code=126) from exc
    except OSError as exc:
        raise InjectionError(f"failed to run {command}: {exc}", exit_code=126) from exc
    except ValueError as exc:
        raise InjectionError(f"cannot build environment for {command}: {exc}", exit_code=1) from exc

    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        returncode = child.wait()
    finally:
        signal.signal(signal.SIGINT, previous)

    if returncode < 0:
        return 128 - returncode
    return returncode
