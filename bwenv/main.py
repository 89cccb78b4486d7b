"""bwenv command line entrypoint.

    bwenv [--folder F] <namespace> <command> [args...]
    bwenv [--folder F] set <namespace> KEY... [--noecho]
    bwenv [--folder F] list [<namespace>] [--show-value]
    bwenv [--folder F] unset <namespace> KEY...
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from typing import Optional

from bwenv.codec.entry_codec import CodecError, validate_key
from bwenv.config.settings import FOLDER_ENV, SettingsError, load_settings, resolve_folder
from bwenv.core.injector import InjectionError, run_with_secrets
from bwenv.core.secret_store import Changeset, SecretStore, StoreError
from bwenv.vault.base import VaultError
from bwenv.vault.factory import create_vault_client

LOGGER = logging.getLogger("bwenv")
SUBCOMMANDS = ("set", "list", "unset")


def _add_global_options(parser: argparse.ArgumentParser, suppress: bool) -> None:
    default = argparse.SUPPRESS if suppress else None
    parser.add_argument(
        "--folder",
        default=default,
        help=f"Bitwarden folder holding the namespaces (env: {FOLDER_ENV}, default: bwenv)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress else False,
        help="Log rbw activity to stderr",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bwenv",
        description="Run commands with secrets from Bitwarden (via rbw) as environment variables",
        usage="bwenv [--folder F] {<namespace> <command> [args...] | set | list | unset} ...",
    )
    _add_global_options(parser, suppress=False)
    parser.add_argument(
        "argv",
        nargs=argparse.REMAINDER,
        metavar="...",
        help="`<namespace> <command> [args...]`, or one of: set, list, unset",
    )
    return parser


def build_subcommand_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bwenv")
    sub = parser.add_subparsers(dest="subcommand", required=True)

    p_set = sub.add_parser("set", help="Prompt for values and store keys in a namespace")
    _add_global_options(p_set, suppress=True)
    p_set.add_argument("namespace")
    p_set.add_argument("keys", nargs="+", metavar="KEY")
    p_set.add_argument("--noecho", action="store_true", help="Do not echo values while typing")

    p_list = sub.add_parser("list", help="List namespaces, or the keys of one namespace")
    _add_global_options(p_list, suppress=True)
    p_list.add_argument("namespace", nargs="?")
    p_list.add_argument("--show-value", action="store_true", help="Print KEY=VALUE instead of keys only")

    p_unset = sub.add_parser("unset", help="Remove keys from a namespace")
    _add_global_options(p_unset, suppress=True)
    p_unset.add_argument("namespace")
    p_unset.add_argument("keys", nargs="+", metavar="KEY")
    return parser


def _error(message: str) -> None:
    print(f"error: {message}", file=sys.stderr)


def _prompt_value(key: str, noecho: bool) -> str:
    prompt = f"{key}: "
    if noecho:
        return getpass.getpass(prompt)
    return input(prompt)


def cmd_set(store: SecretStore, namespace: str, keys: list[str], noecho: bool) -> int:
    for key in keys:
        validate_key(key)
    changeset = Changeset()
    for key in keys:
        changeset.set(key, _prompt_value(key, noecho))
    result = store.apply(namespace, changeset)
    print(f"{namespace}: set {', '.join(keys)} ({result.action})", file=sys.stderr)
    return 0


def cmd_unset(store: SecretStore, namespace: str, keys: list[str]) -> int:
    changeset = Changeset()
    for key in keys:
        changeset.unset(key)
    result = store.apply(namespace, changeset)
    for key in result.missing_keys:
        _error(f"key '{key}' not found in namespace '{namespace}'")
    removed = [key for key in keys if key not in result.missing_keys]
    if removed:
        print(f"{namespace}: unset {', '.join(removed)} ({result.action})", file=sys.stderr)
    return 1 if result.missing_keys else 0


def cmd_list(store: SecretStore, namespace: Optional[str], show_value: bool) -> int:
    if namespace is None:
        for name in store.list_namespaces():
            print(name)
        return 0
    for listing in store.list_keys(namespace, reveal_values=show_value):
        if show_value:
            print(f"{listing.key}={listing.value}")
        else:
            print(listing.key)
    return 0


def cmd_run(store: SecretStore, namespace: str, command: str, args: list[str]) -> int:
    secrets = store.get(namespace)
    if not secrets:
        LOGGER.warning("namespace %s has no secrets in folder %s", namespace, store.folder)
    return run_with_secrets(command, args, secrets)


def _configure_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    rest: list[str] = list(args.argv)
    if rest and rest[0] == "--":
        rest = rest[1:]
    if not rest:
        parser.print_usage(sys.stderr)
        return 2

    sub_args: Optional[argparse.Namespace] = None
    if rest[0] in SUBCOMMANDS:
        sub_args = build_subcommand_parser().parse_args(rest)
        folder_flag = getattr(sub_args, "folder", None) or args.folder
        verbose = getattr(sub_args, "verbose", False) or args.verbose
    else:
        if len(rest) < 2:
            parser.error("missing command to run: bwenv <namespace> <command> [args...]")
        folder_flag = args.folder
        verbose = args.verbose

    try:
        settings = load_settings()
    except SettingsError as exc:
        _configure_logging("WARNING", verbose)
        _error(str(exc))
        return 1
    _configure_logging(settings.log_level, verbose)
    folder = resolve_folder(folder_flag, settings)
    LOGGER.debug("using folder %s", folder)

    try:
        store = SecretStore(create_vault_client(settings), folder=folder)
        if sub_args is None:
            return cmd_run(store, namespace=rest[0], command=rest[1], args=rest[2:])
        if sub_args.subcommand == "set":
            return cmd_set(store, sub_args.namespace, sub_args.keys, sub_args.noecho)
        if sub_args.subcommand == "unset":
            return cmd_unset(store, sub_args.namespace, sub_args.keys)
        return cmd_list(store, sub_args.namespace, sub_args.show_value)
    except (StoreError, VaultError, CodecError) as exc:
        _error(str(exc))
        return 1
    except InjectionError as exc:
        _error(str(exc))
        return exc.exit_code
    except EOFError:
        _error("input closed before all values were read; nothing was saved")
        return 1
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
