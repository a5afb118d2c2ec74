"""Operator command line for inspecting and maintaining context data.

Examples::

    valkey-context --config valkey.yml keys global
    valkey-context get flow:f1 counter user.profile
    valkey-context set global user.profile.name '"Alice"'
    valkey-context clean n1 n2 n3
"""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, Optional

from valkey_context import create_store
from valkey_context.config import ContextStoreConfig, load_config
from valkey_context.errors import ContextStoreError
from valkey_context.logging_config import configure_logging
from valkey_context.storage.valkey_backend import ValkeyContextStore

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("valkey-context.yml")


def get_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="valkey-context", description="Inspect and maintain Valkey context data")
    p.add_argument("--config", type=Path, default=None,
                   help=f"YAML config file (default: {DEFAULT_CONFIG_PATH} when present)")
    sub = p.add_subparsers(dest="command", required=True)

    g = sub.add_parser("get", help="Print one or more values of a scope")
    g.add_argument("scope")
    g.add_argument("keys", nargs="+")

    s = sub.add_parser("set", help="Store a value; VALUE is parsed as JSON, else taken as a string")
    s.add_argument("scope")
    s.add_argument("key")
    s.add_argument("value")

    r = sub.add_parser("remove", help="Delete a single key or nested property")
    r.add_argument("scope")
    r.add_argument("key")

    k = sub.add_parser("keys", help="List the top-level keys of a scope")
    k.add_argument("scope")

    d = sub.add_parser("delete", help="Delete every key of a scope")
    d.add_argument("scope")

    c = sub.add_parser("clean", help="Delete node context of nodes not listed")
    c.add_argument("active", nargs="*", metavar="NODE_ID")
    return p


def parse_value(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def resolve_config(path: Optional[Path]) -> ContextStoreConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return ContextStoreConfig()


async def run_command(store: ValkeyContextStore, args: argparse.Namespace) -> Any:
    await store.open()
    try:
        result = await _dispatch(store, args)
    except BaseException:
        # Report the command's error, not a follow-up close failure.
        try:
            await store.close()
        except ContextStoreError:
            logger.warning("Failed to close context store after error", exc_info=True)
        raise
    await store.close()
    return result


async def _dispatch(store: ValkeyContextStore, args: argparse.Namespace) -> Any:
    if args.command == "get":
        if len(args.keys) == 1:
            return await store.get(args.scope, args.keys[0])
        return await store.get(args.scope, args.keys)
    if args.command == "set":
        await store.set(args.scope, args.key, parse_value(args.value))
        return None
    if args.command == "remove":
        return await store.remove(args.scope, args.key)
    if args.command == "keys":
        return await store.keys(args.scope)
    if args.command == "delete":
        await store.delete(args.scope)
        return None
    if args.command == "clean":
        await store.clean(args.active)
        return None
    raise ValueError(f"unknown command {args.command!r}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = get_parser().parse_args(list(argv) if argv is not None else None)
    logger = configure_logging(args.config or DEFAULT_CONFIG_PATH)

    try:
        config = resolve_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    store = create_store(config)
    try:
        result = asyncio.run(run_command(store, args))
    except ContextStoreError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command in ("get", "keys", "remove"):
        print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
