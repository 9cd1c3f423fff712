#!/usr/bin/env python3
"""Run the item controller and print the item list whenever it changes.

Requests are read from stdin, one ``<prefix>/<Topic> <json body>`` per
line, and fed through the message bridge, e.g.::

    printf '%s\n' 'itemsync/Create {"source": "cli", "payload": {"name": "Lamp"}}' \
        'itemsync/SetDataSource 1' | python scripts/watch_items.py

Store settings and the topic prefix come from ``ITEMSYNC_*`` environment
variables.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from itemsync import EventChannel, ItemSyncConfig, MessageBridge, get_initialized_controller  # noqa: E402
from itemsync.controller import ItemIndexController  # noqa: E402
from itemsync.exceptions import ChannelError  # noqa: E402

_LOG = logging.getLogger("itemsync.watch")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch the item list kept by the itemsync controller.",
    )
    parser.add_argument(
        "--source",
        type=int,
        default=None,
        help="Initial data source (0 = in-memory, 1 = SQLite). Defaults to config.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until stdin closes or Ctrl+C).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=0.5,
        help="Seconds between refresh-flag polls.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_items(controller: ItemIndexController) -> None:
    ts_text = time.strftime("%Y-%m-%d %H:%M:%S")
    print(f"[watch] {ts_text} source={controller.current_data_source.name} items={len(controller.dataset)}")
    for item in controller.dataset:
        print(f"[watch]   {item.name:<24} {item.description:<32} value={item.value} id={item.id}")


def _read_requests(bridge: MessageBridge, stop: asyncio.Event, loop: asyncio.AbstractEventLoop) -> None:
    for line in sys.stdin:
        topic, _, body = line.strip().partition(" ")
        if not topic:
            continue
        try:
            event = bridge.handle_message(topic, body)
        except ChannelError:
            break
        if event is None:
            print(f"[watch] Ignored line: {line.strip()}", file=sys.stderr)
    loop.call_soon_threadsafe(stop.set)


async def _run(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {}
    if args.source is not None:
        overrides["default_data_source"] = args.source
    config = ItemSyncConfig.from_env(**overrides)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with EventChannel() as channel:
        controller = await get_initialized_controller(config)
        controller.attach(channel)
        result = controller.last_load_result
        if result is not None and not result.ok:
            print(f"[watch] Initial load failed: {result.error}", file=sys.stderr)

        bridge = MessageBridge.from_config(config, channel)
        # Daemon thread: a blocked stdin read must not hold up interpreter exit.
        threading.Thread(target=_read_requests, args=(bridge, stop, loop), daemon=True).start()

        started_at = time.monotonic()
        _print_items(controller)
        try:
            while not stop.is_set():
                if args.duration > 0 and (time.monotonic() - started_at) >= args.duration:
                    print(f"[watch] Reached --duration={args.duration}s, stopping.")
                    break
                if controller.needs_refresh():
                    await controller.force_data_refresh()
                    _print_items(controller)
                try:
                    await asyncio.wait_for(stop.wait(), timeout=args.poll_interval)
                except TimeoutError:
                    pass
            await channel.drain()
            if controller.needs_refresh():
                await controller.force_data_refresh()
                _print_items(controller)
        finally:
            controller.detach()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    _LOG.debug("Starting watcher")
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(_main())
