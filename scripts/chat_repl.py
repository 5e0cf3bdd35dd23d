"""Terminal front end: type a line, see it appear, see the reply arrive.

Requests run concurrently; replies are printed as they complete, so a
fast answer to a later message can show up before a slow earlier one.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from chat_relay.client import ChatAPIClient  # noqa: E402
from chat_relay.client_store import ClientMessageStore  # noqa: E402
from chat_relay.config import load_config  # noqa: E402

QUIT = {"/quit", "/exit"}


async def run(base_url: str, timeout: float) -> None:
    async with ChatAPIClient(base_url, timeout=timeout) as client:
        store = ClientMessageStore(client)
        shown = 0

        def render(entries) -> None:
            nonlocal shown
            for entry in entries[shown:]:
                if entry.sender == "bot":
                    print(f"bot> {entry.text}")
            shown = len(entries)

        store.subscribe(render)
        print(f"Connected to {base_url}. Type {' or '.join(sorted(QUIT))} to leave.")
        while True:
            try:
                line = await asyncio.to_thread(input, "")
            except EOFError:
                break
            if line.strip() in QUIT:
                break
            store.submit(line)

        if store.pending:
            print(f"Waiting for {store.pending} pending replies...")
        await store.drain()


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with a running chat relay server.")
    parser.add_argument("--config", type=str, default=None, help="Path to a YAML config file")
    parser.add_argument("--url", type=str, default=None, help="Server base URL")
    args = parser.parse_args()

    cfg = load_config(args.config)
    client_cfg = cfg.get("client", {})
    level = str(cfg.get("logging", {}).get("level", "INFO")).upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s - %(message)s")

    base_url = args.url or client_cfg.get("base_url", "http://127.0.0.1:5000")
    asyncio.run(run(base_url, float(client_cfg.get("timeout_seconds", 60))))


if __name__ == "__main__":
    main()
