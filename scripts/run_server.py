"""Launch the chat relay server."""

from __future__ import annotations

import argparse
import logging
import os
import sys

import uvicorn

# Ensure src/ is on sys.path (so imports work when run from a checkout)
SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from chat_relay.config import load_config  # noqa: E402
from chat_relay.server import create_app  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the chat relay server.")
    parser.add_argument("--config", type=str, default=None, help="Path to a YAML config file")
    parser.add_argument("--host", type=str, default=None, help="Host to bind (default: config or HOST)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind (default: config or PORT)")
    args = parser.parse_args()

    cfg = load_config(args.config)
    server_cfg = cfg.get("server", {})
    host = args.host or os.environ.get("HOST") or server_cfg.get("host", "127.0.0.1")
    port = args.port or int(os.environ.get("PORT") or server_cfg.get("port", 5000))
    level = str(cfg.get("logging", {}).get("level", "INFO")).upper()

    logging.basicConfig(level=level, format="[%(asctime)s] %(levelname)s %(name)s - %(message)s")

    app = create_app(args.config)

    uvicorn.run(app, host=host, port=port, log_level=level.lower())


if __name__ == "__main__":
    main()
