"""Chat relay: persist each user turn, ask a completion API, persist the reply.

Typical usage
-------------
from chat_relay import create_app
app = create_app()

or, from the provided launcher:

python scripts/run_server.py --host 127.0.0.1 --port 5000
"""

from __future__ import annotations

__all__ = ["create_app", "__version__", "get_version"]

__version__ = "0.1.0"


def get_version() -> str:
    """Return the package version."""
    return __version__


def create_app(*args, **kwargs):
    """Return a configured FastAPI application.

    Forwards to :func:`chat_relay.server.create_app`; imported lazily so the
    client-side modules do not pull in the server stack.
    """
    from .server import create_app as _create_app

    return _create_app(*args, **kwargs)
