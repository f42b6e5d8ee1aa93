"""Certificate pinning for Dropbox HTTP sessions.

Pinning is configured once per process: the first backend constructed
decides which CA bundle sessions trust (the one shipped with the Dropbox
SDK, or the bundle named by ``DROPBOX_CA_CERTS``) and every later session
is built against that choice.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import TYPE_CHECKING

import dropbox

if TYPE_CHECKING:
    import requests

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 8
CA_CERTS_ENV = "DROPBOX_CA_CERTS"

_lock = threading.Lock()
_initialized = False
_ca_certs: str | None = None


def init_cert_pinning(ca_certs: str | None = None) -> str | None:
    """Configure the pinned CA bundle for this process.

    Returns the custom bundle path, or ``None`` when sessions use the
    bundle shipped with the SDK.  Only the first call does any work; later
    calls return the first call's choice whatever they pass.
    """
    global _initialized, _ca_certs

    with _lock:
        if _initialized:
            return _ca_certs

        bundle = ca_certs or os.environ.get(CA_CERTS_ENV) or None
        if bundle is not None and not os.path.isfile(bundle):
            msg = f"Pinned CA bundle not found: {bundle}"
            raise FileNotFoundError(msg)

        _ca_certs = bundle
        _initialized = True
        logger.info("Dropbox certificate pinning installed (%s)", bundle or "SDK bundle")
        return _ca_certs


def is_cert_pinning_initialized() -> bool:
    return _initialized


def pinned_session(max_connections: int = DEFAULT_MAX_CONNECTIONS) -> requests.Session:
    """Build a new HTTP session that only trusts the pinned CA bundle."""
    return dropbox.create_session(
        max_connections=max_connections,
        ca_certs=init_cert_pinning(),
    )


def _reset_for_tests() -> None:
    global _initialized, _ca_certs

    with _lock:
        _initialized = False
        _ca_certs = None
