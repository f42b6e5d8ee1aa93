"""Storage providers — FileSystemOperations implementations."""

from dropfs.providers.dropbox import DropboxOperations
from dropfs.providers.transport import init_cert_pinning

__all__ = [
    "DropboxOperations",
    "init_cert_pinning",
]
