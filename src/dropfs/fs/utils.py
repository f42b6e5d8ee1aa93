"""Path helpers, name matching and the provider content hash."""

from __future__ import annotations

import fnmatch
import hashlib
import posixpath
from typing import TYPE_CHECKING

from .types import ROOT_DIRECTORY

if TYPE_CHECKING:
    from typing import BinaryIO

# Dropbox hashes content in 4 MiB blocks
CONTENT_HASH_BLOCK_SIZE = 4 * 1024 * 1024


# =============================================================================
# Path Utilities
# =============================================================================


def correct_path(path: str | None) -> str | None:
    """Root a path at ``/`` without otherwise touching it.

    Examples:
        correct_path("foo.txt") -> "/foo.txt"
        correct_path("/foo.txt") -> "/foo.txt"
        correct_path("/") -> "/"
        correct_path(None) -> None
    """
    if path is None:
        return None
    if path == ROOT_DIRECTORY or path.startswith("/"):
        return path
    return "/" + path


def split_path(path: str) -> tuple[str, str]:
    """Split path into (parent_dir, name).

    Examples:
        split_path("/foo/bar.txt") -> ("/foo", "bar.txt")
        split_path("/foo.txt") -> ("/", "foo.txt")
        split_path("/") -> ("/", "")
    """
    path = correct_path(path) or ROOT_DIRECTORY
    if path == ROOT_DIRECTORY:
        return ROOT_DIRECTORY, ""
    return posixpath.split(path.rstrip("/"))


def to_provider_path(path: str) -> str:
    """Translate a rooted path to the form the Dropbox API expects.

    The API names the root folder with an empty string.
    """
    return "" if path == ROOT_DIRECTORY else path


def same_path(a: str, b: str) -> bool:
    """Compare two paths the way Dropbox does (case-insensitive)."""
    return a.rstrip("/").lower() == b.rstrip("/").lower()


def matches_pattern(name: str, pattern: str) -> bool:
    """Shell-style, case-insensitive match of an entry name."""
    return fnmatch.fnmatch(name.lower(), pattern.lower())


# =============================================================================
# Content Hash
# =============================================================================


def content_hash(stream: BinaryIO) -> str:
    """Compute the Dropbox content hash of a binary stream.

    SHA-256 over the concatenated SHA-256 digests of each 4 MiB block,
    hex encoded.  Reads the stream to EOF from its current position.
    """
    overall = hashlib.sha256()
    while True:
        block = read_chunk(stream, CONTENT_HASH_BLOCK_SIZE)
        if not block:
            break
        overall.update(hashlib.sha256(block).digest())
    return overall.hexdigest()


def read_chunk(stream: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, looping over short reads.

    Returns fewer than ``size`` bytes only at EOF.
    """
    parts: list[bytes] = []
    remaining = size
    while remaining > 0:
        data = stream.read(remaining)
        if not data:
            break
        parts.append(data)
        remaining -= len(data)
    return b"".join(parts)
