"""Filesystem layer — links, info snapshots, backend protocol, errors."""

from dropfs.fs.exceptions import ConfigurationError, DirectoryNotEmptyError, DropFSError
from dropfs.fs.links import DirectoryLink, FileLink, Link
from dropfs.fs.protocol import FileSystemOperations, SupportsMetadata
from dropfs.fs.types import (
    ROOT_DIRECTORY,
    DirectoryLinkInfo,
    FileHash,
    FileHashAlgorithm,
    FileLinkInfo,
    LinkInfo,
    LinkMetadata,
    ListingOptions,
    RootDirectoryInfo,
)
from dropfs.fs.utils import content_hash, correct_path

__all__ = [
    "ROOT_DIRECTORY",
    "ConfigurationError",
    "DirectoryLink",
    "DirectoryLinkInfo",
    "DirectoryNotEmptyError",
    "DropFSError",
    "FileHash",
    "FileHashAlgorithm",
    "FileLink",
    "FileLinkInfo",
    "FileSystemOperations",
    "Link",
    "LinkInfo",
    "LinkMetadata",
    "ListingOptions",
    "RootDirectoryInfo",
    "SupportsMetadata",
    "content_hash",
    "correct_path",
]
