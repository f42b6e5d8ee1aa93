"""dropfs: Dropbox as an async file system.

Links, info snapshots and a Dropbox backend for the FileSystemOperations protocol.
"""

__version__ = "0.1.0"

from dropfs.fs import (
    ROOT_DIRECTORY,
    ConfigurationError,
    DirectoryLink,
    DirectoryLinkInfo,
    DirectoryNotEmptyError,
    DropFSError,
    FileHash,
    FileHashAlgorithm,
    FileLink,
    FileLinkInfo,
    FileSystemOperations,
    Link,
    LinkInfo,
    LinkMetadata,
    ListingOptions,
    RootDirectoryInfo,
    SupportsMetadata,
    content_hash,
    correct_path,
)
from dropfs.providers import DropboxOperations

__all__ = [
    "ROOT_DIRECTORY",
    "ConfigurationError",
    "DirectoryLink",
    "DirectoryLinkInfo",
    "DirectoryNotEmptyError",
    "DropFSError",
    "DropboxOperations",
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
    "__version__",
    "content_hash",
    "correct_path",
]
