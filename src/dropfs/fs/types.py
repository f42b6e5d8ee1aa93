"""Link info snapshots, hashes, metadata updates and listing options."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from dropbox.files import FileMetadata, FolderMetadata

ROOT_DIRECTORY = "/"


class FileHashAlgorithm(str, Enum):
    """Hash algorithm a :class:`FileHash` value was computed with."""

    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"


@dataclass(frozen=True, slots=True)
class FileHash:
    """Content hash tagged with its algorithm."""

    algorithm: FileHashAlgorithm
    value: str


# ------------------------------------------------------------------
# Link info variants
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileLinkInfo:
    """Snapshot of a remote file.

    Wraps the provider's ``FileMetadata``.  The provider content hash is
    exposed in the MD5 slot of :class:`FileHash`; compare it against
    :func:`dropfs.fs.utils.content_hash`, not against a real MD5 digest.
    """

    metadata: FileMetadata

    @property
    def full_name(self) -> str:
        return self.metadata.path_display

    @property
    def exists(self) -> bool:
        return True

    @property
    def is_directory(self) -> bool:
        return False

    @property
    def creation_time(self) -> datetime | None:
        return None

    @property
    def last_write_time(self) -> datetime | None:
        return self.metadata.client_modified

    @property
    def is_hidden(self) -> bool:
        return False

    @property
    def is_read_only(self) -> bool:
        return False

    @property
    def content_path(self) -> str:
        return self.metadata.path_display

    @property
    def length(self) -> int:
        return int(self.metadata.size)

    @property
    def hash(self) -> FileHash | None:
        value = self.metadata.content_hash
        if value is None:
            return None
        return FileHash(FileHashAlgorithm.MD5, value)


@dataclass(frozen=True, slots=True)
class DirectoryLinkInfo:
    """Snapshot of a remote folder, wrapping the provider's ``FolderMetadata``."""

    metadata: FolderMetadata

    @property
    def full_name(self) -> str:
        return self.metadata.path_display

    @property
    def exists(self) -> bool:
        return True

    @property
    def is_directory(self) -> bool:
        return True

    @property
    def creation_time(self) -> datetime | None:
        return None

    @property
    def last_write_time(self) -> datetime | None:
        return None

    @property
    def is_hidden(self) -> bool:
        return False

    @property
    def is_read_only(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class RootDirectoryInfo:
    """The synthetic ``/`` entry.  Never fetched from the provider."""

    full_name: str = ROOT_DIRECTORY
    exists: bool = True
    is_directory: bool = True
    creation_time: datetime | None = None
    last_write_time: datetime | None = None
    is_hidden: bool = False
    is_read_only: bool = False


LinkInfo = FileLinkInfo | DirectoryLinkInfo | RootDirectoryInfo


# ------------------------------------------------------------------
# Requests
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LinkMetadata:
    """Metadata update requested by a caller.  ``None`` leaves a field as is."""

    is_hidden: bool | None = None
    is_read_only: bool | None = None
    last_write_time: datetime | None = None


@dataclass
class ListingOptions:
    """Options for :meth:`FileSystemOperations.get_links`.

    ``recursive_handled`` and ``search_pattern_handled`` are written by the
    backend to tell the caller which options it honoured itself; anything
    left ``False`` must be applied by the caller.
    """

    recursive: bool = False
    search_pattern: str | None = None
    search_for_files: bool = True
    search_for_directories: bool = True
    recursive_handled: bool = False
    search_pattern_handled: bool = False

    @property
    def has_search_pattern(self) -> bool:
        return bool(self.search_pattern) and self.search_pattern not in ("*", "*.*")
