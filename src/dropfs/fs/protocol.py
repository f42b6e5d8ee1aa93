"""FileSystemOperations protocol — runtime-checkable backend interface.

Split into the core operations protocol and an opt-in capability protocol
that tells callers which metadata fields a backend reports faithfully.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .links import DirectoryLink, FileLink, Link
    from .types import (
        DirectoryLinkInfo,
        FileLinkInfo,
        LinkInfo,
        LinkMetadata,
        ListingOptions,
    )


@runtime_checkable
class FileSystemOperations(Protocol):
    """Core interface every backend must implement.

    Paths are absolute and rooted at ``/``.  Resolution of a missing entry
    returns ``None``; only conditions a caller cannot treat as ordinary
    absence are raised.
    """

    @property
    def kind(self) -> str: ...

    @property
    def name(self) -> str | None: ...

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release backend resources.  Safe to call more than once."""
        ...

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def correct_path(self, path: str | None) -> str | None: ...

    async def get_link_info(self, full_name: str) -> LinkInfo | None: ...

    async def update_metadata(self, link: Link, metadata: LinkMetadata) -> LinkInfo | None: ...

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def read_file(self, file: FileLink, stream: BinaryIO) -> None: ...

    async def write_file(
        self,
        file: FileLink,
        stream: BinaryIO,
        overwrite: bool,
    ) -> FileLinkInfo: ...

    async def move_file(
        self,
        source: FileLink,
        destination: FileLink,
        overwrite: bool,
    ) -> FileLinkInfo: ...

    async def delete_file(self, file: FileLink) -> None: ...

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    async def create_directory(self, directory: DirectoryLink) -> DirectoryLinkInfo | None: ...

    async def move_directory(
        self,
        source: DirectoryLink,
        destination: DirectoryLink,
    ) -> DirectoryLinkInfo: ...

    async def delete_directory(self, directory: DirectoryLink, recursive: bool) -> None: ...

    async def get_links(
        self,
        directory: DirectoryLink,
        options: ListingOptions,
    ) -> list[LinkInfo]: ...


@runtime_checkable
class SupportsMetadata(Protocol):
    """Opt-in: which metadata fields the backend reports faithfully.

    A ``False`` flag means the matching :class:`LinkInfo` field holds a fixed
    default and must not be read as provider state.
    """

    @property
    def supports_is_hidden_metadata(self) -> bool: ...

    @property
    def supports_is_read_only_metadata(self) -> bool: ...

    @property
    def supports_last_write_time_metadata(self) -> bool: ...
