"""DropboxOperations — Dropbox backend for the FileSystemOperations protocol."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from typing import TYPE_CHECKING, Any

import dropbox
from dropbox import files
from dropbox.exceptions import ApiError

from dropfs.fs.exceptions import ConfigurationError, DirectoryNotEmptyError
from dropfs.fs.types import (
    ROOT_DIRECTORY,
    DirectoryLinkInfo,
    FileLinkInfo,
    LinkInfo,
    RootDirectoryInfo,
)
from dropfs.fs.utils import (
    correct_path,
    matches_pattern,
    read_chunk,
    same_path,
    to_provider_path,
)
from dropfs.providers.transport import init_cert_pinning, pinned_session

if TYPE_CHECKING:
    from typing import BinaryIO

    from dropfs.fs.links import DirectoryLink, FileLink, Link
    from dropfs.fs.types import LinkMetadata, ListingOptions

logger = logging.getLogger(__name__)

ACCESS_TOKEN_ENV = "DROPBOX_ACCESS_TOKEN"
REFRESH_TOKEN_ENV = "DROPBOX_REFRESH_TOKEN"
APP_KEY_ENV = "DROPBOX_APP_KEY"
APP_SECRET_ENV = "DROPBOX_APP_SECRET"

DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024  # 8MB, upload session chunks must be multiples of 4MB
DEFAULT_TIMEOUT = 100
DEFAULT_MAX_RETRIES = 4


class DropboxOperations:
    """Dropbox account exposed through the ``FileSystemOperations`` protocol.

    Implements ``FileSystemOperations`` and ``SupportsMetadata``.

    Every operation maps to one Dropbox API route (a non-recursive directory
    delete adds a listing first).  The SDK is synchronous, so each call runs
    in ``asyncio.to_thread``.  Retries, rate limiting and token refresh are
    left to the SDK.

    Usage::

        async with DropboxOperations(access_token="sl.xxx") as ops:
            info = await ops.get_link_info("/docs/a.txt")
            with open("a.txt", "wb") as f:
                await ops.read_file(FileLink("/docs/a.txt", info), f)
    """

    def __init__(
        self,
        access_token: str | None = None,
        *,
        refresh_token: str | None = None,
        app_key: str | None = None,
        app_secret: str | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries_on_error: int = DEFAULT_MAX_RETRIES,
        client: Any = None,
    ) -> None:
        self._client: Any = None

        if chunk_size <= 0:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        self._chunk_size = chunk_size

        init_cert_pinning()

        if client is None:
            client = self._build_client(
                access_token=access_token,
                refresh_token=refresh_token,
                app_key=app_key,
                app_secret=app_secret,
                timeout=timeout,
                max_retries_on_error=max_retries_on_error,
            )
        self._client = client

    @classmethod
    def from_access_token(cls, access_token: str, **kwargs: Any) -> DropboxOperations:
        """Backend authenticated with a long-lived access token."""
        return cls(access_token, **kwargs)

    @classmethod
    def from_refresh_token(
        cls,
        refresh_token: str,
        app_key: str,
        app_secret: str,
        **kwargs: Any,
    ) -> DropboxOperations:
        """Backend that obtains short-lived access tokens from a refresh token."""
        return cls(refresh_token=refresh_token, app_key=app_key, app_secret=app_secret, **kwargs)

    @staticmethod
    def _build_client(
        *,
        access_token: str | None,
        refresh_token: str | None,
        app_key: str | None,
        app_secret: str | None,
        timeout: float,
        max_retries_on_error: int,
    ) -> dropbox.Dropbox:
        # Environment is only consulted when no credential was passed in
        if not any((access_token, refresh_token, app_key, app_secret)):
            access_token = os.environ.get(ACCESS_TOKEN_ENV) or None
            refresh_token = os.environ.get(REFRESH_TOKEN_ENV) or None
            app_key = os.environ.get(APP_KEY_ENV) or None
            app_secret = os.environ.get(APP_SECRET_ENV) or None

        common: dict[str, Any] = {
            "session": pinned_session(),
            "timeout": timeout,
            "max_retries_on_error": max_retries_on_error,
        }

        if access_token:
            logger.debug("Creating Dropbox client from access token")
            return dropbox.Dropbox(oauth2_access_token=access_token, **common)

        if refresh_token:
            if not app_key or not app_secret:
                msg = "A refresh token requires both app_key and app_secret"
                raise ConfigurationError(msg)
            logger.debug("Creating Dropbox client from refresh token")
            return dropbox.Dropbox(
                oauth2_refresh_token=refresh_token,
                app_key=app_key,
                app_secret=app_secret,
                **common,
            )

        msg = (
            "No Dropbox credentials: pass access_token, or refresh_token with "
            f"app_key and app_secret, or set {ACCESS_TOKEN_ENV} / {REFRESH_TOKEN_ENV}"
        )
        raise ConfigurationError(msg)

    # ------------------------------------------------------------------
    # Identity / capabilities
    # ------------------------------------------------------------------

    @property
    def kind(self) -> str:
        return "dropbox"

    @property
    def name(self) -> str | None:
        return None

    @property
    def supports_is_hidden_metadata(self) -> bool:
        return False

    @property
    def supports_is_read_only_metadata(self) -> bool:
        return False

    @property
    def supports_last_write_time_metadata(self) -> bool:
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> DropboxOperations:
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the SDK client.  Later calls are no-ops."""
        client, self._client = self._client, None
        if client is not None:
            await asyncio.to_thread(client.close)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def correct_path(self, path: str | None) -> str | None:
        return correct_path(path)

    async def get_link_info(self, full_name: str) -> LinkInfo | None:
        """Resolve a path, returning ``None`` when nothing exists there."""
        if not full_name:
            msg = "full_name must not be empty"
            raise ValueError(msg)

        path = correct_path(full_name)
        if path == ROOT_DIRECTORY:
            return RootDirectoryInfo()

        client = self._require_client()
        logger.debug("get_metadata %s", path)
        try:
            metadata = await asyncio.to_thread(client.files_get_metadata, path)
        except ApiError as e:
            if _is_not_found(e):
                return None
            raise

        return _to_info(metadata)

    async def update_metadata(self, link: Link, metadata: LinkMetadata) -> LinkInfo | None:
        """Dropbox has no writable hidden/read-only/mtime fields; re-resolve only."""
        _require(link, "link")
        _require(metadata, "metadata")
        return await self.get_link_info(link.full_name)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def read_file(self, file: FileLink, stream: BinaryIO) -> None:
        """Stream the file's content into ``stream``."""
        _require(file, "file")
        _require(stream, "stream")
        client = self._require_client()

        def _do_read() -> None:
            logger.debug("download %s", file.full_name)
            _, response = client.files_download(file.full_name)
            with contextlib.closing(response):
                for chunk in response.iter_content(chunk_size=self._chunk_size):
                    if chunk:
                        stream.write(chunk)

        await asyncio.to_thread(_do_read)

    async def write_file(self, file: FileLink, stream: BinaryIO, overwrite: bool) -> FileLinkInfo:
        """Upload ``stream`` to the file.

        Uses overwrite mode when the file exists and ``overwrite`` is set;
        otherwise add mode, which fails on conflict.  A link without info is
        resolved first when ``overwrite`` is set.
        """
        _require(file, "file")
        _require(stream, "stream")
        client = self._require_client()

        if overwrite and file.info is None:
            exists = await self.get_link_info(file.full_name) is not None
        else:
            exists = file.exists
        mode = files.WriteMode.overwrite if exists and overwrite else files.WriteMode.add
        metadata = await asyncio.to_thread(self._upload, client, file.full_name, stream, mode)
        return FileLinkInfo(metadata)

    def _upload(
        self,
        client: Any,
        path: str,
        stream: BinaryIO,
        mode: files.WriteMode,
    ) -> files.FileMetadata:
        first = read_chunk(stream, self._chunk_size)
        if len(first) < self._chunk_size:
            logger.debug("upload %s (%d bytes)", path, len(first))
            return client.files_upload(first, path, mode=mode)

        # Larger than one chunk: upload session, one chunk in memory at a time
        logger.debug("upload session %s", path)
        start = client.files_upload_session_start(first)
        offset = len(first)
        commit = files.CommitInfo(path=path, mode=mode)
        while True:
            chunk = read_chunk(stream, self._chunk_size)
            cursor = files.UploadSessionCursor(session_id=start.session_id, offset=offset)
            if len(chunk) < self._chunk_size:
                logger.debug("upload session %s finished (%d bytes)", path, offset + len(chunk))
                return client.files_upload_session_finish(chunk, cursor, commit)
            client.files_upload_session_append_v2(chunk, cursor)
            offset += len(chunk)

    async def move_file(
        self,
        source: FileLink,
        destination: FileLink,
        overwrite: bool,
    ) -> FileLinkInfo:
        """Move a file.  With ``overwrite`` an existing destination is replaced.

        The source kind is checked before anything moves; a link without info
        is resolved first.  Replacing is not atomic: the destination is
        deleted before the retried move, so a failed retry loses it.
        """
        _require(source, "source")
        _require(destination, "destination")

        info = await self._resolve(source)
        if info is not None and not isinstance(info, FileLinkInfo):
            msg = f"Source is a directory: {source.full_name}"
            raise IsADirectoryError(msg)

        metadata = await self._move(source.full_name, destination.full_name, overwrite)
        if not isinstance(metadata, files.FileMetadata):
            msg = f"Moved entry is not a file: {destination.full_name}"
            raise IsADirectoryError(msg)
        return FileLinkInfo(metadata)

    async def delete_file(self, file: FileLink) -> None:
        _require(file, "file")
        client = self._require_client()
        logger.debug("delete %s", file.full_name)
        await asyncio.to_thread(client.files_delete_v2, file.full_name)

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    async def create_directory(self, directory: DirectoryLink) -> DirectoryLinkInfo | None:
        """Create a folder, returning ``None`` if the provider refuses it."""
        _require(directory, "directory")
        client = self._require_client()

        logger.debug("create_folder %s", directory.full_name)
        try:
            result = await asyncio.to_thread(client.files_create_folder_v2, directory.full_name)
        except ApiError as e:
            if isinstance(e.error, files.CreateFolderError):
                logger.debug("create_folder %s refused: %s", directory.full_name, e.error)
                return None
            raise

        return DirectoryLinkInfo(result.metadata)

    async def move_directory(
        self,
        source: DirectoryLink,
        destination: DirectoryLink,
    ) -> DirectoryLinkInfo:
        """Move a folder and its subtree.  An existing destination is an error."""
        _require(source, "source")
        _require(destination, "destination")

        info = await self._resolve(source)
        if isinstance(info, FileLinkInfo):
            msg = f"Source is not a directory: {source.full_name}"
            raise NotADirectoryError(msg)

        metadata = await self._move(source.full_name, destination.full_name, overwrite=False)
        if not isinstance(metadata, files.FolderMetadata):
            msg = f"Moved entry is not a directory: {destination.full_name}"
            raise NotADirectoryError(msg)
        return DirectoryLinkInfo(metadata)

    async def delete_directory(self, directory: DirectoryLink, recursive: bool) -> None:
        """Delete a folder and its subtree.

        Raises:
            DirectoryNotEmptyError: ``recursive`` is false and the folder has
                at least one entry.  Nothing is deleted in that case.
        """
        _require(directory, "directory")
        client = self._require_client()
        path = directory.full_name

        if not recursive:
            logger.debug("list_folder %s (emptiness check)", path)
            page = await asyncio.to_thread(
                client.files_list_folder, to_provider_path(path), limit=1
            )
            if page.entries:
                msg = "The directory is not empty."
                raise DirectoryNotEmptyError(msg)

        logger.debug("delete %s", path)
        await asyncio.to_thread(client.files_delete_v2, path)

    async def get_links(
        self,
        directory: DirectoryLink,
        options: ListingOptions,
    ) -> list[LinkInfo]:
        """List entries under ``directory``.

        Follows listing cursors until the provider reports no more pages.
        Marks ``options.recursive_handled`` and, when a pattern was given,
        ``options.search_pattern_handled``.
        """
        _require(directory, "directory")
        _require(options, "options")
        client = self._require_client()

        entries = await asyncio.to_thread(
            self._list_folder, client, directory.full_name, options.recursive
        )
        options.recursive_handled = True

        pattern = options.search_pattern if options.has_search_pattern else None
        if pattern is not None:
            options.search_pattern_handled = True

        links: list[LinkInfo] = []
        for metadata in entries:
            # Skip the folder itself
            own_path = metadata.path_lower
            if own_path is not None and same_path(own_path, directory.full_name):
                continue
            if pattern is not None and not matches_pattern(metadata.name, pattern):
                continue

            if options.search_for_files and isinstance(metadata, files.FileMetadata):
                links.append(FileLinkInfo(metadata))
            elif options.search_for_directories and isinstance(metadata, files.FolderMetadata):
                links.append(DirectoryLinkInfo(metadata))

        return links

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _resolve(self, link: Link) -> LinkInfo | None:
        """The link's own info, or a fresh lookup when it carries none."""
        if link.info is not None:
            return link.info
        return await self.get_link_info(link.full_name)

    def _require_client(self) -> Any:
        """Return the client, raising if the backend was closed."""
        if self._client is None:
            msg = "Backend is closed."
            raise RuntimeError(msg)
        return self._client

    @staticmethod
    def _list_folder(client: Any, path: str, recursive: bool) -> list[files.Metadata]:
        logger.debug("list_folder %s (recursive=%s)", path, recursive)
        result = client.files_list_folder(to_provider_path(path), recursive=recursive)
        entries = list(result.entries)
        while result.has_more:
            result = client.files_list_folder_continue(result.cursor)
            entries.extend(result.entries)
        return entries

    async def _move(self, from_path: str, to_path: str, overwrite: bool) -> files.Metadata:
        client = self._require_client()

        def _do_move() -> files.Metadata:
            logger.debug("move %s -> %s", from_path, to_path)
            try:
                return client.files_move_v2(from_path, to_path).metadata
            except ApiError as e:
                if not (overwrite and _is_destination_conflict(e)):
                    raise

            logger.info("Replacing %s with %s", to_path, from_path)
            client.files_delete_v2(to_path)
            try:
                return client.files_move_v2(from_path, to_path).metadata
            except ApiError:
                logger.warning(
                    "Move %s -> %s failed after the destination was deleted", from_path, to_path
                )
                raise

        return await asyncio.to_thread(_do_move)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _require(value: object, name: str) -> None:
    if value is None:
        msg = f"{name} must not be None"
        raise ValueError(msg)


def _to_info(metadata: files.Metadata) -> LinkInfo | None:
    """Wrap provider metadata in the matching info variant."""
    if isinstance(metadata, files.FolderMetadata):
        return DirectoryLinkInfo(metadata)
    if isinstance(metadata, files.FileMetadata):
        return FileLinkInfo(metadata)
    # DeletedMetadata and unknown subtypes
    return None


def _is_not_found(e: ApiError) -> bool:
    """True for a metadata lookup that failed because nothing is at the path."""
    err = e.error
    if not isinstance(err, files.GetMetadataError) or not err.is_path():
        return False
    lookup = err.get_path()
    return lookup.is_not_found() or lookup.is_not_folder()


def _is_destination_conflict(e: ApiError) -> bool:
    err = e.error
    if not isinstance(err, files.RelocationError) or not err.is_to():
        return False
    return err.get_to().is_conflict()
