"""Shared fixtures for dropfs tests.

``FakeDropbox`` stands in for ``dropbox.Dropbox``: it keeps entries in memory
and answers with real ``dropbox.files`` metadata objects and real
``ApiError`` unions, so the adapter's translation code runs unchanged.
"""

from __future__ import annotations

import io
import itertools
import posixpath
from datetime import datetime
from typing import TYPE_CHECKING

import pytest
from dropbox import files
from dropbox.exceptions import ApiError

from dropfs.fs.utils import content_hash
from dropfs.providers.dropbox import DropboxOperations

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

CLIENT_MODIFIED = datetime(2024, 1, 2, 3, 4, 5)


def _api_error(error: object) -> ApiError:
    return ApiError("req-id", error, None, None)


class FakeResponse:
    """Minimal ``requests.Response`` used by ``files_download``."""

    def __init__(self, content: bytes) -> None:
        self._content = content
        self.closed = False

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for i in range(0, len(self._content), chunk_size):
            yield self._content[i : i + chunk_size]

    def close(self) -> None:
        self.closed = True


class FakeDropbox:
    """In-memory Dropbox account."""

    def __init__(self, page_size: int = 1000) -> None:
        self.page_size = page_size
        self.entries: dict[str, files.Metadata] = {}
        self.contents: dict[str, bytes] = {}
        self.calls: list[str] = []
        self.responses: list[FakeResponse] = []
        self.close_count = 0
        self._ids = itertools.count(1)
        self._cursors: dict[str, list[files.Metadata]] = {}
        self._sessions: dict[str, bytearray] = {}

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_folder(self, path: str) -> files.FolderMetadata:
        self._ensure_parents(path)
        metadata = self._folder_metadata(path)
        self.entries[path.lower()] = metadata
        return metadata

    def add_file(self, path: str, data: bytes) -> files.FileMetadata:
        self._ensure_parents(path)
        metadata = self._file_metadata(path, data)
        self.entries[path.lower()] = metadata
        self.contents[path.lower()] = data
        return metadata

    # ------------------------------------------------------------------
    # SDK surface
    # ------------------------------------------------------------------

    def files_get_metadata(self, path: str) -> files.Metadata:
        self.calls.append("files_get_metadata")
        if path in ("", "/"):
            msg = "The root folder has no metadata"
            raise ValueError(msg)
        entry = self.entries.get(path.lower())
        if entry is None:
            raise _api_error(files.GetMetadataError.path(files.LookupError.not_found))
        return entry

    def files_download(self, path: str) -> tuple[files.FileMetadata, FakeResponse]:
        self.calls.append("files_download")
        entry = self.entries.get(path.lower())
        if not isinstance(entry, files.FileMetadata):
            raise _api_error(files.DownloadError.path(files.LookupError.not_found))
        response = FakeResponse(self.contents[path.lower()])
        self.responses.append(response)
        return entry, response

    def files_upload(
        self,
        f: bytes,
        path: str,
        mode: files.WriteMode = files.WriteMode.add,
    ) -> files.FileMetadata:
        self.calls.append("files_upload")
        if self._conflicts(path, mode):
            failed = files.UploadWriteFailed(
                reason=files.WriteError.conflict(files.WriteConflictError.file),
                upload_session_id=f"session-{next(self._ids)}",
            )
            raise _api_error(files.UploadError.path(failed))
        return self.add_file(path, bytes(f))

    def files_upload_session_start(
        self,
        f: bytes,
        close: bool = False,
    ) -> files.UploadSessionStartResult:
        self.calls.append("files_upload_session_start")
        session_id = f"session-{next(self._ids)}"
        self._sessions[session_id] = bytearray(f)
        return files.UploadSessionStartResult(session_id=session_id)

    def files_upload_session_append_v2(
        self,
        f: bytes,
        cursor: files.UploadSessionCursor,
        close: bool = False,
    ) -> None:
        self.calls.append("files_upload_session_append_v2")
        buffer = self._session(cursor)
        buffer.extend(f)

    def files_upload_session_finish(
        self,
        f: bytes,
        cursor: files.UploadSessionCursor,
        commit: files.CommitInfo,
    ) -> files.FileMetadata:
        self.calls.append("files_upload_session_finish")
        buffer = self._session(cursor)
        buffer.extend(f)
        del self._sessions[cursor.session_id]
        if self._conflicts(commit.path, commit.mode):
            conflict = files.WriteError.conflict(files.WriteConflictError.file)
            raise _api_error(files.UploadSessionFinishError.path(conflict))
        return self.add_file(commit.path, bytes(buffer))

    def files_move_v2(self, from_path: str, to_path: str) -> files.RelocationResult:
        self.calls.append("files_move_v2")
        source = self.entries.get(from_path.lower())
        if source is None:
            raise _api_error(files.RelocationError.from_lookup(files.LookupError.not_found))
        if to_path.lower() in self.entries:
            raise _api_error(
                files.RelocationError.to(files.WriteError.conflict(files.WriteConflictError.file))
            )

        self._ensure_parents(to_path)
        moved = None
        prefix = from_path.lower()
        for key in sorted(k for k in self.entries if k == prefix or k.startswith(prefix + "/")):
            new_path = to_path + self.entries[key].path_display[len(from_path) :]
            old = self.entries.pop(key)
            if isinstance(old, files.FileMetadata):
                data = self.contents.pop(key)
                entry = self._file_metadata(new_path, data)
                self.contents[new_path.lower()] = data
            else:
                entry = self._folder_metadata(new_path)
            self.entries[new_path.lower()] = entry
            if key == prefix:
                moved = entry
        return files.RelocationResult(metadata=moved)

    def files_delete_v2(self, path: str) -> files.DeleteResult:
        self.calls.append("files_delete_v2")
        entry = self.entries.get(path.lower())
        if entry is None:
            raise _api_error(files.DeleteError.path_lookup(files.LookupError.not_found))
        prefix = path.lower()
        for key in [k for k in self.entries if k == prefix or k.startswith(prefix + "/")]:
            self.entries.pop(key)
            self.contents.pop(key, None)
        return files.DeleteResult(metadata=entry)

    def files_create_folder_v2(self, path: str) -> files.CreateFolderResult:
        self.calls.append("files_create_folder_v2")
        if path.lower() in self.entries:
            conflict = files.WriteError.conflict(files.WriteConflictError.folder)
            raise _api_error(files.CreateFolderError.path(conflict))
        return files.CreateFolderResult(metadata=self.add_folder(path))

    def files_list_folder(
        self,
        path: str,
        recursive: bool = False,
        limit: int | None = None,
    ) -> files.ListFolderResult:
        self.calls.append("files_list_folder")
        if path == "/":
            msg = "The root folder is addressed as ''"
            raise ValueError(msg)
        prefix = path.lower()
        if prefix and not isinstance(self.entries.get(prefix), files.FolderMetadata):
            raise _api_error(files.ListFolderError.path(files.LookupError.not_found))

        found: list[files.Metadata] = []
        if recursive and prefix:
            # Dropbox echoes the folder itself in recursive listings
            found.append(self.entries[prefix])
        for key in sorted(self.entries):
            if not key.startswith(prefix + "/"):
                continue
            if not recursive and "/" in key[len(prefix) + 1 :]:
                continue
            found.append(self.entries[key])

        return self._page(found, limit or self.page_size)

    def files_list_folder_continue(self, cursor: str) -> files.ListFolderResult:
        self.calls.append("files_list_folder_continue")
        return self._page(self._cursors.pop(cursor), self.page_size)

    def close(self) -> None:
        self.close_count += 1

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _page(self, pending: list[files.Metadata], size: int) -> files.ListFolderResult:
        page, rest = pending[:size], pending[size:]
        cursor = f"cursor-{next(self._ids)}"
        if rest:
            self._cursors[cursor] = rest
        return files.ListFolderResult(entries=page, cursor=cursor, has_more=bool(rest))

    def _session(self, cursor: files.UploadSessionCursor) -> bytearray:
        buffer = self._sessions[cursor.session_id]
        if cursor.offset != len(buffer):
            msg = f"Bad offset {cursor.offset}, session holds {len(buffer)} bytes"
            raise ValueError(msg)
        return buffer

    def _conflicts(self, path: str, mode: files.WriteMode) -> bool:
        return path.lower() in self.entries and not mode.is_overwrite()

    def _ensure_parents(self, path: str) -> None:
        parent = posixpath.dirname(path)
        while parent not in ("", "/"):
            if parent.lower() not in self.entries:
                self.entries[parent.lower()] = self._folder_metadata(parent)
            parent = posixpath.dirname(parent)

    def _folder_metadata(self, path: str) -> files.FolderMetadata:
        return files.FolderMetadata(
            name=posixpath.basename(path),
            id=f"id:{next(self._ids)}",
            path_lower=path.lower(),
            path_display=path,
        )

    def _file_metadata(self, path: str, data: bytes) -> files.FileMetadata:
        n = next(self._ids)
        return files.FileMetadata(
            name=posixpath.basename(path),
            id=f"id:{n}",
            client_modified=CLIENT_MODIFIED,
            server_modified=CLIENT_MODIFIED,
            rev=f"{n:09x}",
            size=len(data),
            path_lower=path.lower(),
            path_display=path,
            content_hash=content_hash(io.BytesIO(data)),
        )


@pytest.fixture
def fake_dropbox() -> FakeDropbox:
    """Empty in-memory Dropbox account."""
    return FakeDropbox()


@pytest.fixture
async def ops(fake_dropbox: FakeDropbox) -> AsyncIterator[DropboxOperations]:
    """DropboxOperations backed by the in-memory account."""
    backend = DropboxOperations(client=fake_dropbox)
    yield backend
    await backend.close()
