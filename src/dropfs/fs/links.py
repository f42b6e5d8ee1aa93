"""Link identities: a rooted path plus the info snapshot the caller holds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .utils import correct_path, split_path

if TYPE_CHECKING:
    from .types import DirectoryLinkInfo, FileLinkInfo, LinkInfo, RootDirectoryInfo


@dataclass(frozen=True)
class Link:
    """A named file-system entry.

    ``info`` is whatever snapshot the caller resolved last; backends use it
    only where the contract says so (e.g. choosing the upload mode).
    """

    full_name: str
    info: LinkInfo | None = None

    def __post_init__(self) -> None:
        if not self.full_name:
            msg = "full_name must not be empty"
            raise ValueError(msg)
        object.__setattr__(self, "full_name", correct_path(self.full_name))

    @property
    def name(self) -> str:
        return split_path(self.full_name)[1]

    @property
    def exists(self) -> bool:
        return self.info is not None and self.info.exists


@dataclass(frozen=True)
class FileLink(Link):
    """Link to a file."""

    info: FileLinkInfo | None = None


@dataclass(frozen=True)
class DirectoryLink(Link):
    """Link to a directory."""

    info: DirectoryLinkInfo | RootDirectoryInfo | None = None
