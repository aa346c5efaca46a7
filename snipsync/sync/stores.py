"""Interfaces the sync engine expects from its local and remote stores."""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from .protocol import LocalArtifact, RemoteArtifact


class RemoteStoreError(Exception):
    """Base error raised by remote store implementations."""


class TransportError(RemoteStoreError):
    """The remote store could not be reached or did not answer in time."""


class AuthorizationError(RemoteStoreError):
    """Credentials were rejected or lack the required permissions."""


class NotFoundError(RemoteStoreError):
    """The requested repository or file does not exist."""


class ContentTooLargeError(RemoteStoreError):
    """A remote file exceeds the size the client is willing to download."""


@runtime_checkable
class LocalStore(Protocol):
    """Where snippets live on this machine. Content is returned raw."""

    async def list_artifacts(self) -> List[LocalArtifact]:
        ...

    async def read_artifact(self, name: str) -> str:
        ...

    async def write_artifact(self, name: str, content: str) -> bool:
        ...


@runtime_checkable
class RemoteStore(Protocol):
    """Where snippets are mirrored. Implementations own request timeouts.

    ``create_or_update`` must look up the current version token itself when
    the target already exists.
    """

    async def list_artifacts(self) -> List[RemoteArtifact]:
        ...

    async def download_content(self, path: str) -> str:
        ...

    async def create_or_update(self, path: str, content: str, message: str) -> bool:
        ...

    async def delete(self, path: str, message: Optional[str] = None) -> bool:
        ...


__all__ = [
    "LocalStore",
    "RemoteStore",
    "RemoteStoreError",
    "TransportError",
    "AuthorizationError",
    "NotFoundError",
    "ContentTooLargeError",
]
