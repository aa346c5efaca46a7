"""Conflict resolution strategies for snippet synchronization."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .protocol import RemoteArtifact
from .stores import LocalStore, RemoteStore

logger = logging.getLogger("snipsync.sync.conflict")


class ConflictStrategy(str, Enum):
    """How to settle a snippet that differs locally and remotely."""
    KEEP_LOCAL = "keep_local"
    KEEP_REMOTE = "keep_remote"
    MANUAL = "manual"


@dataclass
class ConflictResolution:
    """Result of conflict resolution."""

    name: str
    strategy: ConflictStrategy
    applied: bool
    message: str = ""


class ConflictResolver:
    """Resolves snippet conflicts by pushing or pulling one side."""

    def __init__(
        self,
        local: LocalStore,
        remote: RemoteStore,
        strategy: ConflictStrategy = ConflictStrategy.MANUAL,
    ):
        self.local = local
        self.remote = remote
        self.strategy = strategy

    async def resolve(
        self,
        name: str,
        strategy: Optional[ConflictStrategy] = None,
        remote_artifact: Optional[RemoteArtifact] = None,
    ) -> ConflictResolution:
        """Resolve a single conflict, defaulting to the configured strategy."""
        chosen = ConflictStrategy(strategy or self.strategy)

        if chosen == ConflictStrategy.KEEP_LOCAL:
            return await self._keep_local(name, remote_artifact)
        elif chosen == ConflictStrategy.KEEP_REMOTE:
            return await self._keep_remote(name, remote_artifact)
        else:  # MANUAL
            return ConflictResolution(
                name=name,
                strategy=chosen,
                applied=False,
                message="Marked for manual resolution",
            )

    async def _keep_local(self, name: str, remote_artifact: Optional[RemoteArtifact]) -> ConflictResolution:
        """Overwrite the remote copy with the local snippet."""
        content = await self.local.read_artifact(name)
        path = remote_artifact.path if remote_artifact else name
        applied = await self.remote.create_or_update(
            path,
            content,
            f"Resolve conflict: keep local version of {name}",
        )
        if applied:
            logger.info("Kept local version: %s", name)
        return ConflictResolution(
            name=name,
            strategy=ConflictStrategy.KEEP_LOCAL,
            applied=bool(applied),
            message="Uploaded local version" if applied else "Remote store rejected the upload",
        )

    async def _keep_remote(self, name: str, remote_artifact: Optional[RemoteArtifact]) -> ConflictResolution:
        """Overwrite the local snippet with the remote copy."""
        path = remote_artifact.path if remote_artifact else name
        content = await self.remote.download_content(path)
        applied = await self.local.write_artifact(name, content)
        if applied:
            logger.info("Applied remote version: %s", name)
        return ConflictResolution(
            name=name,
            strategy=ConflictStrategy.KEEP_REMOTE,
            applied=bool(applied),
            message="Downloaded remote version" if applied else "Local store rejected the write",
        )


__all__ = ["ConflictStrategy", "ConflictResolution", "ConflictResolver"]
