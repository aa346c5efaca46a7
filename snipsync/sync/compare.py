"""Local-vs-remote comparison of snippet fingerprints."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .cache import HashCache
from .fingerprints import HashVariant, fingerprint, fingerprints_equal
from .protocol import ComparisonRecord, LocalArtifact, RemoteArtifact, SyncAction
from .stores import RemoteStore

logger = logging.getLogger("snipsync.sync.compare")


class Comparator:
    """Classifies local snippets as upload, update, skip or conflict.

    The comparator never writes to either store. Its only side effect is
    warming the hash cache with fingerprints of downloaded remote content.
    """

    def __init__(self, remote: RemoteStore, cache: HashCache):
        self.remote = remote
        self.cache = cache

    async def remote_fingerprint(self, artifact: RemoteArtifact, variant: HashVariant) -> str:
        """Fingerprint of the remote copy, downloading only on a cache miss."""
        value, _content = await self.fetch_remote(artifact, variant)
        return value

    async def fetch_remote(
        self,
        artifact: RemoteArtifact,
        variant: HashVariant,
    ) -> Tuple[str, Optional[str]]:
        """Return ``(fingerprint, content)``; content is None when the cache answered."""
        cached = self.cache.get(artifact.path, artifact.identity, variant)
        if cached is not None:
            logger.debug("Cache hit for %s@%s", artifact.path, artifact.identity)
            return cached, None

        content = await self.remote.download_content(artifact.path)
        value = fingerprint(content, variant)
        self.cache.put(artifact.path, artifact.identity, variant, value)
        return value, content

    async def compare(
        self,
        local_artifacts: Sequence[LocalArtifact],
        remote_artifacts: Sequence[RemoteArtifact],
        variant: HashVariant = HashVariant.FAST,
    ) -> List[ComparisonRecord]:
        """Produce one record per local snippet, in input order."""
        remote_by_name: Dict[str, RemoteArtifact] = {}
        for artifact in remote_artifacts:
            # First listing wins if a name appears twice (e.g. in subfolders).
            remote_by_name.setdefault(artifact.name, artifact)

        records: List[ComparisonRecord] = []
        for local in local_artifacts:
            records.append(await self._compare_one(local, remote_by_name.get(local.name), variant))

        logger.info("Compared %d snippets against %d remote files", len(records), len(remote_by_name))
        return records

    async def _compare_one(
        self,
        local: LocalArtifact,
        remote: Optional[RemoteArtifact],
        variant: HashVariant,
    ) -> ComparisonRecord:
        local_fingerprint = fingerprint(local.content, variant)

        if remote is None:
            return ComparisonRecord(
                name=local.name,
                local_fingerprint=local_fingerprint,
                remote_fingerprint="",
                action=SyncAction.UPLOAD,
                local_content=local.content,
            )

        try:
            remote_fingerprint = await self.remote_fingerprint(remote, variant)
        except Exception as e:
            logger.warning("Could not fingerprint remote copy of %s: %s", local.name, e)
            return ComparisonRecord(
                name=local.name,
                local_fingerprint=local_fingerprint,
                remote_fingerprint="",
                action=SyncAction.CONFLICT,
                remote_path=remote.path,
                error=str(e),
            )

        if fingerprints_equal(local_fingerprint, remote_fingerprint):
            return ComparisonRecord(
                name=local.name,
                local_fingerprint=local_fingerprint,
                remote_fingerprint=remote_fingerprint,
                action=SyncAction.SKIP,
                remote_path=remote.path,
            )

        return ComparisonRecord(
            name=local.name,
            local_fingerprint=local_fingerprint,
            remote_fingerprint=remote_fingerprint,
            action=SyncAction.UPDATE,
            local_content=local.content,
            remote_path=remote.path,
        )


__all__ = ["Comparator"]
