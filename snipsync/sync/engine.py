"""Incremental snippet synchronization engine."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .cache import DEFAULT_MAX_ITEMS, DEFAULT_TTL_SECONDS, HashCache
from .compare import Comparator
from .conflict import ConflictResolution, ConflictResolver, ConflictStrategy
from .fingerprints import HashVariant, fast_fingerprint, fingerprint, fingerprints_equal
from .protocol import (
    ComparisonRecord,
    LocalArtifact,
    RemoteArtifact,
    SyncAction,
    SyncOptions,
    SyncReport,
)
from .stores import LocalStore, RemoteStore

logger = logging.getLogger("snipsync.sync.engine")

ROUND_TRIP_PROBE = "_test_encoding_consistency.css"


@dataclass
class SyncSettings:
    """Settings for sync operations."""

    hash_variant: str = HashVariant.FAST.value
    force_overwrite: bool = False
    extension: str = ".css"
    cache_ttl: float = DEFAULT_TTL_SECONDS
    cache_max_items: int = DEFAULT_MAX_ITEMS

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SyncSettings":
        raw = config.get("sync", {}) if config else {}
        snippets = config.get("snippets", {}) if config else {}
        return cls(
            hash_variant=str(raw.get("hash_variant", HashVariant.FAST.value)),
            force_overwrite=bool(raw.get("force_overwrite", False)),
            extension=str(snippets.get("extension", ".css")),
            cache_ttl=float(raw.get("cache_ttl", DEFAULT_TTL_SECONDS)),
            cache_max_items=int(raw.get("cache_max_items", DEFAULT_MAX_ITEMS)),
        )

    def options(
        self,
        selected_names: Optional[Iterable[str]] = None,
        force_overwrite: Optional[bool] = None,
        hash_variant: Optional[str] = None,
    ) -> SyncOptions:
        """Build pass options, falling back to the configured defaults."""
        return SyncOptions(
            force_overwrite=self.force_overwrite if force_overwrite is None else force_overwrite,
            selected_names=set(selected_names) if selected_names else None,
            hash_variant=HashVariant(hash_variant or self.hash_variant),
        )


class IncrementalSyncEngine:
    """Pushes and pulls snippets, transferring only what actually changed.

    One engine owns one hash cache. Passes run one remote call at a time and
    must not overlap on the same instance.
    """

    def __init__(
        self,
        local: LocalStore,
        remote: RemoteStore,
        settings: Optional[SyncSettings] = None,
        cache: Optional[HashCache] = None,
        progress_callback: Optional[Callable[[str, int, int], None]] = None,
    ):
        self.local = local
        self.remote = remote
        self.settings = settings or SyncSettings()
        self.progress_callback = progress_callback

        self.cache = cache if cache is not None else HashCache(
            ttl=self.settings.cache_ttl,
            max_items=self.settings.cache_max_items,
        )
        self.comparator = Comparator(remote, self.cache)
        self.resolver = ConflictResolver(local, remote)

    async def sync_to_remote(self, options: Optional[SyncOptions] = None) -> SyncReport:
        """Upload new snippets and, when forced, overwrite changed ones.

        Listing failures propagate to the caller; failures on individual
        snippets end up in ``SyncReport.conflicts``.
        """
        options = options or self.settings.options()
        started = time.perf_counter()

        local_artifacts = await self.local.list_artifacts()
        targets = self._select(local_artifacts, options)
        unmatched = self._unmatched(local_artifacts, options)
        for name in unmatched:
            logger.warning("No local snippet named %s", name)

        if not targets:
            if unmatched:
                report = SyncReport(
                    success=False,
                    message=f"No local snippet named {', '.join(unmatched)}",
                    conflicts=unmatched,
                )
            else:
                report = SyncReport(success=True, message="No snippets to sync")
            report.elapsed_ms = _elapsed_ms(started)
            return report

        remote_artifacts = await self.remote.list_artifacts()
        report = await self.sync_artifacts(targets, remote_artifacts, options)
        report.conflicts.extend(unmatched)
        return report.finalize(_elapsed_ms(started))

    async def sync_artifacts(
        self,
        local_artifacts: Sequence[LocalArtifact],
        remote_artifacts: Sequence[RemoteArtifact],
        options: SyncOptions,
    ) -> SyncReport:
        """Compare the given listings and apply the resulting actions."""
        started = time.perf_counter()
        report = SyncReport()

        targets = self._select(local_artifacts, options)
        records = await self.comparator.compare(targets, remote_artifacts, options.hash_variant)
        logger.info("Incremental sync: %d snippets to process", len(records))

        for index, record in enumerate(records, start=1):
            try:
                await self._apply(record, options.force_overwrite, report)
            except Exception as e:
                logger.error("Failed to sync %s: %s", record.name, e)
                report.conflicts.append(record.name)
            self._report_progress(record.name, index, len(records))

        report.total_processed = len(records)
        report.finalize(_elapsed_ms(started))
        logger.info("Incremental sync finished: %s", report.message)
        return report

    async def _apply(self, record: ComparisonRecord, force_overwrite: bool, report: SyncReport) -> None:
        """Carry out the action chosen for one snippet."""
        if record.action == SyncAction.SKIP:
            report.skipped.append(record.name)
            logger.debug("Skipped (unchanged): %s", record.name)

        elif record.action == SyncAction.UPLOAD:
            created = await self.remote.create_or_update(
                record.name,
                record.local_content or "",
                f"Add new CSS snippet: {record.name}",
            )
            if created:
                report.uploaded.append(record.name)
                logger.info("Uploaded new snippet: %s", record.name, extra={"snippet": record.name})
            else:
                report.conflicts.append(record.name)

        elif record.action == SyncAction.UPDATE:
            if not force_overwrite:
                # Never clobber remote edits without an explicit overwrite.
                report.conflicts.append(record.name)
                logger.warning("Conflict detected: %s differs from the remote copy", record.name)
                return
            updated = await self.remote.create_or_update(
                record.remote_path or record.name,
                record.local_content or "",
                f"Update CSS snippet: {record.name} (incremental sync)",
            )
            if updated:
                report.updated.append(record.name)
                logger.info("Updated snippet: %s", record.name, extra={"snippet": record.name})
            else:
                report.conflicts.append(record.name)

        else:
            if record.error:
                logger.warning("Conflict for %s: %s", record.name, record.error)
            else:
                logger.warning("Unexpected sync action %s for %s", record.action, record.name)
            report.conflicts.append(record.name)

    async def get_comparison_report(
        self,
        hash_variant: Optional[HashVariant] = None,
    ) -> List[ComparisonRecord]:
        """Classify every local snippet without touching either store."""
        variant = HashVariant(hash_variant or self.settings.hash_variant)
        local_artifacts = self._select(await self.local.list_artifacts(), SyncOptions())
        remote_artifacts = await self.remote.list_artifacts()
        return await self.comparator.compare(local_artifacts, remote_artifacts, variant)

    async def remote_fingerprint(
        self,
        artifact: RemoteArtifact,
        hash_variant: Optional[HashVariant] = None,
    ) -> str:
        variant = HashVariant(hash_variant or self.settings.hash_variant)
        return await self.comparator.remote_fingerprint(artifact, variant)

    def clear_cache(self) -> None:
        """Forget every cached remote fingerprint."""
        self.cache.clear()

    async def sync_from_remote(self, options: Optional[SyncOptions] = None) -> SyncReport:
        """Download remote snippets that are missing or, when forced, changed locally."""
        options = options or self.settings.options()
        started = time.perf_counter()
        report = SyncReport()

        remote_artifacts = [
            artifact
            for artifact in await self.remote.list_artifacts()
            if artifact.name.endswith(self.settings.extension) and options.selects(artifact.name)
        ]
        local_by_name = {artifact.name: artifact for artifact in await self.local.list_artifacts()}

        for index, remote in enumerate(remote_artifacts, start=1):
            local = local_by_name.get(remote.name)
            try:
                content: Optional[str] = None
                if local is not None:
                    remote_fp, content = await self.comparator.fetch_remote(remote, options.hash_variant)
                    local_fp = fingerprint(local.content, options.hash_variant)
                    if fingerprints_equal(local_fp, remote_fp):
                        report.skipped.append(remote.name)
                        continue
                    if not options.force_overwrite:
                        report.conflicts.append(remote.name)
                        logger.warning("Conflict detected: local %s differs from the remote copy", remote.name)
                        continue

                if content is None:
                    content = await self.remote.download_content(remote.path)
                if await self.local.write_artifact(remote.name, content):
                    report.downloaded.append(remote.name)
                    logger.info("Downloaded snippet: %s", remote.name, extra={"snippet": remote.name})
                else:
                    report.conflicts.append(remote.name)
            except Exception as e:
                logger.error("Failed to download %s: %s", remote.name, e)
                report.conflicts.append(remote.name)
            finally:
                self._report_progress(remote.name, index, len(remote_artifacts))

        report.total_processed = len(remote_artifacts)
        return report.finalize(_elapsed_ms(started))

    async def sync_bidirectional(self, options: Optional[SyncOptions] = None) -> SyncReport:
        """Pull first, then push. Stops after the pull if it left conflicts."""
        options = options or self.settings.options()

        pulled = await self.sync_from_remote(options)
        if pulled.conflicts and not options.force_overwrite:
            pulled.message = f"Stopped after pull with unresolved conflicts: {pulled.message}"
            return pulled

        pushed = await self.sync_to_remote(options)
        return pulled.merge(pushed)

    async def resolve_conflict(
        self,
        name: str,
        strategy: ConflictStrategy = ConflictStrategy.KEEP_LOCAL,
    ) -> ConflictResolution:
        """Settle one conflicting snippet by keeping the local or remote copy."""
        remote_by_name = {artifact.name: artifact for artifact in await self.remote.list_artifacts()}
        return await self.resolver.resolve(name, strategy, remote_by_name.get(name))

    async def get_status(self) -> Dict[str, Any]:
        """Get current sync status."""
        local_artifacts = self._select(await self.local.list_artifacts(), SyncOptions())
        remote_artifacts = await self.remote.list_artifacts()
        remote_names = {artifact.name for artifact in remote_artifacts}

        return {
            "local_count": len(local_artifacts),
            "remote_count": len(remote_artifacts),
            "shared": [artifact.name for artifact in local_artifacts if artifact.name in remote_names],
            "hash_variant": HashVariant(self.settings.hash_variant).value,
            "cache": self.cache.stats(),
        }

    async def verify_round_trip(self, content: str) -> Dict[str, Any]:
        """Upload a probe file, read it back and compare fingerprints.

        The probe is deleted again whenever the upload went through, even if
        the download fails. A rejected upload reports ``consistent=False``.
        """
        original = fast_fingerprint(content)

        if not await self.remote.create_or_update(ROUND_TRIP_PROBE, content, "Test encoding consistency"):
            logger.warning("Remote store rejected the upload of %s", ROUND_TRIP_PROBE)
            return {"original": original, "downloaded": "", "consistent": False}

        try:
            downloaded = fast_fingerprint(await self.remote.download_content(ROUND_TRIP_PROBE))
        finally:
            try:
                await self.remote.delete(ROUND_TRIP_PROBE, "Clean up test file")
            except Exception as e:
                logger.warning("Failed to clean up %s: %s", ROUND_TRIP_PROBE, e)

        return {
            "original": original,
            "downloaded": downloaded,
            "consistent": fingerprints_equal(original, downloaded),
        }

    def _select(self, artifacts: Iterable[LocalArtifact], options: SyncOptions) -> List[LocalArtifact]:
        return [
            artifact
            for artifact in artifacts
            if artifact.name.endswith(self.settings.extension) and options.selects(artifact.name)
        ]

    def _unmatched(self, artifacts: Iterable[LocalArtifact], options: SyncOptions) -> List[str]:
        """Selected names with no matching local snippet, sorted."""
        if options.selected_names is None:
            return []
        present = {artifact.name for artifact in artifacts if artifact.name.endswith(self.settings.extension)}
        return sorted(set(options.selected_names) - present)

    def _report_progress(self, message: str, current: int, total: int) -> None:
        """Report progress if callback is configured."""
        if self.progress_callback:
            self.progress_callback(message, current, total)
        logger.debug("Sync progress: %s (%d/%d)", message, current, total)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


__all__ = ["IncrementalSyncEngine", "SyncSettings", "ROUND_TRIP_PROBE"]
