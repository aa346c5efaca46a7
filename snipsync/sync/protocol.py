"""Sync data structures shared by the comparator and the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Any, Dict, List, Optional

from .fingerprints import HashVariant


class SyncAction(str, Enum):
    """Classification assigned to a snippet before anything is transferred."""
    UPLOAD = "upload"
    UPDATE = "update"
    SKIP = "skip"
    CONFLICT = "conflict"


@dataclass
class LocalArtifact:
    """A snippet as found in the local store."""

    name: str
    content: str  # Raw text, not normalized
    path: str = ""
    last_modified: float = 0.0
    enabled: bool = False


@dataclass
class RemoteArtifact:
    """A snippet listed by the remote store (content is fetched on demand)."""

    name: str
    path: str
    identity: str  # Version token assigned by the remote store
    size: int = 0
    download_url: Optional[str] = None


@dataclass
class ComparisonRecord:
    """Local-vs-remote verdict for a single snippet."""

    name: str
    local_fingerprint: str
    remote_fingerprint: str
    action: SyncAction
    local_content: Optional[str] = None  # For UPLOAD/UPDATE actions
    remote_path: Optional[str] = None
    error: Optional[str] = None

    @property
    def needs_sync(self) -> bool:
        return self.action in (SyncAction.UPLOAD, SyncAction.UPDATE)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "local_fingerprint": self.local_fingerprint,
            "remote_fingerprint": self.remote_fingerprint,
            "action": self.action.value,
            "needs_sync": self.needs_sync,
        }
        if self.remote_path:
            result["remote_path"] = self.remote_path
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class SyncOptions:
    """Knobs for a single sync pass."""

    force_overwrite: bool = False
    selected_names: Optional[AbstractSet[str]] = None  # None means every snippet
    hash_variant: HashVariant = HashVariant.FAST

    def selects(self, name: str) -> bool:
        return self.selected_names is None or name in self.selected_names


@dataclass
class SyncReport:
    """Outcome of one sync pass."""

    success: bool = False
    message: str = ""
    uploaded: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    downloaded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)
    total_processed: int = 0
    elapsed_ms: int = 0

    def summary(self) -> str:
        parts = []
        if self.uploaded:
            parts.append(f"{len(self.uploaded)} uploaded")
        if self.updated:
            parts.append(f"{len(self.updated)} updated")
        if self.downloaded:
            parts.append(f"{len(self.downloaded)} downloaded")
        if self.skipped:
            parts.append(f"{len(self.skipped)} unchanged")
        if self.conflicts:
            parts.append(f"{len(self.conflicts)} conflicts")
        elapsed = format_elapsed(self.elapsed_ms)
        if not parts:
            return f"Processed {self.total_processed} snippets in {elapsed}"
        return f"{', '.join(parts)} in {elapsed}"

    def finalize(self, elapsed_ms: int) -> "SyncReport":
        """Stamp timing, success flag and message once every snippet is handled."""
        self.elapsed_ms = elapsed_ms
        self.success = not self.conflicts
        self.message = self.summary()
        return self

    def merge(self, other: "SyncReport") -> "SyncReport":
        merged = SyncReport(
            uploaded=self.uploaded + other.uploaded,
            updated=self.updated + other.updated,
            downloaded=self.downloaded + other.downloaded,
            skipped=self.skipped + other.skipped,
            conflicts=self.conflicts + other.conflicts,
            total_processed=self.total_processed + other.total_processed,
        )
        return merged.finalize(self.elapsed_ms + other.elapsed_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "uploaded": list(self.uploaded),
            "updated": list(self.updated),
            "downloaded": list(self.downloaded),
            "skipped": list(self.skipped),
            "conflicts": list(self.conflicts),
            "total_processed": self.total_processed,
            "elapsed_ms": self.elapsed_ms,
        }


def format_elapsed(elapsed_ms: int) -> str:
    if elapsed_ms >= 1000:
        return f"{elapsed_ms / 1000:.1f} s"
    return f"{elapsed_ms} ms"


__all__ = [
    "SyncAction",
    "LocalArtifact",
    "RemoteArtifact",
    "ComparisonRecord",
    "SyncOptions",
    "SyncReport",
    "format_elapsed",
]
