"""Incremental snippet synchronization."""

from __future__ import annotations

from .cache import CacheEntry, HashCache
from .compare import Comparator
from .conflict import ConflictResolution, ConflictResolver, ConflictStrategy
from .engine import IncrementalSyncEngine, SyncSettings
from .fingerprints import (
    HashVariant,
    fast_fingerprint,
    fingerprint,
    fingerprints_equal,
    is_well_formed,
    normalize_content,
    secure_fingerprint,
)
from .protocol import ComparisonRecord, LocalArtifact, RemoteArtifact, SyncAction, SyncOptions, SyncReport
from .stores import (
    AuthorizationError,
    ContentTooLargeError,
    LocalStore,
    NotFoundError,
    RemoteStore,
    RemoteStoreError,
    TransportError,
)

__all__ = [
    # Fingerprints
    "HashVariant",
    "normalize_content",
    "fast_fingerprint",
    "secure_fingerprint",
    "fingerprint",
    "fingerprints_equal",
    "is_well_formed",
    # Cache
    "HashCache",
    "CacheEntry",
    # Protocol
    "SyncAction",
    "LocalArtifact",
    "RemoteArtifact",
    "ComparisonRecord",
    "SyncOptions",
    "SyncReport",
    # Stores
    "LocalStore",
    "RemoteStore",
    "RemoteStoreError",
    "TransportError",
    "AuthorizationError",
    "NotFoundError",
    "ContentTooLargeError",
    # Engine
    "Comparator",
    "IncrementalSyncEngine",
    "SyncSettings",
    # Conflict
    "ConflictResolver",
    "ConflictStrategy",
    "ConflictResolution",
]
