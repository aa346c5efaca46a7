"""Tests for local-vs-remote snippet classification."""

from __future__ import annotations

import pytest

from fakes import MemoryRemoteStore
from snipsync.sync.cache import HashCache
from snipsync.sync.compare import Comparator
from snipsync.sync.fingerprints import HashVariant, fast_fingerprint, secure_fingerprint
from snipsync.sync.protocol import LocalArtifact, SyncAction


def _local(name: str, content: str) -> LocalArtifact:
    return LocalArtifact(name=name, content=content, path=name)


async def _compare(remote: MemoryRemoteStore, locals_, variant=HashVariant.FAST, cache=None):
    comparator = Comparator(remote, cache if cache is not None else HashCache())
    return await comparator.compare(locals_, await remote.list_artifacts(), variant)


@pytest.mark.asyncio
async def test_missing_remote_is_upload():
    remote = MemoryRemoteStore()

    [record] = await _compare(remote, [_local("a.css", "x")])

    assert record.action == SyncAction.UPLOAD
    assert record.remote_fingerprint == ""
    assert record.local_fingerprint == fast_fingerprint("x")
    assert record.local_content == "x"
    assert record.needs_sync
    assert remote.downloads == []


@pytest.mark.asyncio
async def test_identical_remote_is_skip():
    remote = MemoryRemoteStore({"a.css": "x"})

    [record] = await _compare(remote, [_local("a.css", "x")])

    assert record.action == SyncAction.SKIP
    assert record.local_fingerprint == record.remote_fingerprint
    assert record.local_content is None
    assert not record.needs_sync


@pytest.mark.asyncio
async def test_different_remote_is_update():
    remote = MemoryRemoteStore({"a.css": "y"})

    [record] = await _compare(remote, [_local("a.css", "x")])

    assert record.action == SyncAction.UPDATE
    assert record.remote_fingerprint == fast_fingerprint("y")
    assert record.local_content == "x"
    assert record.remote_path == "a.css"


@pytest.mark.asyncio
async def test_line_endings_and_trailing_newline_are_ignored():
    remote = MemoryRemoteStore({"a.css": "body{\ncolor:red}"})

    [record] = await _compare(remote, [_local("a.css", "body{\r\ncolor:red}\r\n")])

    assert record.action == SyncAction.SKIP


@pytest.mark.asyncio
async def test_records_follow_local_order():
    remote = MemoryRemoteStore({"b.css": "b", "c.css": "other"})
    locals_ = [_local("c.css", "c"), _local("a.css", "a"), _local("b.css", "b")]

    records = await _compare(remote, locals_)

    assert [r.name for r in records] == ["c.css", "a.css", "b.css"]
    assert [r.action for r in records] == [SyncAction.UPDATE, SyncAction.UPLOAD, SyncAction.SKIP]


@pytest.mark.asyncio
async def test_matching_is_by_name_only():
    remote = MemoryRemoteStore({"themes/a.css": "x"})

    [record] = await _compare(remote, [_local("a.css", "x")])

    assert record.action == SyncAction.SKIP
    assert record.remote_path == "themes/a.css"
    assert remote.downloads == ["themes/a.css"]


@pytest.mark.asyncio
async def test_renamed_file_is_not_detected():
    remote = MemoryRemoteStore({"old.css": "x"})

    [record] = await _compare(remote, [_local("new.css", "x")])

    assert record.action == SyncAction.UPLOAD


@pytest.mark.asyncio
async def test_cache_avoids_second_download():
    remote = MemoryRemoteStore({"a.css": "x"})
    cache = HashCache()

    await _compare(remote, [_local("a.css", "x")], cache=cache)
    await _compare(remote, [_local("a.css", "changed")], cache=cache)

    assert remote.downloads == ["a.css"]
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_remote_change_bypasses_cache():
    remote = MemoryRemoteStore({"a.css": "x"})
    cache = HashCache()

    await _compare(remote, [_local("a.css", "x")], cache=cache)
    remote.files["a.css"] = "edited remotely"
    [record] = await _compare(remote, [_local("a.css", "x")], cache=cache)

    assert record.action == SyncAction.UPDATE
    assert remote.downloads == ["a.css", "a.css"]


@pytest.mark.asyncio
async def test_secure_variant_produces_secure_fingerprints():
    remote = MemoryRemoteStore({"a.css": "x"})

    [record] = await _compare(remote, [_local("a.css", "x")], variant=HashVariant.SECURE)

    assert record.action == SyncAction.SKIP
    assert record.local_fingerprint == secure_fingerprint("x")
    assert record.remote_fingerprint == secure_fingerprint("x")


@pytest.mark.asyncio
async def test_download_failure_becomes_conflict_for_that_snippet_only():
    remote = MemoryRemoteStore({"a.css": "x", "b.css": "y"})
    remote.fail_downloads.add("a.css")

    records = await _compare(remote, [_local("a.css", "x"), _local("b.css", "y")])

    assert records[0].action == SyncAction.CONFLICT
    assert "timed out" in records[0].error
    assert records[1].action == SyncAction.SKIP


@pytest.mark.asyncio
async def test_comparator_never_writes():
    remote = MemoryRemoteStore({"a.css": "old"})

    await _compare(remote, [_local("a.css", "new"), _local("b.css", "fresh")])

    assert remote.writes == []


@pytest.mark.asyncio
async def test_fetch_remote_returns_content_only_when_downloaded():
    remote = MemoryRemoteStore({"a.css": "x"})
    comparator = Comparator(remote, HashCache())
    [artifact] = await remote.list_artifacts()

    first = await comparator.fetch_remote(artifact, HashVariant.FAST)
    second = await comparator.fetch_remote(artifact, HashVariant.FAST)

    assert first == (fast_fingerprint("x"), "x")
    assert second == (fast_fingerprint("x"), None)
    assert remote.downloads == ["a.css"]
