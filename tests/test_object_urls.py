"""Tests for ObjectURLStore."""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from vaultclient.blobs import ObjectURLStore


@pytest.fixture
def store(tmp_path):
    store = ObjectURLStore(spool_dir=tmp_path)
    yield store
    store.close()


def test_create_materializes_bytes(store):
    url = store.create(b'hello', 'text/plain', 'greeting.txt')
    stored = store.get(url)

    assert url.startswith('file://')
    assert stored.path.suffix == '.txt'
    assert stored.path.read_bytes() == b'hello'
    assert stored.size == 5
    assert stored.mime_type == 'text/plain'
    assert store.read_bytes(url) == b'hello'
    assert store.is_live(url)


def test_urls_are_unique(store):
    first = store.create(b'same', 'text/plain')
    second = store.create(b'same', 'text/plain')

    assert first != second
    assert sorted(store.live_urls) == sorted([first, second])


def test_revoke_deletes_backing_file(store):
    url = store.create(b'data', 'image/png', 'pic.png')
    path = store.get(url).path

    assert store.revoke(url) is True
    assert not path.exists()
    assert not store.is_live(url)


def test_second_revoke_is_reported(store, caplog):
    url = store.create(b'data', 'image/png')
    store.revoke(url)

    assert store.revoke(url) is False
    assert 'already revoked' in caplog.text


def test_get_unknown_url_raises(store):
    with pytest.raises(KeyError):
        store.get('file:///nowhere')


def test_close_revokes_everything(tmp_path):
    store = ObjectURLStore(spool_dir=tmp_path)
    url = store.create(b'data', 'text/plain')
    root = store.get(url).path.parent

    store.close()

    assert store.live_urls == []
    assert not root.exists()
    with pytest.raises(RuntimeError):
        store.create(b'more', 'text/plain')


def test_stores_are_isolated(tmp_path):
    first = ObjectURLStore(spool_dir=tmp_path)
    second = ObjectURLStore(spool_dir=tmp_path)
    url = first.create(b'mine', 'text/plain')

    assert second.revoke(url) is False
    assert first.is_live(url)
    assert Path(first.get(url).path).exists()

    first.close()
    second.close()


@pytest.mark.asyncio
async def test_spool_writes_in_worker_thread_then_adopt(store):
    with patch('vaultclient.blobs.asyncio.to_thread', wraps=asyncio.to_thread) as to_thread:
        path = await store.spool(b'video-bytes', 'clip.mp4')

    assert to_thread.call_count == 1
    assert path.read_bytes() == b'video-bytes'
    assert store.live_urls == []

    url = store.adopt(path, 'video/mp4', 11)

    assert store.get(url).path == path
    assert store.live_urls == [url]


@pytest.mark.asyncio
async def test_discarded_spool_file_is_removed(store):
    path = await store.spool(b'stale')

    store.discard(path)

    assert not path.exists()
    assert store.live_urls == []


@pytest.mark.asyncio
async def test_spool_after_close_fails(tmp_path):
    store = ObjectURLStore(spool_dir=tmp_path)
    store.close()

    with pytest.raises(RuntimeError):
        await store.spool(b'late')
