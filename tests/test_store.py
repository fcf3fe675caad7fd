import json

import pytest

from embedding_module import store as store_module
from embedding_module.config import StoreConfig
from embedding_module.store import (
    InMemoryEmbeddingStore,
    LocalEmbeddingStore,
    StoredEmbedding,
    SupabaseEmbeddingStore,
    build_store,
)


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")

    def json(self):
        return self._payload


def test_memory_store_keeps_every_row_in_order():
    store = InMemoryEmbeddingStore()
    store.append(StoredEmbedding(chat_id="c1", embedding=[1.0], content="a"))
    store.append(StoredEmbedding(chat_id="c1", embedding=[1.0], content="a"))
    store.append(StoredEmbedding(chat_id="c2", embedding=[2.0], content="b"))
    assert [row.content for row in store.list_for_chat("c1")] == ["a", "a"]
    assert store.list_for_chat("missing") == []


def test_local_store_persists_across_instances(tmp_path):
    store = LocalEmbeddingStore(str(tmp_path))
    store.append(StoredEmbedding(chat_id="c1", embedding=[0.5, 0.25], content="hello", usage={"total_tokens": 2}))
    store.append(StoredEmbedding(chat_id="c2", embedding=[0.0, 1.0], content="other"))
    store.append(StoredEmbedding(chat_id="c1", embedding=[1.0, 0.0], content="world"))

    reopened = LocalEmbeddingStore(str(tmp_path))
    rows = reopened.list_for_chat("c1")
    assert [row.content for row in rows] == ["hello", "world"]
    assert rows[0].embedding == [0.5, 0.25]
    assert rows[1].embedding == [1.0, 0.0]
    assert rows[0].usage == {"total_tokens": 2}
    assert (tmp_path / "metadata.json").exists()
    assert (tmp_path / "embeddings.npy").exists()


def test_local_store_rejects_dimension_change(tmp_path):
    store = LocalEmbeddingStore(str(tmp_path))
    store.append(StoredEmbedding(chat_id="c1", embedding=[0.5, 0.25], content="hello"))
    with pytest.raises(ValueError):
        store.append(StoredEmbedding(chat_id="c1", embedding=[0.5], content="bad"))
    assert len(store.list_for_chat("c1")) == 1


def test_local_store_rejects_malformed_metadata(tmp_path):
    (tmp_path / "metadata.json").write_text(json.dumps({"not": "a list"}), encoding="utf-8")
    with pytest.raises(ValueError):
        LocalEmbeddingStore(str(tmp_path))


def test_supabase_store_inserts_row(monkeypatch):
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers, timeout=timeout)
        return FakeResponse(status_code=201)

    monkeypatch.setattr(store_module.requests, "post", fake_post)
    store = SupabaseEmbeddingStore("https://example.supabase.co/", "secret")
    store.append(StoredEmbedding(chat_id="c1", embedding=[0.5], content="hi", usage={"total_tokens": 1}))

    assert captured["url"] == "https://example.supabase.co/rest/v1/messages"
    assert captured["json"] == [{"chat_id": "c1", "embedding": [0.5], "usage": {"total_tokens": 1}, "content": "hi"}]
    assert captured["headers"]["apikey"] == "secret"
    assert captured["headers"]["Authorization"] == "Bearer secret"


def test_supabase_store_queries_rows_and_decodes_vectors(monkeypatch):
    captured = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        captured.update(url=url, params=params)
        return FakeResponse(
            [
                {"chat_id": "c1", "embedding": "[0.5,0.25]", "usage": None, "content": "hello", "created_at": "t1"},
                {"chat_id": "c1", "embedding": [1, 0], "usage": {"total_tokens": 1}, "content": "world", "created_at": "t2"},
            ]
        )

    monkeypatch.setattr(store_module.requests, "get", fake_get)
    rows = SupabaseEmbeddingStore("https://example.supabase.co", "secret").list_for_chat("c1")

    assert captured["params"]["chat_id"] == "eq.c1"
    assert [row.content for row in rows] == ["hello", "world"]
    assert rows[0].embedding == [0.5, 0.25]
    assert rows[1].embedding == [1.0, 0.0]
    assert rows[0].usage == {}


def test_supabase_store_raises_on_http_error(monkeypatch):
    monkeypatch.setattr(store_module.requests, "get", lambda *a, **k: FakeResponse(status_code=500))
    with pytest.raises(RuntimeError):
        SupabaseEmbeddingStore("https://example.supabase.co", "secret").list_for_chat("c1")


def test_build_store_selects_backend(tmp_path):
    assert isinstance(build_store(StoreConfig()), InMemoryEmbeddingStore)
    assert isinstance(build_store(StoreConfig(backend="local", store_dir=str(tmp_path))), LocalEmbeddingStore)
    assert isinstance(
        build_store(StoreConfig(backend="supabase", supabase_url="https://x.supabase.co", supabase_key="k")),
        SupabaseEmbeddingStore,
    )


@pytest.mark.parametrize(
    "config",
    [
        StoreConfig(backend="local"),
        StoreConfig(backend="supabase"),
        StoreConfig(backend="redis"),
    ],
)
def test_build_store_rejects_incomplete_config(config):
    with pytest.raises(ValueError):
        build_store(config)
