import threading

from storage import (
    CHUNK_SIZE, STORED, STORED_WITH_LIMITATIONS, ChunkStore, embed_chunks, split_text, store_document,
)

LONG_TEXT = " ".join(f"Clause {i} describes how the service provider handles account data." for i in range(80))


def test_split_text_respects_chunk_size():
    chunks = split_text(LONG_TEXT)
    assert len(chunks) > 1
    assert all(len(c) <= CHUNK_SIZE for c in chunks)
    assert split_text("A short document.") == ["A short document."]


def test_embed_chunks_keeps_order_and_batches():
    active, peak = [0], [0]
    lock = threading.Lock()

    def embed(text):
        with lock:
            active[0] += 1
            peak[0] = max(peak[0], active[0])
        with lock:
            active[0] -= 1
        return [float(len(text))]

    chunks = ["a", "bb", "ccc", "dddd", "eeeee", "ffffff", "g"]
    vectors = embed_chunks(chunks, embed, batch_size=3)
    assert vectors == [[1.0], [2.0], [3.0], [4.0], [5.0], [6.0], [1.0]]
    assert peak[0] <= 3


def test_store_document_persists_rows():
    store = ChunkStore()
    result = store_document(LONG_TEXT, "user-7", store, embed=lambda text: [0.5, 0.5])

    assert result.status == STORED
    assert result.chunks_stored == result.chunks_created == len(store)
    rows = store.chunks_for("user-7", result.doc_id)
    assert [r["chunk_index"] for r in rows] == list(range(len(rows)))
    assert rows[0]["embedding"] == [0.5, 0.5]
    assert store.chunks_for("someone-else", result.doc_id) == []


def test_store_document_never_raises():
    def embed(text):
        raise ConnectionError("embedding service down")

    store = ChunkStore()
    result = store_document(LONG_TEXT, "user-7", store, embed=embed)
    assert result.status == STORED_WITH_LIMITATIONS
    assert result.chunks_stored == 0
    assert result.error
    assert len(store) == 0


def test_empty_text_is_stored_with_limitations():
    result = store_document("", "user-7", ChunkStore(), embed=lambda text: [1.0])
    assert result.status == STORED_WITH_LIMITATIONS
    assert result.to_dict()["chunks_created"] == 0


def test_chunk_store_keeps_newest_rows():
    store = ChunkStore(max_rows=3)
    first = store_document(LONG_TEXT, "user-1", store, embed=lambda text: [1.0])
    second = store_document("A second, much shorter document.", "user-2", store, embed=lambda text: [2.0])

    assert first.chunks_created > 3
    assert len(store) == 3
    assert len(store.chunks_for("user-2", second.doc_id)) == 1
    assert len(store.chunks_for("user-1", first.doc_id)) == 2
