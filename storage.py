"""
storage.py — Chunk, embed and persist a document for later retrieval.

Best-effort by contract: store_document never raises. A failure anywhere
downgrades the result to "stored_with_limitations" and is logged, so the
primary analysis response is unaffected.
"""

import logging
import os
import threading
import uuid
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, List, Optional

from langchain_text_splitters import RecursiveCharacterTextSplitter

from llm import embed_text

logger = logging.getLogger(__name__)

CHUNK_SIZE    = 1000
CHUNK_OVERLAP = 200
SEPARATORS    = ["\n\n", "\n", ". ", "? ", "! ", "; ", ", ", " "]
BATCH_SIZE    = 5

CHUNK_STORE_MAX_ROWS = int(os.environ.get("CHUNK_STORE_MAX_ROWS", "5000"))

STORED                  = "stored"
STORED_WITH_LIMITATIONS = "stored_with_limitations"
SKIPPED                 = "skipped"


@dataclass
class StorageResult:
    status:         str
    doc_id:         Optional[str] = None
    chunks_created: int = 0
    chunks_stored:  int = 0
    error:          Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status":         self.status,
            "doc_id":         self.doc_id,
            "chunks_created": self.chunks_created,
            "chunks_stored":  self.chunks_stored,
            "error":          self.error,
        }


class ChunkStore:
    """In-process stand-in for the external document_chunks table; keeps the newest max_rows rows."""

    def __init__(self, max_rows: int = CHUNK_STORE_MAX_ROWS):
        self._rows: Deque[dict] = deque(maxlen=max_rows)
        self._lock = threading.Lock()

    def insert(self, rows: List[dict]) -> int:
        with self._lock:
            self._rows.extend(rows)
        return len(rows)

    def chunks_for(self, user_id: str, doc_id: str) -> List[dict]:
        with self._lock:
            rows = [r for r in self._rows if r["user_id"] == user_id and r["doc_id"] == doc_id]
        return sorted(rows, key=lambda r: r["chunk_index"])

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


# ─────────────────────────────────────────────────────────────────────────────
# Chunking & embedding
# ─────────────────────────────────────────────────────────────────────────────

def split_text(text: str) -> List[str]:
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=CHUNK_SIZE,
        chunk_overlap=CHUNK_OVERLAP,
        separators=SEPARATORS,
    )
    return splitter.split_text(text)


def embed_chunks(chunks: List[str], embed: Callable[[str], List[float]],
                 batch_size: int = BATCH_SIZE) -> List[List[float]]:
    """
    Embed chunks batch by batch. Calls within a batch run concurrently and
    the whole batch completes before the next one starts; any failure
    propagates.
    """
    embeddings: List[List[float]] = []
    total_batches = (len(chunks) + batch_size - 1) // batch_size
    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for i in range(0, len(chunks), batch_size):
            batch = chunks[i:i + batch_size]
            embeddings.extend(executor.map(embed, batch))
            logger.debug("Processed batch %d/%d", i // batch_size + 1, total_batches)
    return embeddings


# ─────────────────────────────────────────────────────────────────────────────
# Main entry point
# ─────────────────────────────────────────────────────────────────────────────

def store_document(text: str, user_id: str, store: ChunkStore,
                   embed: Callable[[str], List[float]] = embed_text) -> StorageResult:
    doc_id = str(uuid.uuid4())
    result = StorageResult(status=STORED_WITH_LIMITATIONS, doc_id=doc_id)
    try:
        chunks = split_text(text)
        result.chunks_created = len(chunks)
        if not chunks:
            result.error = "Failed to create text chunks from document."
            return result

        vectors = embed_chunks(chunks, embed)
        created_at = datetime.now(timezone.utc).isoformat()
        rows: List[Dict] = [
            {
                "user_id":     user_id,
                "doc_id":      doc_id,
                "content":     chunk,
                "embedding":   vector,
                "chunk_index": index,
                "created_at":  created_at,
            }
            for index, (chunk, vector) in enumerate(zip(chunks, vectors))
        ]
        result.chunks_stored = store.insert(rows)
        result.status = STORED
        logger.info("Stored document %s: %d chunks", doc_id, result.chunks_stored)
    except Exception as e:
        logger.warning("Storage failed for document %s: %s", doc_id, e)
        result.error = "Document analysed but could not be stored for later retrieval."
    return result
