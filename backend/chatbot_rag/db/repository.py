"""Document and chunk persistence on top of :class:`SQLiteDatabase`."""

from __future__ import annotations

import sqlite3
from collections import Counter
from typing import Any, Sequence

import orjson

from chatbot_rag.db.sqlite import SQLiteDatabase
from chatbot_rag.models.entities import Document, DocumentType, NewChunk, StoredChunk, TenantStats
from chatbot_rag.utils.ids import new_id
from chatbot_rag.utils.time import ms_to_datetime, now_ms

_DOCUMENT_COLUMNS = (
    "id, tenant_id, type, title, file_name, content, meta_json, processed, vectorized, created_at, updated_at"
)


class DocumentStore:
    """Key-value style access to the documents table."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def create(
        self,
        tenant_id: str,
        content: str | None,
        doc_type: DocumentType = "text",
        title: str | None = None,
        file_name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        document_id = new_id("doc")
        now = now_ms()
        self.db.execute(
            f"""
            INSERT INTO documents ({_DOCUMENT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, 0, 0, ?, ?)
            """,
            [
                document_id,
                tenant_id,
                doc_type,
                title,
                file_name,
                content,
                _dumps(metadata or {}),
                now,
                now,
            ],
        )
        self.db.commit()
        return Document(
            id=document_id,
            tenant_id=tenant_id,
            type=doc_type,
            title=title,
            file_name=file_name,
            content=content,
            metadata=dict(metadata or {}),
            processed=False,
            vectorized=False,
            created_at=ms_to_datetime(now),
            updated_at=ms_to_datetime(now),
        )

    def get(self, document_id: str) -> Document | None:
        row = self.db.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?",
            [document_id],
        ).fetchone()
        return _row_to_document(row) if row else None

    def list_for_tenant(self, tenant_id: str) -> list[Document]:
        rows = self.db.query(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE tenant_id = ? ORDER BY created_at DESC",
            [tenant_id],
        )
        return [_row_to_document(row) for row in rows]

    def set_status(self, document_id: str, *, processed: bool, vectorized: bool) -> bool:
        """Update the processing flags; returns False when the document is gone."""
        cursor = self.db.execute(
            "UPDATE documents SET processed = ?, vectorized = ?, updated_at = ? WHERE id = ?",
            [int(processed), int(vectorized), now_ms(), document_id],
        )
        self.db.commit()
        return cursor.rowcount > 0

    def delete(self, document_id: str) -> bool:
        """Delete a document; its chunks go with it through the foreign key."""
        cursor = self.db.execute("DELETE FROM documents WHERE id = ?", [document_id])
        self.db.commit()
        return cursor.rowcount > 0

    def delete_for_tenant(self, tenant_id: str) -> int:
        """Delete every document of a tenant and, through the cascade, all of its chunks."""
        cursor = self.db.execute("DELETE FROM documents WHERE tenant_id = ?", [tenant_id])
        self.db.commit()
        return cursor.rowcount


class ChunkStore:
    """Append-mostly store of embedded chunks, partitioned by tenant."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def insert_many(self, chunks: Sequence[NewChunk]) -> list[str]:
        if not chunks:
            return []
        now = now_ms()
        ids = [new_id("chk") for _ in chunks]
        with self.db.transaction() as cursor:
            cursor.executemany(
                """
                INSERT INTO chunks (
                  id, document_id, tenant_id, content, embedding, backend, model, dim, meta_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        chunk_id,
                        chunk.document_id,
                        chunk.tenant_id,
                        chunk.content,
                        _dumps(chunk.embedding),
                        chunk.backend,
                        chunk.model,
                        chunk.dim,
                        _dumps(chunk.metadata),
                        now,
                    )
                    for chunk_id, chunk in zip(ids, chunks)
                ],
            )
        return ids

    def list_for_tenant(self, tenant_id: str) -> list[StoredChunk]:
        """Every chunk of a tenant in insertion order, joined with its document title."""
        rows = self.db.query(
            """
            SELECT
              chunks.id,
              chunks.document_id,
              chunks.tenant_id,
              chunks.content,
              chunks.embedding,
              chunks.backend,
              chunks.model,
              chunks.dim,
              chunks.meta_json,
              COALESCE(documents.title, documents.file_name) AS title
            FROM chunks
            LEFT JOIN documents ON documents.id = chunks.document_id
            WHERE chunks.tenant_id = ?
            ORDER BY chunks.rowid ASC
            """,
            [tenant_id],
        )
        return [_row_to_chunk(row) for row in rows]

    def list_for_document(self, document_id: str) -> list[StoredChunk]:
        rows = self.db.query(
            """
            SELECT id, document_id, tenant_id, content, embedding, backend, model, dim, meta_json, NULL AS title
            FROM chunks
            WHERE document_id = ?
            ORDER BY rowid ASC
            """,
            [document_id],
        )
        return [_row_to_chunk(row) for row in rows]

    def models_for_tenant(self, tenant_id: str, exclude_document_id: str | None = None) -> Counter[str]:
        """Count stored chunks per embedding model for a tenant."""
        sql = "SELECT model, COUNT(*) AS count FROM chunks WHERE tenant_id = ?"
        params: list[Any] = [tenant_id]
        if exclude_document_id is not None:
            sql += " AND document_id != ?"
            params.append(exclude_document_id)
        rows = self.db.query(sql + " GROUP BY model", params)
        return Counter({row["model"]: int(row["count"]) for row in rows})

    def delete_for_document(self, document_id: str) -> int:
        cursor = self.db.execute("DELETE FROM chunks WHERE document_id = ?", [document_id])
        self.db.commit()
        return cursor.rowcount

    def count(self) -> int:
        row = self.db.execute("SELECT COUNT(*) AS count FROM chunks").fetchone()
        return int(row["count"]) if row else 0

    def tenant_stats(self, tenant_id: str) -> TenantStats:
        doc_row = self.db.execute(
            """
            SELECT COUNT(*) AS total, COALESCE(SUM(vectorized), 0) AS vectorized
            FROM documents WHERE tenant_id = ?
            """,
            [tenant_id],
        ).fetchone()
        models = self.models_for_tenant(tenant_id)
        return TenantStats(
            tenant_id=tenant_id,
            total_documents=int(doc_row["total"]),
            vectorized_documents=int(doc_row["vectorized"]),
            total_chunks=sum(models.values()),
            models=sorted(models),
        )


def _dumps(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def _loads(value: str | None, default: Any) -> Any:
    if not value:
        return default
    return orjson.loads(value)


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        tenant_id=row["tenant_id"],
        type=row["type"],
        title=row["title"],
        file_name=row["file_name"],
        content=row["content"],
        metadata=_loads(row["meta_json"], {}),
        processed=bool(row["processed"]),
        vectorized=bool(row["vectorized"]),
        created_at=ms_to_datetime(row["created_at"]),
        updated_at=ms_to_datetime(row["updated_at"]),
    )


def _row_to_chunk(row: sqlite3.Row) -> StoredChunk:
    return StoredChunk(
        id=row["id"],
        document_id=row["document_id"],
        tenant_id=row["tenant_id"],
        content=row["content"],
        embedding=[float(value) for value in orjson.loads(row["embedding"])],
        backend=row["backend"],
        model=row["model"],
        dim=int(row["dim"]),
        metadata=_loads(row["meta_json"], {}),
        title=row["title"],
    )


__all__ = ["DocumentStore", "ChunkStore"]
