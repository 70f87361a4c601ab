import os
import uuid
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from statement_worker.config.settings import Settings
from statement_worker.database.connection import close_pool, get_connection, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "statements_test")
    os.environ.setdefault("EXTRACTION_PROVIDER", "example")
    os.environ.setdefault("CHUNK_DELAY_SECONDS", "0")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 FROM documents LIMIT 1")
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to a migrated database")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[str], None, None]:
    document_ids: list[str] = []
    yield document_ids
    if not document_ids:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM transactions WHERE document_id = ANY(%s::uuid[])", (document_ids,))
            cur.execute("DELETE FROM documents WHERE id = ANY(%s::uuid[])", (document_ids,))
        conn.commit()


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def seed_document(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[str],
) -> Callable[..., str]:
    """Factory inserting a document row; returns its id."""

    def _seed(
        storage_path: str = "org/statement.pdf",
        mime_type: str = "application/pdf",
        status: str = "queued",
        file_hash: str | None = None,
    ) -> str:
        with db_conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO documents
                (organization_id, client_id, storage_path, mime_type, file_name, status, file_hash)
                VALUES (%s::uuid, %s::uuid, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    str(uuid.uuid4()),
                    str(uuid.uuid4()),
                    storage_path,
                    mime_type,
                    Path(storage_path).name,
                    status,
                    file_hash,
                ),
            )
            row = cur.fetchone()
            assert row is not None
            document_id = str(row[0])
        db_conn.commit()
        integration_cleanup.append(document_id)
        return document_id

    return _seed


@pytest.fixture
def statement_on_disk(
    seed_document: Callable[..., str],
    files_root: Path,
    statement_pdf_bytes: bytes,
) -> tuple[str, Path]:
    storage_path = f"{uuid.uuid4()}/statement.pdf"
    path = files_root / storage_path
    path.parent.mkdir(parents=True)
    path.write_bytes(statement_pdf_bytes)
    return seed_document(storage_path=storage_path), files_root
