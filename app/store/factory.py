from __future__ import annotations

from functools import lru_cache

from sqlalchemy.orm import sessionmaker

from app.store.base import DocumentStore
from app.store.sql import SqlDocumentStore


def create_store(session_factory: sessionmaker | None = None) -> DocumentStore:
    if session_factory is None:
        from app.db import SessionLocal

        session_factory = SessionLocal
    return SqlDocumentStore(session_factory)


@lru_cache(maxsize=1)
def get_store() -> DocumentStore:
    return create_store()
