from app.store.base import MAX_IN_QUERY_VALUES, DocumentStore, StoreError
from app.store.factory import create_store, get_store
from app.store.sql import SqlDocumentStore

__all__ = [
    "MAX_IN_QUERY_VALUES",
    "DocumentStore",
    "SqlDocumentStore",
    "StoreError",
    "create_store",
    "get_store",
]
