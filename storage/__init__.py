"""Persistence layer: SQLite-backed JSON document collections."""
from .documents import DocumentStore, SqliteDocumentStore, json_path
from .migrate import migrate
from .sqlite import get_conn

__all__ = ["DocumentStore", "SqliteDocumentStore", "get_conn", "json_path", "migrate"]
