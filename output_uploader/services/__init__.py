"""Store and serializer collaborators for the uploader."""
from .storage import MemoryDataStore, FileSystemDataStore, join_reference
from .http_storage import HTTPDataStore
from .serializer import LiteralMapSerializer

__all__ = [
    "MemoryDataStore",
    "FileSystemDataStore",
    "HTTPDataStore",
    "LiteralMapSerializer",
    "join_reference",
]
