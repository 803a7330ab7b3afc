"""
Protocols (Interfaces) for Dependency Inversion.

The uploader only talks to its collaborators through these small interfaces.
"""
from typing import Any, BinaryIO, Protocol, Type, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class IDataStore(Protocol):
    """Interface for the remote object store."""

    async def write_raw(self, reference: str, stream: BinaryIO) -> str:
        """
        Copy the whole stream to reference. Returns the reference written.

        Implementations may read the stream fully into memory before sending;
        callers must not rely on chunked transfer.
        """
        ...

    async def read_raw(self, reference: str) -> bytes:
        """Read the full content stored at reference."""
        ...

    def construct_reference(self, base: str, *parts: str) -> str:
        """Join a base reference with relative path components."""
        ...


@runtime_checkable
class ISerializer(Protocol):
    """Interface for persisting structured records (LiteralMap, ErrorDocument)."""

    async def write_structured(self, reference: str, record: Any) -> None:
        """Persist record at reference."""
        ...

    async def read_structured(self, reference: str, cls: Type[T]) -> T:
        """Load a record of type cls from reference."""
        ...
