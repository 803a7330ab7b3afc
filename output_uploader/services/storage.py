"""
Storage Services - Single Responsibility: move bytes to and from a remote store.

All stores implement IDataStore. References are opaque strings; callers build
child references with ``construct_reference`` instead of concatenating.
"""
import asyncio
import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Dict, List, Union

from ..errors import DataStoreError, ReferenceNotFound

logger = logging.getLogger(__name__)


def join_reference(base: str, *parts: str) -> str:
    """
    Join a base reference with relative components using '/'.

    Parts are split on '/' only; any other character, backslash included,
    stays inside its segment. Empty components are ignored; '..' segments are
    rejected so a child can never escape its base.
    """
    segments: List[str] = []
    for part in parts:
        for segment in str(part).split("/"):
            if segment in ("", "."):
                continue
            if segment == "..":
                raise DataStoreError(f"Relative path escapes its base: {part}")
            segments.append(segment)

    if not segments:
        return base
    if not base:
        return "/".join(segments)
    if base.endswith("/"):
        return base + "/".join(segments)
    return f"{base}/{'/'.join(segments)}"


class MemoryDataStore:
    """
    In-memory store, used for tests and dry runs.

    Safe for concurrent writers on one event loop.
    """

    def __init__(self):
        self._objects: Dict[str, bytes] = {}

    async def write_raw(self, reference: str, stream: BinaryIO) -> str:
        data = await asyncio.to_thread(stream.read)
        self._objects[reference] = bytes(data)
        logger.debug(f"[memory] Wrote {len(data)} bytes to {reference}")
        return reference

    async def read_raw(self, reference: str) -> bytes:
        try:
            return self._objects[reference]
        except KeyError:
            raise ReferenceNotFound(reference) from None

    def construct_reference(self, base: str, *parts: str) -> str:
        return join_reference(base, *parts)

    def keys(self) -> List[str]:
        """All stored references, sorted."""
        return sorted(self._objects)

    def __contains__(self, reference: str) -> bool:
        return reference in self._objects


class FileSystemDataStore:
    """
    Store backed by a local directory.

    References are keys below ``root``; an optional ``file://`` prefix is
    accepted. Useful for local runs and for mounting a shared volume.
    """

    SCHEME = "file://"

    def __init__(self, root: Union[str, Path]):
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, reference: str) -> Path:
        key = reference[len(self.SCHEME):] if reference.startswith(self.SCHEME) else reference
        key = key.strip("/")
        if not key:
            raise DataStoreError(f"Empty reference: {reference!r}")
        path = (self._root / key).resolve()
        if path != self._root and self._root not in path.parents:
            raise DataStoreError(f"Reference escapes store root: {reference}")
        return path

    async def write_raw(self, reference: str, stream: BinaryIO) -> str:
        path = self._path_for(reference)

        def _copy():
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as dst:
                shutil.copyfileobj(stream, dst)

        try:
            await asyncio.to_thread(_copy)
        except OSError as e:
            raise DataStoreError(f"Failed to write {reference}: {e}") from e

        logger.debug(f"[fs] Wrote {path}")
        return reference

    async def read_raw(self, reference: str) -> bytes:
        path = self._path_for(reference)
        if not path.is_file():
            raise ReferenceNotFound(reference)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise DataStoreError(f"Failed to read {reference}: {e}") from e

    def construct_reference(self, base: str, *parts: str) -> str:
        return join_reference(base, *parts)
