"""Single file upload handler."""
import asyncio
import logging
from pathlib import Path
from typing import BinaryIO, Optional

from ..errors import IOSide, UploadError, UploadIOError
from ..models import BlobDimensionality, Literal
from ..protocols import IDataStore

logger = logging.getLogger(__name__)


class _LocalFileReader:
    """
    Read-only view over an open local file.

    Turns read failures into UploadIOError(LOCAL_READ) so they stay
    distinguishable from store failures raised by the same write call.
    """

    def __init__(self, handle: BinaryIO, path: Path, rel_path: Optional[str]):
        self._handle = handle
        self._path = path
        self._rel_path = rel_path

    def read(self, size: int = -1) -> bytes:
        try:
            return self._handle.read(size)
        except (OSError, ValueError) as e:
            # ValueError: read on a closed handle
            raise UploadIOError(IOSide.LOCAL_READ, str(self._path), e, rel_path=self._rel_path) from e

    def readable(self) -> bool:
        return True


class SingleUploadHandler:
    """Uploads one local file to one remote reference."""

    def __init__(self, store: IDataStore):
        self._store = store

    async def upload(
        self,
        path: Path,
        reference: str,
        rel_path: Optional[str] = None,
        format: str = "",
    ) -> Literal:
        """
        Stream the full content of ``path`` to ``reference``.

        Args:
            path: Local regular file
            reference: Destination reference in the store
            rel_path: Path relative to the directory being uploaded, for error context
            format: Blob format tag copied into the literal metadata

        Returns:
            SINGLE blob literal whose URI is the reference echoed by the store

        Raises:
            UploadIOError: local read (side LOCAL_READ) or store write (side REMOTE_WRITE) failed
        """
        path = Path(path)

        try:
            handle = await asyncio.to_thread(open, path, "rb")
        except OSError as e:
            raise UploadIOError(IOSide.LOCAL_READ, str(path), e, rel_path=rel_path) from e

        with handle:
            try:
                uri = await self._store.write_raw(reference, _LocalFileReader(handle, path, rel_path))
            except UploadError:
                raise
            except Exception as e:
                logger.error("Failed to upload %s to %s: %s", path, reference, e)
                raise UploadIOError(IOSide.REMOTE_WRITE, reference, e, rel_path=rel_path) from e

        logger.debug("Uploaded %s -> %s", path, uri)
        return Literal.for_blob(uri or reference, BlobDimensionality.SINGLE, format)
