"""Directory (multipart) upload handler."""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from ..errors import Cancelled, DataStoreError, IOSide, UploadError, UploadIOError
from ..models import BlobDimensionality, Literal, UploadConfig
from ..protocols import IDataStore
from .file_collector import FileCollector
from .models import UploadTask
from .parallel import pick_error
from .single_upload import SingleUploadHandler

logger = logging.getLogger(__name__)


class FolderUploadHandler:
    """
    Uploads a directory tree as one multipart blob.

    Every regular file at relative path ``p`` lands at
    ``construct_reference(reference, p)``; sub-directories only exist as key
    prefixes. Files are uploaded concurrently, bounded by
    ``config.max_parallel_uploads``.
    """

    def __init__(
        self,
        store: IDataStore,
        single_handler: Optional[SingleUploadHandler] = None,
        config: Optional[UploadConfig] = None,
    ):
        self._store = store
        self._single_handler = single_handler or SingleUploadHandler(store)
        self._config = config or UploadConfig()
        self._file_collector = FileCollector()

    def plan(self, folder_path: Path, reference: str) -> List[UploadTask]:
        """Walk ``folder_path`` and build one task per regular file, in path order."""
        files = self._file_collector.collect_files(folder_path)
        total = len(files)
        tasks: List[UploadTask] = []
        for idx, (file_path, rel_path) in enumerate(files, 1):
            try:
                child = self._store.construct_reference(reference, rel_path)
            except DataStoreError as e:
                raise UploadIOError(IOSide.REMOTE_WRITE, reference, e, rel_path=rel_path) from e
            tasks.append(
                UploadTask(file_path=file_path, rel_path=rel_path, reference=child, index=idx, total=total)
            )
        return tasks

    async def upload(
        self,
        folder_path: Path,
        reference: str,
        cancel_event: Optional[asyncio.Event] = None,
        format: str = "",
    ) -> Literal:
        """
        Upload every file below ``folder_path``.

        Partially uploaded files are left in place when a later file fails.

        Args:
            folder_path: Local directory
            reference: Remote base reference for the directory
            cancel_event: Checked before each file; once set no new upload starts
            format: Blob format tag copied into the literal metadata

        Returns:
            MULTIPART blob literal whose URI is ``reference``

        Raises:
            UnsupportedFileKind: symlink or special file in the tree
            UploadIOError: a file failed to upload (names the relative path)
            Cancelled: cancel_event was set
        """
        folder_path = Path(folder_path)
        tasks = await asyncio.to_thread(self.plan, folder_path, reference)

        logger.info(f"Uploading directory {folder_path} ({len(tasks)} files) to {reference}")

        semaphore = asyncio.Semaphore(self._config.max_parallel_uploads)
        failed = asyncio.Event()

        async def _run(task: UploadTask) -> None:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    raise Cancelled(rel_path=task.rel_path)
                if failed.is_set():
                    logger.debug(f"[{task.index}/{task.total}] Skipped after earlier failure: {task.rel_path}")
                    return
                logger.info(f"[{task.index}/{task.total}] Uploading: {task.rel_path}")
                try:
                    await self._single_handler.upload(task.file_path, task.reference, rel_path=task.rel_path)
                except BaseException:
                    failed.set()
                    raise

        outcomes = await asyncio.gather(*(_run(task) for task in tasks), return_exceptions=True)

        errors = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        error = pick_error(errors)
        if error is not None:
            if isinstance(error, UploadError):
                logger.error(f"Directory upload failed for {folder_path}: {error}")
            raise error

        logger.info(f"Uploaded {len(tasks)} files from {folder_path}")
        return Literal.for_blob(reference, BlobDimensionality.MULTIPART, format)
