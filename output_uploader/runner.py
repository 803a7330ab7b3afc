"""
Runner - wraps the Uploader with the task process conventions.

* A task signals its own failure by leaving the error file in its output
  directory; the runner then writes an ErrorDocument instead of outputs.
* When the upload itself fails, the runner writes a readable description of
  the failure to its own failure file (next to the error file by default) and
  re-raises. The task error file is never written, so a retry after a
  recoverable failure uploads again instead of reporting a task error.
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from .errors import IOSide, UploadError, UploadIOError
from .models import ErrorDocument, ErrorKind, LiteralMap, VariableMap
from .orchestrator import Uploader

logger = logging.getLogger(__name__)


class UploadRunner:
    """
    Runs one upload for a finished task.

    Usage:
        runner = UploadRunner(uploader, serializer)
        result = await runner.run(schema, "/var/outputs", "meta/outputs", "raw")
    """

    FAILURE_SUFFIX = ".upload-failure"

    def __init__(self, uploader: Uploader, serializer, failure_file_name: Optional[str] = None):
        """
        Args:
            uploader: Configured Uploader
            serializer: ISerializer used for the ErrorDocument
            failure_file_name: Where upload failures are described; defaults to
                the error file name plus FAILURE_SUFFIX
        """
        self._uploader = uploader
        self._serializer = serializer
        self._failure_file_name = failure_file_name or uploader.error_file_name + self.FAILURE_SUFFIX

    @staticmethod
    def _resolve(local_root: Path, name: str) -> Path:
        path = Path(name)
        return path if path.is_absolute() else Path(local_root) / path

    def error_file_path(self, local_root: Path) -> Path:
        """Task error designator resolved against the output directory when relative."""
        return self._resolve(local_root, self._uploader.error_file_name)

    def failure_file_path(self, local_root: Path) -> Path:
        """File the runner describes its own upload failures in."""
        return self._resolve(local_root, self._failure_file_name)

    def read_task_error(self, local_root: Path) -> Optional[ErrorDocument]:
        """Return the task-authored error, or None when the task left no error file."""
        path = self.error_file_path(local_root)
        if not path.exists():
            return None

        if path.is_dir():
            raise UploadIOError(IOSide.LOCAL_READ, str(path), IsADirectoryError(f"Error file is a directory: {path}"))

        max_size = self._uploader.config.max_error_file_size
        try:
            size = path.stat().st_size
            if size > max_size:
                raise UploadIOError(
                    IOSide.LOCAL_READ, str(path), ValueError(f"Error file too large: {size} > {max_size} bytes")
                )
            message = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise UploadIOError(IOSide.LOCAL_READ, str(path), e) from e

        return ErrorDocument(code="USER", message=message, kind=ErrorKind.NON_RECOVERABLE)

    def write_failure(self, local_root: Path, error: BaseException) -> Optional[Path]:
        """Render ``error`` into the failure file. Returns the path written, or None."""
        path = self.failure_file_path(local_root)
        if isinstance(error, UploadError):
            document = ErrorDocument.from_error(error)
            text = f"[{document.code}] {document.message}\nkind: {document.kind.value}\n"
        else:
            text = f"[INTERNAL] {type(error).__name__}: {error}\n"

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            logger.error(f"Could not write failure file {path}: {e}")
            return None

        logger.info(f"Wrote failure description to {path}")
        return path

    async def run(
        self,
        schema: VariableMap,
        local_root: Union[str, Path],
        output_ref: str,
        raw_data_ref: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Union[LiteralMap, ErrorDocument]:
        """
        Upload outputs, or the task's own error document if it left one.

        Returns:
            The LiteralMap written, or the ErrorDocument written in its place
        """
        local_root = Path(local_root)
        logger.info(
            f"Upload starting (strategy={self._uploader.io_strategy.value}, "
            f"format={self._uploader.format.value})"
        )

        task_error = self.read_task_error(local_root)
        if task_error is not None:
            logger.warning(f"Task reported an error, writing error document to {output_ref}")
            try:
                await self._serializer.write_structured(output_ref, task_error)
            except UploadError:
                raise
            except Exception as e:
                raise UploadIOError(IOSide.REMOTE_WRITE, output_ref, e) from e
            return task_error

        stale = self.failure_file_path(local_root)
        if stale.is_file():
            logger.info(f"Removing failure file from a previous attempt: {stale}")
            try:
                stale.unlink()
            except OSError as e:
                logger.warning(f"Could not remove {stale}: {e}")

        try:
            return await self._uploader.recursive_upload(
                schema, local_root, output_ref, raw_data_ref, cancel_event=cancel_event
            )
        except Exception as e:
            logger.error(f"Upload failed: {e}")
            self.write_failure(local_root, e)
            raise
