"""
Error taxonomy for output uploads.

Every error carries the output name and/or relative path it relates to so the
wrapping layer can render an actionable message.
"""
from enum import Enum
from typing import Optional


class IOSide(Enum):
    """Which side of a copy failed."""
    LOCAL_READ = "local_read"
    REMOTE_WRITE = "remote_write"


class DataStoreError(RuntimeError):
    """Raised by store implementations when a remote operation fails."""


class ReferenceNotFound(DataStoreError):
    """Raised when reading a reference that holds no object."""

    def __init__(self, reference: str):
        super().__init__(f"Reference not found: {reference}")
        self.reference = reference


class UploadError(RuntimeError):
    """Base class for every error raised by the upload engine."""

    code = "UPLOAD_ERROR"

    def __init__(
        self,
        message: str,
        output_name: Optional[str] = None,
        rel_path: Optional[str] = None,
    ):
        super().__init__(message)
        self.output_name = output_name
        self.rel_path = rel_path

    def with_output(self, output_name: str) -> "UploadError":
        """Attach the output name if the error was raised below the dispatcher."""
        if self.output_name is None:
            self.output_name = output_name
        return self

    def __str__(self) -> str:
        message = super().__str__()
        context = []
        if self.output_name is not None:
            context.append(f"output={self.output_name}")
        if self.rel_path is not None:
            context.append(f"path={self.rel_path}")
        if context:
            return f"{message} ({', '.join(context)})"
        return message


class MissingOutput(UploadError):
    """A declared output never materialized on disk."""

    code = "MISSING_OUTPUT"

    def __init__(self, output_name: str, path: str):
        super().__init__(f"Declared output not found at {path}", output_name=output_name)
        self.path = path


class DimensionalityMismatch(UploadError):
    """On-disk kind disagrees with the declared dimensionality."""

    code = "DIMENSIONALITY_MISMATCH"

    def __init__(self, output_name: str, declared: str, observed: str):
        super().__init__(
            f"Declared {declared} but found {observed} on disk",
            output_name=output_name,
        )
        self.declared = declared
        self.observed = observed


class UnsupportedFileKind(UploadError):
    """A symlink or special file was found where a regular file or directory was expected."""

    code = "UNSUPPORTED_FILE_KIND"

    def __init__(self, rel_path: str, kind: str, output_name: Optional[str] = None):
        super().__init__(
            f"Unsupported file kind '{kind}'",
            output_name=output_name,
            rel_path=rel_path,
        )
        self.kind = kind


class UploadIOError(UploadError):
    """Local read or remote write failure. The underlying error is chained as __cause__."""

    code = "UPLOAD_IO_ERROR"

    def __init__(
        self,
        side: IOSide,
        path: str,
        cause: Optional[BaseException] = None,
        output_name: Optional[str] = None,
        rel_path: Optional[str] = None,
    ):
        if cause is None:
            reason = "unknown error"
        else:
            reason = str(cause) or type(cause).__name__
        action = "read" if side == IOSide.LOCAL_READ else "write"
        super().__init__(
            f"Failed to {action} {path}: {reason}",
            output_name=output_name,
            rel_path=rel_path,
        )
        self.side = side
        self.path = path
        self.cause = cause


class Cancelled(UploadError):
    """Upload aborted by an external cancellation signal."""

    code = "CANCELLED"

    def __init__(self, output_name: Optional[str] = None, rel_path: Optional[str] = None):
        super().__init__("Upload cancelled", output_name=output_name, rel_path=rel_path)


class InvalidPrimitive(UploadError):
    """A primitive output file could not be parsed into its declared type."""

    code = "INVALID_PRIMITIVE"

    def __init__(self, output_name: str, reason: str):
        super().__init__(f"Invalid primitive value: {reason}", output_name=output_name)
        self.reason = reason


class UnsupportedOutputType(UploadError):
    """The declared type is neither a blob nor a simple type."""

    code = "UNSUPPORTED_OUTPUT_TYPE"

    def __init__(self, output_name: str):
        super().__init__("Output type is not supported", output_name=output_name)


class InvalidOutputName(UploadError):
    """A declared output name is not a single path component."""

    code = "INVALID_OUTPUT_NAME"

    def __init__(self, output_name: str):
        super().__init__(f"Invalid output name {output_name!r}", output_name=output_name)
