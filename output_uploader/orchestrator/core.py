"""Core uploader - classifies declared outputs and coordinates their upload."""
import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import (
    Cancelled,
    DataStoreError,
    DimensionalityMismatch,
    IOSide,
    InvalidOutputName,
    MissingOutput,
    UnsupportedFileKind,
    UnsupportedOutputType,
    UploadError,
    UploadIOError,
)
from ..models import (
    BlobDimensionality,
    DataLoadingFormat,
    IOStrategy,
    Literal,
    LiteralKind,
    LiteralMap,
    UploadConfig,
    VariableMap,
)
from ..protocols import IDataStore, ISerializer
from .file_collector import classify_path
from .folder_upload import FolderUploadHandler
from .models import OutputPlan, PathKind, Strategy
from .parallel import pick_error
from .primitives import PrimitiveReader
from .single_upload import SingleUploadHandler

logger = logging.getLogger(__name__)


def _is_valid_output_name(name: str) -> bool:
    """An output name must be exactly one path component below the local root."""
    if name in ("", ".", ".."):
        return False
    separators = {"/", os.sep, os.altsep} - {None}
    return not any(sep in name for sep in separators)


class Uploader:
    """
    Uploads a task's local outputs and writes the resulting LiteralMap.

    Follows:
    - Dependency Injection (store and serializer injected)
    - Single Responsibility (delegates to single/folder/primitive handlers)

    The format, I/O strategy and error file name are carried for the wrapping
    layer; the uploader neither branches on them nor touches the error file.

    Usage:
        uploader = Uploader(store, serializer, DataLoadingFormat.JSON,
                            IOStrategy.UPLOAD_ON_EXIT, "error.txt")
        await uploader.recursive_upload(schema, "/var/outputs", "meta/outputs", "raw")
    """

    def __init__(
        self,
        store: IDataStore,
        serializer: ISerializer,
        format: DataLoadingFormat = DataLoadingFormat.JSON,
        io_strategy: IOStrategy = IOStrategy.UPLOAD_ON_EXIT,
        error_file_name: str = "error.txt",
        config: Optional[UploadConfig] = None,
    ):
        """
        Initialize uploader with dependencies.

        Args:
            store: Remote store (IDataStore)
            serializer: Persists the LiteralMap (ISerializer)
            format: Data-loading format tag
            io_strategy: I/O strategy tag
            error_file_name: Error-reporting designator used by the wrapping layer
            config: Upload configuration
        """
        self._store = store
        self._serializer = serializer
        self._format = format
        self._io_strategy = io_strategy
        self._error_file_name = error_file_name
        self._config = config or UploadConfig()

        self._single_handler = SingleUploadHandler(store)
        self._folder_handler = FolderUploadHandler(store, self._single_handler, self._config)
        self._primitive_reader = PrimitiveReader(self._config.max_primitive_size)

    @property
    def format(self) -> DataLoadingFormat:
        return self._format

    @property
    def io_strategy(self) -> IOStrategy:
        return self._io_strategy

    @property
    def error_file_name(self) -> str:
        return self._error_file_name

    @property
    def config(self) -> UploadConfig:
        return self._config

    def classify(self, schema: VariableMap, local_root: Path) -> List[OutputPlan]:
        """
        Match every declared output against the local filesystem.

        Runs before any upload so a missing or mis-shaped output fails the
        call without touching the store.

        Raises:
            InvalidOutputName, MissingOutput, DimensionalityMismatch,
            UnsupportedFileKind, UnsupportedOutputType
        """
        plans: List[OutputPlan] = []

        for name in sorted(schema.variables):
            if not _is_valid_output_name(name):
                raise InvalidOutputName(name)
            variable = schema.variables[name]
            path = local_root / name
            kind = classify_path(path)

            if kind == PathKind.MISSING:
                if self._config.allow_missing_outputs:
                    logger.warning(f"Declared output '{name}' not found at {path}, skipping")
                    continue
                raise MissingOutput(name, str(path))

            if kind in (PathKind.SYMLINK, PathKind.SPECIAL):
                raise UnsupportedFileKind(name, kind.value, output_name=name)

            literal_type = variable.type
            if literal_type.kind == LiteralKind.BLOB:
                declared = literal_type.blob.dimensionality
                if declared == BlobDimensionality.SINGLE and kind == PathKind.FILE:
                    strategy = Strategy.SINGLE
                elif declared == BlobDimensionality.MULTIPART and kind == PathKind.DIRECTORY:
                    strategy = Strategy.MULTIPART
                else:
                    raise DimensionalityMismatch(name, declared.value, kind.value)
            elif literal_type.kind == LiteralKind.SIMPLE:
                if kind != PathKind.FILE:
                    raise DimensionalityMismatch(name, "SIMPLE", kind.value)
                strategy = Strategy.PRIMITIVE
            else:
                raise UnsupportedOutputType(name)

            plans.append(OutputPlan(name=name, variable=variable, local_path=path, strategy=strategy))

        return plans

    async def handle_blob(
        self,
        path: Path,
        reference: str,
        cancel_event: Optional[asyncio.Event] = None,
        format: str = "",
    ) -> Literal:
        """
        Upload ``path`` without a schema, inferring the dimensionality from disk.

        A directory becomes a MULTIPART blob, a regular file a SINGLE blob.
        """
        path = Path(path)
        kind = classify_path(path)
        if kind == PathKind.DIRECTORY:
            return await self._folder_handler.upload(path, reference, cancel_event, format=format)
        if kind == PathKind.FILE:
            return await self._single_handler.upload(path, reference, format=format)
        if kind == PathKind.MISSING:
            raise UploadIOError(IOSide.LOCAL_READ, str(path), FileNotFoundError(str(path)))
        raise UnsupportedFileKind(path.name, kind.value)

    async def _upload_output(
        self,
        plan: OutputPlan,
        raw_data_ref: str,
        cancel_event: Optional[asyncio.Event],
    ) -> Literal:
        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled(output_name=plan.name)
        if plan.strategy == Strategy.PRIMITIVE:
            return self._primitive_reader.read(plan.name, plan.local_path, plan.variable.type.simple)

        try:
            reference = self._store.construct_reference(raw_data_ref, plan.name)
        except DataStoreError as e:
            raise UploadIOError(IOSide.REMOTE_WRITE, raw_data_ref, e, output_name=plan.name) from e
        blob_format = plan.variable.type.blob.format
        logger.info(f"Uploading output '{plan.name}' ({plan.strategy.value}) to {reference}")

        if plan.strategy == Strategy.SINGLE:
            return await self._single_handler.upload(plan.local_path, reference, format=blob_format)
        return await self._folder_handler.upload(
            plan.local_path, reference, cancel_event, format=blob_format
        )

    async def recursive_upload(
        self,
        schema: VariableMap,
        local_root,
        output_ref: str,
        raw_data_ref: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> LiteralMap:
        """
        Upload every declared output found under ``local_root``.

        Blob output ``n`` is written to ``construct_reference(raw_data_ref, n)``.
        The LiteralMap is serialized exactly once at ``output_ref``, and only
        when every output succeeded.

        Args:
            schema: Declared outputs
            local_root: Directory holding one entry per output
            output_ref: Where the LiteralMap is written
            raw_data_ref: Base reference for uploaded bytes
            cancel_event: Optional cancellation signal

        Returns:
            The LiteralMap that was written

        Raises:
            UploadError: any classification or upload failure; nothing is serialized
        """
        local_root = Path(local_root)
        if not local_root.is_dir() or not os.access(local_root, os.R_OK | os.X_OK):
            raise UploadIOError(
                IOSide.LOCAL_READ,
                str(local_root),
                NotADirectoryError(f"Not a readable directory: {local_root}"),
            )

        plans = self.classify(schema, local_root)
        logger.info(f"Uploading {len(plans)} output(s) from {local_root}")

        semaphore = asyncio.Semaphore(self._config.max_parallel_outputs)

        async def _run(plan: OutputPlan) -> Literal:
            async with semaphore:
                try:
                    return await self._upload_output(plan, raw_data_ref, cancel_event)
                except UploadError as e:
                    e.with_output(plan.name)
                    raise

        outcomes = await asyncio.gather(*(_run(plan) for plan in plans), return_exceptions=True)

        literals: Dict[str, Literal] = {}
        errors = []
        for plan, outcome in zip(plans, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Failed to upload [{plan.name}]: {outcome}")
                errors.append(outcome)
            else:
                literals[plan.name] = outcome
                logger.info(f"Output [{plan.name}] completed")

        error = pick_error(errors)
        if error is not None:
            raise error

        outputs = LiteralMap(literals=literals)
        try:
            await self._serializer.write_structured(output_ref, outputs)
        except UploadError:
            raise
        except Exception as e:
            raise UploadIOError(IOSide.REMOTE_WRITE, output_ref, e) from e
        logger.info(f"Uploaded all outputs, metadata written to {output_ref}")
        return outputs
