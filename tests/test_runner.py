"""Tests for the UploadRunner error-file conventions."""
import pytest

from output_uploader import (
    ErrorDocument,
    LiteralMap,
    LiteralMapSerializer,
    LiteralType,
    MemoryDataStore,
    MissingOutput,
    UploadConfig,
    UploadIOError,
    Uploader,
    UploadRunner,
    Variable,
    VariableMap,
)
from output_uploader.errors import DataStoreError
from output_uploader.models import DataLoadingFormat, ErrorKind, IOStrategy


def _runner(error_file="error.txt", config=None):
    store = MemoryDataStore()
    serializer = LiteralMapSerializer(store)
    uploader = Uploader(store, serializer, DataLoadingFormat.JSON, IOStrategy.UPLOAD_ON_EXIT, error_file, config)
    return UploadRunner(uploader, serializer), store, serializer


SCHEMA = VariableMap({"x": Variable(LiteralType.single_blob())})


@pytest.mark.asyncio
async def test_uploads_outputs_when_task_succeeded(tmp_path):
    (tmp_path / "x").write_bytes(b"data")
    runner, store, serializer = _runner()

    result = await runner.run(SCHEMA, tmp_path, "output", "raw")

    assert isinstance(result, LiteralMap)
    assert await serializer.read_structured("output", LiteralMap) == result
    assert await store.read_raw("raw/x") == b"data"


@pytest.mark.asyncio
async def test_task_error_file_replaces_outputs(tmp_path):
    (tmp_path / "x").write_bytes(b"data")
    (tmp_path / "error.txt").write_text("model diverged at step 12")
    runner, store, serializer = _runner()

    result = await runner.run(SCHEMA, tmp_path, "output", "raw")

    assert isinstance(result, ErrorDocument)
    document = await serializer.read_structured("output", ErrorDocument)
    assert document.code == "USER"
    assert document.message == "model diverged at step 12"
    assert document.kind == ErrorKind.NON_RECOVERABLE
    assert store.keys() == ["output"]


def test_error_file_name_may_be_absolute(tmp_path):
    absolute = tmp_path / "elsewhere" / "err"
    runner, _, _ = _runner(error_file=str(absolute))
    assert runner.error_file_path(tmp_path / "outputs") == absolute


def test_no_error_file(tmp_path):
    runner, _, _ = _runner()
    assert runner.read_task_error(tmp_path) is None


def test_oversized_error_file(tmp_path):
    (tmp_path / "error.txt").write_bytes(b"e" * 32)
    runner, _, _ = _runner(config=UploadConfig(max_error_file_size=16))

    with pytest.raises(UploadIOError):
        runner.read_task_error(tmp_path)


def test_error_file_that_is_a_directory(tmp_path):
    (tmp_path / "error.txt").mkdir()
    runner, _, _ = _runner()

    with pytest.raises(UploadIOError):
        runner.read_task_error(tmp_path)


@pytest.mark.asyncio
async def test_upload_failure_is_written_to_failure_file(tmp_path):
    outputs = tmp_path / "outputs"
    outputs.mkdir()
    runner, store, _ = _runner()

    with pytest.raises(MissingOutput):
        await runner.run(SCHEMA, outputs, "output", "raw")

    assert not (outputs / "error.txt").exists()
    text = (outputs / "error.txt.upload-failure").read_text()
    assert text.startswith("[MISSING_OUTPUT]")
    assert "kind: NON_RECOVERABLE" in text
    assert store.keys() == []


def test_failure_file_name_may_be_overridden(tmp_path):
    store = MemoryDataStore()
    serializer = LiteralMapSerializer(store)
    uploader = Uploader(store, serializer, error_file_name="error.txt")
    runner = UploadRunner(uploader, serializer, failure_file_name=str(tmp_path / "failures" / "last.txt"))

    assert runner.failure_file_path(tmp_path / "outputs") == tmp_path / "failures" / "last.txt"


class FlakyStore(MemoryDataStore):
    """Memory store whose first write fails."""

    def __init__(self):
        super().__init__()
        self.failures_left = 1

    async def write_raw(self, reference, stream):
        if self.failures_left:
            self.failures_left -= 1
            raise DataStoreError("503 service unavailable")
        return await super().write_raw(reference, stream)


@pytest.mark.asyncio
async def test_retry_after_recoverable_failure_uploads_outputs(tmp_path):
    (tmp_path / "x").write_bytes(b"data")
    store = FlakyStore()
    serializer = LiteralMapSerializer(store)
    uploader = Uploader(store, serializer, error_file_name="error.txt")
    runner = UploadRunner(uploader, serializer)

    with pytest.raises(UploadIOError):
        await runner.run(SCHEMA, tmp_path, "output", "raw")
    assert "kind: RECOVERABLE" in (tmp_path / "error.txt.upload-failure").read_text()

    result = await runner.run(SCHEMA, tmp_path, "output", "raw")

    assert isinstance(result, LiteralMap)
    assert await serializer.read_structured("output", LiteralMap) == result
    assert not (tmp_path / "error.txt.upload-failure").exists()
    assert not (tmp_path / "error.txt").exists()
