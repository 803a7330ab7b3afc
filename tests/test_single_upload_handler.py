"""Tests for the single file upload handler."""
from unittest.mock import AsyncMock

import pytest

from output_uploader.errors import IOSide, UploadIOError
from output_uploader.models import BlobDimensionality
from output_uploader.orchestrator.single_upload import SingleUploadHandler
from output_uploader.services import MemoryDataStore


@pytest.mark.asyncio
async def test_upload_copies_full_content(tmp_path):
    path = tmp_path / "x"
    path.write_bytes(b"\x00" * 70000 + b"tail")
    store = MemoryDataStore()

    literal = await SingleUploadHandler(store).upload(path, "raw/x")

    assert literal.blob.uri == "raw/x"
    assert literal.blob.metadata.type.dimensionality == BlobDimensionality.SINGLE
    assert await store.read_raw("raw/x") == path.read_bytes()


@pytest.mark.asyncio
async def test_zero_byte_file(tmp_path):
    path = tmp_path / "empty"
    path.write_bytes(b"")
    store = MemoryDataStore()

    await SingleUploadHandler(store).upload(path, "raw/empty")

    assert await store.read_raw("raw/empty") == b""


@pytest.mark.asyncio
async def test_uri_is_the_reference_echoed_by_store(tmp_path):
    path = tmp_path / "x"
    path.write_bytes(b"data")
    store = AsyncMock()
    store.write_raw.return_value = "s3://bucket/raw/x"

    literal = await SingleUploadHandler(store).upload(path, "raw/x")

    assert literal.blob.uri == "s3://bucket/raw/x"


@pytest.mark.asyncio
async def test_missing_local_file_is_local_read_error(tmp_path):
    store = AsyncMock()

    with pytest.raises(UploadIOError) as exc_info:
        await SingleUploadHandler(store).upload(tmp_path / "missing", "raw/x", rel_path="missing")

    assert exc_info.value.side == IOSide.LOCAL_READ
    assert exc_info.value.rel_path == "missing"
    assert isinstance(exc_info.value.__cause__, FileNotFoundError)
    store.write_raw.assert_not_awaited()


@pytest.mark.asyncio
async def test_unreadable_path_is_local_read_error(tmp_path):
    # opening a directory for reading fails with an OSError
    store = AsyncMock()

    with pytest.raises(UploadIOError) as exc_info:
        await SingleUploadHandler(store).upload(tmp_path, "raw/x")

    assert exc_info.value.side == IOSide.LOCAL_READ


@pytest.mark.asyncio
async def test_store_failure_is_remote_write_error_and_closes_file(tmp_path):
    path = tmp_path / "x"
    path.write_bytes(b"data")
    seen = {}

    async def failing_write(reference, stream):
        seen["stream"] = stream
        raise TimeoutError("store timed out")

    store = AsyncMock()
    store.write_raw.side_effect = failing_write

    with pytest.raises(UploadIOError) as exc_info:
        await SingleUploadHandler(store).upload(path, "raw/x")

    assert exc_info.value.side == IOSide.REMOTE_WRITE
    assert exc_info.value.path == "raw/x"
    assert "store timed out" in str(exc_info.value)
    assert seen["stream"]._handle.closed


@pytest.mark.asyncio
async def test_local_read_failure_during_write_keeps_local_side(tmp_path):
    path = tmp_path / "x"
    path.write_bytes(b"data")

    async def write_after_close(reference, stream):
        stream._handle.close()
        return stream.read()

    store = AsyncMock()
    store.write_raw.side_effect = write_after_close

    with pytest.raises(UploadIOError) as exc_info:
        await SingleUploadHandler(store).upload(path, "raw/x")

    assert exc_info.value.side == IOSide.LOCAL_READ
