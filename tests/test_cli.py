"""Tests for output_uploader CLI helpers."""
import json
import logging
import os

import pytest

from output_uploader.cli import CLIError, _load_env_file, _load_schema, _parse_enum, _setup_logging, run_cli
from output_uploader.models import DataLoadingFormat, LiteralKind


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    logging.disable(logging.NOTSET)
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for key in (
        "UPLOADER_STORE_ROOT",
        "UPLOADER_STORE_URL",
        "UPLOADER_MAX_PARALLEL",
        "UPLOADER_MAX_PARALLEL_OUTPUTS",
        "UPLOADER_ALLOW_MISSING",
    ):
        monkeypatch.delenv(key, raising=False)
    # keep a stray .env in the working directory out of the picture
    monkeypatch.chdir(tmp_path)


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / "uploader.env"
    env_path.write_text(
        "\n".join(
            [
                "# store settings",
                "UPLOADER_STORE_URL=http://localhost:3312",
                "UPLOADER_STORE_ROOT='/data/store'",
                "export UPLOADER_MAX_PARALLEL=2",
                "not a pair",
            ]
        ),
        encoding="utf-8",
    )

    _load_env_file(env_path)

    assert os.environ["UPLOADER_STORE_URL"] == "http://localhost:3312"
    assert os.environ["UPLOADER_STORE_ROOT"] == "/data/store"
    assert os.environ["UPLOADER_MAX_PARALLEL"] == "2"


def test_load_env_file_keeps_existing_values(tmp_path, monkeypatch):
    env_path = tmp_path / "uploader.env"
    env_path.write_text("UPLOADER_STORE_URL=http://from-file\n", encoding="utf-8")
    monkeypatch.setenv("UPLOADER_STORE_URL", "http://from-env")

    _load_env_file(env_path)
    assert os.environ["UPLOADER_STORE_URL"] == "http://from-env"

    _load_env_file(env_path, override=True)
    assert os.environ["UPLOADER_STORE_URL"] == "http://from-file"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError):
        _load_env_file(tmp_path / "nope.env")


def test_setup_logging_defaults_to_silent():
    mode = _setup_logging(debug=False, silent=False, log_level=None)
    assert mode == "silent"
    assert logging.getLogger().isEnabledFor(logging.ERROR) is False


def test_setup_logging_debug_mode():
    mode = _setup_logging(debug=True, silent=False, log_level=None)
    assert mode == "DEBUG"
    assert logging.getLogger().isEnabledFor(logging.DEBUG) is True


def test_setup_logging_explicit_level():
    mode = _setup_logging(debug=False, silent=False, log_level="warning")
    assert mode == "WARNING"
    assert logging.getLogger().isEnabledFor(logging.INFO) is False


def test_load_schema(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text(
        json.dumps(
            {
                "variables": {
                    "x": {"type": {"blob": {"dimensionality": "SINGLE"}}},
                    "n": {"type": {"simple": "integer"}},
                }
            }
        )
    )

    schema = _load_schema(path)

    assert schema.variables["x"].type.kind == LiteralKind.BLOB
    assert schema.variables["n"].type.kind == LiteralKind.SIMPLE


def test_load_schema_rejects_bad_json(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text("{not json")
    with pytest.raises(CLIError):
        _load_schema(path)


def test_parse_enum():
    assert _parse_enum(DataLoadingFormat, "YAML", "--format") == DataLoadingFormat.YAML
    with pytest.raises(CLIError):
        _parse_enum(DataLoadingFormat, "xml", "--format")


def _write_schema(path):
    path.write_text(
        json.dumps(
            {
                "variables": {
                    "x": {"type": {"blob": {"dimensionality": "SINGLE"}}},
                    "y": {"type": {"blob": {"dimensionality": "MULTIPART"}}},
                }
            }
        )
    )
    return path


def test_run_cli_uploads_to_filesystem_store(tmp_path):
    outputs = tmp_path / "outputs"
    (outputs / "y").mkdir(parents=True)
    (outputs / "x").write_bytes(b"data")
    (outputs / "y" / "file1.txt").write_text("dir data 1")
    schema = _write_schema(tmp_path / "schema.json")
    store_root = tmp_path / "store"

    code = run_cli(
        [
            str(outputs),
            "--schema", str(schema),
            "--output-ref", "meta/outputs",
            "--raw-ref", "raw",
            "--store-root", str(store_root),
            "--silent",
        ]
    )

    assert code == 0
    assert (store_root / "raw" / "x").read_bytes() == b"data"
    assert (store_root / "raw" / "y" / "file1.txt").read_text() == "dir data 1"
    record = json.loads((store_root / "meta" / "outputs").read_text())
    assert record["literals"]["y"]["scalar"]["blob"]["uri"] == "raw/y"


def test_run_cli_missing_output_writes_failure_file(tmp_path):
    outputs = tmp_path / "outputs"
    outputs.mkdir()
    (outputs / "x").write_bytes(b"data")
    schema = _write_schema(tmp_path / "schema.json")
    store_root = tmp_path / "store"

    code = run_cli(
        [
            str(outputs),
            "-s", str(schema),
            "-o", "meta/outputs",
            "-r", "raw",
            "--store-root", str(store_root),
            "--silent",
        ]
    )

    assert code == 1
    assert (outputs / "error.txt.upload-failure").read_text().startswith("[MISSING_OUTPUT]")
    assert not (outputs / "error.txt").exists()
    assert not (store_root / "meta" / "outputs").exists()


def test_run_cli_requires_schema(tmp_path):
    assert run_cli([str(tmp_path), "-o", "out", "-r", "raw", "--silent"]) == 1


def test_run_cli_without_arguments_prints_help(capsys):
    assert run_cli([]) == 0
    assert "output-uploader" in capsys.readouterr().out
