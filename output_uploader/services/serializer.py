"""
Serializer - Single Responsibility: persist structured records in a store.

Records are any model exposing ``to_dict``/``from_dict`` (LiteralMap,
ErrorDocument, VariableMap).
"""
import io
import json
import logging
from typing import Any, Type, TypeVar

import yaml

from ..models import DataLoadingFormat
from ..protocols import IDataStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiteralMapSerializer:
    """
    Encodes records as JSON or YAML and writes them through an IDataStore.

    Implements ISerializer protocol.
    """

    def __init__(self, store: IDataStore, format: DataLoadingFormat = DataLoadingFormat.JSON):
        if format == DataLoadingFormat.PROTO:
            raise ValueError("PROTO encoding is not supported; use JSON or YAML")
        self._store = store
        self._format = format

    @property
    def format(self) -> DataLoadingFormat:
        return self._format

    def encode(self, record: Any) -> bytes:
        data = record.to_dict()
        if self._format == DataLoadingFormat.YAML:
            return yaml.safe_dump(data, sort_keys=True).encode("utf-8")
        return json.dumps(data, indent=2, sort_keys=True).encode("utf-8")

    def decode(self, payload: bytes, cls: Type[T]) -> T:
        text = payload.decode("utf-8")
        if self._format == DataLoadingFormat.YAML:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
        return cls.from_dict(data)

    async def write_structured(self, reference: str, record: Any) -> None:
        payload = self.encode(record)
        await self._store.write_raw(reference, io.BytesIO(payload))
        logger.info(f"Wrote {type(record).__name__} ({self._format.value}) to {reference}")

    async def read_structured(self, reference: str, cls: Type[T]) -> T:
        payload = await self._store.read_raw(reference)
        return self.decode(payload, cls)
