"""
Models for output uploads.

Immutable dataclasses describing the output schema (VariableMap), the typed
values produced for each output (Literal) and the record handed to the
serializer (LiteralMap). ``to_dict``/``from_dict`` define the wire shape.
"""
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import UploadError


class BlobDimensionality(Enum):
    """Declared shape of a blob output."""
    SINGLE = "SINGLE"
    MULTIPART = "MULTIPART"


class SimpleType(Enum):
    """Primitive output kinds read from small text files."""
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    STRING = "STRING"
    BOOLEAN = "BOOLEAN"
    DATETIME = "DATETIME"
    DURATION = "DURATION"


class LiteralKind(Enum):
    BLOB = "blob"
    SIMPLE = "simple"


class DataLoadingFormat(Enum):
    """Encoding of the structured output record."""
    JSON = "json"
    YAML = "yaml"
    PROTO = "proto"


class IOStrategy(Enum):
    """When the surrounding process moves data. Carried, never branched on by the uploader."""
    DOWNLOAD_EAGER = "download_eager"
    DOWNLOAD_STREAM = "download_stream"
    DO_NOT_DOWNLOAD = "do_not_download"
    UPLOAD_ON_EXIT = "upload_on_exit"
    UPLOAD_EAGER = "upload_eager"


class ErrorKind(Enum):
    RECOVERABLE = "RECOVERABLE"
    NON_RECOVERABLE = "NON_RECOVERABLE"


@dataclass(frozen=True)
class BlobType:
    dimensionality: BlobDimensionality = BlobDimensionality.SINGLE
    format: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"dimensionality": self.dimensionality.value, "format": self.format}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlobType":
        return cls(
            dimensionality=BlobDimensionality(data.get("dimensionality", "SINGLE")),
            format=data.get("format", ""),
        )


@dataclass(frozen=True)
class LiteralType:
    """
    Declared type of one output.

    Exactly one of ``blob`` or ``simple`` is set.
    """
    blob: Optional[BlobType] = None
    simple: Optional[SimpleType] = None

    def __post_init__(self):
        if (self.blob is None) == (self.simple is None):
            raise ValueError("LiteralType needs exactly one of blob or simple")

    @property
    def kind(self) -> LiteralKind:
        return LiteralKind.BLOB if self.blob is not None else LiteralKind.SIMPLE

    @classmethod
    def single_blob(cls, format: str = "") -> "LiteralType":
        return cls(blob=BlobType(BlobDimensionality.SINGLE, format))

    @classmethod
    def multipart_blob(cls, format: str = "") -> "LiteralType":
        return cls(blob=BlobType(BlobDimensionality.MULTIPART, format))

    def to_dict(self) -> Dict[str, Any]:
        if self.blob is not None:
            return {"blob": self.blob.to_dict()}
        return {"simple": self.simple.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiteralType":
        if "blob" in data:
            return cls(blob=BlobType.from_dict(data["blob"] or {}))
        if "simple" in data:
            return cls(simple=SimpleType(str(data["simple"]).upper()))
        raise ValueError(f"Unknown literal type: {data}")


@dataclass(frozen=True)
class Variable:
    type: LiteralType
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.to_dict(), "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Variable":
        return cls(
            type=LiteralType.from_dict(data["type"]),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class VariableMap:
    """Output schema: output name -> declared variable."""
    variables: Dict[str, Variable] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"variables": {name: var.to_dict() for name, var in self.variables.items()}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VariableMap":
        return cls(
            variables={
                name: Variable.from_dict(var)
                for name, var in (data.get("variables") or {}).items()
            }
        )


@dataclass(frozen=True)
class BlobMetadata:
    type: BlobType

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlobMetadata":
        return cls(type=BlobType.from_dict(data.get("type") or {}))


@dataclass(frozen=True)
class Blob:
    """Remote blob reference. Dimensionality lives in metadata, never in the URI."""
    uri: str
    metadata: BlobMetadata

    @property
    def is_multipart(self) -> bool:
        return self.metadata.type.dimensionality == BlobDimensionality.MULTIPART

    def to_dict(self) -> Dict[str, Any]:
        return {"uri": self.uri, "metadata": self.metadata.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Blob":
        return cls(uri=data["uri"], metadata=BlobMetadata.from_dict(data.get("metadata") or {}))


PrimitiveValue = Union[int, float, str, bool, datetime, timedelta]


@dataclass(frozen=True)
class Primitive:
    simple_type: SimpleType
    value: PrimitiveValue

    def to_dict(self) -> Dict[str, Any]:
        value = self.value
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, timedelta):
            value = value.total_seconds()
        return {"simple_type": self.simple_type.value, "value": value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Primitive":
        simple_type = SimpleType(data["simple_type"])
        value = data["value"]
        if simple_type == SimpleType.DATETIME:
            value = datetime.fromisoformat(value)
        elif simple_type == SimpleType.DURATION:
            value = timedelta(seconds=value)
        return cls(simple_type=simple_type, value=value)


@dataclass(frozen=True)
class Scalar:
    blob: Optional[Blob] = None
    primitive: Optional[Primitive] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.blob is not None:
            return {"blob": self.blob.to_dict()}
        return {"primitive": self.primitive.to_dict() if self.primitive else None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scalar":
        if data.get("blob") is not None:
            return cls(blob=Blob.from_dict(data["blob"]))
        return cls(primitive=Primitive.from_dict(data["primitive"]))


@dataclass(frozen=True)
class Literal:
    """Typed value for one output."""
    scalar: Scalar

    @classmethod
    def for_blob(cls, uri: str, dimensionality: BlobDimensionality, format: str = "") -> "Literal":
        return cls(
            scalar=Scalar(
                blob=Blob(uri=uri, metadata=BlobMetadata(type=BlobType(dimensionality, format)))
            )
        )

    @classmethod
    def for_primitive(cls, simple_type: SimpleType, value: PrimitiveValue) -> "Literal":
        return cls(scalar=Scalar(primitive=Primitive(simple_type, value)))

    @property
    def blob(self) -> Optional[Blob]:
        return self.scalar.blob

    @property
    def primitive(self) -> Optional[Primitive]:
        return self.scalar.primitive

    def to_dict(self) -> Dict[str, Any]:
        return {"scalar": self.scalar.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Literal":
        return cls(scalar=Scalar.from_dict(data["scalar"]))


@dataclass(frozen=True)
class LiteralMap:
    """Output record: output name -> literal. Iteration order carries no meaning."""
    literals: Dict[str, Literal] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.literals)

    def to_dict(self) -> Dict[str, Any]:
        return {"literals": {name: lit.to_dict() for name, lit in sorted(self.literals.items())}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiteralMap":
        return cls(
            literals={
                name: Literal.from_dict(lit)
                for name, lit in (data.get("literals") or {}).items()
            }
        )


@dataclass(frozen=True)
class ErrorDocument:
    """Failure record written in place of outputs."""
    code: str
    message: str
    kind: ErrorKind = ErrorKind.NON_RECOVERABLE

    @classmethod
    def from_error(cls, error: UploadError) -> "ErrorDocument":
        # IO failures and cancellations may succeed on a later attempt
        recoverable = error.code in ("UPLOAD_IO_ERROR", "CANCELLED")
        return cls(
            code=error.code,
            message=str(error),
            kind=ErrorKind.RECOVERABLE if recoverable else ErrorKind.NON_RECOVERABLE,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message, "kind": self.kind.value}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorDocument":
        error = data["error"]
        return cls(code=error["code"], message=error["message"], kind=ErrorKind(error["kind"]))


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for upload operations."""
    max_parallel_uploads: int = 8
    max_parallel_outputs: int = 4
    allow_missing_outputs: bool = False
    max_error_file_size: int = 1024 * 1024  # 1 MiB
    max_primitive_size: int = 1024

    def __post_init__(self):
        if self.max_parallel_uploads < 1 or self.max_parallel_outputs < 1:
            raise ValueError("Parallelism must be at least 1")

    @classmethod
    def from_env(cls, **overrides) -> "UploadConfig":
        """Build config from UPLOADER_* environment variables; explicit overrides win."""
        values: Dict[str, Any] = {}
        if os.getenv("UPLOADER_MAX_PARALLEL"):
            values["max_parallel_uploads"] = int(os.environ["UPLOADER_MAX_PARALLEL"])
        if os.getenv("UPLOADER_MAX_PARALLEL_OUTPUTS"):
            values["max_parallel_outputs"] = int(os.environ["UPLOADER_MAX_PARALLEL_OUTPUTS"])
        if os.getenv("UPLOADER_ALLOW_MISSING"):
            values["allow_missing_outputs"] = os.environ["UPLOADER_ALLOW_MISSING"].strip().lower() in {
                "1", "true", "yes", "on"
            }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
