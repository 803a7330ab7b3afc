"""
Output Uploader - moves a task's local outputs to a remote store.

Follows SOLID principles:
- Single Responsibility: classification, single-file and directory uploads live in separate handlers
- Dependency Injection: the store and serializer are injected into the Uploader
- Interface Segregation: IDataStore and ISerializer are small protocols

Usage:
    from output_uploader import Uploader, MemoryDataStore, LiteralMapSerializer, VariableMap

    store = MemoryDataStore()
    uploader = Uploader(store, LiteralMapSerializer(store))
    outputs = await uploader.recursive_upload(schema, "/var/outputs", "meta/outputs", "raw")
"""
from .errors import (
    Cancelled,
    DataStoreError,
    DimensionalityMismatch,
    InvalidOutputName,
    InvalidPrimitive,
    IOSide,
    MissingOutput,
    ReferenceNotFound,
    UnsupportedFileKind,
    UnsupportedOutputType,
    UploadError,
    UploadIOError,
)
from .models import (
    Blob,
    BlobDimensionality,
    BlobMetadata,
    BlobType,
    DataLoadingFormat,
    ErrorDocument,
    ErrorKind,
    IOStrategy,
    Literal,
    LiteralMap,
    LiteralType,
    Primitive,
    SimpleType,
    UploadConfig,
    Variable,
    VariableMap,
)
from .orchestrator import Uploader
from .runner import UploadRunner
from .services import (
    FileSystemDataStore,
    HTTPDataStore,
    LiteralMapSerializer,
    MemoryDataStore,
)

__version__ = "0.1.0"
__all__ = [
    # Main
    "Uploader",
    "UploadRunner",
    # Models
    "Blob",
    "BlobDimensionality",
    "BlobMetadata",
    "BlobType",
    "DataLoadingFormat",
    "ErrorDocument",
    "ErrorKind",
    "IOStrategy",
    "Literal",
    "LiteralMap",
    "LiteralType",
    "Primitive",
    "SimpleType",
    "UploadConfig",
    "Variable",
    "VariableMap",
    # Errors
    "Cancelled",
    "DataStoreError",
    "DimensionalityMismatch",
    "InvalidOutputName",
    "InvalidPrimitive",
    "IOSide",
    "MissingOutput",
    "ReferenceNotFound",
    "UnsupportedFileKind",
    "UnsupportedOutputType",
    "UploadError",
    "UploadIOError",
    # Services
    "FileSystemDataStore",
    "HTTPDataStore",
    "LiteralMapSerializer",
    "MemoryDataStore",
]
