"""Orchestrator data models."""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..models import Variable


class PathKind(Enum):
    """What a local output path turned out to be."""
    MISSING = "missing"
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    SPECIAL = "special"


class Strategy(Enum):
    """How one output is uploaded."""
    SINGLE = "single"
    MULTIPART = "multipart"
    PRIMITIVE = "primitive"


@dataclass(frozen=True)
class OutputPlan:
    """Classified output, ready to upload."""
    name: str
    variable: Variable
    local_path: Path
    strategy: Strategy


@dataclass(frozen=True)
class UploadTask:
    """One file of a directory upload."""
    file_path: Path
    rel_path: str
    reference: str
    index: int = 0
    total: int = 0
