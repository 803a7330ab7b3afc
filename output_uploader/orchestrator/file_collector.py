"""File collection utilities for directory uploads."""
import os
import stat
from pathlib import Path
from typing import List, Tuple

from ..errors import UnsupportedFileKind, UploadIOError, IOSide
from .models import PathKind


def classify_path(path: Path) -> PathKind:
    """Kind of ``path`` without following symlinks."""
    try:
        mode = os.lstat(path).st_mode
    except FileNotFoundError:
        return PathKind.MISSING
    except OSError as e:
        raise UploadIOError(IOSide.LOCAL_READ, str(path), e) from e

    if stat.S_ISLNK(mode):
        return PathKind.SYMLINK
    if stat.S_ISDIR(mode):
        return PathKind.DIRECTORY
    if stat.S_ISREG(mode):
        return PathKind.FILE
    return PathKind.SPECIAL


class FileCollector:
    """Collects regular files from output directories."""

    @staticmethod
    def collect_files(folder: Path) -> List[Tuple[Path, str]]:
        """
        Collect all regular files recursively.

        Walks with an explicit worklist and never follows symlinks. Relative
        paths always use '/' regardless of the OS separator.

        Args:
            folder: Root folder to scan

        Returns:
            (absolute path, relative posix path) pairs sorted by relative path

        Raises:
            UnsupportedFileKind: a symlink or special file was found
            UploadIOError: a directory could not be listed
        """
        folder = Path(folder)
        files: List[Tuple[Path, str]] = []
        pending: List[Tuple[Path, Tuple[str, ...]]] = [(folder, ())]

        while pending:
            current, parts = pending.pop()
            try:
                with os.scandir(current) as entries:
                    children = list(entries)
            except OSError as e:
                raise UploadIOError(
                    IOSide.LOCAL_READ, str(current), e, rel_path="/".join(parts) or "."
                ) from e

            for entry in children:
                rel_parts = parts + (entry.name,)
                rel_path = "/".join(rel_parts)
                if entry.is_symlink():
                    raise UnsupportedFileKind(rel_path, PathKind.SYMLINK.value)
                if entry.is_dir(follow_symlinks=False):
                    pending.append((Path(entry.path), rel_parts))
                elif entry.is_file(follow_symlinks=False):
                    files.append((Path(entry.path), rel_path))
                else:
                    raise UnsupportedFileKind(rel_path, PathKind.SPECIAL.value)

        return sorted(files, key=lambda item: item[1])
