"""Parallel upload utilities."""
from typing import Optional, Sequence

from ..errors import Cancelled, UploadError


def error_specificity(error: UploadError):
    """Sort key: deeper relative paths are more specific, ties broken by path."""
    rel_path = error.rel_path or ""
    depth = rel_path.count("/") + 1 if rel_path else 0
    return (-depth, rel_path, error.output_name or "")


def pick_error(errors: Sequence[BaseException]) -> Optional[BaseException]:
    """
    Choose the one error to report out of several concurrent failures.

    Genuine failures win over cancellations; among those, the error with the
    most specific path context is chosen. Returns None when nothing failed.
    """
    if not errors:
        return None

    foreign = [e for e in errors if not isinstance(e, UploadError)]
    if foreign:
        return foreign[0]

    genuine = [e for e in errors if not isinstance(e, Cancelled)]
    candidates = genuine or list(errors)
    return sorted(candidates, key=error_specificity)[0]
