"""Primitive (non-blob) output reader."""
import logging
import re
from datetime import datetime, timedelta
from pathlib import Path

from ..errors import InvalidPrimitive, IOSide, UploadIOError
from ..models import Literal, PrimitiveValue, SimpleType

logger = logging.getLogger(__name__)

MAX_PRIMITIVE_SIZE = 1024

_TRUE = {"true", "1", "yes", "y", "on"}
_FALSE = {"false", "0", "no", "n", "off"}

_DURATION_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(h|ms|m|s|us|µs|ns)")


def parse_duration(text: str) -> timedelta:
    """
    Parse '1h30m', '10s', '1.5h', '250ms' or a bare number of seconds.

    A leading '-' negates the whole value.
    """
    value = text.strip()
    if not value:
        raise ValueError("empty duration")

    sign = 1.0
    if value[0] in "+-":
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]

    try:
        return timedelta(seconds=sign * float(value))
    except ValueError:
        pass

    seconds = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(value):
        raise ValueError(f"invalid duration {text!r}")
    return timedelta(seconds=sign * seconds)


def parse_datetime(text: str) -> datetime:
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def parse_boolean(text: str) -> bool:
    value = text.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean {text!r}")


def parse_primitive(simple_type: SimpleType, text: str) -> PrimitiveValue:
    """Convert raw file content into a value of ``simple_type``."""
    if simple_type == SimpleType.STRING:
        return text
    if simple_type == SimpleType.INTEGER:
        return int(text.strip())
    if simple_type == SimpleType.FLOAT:
        return float(text.strip())
    if simple_type == SimpleType.BOOLEAN:
        return parse_boolean(text)
    if simple_type == SimpleType.DATETIME:
        return parse_datetime(text)
    if simple_type == SimpleType.DURATION:
        return parse_duration(text)
    raise ValueError(f"unsupported simple type {simple_type}")


class PrimitiveReader:
    """Reads small primitive output files into literals."""

    def __init__(self, max_size: int = MAX_PRIMITIVE_SIZE):
        self._max_size = max_size

    def read(self, output_name: str, path: Path, simple_type: SimpleType) -> Literal:
        path = Path(path)
        try:
            size = path.stat().st_size
            if size > self._max_size:
                raise InvalidPrimitive(
                    output_name, f"file is {size} bytes, limit is {self._max_size}"
                )
            raw = path.read_bytes()
        except OSError as e:
            raise UploadIOError(IOSide.LOCAL_READ, str(path), e, output_name=output_name) from e

        try:
            text = raw.decode("utf-8")
            value = parse_primitive(simple_type, text)
        except ValueError as e:
            # UnicodeDecodeError is a ValueError
            raise InvalidPrimitive(output_name, str(e)) from e

        logger.debug("Read primitive %s (%s)", output_name, simple_type.value)
        return Literal.for_primitive(simple_type, value)
