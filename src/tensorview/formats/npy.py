"""Reader for the ``.npy`` flat-array format."""

from __future__ import annotations

import ast
import logging
from typing import Any, Dict, Tuple

from .common import (
    BufferLike,
    ByteStreamReader,
    LayoutOrder,
    MalformedHeader,
    OutOfBounds,
    RawTensor,
    shape_size,
)
from .dtypes import from_descr

logger = logging.getLogger(__name__)

NPY_MAGIC = b"\x93NUMPY"
SUPPORTED_VERSIONS = (1, 2, 3)
_REQUIRED_KEYS = ("descr", "fortran_order", "shape")


def _read_header_text(reader: ByteStreamReader) -> Tuple[Tuple[int, int], str]:
    magic = bytes(reader.read_bytes(len(NPY_MAGIC)))
    if magic != NPY_MAGIC:
        raise MalformedHeader("Invalid npy magic signature")
    major = reader.read_uint8()
    minor = reader.read_uint8()
    if major not in SUPPORTED_VERSIONS:
        raise MalformedHeader(f"Unsupported npy format version {major}.{minor}")
    if major == 1:
        header_len = reader.read_uint16(little_endian=True)
    else:
        header_len = reader.read_uint32(little_endian=True)

    if major >= 3:
        text = bytes(reader.read_bytes(header_len)).decode("utf-8", errors="strict")
    else:
        text = reader.read_ascii(header_len)
    return (major, minor), text


def parse_header_dict(text: str) -> Dict[str, Any]:
    """Parse the header dictionary literal stored in an npy preamble."""

    try:
        header = ast.literal_eval(text.strip())
    except (SyntaxError, ValueError, TypeError, RecursionError, MemoryError) as exc:
        raise MalformedHeader(f"Unable to parse npy header: {text!r}") from exc
    if not isinstance(header, dict):
        raise MalformedHeader(f"npy header is not a dictionary: {text!r}")
    missing = [key for key in _REQUIRED_KEYS if key not in header]
    if missing:
        raise MalformedHeader(f"npy header is missing keys: {', '.join(missing)}")
    if not isinstance(header["fortran_order"], bool):
        raise MalformedHeader(f"fortran_order must be a bool: {header['fortran_order']!r}")
    shape = header["shape"]
    if not isinstance(shape, tuple) or not all(
        isinstance(dim, int) and not isinstance(dim, bool) and dim >= 0 for dim in shape
    ):
        raise MalformedHeader(f"shape must be a tuple of non-negative ints: {shape!r}")
    return header


def parse_npy(buffer: BufferLike) -> RawTensor:
    """Decode an ``.npy`` payload into a :class:`RawTensor` view."""

    reader = ByteStreamReader(buffer)
    try:
        version, text = _read_header_text(reader)
    except OutOfBounds as exc:
        raise MalformedHeader("npy header runs past the end of the buffer") from exc
    except UnicodeDecodeError as exc:
        raise MalformedHeader("npy header is not valid UTF-8") from exc

    header = parse_header_dict(text)
    dtype, byteorder = from_descr(header["descr"])
    shape = tuple(header["shape"])
    layout = LayoutOrder.COLUMN_MAJOR if header["fortran_order"] else LayoutOrder.ROW_MAJOR
    logger.debug(
        "npy v%d.%d header: descr=%s shape=%s order=%s",
        version[0],
        version[1],
        header["descr"],
        shape,
        layout.value,
    )

    expected = shape_size(shape) * dtype.byte_width
    if reader.remaining > expected:
        logger.debug("Ignoring %d trailing bytes after npy payload", reader.remaining - expected)
    payload = reader.read_bytes(expected)
    return RawTensor(payload, shape, dtype, layout, byteorder)


def is_npy(buffer: BufferLike) -> bool:
    return bytes(buffer[: len(NPY_MAGIC)]) == NPY_MAGIC


__all__ = [
    "NPY_MAGIC",
    "SUPPORTED_VERSIONS",
    "is_npy",
    "parse_header_dict",
    "parse_npy",
]
