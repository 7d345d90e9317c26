"""Reader for the ``.safetensors`` multi-tensor format."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Tuple

from .common import (
    BufferLike,
    ByteStreamReader,
    LayoutOrder,
    MalformedHeader,
    OutOfBounds,
    RawTensor,
    as_view,
    shape_size,
)
from .dtypes import lookup

logger = logging.getLogger(__name__)

METADATA_KEY = "__metadata__"


def read_header(buffer: BufferLike) -> Tuple[Dict[str, Any], int]:
    """Return the parsed JSON header and the offset where tensor data starts."""

    reader = ByteStreamReader(buffer)
    try:
        header_len = reader.read_uint64(little_endian=True)
    except OutOfBounds as exc:
        raise MalformedHeader("Invalid safetensors header") from exc
    if header_len > reader.remaining:
        raise OutOfBounds(
            f"Safetensors header length {header_len} exceeds buffer of {reader.remaining} bytes"
        )
    header_bytes = reader.read_bytes(header_len)
    try:
        header = json.loads(bytes(header_bytes).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedHeader("Unable to parse safetensors header") from exc
    if not isinstance(header, dict):
        raise MalformedHeader("Safetensors header must be a JSON object")
    return header, reader.offset


def _entry_fields(name: str, entry: Any) -> Tuple[str, Tuple[int, ...], Tuple[int, int]]:
    if not isinstance(entry, Mapping):
        raise MalformedHeader(f"Header entry for {name!r} is not an object")
    missing = [key for key in ("dtype", "shape", "data_offsets") if key not in entry]
    if missing:
        raise MalformedHeader(f"Header entry for {name!r} is missing {', '.join(missing)}")
    shape = entry["shape"]
    offsets = entry["data_offsets"]
    if not isinstance(shape, list) or not all(
        isinstance(dim, int) and not isinstance(dim, bool) and dim >= 0 for dim in shape
    ):
        raise MalformedHeader(f"Invalid shape for {name!r}: {shape!r}")
    if (
        not isinstance(offsets, list)
        or len(offsets) != 2
        or not all(
            isinstance(value, int) and not isinstance(value, bool) and value >= 0
            for value in offsets
        )
    ):
        raise MalformedHeader(f"Invalid data_offsets for {name!r}: {offsets!r}")
    start, end = offsets
    if start > end:
        raise MalformedHeader(f"data_offsets for {name!r} are reversed: {offsets!r}")
    return entry["dtype"], tuple(shape), (start, end)


def parse_safetensors(buffer: BufferLike) -> Dict[str, RawTensor]:
    """Decode every tensor described by a safetensors header.

    Tensor payloads are views into *buffer*; the ``__metadata__`` entry is
    skipped.
    """

    view = as_view(buffer)
    header, data_start = read_header(view)
    tensors: Dict[str, RawTensor] = {}
    for name, entry in header.items():
        if name == METADATA_KEY:
            continue
        tag, shape, (start, end) = _entry_fields(name, entry)
        dtype = lookup(tag)
        begin = data_start + start
        stop = data_start + end
        if stop > len(view):
            raise OutOfBounds(
                f"Tensor {name!r} spans bytes {begin}..{stop} past buffer of {len(view)} bytes"
            )
        expected = shape_size(shape) * dtype.byte_width
        if expected != end - start:
            raise MalformedHeader(
                f"Tensor {name!r} declares {end - start} bytes, shape {shape} with "
                f"{dtype.code} needs {expected}"
            )
        tensors[name] = RawTensor(view[begin:stop], shape, dtype, LayoutOrder.ROW_MAJOR, "<")
        logger.debug("safetensors entry %s: dtype=%s shape=%s", name, dtype.code, shape)
    return tensors


def read_metadata(buffer: BufferLike) -> Dict[str, str]:
    """Return the free-form ``__metadata__`` block, or an empty mapping."""

    header, _ = read_header(buffer)
    metadata = header.get(METADATA_KEY) or {}
    if not isinstance(metadata, dict):
        raise MalformedHeader("Safetensors __metadata__ must be a JSON object")
    return {str(key): str(value) for key, value in metadata.items()}


__all__ = [
    "METADATA_KEY",
    "parse_safetensors",
    "read_header",
    "read_metadata",
]
