"""Shared types for the tensor file decoders."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Tuple, Union

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .dtypes import Dtype

BufferLike = Union[bytes, bytearray, memoryview]

_UINT_FORMATS = {
    (2, True): struct.Struct("<H"),
    (2, False): struct.Struct(">H"),
    (4, True): struct.Struct("<I"),
    (4, False): struct.Struct(">I"),
    (8, True): struct.Struct("<Q"),
    (8, False): struct.Struct(">Q"),
}


class TensorFormatError(RuntimeError):
    """Raised when a tensor payload cannot be decoded."""


class MalformedHeader(TensorFormatError):
    """Signature, version or header dictionary is missing or unparseable."""


class UnsupportedDtype(TensorFormatError):
    """The dtype tag is not part of the registry."""


class OutOfBounds(TensorFormatError):
    """A declared length or offset runs past the end of the buffer."""


class ShapeMismatch(TensorFormatError):
    """Element count implied by the shape disagrees with the payload."""


class InputTooLarge(TensorFormatError):
    """The input exceeds the configured size gate."""


class LayoutOrder(Enum):
    ROW_MAJOR = "C"
    COLUMN_MAJOR = "F"


def shape_size(shape: Tuple[int, ...]) -> int:
    count = 1
    for dim in shape:
        count *= dim
    return count


def as_view(buffer: BufferLike) -> memoryview:
    """Return a flat unsigned-byte view over *buffer* without copying."""

    view = buffer if isinstance(buffer, memoryview) else memoryview(buffer)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


@dataclass(frozen=True)
class RawTensor:
    """A tensor payload that still lives in the caller's buffer."""

    data: memoryview
    shape: Tuple[int, ...]
    dtype: "Dtype"
    layout: LayoutOrder = LayoutOrder.ROW_MAJOR
    byteorder: str = "<"

    def __post_init__(self) -> None:
        expected = shape_size(self.shape) * self.dtype.byte_width
        if expected != len(self.data):
            raise ShapeMismatch(
                f"Shape {self.shape} with dtype {self.dtype.code} needs {expected} bytes, "
                f"payload has {len(self.data)}"
            )

    @property
    def dtype_tag(self) -> str:
        return self.dtype.code

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        return shape_size(self.shape)

    @property
    def nbytes(self) -> int:
        return len(self.data)


class ByteStreamReader:
    """Forward-only cursor over a byte buffer."""

    def __init__(self, buffer: BufferLike) -> None:
        self._view = as_view(buffer)
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._view) - self._offset

    def _advance(self, length: int) -> int:
        if length < 0:
            raise OutOfBounds(f"Negative read length {length}")
        start = self._offset
        if start + length > len(self._view):
            raise OutOfBounds(
                f"Read of {length} bytes at offset {start} exceeds buffer of {len(self._view)} bytes"
            )
        self._offset = start + length
        return start

    def _read_uint(self, width: int, little_endian: bool) -> int:
        start = self._advance(width)
        return _UINT_FORMATS[(width, little_endian)].unpack_from(self._view, start)[0]

    def read_uint8(self) -> int:
        start = self._advance(1)
        return self._view[start]

    def read_uint16(self, little_endian: bool = False) -> int:
        return self._read_uint(2, little_endian)

    def read_uint32(self, little_endian: bool = False) -> int:
        return self._read_uint(4, little_endian)

    def read_uint64(self, little_endian: bool = False) -> int:
        return self._read_uint(8, little_endian)

    def read_bytes(self, length: int) -> memoryview:
        start = self._advance(length)
        return self._view[start : start + length]

    def read_ascii(self, length: int) -> str:
        # One character per byte, like latin-1.
        return "".join(chr(byte) for byte in self.read_bytes(length))


__all__ = [
    "BufferLike",
    "ByteStreamReader",
    "InputTooLarge",
    "LayoutOrder",
    "MalformedHeader",
    "OutOfBounds",
    "RawTensor",
    "ShapeMismatch",
    "TensorFormatError",
    "UnsupportedDtype",
    "as_view",
    "shape_size",
]
