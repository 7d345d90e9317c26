"""Dtype registry and bit-level decoders for the compact float encodings."""

from __future__ import annotations

import re
import struct
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

import numpy as _np

from .common import UnsupportedDtype


class DtypeKind(Enum):
    SIGNED_INT = "signed"
    UNSIGNED_INT = "unsigned"
    FLOAT = "float"
    BOOL = "bool"


@dataclass(frozen=True)
class DtypeDescriptor:
    """Static description of an element type."""

    code: str
    byte_width: int
    kind: DtypeKind


class Dtype(Enum):
    F64 = DtypeDescriptor("F64", 8, DtypeKind.FLOAT)
    F32 = DtypeDescriptor("F32", 4, DtypeKind.FLOAT)
    F16 = DtypeDescriptor("F16", 2, DtypeKind.FLOAT)
    BF16 = DtypeDescriptor("BF16", 2, DtypeKind.FLOAT)
    I64 = DtypeDescriptor("I64", 8, DtypeKind.SIGNED_INT)
    I32 = DtypeDescriptor("I32", 4, DtypeKind.SIGNED_INT)
    I16 = DtypeDescriptor("I16", 2, DtypeKind.SIGNED_INT)
    I8 = DtypeDescriptor("I8", 1, DtypeKind.SIGNED_INT)
    U64 = DtypeDescriptor("U64", 8, DtypeKind.UNSIGNED_INT)
    U32 = DtypeDescriptor("U32", 4, DtypeKind.UNSIGNED_INT)
    U16 = DtypeDescriptor("U16", 2, DtypeKind.UNSIGNED_INT)
    U8 = DtypeDescriptor("U8", 1, DtypeKind.UNSIGNED_INT)
    BOOL = DtypeDescriptor("BOOL", 1, DtypeKind.BOOL)

    @property
    def code(self) -> str:
        return self.value.code

    @property
    def byte_width(self) -> int:
        return self.value.byte_width

    @property
    def kind(self) -> DtypeKind:
        return self.value.kind

    @property
    def is_compact_float(self) -> bool:
        return self in (Dtype.F16, Dtype.BF16)


_BY_CODE: Dict[str, Dtype] = {member.code: member for member in Dtype}

# npy descr kind character + byte width -> registry member
_DESCR_KINDS: Dict[Tuple[str, int], Dtype] = {
    ("f", 8): Dtype.F64,
    ("f", 4): Dtype.F32,
    ("f", 2): Dtype.F16,
    ("i", 8): Dtype.I64,
    ("i", 4): Dtype.I32,
    ("i", 2): Dtype.I16,
    ("i", 1): Dtype.I8,
    ("u", 8): Dtype.U64,
    ("u", 4): Dtype.U32,
    ("u", 2): Dtype.U16,
    ("u", 1): Dtype.U8,
    ("b", 1): Dtype.BOOL,
}

_NUMPY_TYPES = {
    Dtype.F64: _np.float64,
    Dtype.F32: _np.float32,
    Dtype.I64: _np.int64,
    Dtype.I32: _np.int32,
    Dtype.I16: _np.int16,
    Dtype.I8: _np.int8,
    Dtype.U64: _np.uint64,
    Dtype.U32: _np.uint32,
    Dtype.U16: _np.uint16,
    Dtype.U8: _np.uint8,
    Dtype.BOOL: _np.bool_,
}

_DESCR_PATTERN = re.compile(r"^([<>|=]?)([a-zA-Z])(\d+)$")
_NATIVE_ORDER = "<" if sys.byteorder == "little" else ">"
_BF16_WORD = struct.Struct(">I")
_BF16_FLOAT = struct.Struct(">f")


def lookup(tag: str) -> Dtype:
    """Resolve a multi-tensor dtype tag such as ``"F32"`` or ``"BF16"``."""

    if not isinstance(tag, str):
        raise UnsupportedDtype(f"Dtype tag must be a string, got {type(tag).__name__}")
    member = _BY_CODE.get(tag.upper())
    if member is None:
        raise UnsupportedDtype(f"Unsupported dtype: {tag}")
    return member


def describe(tag: str) -> DtypeDescriptor:
    return lookup(tag).value


def from_descr(descr: object) -> Tuple[Dtype, str]:
    """Resolve an npy ``descr`` string into a registry member and byte order.

    Structured descriptions (lists of fields) and any kind outside the
    registry, such as strings, objects or complex numbers, are rejected.
    """

    if not isinstance(descr, str):
        raise UnsupportedDtype(f"Unsupported array descr: {descr!r}")
    match = _DESCR_PATTERN.match(descr)
    if match is None:
        raise UnsupportedDtype(f"Unsupported array descr: {descr!r}")
    order, kind, width = match.groups()
    member = _DESCR_KINDS.get((kind, int(width)))
    if member is None:
        raise UnsupportedDtype(f"Unsupported array descr: {descr!r}")
    if order == ">":
        byteorder = ">"
    elif order == "=":
        byteorder = _NATIVE_ORDER
    else:
        byteorder = "<"
    return member, byteorder


def numpy_dtype(dtype: Dtype, byteorder: str = "<") -> _np.dtype:
    """Return the numpy element type used to view *dtype* payloads.

    The compact float encodings have no direct view; their raw 16-bit
    patterns are exposed as ``uint16`` for the bit decoders.
    """

    if dtype.is_compact_float:
        base = _np.dtype(_np.uint16)
    else:
        base = _np.dtype(_NUMPY_TYPES[dtype])
    if dtype.byte_width == 1:
        return base
    return base.newbyteorder(byteorder)


def decode_f16(bits: int) -> float:
    """Decode an IEEE half-precision bit pattern.

    Subnormals decode as ``±2**-24 * mantissa``.
    """

    bits &= 0xFFFF
    sign = -1.0 if bits & 0x8000 else 1.0
    exponent = (bits >> 10) & 0x1F
    mantissa = bits & 0x03FF
    if exponent == 0:
        return sign * (2.0 ** -24) * mantissa
    if exponent == 31:
        return sign * float("inf") if mantissa == 0 else float("nan")
    return sign * (2.0 ** (exponent - 15)) * (1 + mantissa / 1024)


def decode_bf16(bits: int) -> float:
    """Decode a bfloat16 pattern by widening it into a float32 word."""

    word = _BF16_WORD.pack((bits & 0xFFFF) << 16)
    return _BF16_FLOAT.unpack(word)[0]


__all__ = [
    "Dtype",
    "DtypeDescriptor",
    "DtypeKind",
    "decode_bf16",
    "decode_f16",
    "describe",
    "from_descr",
    "lookup",
    "numpy_dtype",
]
