"""Binary decoders for npy, npz and safetensors payloads."""

from .common import (
    ByteStreamReader,
    InputTooLarge,
    LayoutOrder,
    MalformedHeader,
    OutOfBounds,
    RawTensor,
    ShapeMismatch,
    TensorFormatError,
    UnsupportedDtype,
)
from .dtypes import Dtype, DtypeDescriptor, DtypeKind, decode_bf16, decode_f16, describe
from .npy import parse_npy
from .npz import ArchiveEntry, aggregate_entries, list_entries, parse_npz
from .safetensors_header import parse_safetensors, read_metadata

__all__ = [
    "ArchiveEntry",
    "ByteStreamReader",
    "Dtype",
    "DtypeDescriptor",
    "DtypeKind",
    "InputTooLarge",
    "LayoutOrder",
    "MalformedHeader",
    "OutOfBounds",
    "RawTensor",
    "ShapeMismatch",
    "TensorFormatError",
    "UnsupportedDtype",
    "aggregate_entries",
    "decode_bf16",
    "decode_f16",
    "describe",
    "list_entries",
    "parse_npy",
    "parse_npz",
    "parse_safetensors",
    "read_metadata",
]
