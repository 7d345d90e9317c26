"""Reconstruction of nested arrays from flat tensor payloads."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

import numpy as _np

from .config import ViewerConfig
from .formats.common import LayoutOrder, RawTensor, ShapeMismatch, shape_size
from .formats.dtypes import Dtype, DtypeKind, decode_bf16, decode_f16, numpy_dtype

NestedArray = Any


def materialize(raw: RawTensor) -> _np.ndarray:
    """Return the flat element buffer for *raw*.

    Compact float encodings are decoded element by element; every other
    dtype is a zero-copy view over the tensor payload.
    """

    view_type = numpy_dtype(raw.dtype, raw.byteorder)
    if raw.size == 0:
        words = _np.empty(0, dtype=view_type)
    else:
        words = _np.frombuffer(raw.data, dtype=view_type)
    if raw.dtype is Dtype.F16:
        return _np.fromiter(
            (decode_f16(bits) for bits in words.tolist()), dtype=_np.float64, count=words.size
        )
    if raw.dtype is Dtype.BF16:
        return _np.fromiter(
            (decode_bf16(bits) for bits in words.tolist()), dtype=_np.float32, count=words.size
        )
    return words


def column_major_to_row_major(flat: _np.ndarray, shape: Sequence[int]) -> _np.ndarray:
    """Permute a column-major buffer into row-major order for the same shape.

    The element at multi-index ``(i0, ..., in-1)`` of a column-major buffer
    lives at ``sum(ik * prod(d0..dk-1))``; the result stores it at its
    row-major position instead.
    """

    dims = tuple(int(dim) for dim in shape)
    if flat.size != shape_size(dims):
        raise ShapeMismatch(f"Buffer of {flat.size} elements cannot hold shape {dims}")
    if len(dims) < 2:
        return flat
    return _np.reshape(flat, dims, order="F").ravel(order="C")


def reversed_shape(shape: Sequence[int]) -> Tuple[int, ...]:
    return tuple(reversed(tuple(shape)))


def build_nested(values: Sequence[Any], shape: Sequence[int]) -> NestedArray:
    """Nest a row-major sequence of leaves according to *shape*.

    Depth equals ``len(shape)``; an empty shape yields the single leaf.
    """

    dims = tuple(int(dim) for dim in shape)
    if len(values) != shape_size(dims):
        raise ShapeMismatch(f"{len(values)} values cannot fill shape {dims}")
    if not dims:
        return values[0]

    strides = [1] * len(dims)
    for axis in range(len(dims) - 2, -1, -1):
        strides[axis] = strides[axis + 1] * dims[axis + 1]

    def build(axis: int, offset: int) -> List[Any]:
        if axis == len(dims) - 1:
            return list(values[offset : offset + dims[axis]])
        return [build(axis + 1, offset + index * strides[axis]) for index in range(dims[axis])]

    return build(0, 0)


def reconstruct(
    flat: _np.ndarray,
    shape: Sequence[int],
    layout: LayoutOrder = LayoutOrder.ROW_MAJOR,
    *,
    fortran_to_c_order: bool = True,
    precision: Optional[int] = None,
) -> NestedArray:
    """Turn a flat buffer into a row-major nested array.

    Column-major input is either permuted into row-major order
    (``fortran_to_c_order``) or nested as-is under the reversed shape.
    """

    dims = tuple(int(dim) for dim in shape)
    if flat.size != shape_size(dims):
        raise ShapeMismatch(f"Buffer of {flat.size} elements cannot hold shape {dims}")
    if layout is LayoutOrder.COLUMN_MAJOR and len(dims) > 1:
        if fortran_to_c_order:
            flat = column_major_to_row_major(flat, dims)
        else:
            dims = reversed_shape(dims)
    values = flat.tolist()
    if precision is not None:
        values = [round(value, precision) for value in values]
    return build_nested(values, dims)


def reshape(raw: RawTensor, config: Optional[ViewerConfig] = None) -> NestedArray:
    """Decode and nest *raw* using the viewer configuration."""

    cfg = config if config is not None else ViewerConfig()
    precision = cfg.precision if raw.dtype.kind is DtypeKind.FLOAT else None
    return reconstruct(
        materialize(raw),
        raw.shape,
        raw.layout,
        fortran_to_c_order=cfg.fortran_to_c_order,
        precision=precision,
    )


__all__ = [
    "NestedArray",
    "build_nested",
    "column_major_to_row_major",
    "materialize",
    "reconstruct",
    "reshape",
    "reversed_shape",
]
