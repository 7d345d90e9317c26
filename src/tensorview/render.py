"""Plain-text representations of decoded tensors."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Union

from .config import ViewerConfig
from .formats.common import RawTensor
from .formats.npz import ArchiveEntry
from .reshape import NestedArray, reshape

Decoded = Union[RawTensor, Dict[str, RawTensor], List[ArchiveEntry]]


def format_nested(nested: NestedArray) -> str:
    """Render ``[[0,1,2],[3,4,5]]`` style text; scalars render bare."""

    if isinstance(nested, list):
        return "[" + ",".join(format_nested(item) for item in nested) + "]"
    return str(nested)


def format_shape(shape: Sequence[int]) -> str:
    return "(" + ",".join(str(dim) for dim in shape) + ")"


def shape_summary(decoded: Decoded) -> str:
    """One-line shape description, e.g. ``a.npy (2,3) b.npy (4)``."""

    if isinstance(decoded, RawTensor):
        return format_shape(decoded.shape)
    parts: List[str] = []
    if isinstance(decoded, dict):
        for name, tensor in decoded.items():
            parts.append(f"{name} {format_shape(tensor.shape)}")
    else:
        for entry in decoded:
            if entry.ok:
                parts.append(f"{entry.name} {format_shape(entry.tensor.shape)}")
            else:
                parts.append(f"{entry.name} (error)")
    return " ".join(parts)


def render_tensor(raw: RawTensor, config: Optional[ViewerConfig] = None) -> str:
    return format_nested(reshape(raw, config))


def render(decoded: Decoded, config: Optional[ViewerConfig] = None) -> str:
    """Text body for a decoded file: one block per named tensor."""

    if isinstance(decoded, RawTensor):
        return render_tensor(decoded, config)
    blocks: List[str] = []
    if isinstance(decoded, dict):
        for name, tensor in decoded.items():
            blocks.append(f"{name}\n{render_tensor(tensor, config)}")
    else:
        for entry in decoded:
            if entry.ok:
                blocks.append(f"{entry.name}\n{render_tensor(entry.tensor, config)}")
            else:
                blocks.append(f"{entry.name}\nerror: {entry.error}")
    return "\n\n".join(blocks)


__all__ = [
    "Decoded",
    "format_nested",
    "format_shape",
    "render",
    "render_tensor",
    "shape_summary",
]
