"""Entry point that turns a file or buffer into decoded tensors."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .config import ViewerConfig
from .formats.common import BufferLike, InputTooLarge
from .formats.npy import is_npy, parse_npy
from .formats.npz import is_npz, parse_npz
from .formats.safetensors_header import parse_safetensors
from .render import Decoded

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, bytearray, memoryview]


def check_size(path: Path, config: Optional[ViewerConfig] = None) -> int:
    """Raise :class:`InputTooLarge` when *path* exceeds the size gate."""

    cfg = config if config is not None else ViewerConfig()
    size = path.stat().st_size
    if size > cfg.max_file_size_bytes:
        raise InputTooLarge(
            f"{path} is {size / (1024 * 1024):.1f} MB, larger than the "
            f"{cfg.max_file_size_mb:g} MB limit"
        )
    return size


def decode_buffer(buffer: BufferLike, kind: Optional[str] = None) -> Decoded:
    """Decode an in-memory payload.

    *kind* is ``"npy"``, ``"npz"`` or ``"safetensors"``; when omitted the
    format is sniffed from the leading magic bytes.
    """

    if kind is None:
        if is_npy(buffer):
            kind = "npy"
        elif is_npz(buffer):
            kind = "npz"
        else:
            kind = "safetensors"
    logger.debug("Decoding %d bytes as %s", len(buffer), kind)
    if kind == "npy":
        return parse_npy(buffer)
    if kind == "npz":
        return parse_npz(buffer)
    if kind == "safetensors":
        return parse_safetensors(buffer)
    raise ValueError(f"Unknown tensor format: {kind!r}")


def kind_for_path(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix == ".npz":
        return "npz"
    if suffix == ".safetensors":
        return "safetensors"
    return "npy"


def decode(source: Source, config: Optional[ViewerConfig] = None) -> Decoded:
    """Decode a path or buffer.

    Returns a :class:`RawTensor` for npy input, a name to tensor mapping for
    safetensors and a list of :class:`ArchiveEntry` for npz archives.
    """

    if isinstance(source, (bytes, bytearray, memoryview)):
        return decode_buffer(source)
    path = Path(source).expanduser()
    size = check_size(path, config)
    logger.info("Reading %s (%d bytes)", path, size)
    return decode_buffer(path.read_bytes(), kind_for_path(path))


__all__ = [
    "Source",
    "check_size",
    "decode",
    "decode_buffer",
    "kind_for_path",
]
