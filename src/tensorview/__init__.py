"""Decoders and array reconstruction for npy, npz and safetensors files.

The renderer-facing entry points are :func:`tensorview.decode.decode`, which
turns a path or buffer into raw tensors, and :func:`tensorview.reshape.reshape`,
which nests one raw tensor. Their submodules share those names, so they are
imported from the submodules rather than from the package root.
"""

from __future__ import annotations

import importlib
from typing import Any

_EXPORTS = {
    "ViewerConfig": "tensorview.config",
    "decode_buffer": "tensorview.decode",
    "materialize": "tensorview.reshape",
    "reconstruct": "tensorview.reshape",
    "render_tensor": "tensorview.render",
    "shape_summary": "tensorview.render",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        value = getattr(importlib.import_module(_EXPORTS[name]), name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(list(__all__) + list(globals().keys()))
