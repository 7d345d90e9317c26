"""Viewer configuration shared by the decoder entry point and the CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_MAX_FILE_SIZE_MB = 50.0

ENV_FORTRAN_TO_C = "TENSORVIEW_FORTRAN_TO_C"
ENV_PRECISION = "TENSORVIEW_PRECISION"
ENV_MAX_FILE_MB = "TENSORVIEW_MAX_FILE_MB"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {value!r}")


@dataclass(frozen=True)
class ViewerConfig:
    """Rendering options for decoded tensors.

    ``fortran_to_c_order`` selects how column-major arrays are presented:
    when true the elements are permuted into row-major order under the
    declared shape, otherwise the buffer is kept as-is and nested under the
    reversed shape. ``precision`` rounds float leaves to that many decimals.
    ``max_file_size_mb`` is the size gate applied before a file is read.
    """

    fortran_to_c_order: bool = True
    precision: Optional[int] = None
    max_file_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB

    def __post_init__(self) -> None:
        if self.precision is not None and self.precision < 0:
            raise ValueError("precision must be non-negative")
        if self.max_file_size_mb <= 0:
            raise ValueError("max_file_size_mb must be positive")

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ViewerConfig":
        env = os.environ if environ is None else environ
        kwargs = {}
        raw = env.get(ENV_FORTRAN_TO_C)
        if raw:
            kwargs["fortran_to_c_order"] = _parse_bool(ENV_FORTRAN_TO_C, raw)
        raw = env.get(ENV_PRECISION)
        if raw:
            try:
                kwargs["precision"] = int(raw)
            except ValueError as exc:
                raise ValueError(f"{ENV_PRECISION} must be an integer, got {raw!r}") from exc
        raw = env.get(ENV_MAX_FILE_MB)
        if raw:
            try:
                kwargs["max_file_size_mb"] = float(raw)
            except ValueError as exc:
                raise ValueError(f"{ENV_MAX_FILE_MB} must be a number, got {raw!r}") from exc
        return cls(**kwargs)


__all__ = [
    "DEFAULT_MAX_FILE_SIZE_MB",
    "ENV_FORTRAN_TO_C",
    "ENV_MAX_FILE_MB",
    "ENV_PRECISION",
    "ViewerConfig",
]
