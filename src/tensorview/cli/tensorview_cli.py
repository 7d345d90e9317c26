"""Print the contents or shape of npy, npz and safetensors files."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..config import ViewerConfig
from ..decode import decode
from ..formats.common import TensorFormatError
from ..formats.npz import ArchiveEntry
from ..render import render, shape_summary

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tensorview",
        description="Decode .npy, .npz and .safetensors files into nested arrays",
    )
    parser.add_argument("path", type=Path, help="File to decode")
    parser.add_argument(
        "--shape-only",
        action="store_true",
        help="Print only the shape summary line",
    )
    parser.add_argument(
        "--keep-fortran-order",
        action="store_true",
        help=(
            "Show column-major arrays with their shape reversed instead of"
            " permuting elements into row-major order"
        ),
    )
    parser.add_argument(
        "--precision",
        type=int,
        default=None,
        help="Round float values to this many decimal places",
    )
    parser.add_argument(
        "--max-size-mb",
        type=float,
        default=None,
        help="Refuse files larger than this many megabytes",
    )
    parser.add_argument("--verbose", action="store_true", help="Log decoding details")
    return parser.parse_args([] if argv is None else list(argv))


def _build_config(args: argparse.Namespace) -> ViewerConfig:
    config = ViewerConfig.from_env()
    overrides = {}
    if args.keep_fortran_order:
        overrides["fortran_to_c_order"] = False
    if args.precision is not None:
        overrides["precision"] = args.precision
    if args.max_size_mb is not None:
        overrides["max_file_size_mb"] = args.max_size_mb
    return dataclasses.replace(config, **overrides) if overrides else config


def _has_failures(decoded) -> bool:
    return isinstance(decoded, list) and any(
        isinstance(entry, ArchiveEntry) and not entry.ok for entry in decoded
    )


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = _parse_args(list(argv) if argv is not None else sys.argv[1:])
    if args.verbose and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)
    if args.verbose:
        logging.getLogger("tensorview").setLevel(logging.DEBUG)

    try:
        config = _build_config(args)
        decoded = decode(args.path, config)
        if args.shape_only:
            print(shape_summary(decoded))
        else:
            print(render(decoded, config))
    except (TensorFormatError, OSError, ValueError) as exc:
        logger.debug("Decoding %s failed", args.path, exc_info=True)
        print(f"tensorview: {exc}", file=sys.stderr)
        return 1
    return 1 if _has_failures(decoded) else 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
