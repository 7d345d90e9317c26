"""Decoding of ``.npz`` archives of npy entries."""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from .common import BufferLike, MalformedHeader, RawTensor, TensorFormatError, as_view
from .npy import parse_npy

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"


@dataclass(frozen=True)
class ArchiveEntry:
    """Outcome of decoding one archive member."""

    name: str
    tensor: Optional[RawTensor] = None
    error: Optional[TensorFormatError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _read_members(buffer: BufferLike) -> List[Tuple[str, Union[bytes, MalformedHeader]]]:
    """Read every member separately; a member that fails to inflate or
    verify yields a :class:`MalformedHeader` in place of its payload."""

    try:
        archive = zipfile.ZipFile(io.BytesIO(as_view(buffer)))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, ValueError) as exc:
        raise MalformedHeader(f"Unable to read npz archive: {exc}") from exc

    members: List[Tuple[str, Union[bytes, MalformedHeader]]] = []
    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            try:
                members.append((info.filename, archive.read(info)))
            except (
                zipfile.BadZipFile,
                zlib.error,
                EOFError,
                NotImplementedError,
                RuntimeError,
                ValueError,
            ) as exc:
                error = MalformedHeader(f"Unable to read archive member {info.filename!r}: {exc}")
                error.__cause__ = exc
                members.append((info.filename, error))
    return members


def list_entries(buffer: BufferLike) -> List[Tuple[str, bytes]]:
    """Extract ``(name, payload)`` pairs from a zip archive, in archive order.

    Any unreadable member fails the whole listing; :func:`parse_npz` keeps
    such members as error slots instead.
    """

    entries: List[Tuple[str, bytes]] = []
    for name, payload in _read_members(buffer):
        if isinstance(payload, MalformedHeader):
            raise payload
        entries.append((name, payload))
    return entries


def _decode_entry(name: str, payload: BufferLike) -> ArchiveEntry:
    try:
        tensor = parse_npy(payload)
    except TensorFormatError as exc:
        return _failed_entry(name, exc)
    return ArchiveEntry(name, tensor=tensor)


def _failed_entry(name: str, error: TensorFormatError) -> ArchiveEntry:
    logger.warning("Failed to decode archive entry %s: %s", name, error)
    return ArchiveEntry(name, error=error)


def aggregate_entries(entries: Iterable[Tuple[str, BufferLike]]) -> List[ArchiveEntry]:
    """Decode each entry independently so one corrupt member does not hide the rest."""

    return [_decode_entry(name, payload) for name, payload in entries]


def parse_npz(buffer: BufferLike) -> List[ArchiveEntry]:
    """Decode an npz archive; unreadable or undecodable members become error slots."""

    results: List[ArchiveEntry] = []
    for name, payload in _read_members(buffer):
        if isinstance(payload, MalformedHeader):
            results.append(_failed_entry(name, payload))
        else:
            results.append(_decode_entry(name, payload))
    return results


def is_npz(buffer: BufferLike) -> bool:
    return bytes(buffer[: len(ZIP_MAGIC)]) == ZIP_MAGIC


__all__ = [
    "ArchiveEntry",
    "ZIP_MAGIC",
    "aggregate_entries",
    "is_npz",
    "list_entries",
    "parse_npz",
]
