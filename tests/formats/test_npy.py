from __future__ import annotations

import io
import struct

import pytest

np = pytest.importorskip("numpy")

from tensorview.formats.common import LayoutOrder, MalformedHeader, OutOfBounds, UnsupportedDtype
from tensorview.formats.dtypes import Dtype
from tensorview.formats.npy import NPY_MAGIC, parse_header_dict, parse_npy
from tensorview.reshape import reshape


def _npy_bytes(array, version=None) -> bytes:
    buffer = io.BytesIO()
    if version is None:
        np.save(buffer, array)
    else:
        np.lib.format.write_array(buffer, array, version=version)
    return buffer.getvalue()


def _handmade_npy(header: str, payload: bytes = b"") -> bytes:
    text = header.encode("latin-1")
    return NPY_MAGIC + bytes([1, 0]) + struct.pack("<H", len(text)) + text + payload


def test_parse_npy_row_major_int_array() -> None:
    raw = parse_npy(_npy_bytes(np.arange(6, dtype=np.int64).reshape(2, 3)))

    assert raw.shape == (2, 3)
    assert raw.dtype is Dtype.I64
    assert raw.layout is LayoutOrder.ROW_MAJOR
    assert reshape(raw) == [[0, 1, 2], [3, 4, 5]]


def test_parse_npy_reports_fortran_order() -> None:
    array = np.asfortranarray(np.arange(6, dtype=np.float32).reshape(2, 3))

    raw = parse_npy(_npy_bytes(array))

    assert raw.layout is LayoutOrder.COLUMN_MAJOR
    assert raw.dtype is Dtype.F32


@pytest.mark.parametrize("version", [(1, 0), (2, 0), (3, 0)])
def test_parse_npy_supports_all_header_versions(version) -> None:
    array = np.array([[1.5, -2.0]], dtype=np.float64)

    raw = parse_npy(_npy_bytes(array, version=version))

    assert raw.shape == (1, 2)
    assert reshape(raw) == [[1.5, -2.0]]


def test_parse_npy_big_endian_payload() -> None:
    array = np.array([1, 256, -3], dtype=">i4")

    raw = parse_npy(_npy_bytes(array))

    assert raw.byteorder == ">"
    assert reshape(raw) == [1, 256, -3]


def test_parse_npy_bool_and_half_precision() -> None:
    assert reshape(parse_npy(_npy_bytes(np.array([True, False, True])))) == [True, False, True]
    halves = np.array([1.0, -2.0, 0.5, np.inf], dtype=np.float16)
    assert reshape(parse_npy(_npy_bytes(halves))) == [1.0, -2.0, 0.5, float("inf")]


def test_parse_npy_scalar_is_a_bare_leaf() -> None:
    raw = parse_npy(_npy_bytes(np.float64(3.5)))

    assert raw.shape == ()
    assert reshape(raw) == 3.5


def test_parse_npy_payload_is_a_view_into_the_buffer() -> None:
    buffer = bytearray(_npy_bytes(np.zeros(4, dtype=np.uint8)))
    raw = parse_npy(buffer)

    buffer[-1] = 9

    assert reshape(raw) == [0, 0, 0, 9]


def test_parse_npy_rejects_bad_magic() -> None:
    payload = bytearray(_npy_bytes(np.arange(3)))
    payload[1:6] = b"NUMPX"

    with pytest.raises(MalformedHeader, match="magic"):
        parse_npy(bytes(payload))


def test_parse_npy_rejects_unknown_version() -> None:
    payload = bytearray(_npy_bytes(np.arange(3)))
    payload[6] = 9

    with pytest.raises(MalformedHeader, match="version"):
        parse_npy(bytes(payload))


def test_parse_npy_rejects_truncated_header() -> None:
    with pytest.raises(MalformedHeader):
        parse_npy(NPY_MAGIC + b"\x01\x00\xff\x00{'descr'")


def test_parse_npy_rejects_missing_keys() -> None:
    with pytest.raises(MalformedHeader, match="shape"):
        parse_npy(_handmade_npy("{'descr': '<i4', 'fortran_order': False}"))


def test_parse_npy_rejects_unsupported_descr() -> None:
    with pytest.raises(UnsupportedDtype):
        parse_npy(_npy_bytes(np.array([1 + 2j])))


def test_parse_npy_truncated_payload_is_out_of_bounds() -> None:
    header = "{'descr': '<i4', 'fortran_order': False, 'shape': (4,), }"

    with pytest.raises(OutOfBounds):
        parse_npy(_handmade_npy(header, b"\x00" * 8))


def test_parse_header_dict_validates_shape() -> None:
    with pytest.raises(MalformedHeader):
        parse_header_dict("{'descr': '<i4', 'fortran_order': False, 'shape': (-1,)}")
    with pytest.raises(MalformedHeader):
        parse_header_dict("{'descr': '<i4', 'fortran_order': 'no', 'shape': (1,)}")
    with pytest.raises(MalformedHeader):
        parse_header_dict("not a dict")


@pytest.mark.parametrize(
    "header",
    [
        "{'descr': '<i4', 'fortran_order': False, 'shape': (), [1]: 2}",
        "{'descr': '<i4', 'fortran_order': False, 'shape': (), {}: 2}",
        "{'descr': '<i4', 'fortran_order': False, 'shape': " + "(" * 1000 + ")" * 1000 + "}",
    ],
)
def test_parse_npy_corrupt_dictionary_is_malformed(header: str) -> None:
    with pytest.raises(MalformedHeader):
        parse_npy(_handmade_npy(header, b"\x00" * 4))
