from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")
safetensors_numpy = pytest.importorskip("safetensors.numpy")

from tensorview.config import ViewerConfig
from tensorview.decode import decode, decode_buffer, kind_for_path
from tensorview.formats.common import InputTooLarge, RawTensor
from tensorview.formats.npz import ArchiveEntry
from tensorview.render import format_nested, format_shape, render, shape_summary


def _npy_bytes(array) -> bytes:
    buffer = io.BytesIO()
    np.save(buffer, array)
    return buffer.getvalue()


def test_decode_npy_path(tmp_path: Path) -> None:
    path = tmp_path / "array.npy"
    np.save(path, np.arange(6, dtype=np.int32).reshape(2, 3))

    decoded = decode(path)

    assert isinstance(decoded, RawTensor)
    assert render(decoded) == "[[0,1,2],[3,4,5]]"
    assert shape_summary(decoded) == "(2,3)"


def test_decode_npz_path(tmp_path: Path) -> None:
    path = tmp_path / "bundle.npz"
    np.savez(path, a=np.array([1, 2]), b=np.array(7))

    decoded = decode(str(path))

    assert all(isinstance(entry, ArchiveEntry) for entry in decoded)
    assert shape_summary(decoded) == "a.npy (2) b.npy ()"
    assert render(decoded) == "a.npy\n[1,2]\n\nb.npy\n7"


def test_decode_safetensors_path(tmp_path: Path) -> None:
    path = tmp_path / "model.safetensors"
    safetensors_numpy.save_file({"w": np.ones((1, 2), dtype=np.float32)}, str(path))

    decoded = decode(path)

    assert list(decoded) == ["w"]
    assert render(decoded) == "w\n[[1.0,1.0]]"
    assert shape_summary(decoded) == "w (1,2)"


def test_decode_buffer_sniffs_format() -> None:
    npy = _npy_bytes(np.array([1.5]))
    archive = io.BytesIO()
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr("x.npy", npy)
    tensors = safetensors_numpy.save({"t": np.zeros(2, dtype=np.int8)})

    assert isinstance(decode(npy), RawTensor)
    assert isinstance(decode_buffer(archive.getvalue())[0], ArchiveEntry)
    assert set(decode(tensors)) == {"t"}


def test_decode_buffer_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError):
        decode_buffer(b"", kind="hdf5")


def test_size_gate_rejects_large_files_before_reading(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "big.npy"
    np.save(path, np.zeros(1000, dtype=np.float64))

    def fail_read(self):  # type: ignore[no-untyped-def]
        raise AssertionError("file should not be read")

    monkeypatch.setattr(Path, "read_bytes", fail_read)

    with pytest.raises(InputTooLarge, match="limit"):
        decode(path, ViewerConfig(max_file_size_mb=0.001))


def test_render_reports_failed_archive_entries(tmp_path: Path) -> None:
    path = tmp_path / "mixed.npz"
    with zipfile.ZipFile(path, "w") as handle:
        handle.writestr("good.npy", _npy_bytes(np.array([1])))
        handle.writestr("bad.npy", b"garbage")

    decoded = decode(path)

    assert shape_summary(decoded) == "good.npy (1) bad.npy (error)"
    assert render(decoded).startswith("good.npy\n[1]\n\nbad.npy\nerror: ")


@pytest.mark.parametrize(
    "name, kind",
    [("a.NPZ", "npz"), ("b.safetensors", "safetensors"), ("c.npy", "npy"), ("d", "npy")],
)
def test_kind_for_path(name: str, kind: str) -> None:
    assert kind_for_path(Path(name)) == kind


def test_format_helpers() -> None:
    assert format_nested([[True, False]]) == "[[True,False]]"
    assert format_nested(2.5) == "2.5"
    assert format_nested([]) == "[]"
    assert format_shape(()) == "()"
    assert format_shape((4,)) == "(4)"


def test_config_from_env() -> None:
    config = ViewerConfig.from_env(
        {
            "TENSORVIEW_FORTRAN_TO_C": "off",
            "TENSORVIEW_PRECISION": "3",
            "TENSORVIEW_MAX_FILE_MB": "12.5",
        }
    )

    assert config == ViewerConfig(fortran_to_c_order=False, precision=3, max_file_size_mb=12.5)
    assert ViewerConfig.from_env({}) == ViewerConfig()


@pytest.mark.parametrize(
    "environ",
    [
        {"TENSORVIEW_FORTRAN_TO_C": "maybe"},
        {"TENSORVIEW_PRECISION": "two"},
        {"TENSORVIEW_PRECISION": "-1"},
        {"TENSORVIEW_MAX_FILE_MB": "0"},
    ],
)
def test_config_from_env_rejects_invalid_values(environ) -> None:
    with pytest.raises(ValueError):
        ViewerConfig.from_env(environ)
