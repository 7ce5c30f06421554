from __future__ import annotations

import subprocess
import zipfile
from pathlib import Path

import pytest

from comicrepacker.engines import repack
from comicrepacker.engines.repack import RepackEngine
from comicrepacker.errors import ConversionFailed


def _fake_extract(pages: dict[str, bytes], returncode: int = 0, stderr: str = ""):
    def run(cmd, **kwargs):
        out_dir = Path(next(a for a in cmd if a.startswith("-o"))[2:])
        if returncode == 0:
            for name, data in pages.items():
                target = out_dir / name
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(data)
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)
    return run


@pytest.fixture
def engine(tmp_path: Path) -> RepackEngine:
    return RepackEngine(work_dir=tmp_path / "work")


@pytest.fixture
def source(tmp_path: Path) -> Path:
    src = tmp_path / "books" / "Issue 01.cbr"
    src.parent.mkdir()
    src.write_bytes(b"Rar!")
    return src


def test_repack_writes_cbz_next_to_source(monkeypatch, engine, source, tmp_path):
    pages = {"001.jpg": b"a", "002.jpg": b"b", "extras/cover.png": b"c"}
    monkeypatch.setattr(repack.subprocess, "run", _fake_extract(pages))

    out = engine.convert(str(source))

    assert out == str(source.with_suffix(".cbz"))
    with zipfile.ZipFile(out) as zf:
        assert sorted(zf.namelist()) == ["001.jpg", "002.jpg", "extras/cover.png"]
        assert zf.read("extras/cover.png") == b"c"
    # temp extraction dir is cleaned up
    assert list((tmp_path / "work").iterdir()) == []
    assert source.exists()


def test_repack_into_output_dir(monkeypatch, tmp_path, source):
    monkeypatch.setattr(repack.subprocess, "run", _fake_extract({"001.jpg": b"a"}))
    engine = RepackEngine(work_dir=tmp_path / "work", output_dir=tmp_path / "converted")
    out = engine.convert(str(source))
    assert Path(out) == tmp_path / "converted" / "Issue 01.cbz"


def test_missing_source(engine, tmp_path):
    with pytest.raises(ConversionFailed, match="File not found"):
        engine.convert(str(tmp_path / "nope.cbr"))


def test_extraction_failure_cleans_up(monkeypatch, engine, source, tmp_path):
    monkeypatch.setattr(repack.subprocess, "run", _fake_extract({}, returncode=2, stderr="Unsupported method"))
    with pytest.raises(ConversionFailed, match="Extraction failed: Unsupported method"):
        engine.convert(str(source))
    assert list((tmp_path / "work").iterdir()) == []
    assert not source.with_suffix(".cbz").exists()
    assert [p.name for p in source.parent.iterdir()] == [source.name]


def test_empty_archive_fails(monkeypatch, engine, source):
    monkeypatch.setattr(repack.subprocess, "run", _fake_extract({}))
    with pytest.raises(ConversionFailed, match="no files"):
        engine.convert(str(source))
    assert not source.with_suffix(".cbz").exists()


def test_missing_binary(monkeypatch, engine, source):
    def run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(repack.subprocess, "run", run)
    with pytest.raises(ConversionFailed, match="not found"):
        engine.convert(str(source))
