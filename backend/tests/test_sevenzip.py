from __future__ import annotations

import subprocess

import pytest

from comicrepacker.engines import sevenzip
from comicrepacker.engines.sevenzip import analyze_archive, parse_listing
from comicrepacker.errors import SevenZipError

RAR5_SOLID = """Listing archive: test.rar

--
Path = test.rar
Type = Rar5
Physical Size = 1048576
Solid = +
Blocks = 1
Multivolume = -
Volume = -
Encrypted = -

----------
Path = cover.jpg
Folder = -
Size = 123456
Packed Size = 123456
Modified = 2023-01-01 12:00:00
Attributes = A
CRC = ABCDEF01
Encrypted = -
Method = LZMA2:24

----------
Path = page01.png
Folder = -
"""

ZIP_LISTING = (
    "Listing archive: book.cbz\r\n\r\n--\r\nPath = book.cbz\r\nType = zip\r\n"
    "Physical Size = 2048\r\n\r\n----------\r\nPath = 001.JPG\r\nSize = 10\r\n\r\n"
    "----------\r\nPath = ComicInfo.xml\r\nSize = 4\r\n\r\n----------\r\nPath=002.webp\r\n"
)


def test_parse_rar5_solid():
    info = parse_listing(RAR5_SOLID)
    assert info.file_type == "Rar5"
    assert info.is_solid is True
    assert info.is_encrypted is False
    assert info.image_count == 2
    assert info.unsupported_reason == "RAR5 format"


def test_parse_zip_is_supported():
    info = parse_listing(ZIP_LISTING)
    assert info.file_type == "zip"
    assert info.is_solid is False
    assert info.image_count == 2
    assert info.unsupported_reason is None


def test_solid_rar4_is_unsupported():
    info = parse_listing("--\nPath = a.cbr\nType = Rar\nSolid = +\nEncrypted = +\n")
    assert info.file_type == "Rar"
    assert info.is_encrypted is True
    assert info.unsupported_reason == "Solid archive"


def test_type_found_without_block_separators():
    info = parse_listing("garbage\n  Type = Rar5\nmore garbage Path = x")
    assert info.file_type == "Rar5"


def test_empty_listing_raises():
    with pytest.raises(SevenZipError):
        parse_listing("  \n")


def test_listing_without_type_raises():
    with pytest.raises(SevenZipError):
        parse_listing("Scanning the drive for archives:\n1 file, 10 bytes\n")


def _fake_run(stdout="", stderr="", returncode=0):
    def run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)
    return run


def test_analyze_accepts_listing_despite_exit_code(monkeypatch, tmp_path):
    monkeypatch.setattr(sevenzip.subprocess, "run", _fake_run(RAR5_SOLID, "Headers Error", 2))
    info = analyze_archive(tmp_path / "test.rar")
    assert info.file_type == "Rar5"


def test_analyze_reports_failure_details(monkeypatch, tmp_path):
    monkeypatch.setattr(sevenzip.subprocess, "run", _fake_run("Open ERROR", "Can not open the file as archive", 2))
    with pytest.raises(SevenZipError, match="code 2.*Can not open the file as archive"):
        analyze_archive(tmp_path / "broken.cbr")


def test_analyze_missing_binary(monkeypatch, tmp_path):
    def run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(sevenzip.subprocess, "run", run)
    with pytest.raises(SevenZipError, match="not found"):
        analyze_archive(tmp_path / "a.cbr")


def test_analyze_builds_list_command(monkeypatch, tmp_path):
    seen = {}

    def run(cmd, **kwargs):
        seen["cmd"] = cmd
        return subprocess.CompletedProcess(cmd, 0, stdout=ZIP_LISTING, stderr="")

    monkeypatch.setattr(sevenzip.subprocess, "run", run)
    analyze_archive(tmp_path / "book.cbz")
    assert seen["cmd"][1:4] == ["l", "-slt", "-y"]
    assert seen["cmd"][-1] == str(tmp_path / "book.cbz")


def test_analyze_rejects_listing_without_type_on_clean_exit(monkeypatch, tmp_path):
    monkeypatch.setattr(sevenzip.subprocess, "run", _fake_run("Listing archive: odd.cbz\n\n--\nPath = odd.cbz\n"))
    with pytest.raises(SevenZipError, match="Could not determine archive type"):
        analyze_archive(tmp_path / "odd.cbz")
