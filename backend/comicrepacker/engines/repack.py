"""Conversion engine: extract an archive with 7-Zip and repack it as a zip-based .cbz."""
import logging
import os
import shutil
import subprocess
import uuid
import zipfile
from pathlib import Path
from typing import Optional

from comicrepacker.config import OUTPUT_DIR, SEVEN_ZIP_BIN, SEVEN_ZIP_TIMEOUT, WORK_DIR
from comicrepacker.errors import ConversionFailed

logger = logging.getLogger("comicrepacker.repack")


def zip_directory(src_dir: Path, zip_path: Path) -> int:
    """Write every file under src_dir into zip_path with forward-slash names. Returns file count."""
    count = 0
    with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(src_dir.rglob("*")):
            if not path.is_file():
                continue
            zf.write(path, path.relative_to(src_dir).as_posix())
            count += 1
    return count


class RepackEngine:
    """Blocking; the coordinator runs it on its worker threads."""

    def __init__(self, work_dir: Optional[Path] = None, output_dir: Optional[Path] = None):
        self.work_dir = work_dir or WORK_DIR
        self.output_dir = output_dir or OUTPUT_DIR

    def output_path_for(self, src: Path) -> Path:
        parent = self.output_dir or src.parent
        return parent / f"{src.stem}.cbz"

    def _extract(self, src: Path, dest: Path) -> None:
        cmd = [SEVEN_ZIP_BIN, "x", "-y", f"-o{dest}", str(src)]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors="replace", timeout=SEVEN_ZIP_TIMEOUT)
        except FileNotFoundError:
            raise ConversionFailed(f"Failed to run 7zz: {SEVEN_ZIP_BIN} not found")
        except subprocess.TimeoutExpired:
            raise ConversionFailed(f"Extraction timed out after {SEVEN_ZIP_TIMEOUT}s")
        if result.returncode != 0:
            raise ConversionFailed(f"Extraction failed: {(result.stderr or result.stdout or '').strip()}")

    def convert(self, path: str) -> str:
        src = Path(path)
        if not src.is_file():
            raise ConversionFailed("File not found")
        temp_dir = self.work_dir / uuid.uuid4().hex
        try:
            temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConversionFailed(f"Failed to create temp dir: {e}")
        out_path = self.output_path_for(src)
        partial = out_path.with_name(f".{out_path.name}.{uuid.uuid4().hex[:8]}.part")
        try:
            self._extract(src, temp_dir)
            out_path.parent.mkdir(parents=True, exist_ok=True)
            count = zip_directory(temp_dir, partial)
            if count == 0:
                raise ConversionFailed("Archive contained no files")
            os.replace(partial, out_path)
        except OSError as e:
            raise ConversionFailed(f"Failed to write {out_path.name}: {e}")
        finally:
            partial.unlink(missing_ok=True)
            shutil.rmtree(temp_dir, ignore_errors=True)
        logger.info("Repacked %s -> %s (%s files)", src.name, out_path.name, count)
        return str(out_path)
