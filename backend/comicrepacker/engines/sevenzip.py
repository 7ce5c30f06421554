"""Archive analysis with the 7-Zip command line (`7zz l -slt`)."""
import logging
import subprocess
from pathlib import Path

from comicrepacker.config import IMAGE_EXTENSIONS, SEVEN_ZIP_BIN, SEVEN_ZIP_TIMEOUT
from comicrepacker.errors import SevenZipError
from comicrepacker.scan.models import ArchiveInfo

logger = logging.getLogger("comicrepacker.sevenzip")


def _parse_block(block: str) -> dict[str, str]:
    props: dict[str, str] = {}
    for line in block.splitlines():
        # "Key = Value", some builds print "Key=Value"
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key:
            props[key] = value.strip()
    return props


def unsupported_reason(file_type: str, is_solid: bool):
    if file_type.lower() == "rar5":
        return "RAR5 format"
    if is_solid:
        return "Solid archive"
    return None


def parse_listing(output: str) -> ArchiveInfo:
    """Build ArchiveInfo from the technical listing. The first block carrying `Type` describes
    the archive; every block whose `Path` has an image extension counts as a page."""
    text = output.replace("\r\n", "\n")
    if not text.strip():
        raise SevenZipError("Empty output from 7-Zip")

    file_type = ""
    is_solid = False
    is_encrypted = False
    image_count = 0
    for block in text.split("\n\n"):
        if not block.strip():
            continue
        props = _parse_block(block)
        if not file_type and props.get("Type"):
            file_type = props["Type"]
            is_solid = props.get("Solid") == "+"
            is_encrypted = props.get("Encrypted") == "+"
        entry = props.get("Path")
        if entry and Path(entry.lower()).suffix in IMAGE_EXTENSIONS:
            image_count += 1

    if not file_type:
        raise SevenZipError("Could not determine archive type from 7-Zip listing")

    return ArchiveInfo(
        file_type=file_type,
        is_solid=is_solid,
        is_encrypted=is_encrypted,
        image_count=image_count,
        unsupported_reason=unsupported_reason(file_type, is_solid),
    )


def analyze_archive(path: Path) -> ArchiveInfo:
    """List an archive and classify it. A readable listing wins over a non-zero exit code:
    7-Zip reports minor header damage as a fatal code while still listing every entry."""
    cmd = [SEVEN_ZIP_BIN, "l", "-slt", "-y", str(path)]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, errors="replace", timeout=SEVEN_ZIP_TIMEOUT)
    except FileNotFoundError:
        raise SevenZipError(f"7-Zip not found ({SEVEN_ZIP_BIN}). Install 7-Zip or set SEVEN_ZIP_BIN.")
    except subprocess.TimeoutExpired:
        raise SevenZipError(f"7-Zip timed out after {SEVEN_ZIP_TIMEOUT}s")

    try:
        info = parse_listing(result.stdout or "")
    except SevenZipError:
        if result.returncode > 0:
            stdout = (result.stdout or "").strip()
            raise SevenZipError(
                f"7zz failed with code {result.returncode}. Stderr: '{(result.stderr or '').strip()}'. "
                f"Stdout trace: '{stdout[:200]}'"
            )
        raise
    logger.debug(
        "Scanned %s: type=%s images=%s solid=%s", path, info.file_type, info.image_count, info.is_solid,
    )
    return info
