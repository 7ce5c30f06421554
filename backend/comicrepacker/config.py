"""Application configuration. Loads from environment and .env file."""
import logging
import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")


def _ext_set(raw: str) -> set[str]:
    return {"." + e.strip().lower().lstrip(".") for e in raw.split(",") if e.strip()}


# 7-Zip binary used for archive listing and extraction
SEVEN_ZIP_BIN = os.getenv("SEVEN_ZIP_BIN", "7zz")
SEVEN_ZIP_TIMEOUT = int(os.getenv("SEVEN_ZIP_TIMEOUT", "300"))

# Files picked up by the scanner, and archive entries counted as pages
ARCHIVE_EXTENSIONS = _ext_set(os.getenv("ARCHIVE_EXTENSIONS", "cbr,cbz,rar,zip"))
IMAGE_EXTENSIONS = _ext_set(os.getenv("IMAGE_EXTENSIONS", "jpg,jpeg,png,webp,gif"))

# Paths (override with env). OUTPUT_DIR empty = write the .cbz next to the source.
WORK_DIR = Path(os.getenv("WORK_DIR", str(Path(tempfile.gettempdir()) / "comicrepacker-conversion")))
OUTPUT_DIR = Path(os.environ["OUTPUT_DIR"]) if os.getenv("OUTPUT_DIR", "").strip() else None

# Concurrency. 1 = every conversion (single or batch) runs one at a time.
CONVERSION_WORKERS = max(1, int(os.getenv("CONVERSION_WORKERS", "1")))
# Seconds to wait for the scanner to confirm a cancel before forcing idle (0 = wait forever)
CANCEL_TIMEOUT_SECONDS = float(os.getenv("CANCEL_TIMEOUT_SECONDS", "30"))

# Server (for uvicorn)
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
# CORS: comma-separated origins, e.g. "http://localhost:1420,tauri://localhost"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:1420,http://localhost:5173").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("comicrepacker")
