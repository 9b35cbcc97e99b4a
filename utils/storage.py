import logging
from pathlib import Path

import config
from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


def upload_dir() -> Path:
    path = Path(config.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def save_artifact(content: bytes, filename: str) -> str:
    """Writes a generated file into the flat upload directory and returns its name."""
    if Path(filename).name != filename:
        raise ValueError(f"Artifact names must not contain path segments: {filename!r}")
    target = upload_dir() / filename
    target.write_bytes(content)
    logger.info("Stored artifact %s (%d bytes)", filename, len(content))
    return filename


def resolve_artifact(filename: str) -> Path:
    if not filename or Path(filename).name != filename or filename.startswith("."):
        raise NotFoundError()
    path = upload_dir() / filename
    if not path.is_file():
        raise NotFoundError()
    return path


def artifact_url(filename: str) -> str:
    return f"/uploads/{filename}"
