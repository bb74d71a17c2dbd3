"""Submission file store backed by a local directory.

Objects are addressed by a slash-separated key (``surveys/<id>/summary/<sub>/<file>``)
resolved under ``settings.file_store_dir``.
"""

import logging
from pathlib import Path, PurePosixPath
from typing import Optional

from sims.core.config import settings
from sims.core.errors import StorageError

logger = logging.getLogger(__name__)


def _root(root: Optional[Path] = None) -> Path:
    return root or settings.resolve_path(settings.file_store_dir)


def build_key(survey_id: int, submission_id: int, file_name: str) -> str:
    # Only the final path component of the uploaded name is kept
    safe_name = PurePosixPath(file_name.replace("\\", "/")).name or "upload"
    return f"surveys/{survey_id}/summary/{submission_id}/{safe_name}"


def _path_for(key: str, root: Optional[Path] = None) -> Path:
    base = _root(root).resolve()
    path = (base / key).resolve()
    if base != path and base not in path.parents:
        raise StorageError(f"Key '{key}' resolves outside the file store")
    return path


def put_file(key: str, content: bytes, root: Optional[Path] = None) -> None:
    path = _path_for(key, root)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as e:
        raise StorageError(f"Failed to write '{key}': {e}") from e
    logger.info(f"Stored {len(content)} bytes at '{key}'")


def get_file(key: str, root: Optional[Path] = None) -> bytes:
    path = _path_for(key, root)
    try:
        return path.read_bytes()
    except OSError as e:
        raise StorageError(f"Failed to read '{key}': {e}") from e
