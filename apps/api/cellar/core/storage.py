"""
Local filesystem storage for wine photos.

Defaults:
- STORAGE_ROOT: ./data/storage
- PHOTO_URL_PREFIX: /images/wines/
- MAX_PHOTO_BYTES: 10485760

Layout: <STORAGE_ROOT>/<wine_id>/<hash>.<ext>, public url <prefix><wine_id>/<hash>.<ext>
"""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def _repo_root() -> Path:
    # apps/api/cellar/core/storage.py -> repo root = parents[4]
    return Path(__file__).resolve().parents[4]


def get_storage_root() -> Path:
    raw = os.getenv("STORAGE_ROOT", "./data/storage")
    p = Path(raw)
    return (_repo_root() / p).resolve() if not p.is_absolute() else p


def get_photo_url_prefix() -> str:
    prefix = os.getenv("PHOTO_URL_PREFIX", "/images/wines/")
    return prefix if prefix.endswith("/") else prefix + "/"


def get_max_photo_bytes() -> int:
    return int(os.getenv("MAX_PHOTO_BYTES", str(10 * 1024 * 1024)))


def ensure_storage_root() -> Path:
    root = get_storage_root()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _safe_under_root(root: Path, candidate: Path) -> Optional[Path]:
    p = candidate.resolve()
    root_resolved = root.resolve()
    if str(p).startswith(str(root_resolved) + os.sep):
        return p
    return None


def wine_dir(wine_id: int) -> Path:
    return get_storage_root() / str(int(wine_id))


def save_photo(source_path: Path, wine_id: int, file_hash: str, extension: str) -> str:
    """Copy the uploaded file into the wine directory and return its public url."""
    target_dir = wine_dir(wine_id)
    target_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{file_hash}.{extension}"
    shutil.copyfile(source_path, target_dir / filename)
    return f"{get_photo_url_prefix()}{int(wine_id)}/{filename}"


def path_for_url(url: str) -> Path:
    prefix = get_photo_url_prefix()
    if not url.startswith(prefix):
        raise ValueError(f"invalid stored image url: {url!r}")
    root = get_storage_root()
    p = _safe_under_root(root, root / url[len(prefix) :])
    if p is None:
        raise ValueError(f"stored image url escapes storage root: {url!r}")
    return p


def delete_photo_by_url(url: str) -> bool:
    """Remove the file behind url. Missing files are not an error."""
    p = path_for_url(url)
    if not p.exists():
        return False
    p.unlink()
    return True


def delete_wine_directory(wine_id: int) -> bool:
    d = wine_dir(wine_id)
    if not d.is_dir():
        return False
    leftovers = 0
    for f in d.iterdir():
        if f.is_file():
            f.unlink()
        else:
            leftovers += 1
            logger.warning("unexpected entry left in photo dir: %s", f)
    if leftovers:
        return False
    d.rmdir()
    return True


def storage_health() -> Dict[str, Any]:
    try:
        root = ensure_storage_root()
        probe = root / ".probe_write"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
        return {"status": "ok", "kind": "local_fs", "root": str(root.as_posix())}
    except OSError as e:
        return {"status": "error", "kind": "local_fs", "root": str(get_storage_root().as_posix()), "error": str(e)}
