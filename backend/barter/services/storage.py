"""
Local-disk media store.

Stores raw upload bytes under UPLOAD_DIR/{item_id}/{uuid}{ext} and hands
back the web path (/uploads/...). The rest of the system only ever sees
that path. Blocking file I/O runs in Starlette's threadpool.
"""

import uuid
from pathlib import Path

from starlette.concurrency import run_in_threadpool

from barter.core.config import get_settings
from barter.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

URL_PREFIX = "/uploads"


def upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def _write(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)


def _resolve(web_path: str) -> Path:
    relative = web_path.removeprefix(URL_PREFIX).lstrip("/")
    return upload_root() / relative


async def save_file(item_id: int, extension: str, content: bytes) -> str:
    """Persist bytes for an item; returns the web path."""
    file_name = f"{uuid.uuid4().hex}{extension}"
    await run_in_threadpool(_write, upload_root() / str(item_id) / file_name, content)
    web_path = f"{URL_PREFIX}/{item_id}/{file_name}"
    logger.debug("media_file_saved", path=web_path, size=len(content))
    return web_path


async def delete_file(web_path: str) -> None:
    """Remove a stored file. Missing files are ignored."""
    try:
        await run_in_threadpool(_resolve(web_path).unlink, missing_ok=True)
    except OSError as e:
        # The row is already gone; an orphaned file is not worth failing the request
        logger.warning("media_file_delete_failed", path=web_path, error=str(e))
