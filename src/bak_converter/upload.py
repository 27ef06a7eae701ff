"""Upload acceptance: validation, token allocation and storage.

Each accepted upload gets a generation token.  The same token names the
stored file (``<token>.bak``) and the ephemeral database (``DB_<token>``),
so a request's two resources are always correlated.

Usage:
    from bak_converter.upload import TokenAllocator, accept_upload

    allocator = TokenAllocator()
    with open("northwind.bak", "rb") as f:
        upload = accept_upload(f, "northwind.bak", config, allocator)
    upload.database_name   # 'DB_1718000000000'
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import BinaryIO

from pydantic import BaseModel

from bak_converter.config.models import ConverterConfig
from bak_converter.errors import UploadRejected, UploadTooLarge

logger = logging.getLogger(__name__)

BACKUP_EXTENSION = ".bak"
DATABASE_NAME_PREFIX = "DB_"
_CHUNK_SIZE = 1024 * 1024


class UploadedBackupFile(BaseModel):
    """A stored upload waiting to be restored."""

    token: str
    path: Path
    original_name: str
    size: int

    @property
    def database_name(self) -> str:
        return f"{DATABASE_NAME_PREFIX}{self.token}"


class TokenAllocator:
    """Hands out millisecond-timestamp tokens, strictly increasing per process.

    Two requests arriving in the same millisecond still get distinct tokens;
    ``accept_upload`` additionally refuses to reuse an existing file name.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next_token(self) -> str:
        with self._lock:
            token = max(time.time_ns() // 1_000_000, self._last + 1)
            self._last = token
        return str(token)


def validate_upload_name(original_name: str | None) -> str:
    """Return *original_name* if it carries the ``.bak`` extension.

    Raises:
        UploadRejected: If the name is empty or the extension differs.
    """
    if not original_name:
        raise UploadRejected("No file uploaded or incorrect file type.")
    if Path(original_name).suffix.lower() != BACKUP_EXTENSION:
        raise UploadRejected("Only .bak files are allowed!")
    return original_name


def accept_upload(
    source: BinaryIO,
    original_name: str | None,
    config: ConverterConfig,
    allocator: TokenAllocator,
) -> UploadedBackupFile:
    """Validate and store an uploaded backup file.

    Args:
        source: Readable binary stream with the file content.
        original_name: Client-side file name (used for the extension check).
        config: Converter configuration (upload dir, size limit).
        allocator: Token source shared by all requests of the process.

    Returns:
        ``UploadedBackupFile`` pointing at the stored copy.

    Raises:
        UploadRejected: Wrong extension or missing file.
        UploadTooLarge: Content exceeds ``config.max_upload_bytes``; the
            partial copy is removed.
    """
    original_name = validate_upload_name(original_name)

    upload_dir = Path(config.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    token, target = _reserve_path(upload_dir, allocator)
    size = 0
    try:
        with open(target, "wb") as out:
            while chunk := source.read(_CHUNK_SIZE):
                size += len(chunk)
                if size > config.max_upload_bytes:
                    raise UploadTooLarge(
                        f"File too large. Maximum allowed size is "
                        f"{config.max_upload_bytes // (1024 * 1024)} MB."
                    )
                out.write(chunk)
    except BaseException:
        target.unlink(missing_ok=True)
        raise

    logger.info("Accepted upload %s as %s (%d bytes)", original_name, target.name, size)
    return UploadedBackupFile(
        token=token,
        path=target.resolve(),
        original_name=original_name,
        size=size,
    )


def copy_local_backup(
    path: Path,
    config: ConverterConfig,
    allocator: TokenAllocator,
) -> UploadedBackupFile:
    """Accept a local ``.bak`` file as if it had been uploaded.

    The file is copied, so the pipeline's cleanup never deletes the
    caller's original.
    """
    with open(path, "rb") as f:
        return accept_upload(f, path.name, config, allocator)


def _reserve_path(upload_dir: Path, allocator: TokenAllocator) -> tuple[str, Path]:
    """Create an empty ``<token>.bak`` exclusively and return it."""
    while True:
        token = allocator.next_token()
        target = upload_dir / f"{token}{BACKUP_EXTENSION}"
        try:
            fd = os.open(target, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            logger.debug("Token %s already in use, allocating another", token)
            continue
        os.close(fd)
        return token, target
