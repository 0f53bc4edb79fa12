"""
Content store for uploaded model files.

Files live flat under the upload directory, one file per storage key. Keys
mix a sanitized stem with a random suffix, and files are created exclusively,
so two ingestions never share a slot even when their file names are equal.
"""
import logging
import os
import re
import uuid
from pathlib import Path
from typing import BinaryIO, Optional, Union

from modelhub.core.config import settings
from modelhub.core.errors import PersistenceFailure, StorageReclamationFailure, TooLarge, ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def sanitize_filename(name: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9_.-]", "_", name or "")
    cleaned = re.sub(r"_+", "_", cleaned).strip("_")
    return cleaned[:200] or "model"


class ContentStore:
    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root or settings.UPLOAD_PATH).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _new_key(self, suggested_name: str) -> str:
        base = os.path.basename(suggested_name or "")
        stem, ext = os.path.splitext(base)
        return f"{sanitize_filename(stem)}_{uuid.uuid4().hex}{ext.lower()}"

    def resolve_path(self, storage_key: str) -> Path:
        if not storage_key or "/" in storage_key or "\\" in storage_key or storage_key in (".", ".."):
            raise ValidationError.for_field("storage_key", "Invalid storage key", storage_key)
        return self.root / storage_key

    def put(
        self,
        data: Union[bytes, BinaryIO],
        suggested_name: str,
        max_bytes: Optional[int] = None,
    ) -> str:
        """
        Write ``data`` under a freshly generated key and return the key.

        ``data`` may be raw bytes or a binary stream. When ``max_bytes`` is
        exceeded, or writing fails part way, the partial file is removed
        before the error propagates.
        """
        storage_key = self._new_key(suggested_name)
        path = self.resolve_path(storage_key)

        try:
            with open(path, "xb") as out:
                if isinstance(data, (bytes, bytearray, memoryview)):
                    if max_bytes is not None and len(data) > max_bytes:
                        raise TooLarge(f"File too large. Maximum size is {max_bytes} bytes.")
                    out.write(data)
                else:
                    written = 0
                    while True:
                        chunk = data.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        written += len(chunk)
                        if max_bytes is not None and written > max_bytes:
                            raise TooLarge(f"File too large. Maximum size is {max_bytes} bytes.")
                        out.write(chunk)
        except FileExistsError as e:
            # uuid4 collision; never overwrite
            raise PersistenceFailure(f"Storage key already in use: {storage_key}") from e
        except TooLarge:
            self._discard(path)
            raise
        except OSError as e:
            self._discard(path)
            raise PersistenceFailure(f"Failed to store file: {e}") from e
        except BaseException:
            # aborted mid-transfer
            self._discard(path)
            raise

        logger.debug("Stored %s (%d bytes)", storage_key, path.stat().st_size)
        return storage_key

    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Could not remove partial file %s", path, exc_info=True)

    def exists(self, storage_key: str) -> bool:
        try:
            return self.resolve_path(storage_key).is_file()
        except ValidationError:
            return False

    def size(self, storage_key: str) -> int:
        return self.resolve_path(storage_key).stat().st_size

    def delete(self, storage_key: str) -> None:
        """Remove a stored file. Missing files are not an error."""
        path = self.resolve_path(storage_key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageReclamationFailure(f"Failed to remove {storage_key}: {e}") from e
        logger.debug("Removed %s", storage_key)

