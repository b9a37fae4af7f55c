"""Local file store for uploaded image bytes."""

import logging
from pathlib import Path
from uuid import uuid4

from photoseek.errors import StorageError


logger = logging.getLogger(__name__)


class LocalImageStore:
    """Write and remove image files under a single directory."""

    def __init__(self, images_dir: str):
        self.images_dir = Path(images_dir)

    def save_image(self, file_name: str, data: bytes) -> str:
        """Write bytes to a fresh file and return its path.

        Stored names carry a random prefix, so uploads sharing ``file_name``
        never overwrite or remove one another.
        """
        try:
            self.images_dir.mkdir(parents=True, exist_ok=True)
            path = self.images_dir / f"{uuid4().hex}_{file_name}"
            with path.open("xb") as fh:
                fh.write(data)
        except OSError as exc:
            raise StorageError(f"failed to write {file_name}: {exc}") from exc

        logger.info("Saved image bytes to disk: path=%s byte_len=%d", path, len(data))
        return str(path)

    def remove_image(self, path: str) -> None:
        """Best-effort delete. Missing files are ignored, other failures only logged."""
        if not path:
            return
        try:
            Path(path).unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("Failed to remove orphaned file %s: %s", path, exc)
