"""Disk storage for user uploads (profile photos)."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional
import logging
import os
import time

from booknet.core.config import get_settings

logger = logging.getLogger(__name__)


def file_extension(filename: str | None) -> str:
    if not filename:
        return ""
    _, dot, ext = filename.rpartition(".")
    if not dot:
        return ""
    return ext.lower()


@dataclass
class FileStorageService:
    """Writes uploads under ``<root>/users/<user_id>/<epoch millis>.<ext>``.

    Failures are soft: they are logged and reported as ``None``.
    """

    root: str = field(default_factory=lambda: get_settings().photos_output_path)
    millis: Callable[[], int] = lambda: int(time.time() * 1000)

    def save_file(self, data: bytes, original_filename: str | None, user_id: int) -> Optional[str]:
        return self._upload_file(data, original_filename, os.path.join("users", str(user_id)))

    def absolute_path(self, relative_path: str) -> str:
        return os.path.join(self.root, relative_path)

    def _upload_file(self, data: bytes, original_filename: str | None, sub_path: str) -> Optional[str]:
        target_dir = os.path.join(self.root, sub_path)
        if not os.path.isdir(target_dir):
            try:
                os.makedirs(target_dir, exist_ok=True)
            except OSError as exc:
                logger.warning("Could not create folder %s: %s", target_dir, exc)
                return None
        ext = file_extension(original_filename)
        name = f"{self.millis()}.{ext}" if ext else str(self.millis())
        relative_path = os.path.join(sub_path, name)
        try:
            with open(os.path.join(self.root, relative_path), "wb") as f:
                f.write(data)
        except OSError as exc:
            logger.error("File was not saved: %s", exc)
            return None
        logger.info("File saved to %s", relative_path)
        return relative_path
