"""
Attachment Content Store

Durable byte storage for attachments pulled from vendor emails.

Storage structure:
- data/attachments/
    - {token}_{safe_filename}   # one file per attachment, token is a unique
                                # millisecond timestamp

The key recorded on a VendorResponse is the file name relative to the
attachments root. Keys are resolved back to paths through `resolve`, which
refuses anything that lands outside the root.
"""

import asyncio
import logging
import re
import threading
import time
from pathlib import Path
from typing import Iterable, Optional

from config.settings import Settings
from schemas.vendor_response import Attachment
from services.errors import (
    AttachmentAccessDenied,
    AttachmentNotFound,
    AttachmentPersistenceError,
)
from services.mailbox import MailAttachment

logger = logging.getLogger("rfp_intake.services.content_store")

UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

_token_lock = threading.Lock()
_last_token = 0


def safe_filename(filename: Optional[str]) -> str:
    """Replace anything outside [A-Za-z0-9.-] with an underscore."""
    return UNSAFE_FILENAME_CHARS.sub("_", filename or "attachment")


def next_token() -> int:
    """Millisecond timestamp, bumped so it strictly increases within the process."""
    global _last_token
    with _token_lock:
        token = max(int(time.time() * 1000), _last_token + 1)
        _last_token = token
        return token


class AttachmentStore:
    """Writes attachment bytes under the attachments root and reads them back."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "AttachmentStore":
        return cls(app_settings.attachments_dir)

    def _write(self, path: Path, content: bytes) -> None:
        with open(path, "wb") as f:
            f.write(content)

    async def save(
        self,
        filename: Optional[str],
        content: bytes,
        mimetype: Optional[str] = None
    ) -> Attachment:
        """Persist one attachment and return its descriptor."""
        key = f"{next_token()}_{safe_filename(filename)}"
        path = self.root / key
        try:
            await asyncio.to_thread(self._write, path, content)
        except OSError as e:
            raise AttachmentPersistenceError(f"Could not write {filename}: {e}") from e

        return Attachment(
            filename=filename or key,
            path=key,
            mimetype=mimetype or "application/octet-stream",
            size=len(content),
        )

    async def save_all(self, attachments: Iterable[MailAttachment]) -> list[Attachment]:
        """
        Persist every attachment carried by a message.

        A failure on one attachment is logged and skipped; the rest are still
        written.
        """
        saved = []
        for attachment in attachments:
            if not attachment.content:
                continue
            try:
                descriptor = await self.save(
                    attachment.filename,
                    attachment.content,
                    attachment.content_type,
                )
            except AttachmentPersistenceError as e:
                logger.error(f"Error saving attachment {attachment.filename}: {e.message}")
                continue

            saved.append(descriptor)
            logger.info(
                f"Saved attachment: {descriptor.filename} "
                f"({descriptor.size / 1024:.2f} KB)"
            )
        return saved

    def discard(self, keys: Iterable[str]) -> None:
        """Remove stored attachments that ended up unreferenced."""
        for key in keys:
            try:
                self.resolve(key).unlink()
            except (AttachmentAccessDenied, AttachmentNotFound, OSError) as e:
                logger.warning(f"Could not remove attachment {key}: {e}")

    def resolve(self, key: str) -> Path:
        """
        Map a storage key to a file path inside the attachments root.

        Raises:
            AttachmentAccessDenied: the key resolves outside the root
            AttachmentNotFound: no such file
        """
        if "\x00" in key:
            raise AttachmentAccessDenied("Access denied")

        root = self.root.resolve()
        try:
            path = (root / key).resolve()
        except (ValueError, OSError) as e:
            raise AttachmentAccessDenied("Access denied") from e

        if not path.is_relative_to(root) or path == root:
            raise AttachmentAccessDenied("Access denied")
        if not path.is_file():
            raise AttachmentNotFound("File not found")
        return path
