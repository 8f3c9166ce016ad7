"""Screenshot metadata plus files, bounded per user."""
import base64
import binascii
import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .db import Store, utc_now
from .errors import DeviceNotFound, NotFoundError, ScreenshotNotFound, ValidationError
from .files import FileStore, generate_filename
from .models import ScreenshotRecord, StoredScreenshot, clamp, parse_date, to_utc_iso
from .retention import SCREENSHOT_RETENTION, RetentionPolicy

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r'^data:image/(\w+);base64,(.+)$', re.DOTALL)
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a `data:image/<ext>;base64,...` URL into (extension, bytes)."""
    match = DATA_URL_PATTERN.match(data_url)
    if not match:
        raise ValidationError("Invalid data URL")
    ext = "jpg" if match.group(1) == "jpeg" else match.group(1)
    try:
        data = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid data URL")
    return ext, data


class ScreenshotService:
    def __init__(self, store: Store, files: FileStore,
                 retention: RetentionPolicy = SCREENSHOT_RETENTION,
                 max_upload_bytes: int = 5 * 1024 * 1024):
        self.store = store
        self.files = files
        self.retention = retention
        self.max_upload_bytes = max_upload_bytes

    def save(self, user_id: str, device_id: str, data: bytes, ext: str,
             domain: Optional[str] = None, title: Optional[str] = None,
             url: Optional[str] = None, category: Optional[str] = None,
             timestamp: Optional[str] = None, date: Optional[str] = None) -> StoredScreenshot:
        """
        Store a screenshot and enforce the per-user cap.

        The file is written before its row is inserted, so a failure can
        leave an unreferenced file but never a row without one.
        """
        if not data:
            raise ValidationError("No file uploaded")
        if len(data) > self.max_upload_bytes:
            raise ValidationError(f"File too large (max {self.max_upload_bytes} bytes)")
        if date:
            parse_date(date)

        with self.store.read() as conn:
            device = conn.execute(
                "SELECT id FROM devices WHERE id = ? AND user_id = ?", (device_id, user_id)
            ).fetchone()
        if device is None:
            raise DeviceNotFound()

        timestamp = timestamp or to_utc_iso(datetime.now(timezone.utc))
        date = date or timestamp[:10]
        screenshot_id = uuid.uuid4().hex
        filename = generate_filename(ext)
        self.files.write(user_id, filename, data)

        with self.store.transaction() as conn:
            conn.execute("""
                INSERT INTO screenshots
                    (id, user_id, device_id, filename, domain, title, url, category,
                     timestamp, date, file_size, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (screenshot_id, user_id, device_id, filename, domain or "unknown",
                  title or "", url or "", category or "Other", timestamp, date,
                  len(data), utc_now()))
            evicted = self.retention.enforce(conn, user_id)
        self._remove_files(user_id, evicted)

        logger.info(f"Stored screenshot {screenshot_id} ({len(data)} bytes) for user {user_id}")
        return StoredScreenshot(id=screenshot_id, filename=filename)

    def enforce_limit(self, user_id: str, cap: Optional[int] = None) -> int:
        """Evict the user's oldest screenshots beyond the cap. Returns how many went."""
        policy = self.retention if cap is None else self.retention.with_cap(cap)
        with self.store.transaction() as conn:
            evicted = policy.enforce(conn, user_id)
        self._remove_files(user_id, evicted)
        return len(evicted)

    def _remove_files(self, user_id: str, rows) -> None:
        # Only after the rows are gone for good
        for row in rows:
            self.files.delete(user_id, row['filename'])

    def list_for_user(self, user_id: str, date: Optional[str] = None,
                      device_id: Optional[str] = None,
                      limit: int = DEFAULT_LIST_LIMIT) -> list[ScreenshotRecord]:
        sql = """
            SELECT id, device_id, domain, title, url, category, timestamp, date, file_size, created_at
            FROM screenshots WHERE user_id = ?
        """
        params: list = [user_id]
        if date:
            parse_date(date)
            sql += " AND date = ?"
            params.append(date)
        if device_id:
            sql += " AND device_id = ?"
            params.append(device_id)
        sql += " ORDER BY timestamp DESC LIMIT ?"
        params.append(clamp(limit, 1, MAX_LIST_LIMIT))

        with self.store.read() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [ScreenshotRecord(**dict(r)) for r in rows]

    def file_path(self, user_id: str, screenshot_id: str) -> Path:
        """Path of a stored screenshot, checked to exist on disk."""
        with self.store.read() as conn:
            row = conn.execute(
                "SELECT filename FROM screenshots WHERE id = ? AND user_id = ?",
                (screenshot_id, user_id)
            ).fetchone()
        if row is None:
            raise ScreenshotNotFound()
        if not self.files.exists(user_id, row['filename']):
            raise NotFoundError("File not found")
        return self.files.path(user_id, row['filename'])

    def delete(self, user_id: str, screenshot_id: str) -> None:
        with self.store.transaction() as conn:
            row = conn.execute(
                "SELECT filename FROM screenshots WHERE id = ? AND user_id = ?",
                (screenshot_id, user_id)
            ).fetchone()
            if row is None:
                raise ScreenshotNotFound()
            conn.execute("DELETE FROM screenshots WHERE id = ?", (screenshot_id,))
        self._remove_files(user_id, [row])
