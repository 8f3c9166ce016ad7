"""Device registration and management."""
import logging
import uuid
from typing import Optional

from .db import Store, utc_now
from .errors import DeviceNotFound
from .files import FileStore
from .models import DeviceRecord

logger = logging.getLogger(__name__)


def register_device(store: Store, user_id: str, device_name: str,
                    device_type: str = "other") -> DeviceRecord:
    device_id = uuid.uuid4().hex
    created_at = utc_now()
    with store.transaction() as conn:
        conn.execute("""
            INSERT INTO devices (id, user_id, device_name, device_type, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (device_id, user_id, device_name, device_type, created_at))
    logger.info(f"Registered device {device_id} ({device_type}) for user {user_id}")
    return DeviceRecord(
        id=device_id,
        device_name=device_name,
        device_type=device_type,
        created_at=created_at,
    )


def list_devices(store: Store, user_id: str) -> list[DeviceRecord]:
    """All of a user's devices, newest first, with record counts."""
    with store.read() as conn:
        rows = conn.execute("""
            SELECT d.id, d.device_name, d.device_type, d.last_sync_at, d.created_at,
                (SELECT COUNT(*) FROM usage_records WHERE device_id = d.id) as usage_count,
                (SELECT COUNT(*) FROM screenshots WHERE device_id = d.id) as screenshot_count
            FROM devices d
            WHERE d.user_id = ?
            ORDER BY d.created_at DESC
        """, (user_id,)).fetchall()
    return [DeviceRecord(**dict(r)) for r in rows]


def rename_device(store: Store, user_id: str, device_id: str, device_name: str) -> None:
    with store.transaction() as conn:
        result = conn.execute(
            "UPDATE devices SET device_name = ? WHERE id = ? AND user_id = ?",
            (device_name, device_id, user_id)
        )
        if result.rowcount == 0:
            raise DeviceNotFound()


def delete_device(store: Store, user_id: str, device_id: str,
                  files: Optional[FileStore] = None) -> None:
    """
    Delete a device together with its records, events and screenshots.

    Rows go through the foreign-key cascade; screenshot files are removed
    afterwards on a best-effort basis.
    """
    with store.transaction() as conn:
        device = conn.execute(
            "SELECT id FROM devices WHERE id = ? AND user_id = ?", (device_id, user_id)
        ).fetchone()
        if device is None:
            raise DeviceNotFound()
        filenames = [
            r['filename'] for r in conn.execute(
                "SELECT filename FROM screenshots WHERE device_id = ?", (device_id,)
            ).fetchall()
        ]
        conn.execute("DELETE FROM devices WHERE id = ?", (device_id,))

    if files is not None:
        for filename in filenames:
            files.delete(user_id, filename)
    logger.info(f"Deleted device {device_id} and {len(filenames)} screenshots for user {user_id}")
