"""Per-user blob storage for screenshot files."""
import logging
import shutil
import time
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


def generate_filename(ext: str) -> str:
    """`<epoch-ms>-<8 hex>.<ext>`, unique enough within one user's directory."""
    ext = ext.lstrip(".") or "jpg"
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{ext}"


class FileStore:
    def __init__(self, root: str):
        self.root = Path(root)

    def user_dir(self, user_id: str) -> Path:
        return self.root / user_id

    def path(self, user_id: str, filename: str) -> Path:
        # Stored names are generated server-side; reject anything that walks out
        name = Path(filename).name
        if not name or name != filename:
            raise ValueError(f"Invalid stored filename: {filename!r}")
        return self.user_dir(user_id) / name

    def write(self, user_id: str, filename: str, data: bytes) -> Path:
        target = self.path(user_id, filename)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target

    def exists(self, user_id: str, filename: str) -> bool:
        return self.path(user_id, filename).is_file()

    def delete(self, user_id: str, filename: str) -> bool:
        """Remove a file. Returns False if it was already gone."""
        target = self.path(user_id, filename)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.debug(f"File already missing: {target}")
            return False
        return True

    def delete_user(self, user_id: str) -> None:
        shutil.rmtree(self.user_dir(user_id), ignore_errors=True)
