"""User accounts."""
import logging
import sqlite3
import uuid
from typing import Optional

from .auth import hash_password, verify_password
from .db import Store, utc_now
from .errors import AuthError, ConflictError, UserNotFound, ValidationError
from .files import FileStore
from .models import UserRecord

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def register_user(store: Store, email: str, password: str,
                  display_name: Optional[str] = None) -> UserRecord:
    email = normalize_email(email)
    if "@" not in email:
        raise ValidationError("A valid email is required")
    _check_password(password)

    user_id = uuid.uuid4().hex
    display_name = display_name or email.split("@")[0]
    now = utc_now()
    password_hash = hash_password(password)

    with store.transaction() as conn:
        existing = conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
        if existing is not None:
            raise ConflictError("Email already registered")
        conn.execute("""
            INSERT INTO users (id, email, password_hash, display_name, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (user_id, email, password_hash, display_name, now, now))

    logger.info(f"Registered user {user_id}")
    return UserRecord(id=user_id, email=email, display_name=display_name, created_at=now)


def authenticate_user(store: Store, email: str, password: str) -> UserRecord:
    """Check credentials. Unknown email and wrong password look the same."""
    with store.transaction() as conn:
        row = conn.execute(
            "SELECT * FROM users WHERE email = ?", (normalize_email(email),)
        ).fetchone()
        if row is None or not verify_password(password, row['password_hash']):
            raise AuthError("Invalid email or password")
        conn.execute("UPDATE users SET updated_at = ? WHERE id = ?", (utc_now(), row['id']))
    return UserRecord(
        id=row['id'], email=row['email'],
        display_name=row['display_name'], created_at=row['created_at']
    )


def get_user(store: Store, user_id: str) -> UserRecord:
    with store.read() as conn:
        row = conn.execute(
            "SELECT id, email, display_name, created_at FROM users WHERE id = ?", (user_id,)
        ).fetchone()
    if row is None:
        raise UserNotFound()
    return UserRecord(**dict(row))


def update_display_name(store: Store, user_id: str, display_name: str) -> None:
    with store.transaction() as conn:
        result = conn.execute(
            "UPDATE users SET display_name = ?, updated_at = ? WHERE id = ?",
            (display_name, utc_now(), user_id)
        )
        if result.rowcount == 0:
            raise UserNotFound()


def _password_row(conn: sqlite3.Connection, user_id: str) -> sqlite3.Row:
    row = conn.execute("SELECT password_hash FROM users WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        raise UserNotFound()
    return row


def change_password(store: Store, user_id: str, current_password: str, new_password: str) -> None:
    _check_password(new_password)
    with store.transaction() as conn:
        row = _password_row(conn, user_id)
        if not verify_password(current_password, row['password_hash']):
            raise AuthError("Current password incorrect")
        conn.execute(
            "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
            (hash_password(new_password), utc_now(), user_id)
        )


def delete_account(store: Store, user_id: str, password: str,
                   files: Optional[FileStore] = None) -> None:
    """Delete a user and, through the cascade, everything they own."""
    with store.transaction() as conn:
        row = _password_row(conn, user_id)
        if not verify_password(password, row['password_hash']):
            raise AuthError("Incorrect password")
        conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
    if files is not None:
        files.delete_user(user_id)
    logger.info(f"Deleted user {user_id}")


def count_users(store: Store) -> int:
    with store.read() as conn:
        return conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
