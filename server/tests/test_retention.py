"""Tests for bounded screenshot retention."""
import pytest

from trackserver.errors import DeviceNotFound, StorageError, ValidationError
from trackserver.files import FileStore
from trackserver.retention import SCREENSHOT_RETENTION, RetentionPolicy
from trackserver.screenshots import ScreenshotService, decode_data_url


@pytest.fixture
def files(tmp_path):
    return FileStore(str(tmp_path / "shots"))


@pytest.fixture
def service(store, files):
    return ScreenshotService(store, files, retention=SCREENSHOT_RETENTION.with_cap(3))


def stored_ids(store, user_id):
    with store.read() as conn:
        return [r["id"] for r in conn.execute(
            "SELECT id FROM screenshots WHERE user_id = ? ORDER BY created_at, rowid", (user_id,)
        ).fetchall()]


def test_cap_evicts_oldest_first(store, files, service, user_id, device_id):
    saved = [service.save(user_id, device_id, b"img%d" % i, "png") for i in range(5)]

    assert stored_ids(store, user_id) == [s.id for s in saved[2:]]
    for evicted in saved[:2]:
        assert not files.exists(user_id, evicted.filename)
    for kept in saved[2:]:
        assert files.exists(user_id, kept.filename)


def test_enforce_converges_to_cap(store, service, user_id, device_id):
    for i in range(3):
        service.save(user_id, device_id, b"x", "jpg")

    assert service.enforce_limit(user_id, cap=1) == 2
    assert len(stored_ids(store, user_id)) == 1
    assert service.enforce_limit(user_id, cap=1) == 0


def test_missing_file_does_not_block_eviction(store, files, service, user_id, device_id):
    first = service.save(user_id, device_id, b"x", "jpg")
    files.delete(user_id, first.filename)
    for i in range(3):
        service.save(user_id, device_id, b"y", "jpg")

    assert first.id not in stored_ids(store, user_id)
    assert len(stored_ids(store, user_id)) == 3


def test_failed_eviction_keeps_files(store, files, service, user_id, device_id):
    saved = [service.save(user_id, device_id, b"x", "jpg") for _ in range(2)]
    broken = ScreenshotService(store, files, retention=RetentionPolicy(
        table="screenshots", scope_column="user_id", cap=1, order_by="no_such_column ASC"
    ))

    with pytest.raises(StorageError):
        broken.save(user_id, device_id, b"y", "jpg")

    assert stored_ids(store, user_id) == [s.id for s in saved]
    for kept in saved:
        assert files.exists(user_id, kept.filename)


def test_eviction_leaves_files_to_the_caller(store, files, service, user_id, device_id):
    saved = [service.save(user_id, device_id, b"x", "jpg") for _ in range(3)]
    with store.transaction() as conn:
        evicted = SCREENSHOT_RETENTION.with_cap(1).enforce(conn, user_id)

    assert [r["id"] for r in evicted] == [s.id for s in saved[:2]]
    assert stored_ids(store, user_id) == [saved[2].id]
    for shot in saved:
        assert files.exists(user_id, shot.filename)


def test_caps_are_per_user(store, service, user_id, device_id):
    from trackserver.devices import register_device
    from trackserver.users import register_user

    other = register_user(store, "dave@example.com", "secret-pw").id
    other_device = register_device(store, other, "tablet").id
    service.save(other, other_device, b"z", "jpg")
    for i in range(4):
        service.save(user_id, device_id, b"x", "jpg")

    assert len(stored_ids(store, user_id)) == 3
    assert len(stored_ids(store, other)) == 1


def test_generic_policy_on_other_table(store, user_id, device_id):
    policy = RetentionPolicy(table="activity_events", scope_column="user_id", cap=2,
                             order_by="timestamp ASC")
    with store.transaction() as conn:
        for hour in (9, 7, 8):
            conn.execute(
                "INSERT INTO activity_events (user_id, device_id, state, timestamp, date) VALUES (?, ?, ?, ?, ?)",
                (user_id, device_id, "active", f"2024-01-01T0{hour}:00:00.000Z", "2024-01-01")
            )
        evicted = policy.enforce(conn, user_id)
        remaining = [r["timestamp"] for r in conn.execute(
            "SELECT timestamp FROM activity_events ORDER BY timestamp"
        ).fetchall()]

    assert [r["timestamp"] for r in evicted] == ["2024-01-01T07:00:00.000Z"]
    assert remaining == ["2024-01-01T08:00:00.000Z", "2024-01-01T09:00:00.000Z"]


def test_save_validation(service, user_id, device_id):
    with pytest.raises(ValidationError):
        service.save(user_id, device_id, b"", "jpg")
    with pytest.raises(DeviceNotFound):
        service.save(user_id, "missing", b"x", "jpg")

    small = ScreenshotService(service.store, service.files, max_upload_bytes=4)
    with pytest.raises(ValidationError):
        small.save(user_id, device_id, b"12345", "jpg")


def test_decode_data_url():
    assert decode_data_url("data:image/jpeg;base64,aGVsbG8=") == ("jpg", b"hello")
    assert decode_data_url("data:image/png;base64,aGVsbG8=")[0] == "png"
    with pytest.raises(ValidationError):
        decode_data_url("aGVsbG8=")
    with pytest.raises(ValidationError):
        decode_data_url("data:image/png;base64,***")
