"""Tests for device management endpoints."""


def test_register_and_list(client, auth_headers, api_device):
    response = client.get("/api/devices", headers=auth_headers)
    assert response.status_code == 200
    [device] = response.json()["devices"]
    assert device["id"] == api_device
    assert device["device_name"] == "work laptop"
    assert device["device_type"] == "desktop"
    assert device["last_sync_at"] is None


def test_device_type_defaults(client, auth_headers):
    response = client.post("/api/devices", json={"deviceName": "phone"}, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["device"]["device_type"] == "other"


def test_rename(client, auth_headers, api_device):
    response = client.put(f"/api/devices/{api_device}", json={"deviceName": "home laptop"},
                          headers=auth_headers)
    assert response.status_code == 200
    devices = client.get("/api/devices", headers=auth_headers).json()["devices"]
    assert devices[0]["device_name"] == "home laptop"


def test_cannot_touch_other_users_device(client, api_device, signup):
    other = signup(client, email="grace@example.com")
    assert client.put(f"/api/devices/{api_device}", json={"deviceName": "mine"},
                      headers=other).status_code == 404
    assert client.delete(f"/api/devices/{api_device}", headers=other).status_code == 404


def test_delete_removes_records_and_screenshots(client, auth_headers, api_device, settings):
    client.post("/api/sync/push", json={
        "deviceId": api_device,
        "usageData": {"2024-01-01": {"example.com": {"totalSeconds": 10}}},
    }, headers=auth_headers)
    uploaded = client.post("/api/screenshots/upload-base64", json={
        "deviceId": api_device, "dataUrl": "data:image/png;base64,aGVsbG8=",
    }, headers=auth_headers)
    assert uploaded.status_code == 201

    listed = client.get("/api/devices", headers=auth_headers).json()["devices"][0]
    assert listed["usage_count"] == 1
    assert listed["screenshot_count"] == 1
    assert listed["last_sync_at"] is not None

    response = client.delete(f"/api/devices/{api_device}", headers=auth_headers)
    assert response.status_code == 200
    assert client.get("/api/devices", headers=auth_headers).json()["devices"] == []
    pulled = client.get("/api/sync/pull?since=2024-01-01", headers=auth_headers).json()
    assert pulled["records"] == []
    assert client.get("/api/screenshots", headers=auth_headers).json()["screenshots"] == []
