"""Device management endpoints."""
from fastapi import APIRouter, Depends

from .. import devices
from ..auth import get_current_user_id
from ..db import Store
from ..deps import get_files, get_store
from ..files import FileStore
from ..models import (
    DeviceCreatedResponse,
    DeviceCreateRequest,
    DevicesResponse,
    DeviceUpdateRequest,
    MessageResponse,
)

router = APIRouter(prefix="/devices", tags=["devices"])


@router.post("", response_model=DeviceCreatedResponse, status_code=201)
async def register(
    request: DeviceCreateRequest,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    device = devices.register_device(store, user_id, request.device_name, request.device_type)
    return DeviceCreatedResponse(message="Device registered", device=device)


@router.get("", response_model=DevicesResponse)
async def list_devices(
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    return DevicesResponse(devices=devices.list_devices(store, user_id))


@router.put("/{device_id}", response_model=MessageResponse)
async def rename(
    device_id: str,
    request: DeviceUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    devices.rename_device(store, user_id, device_id, request.device_name)
    return MessageResponse(message="Device updated")


@router.delete("/{device_id}", response_model=MessageResponse)
async def remove(
    device_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    files: FileStore = Depends(get_files),
):
    """Remove a device and all usage, events and screenshots it pushed."""
    devices.delete_device(store, user_id, device_id, files=files)
    return MessageResponse(message="Device removed")
