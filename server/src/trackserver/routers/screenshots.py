"""Screenshot upload, listing and retrieval."""
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse

from ..auth import get_current_user_id
from ..deps import get_screenshots
from ..models import (
    Base64UploadRequest,
    MessageResponse,
    ScreenshotsResponse,
    UploadResponse,
    parse_timestamp,
)
from ..screenshots import DEFAULT_LIST_LIMIT, ScreenshotService, decode_data_url

router = APIRouter(prefix="/screenshots", tags=["screenshots"])


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload(
    screenshot: UploadFile = File(...),
    device_id: str = Form(..., alias="deviceId"),
    domain: Optional[str] = Form(default=None),
    title: Optional[str] = Form(default=None),
    url: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    timestamp: Optional[str] = Form(default=None),
    date: Optional[str] = Form(default=None),
    user_id: str = Depends(get_current_user_id),
    service: ScreenshotService = Depends(get_screenshots),
):
    """Multipart upload; the file goes in the `screenshot` field."""
    # One byte over the limit is enough to reject
    data = await screenshot.read(service.max_upload_bytes + 1)
    ext = Path(screenshot.filename or "").suffix or ".jpg"
    stored = service.save(
        user_id, device_id, data, ext,
        domain=domain, title=title, url=url, category=category,
        timestamp=parse_timestamp(timestamp) if timestamp else None,
        date=date,
    )
    return UploadResponse(message="Screenshot uploaded", screenshot=stored)


@router.post("/upload-base64", response_model=UploadResponse, status_code=201)
async def upload_base64(
    request: Base64UploadRequest,
    user_id: str = Depends(get_current_user_id),
    service: ScreenshotService = Depends(get_screenshots),
):
    """Upload a `data:image/...;base64,` URL, as browser extensions produce."""
    ext, data = decode_data_url(request.data_url)
    stored = service.save(
        user_id, request.device_id, data, ext,
        domain=request.domain, title=request.title, url=request.url,
        category=request.category, timestamp=request.timestamp, date=request.date,
    )
    return UploadResponse(message="Screenshot uploaded", screenshot=stored)


@router.get("", response_model=ScreenshotsResponse)
async def list_screenshots(
    date: Optional[str] = None,
    device_id: Optional[str] = Query(default=None, alias="deviceId"),
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1),
    user_id: str = Depends(get_current_user_id),
    service: ScreenshotService = Depends(get_screenshots),
):
    return ScreenshotsResponse(
        screenshots=service.list_for_user(user_id, date=date, device_id=device_id, limit=limit)
    )


@router.get("/image/{screenshot_id}")
async def image(
    screenshot_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ScreenshotService = Depends(get_screenshots),
):
    return FileResponse(service.file_path(user_id, screenshot_id))


@router.delete("/{screenshot_id}", response_model=MessageResponse)
async def delete(
    screenshot_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ScreenshotService = Depends(get_screenshots),
):
    service.delete(user_id, screenshot_id)
    return MessageResponse(message="Screenshot deleted")
