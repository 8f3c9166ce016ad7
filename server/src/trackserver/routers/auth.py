"""Account endpoints: registration, login and profile."""
from fastapi import APIRouter, Depends

from .. import users
from ..aggregator import Aggregator
from ..auth import create_access_token, get_current_user_id
from ..config import Settings
from ..db import Store
from ..deps import get_aggregator, get_files, get_settings, get_store
from ..devices import list_devices
from ..files import FileStore
from ..models import (
    AccountDeleteRequest,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    TokenResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    request: RegisterRequest,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    user = users.register_user(store, request.email, request.password, request.display_name)
    token = create_access_token(settings, user.id, user.email)
    return TokenResponse(message="Account created", token=token, user=user)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    user = users.authenticate_user(store, request.email, request.password)
    token = create_access_token(settings, user.id, user.email)
    return TokenResponse(message="Login successful", token=token, user=user)


@router.get("/profile", response_model=ProfileResponse)
async def profile(
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    aggregator: Aggregator = Depends(get_aggregator),
):
    return ProfileResponse(
        user=users.get_user(store, user_id),
        devices=list_devices(store, user_id),
        stats=aggregator.profile_stats(user_id),
    )


@router.put("/profile", response_model=MessageResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    users.update_display_name(store, user_id, request.display_name)
    return MessageResponse(message="Profile updated")


@router.put("/password", response_model=MessageResponse)
async def change_password(
    request: PasswordChangeRequest,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    users.change_password(store, user_id, request.current_password, request.new_password)
    return MessageResponse(message="Password updated")


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    request: AccountDeleteRequest,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    files: FileStore = Depends(get_files),
):
    """Delete the account and everything it owns. Requires the password."""
    users.delete_account(store, user_id, request.password, files=files)
    return MessageResponse(message="Account deleted")
