"""Bearer-token authentication, password hashing and rate limiting."""
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .config import Settings
from .errors import AuthError

bearer_scheme = HTTPBearer(auto_error=False)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(settings: Settings, user_id: str, email: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {"sub": user_id, "email": email, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(settings: Settings, token: str) -> str:
    """Return the user id a token was issued for. Raises AuthError."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthError("Token expired")
    except JWTError:
        raise AuthError("Invalid token")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Invalid token")
    return user_id


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> str:
    """Authenticated user id for the request."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Missing or invalid authorization header")
    return decode_access_token(request.app.state.settings, credentials.credentials)


class RateLimiter:
    """Sliding-window request limit per client IP."""

    def __init__(self, max_requests: int, window_seconds: int = 900):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.request_times: dict[str, list[float]] = {}

    async def __call__(self, request: Request) -> None:
        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        recent = [t for t in self.request_times.get(client_ip, []) if now - t < self.window_seconds]
        if len(recent) >= self.max_requests:
            self.request_times[client_ip] = recent
            raise HTTPException(status_code=429, detail="Too many requests, try again later")
        recent.append(now)
        self.request_times[client_ip] = recent
