"""
Authentication & authorization helpers.
Handles password hashing, JWT issuance/verification and the admin gate.
"""
import hmac
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coffeeshop.core.config import Settings
from coffeeshop.core.errors import UnauthorizedError
from coffeeshop.models.schemas import utcnow

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# --------------- Passwords -----------------------------------------------

def hash_password(plain: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# --------------- Tokens --------------------------------------------------

def create_access_token(user_id: int, email: str, settings: Settings) -> str:
    payload = {
        "userId": user_id,
        "email": email,
        "exp": utcnow() + timedelta(hours=settings.jwt_expiry_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")
    if not isinstance(payload.get("userId"), int):
        raise UnauthorizedError("Invalid token")
    return payload


# --------------- Dependencies --------------------------------------------

def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> int:
    """Bearer token is required"""
    if credentials is None:
        raise UnauthorizedError("No token, authorization denied")
    return decode_access_token(credentials.credentials, settings)["userId"]


def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Optional[int]:
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials, settings)["userId"]


def require_admin(
    x_admin_password: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> bool:
    if x_admin_password is None or not hmac.compare_digest(
        x_admin_password.encode("utf-8"), settings.admin_password.encode("utf-8")
    ):
        raise UnauthorizedError("Unauthorized: Admin only")
    return True
