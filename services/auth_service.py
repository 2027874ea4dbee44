import hashlib
import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import HTTPException, Request

import config
from exceptions import AuthError
from models.user_models import is_valid_username
from services import user_store_service
from utils.logger import get_logger

logger = get_logger(__name__)

TOKEN_COOKIE = "token"
PBKDF2_ITERATIONS = 100_000


def hash_password(password: str, salt: bytes) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS).hex()


def register_user(username: str, password: str) -> None:
    if not is_valid_username(username):
        raise AuthError("Username may only contain letters, digits and underscores.")
    if not password:
        raise AuthError("Password must not be empty.")

    users = user_store_service.load_users()
    if username in users:
        raise AuthError("Username already exists.")

    salt = os.urandom(16)
    users[username] = {
        "passwordHash": hash_password(password, salt),
        "salt": salt.hex(),
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    user_store_service.save_users(users)
    user_store_service.create_user_files(username)
    logger.info(f"Registered user '{username}'")


def authenticate(username: str, password: str) -> None:
    """Raise AuthError(401) unless the credentials match a stored user."""
    user = user_store_service.load_users().get(username)
    if not user:
        raise AuthError("Invalid username or password.", status_code=401)

    expected = user.get("passwordHash", "")
    actual = hash_password(password, bytes.fromhex(user.get("salt", "")))
    if not hmac.compare_digest(expected, actual):
        logger.info(f"Failed login for '{username}'")
        raise AuthError("Invalid username or password.", status_code=401)


def create_token(username: str) -> str:
    payload = {
        "username": username,
        "exp": datetime.now(timezone.utc) + timedelta(hours=config.TOKEN_TTL_HOURS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[str]:
    """Username carried by a valid token, None when the token is invalid or expired."""
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
    username = payload.get("username")
    return username if isinstance(username, str) and username else None


def _token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(TOKEN_COOKIE)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def get_current_user(request: Request) -> str:
    """FastAPI dependency: the username behind the request's token."""
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication token not provided.")

    username = decode_token(token)
    if not username or not is_valid_username(username):
        raise HTTPException(status_code=403, detail="Invalid token.")
    if username not in user_store_service.load_users():
        logger.info(f"Rejected token for unknown user {username!r}")
        raise HTTPException(status_code=403, detail="Invalid token.")
    return username
