"""
Token service and password hashing.

Access tokens carry {sub, iat, exp, type="access"} and are signed with
JWT_ACCESS_SECRET. Refresh tokens carry {sub, rti, exp, type="refresh"} and are
signed with JWT_REFRESH_SECRET. Only a bcrypt hash of the random rti is ever
stored server-side.
"""

from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Tuple
from jose import JWTError, jwt
import bcrypt
import secrets

from app.core.config import settings
from app.core.exceptions import TokenInvalidError, RefreshInvalidError


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


_dummy_password_hash: Optional[str] = None


def get_dummy_password_hash() -> str:
    """Hash compared against when a login identifier matches no user"""
    global _dummy_password_hash
    if _dummy_password_hash is None:
        _dummy_password_hash = get_password_hash(secrets.token_urlsafe(16))
    return _dummy_password_hash


def generate_token_id() -> str:
    """Random 256-bit refresh token identifier (rti)"""
    return secrets.token_urlsafe(32)


def hash_token_id(token_id: str) -> str:
    hashed = bcrypt.hashpw(token_id.encode('utf-8'), bcrypt.gensalt(rounds=settings.TOKEN_HASH_ROUNDS))
    return hashed.decode('utf-8')


def verify_token_id(token_id: str, token_id_hash: Optional[str]) -> bool:
    if not token_id or not token_id_hash:
        return False
    try:
        return bcrypt.checkpw(token_id.encode('utf-8'), token_id_hash.encode('utf-8'))
    except ValueError:
        return False


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    now = datetime.utcnow()
    if expires_delta is not None:
        expire = now + expires_delta
    else:
        expire = now + timedelta(seconds=settings.ACCESS_TOKEN_TTL_SECONDS)

    to_encode = {"sub": str(user_id), "iat": now, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.JWT_ACCESS_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: str, expires_delta: Optional[timedelta] = None) -> Tuple[str, str]:
    """
    Create JWT refresh token.

    Returns:
        (signed token, raw rti). The caller persists hash_token_id(rti).
    """
    token_id = generate_token_id()
    if expires_delta is not None:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(seconds=settings.REFRESH_TOKEN_TTL_SECONDS)

    to_encode = {"sub": str(user_id), "rti": token_id, "exp": expire, "type": "refresh"}
    token = jwt.encode(to_encode, settings.JWT_REFRESH_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, token_id


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify an access token, raising TokenInvalidError on any failure"""
    try:
        payload = jwt.decode(token, settings.JWT_ACCESS_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise TokenInvalidError()

    if payload.get("type") != "access" or not payload.get("sub"):
        raise TokenInvalidError()
    return payload


def decode_refresh_token(token: str) -> Dict[str, Any]:
    """Decode and verify a refresh token, raising RefreshInvalidError on any failure"""
    try:
        payload = jwt.decode(token, settings.JWT_REFRESH_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise RefreshInvalidError("Refresh token expired or invalid")

    if payload.get("type") != "refresh" or not payload.get("sub") or not payload.get("rti"):
        raise RefreshInvalidError("Refresh token expired or invalid")
    return payload
