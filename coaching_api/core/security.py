"""
Security utilities for the Coaching API.
Consolidated JWT and password handling.
"""
from datetime import datetime, timedelta
from typing import Optional, Literal
import hashlib
import uuid
import secrets

import jwt
import bcrypt

from coaching_api.config import settings


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(
        plain_password.encode('utf-8'),
        hashed_password.encode('utf-8')
    )


def get_password_hash(password: str) -> str:
    """Hash a password."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def hash_token(token: str) -> str:
    """
    Digest for tokens stored at rest (refresh tokens, reset tokens).
    JWTs exceed bcrypt's 72-byte input limit, so a SHA-256 digest is used.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def tokens_match(token: str, token_hash: Optional[str]) -> bool:
    """Constant-time comparison of a token against a stored digest."""
    if not token_hash:
        return False
    return secrets.compare_digest(hash_token(token), token_hash)


# Token types
TokenType = Literal["access", "refresh"]


def _signing_key(token_type: TokenType) -> str:
    if token_type == "refresh" and settings.REFRESH_SECRET_KEY:
        return settings.REFRESH_SECRET_KEY
    return settings.SECRET_KEY


def create_token(
    data: dict,
    token_type: TokenType = "access",
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT token.

    Args:
        data: Payload data (should include sub and tv)
        token_type: 'access' or 'refresh'
        expires_delta: Custom expiration time

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    elif token_type == "refresh":
        expire = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow(),
        "type": token_type,
        "jti": str(uuid.uuid4())
    })

    return jwt.encode(to_encode, _signing_key(token_type), algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create an access token."""
    return create_token(data, token_type="access", expires_delta=expires_delta)


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a refresh token."""
    return create_token(data, token_type="refresh", expires_delta=expires_delta)


def decode_token(token: str, token_type: TokenType = "access") -> Optional[dict]:
    """
    Decode and validate a JWT token.

    Returns:
        Decoded payload dict or None if invalid
    """
    try:
        return jwt.decode(token, _signing_key(token_type), algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def verify_token(token: str, token_type: TokenType = "access") -> Optional[dict]:
    """
    Verify a token and check its type.

    Returns:
        Decoded payload if valid and correct type, None otherwise
    """
    payload = decode_token(token, token_type)
    if payload and payload.get("type") == token_type:
        return payload
    return None


def generate_secure_token(length: int = 32) -> str:
    """Generate a secure random token for password reset."""
    return secrets.token_urlsafe(length)
