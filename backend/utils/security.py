from passlib.context import CryptContext
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from config.settings import settings
from models.user import User
import asyncio
import logging

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

# HTTP Bearer token scheme; missing credentials are rejected below with 401
security = HTTPBearer(auto_error=False)

class AuthenticatedUser(BaseModel):
    """Identity resolved from a validated access token"""
    username: str
    user_id: Optional[str] = None

# ============ Password Management ============

def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Salted hash string
    """
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hashed password to compare against

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be parsed")
        return False

# ============ Credential Verification ============

async def authenticate_user(
    db: AsyncSession,
    username: str,
    password: str
) -> Optional[User]:
    """
    Look up a user by exact username and check the password.

    Returns None both for an unknown username and for a wrong password so
    callers cannot tell the two apart. An unknown username still pays for
    one hash verification.

    Args:
        db: Database session
        username: Username to look up
        password: Plain text password

    Returns:
        User object if credentials are valid, None otherwise
    """
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalars().first()

    # bcrypt runs in a worker thread so the event loop keeps serving requests
    if user is None:
        await asyncio.to_thread(pwd_context.dummy_verify)
        return None

    if not await asyncio.to_thread(verify_password, password, user.hashed_password):
        return None

    return user

# ============ JWT Token Management ============

def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary to encode in the token (typically {"sub": username, "user_id": id})
        expires_delta: Optional custom expiration time. If None, uses default from settings
        secret_key: Optional signing key. If None, uses SECRET_KEY from settings

    Returns:
        Encoded JWT token string

    Example:
        token = create_access_token(data={"sub": user.username, "user_id": user.id})
    """
    to_encode = data.copy()

    # Calculate expiration time
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta

    # Add expiration to token data
    to_encode.update({"exp": expire})

    # Encode token
    try:
        encoded_jwt = jwt.encode(
            to_encode,
            secret_key or settings.SECRET_KEY,
            algorithm=settings.ALGORITHM
        )
        return encoded_jwt
    except Exception as e:
        logger.error(f"Failed to create access token: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create access token"
        )

def issue_token_for(user: User) -> str:
    """Mint an access token whose subject is the user's username"""
    return create_access_token(data={"sub": user.username, "user_id": user.id})

def decode_token(token: str, secret_key: Optional[str] = None) -> dict:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string to decode
        secret_key: Optional verification key. If None, uses SECRET_KEY from settings

    Returns:
        Decoded token payload (dictionary)

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            secret_key or settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        return payload
    except JWTError as e:
        logger.warning(f"Invalid token: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

# ============ Request Authentication ============

async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthenticatedUser:
    """
    Dependency that gates protected routes.
    Validates the bearer token and returns the identity it carries.
    Does not touch the database.

    Args:
        credentials: HTTP Bearer credentials from request header

    Returns:
        AuthenticatedUser built from the token claims

    Raises:
        HTTPException 401: If the token is missing, invalid, expired or has no subject

    Usage in routes:
        @router.get("/movies")
        async def list_movies(identity: AuthenticatedUser = Depends(get_current_identity)):
            ...
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)

    # Extract username from token
    username = payload.get("sub")
    if not username:
        logger.warning("Token missing 'sub' claim")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user identifier",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthenticatedUser(username=username, user_id=payload.get("user_id"))
