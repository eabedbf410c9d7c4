from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from database.db import get_db
from models.user import User
from routes.users import AuthResponse, UserResponse
from utils.security import (
    AuthenticatedUser,
    authenticate_user,
    get_current_identity,
    issue_token_for,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])

# ============ Request Models ============

class LoginRequest(BaseModel):
    """Login request model"""
    username: str
    password: str

    class Config:
        json_schema_extra = {
            "example": {
                "username": "alice1",
                "password": "Secr3t!"
            }
        }

# ============ Login Endpoint ============

@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    User login endpoint.

    Authenticates user with username and password.
    Returns the user and a JWT access token if credentials are valid.

    Args:
        request: LoginRequest with username and password
        db: Database session

    Returns:
        AuthResponse with user info and access token

    Raises:
        HTTPException 400: Invalid credentials (same response for unknown user and wrong password)
    """
    try:
        user = await authenticate_user(db, request.username, request.password)

        if not user:
            logger.warning(f"Login failed: {request.username}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid username or password"
            )

        logger.info(f"User logged in successfully: {request.username}")

        return AuthResponse(
            user=UserResponse.from_user(user),
            token=issue_token_for(user)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )

# ============ Get Current User Profile ============

@router.get("/me", response_model=UserResponse)
async def get_me(
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user's profile.

    Requires valid JWT token in Authorization header.

    Raises:
        HTTPException 401: Invalid or missing token
        HTTPException 404: Account no longer exists
    """
    result = await db.execute(select(User).where(User.username == identity.username))
    user = result.scalars().first()

    if not user:
        logger.warning(f"Token subject has no account: {identity.username}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return UserResponse.from_user(user)
