from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import date
from typing import List, Optional
from database.db import get_db
from models.movie import Movie
from models.user import User
from routes.movies import MovieResponse
from utils.security import (
    AuthenticatedUser,
    get_current_identity,
    hash_password,
    issue_token_for,
)
import asyncio
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

def _check_username(value: str) -> str:
    if not (value.isascii() and value.isalnum()):
        raise ValueError("Username contains non-alphanumeric characters.")
    return value

# ============ Request/Response Models ============

class RegisterRequest(BaseModel):
    """User registration request model"""
    username: str = Field(..., min_length=5, max_length=50)
    password: str = Field(..., min_length=1, max_length=72)
    email: EmailStr
    birthdate: date

    @field_validator("username")
    @classmethod
    def username_alphanumeric(cls, value: str) -> str:
        return _check_username(value)

    class Config:
        json_schema_extra = {
            "example": {
                "username": "alice1",
                "password": "Secr3t!",
                "email": "alice@example.com",
                "birthdate": "1990-01-01"
            }
        }

class UpdateUserRequest(BaseModel):
    """Profile update request; only supplied fields are changed"""
    username: Optional[str] = Field(None, min_length=5, max_length=50)
    password: Optional[str] = Field(None, min_length=8, max_length=20)
    email: Optional[EmailStr] = None
    birthdate: Optional[date] = None

    @field_validator("username")
    @classmethod
    def username_alphanumeric(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _check_username(value)

    class Config:
        json_schema_extra = {
            "example": {
                "email": "alice.new@example.com",
                "password": "N3wPassword"
            }
        }

class UserResponse(BaseModel):
    """User response model; never carries the password hash"""
    id: str
    username: str
    email: str
    birthdate: Optional[date] = None
    favorite_movies: List[str] = []

    class Config:
        json_schema_extra = {
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "username": "alice1",
                "email": "alice@example.com",
                "birthdate": "1990-01-01",
                "favorite_movies": ["6f1c1d2e-8a55-4c1b-9f0e-2b7d3c4e5f60"]
            }
        }

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            birthdate=user.birthdate,
            favorite_movies=[movie.id for movie in user.favorite_movies],
        )

class AuthResponse(BaseModel):
    """User plus a freshly issued access token"""
    user: UserResponse
    token: str

# ============ Helpers ============

async def _get_user_or_404(db: AsyncSession, username: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalars().first()
    if not user:
        logger.warning(f"User not found: {username}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user

async def _username_taken(db: AsyncSession, username: str) -> bool:
    result = await db.execute(select(User.id).where(User.username == username))
    return result.first() is not None

def _conflict(username: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"{username} already exists."
    )

# ============ Register Endpoint ============

@router.post("", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    User registration endpoint.

    Creates new user account with provided credentials.
    Returns the new user and an access token so no separate login is needed.

    Raises:
        HTTPException 400: Username already exists
        HTTPException 422: Invalid fields
        HTTPException 500: Registration failed
    """
    try:
        if await _username_taken(db, request.username):
            logger.warning(f"Registration failed: Username already exists - {request.username}")
            raise _conflict(request.username)

        new_user = User(
            username=request.username,
            email=request.email,
            hashed_password=await asyncio.to_thread(hash_password, request.password),
            birthdate=request.birthdate,
            favorite_movies=[],
        )

        db.add(new_user)
        await db.commit()

        logger.info(f"New user registered: {request.username}")

        return AuthResponse(
            user=UserResponse.from_user(new_user),
            token=issue_token_for(new_user)
        )

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Registration failed: Username taken concurrently - {request.username}")
        raise _conflict(request.username)
    except Exception as e:
        logger.error(f"Registration error: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )

# ============ List Users ============

@router.get("", response_model=List[UserResponse])
async def list_users(
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Return every registered user."""
    try:
        result = await db.execute(select(User).order_by(User.username))
        return [UserResponse.from_user(user) for user in result.scalars().all()]
    except Exception as e:
        logger.error(f"Error listing users: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load users"
        )

# ============ Get User ============

@router.get("/{username}", response_model=UserResponse)
async def get_user(
    username: str,
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Return a single user by username.

    Raises:
        HTTPException 404: User not found
    """
    try:
        user = await _get_user_or_404(db, username)
        return UserResponse.from_user(user)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching user {username}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load user"
        )

# ============ Update User ============

@router.put("/{username}", response_model=UserResponse)
async def update_user(
    username: str,
    request: UpdateUserRequest,
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a user's profile.

    Only the fields present in the request body are replaced.
    A new password is hashed before it is stored.
    Tokens carry the username as their subject, so after a rename the
    user must log in again to get a token for the new name.

    Raises:
        HTTPException 400: New username already exists
        HTTPException 404: User not found
        HTTPException 422: Invalid fields
        HTTPException 500: Update failed
    """
    try:
        user = await _get_user_or_404(db, username)
        changes = request.model_dump(exclude_unset=True, exclude_none=True)

        new_username = changes.get("username")
        if new_username and new_username != user.username:
            if await _username_taken(db, new_username):
                logger.warning(f"Update failed: Username already exists - {new_username}")
                raise _conflict(new_username)
            user.username = new_username

        if "password" in changes:
            user.hashed_password = await asyncio.to_thread(hash_password, changes["password"])
        if "email" in changes:
            user.email = changes["email"]
        if "birthdate" in changes:
            user.birthdate = changes["birthdate"]

        await db.commit()

        logger.info(f"User updated: {username} ({', '.join(sorted(changes)) or 'no changes'})")

        return UserResponse.from_user(user)

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        raise _conflict(request.username or username)
    except Exception as e:
        logger.error(f"Update error for {username}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Update failed"
        )

# ============ Deregister ============

@router.delete("/{username}")
async def delete_user(
    username: str,
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a user account and its favorite-movie links.

    Raises:
        HTTPException 404: User not found
        HTTPException 500: Deletion failed
    """
    try:
        user = await _get_user_or_404(db, username)
        await db.delete(user)
        await db.commit()

        logger.info(f"User deleted: {username}")

        return {"message": f"{username} was deleted."}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete error for {username}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Deletion failed"
        )

# ============ Favorite Movies ============

@router.get("/{username}/favoriteMovies", response_model=List[MovieResponse])
async def list_favorite_movies(
    username: str,
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Return the full movie records in a user's favorites.

    Raises:
        HTTPException 404: User not found
    """
    try:
        user = await _get_user_or_404(db, username)
        return user.favorite_movies
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching favorite movies for {username}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load favorite movies"
        )

@router.post("/{username}/movies/{movie_id}", response_model=UserResponse)
async def add_favorite_movie(
    username: str,
    movie_id: str,
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Add a movie to a user's favorites. Adding a movie twice has no effect.

    Raises:
        HTTPException 404: User or movie not found
    """
    try:
        user = await _get_user_or_404(db, username)

        movie = await db.get(Movie, movie_id)
        if not movie:
            logger.warning(f"Movie not found: {movie_id}")
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Movie not found"
            )

        if movie not in user.favorite_movies:
            user.favorite_movies.append(movie)
            await db.commit()
            logger.info(f"Favorite added: {username} -> {movie_id}")

        return UserResponse.from_user(user)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding favorite {movie_id} for {username}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add favorite movie"
        )

@router.delete("/{username}/movies/{movie_id}", response_model=UserResponse)
async def remove_favorite_movie(
    username: str,
    movie_id: str,
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Remove a movie from a user's favorites. Removing a movie that is not a favorite has no effect.

    Raises:
        HTTPException 404: User not found
    """
    try:
        user = await _get_user_or_404(db, username)

        remaining = [movie for movie in user.favorite_movies if movie.id != movie_id]
        if len(remaining) != len(user.favorite_movies):
            user.favorite_movies = remaining
            await db.commit()
            logger.info(f"Favorite removed: {username} -> {movie_id}")

        return UserResponse.from_user(user)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error removing favorite {movie_id} for {username}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove favorite movie"
        )
